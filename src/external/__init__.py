# src/external/__init__.py
# =========================
# External Collaborators — VoiceWriter
#
# Contracts for the pieces that live outside the core:
#   - CredentialProvider: get_api_key() → str | None
#   - Deliverer:          async deliver(text) → bool
#   - ActivityLog:        log_action(type, input, output, status)
