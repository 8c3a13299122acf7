# src/api/__init__.py
# =====================
# API Layer — VoiceWriter
#
# Localhost control surface for the desktop shell:
#   - POST /api/v1/process-recording  (dictation)
#   - POST /api/v1/polish-text        (selected-text polish)
#   - GET/POST /api/v1/state          (capture state)
#   - POST /api/v1/test-key           (API key check)
