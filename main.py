"""
main.py
========
Central entry point for the VoiceWriter service.

Run with:
    uvicorn main:app
or:
    python main.py
"""

import logging

from dotenv import load_dotenv

load_dotenv()  # Load .env before any module reads env vars

# Configure logging for the entire application
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Transport-level chatter from the HTTP clients stays out of the run log.
for _noisy_logger_name in (
    "openai",
    "openai._base_client",
    "httpx",
    "httpcore",
    "aiohttp.access",
):
    logging.getLogger(_noisy_logger_name).setLevel(logging.WARNING)

from src.safety_net import install_excepthook  # noqa: E402
from src.api.app import app  # noqa: F401, E402

install_excepthook()
app.state.safety_net = True

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="127.0.0.1", port=8000)
