"""WSGI entry point for Passenger and other WSGI hosts.

- writes its own startup journal to `logs/passenger.log`
- loads `.env` (searching parent directories when none sits next to it)
- exposes `application`
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

BASE_DIR = Path(__file__).resolve().parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

LOG_DIR = BASE_DIR / "logs"
LOG_DIR.mkdir(exist_ok=True)

logger = logging.getLogger("passenger")
logger.setLevel(logging.DEBUG)
if not logger.handlers:
    handler = RotatingFileHandler(
        LOG_DIR / "passenger.log", maxBytes=1_000_000, backupCount=3
    )
    handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    logger.addHandler(handler)
logger.propagate = False

env_path = BASE_DIR / ".env"
load_dotenv(env_path if env_path.exists() else find_dotenv(usecwd=False))
logger.debug(".env loaded")

try:
    from app import app as application  # noqa: F401
except Exception:
    logger.exception("Application import failed")
    raise
else:
    logger.debug("Application ready")
