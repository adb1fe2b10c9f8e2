# env vars + constants
import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))

ROSTER_PATH = os.getenv("ROSTER_PATH", "idstudent.csv")
VALID_OPTIONS = [o.strip() for o in os.getenv("VALID_OPTIONS", "1,2,3,4,5").split(",") if o.strip()]

GOOGLE_SHEETS_ID = os.getenv("GOOGLE_SHEETS_ID", "")
GOOGLE_SERVICE_ACCOUNT_KEY_FILE = os.getenv("GOOGLE_SERVICE_ACCOUNT_KEY_FILE", "")
SHEET_NAME = os.getenv("SHEET_NAME", "Votes")
SYNC_TIMEOUT = float(os.getenv("SYNC_TIMEOUT", "5.0"))

PUBLIC_DIR = os.getenv("PUBLIC_DIR", "public")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_log_handler = None


def setup_logging(level: str = LOG_LEVEL) -> logging.Handler:
    """
    One UTF-8 stdout handler on the root logger.
    Student names are Thai, so the stream must not fall back to ascii.
    Calling it again replaces the previous handler; other handlers stay.
    """
    global _log_handler

    handler = logging.StreamHandler(sys.stdout)
    if hasattr(handler.stream, "reconfigure"):
        try:
            handler.stream.reconfigure(encoding="utf-8", errors="replace")
        except (ValueError, OSError):
            pass

    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    if _log_handler is not None:
        root_logger.removeHandler(_log_handler)
    root_logger.addHandler(handler)
    _log_handler = handler
    return handler
