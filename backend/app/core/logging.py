import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Make sure the root logger has a stdout handler at the requested level.
    Uvicorn installs its handlers before importing the app; Celery workers and scripts do not.
    """
    resolved_level = (level or DEFAULT_LEVEL).upper()
    root_logger = logging.getLogger()

    if not root_logger.handlers:
        logging.basicConfig(
            level=resolved_level,
            format=LOG_FORMAT,
            handlers=[logging.StreamHandler(sys.stdout)],
        )
    else:
        root_logger.setLevel(resolved_level)

    # requests/urllib3 的 DEBUG 会把 header（含 token）打出来
    if resolved_level == "DEBUG":
        logging.getLogger("urllib3").setLevel(logging.INFO)
    logging.captureWarnings(True)
    return logging.getLogger("captioner")
