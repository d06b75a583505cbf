import os
import sys
from pathlib import Path

from loguru import logger

log_dir = Path(os.getenv("LOG_DIR", "logs"))
log_file = log_dir / "update_pets_{time}.log"

logger.remove()
logger.add(
    sys.stderr,
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
)
logger.add(
    log_file,
    rotation="256 MB",  # split once a file reaches 256MB
    retention="10 days",  # rotated files older than 10 days are removed
    compression="zip",
    encoding="utf-8",
    level="DEBUG",
    enqueue=True,
)
