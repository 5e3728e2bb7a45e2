# app/core/logger.py
from loguru import logger
import sys

from app.core.config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "{message}"
)

# Console sink; routing decisions are logged at INFO, fallbacks at WARNING
logger.remove()
logger.add(sys.stdout, format=LOG_FORMAT, level=settings.LOG_LEVEL)

# Optional rotating file sink for deployments without a log collector
if settings.LOG_FILE:
    logger.add(
        settings.LOG_FILE,
        format=LOG_FORMAT,
        level=settings.LOG_LEVEL,
        rotation="10 MB",
        retention="7 days",
        enqueue=True,
    )

__all__ = ["logger"]
