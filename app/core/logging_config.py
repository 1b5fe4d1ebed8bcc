import logging
import logging.config
import os
from datetime import datetime
from app.core.config import settings

LOG_CHANNELS = ("app", "access", "error", "procurement", "celery")

def _file_handler(channel: str, level: str, formatter: str, current_date: str) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": formatter,
        "filename": os.path.join(settings.LOG_DIR, channel, f"{channel}-{current_date}.log"),
        "maxBytes": 10485760,  # 10MB
        "backupCount": 10,
    }

def build_logging_config(log_to_file: bool = True) -> dict:
    """dictConfig for console output plus one rotating file per channel"""
    current_date = datetime.now().strftime("%Y-%m-%d")

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.LOG_LEVEL,
            "formatter": "default",
            "stream": "ext://sys.stdout",
        },
    }
    if log_to_file:
        handlers.update({
            "app_file": _file_handler("app", settings.LOG_LEVEL, "detailed", current_date),
            "error_file": _file_handler("error", "ERROR", "detailed", current_date),
            "access_file": _file_handler("access", "INFO", "access", current_date),
            "procurement_file": _file_handler("procurement", "INFO", "detailed", current_date),
            "celery_file": _file_handler("celery", "INFO", "detailed", current_date),
        })

    def pick(*names):
        return [name for name in names if name in handlers]

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s - %(funcName)s:%(lineno)d - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "access": {
                "format": "%(asctime)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "loggers": {
            "": {  # Root logger
                "level": settings.LOG_LEVEL,
                "handlers": pick("console", "app_file", "error_file"),
                "propagate": False,
            },
            "app.services.procurement": {
                "level": "INFO",
                "handlers": pick("procurement_file", "console", "error_file"),
                "propagate": False,
            },
            "celery": {
                "level": "INFO",
                "handlers": pick("celery_file", "console"),
                "propagate": False,
            },
            "access": {
                "level": "INFO",
                "handlers": pick("access_file", "console"),
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "INFO",
                "handlers": pick("access_file"),
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "level": "WARNING",  # Reduce DB query noise
                "handlers": pick("app_file", "console"),
                "propagate": False,
            },
        },
    }

def setup_logging(log_to_file: bool = None):
    """Setup application logging configuration"""
    if log_to_file is None:
        log_to_file = settings.LOG_TO_FILE

    if log_to_file:
        for channel in LOG_CHANNELS:
            os.makedirs(os.path.join(settings.LOG_DIR, channel), exist_ok=True)

    logging.config.dictConfig(build_logging_config(log_to_file))

    logger = logging.getLogger(__name__)
    logger.info("🚀 Inventory Procurement Service - Logging configured")
    logger.info(f"📝 Log level: {settings.LOG_LEVEL}")
    if log_to_file:
        logger.info(f"🗂️  Logs directory: ./{settings.LOG_DIR}/")
