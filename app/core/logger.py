import os
import logging
from logging.handlers import TimedRotatingFileHandler

from app.core.config import settings

def get_logger(name: str = "app"):
    logger = logging.getLogger(name)
    logger.setLevel(settings.LOG_LEVEL)

    # Console + timed rotating file handler, attached once per logger name
    if not logger.handlers:
        console = logging.StreamHandler()
        console.setLevel(settings.LOG_LEVEL)
        console_fmt = logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
            "%Y-%m-%d %H:%M:%S"
        )
        console.setFormatter(console_fmt)
        logger.addHandler(console)

        log_dir = "logs"
        os.makedirs(log_dir, exist_ok=True)

        log_path = os.path.join(log_dir, f"{name}.log")
        file_handler = TimedRotatingFileHandler(
            filename=log_path,
            when="midnight",
            interval=1,
            backupCount=14,
            encoding="utf-8",
            utc=True
        )
        file_handler.suffix = "%Y-%m-%d"
        file_handler.setLevel(settings.LOG_LEVEL)
        file_handler.setFormatter(console_fmt)
        logger.addHandler(file_handler)

    return logger
