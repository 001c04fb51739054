import logging
import logging.config
from pathlib import Path
from app.core.config import settings

LOG_DIR = Path("logs")

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        },
        "detailed": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.LOG_LEVEL,
            "formatter": "default",
            "stream": "ext://sys.stdout"
        },
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "INFO",
            "formatter": "detailed",
            "filename": str(LOG_DIR / "app.log"),
            "maxBytes": 10485760,
            "backupCount": 5
        },
        "error_file": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "ERROR",
            "formatter": "detailed",
            "filename": str(LOG_DIR / "error.log"),
            "maxBytes": 10485760,
            "backupCount": 5
        }
    },
    "root": {
        "level": settings.LOG_LEVEL,
        "handlers": ["console", "file", "error_file"]
    },
    "loggers": {
        "app": {
            "level": settings.LOG_LEVEL,
            "handlers": ["console", "file", "error_file"],
            "propagate": False
        },
        "app.middleware.logging": {
            "level": "INFO",
            "handlers": ["console", "file"],
            "propagate": False
        },
        "httpx": {
            "level": "WARNING",
            "handlers": ["console"],
            "propagate": False
        },
        "uvicorn.access": {
            "level": "WARNING",
            "handlers": ["console"],
            "propagate": False
        }
    }
}

def _without_file_handlers(config: dict) -> dict:
    file_handlers = {"file", "error_file"}
    config = {**config, "handlers": {k: v for k, v in config["handlers"].items() if k not in file_handlers}}
    config["root"] = {**config["root"], "handlers": ["console"]}
    config["loggers"] = {
        name: {**logger_config, "handlers": [h for h in logger_config["handlers"] if h not in file_handlers]}
        for name, logger_config in config["loggers"].items()
    }
    return config

def configure_logging():
    if settings.LOG_TO_FILE:
        LOG_DIR.mkdir(exist_ok=True)
        logging.config.dictConfig(LOGGING_CONFIG)
    else:
        logging.config.dictConfig(_without_file_handlers(LOGGING_CONFIG))
