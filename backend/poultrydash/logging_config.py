# Overview: Process-wide logging setup, applied once by the app factory.

import logging.config


def configure_logging(level: str = "INFO") -> None:
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "{levelname} {asctime} {name} {message}",
                "style": "{",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "verbose",
            },
        },
        "loggers": {
            "poultrydash": {
                "handlers": ["console"],
                "level": level.upper(),
                "propagate": True,
            },
        },
    })
