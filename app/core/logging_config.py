"""Process-wide logging setup: one JSON object per line on stderr."""

import logging
import logging.config

JSON_FORMAT = (
    '{"time": "%(asctime)s", "level": "%(levelname)s", '
    '"logger": "%(name)s", "message": "%(message)s"}'
)


def configure_logging(level: str = "INFO") -> None:
    """Install the console JSON handler on the root logger at *level*.

    Unknown level names fall back to ``INFO`` rather than failing start-up.
    """
    level_name = str(level).upper()
    if not isinstance(logging.getLevelName(level_name), int):
        level_name = "INFO"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"format": JSON_FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                },
            },
            "root": {"level": level_name, "handlers": ["console"]},
        }
    )
