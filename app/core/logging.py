import logging
import logging.config

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "taskName"}


class ExtraFormatter(logging.Formatter):
    """Appends the record's `extra=` fields as key=value pairs."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        extras = sorted(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        if extras:
            line = line + " " + " ".join(f"{key}={value}" for key, value in extras)
        return line


def configure_logging(level: str = "INFO") -> None:
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "simple": {
                    "()": ExtraFormatter,
                    "fmt": "{levelname} {asctime} {name} {message}",
                    "style": "{",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "simple",
                },
            },
            "loggers": {
                "app": {
                    "handlers": ["console"],
                    "level": level.upper(),
                    "propagate": True,
                },
            },
        }
    )
