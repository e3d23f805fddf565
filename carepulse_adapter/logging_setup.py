import json
import logging
from datetime import datetime, timezone

HANDLER_NAME = "carepulse-console"


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Logger:
    """Send every record to the console, one JSON object per line by default."""
    logger = logging.getLogger()
    logger.setLevel(level.upper())

    # each app start-up calls this; keep a single console handler
    for handler in list(logger.handlers):
        if handler.get_name() == HANDLER_NAME:
            logger.removeHandler(handler)

    console = logging.StreamHandler()
    console.set_name(HANDLER_NAME)
    if fmt == "json":
        console.setFormatter(JsonFormatter())
    else:
        console.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(console)

    return logger
