import json
import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime, timezone

from imagestudio.api.routes.generation import LOG_KEYS as API_LOG_KEYS
from imagestudio.core.config import settings
from imagestudio.services.image_generation.runner import LOG_KEYS as RUNNER_LOG_KEYS
from imagestudio.services.llm.prompt_enhancer import LOG_KEYS as ENHANCER_LOG_KEYS


class JsonFormatter(logging.Formatter):
    """JSON log formatter; copies the structured keys each module declares from the record."""

    # Union of module LOG_KEYS, first occurrence order
    EXTRA_FIELDS = tuple(dict.fromkeys(RUNNER_LOG_KEYS + ENHANCER_LOG_KEYS + API_LOG_KEYS))

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> None:
    formatter = JsonFormatter()
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())
    handlers: list[logging.Handler] = [handler]
    if settings.log_file:
        file_handler = RotatingFileHandler(
            settings.log_file,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
    root.handlers = handlers
