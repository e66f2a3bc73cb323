import json
import logging
from pathlib import Path
from datetime import datetime, timezone
from agent_kit.config.settings import settings


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if settings.log_redact_content:
            msg = (msg or "")[:64]
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger() -> logging.Logger:
    logger = logging.getLogger("agent_kit")
    logger.setLevel(settings.log_level)
    if settings.log_to_file and not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_dir / "agent.log", encoding="utf-8")
        fh.setLevel(settings.log_level)
        fh.setFormatter(JsonFormatter())
        logger.addHandler(fh)
    return logger


logger = setup_logger()
