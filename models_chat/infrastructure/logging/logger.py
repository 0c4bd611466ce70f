import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from models_chat.config.settings import Settings, settings


class JsonFormatter(logging.Formatter):
    def __init__(self, redact_content: bool = False):
        super().__init__()
        self._redact_content = redact_content

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if self._redact_content:
            msg = (msg or "")[:64]
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        return json.dumps(payload, ensure_ascii=False)


def setup_logger(cfg: Settings = settings) -> logging.Logger:
    logger = logging.getLogger("models_chat")
    logger.setLevel(cfg.log_level)
    # 重复调用时不再追加 handler
    if logger.handlers:
        return logger
    log_dir = Path(cfg.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / "models_chat.log", encoding="utf-8", delay=True)
    fh.setLevel(cfg.log_level)
    fh.setFormatter(JsonFormatter(redact_content=cfg.log_redact_content))
    logger.addHandler(fh)
    return logger


def log_event(level: int, message: str, **fields) -> None:
    """写一条结构化日志，fields 会合并进 JSON 行。"""

    logger.log(level, message, extra={"extra": fields})


logger = setup_logger()
