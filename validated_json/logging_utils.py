import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Optional

_EXTRA_KEYS = ("source_id", "schema", "pointer", "command")


class JsonFormatter(logging.Formatter):
    """One JSON object per line; violation context travels as ``extra=`` keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", *, json_output: bool = False, stream: Optional[IO[str]] = None) -> None:
    # stdout belongs to command results, so diagnostics default to stderr.
    root = logging.getLogger()
    if root.handlers:
        return

    lvl = getattr(logging, level.upper(), logging.INFO)
    handler = logging.StreamHandler(stream=stream or sys.stderr)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root.setLevel(lvl)
    root.addHandler(handler)
