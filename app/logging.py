# app/logging.py
import json
import logging
import os
import re
from typing import Any, Dict, Optional

PII_RE = re.compile(r"([\w\.-]+)@([\w\.-]+)")  # naive email redaction

DEFAULT_PREVIEW_CHARS = 200


def configure_logging(level: Optional[str] = None):
    # stderr only: stdout belongs to the stdio transport
    logging.basicConfig(
        level=level or os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def redact_str(s: str, max_chars: int = DEFAULT_PREVIEW_CHARS) -> str:
    s = PII_RE.sub("[redacted-email]", s)
    if len(s) > max_chars:
        return f"{s[:max_chars]}...[{len(s) - max_chars} more chars]"
    return s


def _redact_value(value: Any, max_chars: int) -> Any:
    if isinstance(value, str):
        return redact_str(value, max_chars)
    if isinstance(value, list):
        return [_redact_value(v, max_chars) for v in value]
    if isinstance(value, dict):
        return {k: _redact_value(v, max_chars) for k, v in value.items()}
    return value


def redact_args(args: Dict[str, Any], max_chars: int = DEFAULT_PREVIEW_CHARS) -> Dict[str, Any]:
    safe = json.loads(json.dumps(args, default=str))  # deep copy via JSON
    return {k: _redact_value(v, max_chars) for k, v in safe.items()}


def log_tool_call(logger: logging.Logger, name: str, args: Dict[str, Any],
                  max_chars: int = DEFAULT_PREVIEW_CHARS):
    logger.info("tool_call %s %s", name, redact_args(args, max_chars))
