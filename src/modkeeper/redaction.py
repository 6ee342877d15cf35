from __future__ import annotations

import logging
import re
from typing import Iterable

_QUERY_KEY_RE = re.compile(r"([?&](?:key|api_key|apikey|token)=)[^&\s\"']+", re.IGNORECASE)
_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+")
_ANTHROPIC_KEY_RE = re.compile(r"\bsk-ant-[A-Za-z0-9_-]+")


DEFAULT_SECRET_KEYS = {"private_key", "perspective_api_key", "anthropic_api_key", "content_index_key"}


def redact_text(text: str) -> str:
    text = _QUERY_KEY_RE.sub(r"\1[REDACTED]", text)
    text = _BEARER_RE.sub(r"\1[REDACTED]", text)
    text = _ANTHROPIC_KEY_RE.sub("[REDACTED_KEY]", text)
    return text


def redact_payload(payload: dict, secret_keys: Iterable[str] = DEFAULT_SECRET_KEYS) -> dict:
    redacted = {}
    secret_keys = set(secret_keys)
    for key, value in payload.items():
        if key in secret_keys:
            redacted[key] = "[REDACTED]" if value else value
        elif isinstance(value, str):
            redacted[key] = redact_text(value)
        else:
            redacted[key] = value
    return redacted


class SecretRedactingFilter(logging.Filter):
    """Masks credentials in log records before any handler formats them."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_text(record.msg)
        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: redact_text(v) if isinstance(v, str) else v for k, v in record.args.items()
                }
            else:
                record.args = tuple(redact_text(a) if isinstance(a, str) else a for a in record.args)
        return True
