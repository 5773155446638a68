from __future__ import annotations

import re


_RE_BEARER = re.compile(r"(?i)\bBearer\s+([A-Za-z0-9._\-+/=]{8,})")
_RE_OPENROUTER_SK = re.compile(r"\bsk-or-v1-[A-Za-z0-9_\-]{10,}\b")
_RE_GENERIC_SK = re.compile(r"\bsk-[A-Za-z0-9_\-]{10,}\b")


def redact_secrets(text: str) -> str:
    """
    Scrub API keys and bearer tokens from upstream error text before it is logged.

    Upstream bodies can echo request headers back, so this runs on every error body.
    """
    if not text:
        return text

    out = _RE_BEARER.sub("Bearer [REDACTED]", text)
    out = _RE_OPENROUTER_SK.sub("[REDACTED]", out)
    out = _RE_GENERIC_SK.sub("[REDACTED]", out)
    return out


def truncate(text: str, max_len: int = 500) -> str:
    if len(text) <= max_len:
        return text
    return text[:max_len] + "...[truncated]"
