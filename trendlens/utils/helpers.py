"""Utility helper functions"""

from datetime import datetime, timezone
import re


def truncate_string(text: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate string to maximum length

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated string
    """
    if len(text) <= max_length:
        return text

    return text[:max_length - len(suffix)].rstrip() + suffix


def name_tokens(name: str) -> list[str]:
    """Split a repository name like "acme/fast-api_kit" into lowercase word tokens."""
    tokens = []
    for token in re.split(r"[/\-_.\s]+", name.lower()):
        if len(token) > 1 and token not in tokens:
            tokens.append(token)
    return tokens


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string with a Z suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
