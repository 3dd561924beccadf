"""
Sensitive data redaction utility.

Redacts credentials (passwords, bearer tokens, the quote provider
API key) from log payloads and URLs before they are written.
"""

import re
from dataclasses import dataclass, field
from typing import Any


@dataclass
class RedactionConfig:
    """Configuration for sensitive data redaction."""

    mask: str = "***REDACTED***"

    # Dictionary keys whose values are always masked (case-insensitive substring match)
    sensitive_keys: list[str] = field(default_factory=lambda: [
        "password",
        "secret",
        "api_key",
        "apikey",
        "access_token",
        "authorization",
        "bearer",
        "cookie",
    ])

    # Regex patterns for common sensitive data formats found inside strings
    patterns: list[tuple[str, str]] = field(default_factory=lambda: [
        # JWT tokens
        (r"eyJ[a-zA-Z0-9_-]*\.eyJ[a-zA-Z0-9_-]*\.[a-zA-Z0-9_-]*", "***JWT***"),
        # Bearer tokens
        (r"Bearer\s+[a-zA-Z0-9_\-\.]+", "Bearer ***TOKEN***"),
        # apikey=... query parameters
        (r"(?i)(apikey=)[^&\s]+", r"\1***"),
    ])


def _is_sensitive_key(key: str, config: RedactionConfig) -> bool:
    lowered = key.lower()
    return any(s in lowered for s in config.sensitive_keys)


def redact_string(value: str, config: RedactionConfig | None = None) -> str:
    """
    Apply the configured regex patterns to a single string.

    Args:
        value: String that may contain credentials
        config: Redaction configuration

    Returns:
        String with sensitive fragments masked
    """
    config = config or RedactionConfig()
    for pattern, replacement in config.patterns:
        value = re.sub(pattern, replacement, value)
    return value


def redact_sensitive(
    data: Any,
    config: RedactionConfig | None = None,
    depth: int = 0,
    max_depth: int = 10,
) -> Any:
    """
    Recursively redact sensitive values in dicts, lists and strings.

    Args:
        data: Arbitrary log payload
        config: Redaction configuration
        depth: Current recursion depth
        max_depth: Recursion limit for deeply nested payloads

    Returns:
        A redacted copy of the payload
    """
    config = config or RedactionConfig()
    if depth > max_depth:
        return data

    if isinstance(data, dict):
        return {
            k: config.mask if isinstance(k, str) and _is_sensitive_key(k, config)
            else redact_sensitive(v, config, depth + 1, max_depth)
            for k, v in data.items()
        }
    if isinstance(data, (list, tuple)):
        return type(data)(redact_sensitive(v, config, depth + 1, max_depth) for v in data)
    if isinstance(data, str):
        return redact_string(data, config)
    return data
