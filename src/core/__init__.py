"""
Core module exports.
Avoid importing from this file to prevent circular imports.
Import directly from specific modules instead.
"""

__all__ = [
    "cache",
    "exceptions",
    "logging_service",
    "redaction",
    "retry",
    "security",
]
