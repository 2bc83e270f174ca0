"""
Error message sanitization for API responses.

Operation errors carry the text of the underlying failure, which can
include a PostgreSQL DSN with its password, the basic auth header sent
to Jira, an API token from the environment, or a local file path. The
REST handlers pass every message through this module before it leaves
the process; the unsanitized text is only ever logged.

Usage:
    sanitizer = ErrorSanitizer()
    result = sanitizer.sanitize("connect to postgresql://sync:pw@db/jira failed")
    result.sanitized_message   # "connect to [DATABASE_URL] failed"

    payload = sanitize_error_payload(exc.to_dict())
"""

import re
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class SanitizationResult:
    """Result of error message sanitization.

    Attributes:
        sanitized_message: Sanitized error message (safe to return to client)
        redaction_count: Number of redactions made
    """

    sanitized_message: str
    redaction_count: int

    @property
    def was_sanitized(self) -> bool:
        return self.redaction_count > 0


class ErrorSanitizer:
    """Removes credentials, connection strings, paths and stack traces.

    Attributes:
        patterns: List of (regex_pattern, replacement) tuples
        max_message_length: Maximum length of sanitized messages
    """

    # Order matters - more specific patterns come first
    DEFAULT_PATTERNS: list[tuple[str, str]] = [
        # Database connection strings (before generic passwords)
        (r"postgres(ql)?://[^\s]+", "[DATABASE_URL]"),

        # Basic auth as sent to Jira, and Atlassian API tokens
        (r"authorization[:\s]+basic\s+[A-Za-z0-9+/=]+", "Authorization: [REDACTED]"),
        (r"basic\s+[A-Za-z0-9+/]{16,}={0,2}", "Basic [REDACTED]"),
        (r"\bATATT[A-Za-z0-9_\-=]+", "[API_TOKEN]"),
        (r"api[-_]?token[=:]\s*[^\s,;]+", "api_token=[REDACTED]"),

        # Passwords and secrets in key=value form
        (r"password[=:]\s*[^\s,;]+", "password=[REDACTED]"),
        (r"secret[=:]\s*[^\s,;]+", "secret=[REDACTED]"),

        # Sensitive environment variable names
        (r"\b(JIRA_API_TOKEN|POSTGRES_PASSWORD)\b", "[ENV_VAR]"),

        # File paths
        (r"/(?:home|root|usr|var|etc|opt|mnt|tmp)/[^\s,;]+", "[FILE_PATH]"),

        # Python stack traces
        (r"Traceback \(most recent call last\):[\s\S]*?(?=\n\n|\n[A-Z]|\Z)", "[STACK_TRACE]"),
        (r'File "([^"]+)", line \d+', 'File "[REDACTED]", line [REDACTED]'),
    ]

    def __init__(
        self,
        patterns: Optional[list[tuple[str, str]]] = None,
        max_message_length: int = 500,
    ):
        self.patterns = list(patterns or self.DEFAULT_PATTERNS)
        self.max_message_length = max_message_length
        self._compiled_patterns = [
            (re.compile(pattern, re.IGNORECASE), replacement)
            for pattern, replacement in self.patterns
        ]

    def sanitize(self, message: str) -> SanitizationResult:
        """Sanitize an error message for client exposure."""
        if not message:
            return SanitizationResult(sanitized_message="An error occurred", redaction_count=0)

        sanitized = message
        redaction_count = 0
        for pattern, replacement in self._compiled_patterns:
            sanitized, count = pattern.subn(replacement, sanitized)
            redaction_count += count

        if len(sanitized) > self.max_message_length:
            sanitized = sanitized[: self.max_message_length] + "... [TRUNCATED]"
        if not sanitized.strip():
            sanitized = "An error occurred"

        return SanitizationResult(sanitized_message=sanitized, redaction_count=redaction_count)


# Singleton instance for convenience
_default_sanitizer: Optional[ErrorSanitizer] = None


def get_sanitizer() -> ErrorSanitizer:
    global _default_sanitizer
    if _default_sanitizer is None:
        _default_sanitizer = ErrorSanitizer()
    return _default_sanitizer


def sanitize_error_message(message: str) -> str:
    """Sanitize a single message with the default sanitizer.

    Example:
        >>> sanitize_error_message("pool error: postgresql://sync:pw@db/jira")
        'pool error: [DATABASE_URL]'
    """
    return get_sanitizer().sanitize(message).sanitized_message


def sanitize_error_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Copy an error ``to_dict()`` payload with its free-text fields sanitized.

    Covers ``message`` and ``cause`` at the top level, the failure causes
    of an attached sync report, and string values in ``details``.
    """
    sanitized = dict(payload)
    for key in ("message", "cause"):
        if sanitized.get(key):
            sanitized[key] = sanitize_error_message(sanitized[key])

    details = sanitized.get("details")
    if isinstance(details, dict):
        sanitized["details"] = {
            k: sanitize_error_message(v) if isinstance(v, str) else v
            for k, v in details.items()
        }

    report = sanitized.get("report")
    if isinstance(report, dict):
        sanitized["report"] = sanitize_report_payload(report)
    return sanitized


def sanitize_report_payload(report: dict[str, Any]) -> dict[str, Any]:
    """Copy a sync report ``to_dict()`` payload with failure causes sanitized."""
    if not report.get("failures"):
        return report
    return {
        **report,
        "failures": [
            {**f, "cause": sanitize_error_message(f["cause"])} if f.get("cause") else f
            for f in report["failures"]
        ],
    }


__all__ = [
    "ErrorSanitizer",
    "SanitizationResult",
    "get_sanitizer",
    "sanitize_error_message",
    "sanitize_error_payload",
    "sanitize_report_payload",
]
