"""Error sanitization utilities to prevent credential leakage."""

import re

# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"access[_\s]?key[_\s]?id[:=\s]+([A-Z0-9]{16,128})",
    r"secret[_\s]?access[_\s]?key[:=\s]+([A-Za-z0-9/+=]{40})",
    r"session[_\s]?token[:=\s]+([A-Za-z0-9/+=]+)",
    r"x-amz-security-token[:=\s]+([A-Za-z0-9/+=]+)",
    r"signature[:=\s]+([a-f0-9]{64})",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "access_key_id",
    "secret_access_key",
    "session_token",
    "password",
    "secret",
    "credentials",
    "token",
}

# Matches AWS access key ids anywhere in a message
_ACCESS_KEY_ID = re.compile(r"\b(AKIA|ASIA)[A-Z0-9]{16}\b")


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove credentials.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(
            pattern,
            lambda m: m.group(0).replace(m.group(1), "[REDACTED]"),
            sanitized,
            flags=re.IGNORECASE,
        )

    sanitized = _ACCESS_KEY_ID.sub("[REDACTED]", sanitized)

    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"\b{field}[:=\s]+([^\s,;\)]+)",
            rf"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message.

    Args:
        error: Exception object

    Returns:
        Sanitized error message
    """
    return sanitize_error_message(str(error))

