"""
reviewbot logging utilities.

Provides configurable logging for HTTP requests/responses and policy
decisions. Ensures access tokens are never logged.
"""

import logging
import re
from typing import Any

_bot_logger = logging.getLogger("reviewbot")
_http_logger = logging.getLogger("reviewbot.http")
_policy_logger = logging.getLogger("reviewbot.policy")

# Patterns for sensitive data that should be masked
_SENSITIVE_PATTERNS = [
    # GitLab personal/project access tokens
    (re.compile(r"glpat-[A-Za-z0-9_\-]{20,}"), "[TOKEN_REDACTED]"),
    # PRIVATE-TOKEN header rendered in a dict or a raw header line
    (re.compile(r"(private-token)['\"]?\s*[:=]\s*['\"]?[^'\"\s,}]+['\"]?", re.IGNORECASE), r"\1: [REDACTED]"),
    (re.compile(r"(Bearer)\s+[A-Za-z0-9._\-]+"), r"\1 [REDACTED]"),
    (re.compile(r"(secret|token|password|api_key)['\"]?\s*[:=]\s*['\"][^'\"]+['\"]", re.IGNORECASE), r"\1: [REDACTED]"),
]

_DEFAULT_SENSITIVE_KEYS = {
    "private-token",
    "authorization",
    "secret",
    "token",
    "password",
    "api_key",
}


def configure_logging(
    level: int = logging.INFO,
    http_level: int | None = None,
    policy_level: int | None = None,
    handler: logging.Handler | None = None,
    format_string: str | None = None,
) -> None:
    """
    Configure reviewbot logging.

    Args:
        level: Default log level for all reviewbot loggers (default: INFO)
        http_level: Log level for HTTP request/response logging (default: same as level)
        policy_level: Log level for gate decisions (default: same as level)
        handler: Custom handler to use (default: StreamHandler to stderr)
        format_string: Custom format string (default: includes timestamp, level, logger name)

    Example:
        ```python
        import logging
        from reviewbot.logging import configure_logging

        # Trace every platform call
        configure_logging(level=logging.INFO, http_level=logging.DEBUG)
        ```
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    formatter = logging.Formatter(format_string)

    if handler is None:
        handler = logging.StreamHandler()

    handler.setFormatter(formatter)

    _bot_logger.setLevel(level)
    _bot_logger.addHandler(handler)

    _http_logger.setLevel(http_level if http_level is not None else level)
    _policy_logger.setLevel(policy_level if policy_level is not None else level)


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a reviewbot logger.

    Args:
        name: Logger name suffix (e.g., "http", "policy"). If None, returns the root bot logger.

    Returns:
        Logger instance
    """
    if name is None:
        return _bot_logger
    return logging.getLogger(f"reviewbot.{name}")


def mask_sensitive_data(text: str) -> str:
    """
    Mask access tokens and other secrets in a string.

    Args:
        text: Text that may contain sensitive data

    Returns:
        Text with sensitive data masked
    """
    result = text
    for pattern, replacement in _SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def safe_log_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """
    Create a copy of a dictionary with sensitive values masked.

    Args:
        data: Dictionary that may contain sensitive values
        sensitive_keys: Set of lower-cased keys to mask (default: token-like keys)

    Returns:
        Dictionary with sensitive values replaced with "[REDACTED]"
    """
    if sensitive_keys is None:
        sensitive_keys = _DEFAULT_SENSITIVE_KEYS

    result: dict[str, Any] = {}
    for key, value in data.items():
        key_lower = str(key).lower()
        if key_lower in sensitive_keys or any(sk in key_lower for sk in sensitive_keys):
            result[key] = "[REDACTED]"
        elif isinstance(value, dict):
            result[key] = safe_log_dict(value, sensitive_keys)
        elif isinstance(value, list):
            result[key] = [
                safe_log_dict(item, sensitive_keys) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            result[key] = value

    return result


def log_http_request(
    method: str,
    url: str,
    params: dict[str, Any] | None = None,
    body: dict[str, Any] | None = None,
) -> None:
    """Log an HTTP request at DEBUG level with sensitive data masked."""
    if not _http_logger.isEnabledFor(logging.DEBUG):
        return

    log_parts = [f"{method} {url}"]

    if params:
        log_parts.append(f"params={safe_log_dict(params)}")

    if body:
        log_parts.append(f"body={safe_log_dict(body)}")

    _http_logger.debug(mask_sensitive_data(" | ".join(log_parts)))


def log_http_response(
    status_code: int,
    url: str,
    elapsed_ms: float | None = None,
) -> None:
    """Log an HTTP response at DEBUG level."""
    if not _http_logger.isEnabledFor(logging.DEBUG):
        return

    log_parts = [f"Response {status_code} from {url}"]

    if elapsed_ms is not None:
        log_parts.append(f"elapsed={elapsed_ms:.2f}ms")

    _http_logger.debug(mask_sensitive_data(" | ".join(log_parts)))


def log_decision(
    project_id: int,
    mr_iid: int,
    reasons: list[str],
    trigger: str | None = None,
) -> None:
    """
    Log the outcome of a merge eligibility evaluation.

    Args:
        project_id: Numeric project identifier
        mr_iid: Merge request iid
        reasons: Blocking reasons (empty when mergeable)
        trigger: Identity that triggered the evaluation, if any
    """
    who = trigger or "<none>"
    if not reasons:
        _policy_logger.info(f"!{mr_iid} in project {project_id} is mergeable (trigger={who})")
        return

    _policy_logger.info(
        f"!{mr_iid} in project {project_id} is blocked by {len(reasons)} reason(s) (trigger={who})"
    )
    for reason in reasons:
        _policy_logger.debug(f"!{mr_iid}: {reason.strip()}")


__all__ = [
    "configure_logging",
    "get_logger",
    "mask_sensitive_data",
    "safe_log_dict",
    "log_http_request",
    "log_http_response",
    "log_decision",
]
