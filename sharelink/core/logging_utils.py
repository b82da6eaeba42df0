import re
from typing import Any, Dict
from sharelink.config import settings

MASK = "***MASKED***"

# Keys whose values are never written to logs
SECRET_KEY_TERMS = ("password", "secret", "token", "authorization", "bearer", "signature", "api_key", "apikey")

# Bearer capabilities: keep a short prefix so log lines stay correlatable
CAPABILITY_KEYS = {"linkid", "link_id", "signedurl", "signed_url"}

SENSITIVE_HEADERS = ("authorization", "x-api-key", "cookie", "set-cookie")

_JWT_PATTERN = re.compile(r"^eyJ[\w-]+\.[\w-]+\.[\w-]+$")


def _mask_capability(value: Any) -> Any:
    if isinstance(value, str) and len(value) > 8:
        return value[:6] + "..."
    return MASK


def _mask_email(value: Any) -> Any:
    if isinstance(value, str) and "@" in value:
        local, _, domain = value.partition("@")
        if len(local) > 3:
            return local[:3] + "***@" + domain
    return MASK


def mask_sensitive_data(data: Any) -> Any:
    """
    Recursively mask sensitive data in dictionaries, lists, and strings.

    Passwords, tokens and signatures are replaced entirely; link tokens and
    signed URLs keep a short prefix; emails keep the first three characters
    and the domain.
    """
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            key_lower = str(key).lower()

            if key_lower in ("requestid", "request_id"):
                masked[key] = value
            elif key_lower in CAPABILITY_KEYS:
                masked[key] = _mask_capability(value)
            elif any(term in key_lower for term in SECRET_KEY_TERMS):
                masked[key] = MASK
            elif key_lower == "email":
                masked[key] = _mask_email(value)
            else:
                masked[key] = mask_sensitive_data(value)
        return masked

    if isinstance(data, list):
        return [mask_sensitive_data(item) for item in data]

    if isinstance(data, str) and _JWT_PATTERN.match(data):
        return MASK

    return data


_LINK_PATH_PATTERN = re.compile(r"(/links/)([^/]{6})[^/]*")


def mask_path(path: str) -> str:
    """Shorten link tokens embedded in a URL path."""
    if not settings.LOG_MASK_SENSITIVE:
        return path
    return _LINK_PATH_PATTERN.sub(r"\1\2...", path)


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Mask sensitive HTTP headers."""
    return {
        key: MASK if any(sensitive in key.lower() for sensitive in SENSITIVE_HEADERS) else value
        for key, value in headers.items()
    }


def sanitize_log_message(message: str, **kwargs: Any) -> str:
    """
    Build "message | Key: value | ..." with sensitive values masked.

    A RequestID keyword is appended last so RequestIDFormatter can lift it
    into the log prefix.
    """
    request_id = kwargs.pop("RequestID", None) or kwargs.pop("request_id", None)

    if settings.LOG_MASK_SENSITIVE:
        kwargs = mask_sensitive_data(kwargs)

    context_parts = []
    for key, value in kwargs.items():
        if isinstance(value, (dict, list)):
            value = str(value)[:200]
        context_parts.append(f"{key}: {value}")

    formatted_message = message
    if context_parts:
        formatted_message = f"{message} | {' | '.join(context_parts)}"

    if request_id:
        formatted_message = f"{formatted_message} | RequestID: {request_id}"

    return formatted_message
