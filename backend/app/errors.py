"""Error taxonomy for script generation runs."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Classified failure category surfaced to callers."""

    CONFIG = "config"
    IO = "io"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    SERVICE = "service"


class ScriptGenerationError(RuntimeError):
    """Base exception for every terminal pipeline failure."""

    kind: ErrorKind = ErrorKind.SERVICE


class ConfigError(ScriptGenerationError):
    """Raised when the generation credential is missing."""

    kind = ErrorKind.CONFIG


class MediaReadError(ScriptGenerationError):
    """Raised when an input file cannot be read or encoded."""

    kind = ErrorKind.IO


class ServiceError(ScriptGenerationError):
    """Remote generation failure that carries the provider's raw message."""

    kind = ErrorKind.SERVICE

    def __init__(self, message: str, *, raw_message: str, model_id: str) -> None:
        super().__init__(message)
        self.raw_message = raw_message
        self.model_id = model_id


class ServiceAuthError(ServiceError):
    """Remote call rejected for authorization (401/403 or permission)."""

    kind = ErrorKind.AUTH


class ServiceNotFoundError(ServiceError):
    """Remote call rejected because the model id is unknown (404)."""

    kind = ErrorKind.NOT_FOUND


UNKNOWN_SERVICE_ERROR = "Unknown error during script generation."


def _is_auth_failure(message: str) -> bool:
    return "401" in message or "403" in message or "permission" in message.lower()


def classify_service_error(exc: BaseException, model_id: str) -> ServiceError:
    """Map a raw client exception to a classified, enriched ServiceError."""
    if isinstance(exc, ServiceError):
        return exc
    raw_message = str(exc).strip() or UNKNOWN_SERVICE_ERROR
    if _is_auth_failure(raw_message):
        return ServiceAuthError(
            f"{raw_message} (permission denied: the API key may not have access to {model_id})",
            raw_message=raw_message,
            model_id=model_id,
        )
    if "404" in raw_message:
        return ServiceNotFoundError(
            f"{raw_message} (model not found: check that the model name {model_id} is correct)",
            raw_message=raw_message,
            model_id=model_id,
        )
    return ServiceError(raw_message, raw_message=raw_message, model_id=model_id)


def error_kind_of(exc: BaseException) -> ErrorKind:
    """Return the classified kind of any exception raised by a run."""
    if isinstance(exc, ScriptGenerationError):
        return exc.kind
    return ErrorKind.SERVICE
