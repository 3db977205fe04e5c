# bizenglish/core/errors.py
"""
Error taxonomy for the backend.
Every error carries a stable machine-readable code and the HTTP status the
API layer should answer with. The exception handler registered in main.py
renders them as {"success": false, "error": {"code", "message"}}.
"""
from fastapi import Request
from fastapi.responses import JSONResponse


class BizEnglishError(Exception):
    """Base class for all errors raised by the service layer."""
    code = "ERROR"
    status_code = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class InvalidRequestError(BizEnglishError):
    """Caller misuse (missing session id, empty text, ...)."""
    code = "INVALID_REQUEST"
    status_code = 400


class ConfigurationError(BizEnglishError):
    """A required provider credential is not configured."""
    code = "CONFIGURATION_ERROR"
    status_code = 500


class AuthenticationError(BizEnglishError):
    """The provider rejected our credential."""
    code = "PROVIDER_AUTH_FAILED"
    status_code = 502


class SessionNotFoundError(BizEnglishError):
    """Unknown voice session. Soft: stream/end turn it into a fallback."""
    code = "SESSION_NOT_FOUND"
    status_code = 404


class ProviderUnavailableError(BizEnglishError):
    """Any upstream network/API failure."""
    code = "PROVIDER_UNAVAILABLE"
    status_code = 502


class TTSUnavailableError(ProviderUnavailableError):
    """TTS provider failed; the client is expected to use on-device speech."""
    code = "TTS_UNAVAILABLE"
    status_code = 503


class ParseError(BizEnglishError):
    """Provider output could not be decoded into the expected shape."""
    code = "PARSE_ERROR"
    status_code = 502


class PersistenceError(BizEnglishError):
    """Writing to the conversation store failed."""
    code = "PERSISTENCE_ERROR"
    status_code = 503


class ConversationNotFoundError(PersistenceError):
    code = "CONVERSATION_NOT_FOUND"
    status_code = 404


class InternalError(BizEnglishError):
    code = "INTERNAL_ERROR"
    status_code = 500


async def bizenglish_error_handler(request: Request, exc: BizEnglishError) -> JSONResponse:
    """Render a BizEnglishError in the API's error envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": {"code": exc.code, "message": exc.message}},
    )
