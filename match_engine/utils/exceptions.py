"""
Custom Exception Classes for the Matching Engine
"""
from typing import Dict, Any, Optional
from fastapi import HTTPException


class MatchEngineError(Exception):
    """Base exception for the matching engine"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class InvalidInputError(MatchEngineError):
    """Raised when text or profile input is empty or malformed"""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)[:100]
        super().__init__(message, error_code="INVALID_INPUT", details=details, **kwargs)


class NotFoundError(MatchEngineError):
    """Raised when a profile record does not exist"""

    def __init__(self, message: str, resource: str = None, resource_id: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if resource:
            details['resource'] = resource
        if resource_id:
            details['resource_id'] = resource_id
        super().__init__(message, error_code="NOT_FOUND", details=details, **kwargs)


class ConfigurationError(MatchEngineError):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, config_key: str = None, config_value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if config_key:
            details['config_key'] = config_key
        if config_value is not None:
            details['config_value'] = str(config_value)
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details, **kwargs)


class ProviderError(MatchEngineError):
    """Raised when a single call to the model provider fails.

    ``code`` is a transport-neutral classification (``RATE_LIMIT_EXCEEDED``,
    ``SERVICE_UNAVAILABLE``, ``TIMEOUT``, ``NETWORK_ERROR``, ...) that the
    retry policy inspects.
    """

    def __init__(self, message: str, code: str = "PROVIDER_ERROR", status_code: Optional[int] = None, **kwargs):
        details = kwargs.pop('details', {})
        details['provider_code'] = code
        if status_code:
            details['status_code'] = status_code
        self.code = code
        self.status_code = status_code
        super().__init__(message, error_code="PROVIDER_ERROR", details=details, **kwargs)


class ProviderExhaustedError(MatchEngineError):
    """Raised when a retryable provider error persists after every retry"""

    def __init__(self, message: str, operation: str = None, attempts: int = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if attempts is not None:
            details['attempts'] = attempts
        self.attempts = attempts
        super().__init__(message, error_code="PROVIDER_EXHAUSTED", details=details, **kwargs)


class MalformedResponseError(MatchEngineError):
    """Raised when provider output does not parse into the expected structure"""

    def __init__(self, message: str, operation: str = None, preview: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if preview is not None:
            details['response_preview'] = preview[:200]
        super().__init__(message, error_code="MALFORMED_RESPONSE", details=details, **kwargs)


class DatabaseError(MatchEngineError):
    """Raised when profile persistence operations fail"""

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="DATABASE_ERROR", details=details, **kwargs)


# HTTP Exception Mapping
def map_to_http_exception(exc: MatchEngineError) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""

    status_code_mapping = {
        InvalidInputError: 400,
        ConfigurationError: 400,
        NotFoundError: 404,
        DatabaseError: 500,
        ProviderError: 502,
        MalformedResponseError: 502,
        ProviderExhaustedError: 503,
    }

    status_code = status_code_mapping.get(type(exc), 500)

    detail = {
        "error": exc.to_dict(),
        "message": exc.message
    }

    return HTTPException(status_code=status_code, detail=detail)
