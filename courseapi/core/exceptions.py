"""
Custom exception classes and error handling utilities.
"""
from typing import Optional, Dict, Any
from fastapi import Request, status
from fastapi.responses import JSONResponse
import structlog

logger = structlog.get_logger(__name__)


class CourseAPIException(Exception):
    """Base exception class for the course API."""

    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        if code:
            self.code = code
        super().__init__(self.message)

    @property
    def flags(self) -> Dict[str, Any]:
        """Top-level response flags clients branch on."""
        return {}


class AuthenticationError(CourseAPIException):
    """Authentication related errors."""

    code = "AUTHENTICATION_FAILED"

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class AuthorizationError(CourseAPIException):
    """Role or ownership denial."""

    code = "FORBIDDEN"

    def __init__(self, message: str = "Access denied", code: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            code=code
        )


class PremiumRequiredError(AuthorizationError):
    """Entitlement denial: the content needs a premium subscription."""

    code = "PREMIUM_REQUIRED"

    def __init__(self, message: str = "Premium subscription required"):
        super().__init__(message=message)

    @property
    def flags(self) -> Dict[str, Any]:
        return {"requires_premium": True}


class ValidationError(CourseAPIException):
    """Data validation errors."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details
        )


class NotFoundError(CourseAPIException):
    """Resource not found errors."""

    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: str = ""):
        message = f"{resource} not found"
        if identifier:
            message += f": {identifier}"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource}
        )


class ConflictError(CourseAPIException):
    """Request conflicts with existing state."""

    code = "CONFLICT"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class DuplicatePaymentError(ConflictError):
    """A transaction for this provider payment id already exists."""

    code = "DUPLICATE_PAYMENT"

    def __init__(self, external_payment_id: str):
        self.external_payment_id = external_payment_id
        super().__init__(
            message="Payment already recorded",
            details={"payment_intent_id": external_payment_id}
        )


class AlreadySubscribedError(ConflictError):
    """User is already premium."""

    code = "ALREADY_SUBSCRIBED"

    def __init__(self):
        super().__init__(message="User already has premium subscription")


class PaymentNotSuccessfulError(CourseAPIException):
    """Provider reports the payment has not succeeded."""

    code = "PAYMENT_NOT_SUCCESSFUL"

    def __init__(self, payment_status: str):
        super().__init__(
            message="Payment not successful",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"payment_status": payment_status}
        )


class UpstreamServiceError(CourseAPIException):
    """External service integration errors. Safe to retry."""

    code = "UPSTREAM_FAILURE"

    def __init__(self, service: str, message: str):
        super().__init__(
            message=f"{service} service error: {message}",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"service": service, "retryable": True}
        )


class InvalidSignatureError(CourseAPIException):
    """Webhook authenticity failure."""

    code = "INVALID_SIGNATURE"

    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST
        )


# Exception handlers
async def course_api_exception_handler(request: Request, exc: CourseAPIException) -> JSONResponse:
    """Global exception handler for course API exceptions."""
    content = {
        "error": {
            "message": exc.message,
            "type": exc.__class__.__name__,
            "code": exc.code,
            "details": exc.details,
            "status_code": exc.status_code
        }
    }
    content.update(exc.flags)
    return JSONResponse(status_code=exc.status_code, content=content)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unexpected exceptions."""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=exc.__class__.__name__
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "message": "Internal server error",
                "type": "InternalServerError",
                "code": "INTERNAL_ERROR",
                "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR
            }
        }
    )
