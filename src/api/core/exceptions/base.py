"""Global exception handlers for the FastAPI application."""

import traceback

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..messages import MessageCode, get_default_message
from src.core.exceptions import (
    BundleNotEligible,
    BundleNotFound,
    CreditEngineError,
    ExternalPaymentFailure,
    InsufficientCredits,
    ModelNotFound,
    UserNotFound,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)


class PromptFlowException(Exception):
    """Base exception for the PromptFlow credits API with unified message codes."""

    def __init__(
        self,
        message_code: MessageCode,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict | None = None,
        headers: dict | None = None,
    ):
        self.message_code = message_code
        self.status_code = status_code
        self.message: str = get_default_message(message_code)
        self.details = details or {}
        self.headers = headers or {}
        super().__init__(self.message)

    def to_response_dict(self) -> dict:
        """Convert exception to API response format."""
        return {
            "message_code": self.message_code,
            "message": self.message,
            "details": self.details,
        }


def domain_error_to_api(exc: CreditEngineError) -> PromptFlowException:
    """Map a credit engine error onto its HTTP representation."""
    if isinstance(exc, InsufficientCredits):
        return PromptFlowException(
            MessageCode.INSUFFICIENT_CREDITS,
            status.HTTP_402_PAYMENT_REQUIRED,
            details={"required": exc.required, "available": exc.available},
        )
    if isinstance(exc, ModelNotFound):
        return PromptFlowException(
            MessageCode.MODEL_NOT_FOUND,
            status.HTTP_404_NOT_FOUND,
            details={"model_id": exc.model_id},
        )
    if isinstance(exc, UserNotFound):
        return PromptFlowException(
            MessageCode.USER_NOT_FOUND,
            status.HTTP_404_NOT_FOUND,
            details={"user_id": str(exc.user_id)},
        )
    if isinstance(exc, BundleNotFound):
        return PromptFlowException(
            MessageCode.BUNDLE_NOT_FOUND,
            status.HTTP_404_NOT_FOUND,
            details={"bundle_id": exc.bundle_id},
        )
    if isinstance(exc, BundleNotEligible):
        return PromptFlowException(
            MessageCode.BUNDLE_NOT_ELIGIBLE,
            status.HTTP_403_FORBIDDEN,
            details={
                "bundle_id": exc.bundle_id,
                "required_monthly_burn": exc.required_burn,
                "monthly_burn": exc.monthly_burn,
            },
        )
    if isinstance(exc, ExternalPaymentFailure):
        return PromptFlowException(
            MessageCode.PAYMENT_FAILED,
            status.HTTP_502_BAD_GATEWAY,
            details={"description": str(exc), "code": exc.code},
        )
    return PromptFlowException(
        MessageCode.BAD_REQUEST,
        status.HTTP_400_BAD_REQUEST,
        details={"description": str(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""

    @app.exception_handler(PromptFlowException)
    async def promptflow_exception_handler(
        request: Request, exc: PromptFlowException
    ) -> JSONResponse:
        """Handle custom PromptFlow exceptions."""
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            f"PromptFlow exception: {exc.message_code.value}",
            path=request.url.path,
            method=request.method,
            message_code=exc.message_code.value,
            details=exc.details,
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response_dict(),
            headers=exc.headers,
        )

    @app.exception_handler(CreditEngineError)
    async def credit_engine_exception_handler(
        request: Request, exc: CreditEngineError
    ) -> JSONResponse:
        """Translate domain errors raised by the services."""
        api_exc = domain_error_to_api(exc)

        # Running out of credits is an expected outcome, not an error
        if isinstance(exc, InsufficientCredits):
            logger.info(
                "Request rejected for insufficient credits",
                path=request.url.path,
                required=exc.required,
                available=exc.available,
            )
            return JSONResponse(
                status_code=api_exc.status_code, content=api_exc.to_response_dict()
            )

        return await promptflow_exception_handler(request, api_exc)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        """Service-level argument validation failures."""
        return await promptflow_exception_handler(
            request,
            PromptFlowException(
                MessageCode.INVALID_INPUT,
                status.HTTP_400_BAD_REQUEST,
                details={"description": str(exc)},
            ),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        """Handle FastAPI HTTP exceptions."""
        logger.warning(
            f"HTTP exception {exc.status_code}: {exc.detail}",
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "message_code": MessageCode.INTERNAL_SERVER_ERROR,
                "message": str(exc.detail),
                "details": {"description": "HTTP exception occurred"},
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle Starlette HTTP exceptions."""
        logger.warning(
            f"Starlette HTTP exception {exc.status_code}: {exc.detail}",
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "message_code": (
                    MessageCode.NOT_FOUND
                    if exc.status_code == status.HTTP_404_NOT_FOUND
                    else MessageCode.INTERNAL_ERROR
                ),
                "message": str(exc.detail),
                "details": {"description": "HTTP exception occurred"},
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request validation errors."""
        try:
            serializable_errors = []
            for error in exc.errors():
                error_dict = dict(error)
                if "input" in error_dict and hasattr(error_dict["input"], "isoformat"):
                    error_dict["input"] = error_dict["input"].isoformat()
                # ctx can carry the raw exception object
                error_dict.pop("ctx", None)
                serializable_errors.append(error_dict)
        except Exception:
            serializable_errors = [
                {"msg": "Validation error occurred", "type": "validation_error"}
            ]

        logger.warning(
            "Validation error occurred",
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "message_code": MessageCode.INVALID_INPUT,
                "message": get_default_message(MessageCode.INVALID_INPUT),
                "details": {
                    "description": "Request validation failed",
                    "validation_errors": serializable_errors,
                },
            },
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(
        request: Request, exc: SQLAlchemyError
    ) -> JSONResponse:
        """Handle SQLAlchemy database errors."""
        logger.error(
            f"Database error: {str(exc)}",
            path=request.url.path,
            method=request.method,
            exception_type=type(exc).__name__,
        )

        if isinstance(exc, IntegrityError):
            return JSONResponse(
                status_code=status.HTTP_409_CONFLICT,
                content={
                    "message_code": MessageCode.BAD_REQUEST,
                    "message": "Data integrity constraint violated",
                    "details": {"database_error": "Constraint violation"},
                },
            )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message_code": MessageCode.INTERNAL_ERROR,
                "message": "Database error occurred",
                "details": {"database_error": "Internal database error"},
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle all other unhandled exceptions."""
        if isinstance(exc, PromptFlowException):
            return await promptflow_exception_handler(request, exc)

        logger.error(
            f"Unhandled exception: {str(exc)}",
            path=request.url.path,
            method=request.method,
            exception_type=type(exc).__name__,
            traceback=traceback.format_exc(),
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message_code": MessageCode.INTERNAL_ERROR,
                "message": "Internal server error",
                "details": {"error_type": type(exc).__name__},
            },
        )
