"""
Exceptions and FastAPI exception handlers for the Basket Grocery API
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError

logger = logging.getLogger(__name__)


class StoreException(Exception):
    """Base exception for all store errors"""
    status_code = 500
    code = "STORE_ERROR"

    def __init__(self, message: str = "Server error", code: str = None):
        self.message = message
        if code:
            self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
        }


class ValidationException(StoreException):
    """Missing or malformed fields"""
    status_code = 400
    code = "VALIDATION_ERROR"


class StockException(ValidationException):
    """A requested product is missing or has too little stock"""
    code = "STOCK_ERROR"

    def __init__(self, product_id: str, message: str):
        self.product_id = product_id
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["productId"] = self.product_id
        return data


class AuthenticationException(StoreException):
    status_code = 401
    code = "AUTH_REQUIRED"

    def __init__(self, message: str = "Access token required"):
        super().__init__(message)


class InvalidCredentialException(StoreException):
    status_code = 403
    code = "INVALID_TOKEN"

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class PermissionDeniedException(StoreException):
    status_code = 403
    code = "PERMISSION_DENIED"


class NotFoundException(StoreException):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"{resource} not found")


class ConflictException(StoreException):
    status_code = 409
    code = "CONFLICT"


class DatabaseUnavailableException(StoreException):
    code = "DATABASE_UNAVAILABLE"

    def __init__(self):
        super().__init__("Database not available")


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else err.get("msg", ""))
    return "Invalid request: " + "; ".join(parts)


async def store_exception_handler(request: Request, exc: StoreException):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content=ValidationException(_format_validation_errors(exc)).to_dict(),
    )


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    return JSONResponse(
        status_code=409,
        content=ConflictException("A record with this value already exists").to_dict(),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": True, "code": StoreException.code, "message": str(exc), "status_code": 500},
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StoreException, store_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
