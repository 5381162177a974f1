from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from logger import get_logger

logger = get_logger(__name__)


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"

    def __init__(self, message: Optional[str] = None, fields: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.fields = fields or {}

    def payload(self) -> Dict[str, Any]:
        body = super().payload()
        if self.fields:
            body["fields"] = self.fields
        return body


class LoginFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Unable to log in"


class AuthenticationRequired(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication required"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class CartConflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    message = "Cart was modified concurrently, please retry"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("request failed", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.payload())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info("malformed request", path=request.url.path, errors=len(exc.errors()))
        fields = {
            ".".join(str(part) for part in err["loc"] if part != "body"): err["msg"]
            for err in exc.errors()
        }
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request", "fields": fields},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("unhandled error", path=request.url.path, method=request.method, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": AppError.message},
        )
