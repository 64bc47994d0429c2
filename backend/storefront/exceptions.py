import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from storefront.errors import ErrorType, ERROR_STATUS_MAP, RPC_ERROR_CODES

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Custom exception that services can raise."""

    def __init__(self, error_type: ErrorType, message: str):
        self.error_type = error_type
        self.message = message
        super().__init__(message)


class RPCError(AppException):
    """Transport-level failure of an RPC call (unknown procedure, bad input, ...)."""

    def __init__(
        self,
        error_type: ErrorType,
        message: str,
        path: str,
        issues: list[dict[str, Any]] | None = None,
    ):
        super().__init__(error_type, message)
        self.path = path
        self.issues = issues

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_MAP.get(self.error_type, 500)

    def to_dict(self) -> dict[str, Any]:
        """tRPC error shape the storefront client expects."""
        code = RPC_ERROR_CODES.get(self.error_type, "INTERNAL_SERVER_ERROR")
        data: dict[str, Any] = {
            "code": code,
            "httpStatus": self.status_code,
            "path": self.path,
        }
        if self.issues is not None:
            data["issues"] = self.issues
        return {"error": {"message": self.message, "code": code, "data": data}}


async def rpc_exception_handler(_request: Request, exc: RPCError) -> JSONResponse:
    """Global handler for RPCError - converts to proper HTTP response."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Global handler for unhandled exceptions - returns 500."""
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )
