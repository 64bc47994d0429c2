from enum import Enum


class ErrorType(Enum):
    # Reported inside a failed result envelope
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    IMAGE_ERROR = "image_error"
    DATABASE_ERROR = "database_error"
    # Reported by the RPC binding as an HTTP error
    BAD_REQUEST = "bad_request"
    PROCEDURE_NOT_FOUND = "procedure_not_found"
    METHOD_NOT_SUPPORTED = "method_not_supported"
    INTERNAL_ERROR = "internal_error"


# Map RPC error types to HTTP status codes
ERROR_STATUS_MAP = {
    ErrorType.BAD_REQUEST: 400,
    ErrorType.PROCEDURE_NOT_FOUND: 404,
    ErrorType.METHOD_NOT_SUPPORTED: 405,
    ErrorType.INTERNAL_ERROR: 500,
}

# tRPC-style error codes reported by the RPC binding
RPC_ERROR_CODES = {
    ErrorType.BAD_REQUEST: "BAD_REQUEST",
    ErrorType.PROCEDURE_NOT_FOUND: "NOT_FOUND",
    ErrorType.METHOD_NOT_SUPPORTED: "METHOD_NOT_SUPPORTED",
    ErrorType.INTERNAL_ERROR: "INTERNAL_SERVER_ERROR",
}
