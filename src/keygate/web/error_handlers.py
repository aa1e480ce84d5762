import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from keygate.errors import AuthenticationError

logger = logging.getLogger(__name__)


def create_json_error_response(status_code: int, message: str) -> JSONResponse:
    """Create the JSON error body shared by handlers and the auth middleware."""
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def user_error_handler(_: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    if isinstance(exc, AuthenticationError):
        status_code = 401
    else:
        # ValidationError and any other UserError subclass
        status_code = 400

    return create_json_error_response(status_code=status_code, message=str(exc))


async def request_validation_error_handler(request: Request, exc: Exception) -> Response:
    """Report malformed request bodies and parameters as 400 with the shared error body."""
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    if errors and errors[0]["type"] == "json_invalid":
        message = "Invalid request: malformed JSON body."
    elif errors:
        first = errors[0]
        # Drop the "body"/"query" prefix; the client only knows its own field names
        field = ".".join(str(part) for part in first["loc"][1:])
        message = f"Invalid request: {field}: {first['msg']}" if field else f"Invalid request: {first['msg']}"
    else:
        message = "Invalid request."

    logger.info("Request validation failed on %s: %s", request.url.path, message)
    return create_json_error_response(status_code=400, message=message)


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("Unexpected error: %s", exc)
    return create_json_error_response(status_code=500, message="An unexpected error occurred.")
