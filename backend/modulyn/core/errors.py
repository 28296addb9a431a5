import secrets

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from modulyn.core.logging import get_logger

logger = get_logger(__name__)


class AppError(Exception):
    def __init__(self, message: str, status_code: int = 400, **extra):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.extra = extra


def generate_error_id() -> str:
    return f"err_{secrets.token_hex(8)}"


def _error_body(message, **extra) -> dict:
    body = {"status": "error", "message": message}
    body.update(extra)
    return body


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, **exc.extra))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        return JSONResponse(status_code=404, content=_error_body("Not Found", path=str(request.url.path)))
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.detail), headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=_error_body("Validation failed", details=jsonable_errors(exc)),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    error_id = generate_error_id()
    logger.error("Unhandled error %s on %s %s", error_id, request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=_error_body("Internal server error", error_id=error_id))


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
