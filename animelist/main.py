import logging

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from animelist.api import api_router
from animelist.core.config import settings
from animelist.core.errors import AuthenticationRequired, IOFailure, StoreUnavailable
from animelist.core.logging import configure_logging
from animelist.db.init_db import init_database
from animelist.db.session import SessionLocal
from animelist.services import sessions as session_service
from animelist.web import router as web_router
from animelist.web.auth import clear_session_cookie
from animelist.web.templating import redirect, render

logger = logging.getLogger(__name__)

_GENERIC_FAILURE = "Something went wrong on our side. Please try again later."
_MALFORMED_REQUEST = "The submitted request could not be processed."

app = FastAPI(
    title=settings.project_name,
    debug=False,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

settings.upload_directory.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(settings.upload_directory)), name="uploads")

app.include_router(api_router)
app.include_router(web_router)


@app.exception_handler(AuthenticationRequired)
async def authentication_required_handler(request: Request, exc: AuthenticationRequired) -> Response:
    response = redirect("/login")
    if settings.session_cookie_name in request.cookies:
        clear_session_cookie(response)
    return response


@app.exception_handler(StoreUnavailable)
@app.exception_handler(IOFailure)
@app.exception_handler(SQLAlchemyError)
async def infrastructure_error_handler(request: Request, exc: Exception) -> Response:
    logger.exception("Request %s %s failed", request.method, request.url.path, exc_info=exc)
    return render(request, "error.html", status.HTTP_500_INTERNAL_SERVER_ERROR, message=_GENERIC_FAILURE)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> Response:
    # Malformed path parameters address a page that cannot exist.
    if any(error["loc"] and error["loc"][0] == "path" for error in exc.errors()):
        return render(request, "404.html", status.HTTP_404_NOT_FOUND)
    return render(request, "error.html", status.HTTP_400_BAD_REQUEST, message=_MALFORMED_REQUEST)


@app.exception_handler(StarletteHTTPException)
async def not_found_handler(request: Request, exc: StarletteHTTPException) -> Response:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return render(request, "404.html", status.HTTP_404_NOT_FOUND)
    return await http_exception_handler(request, exc)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return render(request, "error.html", status.HTTP_500_INTERNAL_SERVER_ERROR, message=_GENERIC_FAILURE)


@app.on_event("startup")
async def startup() -> None:
    configure_logging()
    init_database()
    with SessionLocal() as session:
        removed = session_service.purge_expired_sessions(session)
    if removed:
        logger.info("Purged %d expired sessions", removed)
    logger.info("%s started (environment=%s)", settings.project_name, settings.environment)
