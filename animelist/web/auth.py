import logging

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, Response

from animelist.api.deps import RequestContext, get_request_context
from animelist.core.config import settings
from animelist.core.errors import DuplicateError, InvalidOrExpiredToken, ValidationError
from animelist.schemas.auth import PasswordResetRequest
from animelist.schemas.common import parse_input
from animelist.schemas.user import UserCreate
from animelist.services import auth as auth_service
from animelist.services import email as email_service
from animelist.services import password_reset as reset_service
from animelist.services import sessions as session_service
from animelist.web.templating import redirect, render

logger = logging.getLogger(__name__)

router = APIRouter()

_FORGOT_PASSWORD_NOTICE = "If an account exists for this email, a reset link has been prepared."
_INVALID_RESET_LINK = "This reset link is invalid or has expired."


def _set_session_cookie(response: Response, ticket: session_service.SessionTicket) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=ticket.token,
        max_age=ticket.max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


@router.get("/")
def index(context: RequestContext = Depends(get_request_context)) -> Response:
    return redirect("/dashboard" if context.is_authenticated else "/login")


@router.get("/register", response_class=HTMLResponse)
def register_form(request: Request) -> HTMLResponse:
    return render(request, "register.html")


@router.post("/register")
def register(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    email: str = Form(""),
    newsletter: str | None = Form(None),
    context: RequestContext = Depends(get_request_context),
) -> Response:
    form = {"username": username, "email": email, "newsletter": bool(newsletter)}
    try:
        payload = parse_input(
            UserCreate,
            username=username,
            password=password,
            email=email,
            newsletter_opt_in=bool(newsletter),
        )
        auth_service.register_user(context.db, payload)
    except (ValidationError, DuplicateError) as exc:
        logger.info("Registration rejected: %s", exc.detail)
        return render(request, "register.html", status.HTTP_400_BAD_REQUEST, error=exc.detail, form=form)

    return redirect("/login", success="Registration successful, please log in")


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    return render(request, "login.html")


@router.post("/login")
def login(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    context: RequestContext = Depends(get_request_context),
) -> Response:
    user = auth_service.authenticate_user(context.db, username, password)
    if user is None:
        return render(
            request,
            "login.html",
            status.HTTP_401_UNAUTHORIZED,
            error="Invalid username or password",
            form={"username": username},
        )

    # Never carry a pre-login session over into the authenticated one.
    session_service.end_session(context.db, context.session_token)
    ticket = session_service.start_session(context.db, user)

    response = redirect("/dashboard")
    _set_session_cookie(response, ticket)
    return response


@router.get("/logout")
def logout(context: RequestContext = Depends(get_request_context)) -> Response:
    session_service.end_session(context.db, context.session_token)
    response = redirect("/login", success="You have been logged out")
    clear_session_cookie(response)
    return response


@router.get("/forgot-password", response_class=HTMLResponse)
def forgot_password_form(request: Request) -> HTMLResponse:
    return render(request, "forgot_password.html")


@router.post("/forgot-password", response_class=HTMLResponse)
def forgot_password(
    request: Request,
    email: str = Form(""),
    context: RequestContext = Depends(get_request_context),
) -> HTMLResponse:
    try:
        payload = parse_input(PasswordResetRequest, email=email)
    except ValidationError as exc:
        return render(
            request,
            "forgot_password.html",
            status.HTTP_400_BAD_REQUEST,
            error=exc.detail,
            form={"email": email},
        )

    issued = reset_service.request_reset(context.db, str(payload.email))
    reset_link = None
    if issued is not None:
        reset_link = email_service.deliver_reset_message(issued).reset_link

    return render(
        request,
        "forgot_password.html",
        success=_FORGOT_PASSWORD_NOTICE,
        reset_link=reset_link if settings.surface_reset_links else None,
    )


@router.get("/reset-password/{token}", response_class=HTMLResponse)
def reset_password_form(
    request: Request,
    token: str,
    context: RequestContext = Depends(get_request_context),
) -> HTMLResponse:
    try:
        reset_service.validate_token(context.db, token)
    except InvalidOrExpiredToken:
        return render(request, "error.html", status.HTTP_400_BAD_REQUEST, message=_INVALID_RESET_LINK)
    return render(request, "reset_password.html", token=token)


@router.post("/reset-password")
def reset_password(
    request: Request,
    token: str = Form(""),
    password: str = Form(""),
    password_confirm: str | None = Form(None),
    context: RequestContext = Depends(get_request_context),
) -> Response:
    try:
        if password_confirm is not None and password_confirm != password:
            raise ValidationError("Passwords do not match")
        reset_service.consume_token(context.db, token, password)
    except InvalidOrExpiredToken:
        return render(request, "error.html", status.HTTP_400_BAD_REQUEST, message=_INVALID_RESET_LINK)
    except ValidationError as exc:
        return render(
            request,
            "reset_password.html",
            status.HTTP_400_BAD_REQUEST,
            error=exc.detail,
            token=token,
        )

    return redirect("/login", success="Password updated, please log in")
