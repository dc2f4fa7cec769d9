from pathlib import Path
from typing import Any
from urllib.parse import urlencode

from fastapi import Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from animelist.core.config import settings

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


def render(
    request: Request,
    template: str,
    status_code: int = status.HTTP_200_OK,
    **context: Any,
) -> HTMLResponse:
    context.setdefault("project_name", settings.project_name)
    context.setdefault("current_user", None)
    context.setdefault("error", request.query_params.get("error"))
    context.setdefault("success", request.query_params.get("success"))
    return templates.TemplateResponse(request, template, context, status_code=status_code)


def redirect(url: str, *, error: str | None = None, success: str | None = None) -> RedirectResponse:
    """Redirect after a form post, carrying a one-shot message in the query string."""

    params = {key: value for key, value in (("error", error), ("success", success)) if value}
    if params:
        url = f"{url}?{urlencode(params)}"
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)
