"""Reset-link delivery.

There is no mail transport: messages are rendered from the Jinja2 templates
in ``templates/email`` and written to the log, and the caller decides whether
to surface the link on the page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from animelist.core.config import settings
from animelist.services.password_reset import IssuedResetToken

logger = logging.getLogger(__name__)

_TEMPLATE_PATH = Path(__file__).resolve().parents[1] / "templates" / "email"
_env = Environment(
    loader=FileSystemLoader(_TEMPLATE_PATH),
    autoescape=select_autoescape(["html", "xml"]),
)


@dataclass(frozen=True)
class ResetMessage:
    recipient: str
    subject: str
    reset_link: str
    text: str
    html: str


def build_reset_link(token: str) -> str:
    return f"{settings.app_base_url.rstrip('/')}/reset-password/{token}"


def compose_reset_message(issued: IssuedResetToken) -> ResetMessage:
    reset_link = build_reset_link(issued.token)
    context = {
        "project_name": settings.project_name,
        "user_email": issued.email,
        "reset_link": reset_link,
        "expires_at": issued.expires_at.isoformat(timespec="seconds"),
    }
    return ResetMessage(
        recipient=issued.email,
        subject=f"{settings.project_name}: password reset",
        reset_link=reset_link,
        text=_env.get_template("password_reset.txt").render(**context),
        html=_env.get_template("password_reset.html").render(**context),
    )


def deliver_reset_message(issued: IssuedResetToken) -> ResetMessage:
    message = compose_reset_message(issued)
    logger.info("Password reset message prepared for %s:\n%s", message.recipient, message.text)
    return message
