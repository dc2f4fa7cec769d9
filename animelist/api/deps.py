from collections.abc import Generator
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from animelist.core.config import settings
from animelist.core.errors import AuthenticationRequired
from animelist.db.session import get_session
from animelist.models import User
from animelist.services import sessions as session_service
from animelist.services import users as user_store
from animelist.services.storage import AssetStorage, get_storage


@dataclass
class RequestContext:
    """Per-request state handed to route handlers instead of globals."""

    db: Session
    session_token: str | None = None
    user: User | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> int:
        if self.user is None:
            raise AuthenticationRequired()
        return self.user.id


def get_db() -> Generator[Session, None, None]:
    yield from get_session()


def get_asset_storage() -> AssetStorage:
    return get_storage()


def get_request_context(request: Request, session: Session = Depends(get_db)) -> RequestContext:
    token = request.cookies.get(settings.session_cookie_name)
    context = RequestContext(db=session, session_token=token)

    user_id = session_service.resolve_session(session, token)
    if user_id is not None:
        context.user = user_store.get_user(session, user_id)
    return context


def require_user(context: RequestContext = Depends(get_request_context)) -> RequestContext:
    if context.user is None:
        raise AuthenticationRequired()
    return context
