from sqlalchemy import Engine

from animelist.db.base import Base


def init_database(bind: Engine | None = None) -> None:
    """Create the users, sessions, reset token and anime tables if missing."""

    # Registers every model on Base.metadata.
    import animelist.models  # noqa: F401

    if bind is None:
        from animelist.db.session import engine as bind

    Base.metadata.create_all(bind=bind)


def drop_database(bind: Engine) -> None:
    Base.metadata.drop_all(bind=bind)
