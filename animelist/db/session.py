from collections.abc import Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from animelist.core.config import settings

_IN_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


def create_db_engine(database_url: str, *, echo: bool = False, journal_mode: str | None = None) -> Engine:
    """Build an engine; SQLite connections get foreign keys enforced.

    In-memory SQLite URLs share one connection so every session sees the same
    database.
    """

    in_memory = database_url in _IN_MEMORY_URLS
    options: dict[str, object] = {}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        if in_memory:
            options["poolclass"] = StaticPool

    engine = create_engine(database_url, echo=echo, future=True, **options)

    if engine.url.get_backend_name() == "sqlite":

        @event.listens_for(engine, "connect")
        def _configure_sqlite(dbapi_connection, connection_record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if journal_mode and not in_memory:
                cursor.execute(f"PRAGMA journal_mode={journal_mode}")
            cursor.close()

    return engine


def create_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False, class_=Session)


settings.data_directory.mkdir(parents=True, exist_ok=True)

engine = create_db_engine(
    settings.database_url,
    echo=settings.sqlite_echo,
    journal_mode=settings.sqlite_journal_mode,
)
SessionLocal = create_session_factory(engine)


def get_session() -> Generator[Session, None, None]:
    """Yield a database session scoped to one request."""

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
