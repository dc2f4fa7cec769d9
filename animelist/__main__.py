import uvicorn

from animelist.core.config import settings
from animelist.core.logging import configure_logging


def main() -> None:
    configure_logging()
    uvicorn.run(
        "animelist.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug and not settings.is_production,
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
