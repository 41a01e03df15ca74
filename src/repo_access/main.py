from __future__ import annotations
import logging
import uvicorn
from repo_access.infrastructure.config import Settings, get_settings

# per-request INFO lines from the API backend's HTTP client
_CHATTY_LOGGERS = ("httpx", "httpcore")


def configure_logging(settings: Settings) -> None:
    """Root logging from ``LOG_LEVEL``; HTTP client chatter only at DEBUG."""
    level = settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )
    if level != "DEBUG":
        for name in _CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def main() -> None:
    """Start the uvicorn ASGI server."""
    settings = get_settings()
    configure_logging(settings)
    logging.getLogger(__name__).info(
        "Clones in %s, mirrors in %s (max depth %d)",
        settings.repos_dir,
        settings.cache_dir,
        settings.mirror_max_depth,
    )
    uvicorn.run(
        "repo_access.interface.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
