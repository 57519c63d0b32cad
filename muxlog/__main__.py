"""muxlog CLI entry point."""

import click
import structlog
import uvicorn

from muxlog import __version__
from muxlog.config import get_settings
from muxlog.observability import configure_logging

log = structlog.get_logger("muxlog.cli")

settings = get_settings()


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """muxlog - minimal ASGI server with structured request logging."""


@main.command()
@click.option("--host", default=settings.host, help="Interface to bind")
@click.option("--port", default=settings.port, type=int, envvar="PORT", show_default=True, help="Port to run site")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(host: str, port: int, reload: bool) -> None:
    """Start the HTTP server."""
    configure_logging(settings.log_level)
    log.info("server.starting", host=host, port=port)
    uvicorn.run(
        "muxlog.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=None,
        access_log=False,
    )


if __name__ == "__main__":
    main()
