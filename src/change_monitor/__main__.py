"""
Command line entry point.

Usage:
    change-monitor serve [--host HOST] [--port PORT] [--log-level LEVEL] [--storage mongo|memory]
"""

import logging.config

import click

from change_monitor.config.settings import LogLevel, StorageBackend, get_config, set_config

logger = logging.getLogger("change_monitor")


@click.group()
def cli() -> None:
    """Watch a directory tree and push file changes to connected clients."""


@cli.command()
@click.option("--host", default=None, help="Interface to bind (overrides CHANGE_MONITOR_HOST)")
@click.option("--port", default=None, type=int, help="Port to listen on (overrides CHANGE_MONITOR_PORT)")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice([level.value for level in LogLevel], case_sensitive=False),
    help="Logging level",
)
@click.option(
    "--storage",
    default=None,
    type=click.Choice([backend.value for backend in StorageBackend]),
    help="Storage backend",
)
def serve(host: str | None, port: int | None, log_level: str | None, storage: str | None) -> None:
    """Run the HTTP/WebSocket server."""
    import uvicorn

    from change_monitor.api import create_app

    overrides = {
        key: value
        for key, value in {
            "host": host,
            "port": port,
            "log_level": log_level.upper() if log_level else None,
            "storage_backend": storage,
        }.items()
        if value is not None
    }
    config = get_config().model_copy(update=overrides) if overrides else get_config()
    set_config(config)

    logging.config.dictConfig(config.get_log_config())
    logger.info("Server running on http://%s:%s", config.host, config.port)

    uvicorn.run(create_app(config), host=config.host, port=config.port, log_level="warning")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
