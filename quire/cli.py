"""Command line entry point: ``quire serve``, ``quire db ...`` and ``quire db-create``."""

import asyncio
import os
import sys
from pathlib import Path

import click

from quire.config import CONFIG_PATH_ENV, get_settings

PACKAGE_DIR = Path(__file__).parent
ASGI_APP = "quire.asgi:app"


@click.group()
@click.version_option(package_name="quire")
@click.option(
    "-f",
    "--config-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=f"Path to app.yaml (defaults to ${CONFIG_PATH_ENV} or ./app.yaml)",
)
def cli(config_file):
    """Quire - revisioned content and multi-tenant publishing."""
    if config_file is not None:
        os.environ[CONFIG_PATH_ENV] = str(config_file.resolve())
        get_settings.cache_clear()


def _hypercorn_config(host: str, port: int, workers: int, log_level: str, reload: bool):
    from hypercorn.config import Config

    config = Config()
    config.application_path = ASGI_APP
    config.bind = [f"{host}:{port}"]
    config.loglevel = log_level.upper()
    config.include_server_header = False
    config.use_reloader = reload
    config.workers = 1 if reload else workers
    return config


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8080, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Restart when source files change")
@click.option("--workers", default=1, type=int, help="Number of worker processes")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging level",
)
def serve(host, port, reload, workers, log_level):
    """Serve the editor API and every tenant site."""
    import signal

    config = _hypercorn_config(host, port, workers, log_level, reload)

    # The reloader and worker processes import the app by path themselves
    if reload or workers > 1:
        from hypercorn.run import run

        sys.exit(run(config))

    from hypercorn.asyncio import serve as hypercorn_serve

    from quire.asgi import app

    loop = asyncio.new_event_loop()
    stopping = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stopping.set)
    try:
        loop.run_until_complete(hypercorn_serve(app, config, shutdown_trigger=stopping.wait))
    finally:
        loop.close()


def find_alembic_ini(project_root: Path) -> Path | None:
    """A project-level alembic.ini wins over the one shipped in the package."""
    for candidate in (project_root / "alembic.ini", PACKAGE_DIR / "alembic.ini"):
        if candidate.exists():
            return candidate
    return None


def run_alembic(alembic_ini: Path, args: list[str]) -> None:
    from alembic.config import CommandLine, Config

    command_line = CommandLine(prog="quire db")
    options = command_line.parser.parse_args(args)
    if not hasattr(options, "cmd"):
        command_line.parser.error("too few arguments")

    config = Config(str(alembic_ini), cmd_opts=options)
    config.set_main_option("script_location", str(PACKAGE_DIR / "alembic"))
    command_line.run_cmd(config, options)


@cli.command(context_settings={"ignore_unknown_options": True, "allow_extra_args": True})
@click.pass_context
def db(ctx):
    """Run Alembic migrations against the configured database.

    \b
    Examples:
        quire db upgrade head
        quire db downgrade -1
        quire db current
        quire db revision -m "add column" --autogenerate
    """
    if not ctx.args:
        click.echo(ctx.get_help())
        return

    alembic_ini = find_alembic_ini(Path.cwd())
    if alembic_ini is None:
        raise click.ClickException("Could not find alembic.ini")
    run_alembic(alembic_ini, ctx.args)


@cli.command("db-create")
def db_create():
    """Create missing tables straight from the models (development only)."""
    from quire.db.session import create_all, create_db_config

    settings = get_settings()
    engine = create_db_config(settings.db).get_engine()

    async def _create() -> None:
        try:
            await create_all(engine)
        finally:
            await engine.dispose()

    asyncio.run(_create())
    click.echo(f"Tables created at {settings.db.url}")


if __name__ == "__main__":
    cli()
