"""Tracing for the publish pipeline via Pydantic Logfire.

Logfire is an optional extra. Until :func:`configure` has loaded it every
helper here does nothing, so services can open spans unconditionally.
"""

from __future__ import annotations

from contextlib import contextmanager
from types import ModuleType
from typing import TYPE_CHECKING, Any, Iterator

if TYPE_CHECKING:
    from quire.config import LogfireConfig, Settings

_logfire: ModuleType | None = None


def is_available() -> bool:
    return _logfire is not None


def _logfire_options(config: LogfireConfig) -> dict[str, Any]:
    options: dict[str, Any] = {
        "service_name": config.service_name,
        "send_to_logfire": "if-token-present",
        "console": None if config.console else False,
    }
    if config.environment:
        options["environment"] = config.environment
    if config.sample_rate < 1.0:
        options["trace_sample_rate"] = config.sample_rate
    return options


def configure(settings: Settings) -> bool:
    """Load and configure logfire when the ``logfire`` section enables it.

    Returns whether tracing is active afterwards.
    """
    global _logfire

    if not settings.logfire.enabled:
        return is_available()
    try:
        import logfire
    except ImportError:
        return False

    logfire.configure(**_logfire_options(settings.logfire))
    _logfire = logfire
    return True


def instrument_app(app):
    """Trace requests through an ASGI app; the app is returned as is without logfire."""
    if _logfire is None:
        return app
    return _logfire.instrument_asgi(app)


def instrument_sqlalchemy(engine) -> None:
    if _logfire is not None:
        _logfire.instrument_sqlalchemy(engine=engine)


def instrument_httpx() -> None:
    # Purge webhooks go out through httpx
    if _logfire is not None:
        _logfire.instrument_httpx()


@contextmanager
def span(name: str, **attributes: Any) -> Iterator[Any]:
    if _logfire is None:
        yield None
        return
    with _logfire.span(name, **attributes) as current:
        yield current


def exception(message: str, **attributes: Any) -> bool:
    """Report the exception being handled.

    Returns False when logfire is off so the caller logs it instead.
    """
    if _logfire is None:
        return False
    _logfire.exception(message, **attributes)
    return True
