"""Extension points in the content lifecycle.

Two kinds of hook exist. Actions notify listeners that something happened
(a unit was saved, published, rolled back, deleted). Filters let listeners
rewrite a value on its way through, such as the context handed to public
templates. Listeners may be plain functions or coroutines; lower priorities
run first and equal priorities run in registration order.

    from quire.lib.hooks import AFTER_UNIT_PUBLISH, action

    @action(AFTER_UNIT_PUBLISH)
    async def notify_subscribers(unit, revision):
        ...
"""

import bisect
import inspect
import itertools
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, TypeVar

from quire.lib.observability import span

T = TypeVar("T")

DEFAULT_PRIORITY = 10

# Actions
BEFORE_UNIT_SAVE = "before_unit_save"  # (unit, is_new)
AFTER_UNIT_SAVE = "after_unit_save"  # (unit, revision, is_new)
AFTER_UNIT_PUBLISH = "after_unit_publish"  # (unit, revision)
AFTER_UNIT_ROLLBACK = "after_unit_rollback"  # (unit, revision, target)
BEFORE_UNIT_DELETE = "before_unit_delete"  # (unit)
AFTER_UNIT_DELETE = "after_unit_delete"  # (unit)

# Filters
PUBLIC_RENDER_CONTEXT = "public_render_context"  # (context, request) -> context


class HookKind(str, Enum):
    ACTION = "action"
    FILTER = "filter"


_sequence = itertools.count()


@dataclass(order=True, frozen=True)
class Listener:
    priority: int
    sequence: int
    callback: Callable[..., Any] = field(compare=False)

    async def __call__(self, *args: Any, **kwargs: Any) -> Any:
        result = self.callback(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result


class HookRegistry:
    """Listeners per hook kind and name."""

    def __init__(self) -> None:
        self._listeners: dict[HookKind, defaultdict[str, list[Listener]]] = {
            kind: defaultdict(list) for kind in HookKind
        }

    def _add(self, kind: HookKind, name: str, callback: Callable[..., Any], priority: int) -> None:
        bisect.insort(self._listeners[kind][name], Listener(priority, next(_sequence), callback))

    def _discard(self, kind: HookKind, name: str, callback: Callable[..., Any]) -> bool:
        listeners = self._listeners[kind].get(name, [])
        for listener in listeners:
            if listener.callback is callback:
                listeners.remove(listener)
                return True
        return False

    def add_action(self, name: str, callback: Callable[..., Any], priority: int = DEFAULT_PRIORITY) -> None:
        self._add(HookKind.ACTION, name, callback, priority)

    def add_filter(self, name: str, callback: Callable[..., Any], priority: int = DEFAULT_PRIORITY) -> None:
        self._add(HookKind.FILTER, name, callback, priority)

    def remove_action(self, name: str, callback: Callable[..., Any]) -> bool:
        """Unregister ``callback``; False if it was not listening."""
        return self._discard(HookKind.ACTION, name, callback)

    def remove_filter(self, name: str, callback: Callable[..., Any]) -> bool:
        return self._discard(HookKind.FILTER, name, callback)

    def has_action(self, name: str) -> bool:
        return bool(self._listeners[HookKind.ACTION].get(name))

    def has_filter(self, name: str) -> bool:
        return bool(self._listeners[HookKind.FILTER].get(name))

    async def do_action(self, name: str, *args: Any, **kwargs: Any) -> None:
        listeners = list(self._listeners[HookKind.ACTION].get(name, ()))
        if not listeners:
            return
        with span("hook.action {hook_name}", hook_name=name, listeners=len(listeners)):
            for listener in listeners:
                await listener(*args, **kwargs)

    async def apply_filters(self, name: str, value: T, *args: Any, **kwargs: Any) -> T:
        listeners = list(self._listeners[HookKind.FILTER].get(name, ()))
        if not listeners:
            return value
        with span("hook.filter {hook_name}", hook_name=name, listeners=len(listeners)):
            for listener in listeners:
                value = await listener(value, *args, **kwargs)
        return value

    def snapshot(self) -> dict[HookKind, dict[str, list[Listener]]]:
        return {
            kind: {name: list(listeners) for name, listeners in by_name.items()}
            for kind, by_name in self._listeners.items()
        }

    def restore(self, snapshot: dict[HookKind, dict[str, list[Listener]]]) -> None:
        self._listeners = {kind: defaultdict(list, snapshot.get(kind, {})) for kind in HookKind}

    def clear(self) -> None:
        for by_name in self._listeners.values():
            by_name.clear()


hooks = HookRegistry()


def _register(kind: HookKind, name: str, priority: int) -> Callable[[Callable], Callable]:
    def decorator(func: Callable) -> Callable:
        hooks._add(kind, name, func, priority)
        return func

    return decorator


def action(name: str, priority: int = DEFAULT_PRIORITY) -> Callable[[Callable], Callable]:
    """Register the decorated function as a listener of action ``name``."""
    return _register(HookKind.ACTION, name, priority)


def filter(name: str, priority: int = DEFAULT_PRIORITY) -> Callable[[Callable], Callable]:
    """Register the decorated function as a listener of filter ``name``."""
    return _register(HookKind.FILTER, name, priority)
