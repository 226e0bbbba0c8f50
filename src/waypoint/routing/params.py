"""Param preprocessing hooks.

A router's ``ParamRegistry`` maps a parameter name to the handlers that
run, in registration order, before any layer of that router that
captures the parameter::

    @router.param("user_id")
    async def load_user(request, response, next, value, name):
        request.state.user = await users.get(value)
        await next()

Registries are per router: a child router does not see its parent's
hooks and vice versa.
"""

from collections.abc import Iterator

from waypoint._internal.types import ParamHandlerFunc


class ParamRegistry:
    """Parameter name -> ordered list of param handlers."""

    __slots__ = ("_frozen", "_handlers")

    def __init__(self) -> None:
        self._handlers: dict[str, list[ParamHandlerFunc]] = {}
        self._frozen = False

    def add(self, name: str, handler: ParamHandlerFunc) -> None:
        """Append *handler* to the hooks for *name*."""
        if self._frozen:
            msg = "Cannot register param handlers after the app has started."
            raise RuntimeError(msg)
        if not callable(handler):
            msg = f"param() requires a callable handler, got {type(handler).__name__}."
            raise TypeError(msg)
        self._handlers.setdefault(name, []).append(handler)

    def get(self, name: str) -> tuple[ParamHandlerFunc, ...]:
        """Handlers registered for *name*, empty if none."""
        return tuple(self._handlers.get(name, ()))

    def freeze(self) -> None:
        self._frozen = True

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def __bool__(self) -> bool:
        return bool(self._handlers)
