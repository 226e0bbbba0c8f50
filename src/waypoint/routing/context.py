"""Per-layer dispatch context.

A ``DispatchContext`` is the routing state one layer sees: the current
(possibly rewritten) path, the accumulated mount prefix, and the params
merged so far. It is a value: entering a layer derives a new context and
leaves the caller's untouched, so sibling layers always observe the
context of the stack they share.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType

from waypoint.routing.layer import LayerMatch

_EMPTY: Mapping[str, str] = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class DispatchContext:
    """Routing state for one layer of one request."""

    method: str
    path: str
    original_url: str
    base_url: str = ""
    params: Mapping[str, str] = field(default_factory=lambda: _EMPTY)

    @classmethod
    def initial(cls, method: str, path: str) -> DispatchContext:
        """The context at the root of the application stack."""
        path = path or "/"
        return cls(method=method.upper(), path=path, original_url=path)

    def enter(self, match: LayerMatch, *, middleware: bool) -> DispatchContext:
        """Derive the context for a matched layer.

        Captured params are merged over the inherited ones. Middleware
        layers also consume their matched prefix: it moves from ``path``
        onto ``base_url``.
        """
        params = self.params
        if match.params:
            params = MappingProxyType({**self.params, **match.params})
        if not middleware or not match.matched_prefix:
            return replace(self, params=params)
        rest = self.path[len(match.matched_prefix) :] or "/"
        return replace(
            self,
            path=rest,
            base_url=self.base_url + match.matched_prefix,
            params=params,
        )

    def without_params(self) -> DispatchContext:
        """This context with no inherited params (unmerged child routers)."""
        return replace(self, params=_EMPTY)
