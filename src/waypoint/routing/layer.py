"""Layer: one registered unit of a router's stack."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import unquote

from waypoint.routing.pattern import PathSpec, Pattern

if TYPE_CHECKING:
    from waypoint.routing.endpoint import Endpoint
    from waypoint.routing.route import Route


@dataclass(frozen=True, slots=True)
class LayerMatch:
    """Result of matching a layer against a request path.

    ``params`` holds decoded values for every key that captured something,
    in declaration order. ``matched_prefix`` is the literal part of the
    path a middleware layer consumed ("" for routes and the root pattern).
    """

    params: dict[str, str]
    matched_prefix: str


@dataclass(frozen=True, slots=True)
class Layer:
    """A compiled pattern bound to an endpoint.

    Created once at registration time and never modified. Middleware
    layers (prefix patterns) match any descendant path and rewrite the
    path for their endpoint; route layers (exact patterns) carry the
    ``Route`` that decides which methods they accept.
    """

    pattern: Pattern
    endpoint: Endpoint
    route: Route | None = None

    @property
    def path(self) -> PathSpec:
        return self.pattern.raw

    @property
    def is_middleware(self) -> bool:
        return self.pattern.is_prefix_match

    @property
    def handles_errors(self) -> bool:
        return self.endpoint.handles_errors

    @property
    def name(self) -> str:
        return getattr(self.endpoint, "name", type(self.endpoint).__name__)

    def accepts(self, method: str) -> bool:
        """Whether this layer takes requests with *method*."""
        if self.route is None:
            return True
        return self.route.handles_method(method)

    def match(self, path: str) -> LayerMatch | None:
        """Match *path* against this layer's pattern."""
        result = self.pattern.match(path)
        if result is None:
            return None

        params: dict[str, str] = {}
        for key, value in zip(self.pattern.keys, result.captures, strict=True):
            if value is not None:
                params[key.name] = decode_param(value)

        prefix = result.text if self.is_middleware else ""
        if prefix.endswith("/"):
            prefix = prefix[:-1]
        return LayerMatch(params=params, matched_prefix=prefix)


def decode_param(value: str) -> str:
    """Percent-decode a captured value, keeping the raw text if it is malformed."""
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value
