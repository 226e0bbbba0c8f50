"""Shared type aliases used across waypoint modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Regular handler: (request, response, next)
HandlerFunc: TypeAlias = Callable[..., Any]

# Error handler: (error, request, response, next)
ErrorHandlerFunc: TypeAlias = Callable[..., Any]

# Param handler: (request, response, next, value, name)
ParamHandlerFunc: TypeAlias = Callable[..., Any]
