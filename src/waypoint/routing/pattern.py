"""Route pattern compilation.

Turns a route path into a compiled matcher plus the ordered list of
parameter keys it captures.

Grammar::

    /users            literal segment
    /users/:id        named parameter, one segment
    /users/:id?       optional parameter (the whole "/segment" is optional)
    /files/*          wildcard, the rest of the path (named "0", "1", ...)

A path can also be a compiled ``re.Pattern`` (its groups are the params:
named groups by name, the others by position "0", "1", ...) or a list or
tuple of path strings, which matches when any of them does.

Exact patterns (routes) must consume the whole path, tolerating one
trailing slash unless ``strict``. Prefix patterns (middleware, mounts)
match the path and any of its descendants, ending on a segment boundary.
"""

import re
from dataclasses import dataclass
from typing import TypeAlias

from waypoint.errors import ConfigurationError

_TOKEN = re.compile(r"(?P<slash>/)?:(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?P<optional>\?)?|(?P<wildcard>\*)")

_SEGMENT = r"([^/]+)"

PathSpec: TypeAlias = str | re.Pattern[str] | list[str] | tuple[str, ...]


@dataclass(frozen=True, slots=True)
class PatternKey:
    """One captured parameter, in declaration order."""

    name: str
    optional: bool = False
    wildcard: bool = False


@dataclass(frozen=True, slots=True)
class PatternMatch:
    """Result of a successful pattern match.

    ``text`` is the consumed portion of the path. ``captures`` aligns
    with ``Pattern.keys``; a parameter that did not take part in the
    match is ``None``.
    """

    text: str
    captures: tuple[str | None, ...]


@dataclass(frozen=True, slots=True)
class Pattern:
    """An immutable compiled route path."""

    raw: str | re.Pattern[str] | tuple[str, ...]
    keys: tuple[PatternKey, ...]
    regex: re.Pattern[str] | None
    is_prefix_match: bool

    @property
    def matches_everything(self) -> bool:
        """True for the root middleware pattern, which needs no regex."""
        return self.regex is None

    def match(self, path: str) -> PatternMatch | None:
        """Match *path*, returning the captures or ``None``."""
        if self.regex is None:
            return PatternMatch(text="", captures=())
        m = self.regex.match(path)
        if m is None:
            return None
        return PatternMatch(text=m.group(0), captures=m.groups())


def compile_pattern(
    path: PathSpec,
    *,
    exact: bool,
    case_sensitive: bool = False,
    strict: bool = False,
) -> Pattern:
    """Compile *path* into a ``Pattern``.

    Args:
        path: Route path string, compiled regex, or list of path strings.
        exact: True for terminal routes, False for middleware and mounts.
        case_sensitive: Match literal segments case-sensitively. A compiled
            regex keeps its own flags.
        strict: For exact patterns, do not tolerate a trailing slash.

    Raises ``ConfigurationError`` if a parameter name is declared twice
    in one path, a path list is empty, or a regex cannot be anchored.
    Raises ``TypeError`` for anything that is not a path.
    """
    if isinstance(path, re.Pattern):
        return _compile_regex(path, exact=exact)

    flags = 0 if case_sensitive else re.IGNORECASE

    if isinstance(path, (list, tuple)):
        if not path:
            msg = "A route path list needs at least one path."
            raise ConfigurationError(msg)
        sources: list[str] = []
        keys: list[PatternKey] = []
        for item in path:
            source, item_keys = _translate(_as_str(item), exact=exact, strict=strict)
            sources.append(f"(?:{source})")
            keys.extend(item_keys)
        return Pattern(
            raw=tuple(path),
            keys=tuple(keys),
            regex=re.compile(_anchor("|".join(sources), exact=exact), flags),
            is_prefix_match=not exact,
        )

    path = _as_str(path)
    if not exact and path in ("", "/"):
        return Pattern(raw=path, keys=(), regex=None, is_prefix_match=True)

    source, path_keys = _translate(path, exact=exact, strict=strict)
    return Pattern(
        raw=path,
        keys=path_keys,
        regex=re.compile(_anchor(source, exact=exact), flags),
        is_prefix_match=not exact,
    )


def _as_str(path: object) -> str:
    if not isinstance(path, str):
        msg = (
            "A route path must be a str, a compiled regex, or a list of str, "
            f"got {type(path).__name__}."
        )
        raise TypeError(msg)
    return path


def _anchor(source: str, *, exact: bool) -> str:
    if exact:
        return f"^(?:{source})$"
    return f"^(?:{source})(?=/|$)"


def _translate(path: str, *, exact: bool, strict: bool) -> tuple[str, tuple[PatternKey, ...]]:
    """Translate one path string into an unanchored regex source and its keys."""
    if path in ("", "/"):
        # The prefix "/" consumes nothing; the exact "/" is the root only
        return ("/" if exact else ""), ()

    keys: list[PatternKey] = []
    seen: set[str] = set()
    parts: list[str] = []
    wildcards = 0
    pos = 0

    body = path
    if (not exact or not strict) and len(body) > 1 and body.endswith("/"):
        body = body[:-1]

    for token in _TOKEN.finditer(body):
        parts.append(re.escape(body[pos : token.start()]))
        pos = token.end()

        if token.group("wildcard"):
            keys.append(PatternKey(name=str(wildcards), wildcard=True))
            wildcards += 1
            parts.append("(.*)")
            continue

        name = token.group("name")
        if name in seen:
            msg = f"Duplicate parameter {name!r} in route {path!r}."
            raise ConfigurationError(msg)
        seen.add(name)

        optional = token.group("optional") is not None
        keys.append(PatternKey(name=name, optional=optional))
        slash = "/" if token.group("slash") else ""
        if optional and slash:
            parts.append(f"(?:/{_SEGMENT})?")
        elif optional:
            parts.append(f"{_SEGMENT}?")
        else:
            parts.append(f"{slash}{_SEGMENT}")

    parts.append(re.escape(body[pos:]))
    source = "".join(parts)
    if exact and not strict:
        source += "/?"
    return source, tuple(keys)


def _compile_regex(regex: re.Pattern[str], *, exact: bool) -> Pattern:
    if not isinstance(regex.pattern, str):
        msg = "A route regex must be compiled from a str pattern."
        raise ConfigurationError(msg)

    names = {index: name for name, index in regex.groupindex.items()}
    keys = tuple(
        PatternKey(name=names.get(index, str(index - 1)), optional=True)
        for index in range(1, regex.groups + 1)
    )
    try:
        anchored = re.compile(_anchor(regex.pattern, exact=exact), regex.flags)
    except re.error as exc:
        msg = f"Cannot use {regex.pattern!r} as a route: {exc}"
        raise ConfigurationError(msg) from exc
    return Pattern(raw=regex, keys=keys, regex=anchored, is_prefix_match=not exact)
