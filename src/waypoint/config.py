"""Application configuration.

AppConfig is a frozen dataclass, immutable after creation and IDE-autocompletable,
with no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, port=3000, case_sensitive=True)
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    env: str = "development"

    # Routing (root router of the app)
    case_sensitive: bool = False
    strict: bool = False  # "/users" and "/users/" are different routes

    # Responses
    x_powered_by: bool = True

    # Logging
    log_level: str = "info"
