"""Common utilities shared across the package.

Includes:
- ``config``: pydantic-settings configuration from environment variables.
- ``logging``: structured logging setup with structlog.
- ``metrics``: Prometheus metrics helpers.

Import pattern:
- from fuzzymatch.common.config import FuzzyMatchConfig
- from fuzzymatch.common.logging import configure_logging
"""
