"""REST API for PulseWatch.

Public surface:
    create_app -- FastAPI application factory.
    build_app  -- Alias used by the application bootstrap.
"""

from pulsewatch.api.app import create_app

build_app = create_app

__all__ = ["build_app", "create_app"]
