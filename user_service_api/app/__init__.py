"""
Application package initializer.

The service is split into layers: ``api`` (HTTP endpoints),
``services`` (transaction boundaries), ``repositories`` (SQL) and
``schemas`` (pydantic models).  ``core`` holds configuration, logging
and database plumbing.  Versioning is handled by grouping routers
under the ``api/<version>/`` hierarchy.
"""

from .main import app  # noqa: F401
