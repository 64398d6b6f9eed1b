"""
API package containing versioned routes.

Each version subpackage (currently only ``v1``) exposes a top‑level
``router`` that the application mounts under ``/api/<version>``.
"""
