"""
Version 1 of the User Service API.

Breaking changes to the user routes should go into a new version
subpackage (e.g. ``v2``) so existing clients keep working.
"""
