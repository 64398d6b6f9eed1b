"""
Pydantic schema definitions for API payloads.

Schemas describe request and response bodies and carry the field
validation rules.  They are separated from the SQL in ``repositories``
to decouple API representation from persistence.
"""
