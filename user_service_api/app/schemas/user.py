"""
Pydantic models for user data.

``User`` is the full record accepted by create/update; ``UserRead`` is
the unvalidated shape returned by reads.  ``UserPatch`` carries a
partial-field mapping for PATCH requests, reusing the same per-field
rules.  ``UserFilter`` and ``UserSearchResult`` describe the search
endpoint.
"""

import re
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

USERNAME_PATTERN = re.compile(r"[A-Za-z0-9_.\-]+")
EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")
PHONE_PATTERN = re.compile(r"\+?[0-9()\- ]+")

# Columns a PATCH request may change; ``id`` is immutable.
PATCHABLE_FIELDS = ("username", "email", "phone", "date_of_birth")

# Columns the search endpoint may sort on.
SORTABLE_FIELDS = ("id", "username", "email", "phone", "date_of_birth")


def sort_column(sort: str) -> str:
    """Column named by a sort key; a single leading ``-`` means descending."""
    return sort[1:] if sort.startswith("-") else sort


def _check_username(value: str) -> str:
    if not USERNAME_PATTERN.fullmatch(value):
        raise ValueError("username may only contain letters, digits, '_', '.' and '-'")
    return value


def _check_email(value: Optional[str]) -> Optional[str]:
    if value is not None and not EMAIL_PATTERN.fullmatch(value):
        raise ValueError("email is not a valid address")
    return value


def _check_phone(value: Optional[str]) -> Optional[str]:
    if value is not None and not PHONE_PATTERN.fullmatch(value):
        raise ValueError("phone may only contain digits, spaces, '+', '-', '(' and ')'")
    return value


class UserRead(BaseModel):
    """A user as returned by the API.

    Carries no input rules, so rows written before a rule existed (or
    by another client) can still be read and returned.
    """

    id: str
    username: str
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None

    model_config = {
        "from_attributes": True,
    }


class User(UserRead):
    """A user record accepted by create and update."""

    id: str = Field(..., min_length=1, max_length=40, examples=["u0001"])
    username: str = Field(..., min_length=1, max_length=100, examples=["tommy"])
    email: Optional[str] = Field(None, max_length=100, examples=["tommy@example.com"])
    phone: Optional[str] = Field(None, max_length=18, examples=["+1 555-0100"])
    date_of_birth: Optional[date] = Field(None, examples=["1990-04-12"])

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        return _check_username(value)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: Optional[str]) -> Optional[str]:
        return _check_email(value)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: Optional[str]) -> Optional[str]:
        return _check_phone(value)


class UserPatch(BaseModel):
    """Partial update for a user.

    Every field is optional.  Only the fields present in the request
    body are applied (see ``to_fields``); an explicit ``null`` clears
    a nullable column.
    """

    id: Optional[str] = Field(None, min_length=1, max_length=40)
    username: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=18)
    date_of_birth: Optional[date] = None

    model_config = {
        "extra": "forbid",
    }

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            raise ValueError("username cannot be null")
        return _check_username(value)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: Optional[str]) -> Optional[str]:
        return _check_email(value)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: Optional[str]) -> Optional[str]:
        return _check_phone(value)

    def to_fields(self) -> Dict[str, Any]:
        """Return the patchable fields explicitly sent by the client."""
        sent = self.model_dump(exclude_unset=True)
        return {key: sent[key] for key in PATCHABLE_FIELDS if key in sent}


class UserFilter(BaseModel):
    """Search criteria for users.

    String criteria other than ``id`` are prefix matches.  The date
    bounds are inclusive.  ``sort`` names a column, with a leading
    ``-`` for descending order.
    """

    id: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth_min: Optional[date] = None
    date_of_birth_max: Optional[date] = None
    sort: Optional[str] = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=1000)

    @field_validator("sort")
    @classmethod
    def validate_sort(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        if sort_column(value) not in SORTABLE_FIELDS:
            raise ValueError(f"sort must be one of {', '.join(SORTABLE_FIELDS)}")
        return value


class UserSearchResult(BaseModel):
    """A page of users plus the total number of matches."""

    list: List[UserRead]
    total: int
