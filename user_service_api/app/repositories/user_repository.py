"""
SQL access for the ``users`` table.

All statements are parameterized.  The only SQL text assembled at
runtime is the list of column names for PATCH, the WHERE clause of a
search and its ORDER BY, and those names come from fixed whitelists in
``schemas.user``; user-supplied values are always bound parameters.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from user_service_api.app.schemas.user import (
    PATCHABLE_FIELDS,
    SORTABLE_FIELDS,
    User,
    UserFilter,
    sort_column,
)

logger = logging.getLogger(__name__)

COLUMNS = "id, username, email, phone, date_of_birth"


def _to_db(value: Any) -> Any:
    # Dates are stored as ISO-8601 text
    if isinstance(value, date):
        return value.isoformat()
    return value


def _parse_date(user_id: str, value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        logger.warning("User %s has an unreadable date_of_birth %r", user_id, value)
        return None


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class UserRepository:
    """Repository for ``User`` records bound to one open connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def load(self, user_id: str) -> Optional[User]:
        """Return the user with ``user_id`` or ``None`` if there is none."""
        row = self.conn.execute(
            f"SELECT {COLUMNS} FROM users WHERE id = ?",
            (user_id,),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def create(self, user: User) -> int:
        cursor = self.conn.execute(
            f"INSERT INTO users ({COLUMNS}) VALUES (?, ?, ?, ?, ?)",
            (
                user.id,
                user.username,
                user.email,
                user.phone,
                _to_db(user.date_of_birth),
            ),
        )
        return cursor.rowcount

    def update(self, user: User) -> int:
        cursor = self.conn.execute(
            "UPDATE users SET username = ?, email = ?, phone = ?, date_of_birth = ? WHERE id = ?",
            (
                user.username,
                user.email,
                user.phone,
                _to_db(user.date_of_birth),
                user.id,
            ),
        )
        return cursor.rowcount

    def patch(self, user_id: str, fields: Dict[str, Any]) -> int:
        """Update only the columns present in ``fields``.

        Keys outside ``PATCHABLE_FIELDS`` are ignored.  Raises
        ``ValueError`` when nothing is left to update.
        """
        columns = [name for name in PATCHABLE_FIELDS if name in fields]
        if not columns:
            raise ValueError("No fields to update")
        assignments = ", ".join(f"{name} = ?" for name in columns)
        values = [_to_db(fields[name]) for name in columns]
        values.append(user_id)
        cursor = self.conn.execute(
            f"UPDATE users SET {assignments} WHERE id = ?",
            tuple(values),
        )
        return cursor.rowcount

    def delete(self, user_id: str) -> int:
        cursor = self.conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
        return cursor.rowcount

    def search(self, criteria: UserFilter) -> Tuple[List[User], int]:
        """Return one page of users matching ``criteria`` and the total count."""
        clauses: List[str] = []
        params: List[Any] = []
        if criteria.id:
            clauses.append("id = ?")
            params.append(criteria.id)
        for name in ("username", "email", "phone"):
            value = getattr(criteria, name)
            if value:
                clauses.append(f"{name} LIKE ? ESCAPE '\\'")
                params.append(_escape_like(value) + "%")
        if criteria.date_of_birth_min is not None:
            clauses.append("date_of_birth >= ?")
            params.append(_to_db(criteria.date_of_birth_min))
        if criteria.date_of_birth_max is not None:
            clauses.append("date_of_birth <= ?")
            params.append(_to_db(criteria.date_of_birth_max))
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        row = self.conn.execute(
            f"SELECT COUNT(*) AS total FROM users{where}",
            tuple(params),
        ).fetchone()
        total = row["total"]

        offset = (criteria.page - 1) * criteria.limit
        rows = self.conn.execute(
            f"SELECT {COLUMNS} FROM users{where} ORDER BY {self._order_by(criteria.sort)} LIMIT ? OFFSET ?",
            tuple(params) + (criteria.limit, offset),
        ).fetchall()
        return [self._row_to_user(r) for r in rows], total

    @staticmethod
    def _order_by(sort: Optional[str]) -> str:
        if not sort:
            return "id ASC"
        direction = "DESC" if sort.startswith("-") else "ASC"
        column = sort_column(sort)
        if column not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot sort by {sort}")
        if column == "id":
            return f"id {direction}"
        return f"{column} {direction}, id ASC"

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        """Convert a database row to a ``User`` instance.

        Stored values are trusted as they are and not run through the
        input validators.  A date that is not ISO-8601 is read as ``None``.
        """
        return User.model_construct(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            phone=row["phone"],
            date_of_birth=_parse_date(row["id"], row["date_of_birth"]),
        )
