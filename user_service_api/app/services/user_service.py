"""
Business logic for users.

``UserService`` places the transaction boundary around every mutating
repository call: the work is committed when the repository returns and
rolled back when it raises, so a failed write never leaves a partial
change behind.  Reads go straight to the repository on a plain
connection.
"""

import logging
from typing import Any, Dict, Optional

from user_service_api.app.core.db import get_connection, transaction
from user_service_api.app.repositories.user_repository import UserRepository
from user_service_api.app.schemas.user import User, UserFilter, UserSearchResult

logger = logging.getLogger(__name__)


class UserService:
    """Service for loading, searching and modifying users.

    ``repository_class`` is looked up on every call so a different
    repository can be substituted, e.g. in tests.
    """

    repository_class = UserRepository

    @classmethod
    async def load(cls, user_id: str) -> Optional[User]:
        """Return the user with ``user_id`` or ``None``."""
        conn = get_connection()
        try:
            return cls.repository_class(conn).load(user_id)
        finally:
            conn.close()

    @classmethod
    async def search(cls, criteria: UserFilter) -> UserSearchResult:
        conn = get_connection()
        try:
            users, total = cls.repository_class(conn).search(criteria)
            return UserSearchResult(list=users, total=total)
        finally:
            conn.close()

    @classmethod
    async def create(cls, user: User) -> int:
        """Insert ``user`` and return the number of rows written.

        A duplicate id surfaces as ``sqlite3.IntegrityError``.
        """
        with transaction() as conn:
            affected = cls.repository_class(conn).create(user)
        logger.info("Created user %s", user.id)
        return affected

    @classmethod
    async def update(cls, user: User) -> int:
        with transaction() as conn:
            affected = cls.repository_class(conn).update(user)
        logger.info("Updated user %s (%s rows)", user.id, affected)
        return affected

    @classmethod
    async def patch(cls, user_id: str, fields: Dict[str, Any]) -> int:
        """Apply a partial-field mapping to the user with ``user_id``."""
        with transaction() as conn:
            affected = cls.repository_class(conn).patch(user_id, fields)
        logger.info("Patched user %s fields %s (%s rows)", user_id, sorted(fields), affected)
        return affected

    @classmethod
    async def delete(cls, user_id: str) -> int:
        with transaction() as conn:
            affected = cls.repository_class(conn).delete(user_id)
        logger.info("Deleted user %s (%s rows)", user_id, affected)
        return affected
