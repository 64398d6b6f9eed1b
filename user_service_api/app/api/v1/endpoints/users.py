"""
User endpoints for API v1.

CRUD routes over a single user record plus a search route.  Bodies are
validated by the pydantic schemas in ``schemas.user``; validation
failures are answered by FastAPI with HTTP 422.  The id in the path is
authoritative: a body carrying a different id is rejected with 400.
"""

import logging
import sqlite3
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Body, HTTPException, Query, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from user_service_api.app.schemas.user import User, UserFilter, UserPatch, UserRead, UserSearchResult
from user_service_api.app.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_id(path_id: str, body_id: Any) -> None:
    if body_id is not None and body_id != path_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Id in body does not match id in path",
        )


# The search routes are registered before "/{user_id}" so that
# "/search" is not captured as an id.
@router.get("/search", response_model=UserSearchResult)
async def search_users_by_query(criteria: Annotated[UserFilter, Query()]) -> UserSearchResult:
    """Search users with criteria passed as query parameters."""
    return await UserService.search(criteria)


@router.post("/search", response_model=UserSearchResult)
async def search_users(criteria: UserFilter) -> UserSearchResult:
    """Search users with criteria passed as a JSON body."""
    return await UserService.search(criteria)


@router.get("/{user_id}", response_model=UserRead)
async def load_user(user_id: str) -> UserRead:
    """Return a single user; HTTP 404 if it does not exist."""
    user = await UserService.load(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_user(user: User) -> UserRead:
    """Create a user.  A duplicate id is answered with HTTP 409."""
    try:
        await UserService.create(user)
    except sqlite3.IntegrityError:
        logger.warning("User %s already exists", user.id)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")
    return user


@router.put("/{user_id}", response_model=UserRead)
async def update_user(user_id: str, body: Dict[str, Any] = Body(...)) -> User:
    """Replace every field of an existing user.

    The body may omit ``id``; it is taken from the path.
    """
    _check_id(user_id, body.get("id"))
    try:
        user = User.model_validate({**body, "id": user_id})
    except ValidationError as exc:
        # Same error locations as a body validated by FastAPI itself
        errors = [{**error, "loc": ("body", *error["loc"])} for error in exc.errors(include_url=False)]
        raise RequestValidationError(errors)
    affected = await UserService.update(user)
    if affected == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.patch("/{user_id}", response_model=UserRead)
async def patch_user(user_id: str, body: UserPatch) -> UserRead:
    """Change only the fields present in the body and return the result."""
    _check_id(user_id, body.id)
    fields = body.to_fields()
    if not fields:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    affected = await UserService.patch(user_id, fields)
    if affected == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    user = await UserService.load(user_id)
    if user is None:
        # Deleted between the update and the read
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: str) -> None:
    """Delete a user; HTTP 404 if it does not exist."""
    affected = await UserService.delete(user_id)
    if affected == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return None
