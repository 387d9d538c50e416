from __future__ import annotations

import logging

from ..errors import InvalidInput
from ..identity import Identity, fallback_role
from ..models import ProfileCreate, User
from ..repositories import UserRepository

logger = logging.getLogger(__name__)


class UserService:
    """Profile records. A user's role is fixed when the profile is created."""

    def __init__(self, users: UserRepository) -> None:
        self._users = users

    def register(self, identity: Identity, payload: ProfileCreate) -> User:
        if self._users.get(identity.user_id) is not None:
            raise InvalidInput("Profile already exists; role cannot be changed")
        if not identity.email:
            raise InvalidInput("Identity has no email address")
        user = User(
            id=identity.user_id,
            email=identity.email,
            name=payload.name,
            role=payload.role,
        )
        self._users.save(user)
        logger.info(f"Registered profile for {user.id} with role {user.role.value}")
        return user

    def profile(self, identity: Identity) -> dict:
        user = self._users.get(identity.user_id)
        if user is not None:
            return {**user.to_record(), "profileFound": True}
        return {
            "id": identity.user_id,
            "email": identity.email,
            "name": str(identity.metadata.get("name") or ""),
            "role": fallback_role(identity).value,
            "profileFound": False,
        }
