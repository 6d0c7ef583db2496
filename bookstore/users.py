"""
Self-service user accounts: registration, profile reads, updates and deletion.
"""

from typing import List, Optional

import structlog
from sqlalchemy.exc import IntegrityError

from .auth import UserIdentity
from .exceptions import BookstoreError, InternalFailure, NotFound, ValidationFailure
from .models import UserModel
from .repositories import UserRepository
from .security import PasswordHasher

logger = structlog.get_logger(__name__)

USERNAME_TAKEN_MESSAGE = "Username already exists"


class UsersService:
    """Account operations on the credential store."""

    def __init__(self, user_repository: UserRepository, password_hasher: PasswordHasher):
        self.user_repository = user_repository
        self.password_hasher = password_hasher

    async def register(self, username: str, password: str) -> UserIdentity:
        """
        Create a user whose author pseudonym defaults to the username.

        Raises:
            ValidationFailure: a field is blank or the username is taken
        """
        missing: List[str] = [
            name for name, value in (("username", username), ("password", password)) if not value
        ]
        if missing:
            raise ValidationFailure("Username and password are required", fields=missing)

        try:
            if await self.user_repository.get_by_username(username) is not None:
                raise ValidationFailure(USERNAME_TAKEN_MESSAGE, fields=["username"])

            user = UserModel(
                username=username,
                password=self.password_hasher.hash(password),
                author_pseudonym=username,
            )
            await self.user_repository.add(user)
            return UserIdentity.from_model(user)

        except BookstoreError:
            raise
        except IntegrityError as e:
            raise ValidationFailure(USERNAME_TAKEN_MESSAGE, fields=["username"]) from e
        except Exception as e:
            logger.error("Failed to create user", error=str(e))
            raise InternalFailure("An error occurred while creating the user") from e

    async def _get_user(self, user_id: int) -> UserModel:
        user = await self.user_repository.get_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def get_profile(self, user_id: int) -> UserIdentity:
        try:
            return UserIdentity.from_model(await self._get_user(user_id))
        except BookstoreError:
            raise
        except Exception as e:
            logger.error("Failed to fetch user profile", user_id=user_id, error=str(e))
            raise InternalFailure("An error occurred while fetching the user profile") from e

    async def update_profile(
        self,
        user_id: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        author_pseudonym: Optional[str] = None,
    ) -> UserIdentity:
        """
        Apply a partial update to the caller's own profile.

        A new password is hashed before it is stored.

        Raises:
            NotFound: the user no longer exists
            ValidationFailure: a supplied field is blank or the username is taken
        """
        blank = [
            name
            for name, value in (
                ("username", username),
                ("password", password),
                ("authorPseudonym", author_pseudonym),
            )
            if value is not None and not value
        ]
        if blank:
            raise ValidationFailure("Fields cannot be empty", fields=blank)

        try:
            user = await self._get_user(user_id)

            if username is not None and username != user.username:
                existing = await self.user_repository.get_by_username(username)
                if existing is not None and existing.id != user.id:
                    raise ValidationFailure(USERNAME_TAKEN_MESSAGE, fields=["username"])
                user.username = username

            if password is not None:
                user.password = self.password_hasher.hash(password)

            if author_pseudonym is not None:
                user.author_pseudonym = author_pseudonym

            await self.user_repository.save(user)
            logger.info("Updated user profile", user_id=user_id)
            return UserIdentity.from_model(user)

        except BookstoreError:
            raise
        except IntegrityError as e:
            raise ValidationFailure(USERNAME_TAKEN_MESSAGE, fields=["username"]) from e
        except Exception as e:
            logger.error("Failed to update user profile", user_id=user_id, error=str(e))
            raise InternalFailure("An error occurred while updating the user profile") from e

    async def delete_account(self, user_id: int) -> None:
        """
        Delete the caller's account.

        The user's books are hard-deleted along with the account.
        """
        try:
            if not await self.user_repository.delete(user_id):
                raise NotFound("User not found")
        except BookstoreError:
            raise
        except Exception as e:
            logger.error("Failed to delete user", user_id=user_id, error=str(e))
            raise InternalFailure("An error occurred while deleting the user profile") from e
