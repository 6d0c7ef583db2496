"""
Login flow: credential validation and access token issuance.
"""

from dataclasses import dataclass
from typing import Dict

import structlog

from .exceptions import BookstoreError, InternalFailure, Unauthenticated
from .models import UserModel
from .repositories import UserRepository
from .security import PasswordHasher, TokenService

logger = structlog.get_logger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"


@dataclass(frozen=True)
class UserIdentity:
    """Public view of a user; never includes the password digest."""

    id: int
    username: str
    author_pseudonym: str

    @classmethod
    def from_model(cls, user: UserModel) -> "UserIdentity":
        return cls(id=user.id, username=user.username, author_pseudonym=user.author_pseudonym)


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """Per-request identity resolved from a verified bearer token."""

    id: int


class AuthService:
    """Validates credentials and issues bearer tokens."""

    def __init__(
        self,
        user_repository: UserRepository,
        password_hasher: PasswordHasher,
        token_service: TokenService,
    ):
        self.user_repository = user_repository
        self.password_hasher = password_hasher
        self.token_service = token_service

    async def authenticate(self, username: str, password: str) -> UserIdentity:
        """
        Validate a username and password.

        An unknown username and a wrong password fail with the same
        ``Unauthenticated`` message.

        Raises:
            Unauthenticated: credentials do not match a user
            InternalFailure: the credential store failed
        """
        try:
            user = await self.user_repository.get_by_username(username)

            if user is None or not self.password_hasher.verify(password, user.password):
                logger.info("Rejected login attempt")
                raise Unauthenticated(INVALID_CREDENTIALS_MESSAGE)

            return UserIdentity.from_model(user)

        except BookstoreError:
            raise
        except Exception as e:
            logger.error("Failed to validate user", error=str(e))
            raise InternalFailure("An error occurred while validating the user") from e

    def issue_token(self, identity: UserIdentity) -> str:
        try:
            return self.token_service.create_access_token(identity.id, identity.username)
        except Exception as e:
            logger.error("Failed to sign access token", user_id=identity.id, error=str(e))
            raise InternalFailure("An error occurred while generating the access token") from e

    async def login(self, username: str, password: str) -> Dict[str, str]:
        identity = await self.authenticate(username, password)
        token = self.issue_token(identity)
        logger.info("User logged in", user_id=identity.id)
        return {"access_token": token}
