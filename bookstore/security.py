"""
Password hashing and bearer token signing.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

import bcrypt
import jwt

from .exceptions import InvalidTokenError

# bcrypt ignores everything after the first 72 bytes of input
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """
    Salted one-way password hashing with bcrypt.

    Examples:
        >>> hasher = PasswordHasher(rounds=4)
        >>> digest = hasher.hash("wookiee")
        >>> hasher.verify("wookiee", digest)
        True
    """

    def __init__(self, rounds: int = 10):
        self._rounds = rounds

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(self._encode(password), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(self._encode(password), password_hash.encode("utf-8"))
        except (ValueError, TypeError):
            # Malformed digest
            return False


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a bearer token."""

    subject: int
    username: Optional[str] = None


class TokenService:
    """
    Signs and verifies HS256 JSON Web Tokens.

    Tokens carry ``sub`` (the user id as a string) and ``username``. They only
    expire when ``expire_minutes`` is configured; otherwise they stay valid
    until the secret key is rotated.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expire_minutes: Optional[int] = None,
    ):
        if not secret_key:
            raise ValueError("JWT secret key cannot be empty")

        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expire = timedelta(minutes=expire_minutes) if expire_minutes else None

    def issue(self, claims: Mapping[str, Any]) -> str:
        """Sign an arbitrary claim set."""
        payload: Dict[str, Any] = dict(claims)
        if self._expire is not None and "exp" not in payload:
            payload["exp"] = datetime.now(tz=timezone.utc) + self._expire
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def create_access_token(self, user_id: int, username: str) -> str:
        return self.issue({"sub": str(user_id), "username": username})

    def verify(self, token: str) -> TokenClaims:
        """
        Verify a token and return its claims.

        Raises:
            InvalidTokenError: bad signature, malformed or expired token, or a
                subject that is not a user id
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as e:
            raise InvalidTokenError("Token has expired") from e
        except jwt.PyJWTError as e:
            raise InvalidTokenError() from e

        try:
            subject = int(payload["sub"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidTokenError("Token subject is missing or invalid") from e

        return TokenClaims(subject=subject, username=payload.get("username"))
