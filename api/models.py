"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from bookstore.auth import UserIdentity
from bookstore.models import BookModel, UserModel


class CamelModel(BaseModel):
    """Base schema accepting both camelCase aliases and field names."""

    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(BaseModel):
    """Login request body."""
    username: str = Field(..., min_length=1, description="Account username")
    password: str = Field(..., min_length=1, description="Account password")


class TokenResponse(BaseModel):
    """Issued bearer token."""
    access_token: str = Field(..., description="Bearer token for the Authorization header")


class CreateUserRequest(BaseModel):
    """Registration request body."""
    username: str = Field(..., min_length=1, description="Unique username")
    password: str = Field(..., min_length=1, description="Plaintext password, stored hashed")


class UpdateUserRequest(CamelModel):
    """Partial profile update; omitted fields are left unchanged."""
    username: Optional[str] = Field(None, description="New username")
    password: Optional[str] = Field(None, description="New password")
    author_pseudonym: Optional[str] = Field(None, alias="authorPseudonym", description="New author pseudonym")


class UserResponse(CamelModel):
    """Public user profile."""
    id: int = Field(..., description="User identifier")
    username: str = Field(..., description="Username")
    author_pseudonym: str = Field(..., alias="authorPseudonym", description="Name shown on authored books")

    @classmethod
    def from_identity(cls, identity: UserIdentity) -> "UserResponse":
        return cls(id=identity.id, username=identity.username, author_pseudonym=identity.author_pseudonym)

    @classmethod
    def from_model(cls, user: UserModel) -> "UserResponse":
        return cls.from_identity(UserIdentity.from_model(user))


class CreateBookRequest(CamelModel):
    """Book creation request body."""
    title: str = Field(..., min_length=1, description="Book title")
    description: Optional[str] = Field(None, description="Book description")
    price: float = Field(..., description="Book price")
    cover_image: Optional[str] = Field(None, alias="coverImage", description="Cover image URL")
    is_published: Optional[bool] = Field(None, alias="isPublished", description="Publication flag, defaults to true")


class UpdateBookRequest(CamelModel):
    """Partial book update; the author cannot be changed."""
    title: Optional[str] = Field(None, min_length=1, description="Book title")
    description: Optional[str] = Field(None, description="Book description")
    price: Optional[float] = Field(None, description="Book price")
    cover_image: Optional[str] = Field(None, alias="coverImage", description="Cover image URL")
    is_published: Optional[bool] = Field(None, alias="isPublished", description="Publication flag")


class BookResponse(CamelModel):
    """Book response model for API."""
    id: int = Field(..., description="Book identifier")
    title: str = Field(..., description="Book title")
    description: Optional[str] = Field(None, description="Book description")
    cover_image: Optional[str] = Field(None, alias="coverImage", description="Cover image URL")
    price: float = Field(..., description="Book price")
    is_published: bool = Field(..., alias="isPublished", description="Whether the book is publicly listed")
    author: Optional[UserResponse] = Field(None, description="Author of the book")

    @classmethod
    def from_model(cls, book: BookModel) -> "BookResponse":
        return cls(
            id=book.id,
            title=book.title,
            description=book.description,
            cover_image=book.cover_image,
            price=float(book.price),
            is_published=book.is_published,
            author=UserResponse.from_model(book.author) if book.author is not None else None,
        )


class MessageResponse(BaseModel):
    """Plain confirmation message."""
    message: str = Field(..., description="Confirmation message")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    code: str = Field(..., description="Machine-readable error kind")
    status_code: int = Field(..., description="HTTP status code")
    fields: Optional[List[str]] = Field(None, description="Offending input fields")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
