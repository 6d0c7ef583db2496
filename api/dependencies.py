"""
FastAPI dependency providers for database sessions and services.

Long-lived collaborators (database manager, password hasher, token service)
are created in the application lifespan and kept on ``app.state``; a
session and the services built on it are created per request.
"""

from typing import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.auth import AuthService
from bookstore.books import BooksService
from bookstore.repositories import BookRepository, UserRepository
from bookstore.security import PasswordHasher, TokenService
from bookstore.users import UsersService


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield a database session scoped to the current request."""
    async with request.app.state.db.session() as session:
        yield session


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_user_repository(session: AsyncSession = Depends(get_session)) -> UserRepository:
    return UserRepository(session)


def get_book_repository(session: AsyncSession = Depends(get_session)) -> BookRepository:
    return BookRepository(session)


def get_auth_service(
    user_repository: UserRepository = Depends(get_user_repository),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
    token_service: TokenService = Depends(get_token_service),
) -> AuthService:
    return AuthService(user_repository, password_hasher, token_service)


def get_users_service(
    user_repository: UserRepository = Depends(get_user_repository),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
) -> UsersService:
    return UsersService(user_repository, password_hasher)


def get_books_service(
    book_repository: BookRepository = Depends(get_book_repository),
    user_repository: UserRepository = Depends(get_user_repository),
) -> BooksService:
    return BooksService(book_repository, user_repository)
