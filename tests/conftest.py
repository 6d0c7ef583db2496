"""
Pytest configuration and shared fixtures.
"""

import pytest
from fastapi.testclient import TestClient

from api.config import config as api_config
from bookstore.auth import AuthenticatedIdentity, AuthService
from bookstore.books import BooksService
from bookstore.database import DatabaseManager
from bookstore.models import BookModel, UserModel
from bookstore.repositories import BookRepository, UserRepository
from bookstore.security import PasswordHasher, TokenService
from bookstore.users import UsersService
from utilities.config import config

TEST_JWT_SECRET = "test-jwt-secret-for-testing-only"


@pytest.fixture
def password_hasher():
    """bcrypt hasher at the minimum work factor."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def token_service():
    """Token service with a test secret."""
    return TokenService(secret_key=TEST_JWT_SECRET)


@pytest.fixture
async def db_manager(tmp_path):
    """Database manager backed by a throwaway SQLite file."""
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'test.sqlite'}")
    await manager.connect()
    yield manager
    await manager.disconnect()


@pytest.fixture
async def session(db_manager):
    """Database session for a single test."""
    async with db_manager.session() as session:
        yield session


@pytest.fixture
def user_repository(session):
    return UserRepository(session)


@pytest.fixture
def book_repository(session):
    return BookRepository(session)


@pytest.fixture
def auth_service(user_repository, password_hasher, token_service):
    return AuthService(user_repository, password_hasher, token_service)


@pytest.fixture
def users_service(user_repository, password_hasher):
    return UsersService(user_repository, password_hasher)


@pytest.fixture
def books_service(book_repository, user_repository):
    return BooksService(book_repository, user_repository)


@pytest.fixture
def make_user(user_repository, password_hasher):
    """Factory that stores a user and returns the model."""
    async def _make_user(username, password="password123", author_pseudonym=None):
        user = UserModel(
            username=username,
            password=password_hasher.hash(password),
            author_pseudonym=author_pseudonym or username,
        )
        return await user_repository.add(user)
    return _make_user


@pytest.fixture
def make_book(book_repository):
    """Factory that stores a book for an author and returns the model."""
    async def _make_book(author, title="A New Hope", price=19.99, is_published=True, description=None):
        book = BookModel(
            title=title,
            description=description,
            price=price,
            is_published=is_published,
            author=author,
        )
        return await book_repository.add(book)
    return _make_book


@pytest.fixture
def identity_for():
    """Build the per-request identity for a stored user."""
    def _identity_for(user):
        return AuthenticatedIdentity(id=user.id)
    return _identity_for


@pytest.fixture
def client(tmp_path, monkeypatch):
    """Test client running the full app lifespan against a temporary database."""
    monkeypatch.setattr(config, "database_url", f"sqlite+aiosqlite:///{tmp_path / 'api.sqlite'}")
    monkeypatch.setattr(config, "log_format", "console")
    monkeypatch.setattr(api_config, "jwt_secret", TEST_JWT_SECRET)
    monkeypatch.setattr(api_config, "bcrypt_rounds", 4)

    from api.main import app

    with TestClient(app) as test_client:
        yield test_client
