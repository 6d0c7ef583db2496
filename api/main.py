"""
FastAPI main application for the Wookie Books API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.auth import authenticate_request
from api.config import config as api_config
from api.dependencies import get_auth_service, get_books_service, get_users_service
from api.models import (
    BookResponse,
    CreateBookRequest,
    CreateUserRequest,
    ErrorResponse,
    HealthResponse,
    LoginRequest,
    MessageResponse,
    TokenResponse,
    UpdateBookRequest,
    UpdateUserRequest,
    UserResponse,
)
from bookstore.auth import AuthenticatedIdentity, AuthService
from bookstore.books import BooksService, parse_catalog_query
from bookstore.database import DatabaseManager
from bookstore.exceptions import (
    BookstoreError,
    Forbidden,
    InternalFailure,
    NotFound,
    Unauthenticated,
    Unauthorized,
    ValidationFailure,
)
from bookstore.security import PasswordHasher, TokenService
from bookstore.users import UsersService
from utilities.config import config
from utilities.logger import setup_logging

logger = structlog.get_logger(__name__)

ERROR_STATUS_CODES = {
    ValidationFailure: status.HTTP_400_BAD_REQUEST,
    Unauthenticated: status.HTTP_401_UNAUTHORIZED,
    Unauthorized: status.HTTP_401_UNAUTHORIZED,
    Forbidden: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    InternalFailure: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger.info("Starting Wookie Books API")

    if api_config.uses_default_secret():
        logger.warning("JWT_SECRET is not set; using the insecure development default")

    db = DatabaseManager(config.database_url, echo=config.database_echo)
    await db.connect()

    app.state.db = db
    app.state.password_hasher = PasswordHasher(rounds=api_config.bcrypt_rounds)
    app.state.token_service = TokenService(
        secret_key=api_config.jwt_secret,
        algorithm=api_config.jwt_algorithm,
        expire_minutes=api_config.access_token_expire_minutes,
    )

    yield

    # Shutdown
    logger.info("Shutting down Wookie Books API")
    await db.disconnect()


# Create FastAPI application
app = FastAPI(
    title=api_config.api_title,
    description="""
    A REST API for publishing books and managing their authors.

    ## Features

    * **Accounts**: Register, log in, and manage your own profile
    * **Catalog**: Browse and filter books without an account
    * **Publishing**: Create, edit and unpublish the books you authored

    ## Authentication

    Account and publishing endpoints require a bearer token from `POST /auth/login`:

    ```
    Authorization: Bearer your_token_here
    ```

    Darth Vader is not allowed to publish Wookie books.
    """,
    version=api_config.api_version,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=api_config.cors_origins,
    allow_credentials=api_config.cors_allow_credentials,
    allow_methods=api_config.cors_allow_methods,
    allow_headers=api_config.cors_allow_headers,
)


def _error_response(
    status_code: int,
    error: str,
    code: str,
    fields: Optional[List[str]] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            code=code,
            status_code=status_code,
            fields=fields or None,
        ).model_dump(),
        headers=headers,
    )


# Exception handlers
@app.exception_handler(BookstoreError)
async def bookstore_exception_handler(request: Request, exc: BookstoreError):
    """Map domain errors to their HTTP status codes."""
    status_code = ERROR_STATUS_CODES.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    fields = exc.fields if isinstance(exc, ValidationFailure) else None
    return _error_response(status_code, exc.message, exc.code, fields=fields, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report every invalid request field as a validation failure."""
    fields = []
    for error in exc.errors():
        if error.get("type") == "json_invalid":
            # The location of a decode error is a character offset, not a field
            if "body" not in fields:
                fields.append("body")
            continue
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        if field not in fields:
            fields.append(field)
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        ValidationFailure.default_message,
        ValidationFailure.code,
        fields=fields,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return _error_response(exc.status_code, str(exc.detail), "http_error", headers=exc.headers)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions without leaking their details."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        InternalFailure.default_message,
        InternalFailure.code,
    )


def _parse_book_id(raw: str) -> int:
    """Parse a path id; zero and non-integers are rejected."""
    try:
        book_id = int(raw)
    except ValueError:
        raise ValidationFailure("Invalid book ID", fields=["id"])
    if not book_id:
        raise ValidationFailure("Invalid book ID", fields=["id"])
    return book_id


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    db = getattr(request.app.state, "db", None)
    db_status = "unhealthy"
    if db is not None:
        health_info = await db.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(tz=timezone.utc),
        version=api_config.api_version,
        database_status=db_status
    )


# Auth endpoints
@app.post("/auth/login", response_model=TokenResponse, tags=["Auth"])
async def login(
    body: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Exchange a username and password for a bearer token."""
    return TokenResponse(**await auth_service.login(body.username, body.password))


# User endpoints
@app.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED, tags=["Users"])
async def create_user(
    body: CreateUserRequest,
    users_service: UsersService = Depends(get_users_service),
):
    """Register a user; the author pseudonym starts out as the username."""
    identity = await users_service.register(body.username, body.password)
    return UserResponse.from_identity(identity)


@app.get("/users/me", response_model=UserResponse, tags=["Users"])
async def get_profile(
    identity: AuthenticatedIdentity = Depends(authenticate_request),
    users_service: UsersService = Depends(get_users_service),
):
    """Get the caller's profile."""
    return UserResponse.from_identity(await users_service.get_profile(identity.id))


@app.patch("/users/me", response_model=UserResponse, tags=["Users"])
async def update_profile(
    body: UpdateUserRequest,
    identity: AuthenticatedIdentity = Depends(authenticate_request),
    users_service: UsersService = Depends(get_users_service),
):
    """Update the caller's username, password or author pseudonym."""
    changes = body.model_dump(exclude_unset=True)
    updated = await users_service.update_profile(identity.id, **changes)
    return UserResponse.from_identity(updated)


@app.delete("/users/me", response_model=MessageResponse, tags=["Users"])
async def delete_profile(
    identity: AuthenticatedIdentity = Depends(authenticate_request),
    users_service: UsersService = Depends(get_users_service),
):
    """Delete the caller's account along with the books they authored."""
    await users_service.delete_account(identity.id)
    return MessageResponse(message="User profile deleted successfully")


# Books endpoints
@app.get("/books", response_model=List[BookResponse], tags=["Books"])
async def get_books(
    title: Optional[str] = None,
    author_pseudonym: Optional[str] = Query(None, alias="authorPseudonym"),
    is_published: Optional[str] = Query(None, alias="isPublished"),
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    search: Optional[str] = None,
    books_service: BooksService = Depends(get_books_service),
):
    """
    List books.

    - **title**: Title contains this value
    - **authorPseudonym**: Author pseudonym contains this value
    - **isPublished**: `true` for published books, anything else for unpublished
    - **minPrice** / **maxPrice**: Inclusive price range, applied only when both are given
    - **search**: Exact title or description match; used only without the filters above

    With no parameters every book is returned, including unpublished ones.
    """
    structured = (title, author_pseudonym, is_published, min_price, max_price)

    if search and all(value is None for value in structured):
        books = await books_service.find_all(search)
    else:
        filters = parse_catalog_query(
            title=title,
            author_pseudonym=author_pseudonym,
            is_published=is_published,
            min_price=min_price,
            max_price=max_price,
        )
        books = await books_service.find_all_with_filters(filters)

    return [BookResponse.from_model(book) for book in books]


@app.get("/books/{book_id}", response_model=BookResponse, tags=["Books"])
async def get_book(
    book_id: str,
    books_service: BooksService = Depends(get_books_service),
):
    """Get a single book by ID."""
    book = await books_service.find_one(_parse_book_id(book_id))
    return BookResponse.from_model(book)


@app.post("/books", response_model=BookResponse, status_code=status.HTTP_201_CREATED, tags=["Books"])
async def create_book(
    body: CreateBookRequest,
    identity: AuthenticatedIdentity = Depends(authenticate_request),
    books_service: BooksService = Depends(get_books_service),
):
    """Publish a book authored by the caller."""
    book = await books_service.create(identity, body.model_dump())
    return BookResponse.from_model(book)


@app.patch("/books/{book_id}", response_model=BookResponse, tags=["Books"])
async def update_book(
    book_id: str,
    body: UpdateBookRequest,
    identity: AuthenticatedIdentity = Depends(authenticate_request),
    books_service: BooksService = Depends(get_books_service),
):
    """Update a book the caller authored."""
    book = await books_service.update(identity, _parse_book_id(book_id), body.model_dump(exclude_unset=True))
    return BookResponse.from_model(book)


@app.delete("/books/{book_id}", response_model=BookResponse, tags=["Books"])
async def unpublish_book(
    book_id: str,
    identity: AuthenticatedIdentity = Depends(authenticate_request),
    books_service: BooksService = Depends(get_books_service),
):
    """Unpublish a book the caller authored; the record is kept."""
    book = await books_service.unpublish(identity, _parse_book_id(book_id))
    return BookResponse.from_model(book)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level=api_config.log_level.lower()
    )
