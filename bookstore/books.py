"""
Book catalog reads and the ownership rules for book mutations.

Reads:
- ``find_all`` is the simple listing: published books only, or an exact
  title/description match (published or not) when a search term is given.
- ``find_all_with_filters`` ANDs together substring, flag and price-range
  filters and, with no filter at all, returns every book.

Mutations:
- create is refused for the reserved username "Darth Vader"
- update and unpublish are restricted to the book's author
- unpublish only clears the publication flag; books are never hard-deleted
"""

from typing import Any, Dict, List, Mapping, Optional

import structlog

from .auth import AuthenticatedIdentity
from .exceptions import (
    BookstoreError,
    Forbidden,
    InternalFailure,
    NotFound,
    Unauthorized,
    ValidationFailure,
)
from .models import BookModel
from .repositories import BookFilters, BookRepository, UserRepository

logger = structlog.get_logger(__name__)

FORBIDDEN_AUTHOR = "Darth Vader"
FORBIDDEN_AUTHOR_MESSAGE = "Darth Vader is not allowed to publish Wookie books."

# Fields a caller may set; the author is always taken from the identity
EDITABLE_FIELDS = ("title", "description", "cover_image", "price", "is_published")
REQUIRED_FIELDS = ("title", "price")
NULLABLE_FIELDS = ("description", "cover_image")

# Largest value a SQLite INTEGER primary key can hold
MAX_BOOK_ID = 2**63 - 1


def parse_catalog_query(
    title: Optional[str] = None,
    author_pseudonym: Optional[str] = None,
    is_published: Optional[str] = None,
    min_price: Optional[str] = None,
    max_price: Optional[str] = None,
) -> BookFilters:
    """
    Turn raw query-string values into catalog filters.

    Args:
        title: Substring of the title; ignored when empty
        author_pseudonym: Substring of the author's pseudonym; ignored when empty
        is_published: ``"true"`` selects published books, any other value
            selects unpublished ones
        min_price: Lower price bound, only applied together with ``max_price``
        max_price: Upper price bound, only applied together with ``min_price``

    Raises:
        ValidationFailure: both price bounds are given and one is not a number
    """
    price_range = (None, None)
    if min_price and max_price:
        invalid = []
        bounds = []
        for name, raw in (("minPrice", min_price), ("maxPrice", max_price)):
            try:
                bounds.append(float(raw))
            except ValueError:
                invalid.append(name)
        if invalid:
            raise ValidationFailure("Price bounds must be numbers", fields=invalid)
        price_range = (bounds[0], bounds[1])

    return BookFilters(
        title=title or None,
        author_pseudonym=author_pseudonym or None,
        is_published=None if is_published is None else is_published == "true",
        min_price=price_range[0],
        max_price=price_range[1],
    )


class BooksService:
    """Catalog queries and owner-checked mutations on books."""

    def __init__(self, book_repository: BookRepository, user_repository: UserRepository):
        self.book_repository = book_repository
        self.user_repository = user_repository

    async def find_all(self, search: Optional[str] = None) -> List[BookModel]:
        try:
            if search:
                return await self.book_repository.search_exact(search)
            return await self.book_repository.list_published()
        except Exception as e:
            logger.error("Failed to fetch books", error=str(e))
            raise InternalFailure("An error occurred while fetching books") from e

    async def find_all_with_filters(self, filters: BookFilters) -> List[BookModel]:
        try:
            return await self.book_repository.list_filtered(filters)
        except Exception as e:
            logger.error("Failed to filter books", filters=str(filters), error=str(e))
            raise InternalFailure("An error occurred while applying filters to books") from e

    async def find_one(self, book_id: Optional[int]) -> BookModel:
        _check_book_id(book_id)

        try:
            book = await self.book_repository.get_by_id(book_id)
        except Exception as e:
            logger.error("Failed to fetch book", book_id=book_id, error=str(e))
            raise InternalFailure("An error occurred while fetching the book") from e

        if book is None:
            raise NotFound("Book not found")
        return book

    async def create(self, identity: AuthenticatedIdentity, book_data: Mapping[str, Any]) -> BookModel:
        """
        Create a book authored by the caller.

        Raises:
            ValidationFailure: title or price is missing
            NotFound: the caller's account no longer exists
            Forbidden: the caller is the reserved forbidden author
        """
        missing = [name for name in REQUIRED_FIELDS if book_data.get(name) in (None, "")]
        if missing:
            raise ValidationFailure("Title and price are required", fields=missing)

        try:
            author = await self.user_repository.get_by_id(identity.id)
            if author is None:
                raise NotFound("Author not found")

            if author.username == FORBIDDEN_AUTHOR:
                logger.warning("Forbidden author attempted to publish", user_id=author.id)
                raise Forbidden(FORBIDDEN_AUTHOR_MESSAGE)

            fields = _editable(book_data)
            if fields.get("is_published") is None:
                fields["is_published"] = True

            book = BookModel(**fields, author=author)
            return await self.book_repository.add(book)

        except BookstoreError:
            raise
        except Exception as e:
            logger.error("Failed to create book", user_id=identity.id, error=str(e))
            raise InternalFailure("An error occurred while creating the book") from e

    async def _get_owned_book(self, identity: AuthenticatedIdentity, book_id: int, action: str) -> BookModel:
        book = await self.book_repository.get_by_id(book_id)
        if book is None:
            raise NotFound("Book not found")

        if book.author_id is None or book.author_id != identity.id:
            logger.info("Rejected non-owner mutation", book_id=book_id, user_id=identity.id, action=action)
            raise Unauthorized(f"You are not authorized to {action} this book")
        return book

    async def update(
        self,
        identity: AuthenticatedIdentity,
        book_id: Optional[int],
        changes: Mapping[str, Any],
    ) -> BookModel:
        """
        Merge ``changes`` into a book the caller owns.

        Keys outside the editable fields, such as an author, are ignored.
        """
        _check_book_id(book_id)

        try:
            book = await self._get_owned_book(identity, book_id, "update")

            for name, value in _editable(changes).items():
                if value is None and name not in NULLABLE_FIELDS:
                    continue
                setattr(book, name, value)

            return await self.book_repository.save(book)

        except BookstoreError:
            raise
        except Exception as e:
            logger.error("Failed to update book", book_id=book_id, error=str(e))
            raise InternalFailure("An error occurred while updating the book") from e

    async def unpublish(self, identity: AuthenticatedIdentity, book_id: Optional[int]) -> BookModel:
        """Clear the publication flag on a book the caller owns; repeat calls succeed."""
        _check_book_id(book_id)

        try:
            book = await self._get_owned_book(identity, book_id, "unpublish")
            book.is_published = False
            return await self.book_repository.save(book)

        except BookstoreError:
            raise
        except Exception as e:
            logger.error("Failed to unpublish book", book_id=book_id, error=str(e))
            raise InternalFailure("An error occurred while unpublishing the book") from e


def _check_book_id(book_id: Optional[int]) -> None:
    if not book_id:
        raise ValidationFailure("Invalid book ID", fields=["id"])
    if not -MAX_BOOK_ID <= book_id <= MAX_BOOK_ID:
        raise NotFound("Book not found")


def _editable(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {name: data[name] for name in EDITABLE_FIELDS if name in data}
