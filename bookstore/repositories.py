"""
Data access for users and books.

``UserRepository`` is the credential store and ``BookRepository`` the book
store. Both wrap a single ``AsyncSession`` and commit after every write.
"""

from dataclasses import dataclass
from typing import List, Optional

import structlog
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from .models import BookModel, UserModel

logger = structlog.get_logger(__name__)


async def _commit(session: AsyncSession) -> None:
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        raise


@dataclass(frozen=True)
class BookFilters:
    """Parsed structured filters for the catalog listing."""

    title: Optional[str] = None
    author_pseudonym: Optional[str] = None
    is_published: Optional[bool] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None


class UserRepository:
    """Credential store backed by the ``users`` table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_username(self, username: str) -> Optional[UserModel]:
        stmt = select(UserModel).where(UserModel.username == username)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self._session.get(UserModel, user_id)

    async def add(self, user: UserModel) -> UserModel:
        self._session.add(user)
        await _commit(self._session)
        logger.info("Created user", user_id=user.id)
        return user

    async def save(self, user: UserModel) -> UserModel:
        await _commit(self._session)
        logger.debug("Updated user", user_id=user.id)
        return user

    async def delete(self, user_id: int) -> bool:
        """
        Delete a user together with every book they authored.

        Returns:
            True if the user existed and was removed
        """
        await self._session.execute(delete(BookModel).where(BookModel.author_id == user_id))
        result = await self._session.execute(delete(UserModel).where(UserModel.id == user_id))
        await _commit(self._session)

        deleted = result.rowcount > 0
        if deleted:
            logger.info("Deleted user and authored books", user_id=user_id)
        return deleted


class BookRepository:
    """Book store backed by the ``books`` table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, book_id: int) -> Optional[BookModel]:
        return await self._session.get(BookModel, book_id)

    async def add(self, book: BookModel) -> BookModel:
        self._session.add(book)
        await _commit(self._session)
        logger.info("Created book", book_id=book.id, author_id=book.author_id)
        return book

    async def save(self, book: BookModel) -> BookModel:
        await _commit(self._session)
        logger.debug("Updated book", book_id=book.id)
        return book

    async def list_published(self) -> List[BookModel]:
        stmt = select(BookModel).where(BookModel.is_published.is_(True)).order_by(BookModel.id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def search_exact(self, term: str) -> List[BookModel]:
        """Books whose title or description equals ``term``, published or not."""
        stmt = (
            select(BookModel)
            .where(or_(BookModel.title == term, BookModel.description == term))
            .order_by(BookModel.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_filtered(self, filters: BookFilters) -> List[BookModel]:
        """
        Books matching every filter that is set.

        With no filter set every row is returned, published or not.
        """
        stmt = (
            select(BookModel)
            .outerjoin(BookModel.author)
            .options(contains_eager(BookModel.author))
        )

        if filters.title is not None:
            stmt = stmt.where(BookModel.title.contains(filters.title))

        if filters.author_pseudonym is not None:
            stmt = stmt.where(UserModel.id.is_not(None))
            stmt = stmt.where(UserModel.author_pseudonym.contains(filters.author_pseudonym))

        if filters.is_published is not None:
            stmt = stmt.where(BookModel.is_published == filters.is_published)

        if filters.min_price is not None and filters.max_price is not None:
            stmt = stmt.where(BookModel.price.between(filters.min_price, filters.max_price))

        result = await self._session.execute(stmt.order_by(BookModel.id))
        return list(result.scalars().all())
