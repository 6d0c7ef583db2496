"""
SQLAlchemy ORM models for users and books.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates

PRICE_QUANTUM = Decimal("0.01")


class Base(DeclarativeBase):
    """Declarative base for all bookstore tables."""


class UserModel(Base):
    """
    A registered user.

    The password digest never leaves the service layer; responses are built
    from the public fields only.

    Table: users
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    author_pseudonym: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<UserModel(id={self.id}, username={self.username!r})>"


class BookModel(Base):
    """
    A book owned by exactly one author.

    Table: books
    """

    __tablename__ = "books"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cover_image: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    author_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    author: Mapped[Optional[UserModel]] = relationship(lazy="joined")

    @validates("price")
    def _round_price(self, key, value):
        # Two decimal places, matching the column scale
        if value is None:
            return value
        return Decimal(str(value)).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)

    def __repr__(self) -> str:
        return f"<BookModel(id={self.id}, title={self.title!r}, author_id={self.author_id})>"
