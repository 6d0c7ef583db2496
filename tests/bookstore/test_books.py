"""
Tests for book catalog queries and owner-checked book mutations.
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from bookstore.auth import AuthenticatedIdentity
from bookstore.books import BooksService, parse_catalog_query
from bookstore.exceptions import Forbidden, InternalFailure, NotFound, Unauthorized, ValidationFailure
from bookstore.repositories import BookFilters, BookRepository, UserRepository


class TestCreate:
    """Test cases for BooksService.create."""

    @pytest.mark.asyncio
    async def test_author_is_the_creator(self, books_service, make_user, identity_for):
        user = await make_user("luke")

        book = await books_service.create(identity_for(user), {"title": "Jedi Training", "price": 12.5})

        assert book.id is not None
        assert book.author.id == user.id
        assert book.is_published is True

    @pytest.mark.asyncio
    async def test_explicit_unpublished_flag_is_kept(self, books_service, make_user, identity_for):
        user = await make_user("luke")

        book = await books_service.create(
            identity_for(user),
            {"title": "Draft", "price": 1, "is_published": False},
        )

        assert book.is_published is False

    @pytest.mark.asyncio
    async def test_supplied_author_is_ignored(self, books_service, make_user, identity_for):
        user = await make_user("luke")
        other = await make_user("leia")

        book = await books_service.create(
            identity_for(user),
            {"title": "Jedi Training", "price": 12.5, "author": other, "author_id": other.id},
        )

        assert book.author_id == user.id

    @pytest.mark.asyncio
    async def test_darth_vader_may_not_publish(self, books_service, make_user, identity_for):
        vader = await make_user("Darth Vader")

        with pytest.raises(Forbidden, match="Wookie"):
            await books_service.create(identity_for(vader), {"title": "Wookie Cookbook", "price": 9.99})

    @pytest.mark.asyncio
    async def test_forbidden_author_match_is_case_sensitive(self, books_service, make_user, identity_for):
        user = await make_user("darth vader")

        book = await books_service.create(identity_for(user), {"title": "Sith Happens", "price": 9.99})

        assert book.author_id == user.id

    @pytest.mark.asyncio
    async def test_dangling_identity_is_not_found(self, books_service):
        with pytest.raises(NotFound, match="Author"):
            await books_service.create(AuthenticatedIdentity(id=999), {"title": "Ghost", "price": 1})

    @pytest.mark.asyncio
    async def test_missing_required_fields(self, books_service, make_user, identity_for):
        user = await make_user("luke")

        with pytest.raises(ValidationFailure) as exc_info:
            await books_service.create(identity_for(user), {"description": "No title"})

        assert exc_info.value.fields == ["title", "price"]

    @pytest.mark.asyncio
    async def test_price_is_rounded_to_cents(self, books_service, book_repository, make_user, identity_for):
        user = await make_user("luke")

        book = await books_service.create(identity_for(user), {"title": "Bounty", "price": 10.555})
        matched = await book_repository.list_filtered(BookFilters(min_price=10.56, max_price=10.56))

        assert book.price == Decimal("10.56")
        assert [found.id for found in matched] == [book.id]


class TestUpdate:
    """Test cases for BooksService.update."""

    @pytest.mark.asyncio
    async def test_owner_update_merges_fields(self, books_service, make_user, make_book, identity_for):
        user = await make_user("luke")
        book = await make_book(user, title="Old Title", price=10, description="Kept")

        updated = await books_service.update(identity_for(user), book.id, {"title": "New Title", "price": 15})

        assert updated.title == "New Title"
        assert float(updated.price) == 15
        assert updated.description == "Kept"

    @pytest.mark.asyncio
    async def test_non_owner_is_unauthorized(self, books_service, make_user, make_book, identity_for):
        owner = await make_user("luke")
        intruder = await make_user("leia")
        book = await make_book(owner)

        with pytest.raises(Unauthorized):
            await books_service.update(identity_for(intruder), book.id, {"title": "Mine Now"})

    @pytest.mark.asyncio
    async def test_author_cannot_be_changed(self, books_service, make_user, make_book, identity_for):
        owner = await make_user("luke")
        other = await make_user("leia")
        book = await make_book(owner)

        updated = await books_service.update(
            identity_for(owner),
            book.id,
            {"author": other, "author_id": other.id, "title": "Still Mine"},
        )

        assert updated.author_id == owner.id
        assert updated.title == "Still Mine"

    @pytest.mark.asyncio
    async def test_forbidden_author_may_update(self, books_service, make_user, make_book, identity_for):
        vader = await make_user("Darth Vader")
        book = await make_book(vader, title="Written Before The Rule")

        updated = await books_service.update(identity_for(vader), book.id, {"price": 1})

        assert float(updated.price) == 1

    @pytest.mark.asyncio
    async def test_missing_book(self, books_service, make_user, identity_for):
        user = await make_user("luke")

        with pytest.raises(NotFound):
            await books_service.update(identity_for(user), 999, {"title": "Nothing"})


class TestUnpublish:
    """Test cases for BooksService.unpublish."""

    @pytest.mark.asyncio
    async def test_unpublish_is_idempotent(self, books_service, book_repository, make_user, make_book, identity_for):
        user = await make_user("luke")
        book = await make_book(user)

        first = await books_service.unpublish(identity_for(user), book.id)
        second = await books_service.unpublish(identity_for(user), book.id)

        assert first.is_published is False
        assert second.is_published is False
        assert await book_repository.get_by_id(book.id) is not None

    @pytest.mark.asyncio
    async def test_non_owner_is_unauthorized(self, books_service, make_user, make_book, identity_for):
        owner = await make_user("luke")
        intruder = await make_user("leia")
        book = await make_book(owner)

        with pytest.raises(Unauthorized, match="unpublish"):
            await books_service.unpublish(identity_for(intruder), book.id)

    @pytest.mark.asyncio
    async def test_missing_book(self, books_service, make_user, identity_for):
        user = await make_user("luke")

        with pytest.raises(NotFound):
            await books_service.unpublish(identity_for(user), 999)


class TestFindOne:
    """Test cases for BooksService.find_one."""

    @pytest.mark.asyncio
    async def test_found(self, books_service, make_user, make_book):
        user = await make_user("luke")
        book = await make_book(user, title="Found")

        assert (await books_service.find_one(book.id)).title == "Found"

    @pytest.mark.asyncio
    async def test_missing(self, books_service):
        with pytest.raises(NotFound):
            await books_service.find_one(999)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("book_id", [0, None])
    async def test_invalid_id(self, books_service, book_id):
        with pytest.raises(ValidationFailure):
            await books_service.find_one(book_id)

    @pytest.mark.asyncio
    async def test_id_beyond_integer_range_is_not_found(self, books_service, make_user, identity_for):
        user = await make_user("luke")
        book_id = 2**70

        with pytest.raises(NotFound):
            await books_service.find_one(book_id)
        with pytest.raises(NotFound):
            await books_service.update(identity_for(user), book_id, {"title": "Nothing"})
        with pytest.raises(NotFound):
            await books_service.unpublish(identity_for(user), book_id)


class TestSimpleListing:
    """Test cases for BooksService.find_all."""

    @pytest.mark.asyncio
    async def test_without_search_only_published(self, books_service, make_user, make_book):
        user = await make_user("luke")
        await make_book(user, title="Published")
        await make_book(user, title="Hidden", is_published=False)

        books = await books_service.find_all()

        assert [book.title for book in books] == ["Published"]

    @pytest.mark.asyncio
    async def test_search_is_exact_and_ignores_publication(self, books_service, make_user, make_book):
        user = await make_user("luke")
        await make_book(user, title="Hoth", is_published=False)
        await make_book(user, title="Other", description="Hoth")
        await make_book(user, title="Hoth Survival Guide")

        books = await books_service.find_all("Hoth")

        assert sorted(book.title for book in books) == ["Hoth", "Other"]

    @pytest.mark.asyncio
    async def test_store_failure_is_internal(self):
        repository = AsyncMock(spec=BookRepository)
        repository.list_published.side_effect = RuntimeError("disk I/O error")
        service = BooksService(repository, AsyncMock(spec=UserRepository))

        with pytest.raises(InternalFailure, match="fetching books"):
            await service.find_all()


class TestFilteredListing:
    """Test cases for BooksService.find_all_with_filters."""

    @pytest.mark.asyncio
    async def test_no_filters_returns_every_book(self, books_service, make_user, make_book):
        user = await make_user("luke")
        await make_book(user, title="Published")
        await make_book(user, title="Hidden", is_published=False)

        books = await books_service.find_all_with_filters(parse_catalog_query())

        assert len(books) == 2

    @pytest.mark.asyncio
    async def test_price_range_is_inclusive(self, books_service, make_user, make_book):
        user = await make_user("luke")
        for price in (5, 15, 25, 35):
            await make_book(user, title=f"Book {price}", price=price)

        books = await books_service.find_all_with_filters(parse_catalog_query(min_price="10", max_price="30"))

        assert sorted(float(book.price) for book in books) == [15.0, 25.0]

    @pytest.mark.asyncio
    async def test_single_price_bound_is_ignored(self, books_service, make_user, make_book):
        user = await make_user("luke")
        for price in (5, 15, 25, 35):
            await make_book(user, title=f"Book {price}", price=price)

        books = await books_service.find_all_with_filters(parse_catalog_query(min_price="10"))

        assert len(books) == 4

    @pytest.mark.asyncio
    async def test_title_and_pseudonym_substrings(self, books_service, make_user, make_book):
        chewie = await make_user("chewie", author_pseudonym="Chewbacca the Wookiee")
        han = await make_user("han", author_pseudonym="Han Solo")
        await make_book(chewie, title="Kashyyyk Travel Guide")
        await make_book(chewie, title="Bowcaster Maintenance")
        await make_book(han, title="Kessel Run Travel Log")

        by_title = await books_service.find_all_with_filters(parse_catalog_query(title="Travel"))
        by_author = await books_service.find_all_with_filters(parse_catalog_query(author_pseudonym="Wookiee"))
        both = await books_service.find_all_with_filters(
            parse_catalog_query(title="Travel", author_pseudonym="Wookiee")
        )

        assert len(by_title) == 2
        assert {book.title for book in by_author} == {"Kashyyyk Travel Guide", "Bowcaster Maintenance"}
        assert [book.title for book in both] == ["Kashyyyk Travel Guide"]
        assert both[0].author.author_pseudonym == "Chewbacca the Wookiee"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "flag, expected",
        [("true", ["Published"]), ("false", ["Hidden"]), ("yes", ["Hidden"])],
    )
    async def test_publication_flag(self, books_service, make_user, make_book, flag, expected):
        user = await make_user("luke")
        await make_book(user, title="Published")
        await make_book(user, title="Hidden", is_published=False)

        books = await books_service.find_all_with_filters(parse_catalog_query(is_published=flag))

        assert [book.title for book in books] == expected


class TestParseCatalogQuery:
    """Test cases for parse_catalog_query."""

    def test_empty_query(self):
        assert parse_catalog_query() == BookFilters()

    def test_empty_strings_are_ignored(self):
        assert parse_catalog_query(title="", author_pseudonym="") == BookFilters()

    def test_price_bounds_require_both(self):
        filters = parse_catalog_query(min_price="10", max_price=None)
        assert filters.min_price is None and filters.max_price is None

    def test_invalid_price_bound(self):
        with pytest.raises(ValidationFailure) as exc_info:
            parse_catalog_query(min_price="cheap", max_price="30")

        assert exc_info.value.fields == ["minPrice"]
