"""
Tests for user registration and self-service profile operations.
"""

import pytest

from bookstore.exceptions import NotFound, ValidationFailure
from bookstore.repositories import BookFilters


class TestRegister:
    """Test cases for UsersService.register."""

    @pytest.mark.asyncio
    async def test_pseudonym_defaults_to_username(self, users_service):
        identity = await users_service.register("han", "falcon")

        assert identity.username == "han"
        assert identity.author_pseudonym == "han"

    @pytest.mark.asyncio
    async def test_password_is_stored_hashed(self, users_service, user_repository, password_hasher):
        identity = await users_service.register("han", "falcon")

        stored = await user_repository.get_by_id(identity.id)
        assert stored.password != "falcon"
        assert password_hasher.verify("falcon", stored.password)

    @pytest.mark.asyncio
    async def test_duplicate_username_is_rejected(self, users_service):
        await users_service.register("han", "falcon")

        with pytest.raises(ValidationFailure, match="already exists") as exc_info:
            await users_service.register("han", "another")

        assert exc_info.value.fields == ["username"]

    @pytest.mark.asyncio
    async def test_blank_fields_are_all_reported(self, users_service):
        with pytest.raises(ValidationFailure) as exc_info:
            await users_service.register("", "")

        assert exc_info.value.fields == ["username", "password"]


class TestProfile:
    """Test cases for profile reads, updates and deletion."""

    @pytest.mark.asyncio
    async def test_get_profile(self, users_service, make_user):
        user = await make_user("lando", author_pseudonym="Baron Administrator")

        identity = await users_service.get_profile(user.id)

        assert identity.author_pseudonym == "Baron Administrator"

    @pytest.mark.asyncio
    async def test_get_profile_of_deleted_user(self, users_service):
        with pytest.raises(NotFound):
            await users_service.get_profile(404)

    @pytest.mark.asyncio
    async def test_partial_update(self, users_service, make_user):
        user = await make_user("lando")

        identity = await users_service.update_profile(user.id, author_pseudonym="Calrissian")

        assert identity.username == "lando"
        assert identity.author_pseudonym == "Calrissian"

    @pytest.mark.asyncio
    async def test_password_update_is_hashed(self, users_service, user_repository, password_hasher, make_user):
        user = await make_user("lando", password="cloud-city")

        await users_service.update_profile(user.id, password="bespin")

        stored = await user_repository.get_by_id(user.id)
        assert stored.password != "bespin"
        assert password_hasher.verify("bespin", stored.password)

    @pytest.mark.asyncio
    async def test_update_to_taken_username_is_rejected(self, users_service, make_user):
        await make_user("lando")
        user = await make_user("lobot")

        with pytest.raises(ValidationFailure, match="already exists"):
            await users_service.update_profile(user.id, username="lando")

    @pytest.mark.asyncio
    async def test_update_missing_user(self, users_service):
        with pytest.raises(NotFound):
            await users_service.update_profile(404, author_pseudonym="Nobody")

    @pytest.mark.asyncio
    async def test_delete_removes_user_and_their_books(
        self, users_service, user_repository, book_repository, make_user, make_book
    ):
        author = await make_user("jabba")
        other = await make_user("bib")
        await make_book(author, title="Palace Etiquette")
        await make_book(author, title="Rancor Care", is_published=False)
        await make_book(other, title="Translator's Notes")

        await users_service.delete_account(author.id)

        remaining = await book_repository.list_filtered(BookFilters())
        assert [book.title for book in remaining] == ["Translator's Notes"]
        assert await user_repository.get_by_username("jabba") is None

    @pytest.mark.asyncio
    async def test_delete_missing_user(self, users_service):
        with pytest.raises(NotFound):
            await users_service.delete_account(404)
