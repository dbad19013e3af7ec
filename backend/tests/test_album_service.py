"""
Shutterbox Backend — Album Service Unit Tests
===============================================

What:  Tests for album creation, listing, visibility and updates.
How:   Mock DB sessions; albums and photos are real ORM objects that never
       touch a database.

What we test:
    ✅ Create: title/tags normalized, photos resolved in the caller's order
    ✅ Unknown photo ids and duplicate titles rejected before insert
    ✅ Cover URLs: absolute http(s) or site-relative only
    ✅ Hidden albums answer 404; hidden photos are dropped from public bodies
    ✅ Update replaces membership and re-checks a changed title
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError

from shutterbox.exceptions import ConflictError, NotFoundError, ValidationError
from shutterbox.models.album import Album
from shutterbox.models.photo import Photo
from shutterbox.schemas.album import AlbumCreateRequest, AlbumUpdateRequest
from shutterbox.services.album_service import AlbumService, public_view
from shutterbox.services.photo_service import normalize_url

CREATED = datetime(2026, 2, 1, tzinfo=timezone.utc)


def make_photo(title="Sunset", **overrides) -> Photo:
    data = dict(
        id=uuid.uuid4(),
        title=title,
        tags=[],
        is_featured=False,
        is_hidden=False,
        image_url=f"https://cdn.example.com/photography/{title.lower()}.jpg",
        thumbnail_url=f"https://cdn.example.com/photography/{title.lower()}.jpg?thumb",
        storage_id=f"photography/{title.lower()}",
        provider="fake",
        created_at=CREATED,
        updated_at=CREATED,
    )
    data.update(overrides)
    return Photo(**data)


def make_album(**overrides) -> Album:
    data = dict(
        id=uuid.uuid4(),
        title="Coastlines",
        description="Cliffs and coves",
        cover_image_url="https://cdn.example.com/covers/coast.jpg",
        tags=["coast"],
        is_featured=False,
        is_hidden=False,
        photos=[],
        created_at=CREATED,
        updated_at=CREATED,
    )
    data.update(overrides)
    return Album(**data)


class TestNormalizeUrl:

    @pytest.mark.parametrize("url", [
        "https://cdn.example.com/a.jpg",
        "http://example.com/a.jpg",
        "/api/files/photography/a.jpg",
    ])
    def test_accepted(self, url):
        assert normalize_url(f"  {url} ", "cover_image_url") == url

    @pytest.mark.parametrize("url", ["", "   ", None, "ftp://example.com/a.jpg", "javascript:alert(1)", "//evil.example.com/a.jpg", "cover.jpg"])
    def test_rejected(self, url):
        with pytest.raises(ValidationError) as exc_info:
            normalize_url(url, "cover_image_url")
        assert exc_info.value.field == "cover_image_url"


# ══════════════════════════════════════════════════════════════════════════
# Create
# ══════════════════════════════════════════════════════════════════════════

class TestCreateAlbum:

    def setup_method(self):
        self.service = AlbumService()

    @pytest.mark.asyncio
    async def test_success_keeps_requested_order(self, mock_db_session, make_result):
        first, second = make_photo("Dawn"), make_photo("Dusk")
        mock_db_session.execute = AsyncMock(side_effect=[
            make_result(one=None),
            make_result(rows=[first, second]),
        ])
        request = AlbumCreateRequest(
            title="  Coastlines ",
            cover_image_url="/api/files/covers/coast.jpg",
            photo_ids=[second.id, first.id, second.id],
            tags="Coast, Sea",
            is_featured="true",
        )
        admin = uuid.uuid4()

        album = await self.service.create_album(mock_db_session, admin, request)

        assert album.title == "Coastlines"
        assert album.tags == ["coast", "sea"]
        assert album.is_featured is True
        assert album.is_hidden is False
        assert album.created_by == admin
        assert [p.id for p in album.photos] == [second.id, first.id]
        mock_db_session.add.assert_called_once()

    @pytest.mark.asyncio
    async def test_unknown_photo_ids(self, mock_db_session, make_result):
        known = make_photo()
        missing = uuid.uuid4()
        mock_db_session.execute = AsyncMock(side_effect=[
            make_result(one=None),
            make_result(rows=[known]),
        ])
        request = AlbumCreateRequest(
            title="Coastlines",
            cover_image_url="https://cdn.example.com/c.jpg",
            photo_ids=[known.id, missing],
        )

        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_album(mock_db_session, None, request)

        assert exc_info.value.field == "photo_ids"
        assert exc_info.value.context["missing"] == [str(missing)]
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_title(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(return_value=make_result(one=uuid.uuid4()))
        request = AlbumCreateRequest(title="Coastlines", cover_image_url="https://cdn.example.com/c.jpg")

        with pytest.raises(ConflictError) as exc_info:
            await self.service.create_album(mock_db_session, None, request)

        assert exc_info.value.field == "title"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_insert_race_is_conflict(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(return_value=make_result(one=None))
        mock_db_session.flush = AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception("unique")))
        request = AlbumCreateRequest(title="Coastlines", cover_image_url="https://cdn.example.com/c.jpg")

        with pytest.raises(ConflictError):
            await self.service.create_album(mock_db_session, None, request)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title", ["   ", "Coast <b>"])
    async def test_bad_title(self, mock_db_session, title):
        request = AlbumCreateRequest(title=title, cover_image_url="https://cdn.example.com/c.jpg")

        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_album(mock_db_session, None, request)

        assert exc_info.value.field == "title"
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_too_many_tags(self, mock_db_session):
        request = AlbumCreateRequest(
            title="Coastlines",
            cover_image_url="https://cdn.example.com/c.jpg",
            tags=[f"t{i}" for i in range(21)],
        )

        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_album(mock_db_session, None, request)
        assert exc_info.value.field == "tags"


# ══════════════════════════════════════════════════════════════════════════
# Read
# ══════════════════════════════════════════════════════════════════════════

class TestReadAlbums:

    def setup_method(self):
        self.service = AlbumService()

    def test_public_view_drops_hidden_photos(self):
        shown, hidden = make_photo("Dawn"), make_photo("Secret", is_hidden=True)
        album = make_album(photos=[shown, hidden])

        view = public_view(album)

        assert [p.id for p in view.photos] == [shown.id]
        assert "is_hidden" not in view.model_dump()

    @pytest.mark.asyncio
    async def test_get_hidden_album_is_not_found(self, mock_db_session, make_result):
        album = make_album(is_hidden=True)
        mock_db_session.execute = AsyncMock(return_value=make_result(one=album))

        with pytest.raises(NotFoundError):
            await self.service.get_album(mock_db_session, album.id)

    @pytest.mark.asyncio
    async def test_get_missing_album(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(return_value=make_result(one=None))

        with pytest.raises(NotFoundError):
            await self.service.get_album(mock_db_session, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_list_pagination(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(side_effect=[
            make_result(scalar=11),
            make_result(rows=[make_album()]),
        ])

        result = await self.service.list_albums(mock_db_session, page=2, limit=5, tag="Coast", search="cliff")

        assert len(result.albums) == 1
        assert result.pagination.total == 11
        assert result.pagination.total_pages == 3
        assert result.pagination.has_next_page is True
        assert result.pagination.has_prev_page is True

    @pytest.mark.asyncio
    async def test_featured_limit_clamped(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(side_effect=[make_result(scalar=0), make_result(rows=[])])

        result = await self.service.list_featured(mock_db_session, page=1, limit=500)

        assert result.pagination.limit == 10
        assert result.albums == []


# ══════════════════════════════════════════════════════════════════════════
# Update / Delete
# ══════════════════════════════════════════════════════════════════════════

class TestUpdateAlbum:

    def setup_method(self):
        self.service = AlbumService()

    @pytest.mark.asyncio
    async def test_replace_photos_and_flags(self, mock_db_session, make_result):
        album = make_album(photos=[make_photo("Old")])
        new = make_photo("New")
        mock_db_session.execute = AsyncMock(side_effect=[
            make_result(one=album),
            make_result(rows=[new]),
        ])

        result = await self.service.update_album(
            mock_db_session,
            album.id,
            AlbumUpdateRequest(photo_ids=[new.id], is_hidden="true"),
        )

        assert [p.id for p in result.photos] == [new.id]
        assert result.is_hidden is True
        assert result.title == "Coastlines"

    @pytest.mark.asyncio
    async def test_renamed_title_conflict(self, mock_db_session, make_result):
        album = make_album()
        mock_db_session.execute = AsyncMock(side_effect=[
            make_result(one=album),
            make_result(one=uuid.uuid4()),
        ])

        with pytest.raises(ConflictError):
            await self.service.update_album(mock_db_session, album.id, AlbumUpdateRequest(title="Mountains"))

        assert album.title == "Coastlines"

    @pytest.mark.asyncio
    async def test_same_title_skips_conflict_check(self, mock_db_session, make_result):
        album = make_album()
        mock_db_session.execute = AsyncMock(return_value=make_result(one=album))

        await self.service.update_album(
            mock_db_session, album.id, AlbumUpdateRequest(title=" Coastlines ", description="New words")
        )

        assert mock_db_session.execute.await_count == 1
        assert album.description == "New words"

    @pytest.mark.asyncio
    async def test_delete(self, mock_db_session, make_result):
        album = make_album()
        mock_db_session.execute = AsyncMock(return_value=make_result(one=album))

        result = await self.service.delete_album(mock_db_session, album.id)

        assert result.message == "Album deleted successfully"
        mock_db_session.delete.assert_awaited_once_with(album)
