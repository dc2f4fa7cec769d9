import io
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from animelist.core.errors import NotFoundOrForbidden, StoreUnavailable, ValidationError
from animelist.models import AnimeEntry
from animelist.schemas.anime import EPISODES_MAX, AnimeEntryInput
from animelist.schemas.common import parse_input
from animelist.services import anime as anime_service
from animelist.services.storage import AssetStorage


def entry_fields(**overrides):
    values = {"title": "Bocchi the Rock", "rating": "9", "episodes": "12", "genre": "Music"}
    values.update(overrides)
    return parse_input(AnimeEntryInput, **values)


def png_upload(name="cover.png", payload=b"\x89PNG\r\n\x1a\n fake"):
    return SimpleNamespace(filename=name, content_type="image/png", file=io.BytesIO(payload))


@pytest.fixture()
def alice(make_user):
    return make_user("alice")


@pytest.fixture()
def bob(make_user):
    return make_user("bob")


@pytest.mark.parametrize("rating", ["0", "11", "-1", "abc", "7.5", ""])
def test_rating_outside_range_is_rejected(rating):
    with pytest.raises(ValidationError) as excinfo:
        entry_fields(rating=rating)
    assert "Rating must be a whole number between 1 and 10" in str(excinfo.value)


@pytest.mark.parametrize("rating, expected", [("1", 1), ("10", 10), (" 5 ", 5), (7, 7)])
def test_rating_bounds_are_inclusive(rating, expected):
    assert entry_fields(rating=rating).rating == expected


def test_input_normalizes_optional_fields():
    fields = entry_fields(title="  Frieren  ", episodes="", genre="   ")
    assert fields.title == "Frieren"
    assert fields.episodes is None
    assert fields.genre is None


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"title": "   "}, "Title is required"),
        ({"episodes": "-3"}, "Episodes must be a non-negative whole number"),
        ({"episodes": "many"}, "Episodes must be a non-negative whole number"),
        ({"episodes": str(EPISODES_MAX + 1)}, f"Episodes cannot exceed {EPISODES_MAX}"),
        ({"episodes": "99999999999999999999"}, f"Episodes cannot exceed {EPISODES_MAX}"),
        ({"rating": "99999999999999999999"}, "Rating must be a whole number between 1 and 10"),
    ],
)
def test_invalid_fields_are_rejected(overrides, message):
    with pytest.raises(ValidationError) as excinfo:
        entry_fields(**overrides)
    assert str(excinfo.value) == message


def test_largest_storable_episode_count_is_accepted(session, alice):
    entry = anime_service.add_entry(session, alice.id, entry_fields(episodes=str(EPISODES_MAX)))
    assert session.get(AnimeEntry, entry.id).episodes == EPISODES_MAX


def test_add_and_list_entries_newest_first(session, alice):
    first = anime_service.add_entry(session, alice.id, entry_fields(title="First"))
    second = anime_service.add_entry(session, alice.id, entry_fields(title="Second", episodes="0"))

    entries = anime_service.list_entries(session, alice.id)

    assert [entry.id for entry in entries] == [second.id, first.id]
    assert entries[0].episodes == 0
    assert entries[1].genre == "Music"


def test_list_entries_is_scoped_to_owner(session, alice, bob):
    anime_service.add_entry(session, alice.id, entry_fields())

    assert anime_service.list_entries(session, bob.id) == []
    assert len(anime_service.list_entries(session, alice.id)) == 1


def test_get_entry_hides_other_users_entries(session, alice, bob):
    entry = anime_service.add_entry(session, alice.id, entry_fields())

    assert anime_service.get_entry(session, alice.id, entry.id).id == entry.id
    with pytest.raises(NotFoundOrForbidden) as foreign:
        anime_service.get_entry(session, bob.id, entry.id)
    with pytest.raises(NotFoundOrForbidden) as missing:
        anime_service.get_entry(session, bob.id, entry.id + 1000)
    assert str(foreign.value) == str(missing.value)


def test_update_and_delete_require_ownership(session, alice, bob, storage):
    entry = anime_service.add_entry(session, alice.id, entry_fields())

    with pytest.raises(NotFoundOrForbidden):
        anime_service.update_entry(session, bob.id, entry.id, entry_fields(title="Hijacked"), storage)
    with pytest.raises(NotFoundOrForbidden):
        anime_service.delete_entry(session, bob.id, entry.id, storage)

    session.expire_all()
    stored = session.get(AnimeEntry, entry.id)
    assert stored is not None
    assert stored.title == "Bocchi the Rock"


def test_update_entry_changes_fields(session, alice, storage):
    entry = anime_service.add_entry(session, alice.id, entry_fields())

    updated = anime_service.update_entry(
        session, alice.id, entry.id, entry_fields(title="Bocchi the Rock!", rating="10", episodes="", genre=""), storage
    )

    assert updated.title == "Bocchi the Rock!"
    assert updated.rating == 10
    assert updated.episodes is None
    assert updated.genre is None


def test_update_with_new_image_releases_previous_one(session, alice, storage):
    old_image = storage.save(png_upload())
    entry = anime_service.add_entry(session, alice.id, entry_fields(), image_path=old_image)
    new_image = storage.save(png_upload("new.webp"))

    updated = anime_service.update_entry(session, alice.id, entry.id, entry_fields(), storage, image_path=new_image)

    assert updated.image_path == new_image
    assert not storage.path_for(old_image).exists()
    assert storage.path_for(new_image).exists()


def test_update_without_new_image_keeps_current_one(session, alice, storage):
    image = storage.save(png_upload())
    entry = anime_service.add_entry(session, alice.id, entry_fields(), image_path=image)

    updated = anime_service.update_entry(session, alice.id, entry.id, entry_fields(rating="3"), storage)

    assert updated.image_path == image
    assert storage.path_for(image).exists()


def test_update_can_remove_image(session, alice, storage):
    image = storage.save(png_upload())
    entry = anime_service.add_entry(session, alice.id, entry_fields(), image_path=image)

    updated = anime_service.update_entry(session, alice.id, entry.id, entry_fields(), storage, remove_image=True)

    assert updated.image_path is None
    assert not storage.path_for(image).exists()


def test_rejected_update_discards_new_upload(session, alice, bob, storage):
    entry = anime_service.add_entry(session, alice.id, entry_fields())
    new_image = storage.save(png_upload())

    with pytest.raises(NotFoundOrForbidden):
        anime_service.update_entry(session, bob.id, entry.id, entry_fields(), storage, image_path=new_image)

    assert not storage.path_for(new_image).exists()


def test_delete_entry_with_image_removes_row_and_file(session, alice, storage):
    image = storage.save(png_upload())
    entry = anime_service.add_entry(session, alice.id, entry_fields(), image_path=image)

    anime_service.delete_entry(session, alice.id, entry.id, storage)

    assert session.get(AnimeEntry, entry.id) is None
    assert not storage.path_for(image).exists()


def test_delete_entry_without_image_makes_no_storage_call(session, alice):
    storage = MagicMock(spec=AssetStorage)
    entry = anime_service.add_entry(session, alice.id, entry_fields())

    anime_service.delete_entry(session, alice.id, entry.id, storage)

    assert session.get(AnimeEntry, entry.id) is None
    storage.release.assert_not_called()


def test_failed_asset_release_does_not_block_delete(session, alice, storage):
    entry = anime_service.add_entry(session, alice.id, entry_fields(), image_path="1700000000000-1.png")

    # The file was never written, so release fails and is only logged.
    anime_service.delete_entry(session, alice.id, entry.id, storage)

    assert session.get(AnimeEntry, entry.id) is None


def test_release_errors_are_contained(session, alice):
    storage = MagicMock(spec=AssetStorage)
    storage.release.return_value = False
    entry = anime_service.add_entry(session, alice.id, entry_fields(), image_path="cover.png")

    anime_service.delete_entry(session, alice.id, entry.id, storage)

    storage.release.assert_called_once_with("cover.png")
    assert session.get(AnimeEntry, entry.id) is None


def test_failed_commit_discards_new_upload(session, alice, storage, monkeypatch):
    image = storage.save(png_upload())

    def failing_commit():
        raise OperationalError("INSERT INTO anime_entries", {}, Exception("disk I/O error"))

    with monkeypatch.context() as patch:
        patch.setattr(session, "commit", failing_commit)
        with pytest.raises(StoreUnavailable):
            anime_service.add_entry(session, alice.id, entry_fields(), image_path=image, storage=storage)

    assert not storage.path_for(image).exists()
    assert session.query(AnimeEntry).count() == 0


def test_unexpected_commit_error_still_discards_new_upload(session, alice, storage, monkeypatch):
    image = storage.save(png_upload())

    def failing_commit():
        raise OverflowError("Python int too large to convert to SQLite INTEGER")

    with monkeypatch.context() as patch:
        patch.setattr(session, "commit", failing_commit)
        with pytest.raises(OverflowError):
            anime_service.add_entry(session, alice.id, entry_fields(), image_path=image, storage=storage)

    assert not storage.path_for(image).exists()
    assert session.query(AnimeEntry).count() == 0
