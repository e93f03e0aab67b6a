"""Cache keys and save-event invalidation."""

import hashlib

import pytest

from cached_content import (
    ContentCache,
    EntitySaved,
    FrozenConfig,
    InMemoryCacheStore,
    build_record,
    handle_entity_saved,
    key_for,
    should_invalidate,
)

pytestmark = pytest.mark.unit


def test_key_is_prefixed_md5_of_id():
    assert key_for(42) == "the_cached_content_" + hashlib.md5(b"42").hexdigest()


def test_key_is_deterministic_and_distinct():
    assert key_for(1) == key_for(1)
    assert key_for(1) != key_for(2)
    assert key_for(1, "other_") != key_for(1)


def test_int_and_str_ids_address_the_same_entry():
    assert key_for(7) == key_for("7")


@pytest.mark.parametrize("bad", [None, True])
def test_key_rejects_invalid_ids(bad):
    with pytest.raises(ValueError, match="entity id"):
        key_for(bad)


@pytest.mark.parametrize(
    ("event", "expected"),
    [
        (EntitySaved(1), True),
        (EntitySaved(1, status="draft"), False),
        (EntitySaved(1, status="pending"), False),
        (EntitySaved(1, is_autosave=True), False),
        (EntitySaved(1, is_revision=True), False),
    ],
)
def test_should_invalidate(event, expected):
    assert should_invalidate(event) is expected


@pytest.fixture
def cache(live):
    store = InMemoryCacheStore()
    store.set(key_for(1), build_record("cached", {}))
    return ContentCache(store, live, config=FrozenConfig())


def test_published_save_drops_entry(cache):
    assert handle_entity_saved(cache, EntitySaved(1)) is True
    assert cache.load(cache.key_for(1)) is None


def test_autosave_keeps_entry(cache):
    assert handle_entity_saved(cache, EntitySaved(1, is_autosave=True)) is False
    assert cache.load(cache.key_for(1)).content == "cached"
