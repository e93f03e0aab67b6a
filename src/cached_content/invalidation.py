"""Deciding when an entity update should drop its cached content."""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cached_content.cache import ContentCache

log = logging.getLogger(__name__)

PUBLISHED = "publish"


@dataclasses.dataclass(frozen=True, slots=True)
class EntitySaved:
    """An entity was created or updated."""

    entity_id: int | str
    status: str = PUBLISHED
    is_autosave: bool = False
    is_revision: bool = False


def should_invalidate(event: EntitySaved) -> bool:
    """Return True when the saved entity's cached content is stale.

    Autosaves and revisions never touch published content, and only
    published entities are served from the cache.
    """
    if event.is_autosave or event.is_revision:
        return False
    return event.status == PUBLISHED


def handle_entity_saved(cache: ContentCache, event: EntitySaved) -> bool:
    """Invalidate `event.entity_id` in `cache` when applicable.

    Returns:
        True if the entry was invalidated.
    """
    if not should_invalidate(event):
        log.debug("Ignoring save of %s (status=%s)", event.entity_id, event.status)
        return False
    cache.invalidate(event.entity_id)
    return True
