"""Cache-key derivation for content entities."""

import hashlib

DEFAULT_KEY_PREFIX = "the_cached_content_"


def key_for(entity_id: int | str, prefix: str = DEFAULT_KEY_PREFIX) -> str:
    """Return the cache key for an entity.

    Keys are addressed by entity identity, not by content: the same id always
    maps to the same key until the entry is invalidated.
    """
    if entity_id is None or isinstance(entity_id, bool):
        raise ValueError(f"Invalid entity id: {entity_id!r}")
    digest = hashlib.md5(str(entity_id).encode("utf-8"), usedforsecurity=False)
    return f"{prefix}{digest.hexdigest()}"
