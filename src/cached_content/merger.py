"""Replaying recorded deltas into live registries.

Recorded descriptors always overwrite whatever is registered under the same
handle: the cached render's view is authoritative for its own dependencies.
The queue is either replaced or unioned, depending on whether anything
outside the cache may already have queued handles in the live registry.
"""

from __future__ import annotations

from enum import StrEnum
import logging

from cached_content.record import CacheRecord, RegistryDelta
from cached_content.registry import DependencyRegistry, LiveRegistries

log = logging.getLogger(__name__)


class MergePolicy(StrEnum):
    """How a recorded queue combines with the live queue."""

    REPLACE = "replace"
    """Live queue becomes the recorded queue. Only safe right after restore."""

    UNION = "union"
    """Recorded handles are added to the live queue; nothing is dropped."""


def merge[D](
    live: DependencyRegistry[D],
    delta: RegistryDelta[D],
    policy: MergePolicy = MergePolicy.UNION,
) -> None:
    """Inject `delta` into `live`.

    Under UNION, handles already queued keep their position and recorded
    handles not yet queued are appended in recorded order. Applying the same
    delta twice leaves `live` as applying it once.
    """
    for handle, descriptor in delta.dependencies.items():
        live.registered[handle] = descriptor

    if MergePolicy(policy) is MergePolicy.REPLACE:
        live.queue = list(delta.queue)
        return

    queued = set(live.queue)
    for handle in delta.queue:
        if handle not in queued:
            live.queue.append(handle)
            queued.add(handle)


def replay(
    live: LiveRegistries,
    record: CacheRecord,
    policy: MergePolicy = MergePolicy.UNION,
) -> None:
    """Apply every delta in `record` to the registry live for its kind.

    A kind the bindings do not track yet is tracked first, so nothing the
    record captured is silently dropped. The slot locks of every replayed
    kind are held while merging; a render in flight on another thread keeps
    its isolated registries to itself.
    """
    with live.locked(record.registries):
        for kind, delta in record.registries.items():
            merge(live.get(kind), delta, policy)
            log.debug(
                "Replayed %d dependencies and %d queued handles into '%s' (%s)",
                len(delta.dependencies),
                len(delta.queue),
                kind,
                policy,
            )
