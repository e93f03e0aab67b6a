"""Render-once content caching with registry side-effect replay.

`ContentCache.render` is the entry point. On a miss it renders against
isolated registries, records what the render registered and enqueued, stores
the record, and replays it into the restored live registries. On a hit the
render function is never called; the stored record is replayed directly, so
code inspecting the registries afterwards sees the same state a real render
would have produced.

States of one call:
    MISS_PENDING -> RENDERING -> DIFFING -> PERSISTED -> REPLAYED
    HIT -> REPLAYED
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
import logging
from typing import Any

from cached_content.config import FrozenConfig, resolve_config
from cached_content.differ import diff
from cached_content.exceptions import MalformedRecordError
from cached_content.keys import key_for
from cached_content.merger import MergePolicy, replay
from cached_content.record import CacheRecord, build_record
from cached_content.registry import LiveRegistries
from cached_content.snapshot import isolated_render
from cached_content.store import CacheStore, FailSoftStore
from cached_content.telemetry import TelemetryContext, TelemetryContextProtocol

log = logging.getLogger(__name__)


class CacheState(StrEnum):
    MISS_PENDING = "miss_pending"
    RENDERING = "rendering"
    DIFFING = "diffing"
    PERSISTED = "persisted"
    HIT = "hit"
    REPLAYED = "replayed"


class ContentCache:
    """Caches rendered content together with its registry side effects.

    Args:
        store: Key-value store for records. Wrapped in `FailSoftStore` so
            that store failures degrade to rendering live.
        registries: The live registry bindings renders mutate.
        config: Frozen configuration. Resolved from the environment and
            pyproject.toml when omitted.
        telemetry: Optional telemetry context for lookup events and
            per-step timings.
    """

    def __init__(
        self,
        store: CacheStore,
        registries: LiveRegistries,
        *,
        config: FrozenConfig | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self.store = store if isinstance(store, FailSoftStore) else FailSoftStore(store)
        self.registries = registries
        self.config = config if config is not None else resolve_config().to_frozen()
        self._tele = telemetry if telemetry is not None else TelemetryContext()
        self.last_states: tuple[CacheState, ...] = ()
        for kind in self.config.tracked_registries:
            registries.track(kind)

    def key_for(self, entity_id: int | str) -> str:
        return key_for(entity_id, self.config.key_prefix)

    def load(self, key: str) -> CacheRecord | None:
        """Return the complete record stored under `key`, or None.

        Missing, expired, partial and malformed entries are all misses.
        """
        data = self.store.get(key)
        if data is None:
            return None
        try:
            record = CacheRecord.from_payload(data)
        except MalformedRecordError as e:
            log.warning("Discarding malformed cache entry %s: %s", key, e)
            self._tele.event("discarded", key=key)
            return None
        missing = [
            kind
            for kind in self.config.tracked_registries
            if kind not in record.registries
        ]
        if missing:
            log.warning(
                "Discarding partial cache entry %s: no delta for %s",
                key,
                ", ".join(missing),
            )
            self._tele.event("discarded", key=key)
            return None
        return record

    def render(
        self,
        entity_id: int | str,
        render_fn: Callable[..., str],
        *args: Any,
        expiry: int | None = None,
        **kwargs: Any,
    ) -> str:
        """Return the content for `entity_id`, rendering it at most once.

        Args:
            entity_id: Identity of the rendered entity; selects the cache key.
            render_fn: Called as `render_fn(*args, **kwargs)` on a miss. It may
                register and enqueue dependencies on the live registries.
            expiry: Record TTL in seconds. Defaults to the configured TTL.

        Returns:
            The rendered (or cached) content.

        Raises:
            Whatever `render_fn` raises. The live registries are restored
            first and nothing is stored.
        """
        if not self.config.enabled:
            return render_fn(*args, **kwargs)

        key = self.key_for(entity_id)
        record = self.load(key)

        if record is not None:
            states = [CacheState.HIT]
            policy = MergePolicy.UNION
            self._tele.event("hit", key=key)
            log.debug("Cache hit for %s (%s)", entity_id, key)
        else:
            states = [CacheState.MISS_PENDING]
            self._tele.event("miss", key=key)
            log.debug("Cache miss for %s (%s); rendering live", entity_id, key)
            policy = MergePolicy(self.config.miss_merge_policy)
            record = self._render_and_persist(
                key, render_fn, args, kwargs, expiry, states
            )

        with self._tele.step("replay"):
            replay(self.registries, record, policy)
        states.append(CacheState.REPLAYED)
        self.last_states = tuple(states)
        return record.content

    def _render_and_persist(
        self,
        key: str,
        render_fn: Callable[..., str],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        expiry: int | None,
        states: list[CacheState],
    ) -> CacheRecord:
        states.append(CacheState.RENDERING)
        self.last_states = tuple(states)
        with self._tele.step("render"), isolated_render(
            self.registries, self.config.tracked_registries
        ) as ctx:
            content = render_fn(*args, **kwargs)
        if not isinstance(content, str):
            raise TypeError(
                f"render function must return str, got {type(content).__name__}"
            )

        states.append(CacheState.DIFFING)
        with self._tele.step("diff"):
            record = build_record(
                content,
                [
                    (kind, diff(original, rendered, kind=kind))
                    for kind, original, rendered in ctx.pairs()
                ],
            )

        ttl = self.config.ttl_seconds if expiry is None else expiry
        with self._tele.step("persist"):
            self.store.set(key, record, ttl)
        states.append(CacheState.PERSISTED)
        return record

    def invalidate(self, entity_id: int | str) -> None:
        """Drop the cached record for `entity_id`."""
        key = self.key_for(entity_id)
        self.store.delete(key)
        log.debug("Invalidated cached content for %s (%s)", entity_id, key)
