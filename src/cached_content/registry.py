"""Dependency registries and the live bindings that expose them.

A registry maps handles to descriptors and tracks which handles are active
(queued) for the current rendering context. The core never interprets a
descriptor; `Dependency` is simply what the bundled registries store.

`LiveRegistries` stands in for the process-wide slots a host keeps its
registries in. It is passed explicitly so the snapshot, diff and merge steps
operate on their inputs rather than on ambient state.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import ExitStack, contextmanager
import dataclasses
import threading
from types import MappingProxyType
from typing import Any

SCRIPTS = "scripts"
STYLES = "styles"
SCRIPT_MODULES = "script_modules"

DEFAULT_KINDS: tuple[str, ...] = (SCRIPTS, STYLES)


@dataclasses.dataclass(frozen=True, slots=True)
class Dependency:
    """A registered script or style.

    Mirrors what a host registry needs to re-register the dependency
    elsewhere: where it lives, what it depends on and any inline data.
    """

    handle: str
    src: str | None = None
    deps: tuple[str, ...] = ()
    ver: str | None = None
    args: Any = None
    extra: Mapping[str, Any] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.handle, str) or not self.handle:
            raise ValueError("handle must be a non-empty string")
        object.__setattr__(self, "deps", tuple(self.deps))
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible representation."""
        return {
            "handle": self.handle,
            "src": self.src,
            "deps": list(self.deps),
            "ver": self.ver,
            "args": self.args,
            "extra": dict(self.extra),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Dependency:
        """Rebuild a dependency from `to_dict` output."""
        return cls(
            handle=data["handle"],
            src=data.get("src"),
            deps=tuple(data.get("deps") or ()),
            ver=data.get("ver"),
            args=data.get("args"),
            extra=data.get("extra") or {},
        )


class DependencyRegistry[D]:
    """Handles mapped to descriptors, plus the ordered queue of active handles.

    `registered` and `queue` are plain public containers so host code (and
    the merger) can read and write them directly, as they would on the
    host's own registry object.
    """

    def __init__(
        self,
        registered: Mapping[str, D] | None = None,
        queue: list[str] | tuple[str, ...] | None = None,
    ) -> None:
        self.registered: dict[str, D] = dict(registered or {})
        self.queue: list[str] = []
        for handle in queue or ():
            if handle not in self.queue:
                self.queue.append(handle)

    def register(self, handle: str, descriptor: D) -> bool:
        """Register `descriptor` under `handle`, replacing any previous one."""
        self.registered[handle] = descriptor
        return True

    def enqueue(self, handle: str, descriptor: D | None = None) -> None:
        """Mark `handle` active, registering `descriptor` first when given."""
        if descriptor is not None:
            self.register(handle, descriptor)
        if handle not in self.queue:
            self.queue.append(handle)

    activate = enqueue

    def dequeue(self, handle: str) -> None:
        """Remove `handle` from the active queue if present."""
        if handle in self.queue:
            self.queue.remove(handle)

    def is_registered(self, handle: str) -> bool:
        return handle in self.registered

    def is_enqueued(self, handle: str) -> bool:
        return handle in self.queue

    def __contains__(self, handle: object) -> bool:
        return handle in self.registered

    def __len__(self) -> int:
        return len(self.registered)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(registered={sorted(self.registered)!r}, "
            f"queue={self.queue!r})"
        )


type RegistryFactory = Callable[[], DependencyRegistry[Any]]


class _Binding:
    __slots__ = ("factory", "lock", "registry")

    def __init__(self, registry: DependencyRegistry[Any], factory: RegistryFactory):
        self.registry = registry
        self.factory = factory
        self.lock = threading.RLock()


class LiveRegistries:
    """The registries currently live for each tracked kind.

    Each kind owns a rebindable slot. Snapshot/swap replaces the slot's
    registry for the duration of a render and restores it afterwards; any
    other code holding this object always sees whichever registry is live.
    Every slot carries a re-entrant lock so only one isolated render can be
    in flight per slot when the host shares the bindings across threads.
    """

    def __init__(
        self,
        kinds: tuple[str, ...] | list[str] = DEFAULT_KINDS,
        *,
        factories: Mapping[str, RegistryFactory] | None = None,
    ) -> None:
        factories = dict(factories or {})
        self._bindings: dict[str, _Binding] = {}
        for kind in kinds:
            self.track(kind, factories.get(kind, DependencyRegistry))

    def track(
        self, kind: str, factory: RegistryFactory = DependencyRegistry
    ) -> DependencyRegistry[Any]:
        """Start tracking `kind`, binding a fresh registry if not yet tracked."""
        if kind not in self._bindings:
            self._bindings[kind] = _Binding(factory(), factory)
        return self._bindings[kind].registry

    def get(self, kind: str) -> DependencyRegistry[Any]:
        """Return the registry currently live for `kind`."""
        try:
            return self._bindings[kind].registry
        except KeyError:
            raise KeyError(f"Registry kind '{kind}' is not tracked") from None

    __getitem__ = get

    def bind(self, kind: str, registry: DependencyRegistry[Any]) -> None:
        """Install `registry` as the live registry for `kind`."""
        if kind not in self._bindings:
            self._bindings[kind] = _Binding(registry, DependencyRegistry)
        else:
            self._bindings[kind].registry = registry

    def factory(self, kind: str) -> DependencyRegistry[Any]:
        """Create a brand-new empty registry of the type tracked for `kind`."""
        return self._bindings[kind].factory()

    def lock(self, kind: str) -> threading.RLock:
        return self._bindings[kind].lock

    @contextmanager
    def locked(self, kinds: Iterable[str]) -> Iterator[None]:
        """Hold the slot locks of `kinds`, tracking any kind not yet tracked.

        Locks are taken in tracking order, whatever order `kinds` lists them
        in, so holders of overlapping kinds cannot deadlock.
        """
        wanted = set()
        for kind in kinds:
            self.track(kind)
            wanted.add(kind)
        with ExitStack() as stack:
            for kind in tuple(self._bindings):
                if kind in wanted:
                    stack.enter_context(self._bindings[kind].lock)
            yield

    def kinds(self) -> tuple[str, ...]:
        return tuple(self._bindings)

    def __contains__(self, kind: object) -> bool:
        return kind in self._bindings

    def __iter__(self) -> Iterator[str]:
        return iter(self._bindings)
