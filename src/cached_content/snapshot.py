"""Isolating a render pass behind clean registries.

Before rendering, each tracked live registry is set aside and replaced by a
brand-new empty one. Whatever the render registers or enqueues lands in the
empty registry, so the difference against the saved original can be computed
without pre-filtering. The saved registries must be rebound on every exit
path; `isolated_render` guarantees that.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
import dataclasses
import logging
from typing import Any

from cached_content.registry import DependencyRegistry, LiveRegistries

log = logging.getLogger(__name__)

type RegistryMap = dict[str, DependencyRegistry[Any]]


@dataclasses.dataclass(frozen=True, slots=True)
class RenderContext:
    """The (original, isolated) registry pair held for one render call."""

    saved: Mapping[str, DependencyRegistry[Any]]
    isolated: Mapping[str, DependencyRegistry[Any]]

    def pairs(self) -> Iterator[tuple[str, DependencyRegistry[Any], DependencyRegistry[Any]]]:
        """Yield `(kind, original, rendered)` in tracking order."""
        for kind, original in self.saved.items():
            yield kind, original, self.isolated[kind]


def begin_isolated_render(
    live: LiveRegistries, kinds: Iterable[str] | None = None
) -> tuple[RegistryMap, RegistryMap]:
    """Swap an empty registry in for each of `kinds`.

    Returns:
        `(saved, isolated)`: the previously live registries and the empty
        ones that are now live. Must be paired with exactly one `restore`.
    """
    saved: RegistryMap = {}
    isolated: RegistryMap = {}
    for kind in kinds if kinds is not None else live.kinds():
        live.track(kind)
        saved[kind] = live.get(kind)
        isolated[kind] = live.factory(kind)
        live.bind(kind, isolated[kind])
    log.debug("Isolated registries installed for %s", ", ".join(saved) or "none")
    return saved, isolated


def restore(live: LiveRegistries, saved: Mapping[str, DependencyRegistry[Any]]) -> None:
    """Rebind the registries captured by `begin_isolated_render`."""
    for kind, registry in saved.items():
        live.bind(kind, registry)
    log.debug("Live registries restored for %s", ", ".join(saved) or "none")


@contextmanager
def isolated_render(
    live: LiveRegistries, kinds: Iterable[str] | None = None
) -> Iterator[RenderContext]:
    """Run the enclosed block against clean registries.

    The per-kind slot locks are held for the whole block, so concurrent
    renders sharing the same bindings are serialized. The saved registries
    are rebound even when the block raises.

    Example:
        with isolated_render(live) as ctx:
            html = render(post)
        delta = diff(ctx.saved["scripts"], ctx.isolated["scripts"])
    """
    kinds = tuple(kinds) if kinds is not None else live.kinds()
    with live.locked(kinds):
        saved, isolated = begin_isolated_render(live, kinds)
        try:
            yield RenderContext(saved=saved, isolated=isolated)
        finally:
            restore(live, saved)
