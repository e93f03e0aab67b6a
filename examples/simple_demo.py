#!/usr/bin/env python3  # noqa: EXE001
"""
Minimal demonstration of render-once content caching.

A page renders a post whose blocks enqueue a script and a style. The first
call renders live; the second is served from the cache, yet the script and
style registries end up in the same state as if the post had been rendered.
"""  # noqa: D212, D415

from cached_content import (
    ContentCache,
    Dependency,
    FrozenConfig,
    InMemoryCacheStore,
    LiveRegistries,
)

registries = LiveRegistries()


def render_post(post_id: int) -> str:  # noqa: D103
    registries.get("scripts").enqueue(
        "gallery", Dependency("gallery", src="/js/gallery.js", ver="1.2")
    )
    registries.get("styles").enqueue(
        "gallery-style", Dependency("gallery-style", src="/css/gallery.css")
    )
    return f"<div class='gallery' data-post='{post_id}'>...</div>"


def main():  # noqa: ANN201, D103
    cache = ContentCache(InMemoryCacheStore(), registries, config=FrozenConfig())

    for attempt in (1, 2):
        # Each request starts with fresh registries.
        registries.bind("scripts", registries.factory("scripts"))
        registries.bind("styles", registries.factory("styles"))

        html = cache.render(42, render_post, 42)
        print(f"Request {attempt}: {' -> '.join(cache.last_states)}")
        print(f"  content: {html}")
        print(f"  scripts queued: {registries.get('scripts').queue}")
        print(f"  styles queued:  {registries.get('styles').queue}\n")


if __name__ == "__main__":
    main()
