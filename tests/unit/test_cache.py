"""End-to-end behavior of ContentCache: miss, hit, failure and degradation."""

import threading
from unittest.mock import MagicMock

import pytest

from cached_content import (
    CacheRecord,
    CacheState,
    ContentCache,
    Dependency,
    FrozenConfig,
    InMemoryCacheStore,
    MergePolicy,
    RegistryDelta,
    RegistryInconsistencyError,
    SimpleReporter,
    build_record,
    key_for,
)
from cached_content import telemetry

pytestmark = pytest.mark.unit

A = Dependency("a", src="/a.js")
B = Dependency("b", src="/b.js")
S = Dependency("s", src="/s.css")


def make_renderer(live, content="<p>Hi</p>"):
    """A render function that registers and enqueues on whatever is live."""
    calls = []

    def _render(*args, **kwargs):
        calls.append((args, kwargs))
        live.get("scripts").enqueue("a", A)
        live.get("styles").enqueue("s", S)
        return content

    _render.calls = calls
    return _render


@pytest.fixture
def store():
    return InMemoryCacheStore()


@pytest.fixture
def cache(store, live):
    return ContentCache(store, live, config=FrozenConfig())


def test_miss_renders_persists_and_replays(cache, store, live):
    render = make_renderer(live)

    html = cache.render(42, render, "more", strip_teaser=True)

    assert html == "<p>Hi</p>"
    assert render.calls == [(("more",), {"strip_teaser": True})]
    assert cache.last_states == (
        CacheState.MISS_PENDING,
        CacheState.RENDERING,
        CacheState.DIFFING,
        CacheState.PERSISTED,
        CacheState.REPLAYED,
    )
    record = store.get(key_for(42))
    assert record.delta("scripts").queue == ("a",)
    assert live.get("scripts").registered["a"] == A
    assert live.get("scripts").queue == ["a"]
    assert live.get("styles").queue == ["s"]


def test_hit_skips_render_and_replays(cache, live):
    render = make_renderer(live)
    cache.render(42, render)
    live.get("scripts").queue.clear()
    live.get("styles").queue.clear()

    html = cache.render(42, render)

    assert html == "<p>Hi</p>"
    assert len(render.calls) == 1
    assert cache.last_states == (CacheState.HIT, CacheState.REPLAYED)
    assert live.get("scripts").queue == ["a"]
    assert live.get("styles").queue == ["s"]


def test_hit_unions_with_prior_activations(store, live):
    """Stored record for 'a'; live registry already queued 'b'."""
    store.set(
        key_for(7),
        CacheRecord(
            content="<p>Hi</p>",
            registries={
                "scripts": RegistryDelta({"a": A}, ("a",)),
                "styles": RegistryDelta(),
            },
        ),
        60,
    )
    live.get("scripts").enqueue("b", B)
    cache = ContentCache(store, live, config=FrozenConfig())

    html = cache.render(7, MagicMock(side_effect=AssertionError("not called")))

    assert html == "<p>Hi</p>"
    assert live.get("scripts").registered == {"a": A, "b": B}
    assert set(live.get("scripts").queue) == {"a", "b"}


def test_render_failure_restores_registries_and_persists_nothing(cache, store, live):
    live.get("scripts").enqueue("b", B)
    before_scripts = live.get("scripts")
    before_styles = live.get("styles")

    def _failing():
        live.get("scripts").enqueue("a", A)
        raise RuntimeError("render exploded")

    with pytest.raises(RuntimeError, match="render exploded"):
        cache.render(1, _failing)

    assert live.get("scripts") is before_scripts
    assert live.get("styles") is before_styles
    assert before_scripts.registered == {"b": B}
    assert before_scripts.queue == ["b"]
    assert store.get(key_for(1)) is None
    assert cache.last_states[-1] is CacheState.RENDERING


def test_inconsistent_render_is_not_persisted(cache, store, live):
    def _bad():
        live.get("scripts").enqueue("ghost")
        return "x"

    with pytest.raises(RegistryInconsistencyError):
        cache.render(1, _bad)

    assert store.get(key_for(1)) is None
    assert live.get("scripts").queue == []


def test_miss_replay_keeps_prior_activations(cache, live):
    live.get("scripts").enqueue("b", B)

    cache.render(3, make_renderer(live))

    assert live.get("scripts").queue == ["b", "a"]
    assert "b" in live.get("scripts").registered


def test_two_misses_on_one_page_keep_both_activations(cache, live):
    def _render_c():
        live.get("scripts").enqueue("c", Dependency("c", src="/c.js"))
        return "<p>C</p>"

    cache.render(1, make_renderer(live))
    cache.render(2, _render_c)

    assert live.get("scripts").queue == ["a", "c"]
    assert live.get("styles").queue == ["s"]


def test_miss_replay_can_replace(store, live):
    cache = ContentCache(
        store, live, config=FrozenConfig(miss_merge_policy="replace")
    )
    live.get("scripts").enqueue("b", B)

    cache.render(3, make_renderer(live))

    assert live.get("scripts").queue == ["a"]


def test_unknown_miss_policy_rejected_before_rendering():
    with pytest.raises(ValueError, match="bogus"):
        FrozenConfig(miss_merge_policy="bogus")


def test_frozen_policy_is_normalized_to_enum():
    assert FrozenConfig(miss_merge_policy="replace").miss_merge_policy is (
        MergePolicy.REPLACE
    )


def test_hit_replay_waits_for_render_in_flight(store, live):
    store.set(
        key_for(9),
        build_record(
            "<p>cached</p>",
            {"scripts": RegistryDelta({"b": B}, ("b",)), "styles": RegistryDelta()},
        ),
    )
    cache = ContentCache(store, live, config=FrozenConfig())
    rendering = threading.Event()
    release = threading.Event()

    def _slow_render():
        live.get("scripts").enqueue("a", A)
        rendering.set()
        release.wait(5)
        return "<p>fresh</p>"

    renderer = threading.Thread(target=cache.render, args=(1, _slow_render))
    renderer.start()
    assert rendering.wait(5)
    reader = threading.Thread(
        target=cache.render,
        args=(9, MagicMock(side_effect=AssertionError("not called"))),
    )
    reader.start()
    reader.join(0.2)

    assert reader.is_alive()

    release.set()
    renderer.join(5)
    reader.join(5)

    record = store.get(key_for(1))
    assert record.delta("scripts").queue == ("a",)
    assert "b" not in record.delta("scripts").dependencies
    assert set(live.get("scripts").queue) == {"a", "b"}


def test_expiry_overrides_configured_ttl(live):
    store = MagicMock()
    store.get.return_value = None
    cache = ContentCache(store, live, config=FrozenConfig(ttl_seconds=60))

    cache.render(5, make_renderer(live), expiry=300)
    cache.render(6, make_renderer(live))

    assert store.set.call_args_list[0].args[2] == 300
    assert store.set.call_args_list[1].args[2] == 60


def test_empty_content_is_cached(cache, live):
    render = make_renderer(live, content="")
    cache.render(9, render)
    assert cache.render(9, render) == ""
    assert len(render.calls) == 1


def test_non_string_render_output_is_rejected(cache, store, live):
    with pytest.raises(TypeError, match="str"):
        cache.render(9, lambda: None)
    assert store.get(key_for(9)) is None


@pytest.mark.parametrize(
    "stored",
    [
        {"registries": {}},
        {"content": None},
        {"content": "<p>x</p>"},
        {"content": "<p>x</p>", "registries": {}},
        {"content": "<p>x</p>", "registries": {"scripts": {"queue": []}}},
        "garbage",
    ],
)
def test_partial_or_malformed_entries_are_misses(store, live, stored):
    store.set(key_for(11), stored)
    cache = ContentCache(store, live, config=FrozenConfig())
    render = make_renderer(live)

    assert cache.render(11, render) == "<p>Hi</p>"
    assert len(render.calls) == 1
    assert isinstance(store.get(key_for(11)), CacheRecord)


def test_payload_entries_are_replayed(store, live):
    record = build_record(
        "<b>x</b>",
        {"scripts": RegistryDelta({"a": A}, ("a",)), "styles": RegistryDelta()},
    )
    store.set(key_for(12), record.to_payload())
    cache = ContentCache(store, live, config=FrozenConfig())

    assert cache.render(12, MagicMock()) == "<b>x</b>"
    assert live.get("scripts").queue == ["a"]


def test_store_outage_degrades_to_live_render(live):
    store = MagicMock()
    store.get.side_effect = ConnectionError("down")
    store.set.side_effect = ConnectionError("down")
    cache = ContentCache(store, live, config=FrozenConfig())
    render = make_renderer(live)

    assert cache.render(1, render) == "<p>Hi</p>"
    assert cache.render(1, render) == "<p>Hi</p>"
    assert len(render.calls) == 2
    assert live.get("scripts").queue == ["a"]


def test_disabled_cache_renders_directly(store, live):
    cache = ContentCache(store, live, config=FrozenConfig(enabled=False))
    render = make_renderer(live)

    cache.render(1, render)
    cache.render(1, render)

    assert len(render.calls) == 2
    assert len(store) == 0
    assert live.get("scripts").queue == ["a"]


def test_invalidate_forces_rerender(cache, live):
    render = make_renderer(live)
    cache.render(8, render)
    cache.invalidate(8)
    cache.render(8, render)

    assert len(render.calls) == 2


def test_key_prefix_comes_from_config(store, live):
    cache = ContentCache(store, live, config=FrozenConfig(key_prefix="site1_"))
    cache.render(8, make_renderer(live))

    assert cache.key_for(8).startswith("site1_")
    assert store.get(key_for(8, "site1_")) is not None


def test_only_tracked_kinds_are_isolated(store, live):
    cache = ContentCache(
        store, live, config=FrozenConfig(tracked_registries=("scripts",))
    )
    live.get("styles").enqueue("old", Dependency("old"))

    cache.render(2, make_renderer(live))

    record = store.get(key_for(2))
    assert list(record.registries) == ["scripts"]
    # Styles were rendered straight into the live registry.
    assert live.get("styles").queue == ["old", "s"]


def test_config_resolved_when_not_given(store, live, monkeypatch):
    monkeypatch.setenv("CACHED_CONTENT_TTL_SECONDS", "5")
    cache = ContentCache(store, live)
    assert cache.config.ttl_seconds == 5


def test_telemetry_counts_hits_and_misses(store, live, monkeypatch):
    monkeypatch.setattr(telemetry, "_TELEMETRY_ENABLED", True)
    reporter = SimpleReporter()
    cache = ContentCache(
        store,
        live,
        config=FrozenConfig(),
        telemetry=telemetry.TelemetryContext(reporter),
    )
    render = make_renderer(live)

    cache.render(1, render)
    cache.render(1, render)

    assert reporter.events["miss"] == 1
    assert reporter.events["hit"] == 1
    assert reporter.hit_ratio == 0.5
    assert {"render", "diff", "persist", "replay"} <= set(reporter.timings)
