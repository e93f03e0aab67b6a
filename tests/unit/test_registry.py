"""Behavior of dependency registries and live bindings."""

import threading

import pytest

from cached_content import Dependency, DependencyRegistry, LiveRegistries

pytestmark = pytest.mark.unit


def test_register_last_write_wins(dep):
    registry = DependencyRegistry()
    registry.register("a", dep("a", ver="1"))
    registry.register("a", dep("a", ver="2"))

    assert registry.registered["a"].ver == "2"
    assert len(registry) == 1


def test_enqueue_suppresses_duplicates_and_keeps_order(dep):
    registry = DependencyRegistry()
    registry.enqueue("b", dep("b"))
    registry.enqueue("a", dep("a"))
    registry.activate("b")

    assert registry.queue == ["b", "a"]
    assert registry.is_enqueued("a")
    assert "a" in registry


def test_dequeue_removes_only_from_queue(dep):
    registry = DependencyRegistry({"a": dep("a")}, ["a"])
    registry.dequeue("a")
    registry.dequeue("missing")

    assert registry.queue == []
    assert registry.is_registered("a")


def test_constructor_deduplicates_initial_queue(dep):
    registry = DependencyRegistry({"a": dep("a")}, ["a", "a"])
    assert registry.queue == ["a"]


def test_dependency_requires_handle():
    with pytest.raises(ValueError, match="handle"):
        Dependency("")


def test_dependency_dict_round_trip():
    original = Dependency(
        "jquery", src="/jquery.js", deps=["core"], ver="3.7", extra={"after": ["x"]}
    )
    assert Dependency.from_dict(original.to_dict()) == original
    assert original.deps == ("core",)


def test_live_registries_bind_and_get():
    live = LiveRegistries()
    replacement = DependencyRegistry()

    live.bind("scripts", replacement)

    assert live.get("scripts") is replacement
    assert live["scripts"] is replacement
    assert live.kinds() == ("scripts", "styles")


def test_live_registries_unknown_kind_raises():
    with pytest.raises(KeyError, match="fonts"):
        LiveRegistries().get("fonts")


def test_track_is_idempotent():
    live = LiveRegistries(["scripts"])
    first = live.track("fonts")
    assert live.track("fonts") is first
    assert "fonts" in live


def test_factory_builds_fresh_registries_of_configured_type():
    class ScriptRegistry(DependencyRegistry):
        pass

    live = LiveRegistries(["scripts"], factories={"scripts": ScriptRegistry})

    made = live.factory("scripts")
    assert isinstance(made, ScriptRegistry)
    assert made is not live.get("scripts")
    assert isinstance(live.get("scripts"), ScriptRegistry)


def test_locked_tracks_kinds_and_blocks_other_threads():
    live = LiveRegistries(["scripts"])
    acquired = []

    def _try_lock():
        acquired.append(live.lock("fonts").acquire(blocking=False))

    with live.locked(["fonts", "scripts"]):
        assert "fonts" in live
        worker = threading.Thread(target=_try_lock)
        worker.start()
        worker.join(5)

    assert acquired == [False]
    assert live.lock("fonts").acquire(blocking=False)
    live.lock("fonts").release()
