"""Computing what a single render introduced or activated."""

from __future__ import annotations

from cached_content.exceptions import RegistryInconsistencyError
from cached_content.record import RegistryDelta
from cached_content.registry import DependencyRegistry


def diff[D](
    original: DependencyRegistry[D],
    rendered: DependencyRegistry[D],
    *,
    kind: str | None = None,
) -> RegistryDelta[D]:
    """Return the minimal self-contained delta between two registries.

    Handles registered during the render and absent from `original` are
    captured, plus every handle left in `rendered.queue` so replay can
    re-activate pre-existing dependencies without help from the live
    registry. Descriptors that existed before the render are never
    re-compared, even if the render re-registered them.

    A queued handle is resolved against `rendered` first and then against
    `original`, since an isolated registry starts out empty and a render may
    activate a handle registered before it began.

    Raises:
        RegistryInconsistencyError: A queued handle has no descriptor in
            either registry.
    """
    dependencies = {
        handle: descriptor
        for handle, descriptor in rendered.registered.items()
        if handle not in original.registered
    }

    queue: list[str] = []
    for handle in rendered.queue:
        if handle in queue:
            continue
        if handle in rendered.registered:
            dependencies[handle] = rendered.registered[handle]
        elif handle in original.registered:
            # Activated during render without being re-registered.
            dependencies[handle] = original.registered[handle]
        else:
            raise RegistryInconsistencyError(handle, kind)
        queue.append(handle)

    return RegistryDelta(dependencies=dependencies, queue=tuple(queue))
