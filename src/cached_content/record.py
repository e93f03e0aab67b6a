"""The persisted unit: rendered content plus one delta per registry kind.

Records are immutable once built. Stores that keep Python objects hold the
`CacheRecord` itself; stores that serialize go through `to_payload` and
`from_payload`, which validates the loaded shape so partial or corrupted
entries are rejected instead of being replayed incompletely.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
import dataclasses
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError

from cached_content.exceptions import MalformedRecordError

type Encoder = Callable[[Any], Any]
type Decoder = Callable[[Any], Any]


def _identity(value: Any) -> Any:
    return value


@dataclasses.dataclass(frozen=True, slots=True)
class RegistryDelta[D]:
    """Descriptors introduced or activated by one render, and its final queue."""

    dependencies: Mapping[str, D] = dataclasses.field(default_factory=dict)
    queue: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.dependencies, Mapping):
            raise MalformedRecordError(
                f"dependencies must be a mapping, got {type(self.dependencies).__name__}"
            )
        if isinstance(self.queue, str) or not all(
            isinstance(h, str) for h in self.queue
        ):
            raise MalformedRecordError("queue must be a sequence of handle strings")
        missing = [h for h in self.queue if h not in self.dependencies]
        if missing:
            raise MalformedRecordError(
                f"Queued handles without descriptors: {', '.join(missing)}"
            )
        object.__setattr__(self, "dependencies", MappingProxyType(dict(self.dependencies)))
        object.__setattr__(self, "queue", tuple(dict.fromkeys(self.queue)))

    def is_empty(self) -> bool:
        return not self.dependencies and not self.queue


@dataclasses.dataclass(frozen=True, slots=True)
class CacheRecord:
    """Rendered content with the registry deltas needed to replay it.

    `registries` is keyed by registry kind ("scripts", "styles", ...) so new
    kinds need no change to the record shape.
    """

    content: str
    registries: Mapping[str, RegistryDelta[Any]] = dataclasses.field(
        default_factory=dict
    )

    def __post_init__(self) -> None:
        if not isinstance(self.content, str):
            raise MalformedRecordError("content must be a string")
        for kind, delta in self.registries.items():
            if not isinstance(delta, RegistryDelta):
                raise MalformedRecordError(
                    f"Delta for '{kind}' must be a RegistryDelta, "
                    f"got {type(delta).__name__}"
                )
        object.__setattr__(self, "registries", MappingProxyType(dict(self.registries)))

    def delta(self, kind: str) -> RegistryDelta[Any]:
        """Return the delta recorded for `kind`, or an empty one."""
        return self.registries.get(kind) or RegistryDelta()

    def to_payload(self, encode: Encoder = _identity) -> dict[str, Any]:
        """Return plain data suitable for a serializing store.

        Args:
            encode: Applied to every descriptor, e.g. `Dependency.to_dict`.
        """
        return {
            "content": self.content,
            "registries": {
                kind: {
                    "dependencies": {
                        handle: encode(descriptor)
                        for handle, descriptor in delta.dependencies.items()
                    },
                    "queue": list(delta.queue),
                }
                for kind, delta in self.registries.items()
            },
        }

    @classmethod
    def from_payload(
        cls, data: Any, decode: Decoder = _identity
    ) -> CacheRecord:
        """Rebuild a record from `to_payload` output.

        Raises:
            MalformedRecordError: If the payload is missing content, has the
                wrong shape, or a descriptor cannot be decoded.
        """
        if isinstance(data, CacheRecord):
            return data
        try:
            payload = _RecordPayload.model_validate(data)
        except ValidationError as e:
            raise MalformedRecordError(f"Invalid cache record payload: {e}") from e

        try:
            registries = {
                kind: RegistryDelta(
                    dependencies={
                        handle: decode(raw)
                        for handle, raw in delta.dependencies.items()
                    },
                    queue=tuple(delta.queue),
                )
                for kind, delta in payload.registries.items()
            }
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedRecordError(f"Undecodable descriptor: {e}") from e
        return cls(content=payload.content, registries=registries)


class _DeltaPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    dependencies: dict[str, Any] = {}
    queue: list[StrictStr] = []


class _RecordPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: StrictStr
    registries: dict[str, _DeltaPayload]


def build_record(
    content: str,
    diffs: Mapping[str, RegistryDelta[Any]] | Iterable[tuple[str, RegistryDelta[Any]]],
) -> CacheRecord:
    """Aggregate rendered content and per-kind deltas into a record.

    Args:
        content: The rendered output. An empty string is valid content.
        diffs: One delta per tracked registry kind, as a mapping or as
            ordered `(kind, delta)` pairs.

    Raises:
        MalformedRecordError: If `content` is missing or a kind repeats.
    """
    if content is None:
        raise MalformedRecordError("Rendered content is required (got None)")
    if isinstance(diffs, Mapping):
        return CacheRecord(content=content, registries=diffs)

    registries: dict[str, RegistryDelta[Any]] = {}
    for kind, delta in diffs:
        if kind in registries:
            raise MalformedRecordError(f"Duplicate delta for registry kind '{kind}'")
        registries[kind] = delta
    return CacheRecord(content=content, registries=registries)
