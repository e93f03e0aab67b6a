"""Static discovery of the assets a block tree will probably need.

Walks parsed blocks and collects the script, style and script-module handles
their block types declare. This is an optimization hint for hosts that want
to prefetch dependencies; the cache's correctness never depends on it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import dataclasses
from typing import Any


@dataclasses.dataclass(frozen=True, slots=True)
class BlockType:
    """Asset handles declared by one block type."""

    name: str
    script_handles: tuple[str, ...] = ()
    view_script_handles: tuple[str, ...] = ()
    view_script_module_ids: tuple[str, ...] = ()
    style_handles: tuple[str, ...] = ()
    view_style_handles: tuple[str, ...] = ()


class BlockTypeRegistry:
    """Block types by name."""

    def __init__(self, block_types: Iterable[BlockType] = ()) -> None:
        self._types: dict[str, BlockType] = {}
        for block_type in block_types:
            self.register(block_type)

    def register(self, block_type: BlockType) -> None:
        self._types[block_type.name] = block_type

    def get_registered(self, name: str) -> BlockType | None:
        return self._types.get(name)


@dataclasses.dataclass(frozen=True, slots=True)
class BlockAssets:
    """De-duplicated handles, in first-seen order."""

    script: tuple[str, ...] = ()
    style: tuple[str, ...] = ()
    script_module: tuple[str, ...] = ()


def identify_block_assets(
    blocks: Iterable[Mapping[str, Any]], block_types: BlockTypeRegistry
) -> BlockAssets:
    """Collect asset handles for `blocks` and all of their inner blocks.

    Blocks are parser output shaped like
    `{"blockName": "core/gallery", "innerBlocks": [...]}`. Blocks without a
    name (freeform content) and unregistered names contribute nothing, but
    their inner blocks are still visited.
    """
    script: dict[str, None] = {}
    style: dict[str, None] = {}
    script_module: dict[str, None] = {}

    stack = list(reversed(list(blocks)))
    while stack:
        block = stack.pop()
        name = block.get("blockName")
        block_type = block_types.get_registered(name) if name else None
        if block_type is not None:
            script.update(dict.fromkeys(block_type.script_handles))
            script.update(dict.fromkeys(block_type.view_script_handles))
            script_module.update(dict.fromkeys(block_type.view_script_module_ids))
            style.update(dict.fromkeys(block_type.style_handles))
            style.update(dict.fromkeys(block_type.view_style_handles))
        stack.extend(reversed(block.get("innerBlocks") or ()))

    return BlockAssets(
        script=tuple(script),
        style=tuple(style),
        script_module=tuple(script_module),
    )
