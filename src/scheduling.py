"""Off-thread layout with stale-result suppression."""

import asyncio
import logging
from dataclasses import dataclass

from edges import EdgePath, compute_edge_paths
from graph import derive_relationships
from layout import LayoutConfig, compute_layout
from models import Entity, Point, Size

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutResult:
    version: int
    positions: dict[str, Point]
    paths: list[EdgePath]


def layout_snapshot(entities: list[Entity], canvas_size: Size, config: LayoutConfig, version: int = 0) -> LayoutResult:
    """Positions and connector paths for one snapshot. Pure; safe to run on any thread."""
    relationships = derive_relationships(entities)
    positions = compute_layout(entities, relationships, canvas_size, config)
    sizes = {e.id: e.size for e in entities}
    return LayoutResult(version, positions, compute_edge_paths(positions, relationships, sizes))


class LayoutScheduler:
    """
    Run layouts in a worker thread and publish only the newest one.

    Each request is tagged with an increasing version. A result that comes
    back after a newer request was made is dropped (the call returns None)
    and `latest` is left alone.
    """

    def __init__(self, config: LayoutConfig | None = None, canvas_size: Size = Size.INFINITE):
        self.config = config or LayoutConfig()
        self.canvas_size = canvas_size
        self._version = 0
        self.latest: LayoutResult | None = None

    @property
    def version(self) -> int:
        return self._version

    async def request(self, entities: list[Entity]) -> LayoutResult | None:
        self._version += 1
        version = self._version
        snapshot = list(entities)

        result = await asyncio.to_thread(layout_snapshot, snapshot, self.canvas_size, self.config, version)

        if version != self._version:
            logger.debug("Discarding stale layout %d (current %d)", version, self._version)
            return None
        self.latest = result
        return result
