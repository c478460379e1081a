"""
Generation-based family tree layout.

Positions are computed per spouse group so couples are never split:
1) Build spouse groups and assign each child group to one parent group.
2) Bottom-up: size every group's subtree.
3) Top-down: place groups inside their allocated bands, one row per generation.
4) Centre the result on the canvas, then normalize to the configured padding.
"""

import logging
from dataclasses import dataclass, field

from groups import GroupTree, SpouseGroups, build_spouse_groups, resolve_child_groups
from models import Entity, Padding, Point, Relationship, Size

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutConfig:
    generation_height: float = 150.0  # vertical distance between generation rows
    sibling_spacing: float = 80.0
    spouse_spacing: float = 40.0
    branch_spacing: float = 120.0  # gap between independent root subtrees
    center_on_canvas: bool = True
    max_depth: int | None = 20  # None for unlimited
    padding: Padding = field(default_factory=Padding)


@dataclass(frozen=True)
class Bounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


def get_bounds(positions: dict[str, Point], sizes: dict[str, Size]) -> Bounds | None:
    """Bounding box of all positioned nodes, or None when nothing is positioned."""
    if not positions:
        return None
    min_x = min_y = float("inf")
    max_x = max_y = float("-inf")
    for entity_id, pos in positions.items():
        size = sizes.get(entity_id, Size(100, 100))
        min_x = min(min_x, pos.x)
        min_y = min(min_y, pos.y)
        max_x = max(max_x, pos.x + size.width)
        max_y = max(max_y, pos.y + size.height)
    return Bounds(min_x, min_y, max_x, max_y)


def visible_generations(entities: list[Entity], max_depth: int | None) -> list[int]:
    """Sorted distinct generations, truncated to the first `max_depth` rows."""
    generations = sorted({e.generation for e in entities})
    if max_depth is not None and len(generations) > max_depth:
        generations = generations[:max(max_depth, 0)]
    return generations


def own_width(members: list[str], sizes: dict[str, Size], spouse_spacing: float) -> float:
    """Width of a spouse group laid out side by side, without descendants."""
    total = sum(sizes[m].width for m in members)
    return total + spouse_spacing * (len(members) - 1)


def subtree_widths(
    spouse_groups: SpouseGroups,
    tree: GroupTree,
    sizes: dict[str, Size],
    config: LayoutConfig,
) -> dict[str, float]:
    """
    Horizontal space each group's subtree needs.

    width = max(own width, sum of child subtree widths + sibling spacing between them)

    A group reached again while its own width is still being computed is
    treated as a leaf.
    """
    widths: dict[str, float] = {}
    computing: set[str] = set()

    def calc(primary_id: str) -> float:
        if primary_id in widths:
            return widths[primary_id]
        group_width = own_width(spouse_groups.groups[primary_id], sizes, config.spouse_spacing)
        if primary_id in computing:
            logger.debug("Cycle at group %s; sizing it as a leaf", primary_id)
            widths[primary_id] = group_width
            return group_width
        computing.add(primary_id)

        children = tree.children.get(primary_id, [])
        width = group_width
        if children:
            children_width = sum(calc(c) for c in children)
            children_width += config.sibling_spacing * (len(children) - 1)
            width = max(group_width, children_width)

        computing.discard(primary_id)
        widths[primary_id] = width
        return width

    for root_id in tree.roots:
        calc(root_id)
    return widths


def compute_layout(
    entities: list[Entity],
    relationships: list[Relationship],
    canvas_size: Size,
    config: LayoutConfig | None = None,
) -> dict[str, Point]:
    """
    Compute the top-left position of every rendered entity.

    Relationships are read from the entities' own parent/spouse ids; the
    `relationships` argument is accepted so all layout functions share one
    signature. Dangling ids are ignored. Entities on generations cut off by
    `max_depth` get no position.
    """
    config = config or LayoutConfig()
    if not entities:
        return {}

    sizes = {e.id: e.size for e in entities}
    generation_of = {e.id: e.generation for e in entities}

    spouse_groups = build_spouse_groups(entities)
    tree = resolve_child_groups(entities, spouse_groups)
    generations = visible_generations(entities, config.max_depth)
    row_of = {g: i for i, g in enumerate(generations)}
    widths = subtree_widths(spouse_groups, tree, sizes, config)

    logger.debug(
        "Layout: %d entities, %d spouse groups, %d roots, %d generation rows",
        len(entities),
        len(spouse_groups.groups),
        len(tree.roots),
        len(generations),
    )

    positions: dict[str, Point] = {}
    placed: set[str] = set()

    def place_group(primary_id: str, left_x: float):
        if primary_id in placed:
            return
        placed.add(primary_id)

        members = spouse_groups.groups[primary_id]
        group_width = own_width(members, sizes, config.spouse_spacing)
        band_width = widths.get(primary_id, group_width)

        # The group's row comes from its primary member
        row = row_of.get(generation_of[members[0]])
        if row is None:
            return
        y = row * config.generation_height

        x = left_x + (band_width - group_width) / 2
        for member_id in members:
            positions[member_id] = Point(x, y)
            x += sizes[member_id].width + config.spouse_spacing

        child_x = left_x
        for child_id in tree.children.get(primary_id, []):
            place_group(child_id, child_x)
            child_x += widths.get(child_id, 0) + config.sibling_spacing

    root_x = 0.0
    for root_id in tree.roots:
        place_group(root_id, root_x)
        root_x += widths.get(root_id, 0) + config.branch_spacing

    if config.center_on_canvas:
        positions = _center_on_canvas(positions, sizes, canvas_size)
    return _apply_padding(positions, config.padding)


def _translate(positions: dict[str, Point], dx: float, dy: float) -> dict[str, Point]:
    return {eid: Point(p.x + dx, p.y + dy) for eid, p in positions.items()}


def _center_on_canvas(
    positions: dict[str, Point], sizes: dict[str, Size], canvas_size: Size
) -> dict[str, Point]:
    if not positions or not canvas_size.is_finite:
        return positions
    bounds = get_bounds(positions, sizes)
    dx = (canvas_size.width - bounds.width) / 2 - bounds.min_x
    dy = (canvas_size.height - bounds.height) / 2 - bounds.min_y
    return _translate(positions, dx, dy)


def _apply_padding(positions: dict[str, Point], padding: Padding) -> dict[str, Point]:
    """Shift everything so the smallest x/y sit exactly on the left/top padding."""
    if not positions:
        return positions
    min_x = min(p.x for p in positions.values())
    min_y = min(p.y for p in positions.values())
    return _translate(positions, padding.left - min_x, padding.top - min_y)
