"""Connector routing from computed positions."""

from dataclasses import dataclass

from models import EdgeType, Point, Relationship, Size

DEFAULT_NODE_SIZE = Size(80, 80)


@dataclass(frozen=True)
class EdgePath:
    relationship: Relationship
    points: tuple[Point, ...]
    show_arrow: bool = False


def _spouse_path(a: Point, b: Point, a_size: Size, b_size: Size) -> tuple[Point, ...]:
    # Decide left/right from positions so either storage order draws the same line
    if a.x <= b.x:
        left, left_size, right = a, a_size, b
    else:
        left, left_size, right = b, b_size, a
    y = left.y + left_size.height / 2
    return (Point(left.x + left_size.width, y), Point(right.x, y))


def _parent_child_path(parent: Point, child: Point, p_size: Size, c_size: Size) -> tuple[Point, ...]:
    parent_bottom = parent.y + p_size.height
    parent_center = parent.x + p_size.width / 2
    child_top = child.y
    child_center = child.x + c_size.width / 2
    mid_y = (parent_bottom + child_top) / 2
    return (
        Point(parent_center, parent_bottom),
        Point(parent_center, mid_y),
        Point(child_center, mid_y),
        Point(child_center, child_top),
    )


def _center_path(a: Point, b: Point, a_size: Size, b_size: Size) -> tuple[Point, ...]:
    return (
        Point(a.x + a_size.width / 2, a.y + a_size.height / 2),
        Point(b.x + b_size.width / 2, b.y + b_size.height / 2),
    )


def compute_edge_paths(
    positions: dict[str, Point],
    relationships: list[Relationship],
    sizes: dict[str, Size],
) -> list[EdgePath]:
    """
    Turn relationships into polylines.

    - Spouse: horizontal segment between the facing edges of the two nodes.
    - Parent-child: four-point orthogonal elbow through the vertical midpoint.
    - Anything else: straight line between node centres.

    Relationships with an unpositioned end are skipped.
    """
    paths: list[EdgePath] = []
    for rel in relationships:
        source = positions.get(rel.source_id)
        target = positions.get(rel.target_id)
        if source is None or target is None:
            continue

        source_size = sizes.get(rel.source_id, DEFAULT_NODE_SIZE)
        target_size = sizes.get(rel.target_id, DEFAULT_NODE_SIZE)

        if rel.kind == EdgeType.SPOUSE:
            points = _spouse_path(source, target, source_size, target_size)
        elif rel.kind == EdgeType.PARENT_CHILD:
            points = _parent_child_path(source, target, source_size, target_size)
        else:
            points = _center_path(source, target, source_size, target_size)

        paths.append(EdgePath(rel, points, show_arrow=rel.kind == EdgeType.DIRECTED))
    return paths
