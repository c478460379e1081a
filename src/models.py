"""Data classes for family tree entities, relationships and geometry."""

import json
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Size:
    width: float
    height: float

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.width) and math.isfinite(self.height)


Size.INFINITE = Size(math.inf, math.inf)
DEFAULT_SIZE = Size(100.0, 100.0)


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Padding:
    left: float = 50.0
    top: float = 50.0
    right: float = 50.0
    bottom: float = 50.0


@dataclass(frozen=True)
class Entity:
    """
    A person in the tree.

    Records are immutable; use `with_changes` to derive an updated copy.
    `generation` is supplied by the caller (negative for ancestors) and is never
    derived from the graph by the layout engine.
    """

    id: str
    generation: int = 0
    parent_ids: tuple[str, ...] = ()
    spouse_ids: tuple[str, ...] = ()
    children_ids: tuple[str, ...] = ()
    size: Size = DEFAULT_SIZE
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.attributes.get("name") or self.id

    @property
    def has_multiple_spouses(self) -> bool:
        return len(self.spouse_ids) > 1

    def with_changes(self, **overrides) -> "Entity":
        for key in ("parent_ids", "spouse_ids", "children_ids"):
            if key in overrides:
                overrides[key] = tuple(overrides[key])
        return replace(self, **overrides)


class EdgeType(Enum):
    DIRECTED = "directed"
    UNDIRECTED = "undirected"
    SPOUSE = "spouse"
    PARENT_CHILD = "parent_child"
    SIBLING = "sibling"


@dataclass(frozen=True)
class Relationship:
    source_id: str
    target_id: str
    kind: EdgeType = EdgeType.DIRECTED
    id: str = ""

    def __post_init__(self):
        if not self.id:
            object.__setattr__(self, "id", f"{self.source_id}_{self.target_id}")


class NodeStyle(Enum):
    """Presentation styles and the node size each one needs."""

    CIRCLE_AVATAR = "circle_avatar"
    CARD = "card"
    COMPACT = "compact"
    DETAILED = "detailed"
    MEMORIAL = "memorial"

    @property
    def size(self) -> Size:
        return _STYLE_SIZES[self]


_STYLE_SIZES = {
    NodeStyle.CIRCLE_AVATAR: Size(100, 130),
    NodeStyle.CARD: Size(160, 140),
    NodeStyle.COMPACT: Size(60, 60),
    NodeStyle.DETAILED: Size(180, 160),
    NodeStyle.MEMORIAL: Size(120, 150),
}


def apply_style(entities: list[Entity], style: NodeStyle) -> list[Entity]:
    """Return copies of `entities` sized for the given presentation style."""
    return [e.with_changes(size=style.size) for e in entities]


# ============================================================================
# Flat record format
# ============================================================================

RESERVED_KEYS = ("id", "generation", "parentIds", "spouseIds", "childrenIds", "width", "height")

# Attribute keys that would collide with a record field are written with this prefix
ATTRIBUTE_PREFIX = "attr."


def _escape_key(key: str) -> str:
    if key in RESERVED_KEYS or key.startswith(ATTRIBUTE_PREFIX):
        return ATTRIBUTE_PREFIX + key
    return key


def _unescape_key(key: str) -> str:
    if key.startswith(ATTRIBUTE_PREFIX):
        return key[len(ATTRIBUTE_PREFIX):]
    return key


def entity_to_record(entity: Entity) -> dict[str, Any]:
    """
    Flatten an entity into `{id, generation, parentIds, spouseIds, ..., attributes}`.

    Attributes sit beside the structural fields. One named like a field (say
    `height`) is stored as `attr.height` so it never overwrites it.
    """
    record = {
        "id": entity.id,
        "generation": entity.generation,
        "parentIds": list(entity.parent_ids),
        "spouseIds": list(entity.spouse_ids),
        "childrenIds": list(entity.children_ids),
        "width": entity.size.width,
        "height": entity.size.height,
    }
    for key, value in entity.attributes.items():
        record[_escape_key(key)] = value
    return record


def _string_list(value) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(v) for v in value)


def _int_or(value, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _dimension_or(value, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value) or value < 0:
        return default
    return value


def entity_from_record(record: dict[str, Any]) -> Entity:
    """Rebuild an entity from a flat record; missing or malformed fields fall back to defaults."""
    return Entity(
        id=str(record.get("id", "")),
        generation=_int_or(record.get("generation"), 0),
        parent_ids=_string_list(record.get("parentIds")),
        spouse_ids=_string_list(record.get("spouseIds")),
        children_ids=_string_list(record.get("childrenIds")),
        size=Size(
            _dimension_or(record.get("width"), DEFAULT_SIZE.width),
            _dimension_or(record.get("height"), DEFAULT_SIZE.height),
        ),
        attributes={_unescape_key(k): v for k, v in record.items() if k not in RESERVED_KEYS},
    )


def serialize_entities(entities: list[Entity]) -> list[dict[str, Any]]:
    return [entity_to_record(e) for e in entities]


def deserialize_entities(records: list[dict[str, Any]]) -> list[Entity]:
    return [entity_from_record(r) for r in records if isinstance(r, dict)]


def dumps_entities(entities: list[Entity], indent: int | None = 2) -> str:
    return json.dumps(serialize_entities(entities), indent=indent)


def loads_entities(text: str) -> list[Entity]:
    data = json.loads(text)
    # Accept either a bare list or {"entities": [...]}
    if isinstance(data, dict):
        data = data.get("entities", [])
    if not isinstance(data, list):
        return []
    return deserialize_entities(data)
