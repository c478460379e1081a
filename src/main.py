"""
1) Load entities from a JSON record file or a GEDCOM file.
2) Optionally narrow them to the neighbourhood of one person.
3) Validate the data and report warnings.
4) Compute positions and connector paths.
5) Write the layout as JSON, and optionally store the entities in SQLite.
"""

import argparse
import json
from pathlib import Path

from database import create_database, store_entities
from graph import get_ego_entities
from layout import LayoutConfig
from models import Entity, NodeStyle, Size, apply_style, loads_entities
from parsing import assign_generations, normalize_data, parse_gedcom
from scheduling import layout_snapshot
from validation import validate_entities


def parse_canvas(value: str) -> Size:
    """'2000x1500' -> Size(2000, 1500); 'none' -> unconstrained."""
    if value.lower() in ("none", "inf"):
        return Size.INFINITE
    try:
        width, height = value.lower().split("x")
        return Size(float(width), float(height))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Canvas must look like WIDTHxHEIGHT, got {value!r}")


def non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected a whole number, got {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"Must not be negative, got {number}")
    return number


def load_input(path: Path) -> list[Entity]:
    if path.suffix.lower() == ".ged":
        return assign_generations(normalize_data(parse_gedcom(path)))
    return loads_entities(path.read_text(encoding="utf-8"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Lay out a family tree.")
    parser.add_argument("input", type=Path, help="JSON entity records or a .ged file")
    parser.add_argument("--output", type=Path, help="Layout JSON path (default: INPUT.layout.json)")
    parser.add_argument("--db", type=Path, help="Also store the entities in this SQLite file")
    parser.add_argument("--style", choices=[s.value for s in NodeStyle], help="Size nodes for a presentation style")
    parser.add_argument("--max-depth", type=non_negative_int, default=20, help="Generation rows to lay out (0 for unlimited)")
    parser.add_argument("--canvas", type=parse_canvas, default=Size(2000, 2000), help="WIDTHxHEIGHT or 'none'")
    parser.add_argument("--center", help="Only lay out people near this entity id")
    parser.add_argument("--radius", type=non_negative_int, default=2, help="Hops around --center (default 2)")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    output_path = args.output or args.input.with_suffix(".layout.json")

    print(f"Loading entities: {args.input}")
    entities = load_input(args.input)
    print(f"  Found {len(entities)} entities")

    if args.center:
        try:
            entities = get_ego_entities(entities, args.center, radius=args.radius)
        except ValueError as e:
            parser.error(str(e))
        print(f"  Kept {len(entities)} entities within {args.radius} of {args.center}")

    if args.style:
        entities = apply_style(entities, NodeStyle(args.style))

    print("Validating entities...")
    warnings = validate_entities(entities)
    if warnings:
        print(f"  Found {len(warnings)} validation warnings:")
        for w in warnings[:10]:
            print(f"    - {w}")
        if len(warnings) > 10:
            print(f"    ... and {len(warnings) - 10} more")
    else:
        print("  No validation issues found")

    if args.db:
        print(f"Storing entities in SQLite: {args.db}")
        conn = create_database(args.db)
        store_entities(conn, entities)
        conn.close()

    print("Computing layout...")
    config = LayoutConfig(max_depth=args.max_depth or None)
    result = layout_snapshot(entities, args.canvas, config)
    print(f"  Positioned {len(result.positions)} of {len(entities)} entities, {len(result.paths)} connectors")

    document = {
        "positions": {eid: [p.x, p.y] for eid, p in result.positions.items()},
        "paths": [
            {
                "id": path.relationship.id,
                "kind": path.relationship.kind.value,
                "points": [[p.x, p.y] for p in path.points],
                "arrow": path.show_arrow,
            }
            for path in result.paths
        ],
    }
    output_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
    print(f"Layout saved to {output_path}")
    print("Done!")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
