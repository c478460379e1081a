"""SQLite storage for entity lists."""

import json
from pathlib import Path
import sqlite3

from models import Entity, Size

LINK_KINDS = ("parent", "spouse", "child")


def create_database(db_path: Path | str) -> sqlite3.Connection:
    """Create SQLite database with entity and link tables."""
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS entity (
            ordinal INTEGER PRIMARY KEY,
            id TEXT NOT NULL UNIQUE,
            generation INTEGER NOT NULL,
            width REAL NOT NULL,
            height REAL NOT NULL,
            attributes TEXT NOT NULL
        )
    """)

    # No foreign key on target_id: dangling references are stored as-is
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS entity_link (
            entity_id TEXT NOT NULL,
            kind TEXT NOT NULL,
            ordinal INTEGER NOT NULL,
            target_id TEXT NOT NULL,
            PRIMARY KEY (entity_id, kind, ordinal),
            FOREIGN KEY (entity_id) REFERENCES entity(id)
        )
    """)

    conn.commit()
    return conn


def store_entities(conn: sqlite3.Connection, entities: list[Entity]):
    """Replace the stored entity list, keeping list and link order."""
    cursor = conn.cursor()
    cursor.execute("DELETE FROM entity_link")
    cursor.execute("DELETE FROM entity")

    cursor.executemany(
        """
        INSERT INTO entity (ordinal, id, generation, width, height, attributes)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        [
            (i, e.id, e.generation, e.size.width, e.size.height, json.dumps(e.attributes))
            for i, e in enumerate(entities)
        ],
    )

    links = []
    for e in entities:
        for kind, ids in zip(LINK_KINDS, (e.parent_ids, e.spouse_ids, e.children_ids)):
            links.extend((e.id, kind, i, target) for i, target in enumerate(ids))
    cursor.executemany(
        "INSERT INTO entity_link (entity_id, kind, ordinal, target_id) VALUES (?, ?, ?, ?)",
        links,
    )

    conn.commit()


def load_entities(conn: sqlite3.Connection) -> list[Entity]:
    """Load entities in stored order."""
    cursor = conn.cursor()

    links: dict[tuple[str, str], list[str]] = {}
    cursor.execute("SELECT entity_id, kind, target_id FROM entity_link ORDER BY entity_id, kind, ordinal")
    for entity_id, kind, target_id in cursor.fetchall():
        links.setdefault((entity_id, kind), []).append(target_id)

    cursor.execute("SELECT id, generation, width, height, attributes FROM entity ORDER BY ordinal")
    entities = []
    for entity_id, generation, width, height, attributes in cursor.fetchall():
        entities.append(
            Entity(
                id=entity_id,
                generation=generation,
                parent_ids=tuple(links.get((entity_id, "parent"), [])),
                spouse_ids=tuple(links.get((entity_id, "spouse"), [])),
                children_ids=tuple(links.get((entity_id, "child"), [])),
                size=Size(width, height),
                attributes=json.loads(attributes),
            )
        )
    return entities
