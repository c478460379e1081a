"""GEDCOM import: individuals and families become linked entities."""

from collections import deque
from pathlib import Path
import re

from ged4py import GedcomReader

from models import Entity

MONTHS = {
    "JAN": 1, "FEB": 2, "MAR": 3, "APR": 4, "MAY": 5, "JUN": 6,
    "JUL": 7, "AUG": 8, "SEP": 9, "OCT": 10, "NOV": 11, "DEC": 12,
}

QUALIFIERS = re.compile(
    r"^(ABT|ABOUT|BEF|BEFORE|AFT|AFTER|EST|CAL|FROM|TO|BET|AND|CIRCA|CA|AROUND)\.?:?\s*",
    flags=re.IGNORECASE,
)


def extract_entity_id(xref_id: str) -> str:
    """Strip GEDCOM pointer markers: '@I12@' -> 'I12'."""
    entity_id = xref_id.strip().strip("@")
    if not entity_id:
        raise ValueError(f"No identifier found in: {xref_id!r}")
    return entity_id


def _month(token: str) -> int | None:
    return MONTHS.get(token.upper().rstrip(".")[:3])


def parse_date_string(date_str: str | None) -> str | None:
    """
    Parse a GEDCOM date string into ISO format (YYYY-MM-DD).
    Returns None if the date cannot be parsed.

    Handles "25 NOV 1954", "NOV 1954", "1698", "ABT 1905", "April 17, 1850",
    "05/15/1923" (month first) and ISO dates with 00 placeholders.
    """
    if not date_str:
        return None

    s = date_str.strip().strip("()").rstrip("?")
    s = QUALIFIERS.sub("", s).strip()
    if not s:
        return None

    # "1839-08-29", "1746-00-00"
    match = re.match(r"^(\d{4})-(\d{2})-(\d{2})$", s)
    if match:
        year, month, day = (int(g) for g in match.groups())
        month, day = month or 1, day or 1
        if month <= 12 and day <= 31:
            return f"{year:04d}-{month:02d}-{day:02d}"
        return None

    # "25 NOV 1954", "11 Aug. 1968", "02 May1838"
    match = re.match(r"^(\d{1,2})\s+([A-Za-z]+)\.?\s*(\d{4})$", s)
    if match and _month(match.group(2)):
        return f"{int(match.group(3)):04d}-{_month(match.group(2)):02d}-{int(match.group(1)):02d}"

    # "NOV 1954", "May, 1837"
    match = re.match(r"^([A-Za-z]+)\.?,?\s*(\d{4})$", s)
    if match and _month(match.group(1)):
        return f"{int(match.group(2)):04d}-{_month(match.group(1)):02d}-01"

    # "April 17, 1850", "Oct.12,1929"
    match = re.match(r"^([A-Za-z]+)\.?\s*(\d{1,2}),?\s*(\d{4})$", s)
    if match and _month(match.group(1)):
        return f"{int(match.group(3)):04d}-{_month(match.group(1)):02d}-{int(match.group(2)):02d}"

    # "1/15/1957", "01-27-1920" (month first)
    match = re.match(r"^(\d{1,2})[-/](\d{1,2})[-/](\d{4})$", s)
    if match:
        month, day, year = (int(g) for g in match.groups())
        if 1 <= month <= 12 and 1 <= day <= 31:
            return f"{year:04d}-{month:02d}-{day:02d}"
        return None

    match = re.match(r"^(\d{4})$", s)
    if match:
        return f"{int(match.group(1)):04d}-01-01"

    return None


def parse_gedcom(filepath: Path) -> GedcomReader:
    """Parse a GEDCOM file and return the reader object."""
    return GedcomReader(str(filepath))


def extract_name_parts(indi) -> tuple[str, str | None, str | None]:
    """Extract full name, given name, and surname from an individual record."""
    name_rec = indi.sub_tag("NAME")
    if name_rec is None or name_rec.value is None:
        return ("Unknown", None, None)

    name_value = name_rec.value
    # ged4py returns NAME as tuple: (given, surname, suffix)
    if isinstance(name_value, tuple):
        given, surname, suffix = name_value
        parts = [p for p in [given, surname, suffix] if p]
        return (" ".join(parts) or "Unknown", given or None, surname or None)

    full_name = str(name_value).replace("/", "").strip() or "Unknown"
    return (full_name, None, None)


def extract_event_details(indi, tag: str) -> tuple[str | None, str | None]:
    """Extract date and place from an event tag (BIRT, DEAT, etc.)."""
    event = indi.sub_tag(tag)
    if event is None:
        return (None, None)

    date_rec = event.sub_tag("DATE")
    place_rec = event.sub_tag("PLAC")

    # ged4py may return DateValue objects
    date_val = str(date_rec.value) if date_rec and date_rec.value else None
    place_val = str(place_rec.value) if place_rec and place_rec.value else None
    return (date_val, place_val)


def _append_unique(links: dict[str, list[str]], key: str, value: str):
    values = links.setdefault(key, [])
    if value not in values:
        values.append(value)


def normalize_data(reader: GedcomReader) -> list[Entity]:
    """
    Build entities from parsed GEDCOM data.

    Spouse links are written in both directions. Every entity starts on
    generation 0; call `assign_generations` to place them in rows.
    Non-standard tags (starting with _) are ignored.
    """
    attributes: dict[str, dict] = {}
    parents: dict[str, list[str]] = {}
    spouses: dict[str, list[str]] = {}
    children: dict[str, list[str]] = {}

    for rec in reader.records0("INDI"):
        if rec.xref_id is None:
            continue

        entity_id = extract_entity_id(rec.xref_id)
        full_name, given_name, surname = extract_name_parts(rec)
        sex_rec = rec.sub_tag("SEX")
        birth_date_string, birth_place = extract_event_details(rec, "BIRT")
        death_date_string, death_place = extract_event_details(rec, "DEAT")

        attributes[entity_id] = {
            "name": full_name,
            "given_name": given_name,
            "surname": surname,
            "sex": sex_rec.value if sex_rec else None,
            "birth_date_string": birth_date_string,
            "birth_date": parse_date_string(birth_date_string),
            "birth_place": birth_place,
            "death_date_string": death_date_string,
            "death_date": parse_date_string(death_date_string),
            "death_place": death_place,
        }

    for rec in reader.records0("FAM"):
        if rec.xref_id is None:
            continue

        husb = rec.sub_tag("HUSB")
        wife = rec.sub_tag("WIFE")
        partner_ids = [
            extract_entity_id(p.xref_id) for p in (husb, wife) if p is not None and p.xref_id
        ]
        child_ids = [extract_entity_id(c.xref_id) for c in rec.sub_tags("CHIL") if c.xref_id]

        if len(partner_ids) == 2:
            _append_unique(spouses, partner_ids[0], partner_ids[1])
            _append_unique(spouses, partner_ids[1], partner_ids[0])

        for child_id in child_ids:
            for partner_id in partner_ids:
                _append_unique(parents, child_id, partner_id)
                _append_unique(children, partner_id, child_id)

    return [
        Entity(
            id=entity_id,
            parent_ids=tuple(parents.get(entity_id, [])),
            spouse_ids=tuple(spouses.get(entity_id, [])),
            children_ids=tuple(children.get(entity_id, [])),
            attributes=attrs,
        )
        for entity_id, attrs in attributes.items()
    ]


def assign_generations(entities: list[Entity], reference_id: str | None = None) -> list[Entity]:
    """
    Give every entity a generation by walking outward from a reference person.

    Spouses share a row, parents sit one row up and children one row down.
    The reference defaults to the first entity; components not connected to
    it are walked from their first entity, also starting at 0.
    """
    by_id = {e.id: e for e in entities}
    generation: dict[str, int] = {}

    starts = [reference_id] if reference_id in by_id else []
    starts += [e.id for e in entities]

    for start in starts:
        if start in generation:
            continue
        generation[start] = 0
        queue = deque([start])
        while queue:
            current = by_id[queue.popleft()]
            g = generation[current.id]
            neighbours = (
                [(s, g) for s in current.spouse_ids]
                + [(p, g - 1) for p in current.parent_ids]
                + [(c, g + 1) for c in current.children_ids]
            )
            for other_id, other_gen in neighbours:
                if other_id in by_id and other_id not in generation:
                    generation[other_id] = other_gen
                    queue.append(other_id)

    return [e.with_changes(generation=generation[e.id]) for e in entities]
