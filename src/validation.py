"""Consistency checks for family tree data."""

import networkx as nx

from graph import parent_graph
from models import Entity


def validate_entities(entities: list[Entity]) -> list[str]:
    """
    Validate the entity list for:
    - Cycles in parent-child relationships
    - References to ids that are not in the list
    - One-sided spouse links and spouses on different generations
    - Children not placed below their parents, or missing from a parent's child list
    - Impossible dates (child born before parent, death before birth)

    Returns a list of warning messages. Never raises: imported data is often partial.
    """
    warnings: list[str] = []
    by_id = {e.id: e for e in entities}

    # Check for cycles
    try:
        cycle = nx.find_cycle(parent_graph(entities), orientation="original")
        cycle_nodes = [edge[0] for edge in cycle]
        warnings.append(f"Cycle detected in parent-child relationships: {cycle_nodes}")
    except nx.NetworkXNoCycle:
        pass

    for e in entities:
        for kind, ids in (("parent", e.parent_ids), ("spouse", e.spouse_ids), ("child", e.children_ids)):
            for ref in ids:
                if ref not in by_id:
                    warnings.append(f"Dangling {kind} reference: {e.id} -> {ref}")

        for spouse_id in e.spouse_ids:
            spouse = by_id.get(spouse_id)
            if spouse is None:
                continue
            one_sided = e.id not in spouse.spouse_ids
            if one_sided:
                warnings.append(f"One-sided spouse link: {e.id} lists {spouse_id}")
            # A mutual link would otherwise be reported from both sides
            if spouse.generation != e.generation and (one_sided or e.id < spouse_id):
                warnings.append(
                    f"Spouses on different generations: {e.id} ({e.generation}) "
                    f"and {spouse_id} ({spouse.generation})"
                )

        for parent_id in e.parent_ids:
            parent = by_id.get(parent_id)
            if parent is None:
                continue
            if e.generation <= parent.generation:
                warnings.append(
                    f"Child {e.id} (generation {e.generation}) is not below parent "
                    f"{parent_id} (generation {parent.generation})"
                )
            if parent.children_ids and e.id not in parent.children_ids:
                warnings.append(f"Parent {parent_id} does not list child {e.id}")

            # ISO dates (YYYY-MM-DD) compare correctly as strings
            parent_birth = parent.attributes.get("birth_date")
            child_birth = e.attributes.get("birth_date")
            if parent_birth and child_birth and child_birth < parent_birth:
                warnings.append(f"Impossible: {e.name} born before parent {parent.name}")

        birth = e.attributes.get("birth_date")
        death = e.attributes.get("death_date")
        if birth and death and death < birth:
            warnings.append(f"Impossible: {e.name} died before being born")

    return warnings
