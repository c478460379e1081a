"""NetworkX graph building and relationship derivation."""

import networkx as nx

from groups import build_spouse_groups
from models import EdgeType, Entity, Relationship

PARENT_OF = "PARENT_OF"
SPOUSE_OF = "SPOUSE_OF"


def build_graph(entities: list[Entity]) -> nx.DiGraph:
    """
    Build a NetworkX directed graph from the entity list.

    Edges carry a `relationship_type` of PARENT_OF (parent -> child) or
    SPOUSE_OF (as listed, so one-sided links stay one-sided). References to
    ids outside the list are dropped.
    """
    G = nx.DiGraph()
    for e in entities:
        G.add_node(e.id, **{**e.attributes, "generation": e.generation})

    for e in entities:
        for parent_id in e.parent_ids:
            if parent_id in G:
                G.add_edge(parent_id, e.id, relationship_type=PARENT_OF)
        for spouse_id in e.spouse_ids:
            # Never let a spouse link overwrite a parent link between the same pair
            if spouse_id in G and not G.has_edge(e.id, spouse_id):
                G.add_edge(e.id, spouse_id, relationship_type=SPOUSE_OF)

    return G


def parent_graph(entities: list[Entity]) -> nx.DiGraph:
    """Subgraph holding only PARENT_OF edges."""
    G = build_graph(entities)
    parent_edges = [
        (u, v) for u, v, d in G.edges(data=True) if d.get("relationship_type") == PARENT_OF
    ]
    H = nx.DiGraph()
    H.add_nodes_from(G.nodes)
    H.add_edges_from(parent_edges)
    return H


def derive_relationships(entities: list[Entity]) -> list[Relationship]:
    """
    Relationships to draw for a family tree.

    One parent-child edge per listed parent, and spouse edges only between
    consecutive members of each spouse group so no line passes through an
    intermediate spouse.
    """
    relationships: list[Relationship] = []
    for e in entities:
        for parent_id in e.parent_ids:
            relationships.append(Relationship(parent_id, e.id, EdgeType.PARENT_CHILD))

    spouse_groups = build_spouse_groups(entities)
    for members in spouse_groups.groups.values():
        for left, right in zip(members, members[1:]):
            relationships.append(Relationship(left, right, EdgeType.SPOUSE))

    return relationships


def get_ego_entities(entities: list[Entity], center_id: str, radius: int = 2) -> list[Entity]:
    """
    Entities within `radius` relationship hops of `center_id`, in original order.

    Args:
        entities: The full entity list
        center_id: The entity to center on
        radius: Maximum distance from center (default 2)
    """
    G = build_graph(entities)
    if center_id not in G:
        raise ValueError(f"Entity {center_id} not found in graph")

    # Undirected view so parents, children and spouses all count as neighbours
    ego = nx.ego_graph(G.to_undirected(), center_id, radius=radius)
    keep = set(ego.nodes())
    return [e for e in entities if e.id in keep]
