"""Spouse-group building and parent/child group resolution."""

from dataclasses import dataclass, field

from models import Entity


@dataclass
class SpouseGroups:
    groups: dict[str, list[str]] = field(default_factory=dict)  # primary id -> member ids
    group_of: dict[str, str] = field(default_factory=dict)  # member id -> primary id


@dataclass
class GroupTree:
    children: dict[str, list[str]] = field(default_factory=dict)  # primary id -> child primaries
    roots: list[str] = field(default_factory=list)


def build_spouse_groups(entities: list[Entity]) -> SpouseGroups:
    """
    Partition entities into co-located spouse groups.

    Entities are visited in list order. Each unclaimed entity starts a group and
    pulls in every spouse that no earlier group has claimed. Membership is stable
    for symmetric spouse links; which member becomes primary depends on input
    order. A one-sided link (A lists B, B does not list A) still puts B in A's
    group. Spouse ids that are not in `entities` are ignored.
    """
    present = {e.id for e in entities}
    result = SpouseGroups()
    claimed: set[str] = set()

    for entity in entities:
        if entity.id in claimed:
            continue
        group = [entity.id]
        claimed.add(entity.id)
        for spouse_id in entity.spouse_ids:
            if spouse_id not in claimed and spouse_id in present:
                group.append(spouse_id)
                claimed.add(spouse_id)
        result.groups[entity.id] = group
        for member_id in group:
            result.group_of[member_id] = entity.id

    return result


def children_by_parent(entities: list[Entity]) -> dict[str, list[str]]:
    """Map each present parent to its children, in entity order."""
    present = {e.id for e in entities}
    children: dict[str, list[str]] = {}
    for entity in entities:
        for parent_id in entity.parent_ids:
            if parent_id not in present:
                continue
            siblings = children.setdefault(parent_id, [])
            if entity.id not in siblings:
                siblings.append(entity.id)
    return children


def resolve_child_groups(entities: list[Entity], spouse_groups: SpouseGroups) -> GroupTree:
    """
    Assign every child group to exactly one parent group.

    The children of any member are the children of the whole group. Groups are
    visited in creation order and the first group to reach a child group claims
    it; later groups skip it. This keeps the group graph a forest even when a
    child has parents in two unrelated groups (e.g. co-parents never recorded
    as spouses). It is a placement policy, not a statement about parentage.
    """
    children_of = children_by_parent(entities)
    tree = GroupTree()
    assigned: set[str] = set()

    for primary_id, members in spouse_groups.groups.items():
        child_groups: list[str] = []
        for member_id in members:
            for child_id in children_of.get(member_id, []):
                child_group = spouse_groups.group_of.get(child_id)
                if child_group is None or child_group == primary_id:
                    continue
                if child_group in assigned or child_group in child_groups:
                    continue
                child_groups.append(child_group)
        if child_groups:
            tree.children[primary_id] = child_groups
            assigned.update(child_groups)

    tree.roots = [p for p in spouse_groups.groups if p not in assigned]

    # Parentage cycles can leave whole group chains with no root; promote the
    # first unreached group of each such chain so it still gets placed.
    reached: set[str] = set()
    for root in tree.roots:
        _mark_reachable(root, tree.children, reached)
    for primary_id in spouse_groups.groups:
        if primary_id not in reached:
            tree.roots.append(primary_id)
            _mark_reachable(primary_id, tree.children, reached)

    return tree


def _mark_reachable(start: str, children: dict[str, list[str]], reached: set[str]):
    stack = [start]
    while stack:
        current = stack.pop()
        if current in reached:
            continue
        reached.add(current)
        stack.extend(children.get(current, []))
