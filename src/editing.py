"""
Editing of the entity list with consistency sweeps and undo/redo.

The model holds one mutable list and is meant for a single writer: callers
that edit from several threads must serialize access themselves. Every
mutation replaces whole entity records, so history snapshots can never be
changed after the fact.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from models import Entity, entity_from_record, entity_to_record

logger = logging.getLogger(__name__)


class EditActionType(Enum):
    ADD = "add"
    REMOVE = "remove"
    UPDATE_ATTRIBUTES = "update_attributes"
    REPARENT = "reparent"
    ADD_SPOUSE = "add_spouse"
    REMOVE_SPOUSE = "remove_spouse"


@dataclass
class EditAction:
    type: EditActionType
    description: str
    before: dict[str, Any]  # full snapshot under "entities", or a targeted delta
    after: dict[str, Any]  # what to replay on redo
    timestamp: datetime = field(default_factory=datetime.now)


# ============================================================================
# Change events
# ============================================================================


@dataclass(frozen=True)
class EntityAdded:
    entity: Entity
    parent_id: str | None = None


@dataclass(frozen=True)
class EntityRemoved:
    entity: Entity


@dataclass(frozen=True)
class EntityUpdated:
    old: Entity
    new: Entity


@dataclass(frozen=True)
class EntityMoved:
    entity: Entity
    old_parent_ids: tuple[str, ...]
    new_parent_id: str | None


@dataclass(frozen=True)
class SpouseUnlinked:
    entity_id: str
    spouse_id: str


@dataclass(frozen=True)
class EntitiesReplaced:
    reason: str  # "undo" or "set"


ChangeEvent = EntityAdded | EntityRemoved | EntityUpdated | EntityMoved | SpouseUnlinked | EntitiesReplaced
Listener = Callable[[ChangeEvent], None]


def _without(ids: tuple[str, ...], value: str) -> tuple[str, ...]:
    return tuple(i for i in ids if i != value)


def _with(ids: tuple[str, ...], value: str) -> tuple[str, ...]:
    return ids if value in ids else ids + (value,)


def _detached(entities: list[Entity]) -> list[Entity]:
    # Entities are frozen; only the attribute dicts need their own copy
    return [e.with_changes(attributes=dict(e.attributes)) for e in entities]


class EditModel:
    """
    Add, reparent, remove and link entities without corrupting the graph.

    Every successful mutation records an undoable action (unless
    `record_history=False`) and notifies subscribers with a typed event.
    """

    def __init__(self, initial_entities: list[Entity] | None = None, max_history_size: int = 50):
        self._entities: list[Entity] = list(initial_entities or [])
        self.max_history_size = max_history_size
        self._undo_stack: list[EditAction] = []
        self._redo_stack: list[EditAction] = []
        self._listeners: list[Listener] = []

    # === Access ===

    @property
    def entities(self) -> list[Entity]:
        return list(self._entities)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    def get(self, entity_id: str) -> Entity | None:
        index = self._index_of(entity_id)
        return self._entities[index] if index is not None else None

    def set_entities(self, entities: list[Entity]):
        """Replace the whole list. History is kept."""
        self._entities = list(entities)
        self._emit(EntitiesReplaced("set"))

    # === Observers ===

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: ChangeEvent):
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener %r failed on %s", listener, type(event).__name__)

    # === Add ===

    def add(self, entity: Entity, parent_id: str | None = None, record_history: bool = True) -> bool:
        """Append `entity`; with `parent_id`, link it under that parent. Id uniqueness is the caller's job."""
        new_entity = entity
        if parent_id is not None:
            new_entity = entity.with_changes(parent_ids=_with(entity.parent_ids, parent_id))

        if record_history:
            self._record(EditAction(
                type=EditActionType.ADD,
                description=f"Add {entity.name}",
                before={"entities": self._snapshot()},
                after={"entity": entity_to_record(entity), "parent_id": parent_id},
            ))

        self._entities.append(new_entity)
        if parent_id is not None:
            self._replace(parent_id, lambda p: p.with_changes(children_ids=_with(p.children_ids, new_entity.id)))

        self._emit(EntityAdded(new_entity, parent_id))
        return True

    def add_child(self, child: Entity, parent_id: str) -> bool:
        """Add `child` one generation below `parent_id`."""
        parent = self.get(parent_id)
        generation = (parent.generation if parent else 0) + 1
        return self.add(child.with_changes(parent_ids=(), generation=generation), parent_id=parent_id)

    def add_spouse(self, entity: Entity, existing_id: str, record_history: bool = True) -> bool:
        """Add `entity` as a spouse of `existing_id`, on the same generation."""
        existing = self.get(existing_id)
        if existing is None:
            return False

        spouse = entity.with_changes(generation=existing.generation, spouse_ids=(existing_id,))

        if record_history:
            self._record(EditAction(
                type=EditActionType.ADD_SPOUSE,
                description=f"Add spouse {entity.name} to {existing.name}",
                before={"entities": self._snapshot()},
                after={"entity": entity_to_record(spouse), "existing_id": existing_id},
            ))

        self._entities.append(spouse)
        self._replace(existing_id, lambda e: e.with_changes(spouse_ids=_with(e.spouse_ids, spouse.id)))

        self._emit(EntityAdded(spouse))
        return True

    # === Update ===

    def update_attributes(self, entity_id: str, changes: dict[str, Any], record_history: bool = True) -> bool:
        """Merge `changes` into an entity's attributes. Structure is untouched."""
        old = self.get(entity_id)
        if old is None:
            return False

        attributes = {**old.attributes, **changes}

        if record_history:
            self._record(EditAction(
                type=EditActionType.UPDATE_ATTRIBUTES,
                description=f"Update {old.name}",
                before={"id": entity_id, "attributes": dict(old.attributes)},
                after={"id": entity_id, "attributes": dict(attributes)},
            ))

        new = self._replace(entity_id, lambda e: e.with_changes(attributes=attributes))
        self._emit(EntityUpdated(old, new))
        return True

    # === Reparent ===

    def would_create_cycle(self, entity_id: str, parent_id: str) -> bool:
        """
        True if making `parent_id` a parent of `entity_id` would make the
        entity its own ancestor. Every parent branch above `parent_id` is walked.
        """
        visited: set[str] = set()
        stack = [parent_id]
        while stack:
            current = stack.pop()
            if current == entity_id:
                return True
            if current in visited:
                continue
            visited.add(current)
            member = self.get(current)
            if member is not None:
                stack.extend(member.parent_ids)
        return False

    def reparent(self, entity_id: str, new_parent_id: str | None, record_history: bool = True) -> bool:
        """
        Move an entity under `new_parent_id` (or detach it with None).

        Returns False, leaving everything untouched, if the entity or the new
        parent is unknown or the move would create an ancestry cycle.
        """
        entity = self.get(entity_id)
        if entity is None:
            return False
        new_parent = None
        if new_parent_id is not None:
            new_parent = self.get(new_parent_id)
            if new_parent is None:
                logger.info("Rejected reparent of %s: unknown parent %s", entity_id, new_parent_id)
                return False
            if self.would_create_cycle(entity_id, new_parent_id):
                logger.info("Rejected reparent of %s under %s: would create a cycle", entity_id, new_parent_id)
                return False

        old_parent_ids = entity.parent_ids

        if record_history:
            self._record(EditAction(
                type=EditActionType.REPARENT,
                description=f"Move {entity.name}",
                before={"entities": self._snapshot(), "old_parent_ids": list(old_parent_ids)},
                after={"entity_id": entity_id, "new_parent_id": new_parent_id},
            ))

        for old_parent_id in old_parent_ids:
            self._replace(old_parent_id, lambda p: p.with_changes(children_ids=_without(p.children_ids, entity_id)))

        generation = new_parent.generation + 1 if new_parent is not None else entity.generation
        moved = self._replace(entity_id, lambda e: e.with_changes(
            parent_ids=(new_parent_id,) if new_parent_id is not None else (),
            generation=generation,
        ))

        if new_parent_id is not None:
            self._replace(new_parent_id, lambda p: p.with_changes(children_ids=_with(p.children_ids, entity_id)))

        self._emit(EntityMoved(moved, old_parent_ids, new_parent_id))
        return True

    def make_siblings(self, entity_id: str, sibling_id: str) -> bool:
        """Reparent `entity_id` under the first parent of `sibling_id`."""
        sibling = self.get(sibling_id)
        if sibling is None or not sibling.parent_ids:
            return False
        return self.reparent(entity_id, sibling.parent_ids[0])

    # === Remove ===

    def remove_member(self, entity_id: str, record_history: bool = True) -> bool:
        """
        Remove an entity and every reference to it.

        Children of the removed entity are handed to its first surviving spouse
        (looking at both the entity's own spouse list and entities that list it
        as a spouse), so they are not orphaned when a co-parent exists.
        """
        removed = self.get(entity_id)
        if removed is None:
            return False

        if record_history:
            self._record(EditAction(
                type=EditActionType.REMOVE,
                description=f"Remove {removed.name}",
                before={"entities": self._snapshot()},
                after={"entity_id": entity_id},
            ))

        spouse_ids = list(removed.spouse_ids)
        for e in self._entities:
            if e.id != entity_id and entity_id in e.spouse_ids and e.id not in spouse_ids:
                spouse_ids.append(e.id)
        remaining_spouse_id = next(
            (s for s in spouse_ids if s != entity_id and self.get(s) is not None), None
        )

        self._entities = [e for e in self._entities if e.id != entity_id]

        adopted: list[str] = []
        swept: list[Entity] = []
        for e in self._entities:
            if entity_id in e.parent_ids:
                parent_ids = _without(e.parent_ids, entity_id)
                if remaining_spouse_id is not None:
                    parent_ids = _with(parent_ids, remaining_spouse_id)
                adopted.append(e.id)
                e = e.with_changes(parent_ids=parent_ids)
            if entity_id in e.spouse_ids or entity_id in e.children_ids:
                e = e.with_changes(
                    spouse_ids=_without(e.spouse_ids, entity_id),
                    children_ids=_without(e.children_ids, entity_id),
                )
            swept.append(e)
        self._entities = swept

        if remaining_spouse_id is not None and adopted:
            def adopt(spouse: Entity) -> Entity:
                children_ids = spouse.children_ids
                for child_id in adopted:
                    children_ids = _with(children_ids, child_id)
                return spouse.with_changes(children_ids=children_ids)

            self._replace(remaining_spouse_id, adopt)

        self._emit(EntityRemoved(removed))
        return True

    def remove_spouse(self, entity_id: str, spouse_id: str, record_history: bool = True) -> bool:
        """Unlink two spouses in both directions."""
        if self.get(entity_id) is None or self.get(spouse_id) is None:
            return False

        if record_history:
            self._record(EditAction(
                type=EditActionType.REMOVE_SPOUSE,
                description="Remove spouse relationship",
                before={"entities": self._snapshot()},
                after={"entity_id": entity_id, "spouse_id": spouse_id},
            ))

        self._replace(entity_id, lambda e: e.with_changes(spouse_ids=_without(e.spouse_ids, spouse_id)))
        self._replace(spouse_id, lambda e: e.with_changes(spouse_ids=_without(e.spouse_ids, entity_id)))

        self._emit(SpouseUnlinked(entity_id, spouse_id))
        return True

    # === Undo/Redo ===

    def undo(self) -> bool:
        """Restore the state before the last action. No-op on an empty stack."""
        if not self._undo_stack:
            return False

        action = self._undo_stack.pop()
        self._redo_stack.append(action)
        self._restore(action)
        self._emit(EntitiesReplaced("undo"))
        return True

    def redo(self) -> bool:
        """Replay the last undone action. No-op on an empty stack."""
        if not self._redo_stack:
            return False

        action = self._redo_stack.pop()
        self._undo_stack.append(action)
        self._replay(action)
        return True

    def clear_history(self):
        self._undo_stack.clear()
        self._redo_stack.clear()

    # === Private helpers ===

    def _index_of(self, entity_id: str) -> int | None:
        for i, e in enumerate(self._entities):
            if e.id == entity_id:
                return i
        return None

    def _replace(self, entity_id: str, update: Callable[[Entity], Entity]) -> Entity | None:
        index = self._index_of(entity_id)
        if index is None:
            return None
        self._entities[index] = update(self._entities[index])
        return self._entities[index]

    def _snapshot(self) -> list[Entity]:
        return _detached(self._entities)

    def _record(self, action: EditAction):
        self._undo_stack.append(action)
        self._redo_stack.clear()
        while len(self._undo_stack) > self.max_history_size:
            self._undo_stack.pop(0)

    def _restore(self, action: EditAction):
        if "entities" in action.before:
            self._entities = _detached(action.before["entities"])
        elif action.type == EditActionType.UPDATE_ATTRIBUTES:
            attributes = dict(action.before["attributes"])
            self._replace(action.before["id"], lambda e: e.with_changes(attributes=attributes))

    def _replay(self, action: EditAction):
        after = action.after
        if action.type == EditActionType.ADD:
            self.add(entity_from_record(after["entity"]), parent_id=after["parent_id"], record_history=False)
        elif action.type == EditActionType.ADD_SPOUSE:
            self.add_spouse(entity_from_record(after["entity"]), after["existing_id"], record_history=False)
        elif action.type == EditActionType.UPDATE_ATTRIBUTES:
            self.update_attributes(after["id"], after["attributes"], record_history=False)
        elif action.type == EditActionType.REPARENT:
            self.reparent(after["entity_id"], after["new_parent_id"], record_history=False)
        elif action.type == EditActionType.REMOVE:
            self.remove_member(after["entity_id"], record_history=False)
        elif action.type == EditActionType.REMOVE_SPOUSE:
            self.remove_spouse(after["entity_id"], after["spouse_id"], record_history=False)
