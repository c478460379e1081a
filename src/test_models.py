import pytest

from models import (
    Entity,
    NodeStyle,
    Relationship,
    EdgeType,
    Size,
    apply_style,
    deserialize_entities,
    dumps_entities,
    entity_from_record,
    entity_to_record,
    loads_entities,
    serialize_entities,
)


def sample_entities():
    return [
        Entity("a", generation=-1, spouse_ids=("b",), children_ids=("c",), attributes={"name": "Alice"}),
        # One-sided: b does not list a back
        Entity("b", generation=-1, size=Size(160, 140), attributes={"name": "Bob", "sex": "M"}),
        Entity("c", generation=0, parent_ids=("a", "ghost"), attributes={"birth_date": "1950-01-01"}),
    ]


def test_round_trip_keeps_asymmetric_and_dangling_references():
    entities = sample_entities()
    assert deserialize_entities(serialize_entities(entities)) == entities


def test_json_round_trip_preserves_order():
    entities = sample_entities()
    restored = loads_entities(dumps_entities(entities))
    assert [e.id for e in restored] == ["a", "b", "c"]
    assert restored == entities


def test_record_is_flat():
    record = entity_to_record(sample_entities()[1])
    assert record == {
        "id": "b",
        "generation": -1,
        "parentIds": [],
        "spouseIds": [],
        "childrenIds": [],
        "width": 160,
        "height": 140,
        "name": "Bob",
        "sex": "M",
    }


def test_missing_fields_use_defaults():
    entity = entity_from_record({"id": "x"})
    assert entity.generation == 0
    assert entity.parent_ids == ()
    assert entity.size == Size(100, 100)
    assert entity.attributes == {}


def test_loads_accepts_wrapped_document():
    assert [e.id for e in loads_entities('{"entities": [{"id": "x"}, {"id": "y"}]}')] == ["x", "y"]


def test_with_changes_returns_new_record():
    original = Entity("a", spouse_ids=("b",))
    changed = original.with_changes(spouse_ids=["b", "c"], generation=2)
    assert original.spouse_ids == ("b",)
    assert changed.spouse_ids == ("b", "c")
    assert changed.generation == 2


def test_name_falls_back_to_id():
    assert Entity("x").name == "x"
    assert Entity("x", attributes={"name": "Xavier"}).name == "Xavier"


def test_apply_style_sizes_every_entity():
    styled = apply_style(sample_entities(), NodeStyle.COMPACT)
    assert {e.size for e in styled} == {Size(60, 60)}


def test_relationship_default_id():
    rel = Relationship("p", "c", EdgeType.PARENT_CHILD)
    assert rel.id == "p_c"
    assert Relationship("p", "c", id="custom").id == "custom"


def test_infinite_size_is_not_finite():
    assert not Size.INFINITE.is_finite
    assert Size(10, 10).is_finite


def test_attributes_named_like_record_fields_round_trip():
    entities = [Entity("a", size=Size(160, 140), attributes={
        "height": "170cm", "id": "N-1", "parentIds": "see notes", "attr.note": "kept", "name": "Ann",
    })]
    record = entity_to_record(entities[0])
    assert record["height"] == 140
    assert record["attr.height"] == "170cm"
    assert deserialize_entities(serialize_entities(entities)) == entities
    assert loads_entities(dumps_entities(entities)) == entities


@pytest.mark.parametrize(
    "record",
    [
        {"id": "a", "generation": "unknown"},
        {"id": "a", "generation": None},
        {"id": "a", "width": None, "height": "tall"},
        {"id": "a", "width": -5, "height": True},
    ],
)
def test_malformed_fields_fall_back_to_defaults(record):
    entity = entity_from_record(record)
    assert entity.generation == 0
    assert entity.size == Size(100, 100)


def test_loads_skips_entries_that_are_not_records():
    assert [e.id for e in loads_entities('[{"id": "a", "generation": "2"}, 7, "x"]')] == ["a"]
    assert loads_entities('"nothing"') == []
