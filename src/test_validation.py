from models import Entity
from validation import validate_entities


def test_clean_tree_has_no_warnings():
    entities = [
        Entity("h", spouse_ids=("w",), children_ids=("k",)),
        Entity("w", spouse_ids=("h",), children_ids=("k",)),
        Entity("k", generation=1, parent_ids=("h", "w")),
    ]
    assert validate_entities(entities) == []


def test_cycle_is_reported():
    entities = [Entity("a", parent_ids=("b",)), Entity("b", generation=1, parent_ids=("a",))]
    warnings = validate_entities(entities)
    assert any(w.startswith("Cycle detected") for w in warnings)


def test_reference_problems_are_reported():
    entities = [
        Entity("a", spouse_ids=("b", "ghost")),
        Entity("b", generation=1),
        Entity("c", generation=0, parent_ids=("a",)),
    ]
    warnings = validate_entities(entities)
    assert "Dangling spouse reference: a -> ghost" in warnings
    assert "One-sided spouse link: a lists b" in warnings
    assert any(w.startswith("Spouses on different generations: a") for w in warnings)
    assert any(w.startswith("Child c (generation 0) is not below parent a") for w in warnings)


def test_missing_child_link_is_reported():
    entities = [Entity("p", children_ids=("x",)), Entity("x", generation=1, parent_ids=("p",)),
                Entity("y", generation=1, parent_ids=("p",))]
    assert validate_entities(entities) == ["Parent p does not list child y"]


def test_date_problems_are_reported():
    entities = [
        Entity("p", children_ids=("c",), attributes={"name": "Pat", "birth_date": "1950-01-01"}),
        Entity("c", generation=1, parent_ids=("p",),
               attributes={"name": "Cal", "birth_date": "1940-01-01", "death_date": "1930-01-01"}),
    ]
    warnings = validate_entities(entities)
    assert "Impossible: Cal born before parent Pat" in warnings
    assert "Impossible: Cal died before being born" in warnings


def test_generation_mismatch_reported_once_per_couple():
    entities = [Entity("b", spouse_ids=("a",)), Entity("a", generation=1, spouse_ids=("b",))]
    assert validate_entities(entities) == ["Spouses on different generations: a (1) and b (0)"]
