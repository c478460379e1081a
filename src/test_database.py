from database import create_database, load_entities, store_entities
from models import Entity, Size


def test_store_and_load_round_trip(tmp_path):
    entities = [
        Entity("b", generation=-1, spouse_ids=("a",), size=Size(160, 140), attributes={"name": "Bee"}),
        Entity("a", generation=-1, spouse_ids=("b", "ghost"), children_ids=("c",)),
        Entity("c", generation=0, parent_ids=("a", "missing"), attributes={"tags": ["x", "y"]}),
    ]
    conn = create_database(tmp_path / "tree.db")
    store_entities(conn, entities)
    conn.close()

    conn = create_database(tmp_path / "tree.db")
    assert load_entities(conn) == entities
    conn.close()


def test_store_replaces_previous_contents(tmp_path):
    conn = create_database(tmp_path / "tree.db")
    store_entities(conn, [Entity("old", spouse_ids=("x",))])
    store_entities(conn, [Entity("new")])
    assert load_entities(conn) == [Entity("new")]
    conn.close()
