from cyphergraph.cypher import query_builder as qb


def test_match_adults():
    result = qb.build(qb.match_adults(21))

    assert result.text == (
        "MATCH (person:Person) WHERE person.age >= $minAge "
        "RETURN person.id AS id, person.name AS name, person.age AS age"
    )
    assert result.parameters == {"minAge": 21}


def test_find_nodes_by_label():
    result = qb.build(qb.find_nodes_by_label("Post"))

    assert result.text == "MATCH (n:Post) RETURN n"
    assert result.parameters == {}


def test_find_node_by_id():
    result = qb.build(qb.find_node_by_id("Person", "p-1"))

    assert result.text == "MATCH (n:Person {id: $id}) RETURN n"
    assert result.parameters == {"id": "p-1"}


def test_create_node_sorts_properties():
    result = qb.build(qb.create_node("Person", {"name": "Ann", "age": 30}))

    assert result.text == "CREATE (n:Person {age: $age, name: $name}) RETURN n"
    assert list(result.parameters) == ["age", "name"]
    assert result.parameters == {"age": 30, "name": "Ann"}


def test_delete_node_by_id():
    assert qb.build(qb.delete_node_by_id("Person", "p-1")).text == "MATCH (n:Person {id: $id}) DETACH DELETE n"
    assert qb.build(qb.delete_node_by_id("Person", "p-1", detach=False)).text == "MATCH (n:Person {id: $id}) DELETE n"


def test_update_node_properties():
    result = qb.build(qb.update_node_properties("Person", "p-1", {"name": "Bob", "age": 31}))

    assert result.text == "MATCH (n:Person {id: $id}) SET n.age = $set_age, n.name = $set_name RETURN n"
    assert result.parameters == {"id": "p-1", "set_age": 31, "set_name": "Bob"}
