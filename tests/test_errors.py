from cyphergraph.errors import (
    CircuitOpenError,
    DomainError,
    GraphConnectionError,
    InternalConsistencyError,
    QueryError,
    QueryTimeoutError,
    is_domain_error,
    is_domain_error_of,
)


def test_query_error_carries_context_and_cause():
    cause = RuntimeError("syntax")

    err = QueryError("Cypher query execution failed", cause=cause, query="MATCH (n)", parameters={"a": 1})

    assert err.__cause__ is cause
    assert err.to_dict() == {
        "tag": "QueryError",
        "message": "Cypher query execution failed",
        "cause": "RuntimeError('syntax')",
        "context": {"query": "MATCH (n)", "parameters": {"a": 1}},
    }


def test_tag_guards():
    err = GraphConnectionError("down", url="neo4j://db", database="neo4j")

    assert is_domain_error(err)
    assert is_domain_error_of(err, "ConnectionError")
    assert not is_domain_error_of(err, "QueryError")
    assert not is_domain_error(ValueError("x"))


def test_policy_errors_messages():
    assert str(CircuitOpenError("primary")) == "Circuit breaker primary is open"
    assert str(QueryTimeoutError(250, "MATCH (n)")) == "Query timed out after 250 ms"
    assert isinstance(QueryTimeoutError(1), DomainError)


def test_internal_consistency_error_is_an_assertion():
    assert issubclass(InternalConsistencyError, AssertionError)
    assert not issubclass(InternalConsistencyError, DomainError)
