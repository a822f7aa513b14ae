from .checker import (
    InvariantCheck,
    InvariantResult,
    all_nodes_have_property,
    check_invariants,
    example_invariants,
    for_all_exists_unique,
    property_is_unique,
    run_invariants_or_fail,
)

__all__ = [
    "InvariantResult",
    "InvariantCheck",
    "for_all_exists_unique",
    "all_nodes_have_property",
    "property_is_unique",
    "check_invariants",
    "run_invariants_or_fail",
    "example_invariants",
]
