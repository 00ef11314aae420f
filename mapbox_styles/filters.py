"""
Boolean Filter Tree Translation.

Filters are immutable trees: a leaf Predicate wraps an opaque comparison
expression (never interpreted), a Combinator node joins child filters with
AND, OR or NOT. The two grammars only differ in their combinator tokens:

    Mapbox:   ["all", ...]  ["any", ...]  ["!", ...]
    Neutral:  ["&&", ...]   ["||", ...]   ["!", ...]

Parsing an array in one grammar and rendering it in the other renames the
tokens. Input arrays are never mutated; leaf expressions are deep-frozen.

Exports:
    FilterGrammar: Grammar enum (MAPBOX, NEUTRAL)
    Operator: Combinator operator enum (AND, OR, NOT)
    FilterExpression: Base class of filter tree nodes
    Predicate: Leaf node
    Combinator: Combinator node
    parse_filter: Array -> tree
    filter_to_array: Tree -> array
    translate_filter: Array in one grammar -> array in the other
    merge_filters: Conjunction of a base filter and a branch filter
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from exceptions import ContractViolationError


class FilterGrammar(Enum):
    """Token sets of the two filter grammars."""
    MAPBOX = "mapbox"
    NEUTRAL = "neutral"


class Operator(Enum):
    """Boolean combinators."""
    AND = "and"
    OR = "or"
    NOT = "not"


COMBINATOR_TOKENS: Dict[FilterGrammar, Dict[Operator, str]] = {
    FilterGrammar.MAPBOX: {
        Operator.AND: "all",
        Operator.OR: "any",
        Operator.NOT: "!",
    },
    FilterGrammar.NEUTRAL: {
        Operator.AND: "&&",
        Operator.OR: "||",
        Operator.NOT: "!",
    },
}

_OPERATORS_BY_TOKEN: Dict[FilterGrammar, Dict[str, Operator]] = {
    grammar: {token: op for op, token in tokens.items()}
    for grammar, tokens in COMBINATOR_TOKENS.items()
}


def freeze(value: Any) -> Any:
    """Deep-freeze a JSON value: lists become tuples, dicts read-only mappings."""
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    return value


def thaw(value: Any) -> Any:
    """Inverse of freeze: fresh, mutable JSON value."""
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    return value


@dataclass(frozen=True)
class FilterExpression:
    """Base class of filter tree nodes."""

    def to_array(self, grammar: FilterGrammar) -> Any:
        return filter_to_array(self, grammar)

    def __deepcopy__(self, memo):
        # Immutable trees are shared, never copied
        return self


@dataclass(frozen=True)
class Predicate(FilterExpression):
    """Leaf: opaque predicate, e.g. ('==', 'type', 'park')."""
    expression: Any

    def __post_init__(self):
        object.__setattr__(self, "expression", freeze(self.expression))


@dataclass(frozen=True)
class Combinator(FilterExpression):
    """AND / OR / NOT over child filters."""
    operator: Operator
    children: Tuple[FilterExpression, ...]

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))


def is_combinator_token(token: Any, grammar: FilterGrammar) -> bool:
    """True if token is a combinator of the given grammar."""
    return isinstance(token, str) and token in _OPERATORS_BY_TOKEN[grammar]


def parse_filter(filter_array: Any, grammar: FilterGrammar) -> FilterExpression:
    """
    Build a filter tree from an array filter.

    Arrays whose first item is a combinator token of the grammar become
    Combinator nodes; every remaining item is parsed recursively.
    Anything else is a leaf Predicate.

    Args:
        filter_array: Filter in array form
        grammar: Grammar the array is written in

    Returns:
        Filter tree
    """
    if isinstance(filter_array, FilterExpression):
        return filter_array

    if isinstance(filter_array, (list, tuple)) and filter_array \
            and is_combinator_token(filter_array[0], grammar):
        operator = _OPERATORS_BY_TOKEN[grammar][filter_array[0]]
        children = tuple(parse_filter(child, grammar) for child in filter_array[1:])
        return Combinator(operator=operator, children=children)

    return Predicate(expression=filter_array)


def filter_to_array(filter_tree: FilterExpression, grammar: FilterGrammar) -> Any:
    """
    Render a filter tree in array form.

    Args:
        filter_tree: Predicate or Combinator
        grammar: Grammar to render the combinator tokens in

    Returns:
        New array (leaf expressions are fresh copies)
    """
    if isinstance(filter_tree, Predicate):
        return thaw(filter_tree.expression)
    if isinstance(filter_tree, Combinator):
        token = COMBINATOR_TOKENS[grammar][filter_tree.operator]
        return [token] + [filter_to_array(child, grammar) for child in filter_tree.children]
    raise ContractViolationError(
        f"Expected Predicate or Combinator, got {type(filter_tree).__name__}"
    )


def translate_filter(filter_array: Any, source: FilterGrammar, target: FilterGrammar) -> Any:
    """
    Rename combinator tokens of an array filter from one grammar to another.

    translate_filter(translate_filter(f, A, B), B, A) == f
    """
    return filter_to_array(parse_filter(filter_array, source), target)


def merge_filters(
    base_filter: Optional[FilterExpression],
    branch_filter: Optional[FilterExpression]
) -> Optional[FilterExpression]:
    """
    Merge a layer's base filter with a filter from expression expansion.

    Both present: AND(base, branch). One present: that one.
    Neither: None, meaning "match everything" (not an empty filter).
    """
    if base_filter is not None and branch_filter is not None:
        return Combinator(operator=Operator.AND, children=(base_filter, branch_filter))
    if branch_filter is not None:
        return branch_filter
    return base_filter
