"""
Conditional Expression Expansion.

A Mapbox property may hold a 'case' expression instead of a scalar:

    ["case", predicate_1, value_1, ..., predicate_n, value_n, default]

The neutral model has no conditional values, so a symbolizer carrying such
expressions is expanded into one unit per predicate branch: a copy of the
symbolizer with every expression replaced by the branch value, paired with
the branch predicate as a filter.

Limitations:
    - The default value is not emitted as a unit of its own.
    - Branch filters do not negate earlier predicates, so the result is only
      faithful when the predicates are mutually exclusive.
    - All expressions of one symbolizer must share the same predicates.

Exports:
    CASE_OPERATOR: The only supported expression operator
    ConditionalExpression: Parsed 'case' expression
    ExpansionUnit: One expanded symbolizer plus its branch filter
    is_expression: Whether a value looks like an expression
    parse_case_expression: Array -> ConditionalExpression
    expand_symbolizer: Expand a property dict along its shared 'case' axis
"""

import copy
import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from exceptions import (
    ExpressionMismatchError,
    MalformedInputError,
    UnsupportedExpressionOperatorError,
)
from util_logger import LoggerFactory, ComponentType
from .filters import FilterExpression, FilterGrammar, parse_filter

logger = LoggerFactory.create_logger(ComponentType.EXPANDER, "expressions")

CASE_OPERATOR = "case"


@dataclass(frozen=True)
class ConditionalExpression:
    """
    Parsed 'case' expression.

    predicates[i] selects values[i]; default applies when none matches.
    """
    predicates: Tuple[Any, ...]
    values: Tuple[Any, ...]
    default: Any

    @property
    def branch_count(self) -> int:
        return len(self.predicates)

    def signature(self) -> Tuple[str, ...]:
        """JSON-equivalent form of the predicate sequence, for comparison."""
        return tuple(json.dumps(p, sort_keys=True) for p in self.predicates)

    def value_at(self, index: int) -> Any:
        """Branch value, or the default for branches this expression lacks."""
        if index < len(self.values):
            return self.values[index]
        return self.default


@dataclass
class ExpansionUnit:
    """An expanded symbolizer property dict and the filter selecting it."""
    properties: Dict[str, Any]
    filter: Optional[FilterExpression] = None


def is_expression(value: Any) -> bool:
    """A non-empty array starting with an operator name."""
    return isinstance(value, list) and len(value) > 0 and isinstance(value[0], str)


def parse_case_expression(value: List[Any]) -> ConditionalExpression:
    """
    Parse a 'case' expression.

    Raises:
        UnsupportedExpressionOperatorError: Operator is not 'case'
        MalformedInputError: Not [case, (predicate, value)+, default]
    """
    if not is_expression(value) or value[0] != CASE_OPERATOR:
        operator = value[0] if is_expression(value) else None
        raise UnsupportedExpressionOperatorError(
            "Unsupported expression. Only expressions of type 'case' are allowed.",
            operator=operator
        )

    # operator + n * (predicate, value) + default
    if len(value) < 4 or len(value) % 2 != 0:
        raise MalformedInputError(
            f"Malformed 'case' expression with {len(value)} items",
            expression=value
        )

    branches = value[1:-1]
    return ConditionalExpression(
        predicates=tuple(branches[0::2]),
        values=tuple(branches[1::2]),
        default=value[-1]
    )


def _warn(warnings: Optional[List[str]], message: str) -> None:
    logger.warning(message)
    if warnings is not None:
        warnings.append(message)


def find_expression_properties(
    properties: Mapping[str, Any],
    literal_arrays: Mapping[str, Callable[[List[Any]], bool]],
    strict: bool = True,
    warnings: Optional[List[str]] = None
) -> List[Tuple[str, ConditionalExpression]]:
    """
    Collect the properties whose values are 'case' expressions.

    Arrays accepted by the property's literal-array rule are data, not
    expressions. In lenient mode unsupported or malformed expressions are
    skipped, so the property keeps its literal array value.

    Returns:
        (property name, expression) pairs in property order
    """
    found: List[Tuple[str, ConditionalExpression]] = []
    for name, value in properties.items():
        if name == "kind" or not is_expression(value):
            continue
        is_literal = literal_arrays.get(name)
        if is_literal is not None and is_literal(value):
            continue
        try:
            found.append((name, parse_case_expression(value)))
        except (UnsupportedExpressionOperatorError, MalformedInputError) as e:
            if strict:
                e.details.setdefault("property", name)
                raise
            _warn(warnings, f"Property '{name}' keeps its literal value: {e}")
    return found


def expand_symbolizer(
    properties: Mapping[str, Any],
    literal_arrays: Optional[Mapping[str, Callable[[List[Any]], bool]]] = None,
    strict: bool = True,
    warnings: Optional[List[str]] = None
) -> List[ExpansionUnit]:
    """
    Expand a symbolizer property dict along its shared 'case' axis.

    Args:
        properties: Neutral property dict (may hold expressions)
        literal_arrays: Per-property literal-array rules
        strict: Raise on unsupported constructs instead of substituting
        warnings: Optional list collecting lenient-mode substitutions

    Returns:
        One unit without filter if no property holds an expression,
        otherwise one unit per predicate, in predicate order

    Raises:
        UnsupportedExpressionOperatorError: Non-'case' expression (strict)
        ExpressionMismatchError: Predicates differ between properties (strict)
    """
    expressions = find_expression_properties(
        properties, literal_arrays or {}, strict=strict, warnings=warnings
    )
    if not expressions:
        return [ExpansionUnit(properties=copy.deepcopy(dict(properties)))]

    axis_name, axis = expressions[0]
    for name, expression in expressions[1:]:
        if expression.signature() != axis.signature():
            if strict:
                raise ExpressionMismatchError(
                    "Cannot parse attributes. Filters do not match",
                    properties=[axis_name, name]
                )
            _warn(
                warnings,
                f"Expression of '{name}' does not match '{axis_name}'; expanding along '{axis_name}'"
            )

    logger.debug(
        f"Expanding {len(expressions)} expression(s) into {axis.branch_count} unit(s)",
        extra={'custom_dimensions': {'properties': [n for n, _ in expressions]}}
    )

    units: List[ExpansionUnit] = []
    for index, predicate in enumerate(axis.predicates):
        branch = copy.deepcopy(dict(properties))
        for name, expression in expressions:
            branch[name] = copy.deepcopy(expression.value_at(index))
        units.append(ExpansionUnit(
            properties=branch,
            filter=parse_filter(predicate, FilterGrammar.MAPBOX)
        ))
    return units
