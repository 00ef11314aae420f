"""
Conditional expression expansion tests.

Tests 'case' parsing, expansion into one unit per predicate, literal-array
detection, and strict vs lenient handling of unsupported expressions.
"""

import copy
import random

import pytest

from exceptions import (
    ExpressionMismatchError,
    MalformedInputError,
    UnsupportedExpressionOperatorError,
)
from mapbox_styles.expressions import (
    expand_symbolizer,
    find_expression_properties,
    is_expression,
    parse_case_expression,
)
from mapbox_styles.filters import FilterGrammar, filter_to_array
from mapbox_styles.mappings import literal_array_rules
from tests.factories.style_factories import make_case_expression, make_predicate, random_color


class TestParseCaseExpression:

    def test_branches_and_default(self):
        p1, p2 = make_predicate(), make_predicate()
        expression = parse_case_expression(["case", p1, "red", p2, "blue", "black"])
        assert expression.predicates == (p1, p2)
        assert expression.values == ("red", "blue")
        assert expression.default == "black"
        assert expression.branch_count == 2

    def test_other_operator_unsupported(self):
        with pytest.raises(UnsupportedExpressionOperatorError) as exc:
            parse_case_expression(["match", ["get", "x"], "a", 1, 2])
        assert exc.value.details["operator"] == "match"

    @pytest.mark.parametrize("expression", [
        ["case", ["==", "a", 1], "red"],
        ["case", ["==", "a", 1], "red", ["==", "a", 2], "blue"],
        ["case", "black"],
    ])
    def test_malformed_case(self, expression):
        with pytest.raises(MalformedInputError):
            parse_case_expression(expression)

    def test_signature_is_json_equivalence(self):
        a = parse_case_expression(["case", ["==", "a", 1], 1, 0])
        b = parse_case_expression(["case", ["==", "a", 1], 2, 0])
        c = parse_case_expression(["case", ["==", "a", 2], 1, 0])
        assert a.signature() == b.signature()
        assert a.signature() != c.signature()


class TestIsExpression:

    def test_operator_arrays(self):
        assert is_expression(["get", "name"])
        assert not is_expression([1, 2])
        assert not is_expression([])
        assert not is_expression("red")


class TestExpandSymbolizer:

    def test_no_expression_single_unit(self):
        properties = {"kind": "Fill", "color": random_color(), "opacity": 0.5}
        units = expand_symbolizer(properties)
        assert len(units) == 1
        assert units[0].filter is None
        assert units[0].properties == properties
        assert units[0].properties is not properties

    def test_one_unit_per_predicate(self):
        count = random.randint(2, 5)
        predicates = [make_predicate("type", f"t{i}") for i in range(count)]
        colors = [random_color() for _ in range(count)]
        widths = [float(i + 1) for i in range(count)]
        properties = {
            "kind": "Line",
            "color": make_case_expression(predicates, colors, "#000000"),
            "width": make_case_expression(predicates, widths, 0.5),
            "cap": "round",
        }

        units = expand_symbolizer(properties)

        assert len(units) == count
        for index, unit in enumerate(units):
            assert unit.properties["color"] == colors[index]
            assert unit.properties["width"] == widths[index]
            assert unit.properties["cap"] == "round"
            assert filter_to_array(unit.filter, FilterGrammar.MAPBOX) == predicates[index]

    def test_default_branch_not_emitted(self):
        predicate = make_predicate()
        properties = {"kind": "Fill", "color": ["case", predicate, "#ff0000", "#00ff00"]}
        units = expand_symbolizer(properties)
        assert len(units) == 1
        assert units[0].properties["color"] == "#ff0000"

    def test_input_not_mutated(self):
        properties = {"kind": "Fill", "color": ["case", make_predicate(), "#ff0000", "#00ff00"]}
        snapshot = copy.deepcopy(properties)
        expand_symbolizer(properties)
        assert properties == snapshot

    def test_literal_arrays_are_not_expressions(self):
        properties = {"kind": "Text", "font": ["Open Sans Regular"], "offset": [0, 1]}
        units = expand_symbolizer(properties, literal_array_rules("Text"))
        assert len(units) == 1
        assert units[0].properties["font"] == ["Open Sans Regular"]

    def test_mismatch_strict_raises(self):
        properties = {
            "kind": "Fill",
            "color": ["case", ["==", "a", 1], "#ff0000", "#000000"],
            "opacity": ["case", ["==", "a", 2], 0.5, 1],
        }
        with pytest.raises(ExpressionMismatchError):
            expand_symbolizer(properties, strict=True)

    def test_mismatch_lenient_expands_along_first(self):
        p1, p2 = make_predicate(), make_predicate()
        properties = {
            "kind": "Fill",
            "color": ["case", p1, "#ff0000", p2, "#00ff00", "#000000"],
            "opacity": ["case", ["==", "a", 2], 0.5, 1],
        }
        warnings = []
        units = expand_symbolizer(properties, strict=False, warnings=warnings)
        assert len(units) == 2
        assert [u.properties["opacity"] for u in units] == [0.5, 1]
        assert len(warnings) == 1

    def test_unsupported_operator_strict_names_property(self):
        properties = {"kind": "Fill", "color": ["match", ["get", "x"], "a", "#fff", "#000"]}
        with pytest.raises(UnsupportedExpressionOperatorError) as exc:
            expand_symbolizer(properties, strict=True)
        assert exc.value.details["property"] == "color"

    def test_unsupported_operator_lenient_keeps_literal(self):
        literal = ["interpolate", ["linear"], ["zoom"], 5, 1, 10, 4]
        warnings = []
        found = find_expression_properties(
            {"kind": "Line", "width": literal}, {}, strict=False, warnings=warnings
        )
        assert found == []
        assert len(warnings) == 1
