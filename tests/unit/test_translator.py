"""
MapboxStyleTranslator tests.

Tests the read and write entry points end to end: fixed-point round
trips, 'case' expansion into rules, strict vs lenient handling, sprite
and label conversions, and that failures come back inside results.
"""

import asyncio
import copy
import json
import random

import pytest

from config import ParserConfig
from exceptions import (
    ExpressionMismatchError,
    MalformedInputError,
    UnsupportedExpressionOperatorError,
    UnsupportedKindError,
    UnsupportedLayerTypeError,
)
from mapbox_styles import MapboxStyleTranslator, Style
from mapbox_styles.filters import FilterGrammar, filter_to_array
from mapbox_styles.models import SYMBOLIZER_KINDS, IconSymbolizer, MarkSymbolizer
from mapbox_styles.scales import zoom_to_scale
from mapbox_styles.translator import LAYER_TYPE_KINDS, check_unsupported_properties
from tests.factories.style_factories import (
    make_case_expression,
    make_circle_layer,
    make_fill_layer,
    make_fill_rule,
    make_line_layer,
    make_mapbox_style,
    make_neutral_style,
    make_predicate,
    make_text_layer,
    random_color,
)


def _read(translator, document):
    return asyncio.run(translator.read_style(document))


def _write(translator, style):
    return asyncio.run(translator.write_style(style))


def _neutral_filter(rule):
    return filter_to_array(rule.filter, FilterGrammar.NEUTRAL)


class TestDispatch:

    def test_every_kind_has_reader_and_writer(self, strict_translator):
        assert set(strict_translator._readers) == SYMBOLIZER_KINDS
        assert set(strict_translator._writers) == SYMBOLIZER_KINDS

    def test_layer_types_cover_every_kind(self):
        kinds = {kind for kinds in LAYER_TYPE_KINDS.values() for kind in kinds}
        assert kinds == SYMBOLIZER_KINDS

    def test_override_of_config(self):
        config = ParserConfig(ignore_conversion_errors=False)
        translator = MapboxStyleTranslator(config=config, ignore_conversion_errors=True)
        assert translator.ignore_conversion_errors is True
        assert config.ignore_conversion_errors is False


class TestRoundTrip:

    def test_fixed_point(self, strict_translator, mapbox_style_data):
        read = _read(strict_translator, json.dumps(mapbox_style_data))
        assert read.success, read.errors

        written = _write(strict_translator, read.output)
        assert written.success, written.errors
        assert json.loads(written.output) == mapbox_style_data

    def test_second_round_trip_is_stable(self, strict_translator, mapbox_style_data):
        first = _write(strict_translator, _read(strict_translator, mapbox_style_data).output)
        second = _write(strict_translator, _read(strict_translator, first.output).output)
        assert json.loads(first.output) == json.loads(second.output)

    def test_neutral_side_fixed_point(self, strict_translator, mapbox_style_data):
        first = _read(strict_translator, mapbox_style_data).output
        again = _read(strict_translator, _write(strict_translator, first).output).output
        assert again == first

    def test_filter_and_zoom_round_trip(self, strict_translator):
        p1, p2, p3 = make_predicate(), make_predicate(), make_predicate()
        layer = make_line_layer(filter=["all", p1, ["any", p2, p3]], minzoom=5, maxzoom=12)
        document = make_mapbox_style(layers=[layer])

        style = _read(strict_translator, document).output
        rule = style.rules[0]
        assert _neutral_filter(rule) == ["&&", p1, ["||", p2, p3]]
        assert rule.scaleDenominator.min == zoom_to_scale(12)
        assert rule.scaleDenominator.max == zoom_to_scale(5)

        assert json.loads(_write(strict_translator, style).output) == document

    def test_input_not_mutated(self, strict_translator, mapbox_style_data):
        snapshot = copy.deepcopy(mapbox_style_data)
        _read(strict_translator, mapbox_style_data)
        assert mapbox_style_data == snapshot

    def test_every_read_returns_a_fresh_style(self, strict_translator, mapbox_style_data):
        first = _read(strict_translator, mapbox_style_data).output
        second = _read(strict_translator, mapbox_style_data).output
        assert first == second
        assert first is not second
        assert first.rules[0] is not second.rules[0]

    def test_empty_style(self, strict_translator):
        result = _read(strict_translator, {"version": 8, "layers": []})
        assert result.success
        assert result.output.rules == []


class TestCaseExpansion:

    def test_k_predicates_give_k_rules(self, strict_translator):
        count = random.randint(2, 6)
        predicates = [make_predicate("class", f"c{i}") for i in range(count)]
        colors = [random_color() for _ in range(count)]
        base = ["==", "$type", "Polygon"]
        layer = make_fill_layer(
            filter=base,
            paint={"fill-color": make_case_expression(predicates, colors, "#000000"), "fill-opacity": 0.8},
        )

        style = _read(strict_translator, make_mapbox_style(layers=[layer])).output

        assert len(style.rules) == count
        for index, rule in enumerate(style.rules):
            assert rule.name == layer["id"]
            assert _neutral_filter(rule) == ["&&", base, predicates[index]]
            assert rule.symbolizers[0].color == colors[index]
            assert rule.symbolizers[0].opacity == 0.8

    def test_single_predicate_gives_one_rule(self, strict_translator):
        predicate = make_predicate("kind", "park")
        layer = make_fill_layer(paint={"fill-color": ["case", predicate, "#00ff00", "#cccccc"]})

        style = _read(strict_translator, make_mapbox_style(layers=[layer])).output

        assert len(style.rules) == 1
        assert _neutral_filter(style.rules[0]) == predicate
        assert style.rules[0].symbolizers[0].color == "#00ff00"

    def test_expanded_rules_write_back_as_layers(self, strict_translator):
        predicates = [make_predicate("class", "a"), make_predicate("class", "b")]
        layer = make_line_layer(paint={"line-width": make_case_expression(predicates, [1, 3], 0)})
        style = _read(strict_translator, make_mapbox_style(layers=[layer])).output

        layers = json.loads(_write(strict_translator, style).output)["layers"]
        assert [l["filter"] for l in layers] == predicates
        assert [l["paint"]["line-width"] for l in layers] == [1, 3]

    def test_mismatch_strict_fails(self, strict_translator):
        layer = make_fill_layer(paint={
            "fill-color": ["case", ["==", "a", 1], "#ff0000", "#000000"],
            "fill-opacity": ["case", ["==", "b", 1], 0.5, 1],
        })
        result = _read(strict_translator, make_mapbox_style(layers=[layer]))
        assert not result.success
        assert result.output is None
        assert isinstance(result.errors[0], ExpressionMismatchError)

    def test_mismatch_lenient_completes_with_warning(self, lenient_translator):
        layer = make_fill_layer(paint={
            "fill-color": ["case", ["==", "a", 1], "#ff0000", ["==", "a", 2], "#00ff00", "#000000"],
            "fill-opacity": ["case", ["==", "b", 1], 0.5, 1],
        })
        result = _read(lenient_translator, make_mapbox_style(layers=[layer]))
        assert result.success
        assert len(result.output.rules) == 2
        assert result.warnings

    def test_unsupported_operator_strict_fails(self, strict_translator):
        layer = make_line_layer(paint={"line-width": ["interpolate", ["linear"], ["zoom"], 5, 1, 10, 3]})
        result = _read(strict_translator, make_mapbox_style(layers=[layer]))
        assert isinstance(result.errors[0], UnsupportedExpressionOperatorError)

    def test_unsupported_operator_lenient_keeps_literal(self, lenient_translator):
        width = ["interpolate", ["linear"], ["zoom"], 5, 1, 10, 3]
        layer = make_line_layer(paint={"line-width": width})
        result = _read(lenient_translator, make_mapbox_style(layers=[layer]))
        assert result.success
        assert result.output.rules[0].symbolizers[0].width == width

    def test_malformed_case_lenient_keeps_literal(self, lenient_translator):
        color = ["case", ["==", "a", 1], random_color()]
        layer = make_fill_layer(paint={"fill-color": color})
        result = _read(lenient_translator, make_mapbox_style(layers=[layer]))
        assert result.success
        assert len(result.output.rules) == 1
        assert result.output.rules[0].symbolizers[0].color == color
        assert result.warnings


class TestLayerTypes:

    def test_unknown_layer_type_strict(self, strict_translator):
        layer = {"id": "heat", "type": "heatmap", "paint": {"heatmap-radius": 10}}
        result = _read(strict_translator, make_mapbox_style(layers=[layer]))
        assert isinstance(result.errors[0], UnsupportedLayerTypeError)
        assert result.errors[0].details["layer_type"] == "heatmap"

    def test_unknown_layer_type_lenient_reads_circle(self, lenient_translator):
        layer = {"id": "heat", "type": "heatmap", "paint": {"heatmap-radius": 10}}
        result = _read(lenient_translator, make_mapbox_style(layers=[layer]))
        assert result.success
        symbolizer = result.output.rules[0].symbolizers[0]
        assert isinstance(symbolizer, MarkSymbolizer)
        assert symbolizer.wellKnownName == "circle"
        assert result.warnings

    def test_circle_layer(self, strict_translator):
        layer = make_circle_layer()
        rule = _read(strict_translator, make_mapbox_style(layers=[layer])).output.rules[0]
        assert rule.symbolizers[0].kind == "Mark"
        assert rule.symbolizers[0].radius == layer["paint"]["circle-radius"]

    def test_symbol_layer_with_icon_and_text(self, strict_translator):
        layer = {
            "id": "poi",
            "type": "symbol",
            "layout": {"icon-image": "cafe", "text-field": "{name}", "visibility": "visible"},
        }
        document = make_mapbox_style(layers=[layer], sprite="mapbox://sprites/user/style")

        style = _read(strict_translator, document).output

        assert [r.symbolizers[0].kind for r in style.rules] == ["Icon", "Text"]
        icon, text = style.rules[0].symbolizers[0], style.rules[1].symbolizers[0]
        assert icon.image.startswith("/sprites/?name=cafe&baseurl=")
        assert icon.visibility is True
        assert text.label == "{{name}}"

        written = json.loads(_write(strict_translator, style).output)
        assert written["sprite"] == "mapbox://sprites/user/style"
        assert written["layers"][0]["layout"] == {"icon-image": "cafe", "visibility": "visible"}
        assert written["layers"][1]["layout"] == {"text-field": "{name}", "visibility": "visible"}

    def test_text_only_symbol_layer_has_no_icon(self, strict_translator):
        layer = make_text_layer()
        style = _read(strict_translator, make_mapbox_style(layers=[layer])).output
        assert [r.symbolizers[0].kind for r in style.rules] == ["Text"]

    def test_format_text_field(self, strict_translator):
        layer = make_text_layer(layout={"text-field": ["format", ["get", "name"], {}, " ", {}, ["get", "ref"], {}]})
        rule = _read(strict_translator, make_mapbox_style(layers=[layer])).output.rules[0]
        assert rule.symbolizers[0].label == "{{name}} {{ref}}"

    def test_visibility_none(self, strict_translator):
        layer = make_fill_layer(layout={"visibility": "none"})
        style = _read(strict_translator, make_mapbox_style(layers=[layer])).output
        assert style.rules[0].symbolizers[0].visibility is False
        written = json.loads(_write(strict_translator, style).output)
        assert written["layers"][0]["layout"] == {"visibility": "none"}

    def test_invalid_visibility_strict(self, strict_translator):
        layer = make_fill_layer(layout={"visibility": "maybe"})
        result = _read(strict_translator, make_mapbox_style(layers=[layer]))
        assert isinstance(result.errors[0], MalformedInputError)
        assert result.errors[0].details["value"] == "maybe"

    def test_invalid_visibility_lenient_dropped(self, lenient_translator):
        layer = make_fill_layer(layout={"visibility": "maybe"})
        result = _read(lenient_translator, make_mapbox_style(layers=[layer]))
        assert result.success
        assert result.output.rules[0].symbolizers[0].visibility is None
        assert result.warnings

    def test_invalid_value_strict(self, strict_translator):
        layer = make_fill_layer(paint={"fill-color": 5})
        result = _read(strict_translator, make_mapbox_style(layers=[layer]))
        assert isinstance(result.errors[0], MalformedInputError)

    def test_invalid_value_lenient_dropped(self, lenient_translator):
        layer = make_fill_layer()
        layer["paint"]["fill-color"] = 5
        result = _read(lenient_translator, make_mapbox_style(layers=[layer]))
        assert result.success
        symbolizer = result.output.rules[0].symbolizers[0]
        assert symbolizer.color is None
        assert symbolizer.opacity == layer["paint"]["fill-opacity"]
        assert result.warnings

    def test_symbol_layer_without_icon_or_text_warns(self, lenient_translator):
        layer = {"id": "empty_poi", "type": "symbol", "layout": {"visibility": "none"}}
        result = _read(lenient_translator, make_mapbox_style(layers=[layer]))
        assert result.success
        assert result.output.rules == []
        assert any("empty_poi" in w for w in result.warnings)

    def test_format_text_field_lenient_skips_unsupported_lookup(self, lenient_translator):
        text_field = ["format", ["upcase", ["get", "name"]], {}, " st", {}]
        layer = make_text_layer(layout={"text-field": text_field})
        result = _read(lenient_translator, make_mapbox_style(layers=[layer]))
        assert result.output.rules[0].symbolizers[0].label == " st"
        assert result.warnings

    def test_fill_pattern(self, strict_translator):
        layer = make_fill_layer(paint={"fill-pattern": "hatch"})
        style = _read(strict_translator, make_mapbox_style(layers=[layer])).output
        graphic = style.rules[0].symbolizers[0].graphicFill
        assert isinstance(graphic, IconSymbolizer)
        assert graphic.image == "hatch"
        written = json.loads(_write(strict_translator, style).output)
        assert written["layers"][0]["paint"] == {"fill-pattern": "hatch"}

    def test_unmapped_keys_ignored(self, strict_translator):
        layer = make_fill_layer(source="osm", **{"source-layer": "landuse"})
        rule = _read(strict_translator, make_mapbox_style(layers=[layer])).output.rules[0]
        assert rule.symbolizers[0].color == layer["paint"]["fill-color"]


class TestFailuresAsResults:

    def test_invalid_json(self, strict_translator):
        result = _read(strict_translator, "{not json")
        assert not result.success
        assert isinstance(result.errors[0], MalformedInputError)

    def test_invalid_json_lenient_still_fails(self, lenient_translator):
        result = _read(lenient_translator, "[1, 2")
        assert isinstance(result.errors[0], MalformedInputError)

    def test_layer_without_id(self, strict_translator):
        result = _read(strict_translator, {"version": 8, "layers": [{"type": "fill"}]})
        assert isinstance(result.errors[0], MalformedInputError)

    def test_invalid_utf8_bytes(self, strict_translator):
        result = _read(strict_translator, b'{"version": 8, "layers": [], "name": "\xff\xfe"}')
        assert not result.success
        assert isinstance(result.errors[0], MalformedInputError)
        assert "line" not in result.errors[0].details

    def test_invalid_utf8_bytes_lenient_still_fails(self, lenient_translator):
        result = _read(lenient_translator, bytearray(b"{\x80}"))
        assert isinstance(result.errors[0], MalformedInputError)

    def test_error_details(self, strict_translator):
        result = _read(strict_translator, "{")
        details = result.error_details()
        assert details[0]["error"] == "MALFORMED_INPUT"
        assert details[0]["success"] is False

    def test_write_invalid_style(self, strict_translator):
        result = _write(strict_translator, ["not", "a", "style"])
        assert not result.success
        assert result.output is None

    def test_write_negative_scale_denominator(self, strict_translator):
        rule = make_fill_rule(scaleDenominator={"min": -5})
        result = _write(strict_translator, make_neutral_style(rules=[rule]))
        assert not result.success
        assert result.output is None
        assert isinstance(result.errors[0], MalformedInputError)
        assert result.errors[0].details["rule"] == rule["name"]

    def test_write_negative_scale_denominator_lenient_still_fails(self, lenient_translator):
        rule = make_fill_rule(scaleDenominator={"max": -1})
        result = _write(lenient_translator, make_neutral_style(rules=[rule]))
        assert isinstance(result.errors[0], MalformedInputError)


class TestWrite:

    def test_write_from_dict(self, strict_translator, neutral_style_data):
        result = _write(strict_translator, neutral_style_data)
        assert result.success
        document = json.loads(result.output)
        assert document["version"] == 8
        assert document["name"] == neutral_style_data["name"]
        layer = document["layers"][0]
        assert layer["id"] == neutral_style_data["rules"][0]["name"]
        assert layer["type"] == "fill"
        assert "filter" not in layer
        assert "minzoom" not in layer

    def test_one_layer_per_symbolizer(self, strict_translator):
        rule = make_fill_rule(
            filter=["&&", ["==", "a", 1], ["!", ["==", "b", 2]]],
            symbolizers=[{"kind": "Fill", "color": "#111111"}, {"kind": "Line", "color": "#222222"}],
        )
        layers = strict_translator.style_to_mapbox(make_neutral_style(rules=[rule]))["layers"]
        assert [l["type"] for l in layers] == ["fill", "line"]
        assert all(l["filter"] == ["all", ["==", "a", 1], ["!", ["==", "b", 2]]] for l in layers)
        assert all(l["id"] == rule["name"] for l in layers)

    def test_label_placeholders(self, strict_translator):
        rule = make_fill_rule(symbolizers=[{"kind": "Text", "label": "{{name}} ({{ref}})"}])
        layers = strict_translator.style_to_mapbox(make_neutral_style(rules=[rule]))["layers"]
        assert layers[0]["layout"]["text-field"] == "{name} ({ref})"

    def test_non_circle_mark_strict(self, strict_translator):
        rule = make_fill_rule(symbolizers=[{"kind": "Mark", "wellKnownName": "square"}])
        result = _write(strict_translator, make_neutral_style(rules=[rule]))
        assert isinstance(result.errors[0], UnsupportedKindError)

    def test_non_circle_mark_lenient(self, lenient_translator):
        rule = make_fill_rule(symbolizers=[{"kind": "Mark", "wellKnownName": "square", "radius": 4}])
        result = _write(lenient_translator, make_neutral_style(rules=[rule]))
        assert result.success
        assert json.loads(result.output)["layers"] == [{"id": rule["name"], "type": "symbol"}]
        assert result.unsupported_properties == {"Mark": {"wellKnownName": "unsupported"}}

    def test_unknown_kind_strict(self, strict_translator):
        rule = make_fill_rule(symbolizers=[{"kind": "Raster", "opacity": 1}])
        result = _write(strict_translator, make_neutral_style(rules=[rule]))
        assert isinstance(result.errors[0], UnsupportedKindError)

    def test_unknown_kind_lenient_dropped(self, lenient_translator):
        rule = make_fill_rule(symbolizers=[{"kind": "Raster"}, {"kind": "Fill", "color": "#abcdef"}])
        result = _write(lenient_translator, make_neutral_style(rules=[rule]))
        assert result.success
        layers = json.loads(result.output)["layers"]
        assert [l["type"] for l in layers] == ["fill"]
        assert result.warnings

    def test_mark_pattern_strict(self, strict_translator):
        rule = make_fill_rule(symbolizers=[{"kind": "Fill", "graphicFill": {"kind": "Mark"}}])
        result = _write(strict_translator, make_neutral_style(rules=[rule]))
        assert isinstance(result.errors[0], UnsupportedKindError)

    def test_unsupported_properties_reported(self, strict_translator):
        rule = make_fill_rule(symbolizers=[
            {"kind": "Fill", "color": "#000000", "outlineWidth": 2},
            {"kind": "Line", "dashOffset": 1},
        ])
        result = _write(strict_translator, make_neutral_style(rules=[rule]))
        assert result.success
        assert result.unsupported_properties == {
            "Fill": {"outlineWidth": "unsupported"},
            "Line": {"dashOffset": "unsupported"},
        }

    def test_no_unsupported_properties(self):
        assert check_unsupported_properties(Style.model_validate(make_neutral_style())) is None

    def test_sprite_base_url_from_icon(self, strict_translator):
        base = "https://api.mapbox.com/styles/v1/user/style/sprite"
        rule = make_fill_rule(symbolizers=[
            {"kind": "Icon", "image": f"/sprites/?name=bus&baseurl={base}"}
        ])
        document = strict_translator.style_to_mapbox(make_neutral_style(rules=[rule]))
        assert document["sprite"] == "mapbox://sprites/user/style"
        assert document["layers"][0]["layout"]["icon-image"] == "bus"

    def test_output_indent(self, neutral_style_data):
        translator = MapboxStyleTranslator(config=ParserConfig(output_indent=2))
        output = _write(translator, neutral_style_data).output
        assert output.startswith("{\n  ")

    def test_style_not_mutated(self, strict_translator, neutral_style_data):
        style = Style.model_validate(neutral_style_data)
        snapshot = style.model_copy(deep=True)
        _write(strict_translator, style)
        assert style == snapshot


class TestConcurrency:

    def test_concurrent_reads_keep_their_own_sprite(self, strict_translator):
        documents = [
            make_mapbox_style(
                layers=[{"id": "poi", "type": "symbol", "layout": {"icon-image": "cafe"}}],
                sprite=f"https://sprites.example.com/{name}",
            )
            for name in ("a", "b")
        ]

        async def read_both():
            return await asyncio.gather(*(strict_translator.read_style(d) for d in documents))

        first, second = asyncio.run(read_both())
        assert first.output.rules[0].symbolizers[0].image.endswith("sprites.example.com%2Fa")
        assert second.output.rules[0].symbolizers[0].image.endswith("sprites.example.com%2Fb")
