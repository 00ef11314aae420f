"""
Mapbox GL Style Translator Module.

Converts between Mapbox GL style documents and a neutral cartographic
style model (Style -> Rule -> Symbolizer, with boolean filter trees and
scale denominators):
- Expands 'case' expressions into one rule per predicate branch
- Renames filter combinators between the Mapbox and neutral grammars
- Converts zoom ranges to scale denominator ranges and back

Usage:
    from mapbox_styles import MapboxStyleTranslator

    translator = MapboxStyleTranslator()
    result = await translator.read_style(mapbox_json)
    written = await translator.write_style(result.output)
"""

from .models import (
    ScaleDenominator,
    FillSymbolizer,
    LineSymbolizer,
    IconSymbolizer,
    TextSymbolizer,
    MarkSymbolizer,
    Rule,
    Style,
    MapboxLayer,
    MapboxStyle,
    ReadStyleResult,
    WriteStyleResult,
)
from .filters import FilterGrammar, Predicate, Combinator, Operator, parse_filter, filter_to_array
from .translator import MapboxStyleTranslator, TranslationContext, check_unsupported_properties

__all__ = [
    "MapboxStyleTranslator",
    "TranslationContext",
    "check_unsupported_properties",
    "ScaleDenominator",
    "FillSymbolizer",
    "LineSymbolizer",
    "IconSymbolizer",
    "TextSymbolizer",
    "MarkSymbolizer",
    "Rule",
    "Style",
    "MapboxLayer",
    "MapboxStyle",
    "ReadStyleResult",
    "WriteStyleResult",
    "FilterGrammar",
    "Predicate",
    "Combinator",
    "Operator",
    "parse_filter",
    "filter_to_array",
]
