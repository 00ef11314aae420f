"""
Mapbox Style Translator Pydantic Models.

Defines schemas for:
- Neutral style model (Style, Rule, ScaleDenominator, Symbolizer union)
- Mapbox GL input documents (MapboxStyle, MapboxLayer)
- Translation results (ReadStyleResult, WriteStyleResult)

Symbolizer properties are all optional; None means "absent". Scalar
properties also accept an array so that expressions kept literally in
lenient mode still validate.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer

from exceptions import create_error_response
from .filters import FilterExpression, FilterGrammar, filter_to_array, parse_filter


# ============================================================================
# VALUE TYPES
# ============================================================================

Expression = List[Any]
ColorValue = Union[str, Expression]
NumberValue = Union[int, float, Expression]
BoolValue = Union[bool, Expression]
StringValue = Union[str, Expression]
ArrayValue = List[Any]


# ============================================================================
# SCALE DENOMINATOR
# ============================================================================

class ScaleDenominator(BaseModel):
    """
    Visible scale range of a rule, in scale denominator units.

    Inverted relative to zoom: larger zoom means smaller denominator.
    """
    min: Optional[float] = None
    max: Optional[float] = None


# ============================================================================
# SYMBOLIZER MODELS (tagged union on 'kind')
# ============================================================================

class BaseSymbolizer(BaseModel):
    """Shared settings of every symbolizer kind."""
    model_config = ConfigDict(extra='ignore')

    visibility: Optional[bool] = None


class IconSymbolizer(BaseSymbolizer):
    """Sprite image drawn at a point (Mapbox 'symbol' layer, icon-* keys)."""
    kind: Literal["Icon"] = "Icon"
    spacing: Optional[NumberValue] = None
    avoidEdges: Optional[BoolValue] = None
    allowOverlap: Optional[BoolValue] = None
    ignorePlacement: Optional[BoolValue] = None
    optional: Optional[BoolValue] = None
    rotationAlignment: Optional[StringValue] = None
    size: Optional[NumberValue] = None
    textFit: Optional[StringValue] = None
    textFitPadding: Optional[ArrayValue] = None
    image: Optional[StringValue] = None
    rotate: Optional[NumberValue] = None
    padding: Optional[NumberValue] = None
    keepUpright: Optional[BoolValue] = None
    offset: Optional[ArrayValue] = None
    anchor: Optional[StringValue] = None
    pitchAlignment: Optional[StringValue] = None
    opacity: Optional[NumberValue] = None
    color: Optional[ColorValue] = None
    haloColor: Optional[ColorValue] = None
    haloWidth: Optional[NumberValue] = None
    haloBlur: Optional[NumberValue] = None
    translate: Optional[ArrayValue] = None
    translateAnchor: Optional[StringValue] = None


class MarkSymbolizer(BaseSymbolizer):
    """
    Well-known shape drawn at a point.

    Only wellKnownName 'circle' has a Mapbox counterpart ('circle' layer).
    """
    kind: Literal["Mark"] = "Mark"
    wellKnownName: str = "circle"
    radius: Optional[NumberValue] = None
    color: Optional[ColorValue] = None
    blur: Optional[NumberValue] = None
    opacity: Optional[NumberValue] = None
    translate: Optional[ArrayValue] = None
    translateAnchor: Optional[StringValue] = None
    pitchScale: Optional[StringValue] = None
    pitchAlignment: Optional[StringValue] = None
    strokeWidth: Optional[NumberValue] = None
    strokeColor: Optional[ColorValue] = None
    strokeOpacity: Optional[NumberValue] = None


PointSymbolizer = Annotated[
    Union[IconSymbolizer, MarkSymbolizer],
    Field(discriminator="kind")
]


class FillSymbolizer(BaseSymbolizer):
    """Polygon fill (Mapbox 'fill' layer)."""
    kind: Literal["Fill"] = "Fill"
    antialias: Optional[BoolValue] = None
    opacity: Optional[NumberValue] = None
    color: Optional[ColorValue] = None
    outlineColor: Optional[ColorValue] = None
    translate: Optional[ArrayValue] = None
    translateAnchor: Optional[StringValue] = None
    graphicFill: Optional[PointSymbolizer] = None
    # No Mapbox counterpart; reported as unsupported on export
    outlineWidth: Optional[NumberValue] = None
    outlineDasharray: Optional[ArrayValue] = None


class LineSymbolizer(BaseSymbolizer):
    """Polyline stroke (Mapbox 'line' layer)."""
    kind: Literal["Line"] = "Line"
    cap: Optional[StringValue] = None
    join: Optional[StringValue] = None
    miterLimit: Optional[NumberValue] = None
    roundLimit: Optional[NumberValue] = None
    opacity: Optional[NumberValue] = None
    color: Optional[ColorValue] = None
    translate: Optional[ArrayValue] = None
    translateAnchor: Optional[StringValue] = None
    width: Optional[NumberValue] = None
    gapWidth: Optional[NumberValue] = None
    perpendicularOffset: Optional[NumberValue] = None
    blur: Optional[NumberValue] = None
    dasharray: Optional[ArrayValue] = None
    gradient: Optional[Any] = None
    graphicFill: Optional[PointSymbolizer] = None
    # No Mapbox counterpart; reported as unsupported on export
    dashOffset: Optional[NumberValue] = None
    graphicStroke: Optional[PointSymbolizer] = None


class TextSymbolizer(BaseSymbolizer):
    """Text label (Mapbox 'symbol' layer, text-* keys)."""
    kind: Literal["Text"] = "Text"
    spacing: Optional[NumberValue] = None
    avoidEdges: Optional[BoolValue] = None
    pitchAlignment: Optional[StringValue] = None
    rotationAlignment: Optional[StringValue] = None
    label: Optional[StringValue] = None
    font: Optional[ArrayValue] = None
    size: Optional[NumberValue] = None
    maxWidth: Optional[NumberValue] = None
    lineHeight: Optional[NumberValue] = None
    letterSpacing: Optional[NumberValue] = None
    justify: Optional[StringValue] = None
    anchor: Optional[StringValue] = None
    maxAngle: Optional[NumberValue] = None
    rotate: Optional[NumberValue] = None
    padding: Optional[NumberValue] = None
    keepUpright: Optional[BoolValue] = None
    transform: Optional[StringValue] = None
    offset: Optional[ArrayValue] = None
    allowOverlap: Optional[BoolValue] = None
    ignorePlacement: Optional[BoolValue] = None
    optional: Optional[BoolValue] = None
    opacity: Optional[NumberValue] = None
    color: Optional[ColorValue] = None
    haloColor: Optional[ColorValue] = None
    haloWidth: Optional[NumberValue] = None
    haloBlur: Optional[NumberValue] = None
    translate: Optional[ArrayValue] = None
    translateAnchor: Optional[StringValue] = None


Symbolizer = Annotated[
    Union[FillSymbolizer, LineSymbolizer, IconSymbolizer, TextSymbolizer, MarkSymbolizer],
    Field(discriminator="kind")
]

SYMBOLIZER_CLASSES = {
    "Fill": FillSymbolizer,
    "Line": LineSymbolizer,
    "Icon": IconSymbolizer,
    "Text": TextSymbolizer,
    "Mark": MarkSymbolizer,
}

SYMBOLIZER_KINDS = frozenset(SYMBOLIZER_CLASSES)


# ============================================================================
# RULE / STYLE
# ============================================================================

def _coerce_filter(value: Any) -> Any:
    """Accept neutral array filters; an empty array means no filter."""
    if value is None or isinstance(value, FilterExpression):
        return value
    if isinstance(value, (list, tuple)):
        if len(value) == 0:
            return None
        return parse_filter(value, FilterGrammar.NEUTRAL)
    raise ValueError(f"filter must be an array, got {type(value).__name__}")


def _dump_filter(value: Optional[FilterExpression]) -> Optional[List[Any]]:
    if value is None:
        return None
    return filter_to_array(value, FilterGrammar.NEUTRAL)


NeutralFilter = Annotated[
    Optional[FilterExpression],
    BeforeValidator(_coerce_filter),
    PlainSerializer(_dump_filter)
]


class Rule(BaseModel):
    """
    Styling rule: which features (filter), at which scales, drawn how.

    The filter is an immutable tree; it is validated from and serialized to
    the neutral array form (['&&', ...], ['||', ...], ['!', ...]).
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = ""
    filter: NeutralFilter = None
    scaleDenominator: Optional[ScaleDenominator] = None
    symbolizers: List[Symbolizer] = Field(default_factory=list)


class Style(BaseModel):
    """
    Neutral style document.

    Created fresh by every read; never shared between calls.
    """
    name: Optional[str] = None
    rules: List[Rule] = Field(default_factory=list)


# ============================================================================
# MAPBOX GL INPUT MODELS
# ============================================================================

def _empty_bag(value: Any) -> Any:
    """Absent paint/layout is an empty property bag."""
    return {} if value is None else value


PropertyBag = Annotated[Dict[str, Any], BeforeValidator(_empty_bag)]


class MapboxLayer(BaseModel):
    """
    Single Mapbox GL style layer.

    Keys the translator does not use (source, source-layer, metadata)
    are kept as extra fields but not carried into the neutral style.
    """
    model_config = ConfigDict(extra='allow')

    id: str
    type: str
    filter: Optional[List[Any]] = None
    minzoom: Optional[Union[int, float]] = None
    maxzoom: Optional[Union[int, float]] = None
    paint: PropertyBag = Field(default_factory=dict)
    layout: PropertyBag = Field(default_factory=dict)


class MapboxStyle(BaseModel):
    """
    Mapbox GL style document (input side).
    """
    model_config = ConfigDict(extra='allow')

    version: int = 8
    name: Optional[str] = None
    sprite: Optional[str] = None
    layers: List[MapboxLayer] = Field(default_factory=list)


# ============================================================================
# RESULT MODELS
# ============================================================================

class _TranslationResult(BaseModel):
    """Common result fields: errors carry the original exceptions."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    errors: List[Exception] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def error_details(self) -> List[Dict[str, Any]]:
        """Standardized error dicts for logging or API responses."""
        return [create_error_response(e) for e in self.errors]


class ReadStyleResult(_TranslationResult):
    """Result of reading a Mapbox style into a neutral Style."""
    output: Optional[Style] = None


class WriteStyleResult(_TranslationResult):
    """
    Result of writing a neutral Style as a Mapbox style JSON string.

    unsupported_properties maps symbolizer kind -> property -> 'unsupported'
    for properties that were set but have no Mapbox counterpart.
    """
    output: Optional[str] = None
    unsupported_properties: Optional[Dict[str, Dict[str, str]]] = None
