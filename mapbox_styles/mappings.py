"""
Attribute Mapping Tables.

Static key correspondence between neutral symbolizer properties and Mapbox
paint/layout keys, one table per symbolizer kind. Values are copied as-is;
value conversions (visibility, labels, sprites) happen in the translator.

Each entry may name a literal-array rule: a predicate telling whether an
array value of that property is plain data (a font list, an offset pair)
rather than an expression. Only properties with array-valued data need one.

Exports:
    PropertyMapping: Table entry
    MAPPING_TABLES: Kind -> tuple of PropertyMapping
    SHARED_SYMBOL_PROPERTIES: Keys shared by icon and text of one symbol layer
    UNSUPPORTED_PROPERTIES: Neutral properties without Mapbox counterpart
    read_properties: paint/layout bags -> neutral property dict
    write_properties: neutral property dict -> (paint, layout)
    literal_array_rules: Kind -> {property: predicate}
"""

from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Tuple

from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.MAPPING, "mappings")

PAINT = "paint"
LAYOUT = "layout"


def is_number_list(value: List[Any]) -> bool:
    """[2, 4] style data: offsets, translations, dash arrays, paddings."""
    return all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value)


def is_string_list(value: List[Any]) -> bool:
    """['Open Sans Regular', 'Arial Unicode MS Regular'] style font stacks."""
    return all(isinstance(v, str) for v in value)


def is_text_lookup(value: List[Any]) -> bool:
    """'format' and 'get' text fields, converted to a label template instead."""
    return bool(value) and value[0] in ("format", "get")


class PropertyMapping(NamedTuple):
    """One neutral property <-> one Mapbox key."""
    name: str
    container: str
    key: str
    literal_array: Optional[Callable[[List[Any]], bool]] = None


# ============================================================================
# TABLES
# ============================================================================

FILL_MAPPINGS: Tuple[PropertyMapping, ...] = (
    PropertyMapping("visibility", LAYOUT, "visibility"),
    PropertyMapping("antialias", PAINT, "fill-antialias"),
    PropertyMapping("opacity", PAINT, "fill-opacity"),
    PropertyMapping("color", PAINT, "fill-color"),
    PropertyMapping("outlineColor", PAINT, "fill-outline-color"),
    PropertyMapping("translate", PAINT, "fill-translate", is_number_list),
    PropertyMapping("translateAnchor", PAINT, "fill-translate-anchor"),
    PropertyMapping("graphicFill", PAINT, "fill-pattern"),
)

LINE_MAPPINGS: Tuple[PropertyMapping, ...] = (
    PropertyMapping("visibility", LAYOUT, "visibility"),
    PropertyMapping("cap", LAYOUT, "line-cap"),
    PropertyMapping("join", LAYOUT, "line-join"),
    PropertyMapping("miterLimit", LAYOUT, "line-miter-limit"),
    PropertyMapping("roundLimit", LAYOUT, "line-round-limit"),
    PropertyMapping("opacity", PAINT, "line-opacity"),
    PropertyMapping("color", PAINT, "line-color"),
    PropertyMapping("translate", PAINT, "line-translate", is_number_list),
    PropertyMapping("translateAnchor", PAINT, "line-translate-anchor"),
    PropertyMapping("width", PAINT, "line-width"),
    PropertyMapping("gapWidth", PAINT, "line-gap-width"),
    PropertyMapping("perpendicularOffset", PAINT, "line-offset"),
    PropertyMapping("blur", PAINT, "line-blur"),
    PropertyMapping("dasharray", PAINT, "line-dasharray", is_number_list),
    PropertyMapping("graphicFill", PAINT, "line-pattern"),
    PropertyMapping("gradient", PAINT, "line-gradient"),
)

ICON_MAPPINGS: Tuple[PropertyMapping, ...] = (
    PropertyMapping("spacing", LAYOUT, "symbol-spacing"),
    PropertyMapping("avoidEdges", LAYOUT, "symbol-avoid-edges"),
    PropertyMapping("allowOverlap", LAYOUT, "icon-allow-overlap"),
    PropertyMapping("ignorePlacement", LAYOUT, "icon-ignore-placement"),
    PropertyMapping("optional", LAYOUT, "icon-optional"),
    PropertyMapping("rotationAlignment", LAYOUT, "icon-rotation-alignment"),
    PropertyMapping("size", LAYOUT, "icon-size"),
    PropertyMapping("textFit", LAYOUT, "icon-text-fit"),
    PropertyMapping("textFitPadding", LAYOUT, "icon-text-fit-padding", is_number_list),
    PropertyMapping("image", LAYOUT, "icon-image"),
    PropertyMapping("rotate", LAYOUT, "icon-rotate"),
    PropertyMapping("padding", LAYOUT, "icon-padding"),
    PropertyMapping("keepUpright", LAYOUT, "icon-keep-upright"),
    PropertyMapping("offset", LAYOUT, "icon-offset", is_number_list),
    PropertyMapping("anchor", LAYOUT, "icon-anchor"),
    PropertyMapping("pitchAlignment", LAYOUT, "icon-pitch-alignment"),
    PropertyMapping("visibility", LAYOUT, "visibility"),
    PropertyMapping("opacity", PAINT, "icon-opacity"),
    PropertyMapping("color", PAINT, "icon-color"),
    PropertyMapping("haloColor", PAINT, "icon-halo-color"),
    PropertyMapping("haloWidth", PAINT, "icon-halo-width"),
    PropertyMapping("haloBlur", PAINT, "icon-halo-blur"),
    PropertyMapping("translate", PAINT, "icon-translate", is_number_list),
    PropertyMapping("translateAnchor", PAINT, "icon-translate-anchor"),
)

TEXT_MAPPINGS: Tuple[PropertyMapping, ...] = (
    PropertyMapping("spacing", LAYOUT, "symbol-spacing"),
    PropertyMapping("avoidEdges", LAYOUT, "symbol-avoid-edges"),
    PropertyMapping("pitchAlignment", LAYOUT, "text-pitch-alignment"),
    PropertyMapping("rotationAlignment", LAYOUT, "text-rotation-alignment"),
    PropertyMapping("label", LAYOUT, "text-field", is_text_lookup),
    PropertyMapping("font", LAYOUT, "text-font", is_string_list),
    PropertyMapping("size", LAYOUT, "text-size"),
    PropertyMapping("maxWidth", LAYOUT, "text-max-width"),
    PropertyMapping("lineHeight", LAYOUT, "text-line-height"),
    PropertyMapping("letterSpacing", LAYOUT, "text-letter-spacing"),
    PropertyMapping("justify", LAYOUT, "text-justify"),
    PropertyMapping("anchor", LAYOUT, "text-anchor"),
    PropertyMapping("maxAngle", LAYOUT, "text-max-angle"),
    PropertyMapping("rotate", LAYOUT, "text-rotate"),
    PropertyMapping("padding", LAYOUT, "text-padding"),
    PropertyMapping("keepUpright", LAYOUT, "text-keep-upright"),
    PropertyMapping("transform", LAYOUT, "text-transform"),
    PropertyMapping("offset", LAYOUT, "text-offset", is_number_list),
    PropertyMapping("allowOverlap", LAYOUT, "text-allow-overlap"),
    PropertyMapping("ignorePlacement", LAYOUT, "text-ignore-placement"),
    PropertyMapping("optional", LAYOUT, "text-optional"),
    PropertyMapping("visibility", LAYOUT, "visibility"),
    PropertyMapping("opacity", PAINT, "text-opacity"),
    PropertyMapping("color", PAINT, "text-color"),
    PropertyMapping("haloColor", PAINT, "text-halo-color"),
    PropertyMapping("haloWidth", PAINT, "text-halo-width"),
    PropertyMapping("haloBlur", PAINT, "text-halo-blur"),
    PropertyMapping("translate", PAINT, "text-translate", is_number_list),
    PropertyMapping("translateAnchor", PAINT, "text-translate-anchor"),
)

# Circle marks only; other well-known names have no Mapbox layer
MARK_MAPPINGS: Tuple[PropertyMapping, ...] = (
    PropertyMapping("visibility", LAYOUT, "visibility"),
    PropertyMapping("radius", PAINT, "circle-radius"),
    PropertyMapping("color", PAINT, "circle-color"),
    PropertyMapping("blur", PAINT, "circle-blur"),
    PropertyMapping("opacity", PAINT, "circle-opacity"),
    PropertyMapping("translate", PAINT, "circle-translate", is_number_list),
    PropertyMapping("translateAnchor", PAINT, "circle-translate-anchor"),
    PropertyMapping("pitchScale", PAINT, "circle-pitch-scale"),
    PropertyMapping("pitchAlignment", PAINT, "circle-pitch-alignment"),
    PropertyMapping("strokeWidth", PAINT, "circle-stroke-width"),
    PropertyMapping("strokeColor", PAINT, "circle-stroke-color"),
    PropertyMapping("strokeOpacity", PAINT, "circle-stroke-opacity"),
)

MAPPING_TABLES: Dict[str, Tuple[PropertyMapping, ...]] = {
    "Fill": FILL_MAPPINGS,
    "Line": LINE_MAPPINGS,
    "Icon": ICON_MAPPINGS,
    "Text": TEXT_MAPPINGS,
    "Mark": MARK_MAPPINGS,
}

# Layout keys of a 'symbol' layer read into both the icon and the text symbolizer
SHARED_SYMBOL_PROPERTIES = ("visibility", "spacing", "avoidEdges")

UNSUPPORTED_PROPERTIES: Dict[str, Dict[str, str]] = {
    "Fill": {
        "outlineWidth": "unsupported",
        "outlineDasharray": "unsupported",
    },
    "Line": {
        "dashOffset": "unsupported",
        "graphicStroke": "unsupported",
    },
}


# ============================================================================
# TABLE ACCESS
# ============================================================================

def read_properties(kind: str, paint: Mapping[str, Any], layout: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Rename the Mapbox keys present in paint/layout to neutral properties.

    Absent keys are left out; values are copied by reference (callers
    deep-copy the layer before reading).

    Returns:
        Dict with 'kind' plus one entry per present key
    """
    bags = {PAINT: paint, LAYOUT: layout}
    properties: Dict[str, Any] = {"kind": kind}
    for mapping in MAPPING_TABLES[kind]:
        bag = bags[mapping.container]
        if mapping.key in bag:
            properties[mapping.name] = bag[mapping.key]
    return properties


def write_properties(kind: str, properties: Mapping[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Rename neutral properties to Mapbox keys, dropping unset values.

    Returns:
        (paint, layout) dicts, possibly empty
    """
    paint: Dict[str, Any] = {}
    layout: Dict[str, Any] = {}
    for mapping in MAPPING_TABLES[kind]:
        value = properties.get(mapping.name)
        if value is None:
            continue
        target = paint if mapping.container == PAINT else layout
        target[mapping.key] = value
    return paint, layout


def literal_array_rules(kind: str) -> Dict[str, Callable[[List[Any]], bool]]:
    """Per-property literal-array predicates of a kind."""
    return {
        m.name: m.literal_array
        for m in MAPPING_TABLES[kind]
        if m.literal_array is not None
    }


def unmapped_keys(kinds: Tuple[str, ...], paint: Mapping[str, Any], layout: Mapping[str, Any]) -> List[str]:
    """Mapbox keys of a layer that no table of the given kinds reads."""
    known = {m.key for kind in kinds for m in MAPPING_TABLES[kind]}
    ignored = [k for k in list(paint) + list(layout) if k not in known]
    if ignored:
        logger.debug(f"Ignoring unmapped Mapbox keys: {ignored}")
    return ignored
