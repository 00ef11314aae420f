"""
Mapbox GL Style Translator.

Translates between Mapbox GL style documents and the neutral Style model:

- Read:  Mapbox layers -> Rules (one layer may expand into several rules
         when its properties hold 'case' expressions)
- Write: Rules -> Mapbox layers (one layer per symbolizer)

Strict mode (default) raises on the first unsupported construct. Lenient
mode (ignore_conversion_errors) substitutes a best-effort value, records a
warning and carries on. The async entry points never raise; failures come
back inside the result.

Usage:
    translator = MapboxStyleTranslator(ignore_conversion_errors=True)
    result = await translator.read_style(mapbox_json)
    if result.success:
        style = result.output

Exports:
    MapboxStyleTranslator: Bidirectional translator
    TranslationContext: Per-call state (sprite base URL, warnings)
    LAYER_TYPE_KINDS: Mapbox layer type -> symbolizer kinds
    check_unsupported_properties: Report of set properties Mapbox cannot express
"""

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from config import ParserConfig, ParserDefaults, get_config
from exceptions import (
    MalformedInputError,
    StyleConversionError,
    UnsupportedExpressionOperatorError,
    UnsupportedKindError,
    UnsupportedLayerTypeError,
    create_error_response,
)
from util_logger import LoggerFactory, ComponentType, LogContext
from .expressions import expand_symbolizer
from .filters import FilterGrammar, filter_to_array, merge_filters, parse_filter
from .mappings import (
    SHARED_SYMBOL_PROPERTIES,
    UNSUPPORTED_PROPERTIES,
    literal_array_rules,
    read_properties,
    unmapped_keys,
    write_properties,
)
from .models import (
    SYMBOLIZER_CLASSES,
    SYMBOLIZER_KINDS,
    IconSymbolizer,
    MapboxLayer,
    MapboxStyle,
    ReadStyleResult,
    Rule,
    Style,
    WriteStyleResult,
)
from .scales import scale_denominator_from_zoom, zoom_from_scale_denominator
from .utils import (
    all_undefined,
    icon_image_url,
    label_to_text_field,
    mapbox_placeholder_for_url,
    parse_icon_image,
    text_field_to_label,
    url_for_mapbox_placeholder,
)

LAYER_TYPE_KINDS: Dict[str, Tuple[str, ...]] = {
    "fill": ("Fill",),
    "line": ("Line",),
    "circle": ("Mark",),
    "symbol": ("Icon", "Text"),
}

# Kind used for layers of unknown type in lenient mode
FALLBACK_KINDS: Tuple[str, ...] = ("Mark",)

VISIBILITY_TO_BOOL = {"visible": True, "none": False}

# (layer type, (paint, layout))
WrittenLayer = Tuple[str, Tuple[Dict[str, Any], Dict[str, Any]]]


@dataclass
class TranslationContext:
    """
    State of one read or write call.

    Created per call and passed explicitly, so concurrent calls on one
    translator never share a sprite base URL or warning list.
    """
    strict: bool = True
    sprite_base_url: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def substitute(self, error: StyleConversionError, logger=None) -> None:
        """Raise the error in strict mode, otherwise record it as a warning."""
        if self.strict:
            raise error
        message = f"{error.message} (substituted)"
        if logger is not None:
            logger.warning(message, extra={'custom_dimensions': create_error_response(error)})
        self.warnings.append(message)


def check_unsupported_properties(style: Style) -> Optional[Dict[str, Dict[str, str]]]:
    """
    Collect set symbolizer properties that have no Mapbox counterpart.

    Returns:
        {kind: {property: 'unsupported'}}, or None if everything is supported
    """
    report: Dict[str, Dict[str, str]] = {}
    for rule in style.rules:
        for symbolizer in rule.symbolizers:
            if symbolizer.kind == "Mark" and symbolizer.wellKnownName.lower() != "circle":
                report.setdefault("Mark", {})["wellKnownName"] = "unsupported"
            for name, support in UNSUPPORTED_PROPERTIES.get(symbolizer.kind, {}).items():
                if getattr(symbolizer, name, None) is not None:
                    report.setdefault(symbolizer.kind, {})[name] = support
    return report or None


class MapboxStyleTranslator:
    """
    Bidirectional Mapbox GL <-> neutral Style translator.

    The translator itself is stateless between calls; every call gets its
    own TranslationContext.
    """

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        ignore_conversion_errors: Optional[bool] = None,
        correlation_id: Optional[str] = None
    ):
        """
        Args:
            config: Translator configuration (defaults to the environment singleton)
            ignore_conversion_errors: Overrides config.ignore_conversion_errors
            correlation_id: Optional ID added to every log record
        """
        config = config or get_config()
        if ignore_conversion_errors is not None:
            config = config.model_copy(update={'ignore_conversion_errors': ignore_conversion_errors})
        self.config = config

        name = "MapboxStyleTranslator"
        if correlation_id:
            name = f"{name}.{correlation_id}"
        self.logger = LoggerFactory.create_with_context(
            ComponentType.TRANSLATOR,
            name,
            correlation_id=correlation_id
        )

        self._readers: Dict[str, Callable[[Dict[str, Any], TranslationContext], Dict[str, Any]]] = {
            "Fill": self._read_fill,
            "Line": self._read_line,
            "Icon": self._read_icon,
            "Text": self._read_text,
            "Mark": self._read_mark,
        }
        self._writers: Dict[str, Callable[[Any, TranslationContext], WrittenLayer]] = {
            "Fill": self._write_fill,
            "Line": self._write_line,
            "Icon": self._write_icon,
            "Text": self._write_text,
            "Mark": self._write_mark,
        }

    @property
    def ignore_conversion_errors(self) -> bool:
        return self.config.ignore_conversion_errors

    def new_context(self) -> TranslationContext:
        return TranslationContext(strict=not self.ignore_conversion_errors)

    # ========================================================================
    # ENTRY POINTS
    # ========================================================================

    async def read_style(self, mapbox_style: Union[str, bytes, Dict[str, Any], MapboxStyle]) -> ReadStyleResult:
        """
        Read a Mapbox GL style (JSON text or parsed document).

        Never raises: any failure is returned in result.errors.
        """
        context = self.new_context()
        try:
            style = self.mapbox_to_style(mapbox_style, context)
        except Exception as e:
            self.logger.error(
                f"Failed to read Mapbox style: {e}",
                exc_info=not isinstance(e, StyleConversionError),
                extra={'custom_dimensions': create_error_response(e)}
            )
            return ReadStyleResult(errors=[e], warnings=context.warnings)

        self.logger.info(
            f"Read Mapbox style into {len(style.rules)} rule(s)",
            extra={'custom_dimensions': {
                **LogContext(style_name=style.name).to_dict(),
                'warnings': len(context.warnings)
            }}
        )
        return ReadStyleResult(output=style, warnings=context.warnings)

    async def write_style(self, style: Union[Style, Dict[str, Any]]) -> WriteStyleResult:
        """
        Write a neutral Style as a Mapbox GL style JSON string.

        Never raises: any failure is returned in result.errors.
        """
        context = self.new_context()
        try:
            neutral = self._coerce_style(style, context)
            unsupported = check_unsupported_properties(neutral)
            document = self.style_to_mapbox(neutral, context)
            output = json.dumps(document, indent=self.config.output_indent)
        except Exception as e:
            self.logger.error(
                f"Failed to write Mapbox style: {e}",
                exc_info=not isinstance(e, StyleConversionError),
                extra={'custom_dimensions': create_error_response(e)}
            )
            return WriteStyleResult(errors=[e], warnings=context.warnings)

        if unsupported:
            self.logger.info(
                "Style uses properties without Mapbox counterpart",
                extra={'custom_dimensions': {'unsupported_properties': unsupported}}
            )
        return WriteStyleResult(
            output=output,
            warnings=context.warnings,
            unsupported_properties=unsupported
        )

    # ========================================================================
    # READ: MAPBOX -> STYLE
    # ========================================================================

    def mapbox_to_style(
        self,
        mapbox_style: Union[str, bytes, Dict[str, Any], MapboxStyle],
        context: Optional[TranslationContext] = None
    ) -> Style:
        """
        Translate a Mapbox GL style into a new Style.

        Raises:
            MalformedInputError: Invalid JSON or document structure
            StyleConversionError: Unsupported construct (strict mode)
        """
        context = context or self.new_context()
        document = self._parse_mapbox_document(mapbox_style)
        context.sprite_base_url = url_for_mapbox_placeholder(document.sprite)

        rules: List[Rule] = []
        for layer in document.layers:
            rules.extend(self.mapbox_layer_to_rules(layer, context))

        return Style(name=document.name, rules=rules)

    def mapbox_layer_to_rules(self, layer: MapboxLayer, context: TranslationContext) -> List[Rule]:
        """
        Translate one layer into one or more rules.

        Each symbolizer kind of the layer type is read from the layer's
        paint/layout bags and expanded along its 'case' expressions; every
        expansion unit becomes a rule carrying the layer filter AND the
        branch predicate.
        """
        log_context = LogContext(layer_id=layer.id).to_dict()
        kinds = self._kinds_for_layer_type(layer, context)
        base_filter = parse_filter(layer.filter, FilterGrammar.MAPBOX) if layer.filter else None
        scale_denominator = scale_denominator_from_zoom(layer.minzoom, layer.maxzoom)
        unmapped_keys(kinds, layer.paint, layer.layout)

        rules: List[Rule] = []
        for kind in kinds:
            properties = read_properties(kind, layer.paint, layer.layout)
            # A symbol layer only draws icons or text if it sets their own keys
            if len(kinds) > 1 and all_undefined(properties, ignore=("kind",) + SHARED_SYMBOL_PROPERTIES):
                continue

            units = expand_symbolizer(
                properties,
                literal_array_rules(kind),
                strict=context.strict,
                warnings=context.warnings
            )
            for unit in units:
                symbolizer = self._build_symbolizer(
                    kind,
                    self._readers[kind](unit.properties, context),
                    context
                )
                rules.append(Rule(
                    name=layer.id,
                    filter=merge_filters(base_filter, unit.filter),
                    scaleDenominator=scale_denominator.model_copy() if scale_denominator else None,
                    symbolizers=[symbolizer]
                ))

        if kinds and not rules:
            message = f"Layer '{layer.id}' ({layer.type}) produced no rules"
            self.logger.warning(message, extra={'custom_dimensions': log_context})
            context.warnings.append(message)

        if self.config.debug_logging:
            self.logger.debug(
                f"Layer '{layer.id}' ({layer.type}) -> {len(rules)} rule(s)",
                extra={'custom_dimensions': log_context}
            )
        return rules

    def _parse_mapbox_document(self, mapbox_style: Any) -> MapboxStyle:
        """Validate input into a fresh MapboxStyle; never touches the caller's object."""
        if isinstance(mapbox_style, MapboxStyle):
            return mapbox_style.model_copy(deep=True)

        if isinstance(mapbox_style, (str, bytes, bytearray)):
            try:
                mapbox_style = json.loads(mapbox_style)
            except UnicodeDecodeError as e:
                raise MalformedInputError(
                    f"Invalid Mapbox style encoding: {e.reason}",
                    position=e.start
                ) from e
            except json.JSONDecodeError as e:
                raise MalformedInputError(
                    f"Invalid Mapbox style JSON: {e.msg}",
                    line=e.lineno,
                    column=e.colno
                ) from e

        if not isinstance(mapbox_style, dict):
            raise MalformedInputError(
                f"Mapbox style must be a JSON object, got {type(mapbox_style).__name__}"
            )

        try:
            return MapboxStyle.model_validate(copy.deepcopy(mapbox_style))
        except ValidationError as e:
            raise MalformedInputError(
                f"Invalid Mapbox style document: {e.error_count()} validation error(s)",
                errors=e.errors(include_url=False, include_context=False)
            ) from e

    def _kinds_for_layer_type(self, layer: MapboxLayer, context: TranslationContext) -> Tuple[str, ...]:
        kinds = LAYER_TYPE_KINDS.get(layer.type)
        if kinds is not None:
            return kinds
        context.substitute(
            UnsupportedLayerTypeError(
                f"Unsupported layer type '{layer.type}'",
                layer_id=layer.id,
                layer_type=layer.type
            ),
            self.logger
        )
        return FALLBACK_KINDS

    def _build_symbolizer(self, kind: str, properties: Dict[str, Any], context: TranslationContext):
        """Validate read properties; in lenient mode invalid values are dropped."""
        symbolizer_class = SYMBOLIZER_CLASSES[kind]
        try:
            return symbolizer_class.model_validate(properties)
        except ValidationError as e:
            invalid = {err["loc"][0] for err in e.errors() if err["loc"]}
            context.substitute(
                MalformedInputError(
                    f"Invalid {kind} symbolizer values: {sorted(map(str, invalid))}",
                    kind=kind
                ),
                self.logger
            )
            return symbolizer_class.model_validate(
                {k: v for k, v in properties.items() if k == "kind" or k not in invalid}
            )

    # Per-kind value conversions (Mapbox values -> neutral values)

    def _read_visibility(self, properties: Dict[str, Any], context: TranslationContext) -> None:
        if "visibility" not in properties or properties["visibility"] is None:
            return
        value = properties["visibility"]
        if isinstance(value, str) and value in VISIBILITY_TO_BOOL:
            properties["visibility"] = VISIBILITY_TO_BOOL[value]
            return
        context.substitute(
            MalformedInputError(f"Invalid visibility value {value!r}", value=value),
            self.logger
        )
        properties["visibility"] = None

    def _read_pattern(self, value: Any, context: TranslationContext) -> Optional[IconSymbolizer]:
        if value is None:
            return None
        if not isinstance(value, str):
            context.substitute(
                UnsupportedExpressionOperatorError(
                    "Cannot parse pattern. Only sprite names are supported.",
                    pattern=value
                ),
                self.logger
            )
            return None
        return IconSymbolizer(image=icon_image_url(value, context.sprite_base_url))

    def _read_fill(self, properties: Dict[str, Any], context: TranslationContext) -> Dict[str, Any]:
        self._read_visibility(properties, context)
        if "graphicFill" in properties:
            properties["graphicFill"] = self._read_pattern(properties["graphicFill"], context)
        return properties

    def _read_line(self, properties: Dict[str, Any], context: TranslationContext) -> Dict[str, Any]:
        self._read_visibility(properties, context)
        if "graphicFill" in properties:
            properties["graphicFill"] = self._read_pattern(properties["graphicFill"], context)
        return properties

    def _read_icon(self, properties: Dict[str, Any], context: TranslationContext) -> Dict[str, Any]:
        self._read_visibility(properties, context)
        if isinstance(properties.get("image"), str):
            properties["image"] = icon_image_url(properties["image"], context.sprite_base_url)
        return properties

    def _read_text(self, properties: Dict[str, Any], context: TranslationContext) -> Dict[str, Any]:
        self._read_visibility(properties, context)
        if "label" in properties:
            try:
                properties["label"] = text_field_to_label(
                    properties["label"], strict=context.strict, warnings=context.warnings
                )
            except UnsupportedExpressionOperatorError as e:
                e.details.setdefault("property", "label")
                raise
        return properties

    def _read_mark(self, properties: Dict[str, Any], context: TranslationContext) -> Dict[str, Any]:
        self._read_visibility(properties, context)
        properties["wellKnownName"] = "circle"
        return properties

    # ========================================================================
    # WRITE: STYLE -> MAPBOX
    # ========================================================================

    def style_to_mapbox(
        self,
        style: Union[Style, Dict[str, Any]],
        context: Optional[TranslationContext] = None
    ) -> Dict[str, Any]:
        """
        Translate a Style into a new Mapbox GL style document.

        Raises:
            MalformedInputError: Style does not validate
            StyleConversionError: Unsupported construct (strict mode)
        """
        context = context or self.new_context()
        style = self._coerce_style(style, context)

        layers: List[Dict[str, Any]] = []
        for rule in style.rules:
            layers.extend(self.rule_to_mapbox_layers(rule, context))

        document: Dict[str, Any] = {"version": ParserDefaults.MAPBOX_STYLE_VERSION}
        if style.name is not None:
            document["name"] = style.name
        sprite = mapbox_placeholder_for_url(context.sprite_base_url)
        if sprite:
            document["sprite"] = sprite
        document["layers"] = layers
        return document

    def rule_to_mapbox_layers(self, rule: Rule, context: TranslationContext) -> List[Dict[str, Any]]:
        """One layer per symbolizer, all sharing the rule's filter and zoom range."""
        filter_array = filter_to_array(rule.filter, FilterGrammar.MAPBOX) if rule.filter is not None else None
        try:
            minzoom, maxzoom = zoom_from_scale_denominator(rule.scaleDenominator)
        except ValueError as e:
            raise MalformedInputError(str(e), rule=rule.name) from e

        layers: List[Dict[str, Any]] = []
        for symbolizer in rule.symbolizers:
            layer_type, bags = self._writers[symbolizer.kind](symbolizer, context)
            paint, layout = bags
            layer: Dict[str, Any] = {"id": rule.name, "type": layer_type}
            if filter_array is not None:
                layer["filter"] = copy.deepcopy(filter_array)
            if minzoom is not None:
                layer["minzoom"] = minzoom
            if maxzoom is not None:
                layer["maxzoom"] = maxzoom
            if paint:
                layer["paint"] = paint
            if layout:
                layer["layout"] = layout
            layers.append(layer)

        if self.config.debug_logging:
            self.logger.debug(
                f"Rule '{rule.name}' -> {len(layers)} layer(s)",
                extra={'custom_dimensions': LogContext(rule_name=rule.name).to_dict()}
            )
        return layers

    def _coerce_style(self, style: Any, context: TranslationContext) -> Style:
        """Validate input into a fresh Style; never touches the caller's object."""
        if isinstance(style, Style):
            return style.model_copy(deep=True)
        if not isinstance(style, dict):
            raise MalformedInputError(f"Style must be an object, got {type(style).__name__}")

        style = copy.deepcopy(style)
        for rule in style.get("rules") or []:
            if isinstance(rule, dict) and isinstance(rule.get("symbolizers"), list):
                rule["symbolizers"] = self._known_symbolizers(rule, context)

        try:
            return Style.model_validate(style)
        except ValidationError as e:
            raise MalformedInputError(
                f"Invalid style document: {e.error_count()} validation error(s)",
                errors=e.errors(include_url=False, include_context=False)
            ) from e

    def _known_symbolizers(self, rule: Dict[str, Any], context: TranslationContext) -> List[Any]:
        known = []
        for symbolizer in rule["symbolizers"]:
            kind = symbolizer.get("kind") if isinstance(symbolizer, dict) else None
            if kind in SYMBOLIZER_KINDS:
                known.append(symbolizer)
                continue
            context.substitute(
                UnsupportedKindError(
                    f"Unsupported symbolizer kind '{kind}'",
                    rule=rule.get("name"),
                    kind=kind
                ),
                self.logger
            )
        return known

    # Per-kind value conversions (neutral values -> Mapbox values)

    @staticmethod
    def _symbolizer_properties(symbolizer) -> Dict[str, Any]:
        properties = {name: copy.deepcopy(value) for name, value in symbolizer}
        if properties.get("visibility") is not None:
            properties["visibility"] = "visible" if properties["visibility"] else "none"
        return properties

    def _write_sprite(self, image: Any, context: TranslationContext) -> Any:
        """Sprite name of a neutral image reference; remembers its base URL."""
        if not isinstance(image, str):
            return image
        name, base_url = parse_icon_image(image)
        if base_url:
            if context.sprite_base_url and context.sprite_base_url != base_url:
                self.logger.debug(f"Sprite base URL changes to {base_url}")
            context.sprite_base_url = base_url
        return name

    def _write_pattern(self, graphic_fill: Any, context: TranslationContext) -> Any:
        if graphic_fill is None:
            return None
        if not isinstance(graphic_fill, IconSymbolizer):
            context.substitute(
                UnsupportedKindError(
                    "Cannot write pattern. Mapbox only supports Icon patterns.",
                    kind=graphic_fill.kind
                ),
                self.logger
            )
            return None
        return self._write_sprite(graphic_fill.image, context)

    def _write_fill(self, symbolizer, context: TranslationContext):
        properties = self._symbolizer_properties(symbolizer)
        properties["graphicFill"] = self._write_pattern(symbolizer.graphicFill, context)
        return "fill", write_properties("Fill", properties)

    def _write_line(self, symbolizer, context: TranslationContext):
        properties = self._symbolizer_properties(symbolizer)
        properties["graphicFill"] = self._write_pattern(symbolizer.graphicFill, context)
        return "line", write_properties("Line", properties)

    def _write_icon(self, symbolizer, context: TranslationContext):
        properties = self._symbolizer_properties(symbolizer)
        properties["image"] = self._write_sprite(symbolizer.image, context)
        return "symbol", write_properties("Icon", properties)

    def _write_text(self, symbolizer, context: TranslationContext):
        properties = self._symbolizer_properties(symbolizer)
        if isinstance(symbolizer.label, str):
            properties["label"] = label_to_text_field(symbolizer.label)
        return "symbol", write_properties("Text", properties)

    def _write_mark(self, symbolizer, context: TranslationContext):
        if symbolizer.wellKnownName.lower() != "circle":
            context.substitute(
                UnsupportedKindError(
                    f"Unsupported MarkSymbolizer '{symbolizer.wellKnownName}'. Only circles are supported.",
                    kind="Mark",
                    wellKnownName=symbolizer.wellKnownName
                ),
                self.logger
            )
            return "symbol", ({}, {})
        properties = self._symbolizer_properties(symbolizer)
        return "circle", write_properties("Mark", properties)
