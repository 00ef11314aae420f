"""
Mapbox Style Helpers.

Small conversions used by the translator that are not part of the
attribute tables:

- Label placeholders: Mapbox '{name}' <-> neutral '{{name}}'
- Sprite URLs: 'mapbox://' placeholders <-> HTTPS URLs, and the
  '/sprites/?name=..&baseurl=..' icon image URLs of the neutral model
- Empty symbolizer detection

Exports:
    resolve_mapbox_text_placeholder, label_to_text_field, text_field_to_label
    url_for_mapbox_placeholder, mapbox_placeholder_for_url
    icon_image_url, parse_icon_image
    all_undefined
"""

import re
from typing import Any, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, quote

from exceptions import UnsupportedExpressionOperatorError
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.MAPPING, "utils")

MAPBOX_API_URL = "https://api.mapbox.com"
MAPBOX_PLACEHOLDER = "mapbox://"
SPRITE_PLACEHOLDER = "mapbox://sprites/"
STYLE_PLACEHOLDER = "mapbox://styles/"
SPRITE_ENDPOINT = "/sprites/?"

_MAPBOX_PLACEHOLDER_RE = re.compile(r"(?<!\{)\{([^{}]+)\}(?!\})")
_NEUTRAL_PLACEHOLDER_RE = re.compile(r"\{\{(.*?)\}\}")


# ============================================================================
# LABEL PLACEHOLDERS
# ============================================================================

def resolve_mapbox_text_placeholder(text: str) -> str:
    """'Road {ref}' -> 'Road {{ref}}'."""
    return _MAPBOX_PLACEHOLDER_RE.sub(lambda m: "{{" + m.group(1) + "}}", text)


def label_to_text_field(label: str) -> str:
    """'Road {{ref}}' -> 'Road {ref}'."""
    return _NEUTRAL_PLACEHOLDER_RE.sub(lambda m: "{" + m.group(1) + "}", label)


def text_field_to_label(text_field: Any, strict: bool = True,
                        warnings: Optional[List[str]] = None) -> Any:
    """
    Convert a Mapbox text-field value to a neutral label.

    Supports plain strings, ['get', name] lookups and 'format' arrays whose
    odd items are strings or ['get', name] lookups (formatting options at
    even positions are dropped).

    Args:
        text_field: Value of the layout 'text-field' key
        strict: Raise on unsupported expressions instead of skipping them
        warnings: Collects a message for each skipped expression in lenient mode

    Returns:
        Label string (or the literal value for unsupported input in
        lenient mode)

    Raises:
        UnsupportedExpressionOperatorError: Unsupported text format or lookup
    """
    if text_field is None:
        return None
    if isinstance(text_field, str):
        return resolve_mapbox_text_placeholder(text_field)
    if not isinstance(text_field, list) or not text_field:
        return text_field

    if text_field[0] == "get" and len(text_field) == 2:
        return "{{" + str(text_field[1]) + "}}"

    if text_field[0] != "format":
        if strict:
            raise UnsupportedExpressionOperatorError(
                "Cannot parse mapbox style. Unsupported text format.",
                operator=text_field[0]
            )
        _warn(warnings, f"Text field operator '{text_field[0]}' is unsupported; label kept as literal")
        return text_field

    label = ""
    for item in text_field[1::2]:
        if isinstance(item, str):
            label += item
        elif isinstance(item, list) and len(item) == 2 and item[0] == "get":
            label += "{{" + str(item[1]) + "}}"
        elif strict:
            raise UnsupportedExpressionOperatorError(
                "Cannot parse mapbox style. Unsupported lookup type.",
                lookup=item
            )
        else:
            _warn(warnings, f"Unsupported text field lookup {item!r} skipped")
    return label


def _warn(warnings: Optional[List[str]], message: str) -> None:
    logger.warning(message)
    if warnings is not None:
        warnings.append(message)


# ============================================================================
# SPRITE URLS
# ============================================================================

def url_for_mapbox_placeholder(url: Optional[str]) -> Optional[str]:
    """
    Resolve a 'mapbox://' URL to its HTTPS form.

    'mapbox://sprites/user/style' -> 'https://api.mapbox.com/styles/v1/user/style/sprite'
    Other URLs are returned unchanged.
    """
    if not url:
        return url
    if url.startswith(SPRITE_PLACEHOLDER):
        return f"{MAPBOX_API_URL}/styles/v1/{url[len(SPRITE_PLACEHOLDER):]}/sprite"
    if url.startswith(STYLE_PLACEHOLDER):
        return f"{MAPBOX_API_URL}/styles/v1/{url[len(STYLE_PLACEHOLDER):]}"
    if url.startswith(MAPBOX_PLACEHOLDER):
        return f"{MAPBOX_API_URL}/{url[len(MAPBOX_PLACEHOLDER):]}"
    return url


def mapbox_placeholder_for_url(url: Optional[str]) -> Optional[str]:
    """Inverse of url_for_mapbox_placeholder."""
    if not url:
        return url
    styles_prefix = f"{MAPBOX_API_URL}/styles/v1/"
    if url.startswith(styles_prefix) and url.endswith("/sprite"):
        return SPRITE_PLACEHOLDER + url[len(styles_prefix):-len("/sprite")]
    if url.startswith(styles_prefix):
        return STYLE_PLACEHOLDER + url[len(styles_prefix):]
    if url.startswith(MAPBOX_API_URL + "/"):
        return MAPBOX_PLACEHOLDER + url[len(MAPBOX_API_URL) + 1:]
    return url


def icon_image_url(sprite_name: Optional[str], sprite_base_url: Optional[str]) -> Optional[str]:
    """
    Neutral image reference for a sprite.

    Without a sprite base URL the bare sprite name is used.
    """
    if not sprite_name:
        return None
    if not sprite_base_url:
        return sprite_name
    return f"{SPRITE_ENDPOINT}name={quote(sprite_name, safe='')}&baseurl={quote(sprite_base_url, safe='')}"


def parse_icon_image(image: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Split a neutral image reference into (sprite name, sprite base URL).

    References without a query string are bare sprite names.
    """
    if "?" not in image:
        return image, None
    query = image.split("?", 1)[1]
    if not query:
        return None, None
    params = dict(parse_qsl(query, keep_blank_values=True))
    return params.get("name") or None, params.get("baseurl") or None


# ============================================================================
# EMPTY SYMBOLIZERS
# ============================================================================

def all_undefined(values: Mapping[str, Any], ignore: Iterable[str] = ()) -> bool:
    """True if every value outside `ignore` is None."""
    skipped = set(ignore)
    return all(v is None for k, v in values.items() if k not in skipped)
