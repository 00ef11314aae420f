"""
Configuration Defaults - Single source of truth for all default values.

All defaults are safe universal values; nothing here has to be overridden
for the translator to work.

Usage:
    from config.defaults import ParserDefaults

    # In Pydantic Field definitions:
    ignore_conversion_errors: bool = Field(default=ParserDefaults.IGNORE_CONVERSION_ERRORS, ...)
"""


class ParserDefaults:
    """
    Defaults for the Mapbox style translator.

    Environment Variables:
        MAPBOX_IGNORE_CONVERSION_ERRORS - "true" enables lenient mode
        MAPBOX_OUTPUT_INDENT - indent for exported JSON (unset = compact)
        DEBUG_LOGGING - "true" lowers translator log level to DEBUG
    """

    # Strict mode: fail fast on unsupported constructs
    IGNORE_CONVERSION_ERRORS = False

    # Mapbox GL style version written on export
    MAPBOX_STYLE_VERSION = 8

    # Compact JSON on export
    OUTPUT_INDENT = None

    DEBUG_LOGGING = False
