"""
Style Translator Configuration.

Provides configuration for:
    - Strict vs lenient conversion (ignoreConversionErrors)
    - Exported JSON formatting
    - Debug logging

Exports:
    ParserConfig: Pydantic translator configuration model
"""

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from config.defaults import ParserDefaults
from exceptions import ConfigurationError


# ============================================================================
# PARSER CONFIGURATION
# ============================================================================

class ParserConfig(BaseModel):
    """
    Mapbox style translator configuration.

    Strict mode (the default) fails fast on any unsupported construct.
    Lenient mode substitutes best-effort values and always completes.
    """

    ignore_conversion_errors: bool = Field(
        default=ParserDefaults.IGNORE_CONVERSION_ERRORS,
        description="Substitute best-effort values instead of failing on unsupported constructs"
    )

    output_indent: Optional[int] = Field(
        default=ParserDefaults.OUTPUT_INDENT,
        ge=0,
        le=8,
        description="Indent of the exported JSON string (None = compact)",
        examples=[None, 2]
    )

    debug_logging: bool = Field(
        default=ParserDefaults.DEBUG_LOGGING,
        description="Log per-layer and per-rule progress at DEBUG level"
    )

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        indent = os.environ.get("MAPBOX_OUTPUT_INDENT", "").strip()
        if indent:
            try:
                output_indent = int(indent)
            except ValueError as e:
                raise ConfigurationError(
                    f"MAPBOX_OUTPUT_INDENT must be an integer, got '{indent}'"
                ) from e
        else:
            output_indent = ParserDefaults.OUTPUT_INDENT

        return cls(
            ignore_conversion_errors=os.environ.get("MAPBOX_IGNORE_CONVERSION_ERRORS", "false").lower() == "true",
            output_indent=output_indent,
            debug_logging=os.environ.get("DEBUG_LOGGING", "false").lower() == "true"
        )

    def debug_dict(self) -> Dict[str, Any]:
        """Configuration values for debug output."""
        return {
            'ignore_conversion_errors': self.ignore_conversion_errors,
            'output_indent': self.output_indent,
            'debug_logging': self.debug_logging,
            'mapbox_style_version': ParserDefaults.MAPBOX_STYLE_VERSION
        }
