"""
Custom Exception Hierarchy

Distinguishes between:
1. Contract Violations (programming bugs that need fixing)
2. Style Conversion Failures (unsupported or malformed style documents)

Conversion failures are raised where they are detected and travel unchanged
through the translator. The public entry points turn them into failed
results, so callers never see them escape.

Exports:
    ErrorCode: Standardized error codes enum
    ContractViolationError: Programming bug at a component boundary
    BusinessLogicError: Base for expected runtime failures
    StyleConversionError: Base for all style translation failures
    UnsupportedLayerTypeError, UnsupportedExpressionOperatorError,
    ExpressionMismatchError, UnsupportedKindError, MalformedInputError
    ConfigurationError: Invalid configuration values
    create_error_response: Standardized error dict for results and logs
"""

from enum import Enum
from typing import Any, Dict


class ErrorCode(str, Enum):
    """
    Standardized error codes for style conversion failures.

    Returned in result payloads and log dimensions to classify failures
    without string matching on messages.
    """

    UNSUPPORTED_LAYER_TYPE = "UNSUPPORTED_LAYER_TYPE"  # Layer type other than fill/line/circle/symbol
    UNSUPPORTED_EXPRESSION_OPERATOR = "UNSUPPORTED_EXPRESSION_OPERATOR"  # Expression other than 'case'
    EXPRESSION_MISMATCH = "EXPRESSION_MISMATCH"  # Different predicate axes on one symbolizer
    UNSUPPORTED_KIND = "UNSUPPORTED_KIND"  # Symbolizer or filter kind not expressible
    MALFORMED_INPUT = "MALFORMED_INPUT"  # JSON or document structure invalid
    CONFIG_ERROR = "CONFIG_ERROR"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"  # Anything that is not a StyleConversionError


class ContractViolationError(TypeError):
    """
    Raised when component contracts are violated (programming bugs).

    These indicate wrong types passed between components and should
    never be caught and handled - they need to be fixed in the code.

    Examples:
        - Translator receives a list where a Style is required
        - A filter tree contains something other than Predicate/Combinator
    """
    pass


class BusinessLogicError(Exception):
    """
    Base class for expected runtime failures.

    These are normal failures caused by the input, not by the code,
    and should be reported gracefully without crashing.
    """
    pass


class StyleConversionError(BusinessLogicError):
    """
    Base class for failures while translating a style.

    Attributes:
        error_code: Classification of the failure
        details: Extra context (layer id, property name, ...)
    """

    error_code: ErrorCode = ErrorCode.UNEXPECTED_ERROR

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details


class UnsupportedLayerTypeError(StyleConversionError):
    """
    Mapbox layer type has no symbolizer counterpart.

    Only 'fill', 'line', 'circle' and 'symbol' layers are supported.
    Lenient mode reads unknown layers as circle marks.
    """

    error_code = ErrorCode.UNSUPPORTED_LAYER_TYPE


class UnsupportedExpressionOperatorError(StyleConversionError):
    """
    Property value is an expression other than 'case'.

    Also raised for text fields and patterns that use expressions the
    translator cannot express. Lenient mode keeps the literal array.
    """

    error_code = ErrorCode.UNSUPPORTED_EXPRESSION_OPERATOR


class ExpressionMismatchError(StyleConversionError):
    """
    Several properties of one symbolizer carry 'case' expressions whose
    predicate sequences differ.

    Lenient mode expands along the first expression's predicates.
    """

    error_code = ErrorCode.EXPRESSION_MISMATCH


class UnsupportedKindError(StyleConversionError):
    """
    Symbolizer kind (or mark shape) cannot be written as a Mapbox layer.

    Examples:
        - Symbolizer kind 'Raster'
        - MarkSymbolizer with wellKnownName 'square'
        - graphicFill that is not an IconSymbolizer
    """

    error_code = ErrorCode.UNSUPPORTED_KIND


class MalformedInputError(StyleConversionError):
    """
    Input could not be parsed or does not have the shape of a style.

    Document-level errors fail in both modes. Malformed property values
    (a bad 'case', an unknown visibility) are substituted in lenient mode.

    Examples:
        - Invalid JSON string
        - 'layers' is not a list
        - 'case' expression with an even number of items
    """

    error_code = ErrorCode.MALFORMED_INPUT


class ConfigurationError(Exception):
    """
    System configuration error.

    Examples:
        - MAPBOX_OUTPUT_INDENT is not an integer
    """
    pass


def create_error_response(error: Exception, **kwargs: Any) -> Dict[str, Any]:
    """
    Create a standardized error dictionary for a raised exception.

    Args:
        error: The exception that was raised
        **kwargs: Additional fields to include

    Returns:
        Dict with standardized error structure

    Example:
        >>> create_error_response(ExpressionMismatchError("Filters do not match"))
        {
            "success": False,
            "error": "EXPRESSION_MISMATCH",
            "error_type": "ExpressionMismatchError",
            "message": "Filters do not match"
        }
    """
    if isinstance(error, StyleConversionError):
        code = error.error_code
        details = dict(error.details)
    else:
        code = ErrorCode.UNEXPECTED_ERROR
        details = {}

    response = {
        "success": False,
        "error": code.value,
        "error_type": type(error).__name__,
        "message": str(error),
        **details,
        **kwargs
    }
    return response
