"""
Unified Logger System.

JSON-only structured logging for the style translator.

Design Principles:
    - Strong typing with dataclasses (stdlib only)
    - Enum safety for categories
    - Component-specific loggers
    - Clean factory pattern

Exports:
    ComponentType: Enum for component types
    LogLevel: Enum for log levels
    LogContext: Logging context dataclass
    ComponentConfig: Per-component logger settings
    JSONFormatter: One JSON object per log line
    LoggerFactory: Factory for creating loggers
    log_exceptions: Exception logging decorator

Dependencies:
    Standard library only (logging, enum, dataclasses, json)
"""

from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from dataclasses import dataclass
import logging
import sys
import os
import json
from functools import wraps


# ============================================================================
# COMPONENT TYPES - One per translation layer
# ============================================================================

class ComponentType(Enum):
    """
    Component types aligned with the translation pipeline.

    Each component has its own logger name prefix and level.
    """
    TRANSLATOR = "translator"  # Style assembly (read/write entry points)
    EXPANDER = "expander"      # Conditional expression expansion
    SCALE = "scale"            # Zoom/scale denominator conversion
    MAPPING = "mapping"        # Attribute mapping tables
    CONFIG = "config"          # Configuration loading


# ============================================================================
# LOG LEVELS - Standard Python levels with enum safety
# ============================================================================

class LogLevel(Enum):
    """
    Standard Python log levels as enum for type safety.
    """
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_python_level(self) -> int:
        """Convert to Python logging level constant."""
        return getattr(logging, self.value)


# ============================================================================
# LOG CONTEXT - Correlation and tracking
# ============================================================================

@dataclass
class LogContext:
    """
    Context for log correlation within one translation call.
    """
    style_name: Optional[str] = None  # Name of the style being translated
    layer_id: Optional[str] = None  # Mapbox layer id (read direction)
    rule_name: Optional[str] = None  # Rule name (write direction)
    correlation_id: Optional[str] = None  # Caller supplied correlation ID

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            k: v for k, v in {
                'style_name': self.style_name,
                'layer_id': self.layer_id,
                'rule_name': self.rule_name,
                'correlation_id': self.correlation_id
            }.items() if v is not None
        }


# DEBUG_LOGGING=true lowers every component to DEBUG
DEFAULT_LOG_LEVEL = LogLevel.DEBUG if os.getenv('DEBUG_LOGGING', '').lower() == 'true' else LogLevel.INFO


# ============================================================================
# COMPONENT CONFIGURATION - Per-component settings
# ============================================================================

@dataclass
class ComponentConfig:
    """
    Configuration for component-specific logging.
    """
    component_type: ComponentType
    log_level: LogLevel = LogLevel.INFO


# ============================================================================
# JSON FORMATTER - Structured logging
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.
    Outputs one JSON object per record so log collectors can parse it.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Python LogRecord to format

        Returns:
            JSON string with structured log data
        """
        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if hasattr(record, 'custom_dimensions'):
            log_obj['customDimensions'] = record.custom_dimensions

        if record.exc_info:
            log_obj['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_obj, default=str)


# ============================================================================
# LOGGER FACTORY - Creates component-specific loggers
# ============================================================================

class LoggerFactory:
    """
    Factory for creating component-specific loggers.

    Example:
        logger = LoggerFactory.create_logger(
            ComponentType.TRANSLATOR,
            "MapboxStyleTranslator"
        )
        logger.info("Reading style")
    """

    # Every component starts at the same level
    DEFAULT_CONFIGS = {
        component: ComponentConfig(component_type=component, log_level=DEFAULT_LOG_LEVEL)
        for component in ComponentType
    }

    @classmethod
    def create_logger(
        cls,
        component_type: ComponentType,
        name: str,
        context: Optional[LogContext] = None,
        config: Optional[ComponentConfig] = None
    ) -> logging.Logger:
        """
        Create a logger for a specific component.

        Args:
            component_type: Type of component
            name: Component name (e.g., "MapboxStyleTranslator")
            context: Optional log context for correlation
            config: Optional custom configuration

        Returns:
            Configured Python logger
        """
        if config is None:
            config = cls.DEFAULT_CONFIGS.get(
                component_type,
                ComponentConfig(component_type=component_type)
            )

        logger_name = f"{component_type.value}.{name}"
        logger = logging.getLogger(logger_name)

        log_level = config.log_level.to_python_level()
        logger.setLevel(log_level)

        # Only one JSON handler per logger, however often create_logger runs
        has_json_handler = any(
            isinstance(h.formatter, JSONFormatter) for h in logger.handlers
        )
        if not has_json_handler:
            handler = logging.StreamHandler(sys.stdout)
            handler.setLevel(log_level)
            handler.setFormatter(JSONFormatter())
            logger.addHandler(handler)

        logger.propagate = True

        if not hasattr(logger, '_context_wrapped'):
            logger._log = _with_dimensions(logger._log, component_type, name, context)
            logger._context_wrapped = True

        return logger

    @classmethod
    def create_with_context(
        cls,
        component_type: ComponentType,
        name: str,
        correlation_id: Optional[str] = None
    ) -> logging.Logger:
        """
        Create a logger whose records carry the caller's correlation ID.

        The context is bound when the logger is first created, so callers
        with different IDs must use different names.
        """
        context = LogContext(correlation_id=correlation_id) if correlation_id else None
        return cls.create_logger(component_type=component_type, name=name, context=context)


def _with_dimensions(log_method, component_type: ComponentType, name: str,
                     context: Optional[LogContext]):
    """Wrap Logger._log so every record gets component (and context) dimensions."""
    base_dims = {'component_type': component_type.value, 'component_name': name}
    if context:
        base_dims = {**context.to_dict(), **base_dims}

    def log_with_dimensions(level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
        extra = dict(extra or {})
        extra['custom_dimensions'] = {**base_dims, **extra.get('custom_dimensions', {})}
        # +1 skips this wrapper when resolving the caller
        log_method(level, msg, args, exc_info=exc_info, extra=extra,
                   stack_info=stack_info, stacklevel=stacklevel + 1)

    return log_with_dimensions


# ============================================================================
# EXCEPTION DECORATOR - Log and re-raise
# ============================================================================

def log_exceptions(component_type: Optional[ComponentType] = None,
                   component_name: Optional[str] = None,
                   logger: Optional[logging.Logger] = None):
    """
    Log any exception escaping the decorated function, then re-raise it.

    Pass either an existing logger or a component type and name:

        @log_exceptions(ComponentType.SCALE, "scales")
        def scale_to_zoom(scale_denominator):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                log = logger or LoggerFactory.create_logger(
                    component_type or ComponentType.TRANSLATOR,
                    component_name or func.__module__
                )
                log.error(
                    f"Exception in {func.__name__}: {e}",
                    exc_info=True,
                    extra={'custom_dimensions': {
                        'function_name': func.__name__,
                        'exception_type': type(e).__name__,
                        'arguments': repr(args)[:200],
                    }}
                )
                raise
        return wrapper
    return decorator
