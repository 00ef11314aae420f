"""
Zoom / Scale Denominator Conversion.

Converts Mapbox tile zoom levels to cartographic scale denominators and
back, using the standard web-mercator resolution pyramid.

Resolution table:
    zoom 0 = 78271.51696402048 m/px, halved per level up to zoom 28.

Scale of a resolution:
    resolution * 39.37 (inches per meter) * 25.4 / 0.28 (OGC 0.28 mm pixel)

Exports:
    RESOLUTIONS: Tuple of resolutions indexed by zoom
    zoom_to_scale: Zoom level -> scale denominator
    scale_to_zoom: Scale denominator -> (possibly fractional) zoom level
    scale_denominator_from_zoom: Layer minzoom/maxzoom -> ScaleDenominator
    zoom_from_scale_denominator: ScaleDenominator -> (minzoom, maxzoom)
"""

import math
from typing import Optional, Tuple, Union

from util_logger import LoggerFactory, ComponentType, log_exceptions
from .models import ScaleDenominator

logger = LoggerFactory.create_logger(ComponentType.SCALE, "scales")

Number = Union[int, float]

BASE_RESOLUTION = 78271.51696402048
MAX_ZOOM = 28
INCHES_PER_METER = 39.37
DPI = 25.4 / 0.28

# Relative tolerance for matching a resolution to a table entry
RESOLUTION_TOLERANCE = 1e-9

RESOLUTIONS: Tuple[float, ...] = tuple(BASE_RESOLUTION / (2 ** z) for z in range(MAX_ZOOM + 1))


def get_scale_for_resolution(resolution: float) -> float:
    """Scale denominator shown at a ground resolution (meters per pixel)."""
    return resolution * INCHES_PER_METER * DPI


def get_resolution_for_scale(scale_denominator: float) -> float:
    """Ground resolution (meters per pixel) at a scale denominator."""
    return scale_denominator / (INCHES_PER_METER * DPI)


def zoom_to_scale(zoom: Number) -> float:
    """
    Convert a zoom level to a scale denominator.

    Integral zooms are exact table lookups. Fractional zooms use the inverse
    of the interpolation in scale_to_zoom, so both functions agree. Zooms
    outside 0..MAX_ZOOM are clamped to the nearest table boundary.

    Args:
        zoom: Mapbox zoom level

    Returns:
        Scale denominator
    """
    if zoom <= 0:
        if zoom < 0:
            logger.warning(f"Zoom {zoom} below table range, clamped to 0")
        return get_scale_for_resolution(RESOLUTIONS[0])
    if zoom >= MAX_ZOOM:
        if zoom > MAX_ZOOM:
            logger.warning(f"Zoom {zoom} above table range, clamped to {MAX_ZOOM}")
        return get_scale_for_resolution(RESOLUTIONS[MAX_ZOOM])

    pre = int(math.floor(zoom))
    fraction = zoom - pre
    if fraction == 0:
        return get_scale_for_resolution(RESOLUTIONS[pre])

    pre_resolution = RESOLUTIONS[pre]
    post_resolution = RESOLUTIONS[pre + 1]
    resolution = pre_resolution - fraction * (pre_resolution - post_resolution)
    return get_scale_for_resolution(resolution)


def _table_index(resolution: float) -> Optional[int]:
    """Zoom whose resolution matches within tolerance, if any."""
    for zoom, table_resolution in enumerate(RESOLUTIONS):
        if math.isclose(resolution, table_resolution, rel_tol=RESOLUTION_TOLERANCE):
            return zoom
    return None


@log_exceptions(ComponentType.SCALE, "scales")
def scale_to_zoom(scale_denominator: Number) -> Number:
    """
    Convert a scale denominator to a zoom level.

    Returns the integer zoom when the resolution matches a table entry.
    Between two entries the zoom is interpolated linearly:

        zoom = pre + (1 - (resolution - post_res) / (pre_res - post_res))

    Resolutions coarser than zoom 0 return 0; finer than MAX_ZOOM return
    MAX_ZOOM.

    Args:
        scale_denominator: Non-negative scale denominator (0 is MAX_ZOOM)

    Returns:
        int for table-aligned scales, float otherwise

    Raises:
        ValueError: If the scale denominator is negative
    """
    if scale_denominator < 0:
        raise ValueError(f"Scale denominator must not be negative, got {scale_denominator}")
    if scale_denominator == 0:
        # Unbounded lower end of a scale range
        return MAX_ZOOM

    resolution = get_resolution_for_scale(scale_denominator)

    exact = _table_index(resolution)
    if exact is not None:
        return exact

    if resolution > RESOLUTIONS[0]:
        logger.debug(f"Scale 1:{scale_denominator} coarser than zoom 0, using 0")
        return 0
    if resolution < RESOLUTIONS[MAX_ZOOM]:
        logger.debug(f"Scale 1:{scale_denominator} finer than zoom {MAX_ZOOM}, using {MAX_ZOOM}")
        return MAX_ZOOM

    for pre in range(MAX_ZOOM):
        pre_resolution = RESOLUTIONS[pre]
        post_resolution = RESOLUTIONS[pre + 1]
        if post_resolution < resolution < pre_resolution:
            percentage = 1 - (resolution - post_resolution) / (pre_resolution - post_resolution)
            return pre + percentage

    # Only reachable through floating point edge cases at table entries
    return min(range(MAX_ZOOM + 1), key=lambda z: abs(RESOLUTIONS[z] - resolution))


def scale_denominator_from_zoom(
    minzoom: Optional[Number],
    maxzoom: Optional[Number]
) -> Optional[ScaleDenominator]:
    """
    Build a ScaleDenominator from a layer's zoom range.

    The range is inverted: minzoom bounds the largest denominator (max),
    maxzoom bounds the smallest (min).

    Returns:
        ScaleDenominator, or None when both zooms are absent
    """
    if minzoom is None and maxzoom is None:
        return None

    return ScaleDenominator(
        min=zoom_to_scale(maxzoom) if maxzoom is not None else None,
        max=zoom_to_scale(minzoom) if minzoom is not None else None
    )


def zoom_from_scale_denominator(
    scale_denominator: Optional[ScaleDenominator]
) -> Tuple[Optional[Number], Optional[Number]]:
    """
    Build a layer zoom range from a ScaleDenominator.

    Returns:
        (minzoom, maxzoom); absent bounds stay None, never zero
    """
    if scale_denominator is None:
        return None, None

    minzoom = scale_to_zoom(scale_denominator.max) if scale_denominator.max is not None else None
    maxzoom = scale_to_zoom(scale_denominator.min) if scale_denominator.min is not None else None
    return minzoom, maxzoom
