"""
Context Menu Position Resolver

This module computes the screen position at which a context menu is shown.
Several candidate sources are ranked and evaluated lazily; the first one that
yields a valid position wins:

    1. Canvas points of the selected item, offset by the viewer element origin
    2. The client coordinates of the triggering input event
    3. The viewer element's bounding box origin
    4. The static origin (0, 0), which is always valid

Inputs:
    - Canvas points ([x, y] sequences, numpy arrays, {'x', 'y'} dicts or
      objects exposing x()/y() such as QPointF,
      or objects with plain x/y attributes)
    - Triggering event detail dict ({'current_points': {'client': [x, y]}})
    - Viewer element exposing get_bounding_client_rect() -> {'x', 'y', 'width', 'height'}

Outputs:
    - Position dict {'x': float, 'y': float}

Requirements:
    - numpy for numeric validity checks
"""

import numbers
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

import numpy as np


Position = Dict[str, Any]
PositionProducer = Callable[[], Optional[Position]]


def _is_number(value: Any) -> bool:
    """True for finite real numbers (python or numpy), never for bools."""
    if isinstance(value, (bool, np.bool_)):
        return False
    if not isinstance(value, (numbers.Real, np.number)):
        return False
    try:
        return bool(np.isfinite(float(value)))
    except (OverflowError, TypeError, ValueError):
        # ints beyond float range
        return False


def is_valid_position(position: Optional[Position]) -> bool:
    """
    Check that a candidate position has numeric x and y.

    Args:
        position: Candidate dict or None

    Returns:
        True if both 'x' and 'y' are finite numbers
    """
    if not position:
        return False
    return _is_number(position.get('x')) and _is_number(position.get('y'))


def _point_coordinates(point: Any) -> Position:
    """Normalize a single canvas point into an {'x', 'y'} dict (possibly invalid)."""
    if point is None:
        return {'x': None, 'y': None}
    if isinstance(point, dict):
        return {'x': point.get('x'), 'y': point.get('y')}
    x_attr = getattr(point, 'x', None)
    y_attr = getattr(point, 'y', None)
    if callable(x_attr) and callable(y_attr):
        # QPointF / QPoint
        return {'x': x_attr(), 'y': y_attr()}
    if x_attr is not None and y_attr is not None:
        return {'x': x_attr, 'y': y_attr}
    try:
        if len(point) >= 2:
            return {'x': point[0], 'y': point[1]}
    except TypeError:
        pass
    return {'x': None, 'y': None}


def get_fallback_position() -> Position:
    """Static origin; always valid."""
    return {'x': 0, 'y': 0}


def get_event_default_position(event_detail: Optional[Dict[str, Any]]) -> Position:
    """
    Position from the first client coordinate pair of the triggering event.

    Args:
        event_detail: Event detail dict, may be None

    Returns:
        Position dict, with None coordinates when the event carries no points
    """
    if not event_detail:
        return {'x': None, 'y': None}
    current_points = event_detail.get('current_points') or {}
    client = current_points.get('client')
    return _point_coordinates(client)


def get_viewer_element_default_position(viewer_element: Any) -> Position:
    """
    Top-left corner of the viewer element's bounding box.

    Args:
        viewer_element: Object exposing get_bounding_client_rect(), may be None

    Returns:
        Position dict, with None coordinates when there is no element
    """
    if viewer_element is None:
        return {'x': None, 'y': None}
    rect = viewer_element.get_bounding_client_rect() or {}
    return {'x': rect.get('x'), 'y': rect.get('y')}


def get_canvas_points_position(canvas_points: Optional[Sequence[Any]],
                               viewer_element: Any) -> Optional[Position]:
    """
    First canvas point that is valid, offset by the viewer element origin.

    The element origin is measured once; if it is invalid (no element) no
    canvas point can be used.

    Args:
        canvas_points: Points in viewer canvas coordinates, in priority order
        viewer_element: Element the canvas points are relative to

    Returns:
        Position dict or None when no point qualifies
    """
    if canvas_points is None or len(canvas_points) == 0:
        return None

    viewer_position = get_viewer_element_default_position(viewer_element)

    for raw_point in canvas_points:
        point = _point_coordinates(raw_point)
        if is_valid_position(point) and is_valid_position(viewer_position):
            return {
                'x': point['x'] + viewer_position['x'],
                'y': point['y'] + viewer_position['y'],
            }
    return None


def resolve_position(producers: Iterable[PositionProducer]) -> Position:
    """
    Evaluate position producers in order and return the first valid result.

    Producers after the first valid one are never called. If none yields a
    valid position the static origin is returned.

    Args:
        producers: Zero-argument callables, highest priority first

    Returns:
        Valid position dict
    """
    for producer in producers:
        position = producer()
        if is_valid_position(position):
            return {'x': position['x'], 'y': position['y']}
    return get_fallback_position()


def get_default_position(canvas_points: Optional[Sequence[Any]],
                         event_detail: Optional[Dict[str, Any]],
                         viewer_element: Any) -> Position:
    """
    Returns the context menu default position.

    Looks at the canvas points (from the selected item), then the event that
    triggered the menu, then the viewer element, then the origin.
    """
    return resolve_position([
        lambda: get_canvas_points_position(canvas_points, viewer_element),
        lambda: get_event_default_position(event_detail),
        lambda: get_viewer_element_default_position(viewer_element),
        get_fallback_position,
    ])
