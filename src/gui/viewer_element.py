"""
Viewer Element Adapter

Adapts Qt widgets and mouse events to the plain shapes used by the context
menu controller and position resolver.

Inputs:
    - QWidget used as the menu anchor (typically the image viewer viewport)
    - QMouseEvent / QContextMenuEvent that triggered the menu

Outputs:
    - get_bounding_client_rect() dict in global screen coordinates
    - Event dicts: {'type', 'detail': {'element', 'current_points': {'client', 'canvas'}}}

Requirements:
    - PySide6 for QWidget, QPoint and events
"""

from typing import Any, Dict, Optional

from PySide6.QtCore import QPoint
from PySide6.QtWidgets import QWidget


class ViewerElement:
    """
    Wraps a QWidget so it can anchor the context menu.

    The bounding rect is measured on demand, in global (screen) coordinates,
    matching the coordinate space the dialog service places popups in.
    """

    def __init__(self, widget: QWidget):
        self.widget = widget

    def get_bounding_client_rect(self) -> Dict[str, int]:
        """Get the widget's screen rectangle as {'x', 'y', 'width', 'height'}."""
        origin = self.widget.mapToGlobal(QPoint(0, 0))
        return {
            'x': origin.x(),
            'y': origin.y(),
            'width': self.widget.width(),
            'height': self.widget.height(),
        }


def event_from_mouse_event(event: Any, element: Optional[ViewerElement] = None,
                           event_type: str = 'contextmenu') -> Dict[str, Any]:
    """
    Convert a Qt mouse or context-menu event into an event dict.

    Args:
        event: QMouseEvent (globalPosition()/position()) or QContextMenuEvent (globalPos()/pos())
        element: Viewer element the event happened on
        event_type: Event type name stored in the dict

    Returns:
        Event dict with client (global) and canvas (widget-local) points
    """
    if hasattr(event, 'globalPosition'):
        global_point = event.globalPosition()
        local_point = event.position()
    else:
        global_point = event.globalPos()
        local_point = event.pos()

    return {
        'type': event_type,
        'detail': {
            'element': element,
            'current_points': {
                'client': [global_point.x(), global_point.y()],
                'canvas': [local_point.x(), local_point.y()],
            },
        },
    }
