"""
UI Dialog Service

This module shows and dismisses popup dialogs keyed by a string id. The
context menu controller uses it as its presentation backend: the controller
passes a content factory and content props, the service builds the popup
widget, places it, and removes it on dismiss.

Inputs:
    - Dialog specs: {'id', 'content', 'content_props', 'default_position',
      'is_draggable', 'preserve_position', 'prevent_cut_off', 'on_click_outside'}
    - Dismiss requests by id

Outputs:
    - Visible popup widgets, at most one per id

Requirements:
    - PySide6 for widgets, screens and event filtering
    - utils.debug_log for optional tracing
"""

from typing import Any, Callable, Dict, Optional

from PySide6.QtCore import QEvent, QObject, QPoint, QRect, Qt
from PySide6.QtGui import QGuiApplication
from PySide6.QtWidgets import QApplication, QWidget

from utils.debug_log import debug_log


def clamp_to_screen(x: int, y: int, width: int, height: int, screen_rect: QRect) -> QPoint:
    """
    Move a popup so it is not cut off by the screen edges.

    The popup is flipped to the left/top of the anchor point when it does not
    fit on the right/bottom but fits on the other side, then clamped to the
    screen rectangle.

    Args:
        x, y: Requested top-left corner (global coordinates)
        width, height: Popup size
        screen_rect: Available screen geometry

    Returns:
        Adjusted top-left corner
    """
    space_right = screen_rect.right() - x + 1
    space_left = x - screen_rect.left()
    if width > space_right and space_left >= width:
        x = x - width

    space_below = screen_rect.bottom() - y + 1
    space_above = y - screen_rect.top()
    if height > space_below and space_above >= height:
        y = y - height

    min_x = screen_rect.left()
    min_y = screen_rect.top()
    max_x = max(screen_rect.right() - width + 1, min_x)
    max_y = max(screen_rect.bottom() - height + 1, min_y)

    return QPoint(min(max(x, min_x), max_x), min(max(y, min_y), max_y))


class _PopupHideFilter(QObject):
    """Reports a popup hidden by Qt (outside click, Escape) back to the service."""

    def __init__(self, service: 'UIDialogService', dialog_id: str,
                 on_click_outside: Optional[Callable[[], None]]):
        super().__init__()
        self.service = service
        self.dialog_id = dialog_id
        self.on_click_outside = on_click_outside

    def eventFilter(self, obj: QObject, event: QEvent) -> bool:
        if event.type() == QEvent.Type.Hide and self.service.dialogs.get(self.dialog_id) is obj:
            if self.on_click_outside is not None:
                self.on_click_outside()
            else:
                self.service.dismiss(self.dialog_id)
        return False


class UIDialogService:
    """
    Creates and dismisses popup dialogs by id.

    Features:
    - One widget per id; creating an existing id replaces it
    - Placement at the requested position, optionally kept on screen
    - Optional reuse of the last position per id
    - Outside-click notification through on_click_outside
    """

    def __init__(self, parent: Optional[QWidget] = None):
        """
        Initialize the dialog service.

        Args:
            parent: Parent widget for created dialogs
        """
        self.parent = parent
        self.dialogs: Dict[str, QWidget] = {}
        self._filters: Dict[str, _PopupHideFilter] = {}
        self._positions: Dict[str, QPoint] = {}
        self._last_positions: Dict[str, QPoint] = {}

    def is_open(self, dialog_id: str) -> bool:
        """Check whether a dialog with this id is currently shown."""
        return dialog_id in self.dialogs

    def position_of(self, dialog_id: str) -> Optional[QPoint]:
        """Point an open dialog was moved to, or None when it is not open."""
        return self._positions.get(dialog_id)

    def create(self, spec: Dict[str, Any]) -> bool:
        """
        Build and show a dialog.

        Args:
            spec: Dialog spec; 'content' is a factory called as
                  content(parent, content_props) returning a QWidget

        Returns:
            True if the dialog was shown, False if the spec was rejected
        """
        dialog_id = spec.get('id')
        content = spec.get('content')
        if not dialog_id or content is None:
            print(f"Warning: Dialog spec rejected (id={dialog_id!r}, content={content!r})")
            return False

        if dialog_id in self.dialogs:
            self.dismiss(dialog_id)

        widget = content(self.parent, spec.get('content_props') or {})
        widget.setWindowFlags(Qt.WindowType.Popup)
        widget.setAttribute(Qt.WidgetAttribute.WA_DeleteOnClose, True)
        widget.adjustSize()

        position = self._resolve_position(dialog_id, spec, widget)
        widget.move(position)

        hide_filter = _PopupHideFilter(self, dialog_id, spec.get('on_click_outside'))
        widget.installEventFilter(hide_filter)
        self.dialogs[dialog_id] = widget
        self._filters[dialog_id] = hide_filter
        self._positions[dialog_id] = QPoint(position)

        widget.show()
        debug_log("dialog_service.py:create", "dialog shown",
                  {"id": dialog_id, "x": position.x(), "y": position.y()})
        return True

    def dismiss(self, dialog_id: str) -> None:
        """
        Close and remove a dialog; no-op when the id is not open.

        Args:
            dialog_id: Id given at creation
        """
        widget = self.dialogs.pop(dialog_id, None)
        hide_filter = self._filters.pop(dialog_id, None)
        position = self._positions.pop(dialog_id, None)
        if widget is None:
            return

        # pos() includes frame offsets on some platforms; keep the requested point
        if position is not None:
            self._last_positions[dialog_id] = position
        if hide_filter is not None:
            widget.removeEventFilter(hide_filter)
        try:
            widget.close()
        except RuntimeError:
            # Underlying C++ widget already deleted
            pass
        debug_log("dialog_service.py:dismiss", "dialog dismissed", {"id": dialog_id})

    def dismiss_all(self) -> None:
        """Close every open dialog."""
        for dialog_id in list(self.dialogs.keys()):
            self.dismiss(dialog_id)

    def _resolve_position(self, dialog_id: str, spec: Dict[str, Any], widget: QWidget) -> QPoint:
        if spec.get('preserve_position') and dialog_id in self._last_positions:
            return QPoint(self._last_positions[dialog_id])

        default_position = spec.get('default_position') or {'x': 0, 'y': 0}
        x = int(round(default_position['x']))
        y = int(round(default_position['y']))

        if not spec.get('prevent_cut_off'):
            return QPoint(x, y)

        screen = QApplication.screenAt(QPoint(x, y))
        if screen is None:
            screen = QGuiApplication.primaryScreen()
        if screen is None:
            return QPoint(x, y)
        size = widget.sizeHint()
        return clamp_to_screen(x, y, size.width(), size.height(), screen.availableGeometry())
