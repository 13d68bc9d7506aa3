"""
Unit tests for the Qt dialog service (gui.dialog_service) and the viewer
element adapter (gui.viewer_element).

Requires PySide6 and the qapp fixture; runs on the offscreen platform.
"""

import unittest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from PySide6.QtCore import QPoint, QPointF, QRect
from PySide6.QtWidgets import QLabel, QWidget

from core.commands_manager import CommandsManager
from core.context_menu_controller import CONTEXT_MENU_ID, ContextMenuController
from gui.dialog_service import UIDialogService, clamp_to_screen
from gui.viewer_element import ViewerElement, event_from_mouse_event


class TestClampToScreen(unittest.TestCase):
    """Tests for clamp_to_screen (pure geometry)."""

    def setUp(self):
        self.screen = QRect(0, 0, 1000, 800)

    def test_fits_unchanged(self):
        self.assertEqual(clamp_to_screen(100, 100, 200, 300, self.screen), QPoint(100, 100))

    def test_flips_left_and_up_near_edges(self):
        self.assertEqual(clamp_to_screen(950, 750, 200, 300, self.screen), QPoint(750, 450))

    def test_clamped_when_no_side_fits(self):
        self.assertEqual(clamp_to_screen(-50, 10, 1200, 100, self.screen), QPoint(0, 10))


def label_content(parent, content_props):
    return QLabel(f"{len(content_props.get('items', []))} items", parent)


@pytest.mark.qt
@pytest.mark.usefixtures("qapp")
class TestUIDialogService(unittest.TestCase):
    """Tests for create/dismiss."""

    def setUp(self):
        self.service = UIDialogService()

    def tearDown(self):
        self.service.dismiss_all()

    def spec(self, **overrides):
        spec = {
            'id': 'context-menu',
            'content': label_content,
            'content_props': {'items': [1, 2]},
            'default_position': {'x': 40, 'y': 60},
            'prevent_cut_off': False,
        }
        spec.update(overrides)
        return spec

    def test_create_and_dismiss(self):
        self.assertTrue(self.service.create(self.spec()))
        self.assertTrue(self.service.is_open('context-menu'))
        self.assertEqual(self.service.position_of('context-menu'), QPoint(40, 60))
        self.service.dismiss('context-menu')
        self.assertFalse(self.service.is_open('context-menu'))

    def test_dismiss_unknown_id_is_noop(self):
        self.service.dismiss('missing')

    def test_create_same_id_replaces(self):
        self.service.create(self.spec())
        first = self.service.dialogs['context-menu']
        self.service.create(self.spec(default_position={'x': 5, 'y': 5}))
        self.assertEqual(len(self.service.dialogs), 1)
        self.assertIsNot(self.service.dialogs['context-menu'], first)

    def test_rejects_spec_without_content(self):
        self.assertFalse(self.service.create(self.spec(content=None)))
        self.assertFalse(self.service.is_open('context-menu'))

    def test_preserve_position_reuses_last(self):
        self.service.create(self.spec())
        self.service.dismiss('context-menu')
        self.service.create(self.spec(default_position={'x': 300, 'y': 300},
                                      preserve_position=True))
        self.assertEqual(self.service.position_of('context-menu'), QPoint(40, 60))

    def test_preserve_position_does_not_drift(self):
        positions = []
        for _ in range(4):
            self.service.create(self.spec(preserve_position=True))
            positions.append(self.service.position_of('context-menu'))
            self.service.dismiss('context-menu')
        self.assertEqual(positions, [QPoint(40, 60)] * 4)
        self.assertIsNone(self.service.position_of('context-menu'))

    def test_hidden_popup_reports_outside_click(self):
        clicks = []
        self.service.create(self.spec(on_click_outside=lambda: clicks.append(1)))
        self.service.dialogs['context-menu'].hide()
        self.assertEqual(clicks, [1])

    def test_dismiss_does_not_report_outside_click(self):
        clicks = []
        self.service.create(self.spec(on_click_outside=lambda: clicks.append(1)))
        self.service.dismiss('context-menu')
        self.assertEqual(clicks, [])

    def test_controller_drives_service(self):
        controller = ContextMenuController(self.service, CommandsManager(), menu_content=label_content)
        menus = [{'id': 'm', 'items': [{'label': 'A'}]}]
        self.assertTrue(controller.show_context_menu({'menus': menus}, None))
        self.assertTrue(controller.show_context_menu({'menus': menus}, None))
        self.assertEqual(list(self.service.dialogs.keys()), [CONTEXT_MENU_ID])
        controller.close_context_menu()
        self.assertFalse(self.service.is_open(CONTEXT_MENU_ID))


class FakeMouseEvent:
    def globalPosition(self):
        return QPointF(110.0, 220.0)

    def position(self):
        return QPointF(10.0, 20.0)


@pytest.mark.qt
@pytest.mark.usefixtures("qapp")
class TestViewerElement(unittest.TestCase):
    """Tests for the widget and event adapters."""

    def test_bounding_rect_has_widget_size(self):
        widget = QWidget()
        widget.resize(320, 240)
        rect = ViewerElement(widget).get_bounding_client_rect()
        self.assertEqual((rect['width'], rect['height']), (320, 240))
        self.assertIsInstance(rect['x'], int)

    def test_event_from_mouse_event(self):
        event = event_from_mouse_event(FakeMouseEvent(), element='el')
        self.assertEqual(event['detail']['current_points']['client'], [110.0, 220.0])
        self.assertEqual(event['detail']['current_points']['canvas'], [10.0, 20.0])
        self.assertEqual(event['detail']['element'], 'el')


if __name__ == "__main__":
    unittest.main()
