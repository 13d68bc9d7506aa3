"""
Unit tests for the viewer commands (core.viewer_commands).

Uses fake viewport, measurement service, tool group and viewport grid
collaborators registered through a real CommandsManager.
Runnable with pytest or unittest.
"""

import unittest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import numpy as np

from core.commands_manager import CommandsManager
from core.viewer_commands import (
    VIEWER_CONTEXT,
    ViewerCommands,
    colormap_lookup_table,
    window_level_to_range,
)


class FakeViewport:
    def __init__(self):
        self.properties = {'rotation': 0, 'invert': False}
        self.camera = {'parallel_scale': 100.0, 'flip_horizontal': False, 'flip_vertical': False}
        self.render_count = 0
        self.scrolled = []
        self.slice_index = None
        self.colormap = None
        self.resets = 0

    def get_properties(self):
        return dict(self.properties)

    def set_properties(self, properties):
        self.properties.update(properties)

    def get_camera(self):
        return dict(self.camera)

    def set_camera(self, camera):
        self.camera.update(camera)

    def reset_properties(self):
        self.properties = {'rotation': 0, 'invert': False}
        self.resets += 1

    def reset_camera(self):
        self.camera['parallel_scale'] = 100.0

    def render(self):
        self.render_count += 1

    def scroll(self, delta):
        self.scrolled.append(delta)

    def jump_to_slice(self, index):
        self.slice_index = index

    def get_number_of_slices(self):
        return 12

    def world_to_canvas(self, point):
        return [point[0] * 2, point[1] * 2]

    def set_colormap(self, lut, name, display_set_instance_uid):
        self.colormap = (lut, name, display_set_instance_uid)


class FakeMeasurementService:
    def __init__(self):
        self.measurements = {'m1': {'uid': 'm1', 'label': ''}}
        self.removed = []

    def get_measurement(self, uid):
        return self.measurements.get(uid)

    def update(self, uid, measurement, notify):
        self.measurements[uid] = measurement

    def remove(self, uid):
        self.removed.append(uid)


class FakeToolGroup:
    def __init__(self, tools=('Length', 'Pan'), active='Pan'):
        self.id = 'default'
        self.tools = set(tools)
        self.active = active
        self.passive = []
        self.disabled = []

    def has_tool(self, name):
        return name in self.tools

    def get_viewport_ids(self):
        return ['vp-1']

    def get_active_primary_tool(self):
        return self.active

    def set_tool_active(self, name):
        self.active = name

    def set_tool_passive(self, name):
        self.passive.append(name)

    def set_tool_disabled(self, name):
        self.disabled.append(name)


class FakeViewportGrid:
    def __init__(self):
        self.state = {'active_viewport_index': 0, 'viewports': ['a', 'b', 'c']}

    def get_state(self):
        return dict(self.state)

    def set_active_viewport_index(self, index):
        self.state['active_viewport_index'] = index

    def get_viewport(self, index):
        return None

    def get_viewport_index(self, viewport_id):
        return {'a': 0, 'b': 1, 'c': 2}.get(viewport_id)


class FakeContextMenuController:
    def __init__(self):
        self.shown = []
        self.closed = 0

    def show_context_menu(self, props, element, points):
        self.shown.append((props, element, points))

    def close_context_menu(self):
        self.closed += 1


class ViewerCommandsTestCase(unittest.TestCase):
    def setUp(self):
        self.manager = CommandsManager()
        self.viewport = FakeViewport()
        self.measurements = FakeMeasurementService()
        self.tool_group = FakeToolGroup()
        self.grid = FakeViewportGrid()
        self.menu = FakeContextMenuController()
        self.dialog_requests = []
        self.selected_annotation = None
        self.commands = ViewerCommands(
            self.manager,
            self.menu,
            get_active_viewport=lambda: self.viewport,
            get_viewer_element=lambda: 'element',
            measurement_service=self.measurements,
            get_tool_group=lambda tool_group_id: self.tool_group,
            viewport_grid=self.grid,
            get_first_annotation_selected=lambda element: self.selected_annotation,
            input_dialog_callback=lambda data, callback: self.dialog_requests.append((data, callback)),
        )
        self.commands.register()


class TestHelpers(unittest.TestCase):
    """Tests for module-level helpers."""

    def test_window_level_to_range(self):
        self.assertEqual(window_level_to_range(400, 40), (-160.0, 240.0))

    def test_colormap_lookup_table(self):
        lut = colormap_lookup_table('gray', size=4)
        self.assertEqual(lut.shape, (4, 3))
        self.assertEqual(lut.dtype, np.uint8)
        self.assertEqual(lut[0].tolist(), [0, 0, 0])
        self.assertEqual(lut[-1].tolist(), [255, 255, 255])

    def test_unknown_colormap(self):
        with self.assertRaises(ValueError):
            colormap_lookup_table('not-a-colormap')


class TestViewportCommands(ViewerCommandsTestCase):
    """Tests for viewport manipulation commands."""

    def test_rotate_bound_options(self):
        self.manager.run_command('rotateViewportCW', {}, VIEWER_CONTEXT)
        self.assertEqual(self.viewport.properties['rotation'], 90)
        self.manager.run_command('rotateViewportCCW', {}, VIEWER_CONTEXT)
        self.manager.run_command('rotateViewportCCW', {}, VIEWER_CONTEXT)
        self.assertEqual(self.viewport.properties['rotation'], 270)

    def test_flip_and_invert_toggle(self):
        self.manager.run_command('flipViewportHorizontal')
        self.manager.run_command('flipViewportVertical')
        self.manager.run_command('invertViewport')
        self.assertTrue(self.viewport.camera['flip_horizontal'])
        self.assertTrue(self.viewport.camera['flip_vertical'])
        self.assertTrue(self.viewport.properties['invert'])
        self.assertEqual(self.viewport.render_count, 3)

    def test_scale_commands(self):
        self.manager.run_command('scaleUpViewport')
        self.assertAlmostEqual(self.viewport.camera['parallel_scale'], 90.0)
        self.manager.run_command('scaleDownViewport')
        self.assertAlmostEqual(self.viewport.camera['parallel_scale'], 99.0)
        self.manager.run_command('fitViewportToWindow')
        self.assertEqual(self.viewport.camera['parallel_scale'], 100.0)

    def test_scroll_and_jump(self):
        self.manager.run_command('nextImage')
        self.manager.run_command('previousImage')
        self.assertEqual(self.viewport.scrolled, [1, -1])
        self.manager.run_command('lastImage')
        self.assertEqual(self.viewport.slice_index, 11)
        self.manager.run_command('firstImage')
        self.assertEqual(self.viewport.slice_index, 0)

    def test_reset(self):
        self.viewport.properties['rotation'] = 90
        self.manager.run_command('resetViewport')
        self.assertEqual(self.viewport.properties['rotation'], 0)

    def test_window_level(self):
        self.manager.run_command('setWindowLevel', {'window': '400', 'level': '40'})
        self.assertEqual(self.viewport.properties['voi_range'], {'lower': -160.0, 'upper': 240.0})

    def test_window_level_other_tool_group_ignored(self):
        self.manager.run_command('setWindowLevel',
                                 {'window': 400, 'level': 40, 'tool_group_id': 'mpr'})
        self.assertNotIn('voi_range', self.viewport.properties)

    def test_colormap(self):
        self.manager.run_command('setViewportColormap',
                                 {'colormap': 'viridis', 'display_set_instance_uid': 'ds1',
                                  'immediate': True})
        lut, name, uid = self.viewport.colormap
        self.assertEqual(lut.shape, (256, 3))
        self.assertEqual((name, uid), ('viridis', 'ds1'))
        self.assertEqual(self.viewport.render_count, 1)

    def test_no_active_viewport_is_noop(self):
        self.viewport = None
        self.manager.run_command('rotateViewportCW')
        self.manager.run_command('nextImage')


class TestToolAndGridCommands(ViewerCommandsTestCase):
    """Tests for tool activation and viewport grid commands."""

    def test_set_tool_active(self):
        self.manager.run_command('setToolActive', {'tool_name': 'Length'})
        self.assertEqual(self.tool_group.active, 'Length')
        self.assertEqual(self.tool_group.passive, ['Pan'])

    def test_crosshairs_unavailable_raises(self):
        with self.assertRaises(RuntimeError):
            self.manager.run_command('setToolActive', {'tool_name': 'Crosshairs'})

    def test_crosshairs_disabled_when_replaced(self):
        self.tool_group = FakeToolGroup(tools=('Crosshairs', 'Length'), active='Crosshairs')
        self.manager.run_command('setToolActive', {'tool_name': 'Length'})
        self.assertEqual(self.tool_group.disabled, ['Crosshairs'])

    def test_cycle_active_viewport(self):
        self.manager.run_command('decrementActiveViewport')
        self.assertEqual(self.grid.state['active_viewport_index'], 2)
        self.manager.run_command('incrementActiveViewport')
        self.assertEqual(self.grid.state['active_viewport_index'], 0)

    def test_set_viewport_active(self):
        self.manager.run_command('setViewportActive', {'viewport_id': 'b'})
        self.assertEqual(self.grid.state['active_viewport_index'], 1)


class TestMeasurementCommands(ViewerCommandsTestCase):
    """Tests for measurement commands."""

    def test_delete_measurement(self):
        self.manager.run_command('deleteMeasurement', {'uid': 'm1'})
        self.assertEqual(self.measurements.removed, ['m1'])

    def test_set_label_through_dialog(self):
        self.manager.run_command('setLabel', {'uid': 'm1'})
        data, callback = self.dialog_requests[0]
        self.assertEqual(data['uid'], 'm1')
        callback('Lesion A', 'save')
        self.assertEqual(self.measurements.measurements['m1']['label'], 'Lesion A')

    def test_set_label_cancel(self):
        self.manager.run_command('setMeasurementLabel', {'uid': 'm1'})
        self.dialog_requests[0][1]('ignored', 'cancel')
        self.assertEqual(self.measurements.measurements['m1']['label'], '')

    def test_set_site_parses_code_ref(self):
        code = {'ref': 'SCT:39607008', 'text': 'Lung'}
        self.manager.run_command('setSite', {'uid': 'm1', 'code': code})
        updated = self.measurements.measurements['m1']
        self.assertEqual(updated['site']['code_value'], '39607008')
        self.assertEqual(updated['site']['coding_scheme_designator'], 'SCT')
        self.assertEqual(updated['site']['code_meaning'], 'Lung')
        self.assertEqual(updated['finding_sites'], [updated['site']])
        self.assertNotIn('code_value', code)

    def test_set_finding_bound_key(self):
        self.manager.run_command('setFinding', {'uid': 'm1', 'code': {'code_value': '1'}})
        self.assertEqual(self.measurements.measurements['m1']['finding'], {'code_value': '1'})


class TestContextMenuCommands(ViewerCommandsTestCase):
    """Tests for showViewerContextMenu / closeViewerContextMenu."""

    def _annotation(self, tool_name='Length'):
        return {
            'annotation_uid': 'a1',
            'metadata': {'tool_name': tool_name},
            'data': {'handles': {'points': [[1, 2, 0], [3, 4, 0]], 'active_handle_index': 1}},
        }

    def test_canvas_points_active_handle_first(self):
        points = self.manager.run_command('getToolDataActiveCanvasPoints',
                                          {'tool_data': self._annotation()})
        self.assertEqual(points, [[6, 8], [2, 4]])

    def test_show_with_nearby_tool_data(self):
        annotation = self._annotation()
        self.manager.run_command('showViewerContextMenu',
                                 {'menu_name': 'measurementsContextMenu',
                                  'nearby_tool_data': annotation})
        props, element, points = self.menu.shown[0]
        self.assertEqual(element, 'element')
        self.assertEqual(points, [[6, 8], [2, 4]])
        self.assertEqual(props['check_props'], {
            'tool_name': 'Length', 'value': annotation, 'uid': 'a1',
            'nearby_tool_data': annotation,
        })
        self.assertEqual(props['menus'][0]['id'], 'forExistingMeasurement')

    def test_selected_annotation_filtered_by_tool(self):
        self.selected_annotation = self._annotation('Probe')
        self.manager.run_command('showViewerContextMenu',
                                 {'use_selected_annotation': True,
                                  'allowed_selected_tools': ['Length']})
        self.assertEqual(self.menu.shown, [])

    def test_selected_annotation_used(self):
        self.selected_annotation = self._annotation('Length')
        self.manager.run_command('showViewerContextMenu', {'use_selected_annotation': True})
        props, _, _ = self.menu.shown[0]
        self.assertEqual(props['check_props']['uid'], 'a1')

    def test_close(self):
        self.manager.run_command('closeViewerContextMenu')
        self.assertEqual(self.menu.closed, 1)


if __name__ == "__main__":
    unittest.main()
