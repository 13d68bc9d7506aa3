"""
Viewer Commands

This module registers the named viewer actions with the commands manager:
context menu display, measurement edits, window/level, tool activation,
rotation, flips, inversion, zoom, slice scrolling, colormaps, and active
viewport cycling. The same names are used by the context menu items and by
hotkeys.

The rendering and tool library is not used directly. Every action goes
through the collaborators given to ViewerCommands:

    viewport (from get_active_viewport):
        get_properties() / set_properties(dict), get_camera() / set_camera(dict),
        reset_properties(), reset_camera(), render(), scroll(delta),
        jump_to_slice(index), get_number_of_slices(), world_to_canvas(point),
        set_colormap(lut, name, display_set_instance_uid)
    measurement_service: get_measurement(uid), update(uid, measurement, notify), remove(uid)
    tool group (from get_tool_group): id, has_tool(name), get_viewport_ids(),
        get_active_primary_tool(), set_tool_active(name), set_tool_passive(name),
        set_tool_disabled(name)
    viewport_grid: get_state() -> {'active_viewport_index', 'viewports'},
        set_active_viewport_index(index), get_viewport(index), get_viewport_index(viewport_id)
    cine_service: get_state() -> {'is_cine_enabled'}, set_is_cine_enabled(bool),
        set_cine(viewport_index, is_playing)

Inputs:
    - Options dicts from the commands manager

Outputs:
    - Calls on the collaborators; query commands return values

Requirements:
    - numpy and matplotlib for colormap lookup tables
    - core.commands_manager, core.context_menu_controller, core.default_context_menu
    - utils.config_manager for rotation step, zoom factors and default colormap
"""

import copy
from typing import Any, Callable, Dict, List, Optional, Tuple

import matplotlib
import numpy as np

from core.commands_manager import CommandsManager
from core.context_menu_controller import ContextMenuController
from core.default_context_menu import DEFAULT_CONTEXT_MENU
from utils.config_manager import ConfigManager


VIEWER_CONTEXT = 'VIEWER'


def window_level_to_range(window_width: float, window_center: float) -> Tuple[float, float]:
    """
    Convert window width/center into the (lower, upper) VOI range.

    Args:
        window_width: Window width
        window_center: Window center (level)

    Returns:
        (lower, upper) tuple
    """
    lower = window_center - window_width / 2.0
    upper = window_center + window_width / 2.0
    return lower, upper


def colormap_lookup_table(colormap_name: str, size: int = 256) -> np.ndarray:
    """
    Build an RGB lookup table for a matplotlib colormap.

    Args:
        colormap_name: Name of a registered matplotlib colormap
        size: Number of table entries

    Returns:
        uint8 array of shape (size, 3)

    Raises:
        ValueError: If the colormap is unknown
    """
    try:
        cmap = matplotlib.colormaps[colormap_name]
    except KeyError:
        raise ValueError(f"Unknown colormap '{colormap_name}'") from None
    colored = cmap(np.linspace(0.0, 1.0, size))
    # Drop alpha
    return (colored[:, :3] * 255.0).round().astype(np.uint8)


class ViewerCommands:
    """
    Viewer actions and their command definitions.

    Responsibilities:
    - Implement each viewer action against the narrow collaborators
    - Register every action under its command name(s) with bound defaults
    - Build the context menu request for showViewerContextMenu
    """

    def __init__(
        self,
        commands_manager: CommandsManager,
        context_menu_controller: ContextMenuController,
        get_active_viewport: Callable[[], Optional[Any]],
        get_viewer_element: Optional[Callable[[], Optional[Any]]] = None,
        config_manager: Optional[ConfigManager] = None,
        measurement_service: Optional[Any] = None,
        get_tool_group: Optional[Callable[[Optional[str]], Optional[Any]]] = None,
        viewport_grid: Optional[Any] = None,
        cine_service: Optional[Any] = None,
        get_first_annotation_selected: Optional[Callable[[Any], Optional[Dict[str, Any]]]] = None,
        get_annotation_near_point: Optional[Callable[[Any, Any], Optional[Dict[str, Any]]]] = None,
        input_dialog_callback: Optional[Callable[[Dict[str, Any], Callable[[str, str], None]], None]] = None,
        show_notification: Optional[Callable[[str, str], None]] = None,
        menu_customizations: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        """
        Initialize the viewer commands.

        Args:
            commands_manager: Registry the commands are registered with
            context_menu_controller: Controller used by the context menu commands
            get_active_viewport: Returns the active viewport or None
            get_viewer_element: Returns the active viewer element (menu anchor)
            config_manager: Source of rotation step, zoom factors and default colormap
            measurement_service: Measurement store
            get_tool_group: Returns a tool group by id (None = active viewport's)
            viewport_grid: Viewport layout state
            cine_service: Cine playback state
            get_first_annotation_selected: Returns the first selected annotation on an element
            get_annotation_near_point: Returns the annotation near canvas coordinates
            input_dialog_callback: Opens a text input dialog (data, callback(value, action_id))
            show_notification: Shows a user notification (title, message)
            menu_customizations: Menu name -> customization dict with 'menus'
        """
        self.commands_manager = commands_manager
        self.context_menu_controller = context_menu_controller
        self.get_active_viewport = get_active_viewport
        self.get_viewer_element = get_viewer_element
        self.config_manager = config_manager
        self.measurement_service = measurement_service
        self.get_tool_group = get_tool_group
        self.viewport_grid = viewport_grid
        self.cine_service = cine_service
        self.get_first_annotation_selected = get_first_annotation_selected
        self.get_annotation_near_point = get_annotation_near_point
        self.input_dialog_callback = input_dialog_callback
        self.show_notification = show_notification
        self.menu_customizations = menu_customizations or {}

    # Context menu commands

    def show_viewer_context_menu(self, provided_options: Dict[str, Any]) -> None:
        """Show the context menu named by menu_name, for the selected or nearby annotation."""
        viewer_element = self.get_viewer_element() if self.get_viewer_element else None

        options = dict(provided_options)
        menu_name = options.get('menu_name')
        if menu_name:
            customization = self.menu_customizations.get(menu_name, DEFAULT_CONTEXT_MENU)
            options.update(copy.copy(customization))

        nearby_tool_data = options.get('nearby_tool_data')
        if options.get('use_selected_annotation') and not nearby_tool_data:
            selected = None
            if self.get_first_annotation_selected is not None:
                selected = self.get_first_annotation_selected(viewer_element)
            allowed = options.get('allowed_selected_tools')
            selected_tool = ((selected or {}).get('metadata') or {}).get('tool_name')
            if allowed and selected_tool not in allowed:
                return
            nearby_tool_data = selected
            options['nearby_tool_data'] = selected

        options['check_props'] = {
            'tool_name': ((nearby_tool_data or {}).get('metadata') or {}).get('tool_name'),
            'value': nearby_tool_data,
            'uid': (nearby_tool_data or {}).get('annotation_uid'),
            'nearby_tool_data': nearby_tool_data,
        }

        default_points_position: List[Any] = []
        if nearby_tool_data:
            default_points_position = self.commands_manager.run_command(
                'getToolDataActiveCanvasPoints', {'tool_data': nearby_tool_data}
            ) or []

        self.context_menu_controller.show_context_menu(
            options, viewer_element, default_points_position
        )

    def close_viewer_context_menu(self, options: Dict[str, Any]) -> None:
        """Close any viewer context menu currently displayed."""
        self.context_menu_controller.close_context_menu()

    def get_nearby_tool_data(self, options: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Return the given nearby tool data, or look it up near the canvas coordinates."""
        nearby_tool_data = options.get('nearby_tool_data')
        if nearby_tool_data is not None:
            return nearby_tool_data
        if self.get_annotation_near_point is None:
            return None
        return self.get_annotation_near_point(options.get('element'), options.get('canvas_coordinates'))

    def get_tool_data_active_canvas_points(self, options: Dict[str, Any]) -> List[Any]:
        """
        Canvas coordinates of the tool data's handle points.

        The active handle, when set, is listed first so the menu opens next to it.
        """
        tool_data = options.get('tool_data') or {}
        handles = (tool_data.get('data') or {}).get('handles') or {}
        points = list(handles.get('points') or [])
        viewport = self.get_active_viewport()
        if viewport is None or not points:
            return []

        active_index = handles.get('active_handle_index')
        if active_index is not None and 0 <= active_index < len(points):
            points.insert(0, points.pop(active_index))
        return [viewport.world_to_canvas(point) for point in points]

    # Measurement commands

    def delete_measurement(self, options: Dict[str, Any]) -> None:
        uid = options.get('uid')
        if uid and self.measurement_service is not None:
            self.measurement_service.remove(uid)

    def set_measurement_label(self, options: Dict[str, Any]) -> None:
        """Ask for a label through the input dialog and store it on the measurement."""
        uid = options.get('uid')
        if self.measurement_service is None or self.input_dialog_callback is None:
            return
        measurement = self.measurement_service.get_measurement(uid)
        if measurement is None:
            print(f"Warning: No measurement found for uid {uid}")
            return

        def on_label(label: str, action_id: str) -> None:
            if action_id == 'cancel':
                return
            updated = dict(measurement)
            updated['label'] = label
            self.measurement_service.update(updated['uid'], updated, True)

        self.input_dialog_callback(measurement, on_label)

    def update_measurement(self, options: Dict[str, Any]) -> None:
        """Set the label and/or a coded finding/site on a measurement."""
        uid = options.get('uid')
        if self.measurement_service is None:
            return
        measurement = self.measurement_service.get_measurement(uid)
        if measurement is None:
            print(f"Warning: No measurement found for uid {uid}")
            return

        measurement_key = options.get('measurement_key', 'finding')
        updated = dict(measurement)
        if options.get('text_label') is not None:
            updated['label'] = options['text_label']

        if 'code' in options:
            code = options['code']
            if code is not None:
                code = dict(code)
                if code.get('ref') and not code.get('code_value'):
                    # "SCT:52988006" -> scheme "SCT", value "52988006"
                    scheme, _, value = code['ref'].partition(':')
                    code['code_value'] = value
                    code['code_meaning'] = code.get('text')
                    code['coding_scheme_designator'] = scheme
            updated[measurement_key] = code
            if measurement_key == 'site':
                updated['finding_sites'] = [code] if code else []

        self.measurement_service.update(updated['uid'], updated, True)

    # Viewport commands

    def set_window_level(self, options: Dict[str, Any]) -> None:
        viewport = self.get_active_viewport()
        if viewport is None:
            return

        tool_group_id = options.get('tool_group_id')
        if tool_group_id and self.get_tool_group is not None:
            viewport_tool_group = self.get_tool_group(None)
            if viewport_tool_group is not None and viewport_tool_group.id != tool_group_id:
                return

        lower, upper = window_level_to_range(float(options['window']), float(options['level']))
        viewport.set_properties({'voi_range': {'lower': lower, 'upper': upper}})
        viewport.render()

    def set_tool_active(self, options: Dict[str, Any]) -> None:
        """Make a tool the primary mouse button tool of its tool group."""
        tool_name = options['tool_name']
        if self.get_tool_group is None:
            return

        if tool_name == 'Crosshairs':
            active_group = self.get_tool_group(None)
            if active_group is None or not active_group.has_tool('Crosshairs'):
                if self.show_notification is not None:
                    self.show_notification(
                        'Crosshairs',
                        'You need to be in a MPR view to use Crosshairs.'
                    )
                raise RuntimeError('Crosshairs tool is not available in this viewport')

        tool_group = self.get_tool_group(options.get('tool_group_id'))
        if tool_group is None:
            return
        # Tool group destroyed or its viewports removed
        if not tool_group.get_viewport_ids():
            return

        active_tool = tool_group.get_active_primary_tool()
        if active_tool:
            if active_tool == 'Crosshairs':
                tool_group.set_tool_disabled(active_tool)
            else:
                tool_group.set_tool_passive(active_tool)
        tool_group.set_tool_active(tool_name)

    def rotate_viewport(self, options: Dict[str, Any]) -> None:
        viewport = self.get_active_viewport()
        if viewport is None:
            return
        current = viewport.get_properties().get('rotation', 0)
        viewport.set_properties({'rotation': (current + options['rotation']) % 360})
        viewport.render()

    def flip_viewport_horizontal(self, options: Dict[str, Any]) -> None:
        viewport = self.get_active_viewport()
        if viewport is None:
            return
        flipped = viewport.get_camera().get('flip_horizontal', False)
        viewport.set_camera({'flip_horizontal': not flipped})
        viewport.render()

    def flip_viewport_vertical(self, options: Dict[str, Any]) -> None:
        viewport = self.get_active_viewport()
        if viewport is None:
            return
        flipped = viewport.get_camera().get('flip_vertical', False)
        viewport.set_camera({'flip_vertical': not flipped})
        viewport.render()

    def invert_viewport(self, options: Dict[str, Any]) -> None:
        viewport = options.get('viewport') or self.get_active_viewport()
        if viewport is None:
            return
        inverted = viewport.get_properties().get('invert', False)
        viewport.set_properties({'invert': not inverted})
        viewport.render()

    def reset_viewport(self, options: Dict[str, Any]) -> None:
        viewport = self.get_active_viewport()
        if viewport is None:
            return
        viewport.reset_properties()
        viewport.reset_camera()
        viewport.render()

    def scale_viewport(self, options: Dict[str, Any]) -> None:
        """Zoom in (direction > 0), out (direction < 0), or fit to window (0)."""
        viewport = self.get_active_viewport()
        if viewport is None:
            return

        direction = options.get('direction', 0)
        if not direction:
            viewport.reset_camera()
            viewport.render()
            return

        if self.config_manager is not None:
            zoom_in = self.config_manager.get_zoom_in_scale_factor()
            zoom_out = self.config_manager.get_zoom_out_scale_factor()
        else:
            zoom_in, zoom_out = 0.9, 1.1
        scale_factor = zoom_in if direction > 0 else zoom_out
        parallel_scale = viewport.get_camera()['parallel_scale']
        viewport.set_camera({'parallel_scale': parallel_scale * scale_factor})
        viewport.render()

    def scroll(self, options: Dict[str, Any]) -> None:
        viewport = self.get_active_viewport()
        if viewport is None:
            return
        viewport.scroll(options.get('direction', 1))

    def first_image(self, options: Dict[str, Any]) -> None:
        viewport = self.get_active_viewport()
        if viewport is None:
            return
        viewport.jump_to_slice(0)

    def last_image(self, options: Dict[str, Any]) -> None:
        viewport = self.get_active_viewport()
        if viewport is None:
            return
        number_of_slices = viewport.get_number_of_slices()
        if number_of_slices > 0:
            viewport.jump_to_slice(number_of_slices - 1)

    def set_viewport_colormap(self, options: Dict[str, Any]) -> None:
        """Apply a matplotlib colormap to a display set in a viewport."""
        viewport_index = options.get('viewport_index')
        if viewport_index is not None and self.viewport_grid is not None:
            viewport = self.viewport_grid.get_viewport(viewport_index)
        else:
            viewport = self.get_active_viewport()
        if viewport is None:
            return

        colormap = options.get('colormap')
        if not colormap:
            colormap = self.config_manager.get_default_colormap() if self.config_manager else 'gray'
        lut = colormap_lookup_table(colormap)
        viewport.set_colormap(lut, colormap, options.get('display_set_instance_uid'))
        if options.get('immediate', False):
            viewport.render()

    # Viewport grid and cine commands

    def _cycle_active_viewport(self, step: int) -> None:
        if self.viewport_grid is None:
            return
        state = self.viewport_grid.get_state()
        count = len(state.get('viewports', []))
        if count == 0:
            return
        next_index = (state.get('active_viewport_index', 0) + step) % count
        self.viewport_grid.set_active_viewport_index(next_index)

    def increment_active_viewport(self, options: Dict[str, Any]) -> None:
        self._cycle_active_viewport(1)

    def decrement_active_viewport(self, options: Dict[str, Any]) -> None:
        self._cycle_active_viewport(-1)

    def set_viewport_active(self, options: Dict[str, Any]) -> None:
        if self.viewport_grid is None:
            return
        viewport_index = self.viewport_grid.get_viewport_index(options.get('viewport_id'))
        if viewport_index is None:
            print(f"Warning: No viewport found for viewport_id: {options.get('viewport_id')}")
            return
        self.viewport_grid.set_active_viewport_index(viewport_index)

    def toggle_cine(self, options: Dict[str, Any]) -> None:
        if self.cine_service is None:
            return
        enabled = self.cine_service.get_state().get('is_cine_enabled', False)
        self.cine_service.set_is_cine_enabled(not enabled)
        if self.viewport_grid is not None:
            for index, _ in enumerate(self.viewport_grid.get_state().get('viewports', [])):
                self.cine_service.set_cine(index, False)

    # Registration

    def get_definitions(self) -> Dict[str, Dict[str, Any]]:
        """
        Command name -> {'command_fn', 'options'} table.

        Several names share one action and differ only in bound options.
        """
        rotation = self.config_manager.get_rotation_step_degrees() if self.config_manager else 90
        return {
            'showViewerContextMenu': {'command_fn': self.show_viewer_context_menu, 'options': {}},
            'closeViewerContextMenu': {'command_fn': self.close_viewer_context_menu, 'options': {}},
            'getNearbyToolData': {'command_fn': self.get_nearby_tool_data, 'options': {}},
            'getToolDataActiveCanvasPoints': {'command_fn': self.get_tool_data_active_canvas_points, 'options': {}},
            'deleteMeasurement': {'command_fn': self.delete_measurement, 'options': {}},
            'setMeasurementLabel': {'command_fn': self.set_measurement_label, 'options': {}},
            'setLabel': {'command_fn': self.set_measurement_label, 'options': {}},
            'setFinding': {'command_fn': self.update_measurement, 'options': {'measurement_key': 'finding'}},
            'setSite': {'command_fn': self.update_measurement, 'options': {'measurement_key': 'site'}},
            'setWindowLevel': {'command_fn': self.set_window_level, 'options': {}},
            'setToolActive': {'command_fn': self.set_tool_active, 'options': {}},
            'rotateViewportCW': {'command_fn': self.rotate_viewport, 'options': {'rotation': rotation}},
            'rotateViewportCCW': {'command_fn': self.rotate_viewport, 'options': {'rotation': -rotation}},
            'flipViewportHorizontal': {'command_fn': self.flip_viewport_horizontal, 'options': {}},
            'flipViewportVertical': {'command_fn': self.flip_viewport_vertical, 'options': {}},
            'invertViewport': {'command_fn': self.invert_viewport, 'options': {}},
            'resetViewport': {'command_fn': self.reset_viewport, 'options': {}},
            'scaleUpViewport': {'command_fn': self.scale_viewport, 'options': {'direction': 1}},
            'scaleDownViewport': {'command_fn': self.scale_viewport, 'options': {'direction': -1}},
            'fitViewportToWindow': {'command_fn': self.scale_viewport, 'options': {'direction': 0}},
            'nextImage': {'command_fn': self.scroll, 'options': {'direction': 1}},
            'previousImage': {'command_fn': self.scroll, 'options': {'direction': -1}},
            'firstImage': {'command_fn': self.first_image, 'options': {}},
            'lastImage': {'command_fn': self.last_image, 'options': {}},
            'setViewportColormap': {'command_fn': self.set_viewport_colormap, 'options': {}},
            'incrementActiveViewport': {'command_fn': self.increment_active_viewport, 'options': {}},
            'decrementActiveViewport': {'command_fn': self.decrement_active_viewport, 'options': {}},
            'setViewportActive': {'command_fn': self.set_viewport_active, 'options': {}},
            'toggleCine': {'command_fn': self.toggle_cine, 'options': {}},
        }

    def register(self, context: str = VIEWER_CONTEXT) -> None:
        """Register every definition with the commands manager under a context."""
        for name, definition in self.get_definitions().items():
            self.commands_manager.register(
                name, definition['command_fn'], definition['options'], context
            )
