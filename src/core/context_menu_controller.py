"""
Context Menu Controller

This module owns the single viewer context menu session. It knows how to:
    1. Show and hide the context menu through the dialog service
    2. Pick the menu items through the menu item source
    3. Wire item interaction callbacks to command execution

At most one session exists: every show first dismisses the dialog with the
fixed CONTEXT_MENU_ID, and submenu navigation replaces the current session by
showing the menu again with another menu id.

Inputs:
    - Context menu request dicts: event, menu_id, menus, refs, check_props,
      sub_menu, canvas_points
    - Viewer element the menu is anchored to
    - Optional canvas points used as the position hint

Outputs:
    - Dialog service create/dismiss calls
    - Command runs through the commands manager

Requirements:
    - core.context_menu_position for placement
    - core.context_menu_items_builder as the default menu item source
    - utils.debug_log for optional tracing
"""

import traceback
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from core.context_menu_items_builder import get_menu_items as default_get_menu_items
from core.context_menu_position import get_default_position
from utils.debug_log import debug_log


CONTEXT_MENU_ID = 'context-menu'


class ContextMenuController:
    """
    Manages showing, replacing and closing the viewer context menu.

    Responsibilities:
    - Keep at most one context menu session open
    - Resolve the menu position from selection points, event, or viewer element
    - Run a selected item's batch of commands, best effort
    - Navigate to submenus by re-opening the menu
    - Run an item's single default command
    """

    def __init__(self, dialog_service: Any, commands_manager: Any,
                 menu_content: Any = None,
                 get_menu_items: Optional[Callable[..., List[Dict[str, Any]]]] = None,
                 prevent_cut_off: bool = True):
        """
        Initialize the context menu controller.

        Args:
            dialog_service: Object providing create(spec) and dismiss(dialog_id);
                            may be None, in which case menus are never shown
            commands_manager: Object providing run_command(name, options, context)
            menu_content: Presentational menu factory passed to the dialog service
            get_menu_items: Menu item source; defaults to the items builder
            prevent_cut_off: Ask the dialog service to keep the menu on screen
        """
        self.dialog_service = dialog_service
        self.commands_manager = commands_manager
        self.menu_content = menu_content
        self.get_menu_items = get_menu_items or default_get_menu_items
        self.prevent_cut_off = prevent_cut_off

    def close_context_menu(self) -> None:
        """Dismiss the context menu; safe to call when none is open."""
        if self.dialog_service is None:
            return
        self.dialog_service.dismiss(CONTEXT_MENU_ID)
        debug_log("context_menu_controller.py:close_context_menu", "dismissed", {})

    def show_context_menu(self, context_menu_props: Dict[str, Any],
                          viewer_element: Any = None,
                          default_points_position: Optional[Sequence[Any]] = None) -> bool:
        """
        Show the context menu, replacing any menu already open.

        Args:
            context_menu_props: Request dict (event, menu_id, menus, refs,
                                check_props, sub_menu, canvas_points)
            viewer_element: Element exposing get_bounding_client_rect()
            default_points_position: Canvas points to place the menu at;
                                     falls back to context_menu_props['canvas_points']

        Returns:
            True if a session was created
        """
        if self.dialog_service is None:
            print("Warning: Unable to show context menu; no dialog service available.")
            return False

        event = context_menu_props.get('event')
        menus = context_menu_props.get('menus')
        refs = context_menu_props.get('refs')
        check_props = context_menu_props.get('check_props')
        menu_id = context_menu_props.get('menu_id')

        self.dialog_service.dismiss(CONTEXT_MENU_ID)

        items = self.get_menu_items(
            check_props if check_props is not None else context_menu_props,
            event,
            menus,
            refs,
            menu_id,
        )

        points = default_points_position
        if points is None or len(points) == 0:
            points = context_menu_props.get('canvas_points')
        event_detail = (event or {}).get('detail')
        position = get_default_position(points, event_detail, viewer_element)

        def on_sub_menu(item, item_ref=None, sub_props=None):
            return self.on_sub_menu(context_menu_props, viewer_element,
                                    default_points_position, item, item_ref)

        def navigate_or(handler):
            # Items with a sub_menu only navigate, they never run commands
            def callback(item, item_ref=None, sub_props=None):
                ref = item_ref if item_ref is not None else item
                if ref.get('sub_menu'):
                    return on_sub_menu(item, ref)
                return handler(context_menu_props, ref)
            return callback

        content_props = {
            'items': items,
            'check_props': check_props,
            'menus': menus,
            'event': event,
            'sub_menu': context_menu_props.get('sub_menu'),
            'event_data': event_detail,
            'refs': refs,
            'on_run_commands': navigate_or(self.on_run_commands),
            'on_sub_menu': on_sub_menu,
            'on_show_sub_menu': on_sub_menu,
            'on_default': navigate_or(self.on_default),
            'on_close': self.close_context_menu,
        }

        created = self.dialog_service.create({
            'id': CONTEXT_MENU_ID,
            'is_draggable': False,
            'preserve_position': False,
            'prevent_cut_off': self.prevent_cut_off,
            'default_position': position,
            'event': event,
            'content': self.menu_content,
            'on_click_outside': self.close_context_menu,
            'content_props': content_props,
        })
        if created is False:
            print("Warning: Dialog service rejected the context menu.")
            return False

        debug_log("context_menu_controller.py:show_context_menu", "shown",
                  {"menu_id": menu_id, "item_count": len(items), "position": position})
        return True

    def on_run_commands(self, context_menu_props: Dict[str, Any],
                        item: Dict[str, Any]) -> List[Tuple[str, Exception]]:
        """
        Run the item's commands in order.

        Each command gets the request's refs and check props, overridden by
        its own command_options. A failing command does not stop the batch.

        Args:
            context_menu_props: The request the menu was shown for
            item: Selected item carrying a 'commands' list

        Returns:
            List of (command_name, exception) for the commands that failed
        """
        refs = context_menu_props.get('refs')
        check_props = context_menu_props.get('check_props') or {}
        failures: List[Tuple[str, Exception]] = []

        for command in item.get('commands') or []:
            command_name = command.get('command_name')
            options = {'refs': refs}
            options.update(check_props)
            options.update(command.get('command_options') or {})
            try:
                self.commands_manager.run_command(command_name, options, command.get('context'))
            except Exception as e:
                print(f"Error running command '{command_name}' from context menu: {e}")
                traceback.print_exc()
                failures.append((command_name, e))

        if failures:
            debug_log("context_menu_controller.py:on_run_commands", "batch had failures",
                      {"failed": [name for name, _ in failures]})
        return failures

    def on_sub_menu(self, context_menu_props: Dict[str, Any], viewer_element: Any,
                    default_points_position: Optional[Sequence[Any]],
                    item: Dict[str, Any], item_ref: Optional[Dict[str, Any]] = None) -> bool:
        """
        Replace the current menu with the item's submenu.

        The same viewer element and position hint are reused so the menu does
        not move.

        Returns:
            True if the submenu was shown
        """
        ref = item_ref if item_ref is not None else item
        sub_menu = ref.get('sub_menu')
        if not sub_menu:
            print(f"Warning: No submenu defined for item {ref.get('label')!r}")
            return False

        next_props = dict(context_menu_props)
        next_props['menu_id'] = sub_menu
        return self.show_context_menu(next_props, viewer_element, default_points_position)

    def on_default(self, context_menu_props: Dict[str, Any], item: Dict[str, Any]) -> Any:
        """
        Run the item's single command_name, if any.

        Options are merged in increasing precedence: the item's own fields,
        its command_options, the request's check props, then refs.

        Returns:
            The command's return value, or None when the item has no command
        """
        command_name = item.get('command_name')
        if not command_name:
            return None

        options = dict(item)
        options.update(item.get('command_options') or {})
        options.update(context_menu_props.get('check_props') or {})
        options['refs'] = context_menu_props.get('refs')
        return self.commands_manager.run_command(command_name, options, item.get('context'))
