"""
Context Menu Items Builder

This module turns menu definitions into the list of item descriptors shown in
a context menu. A menu definition is a dict:

    {
        'id': 'forExistingMeasurement',
        'selector': lambda check_props: ...,   # optional
        'items': [
            {'label': 'Delete measurement',
             'commands': [{'command_name': 'deleteMeasurement'}]},
            {'label': 'More...', 'action_type': 'SubMenu', 'sub_menu': 'moreMenu'},
            {'delegating': True, 'sub_menu': 'sharedItems'},
        ],
    }

Item descriptors returned by get_menu_items() carry an 'action' callable that
the presentational menu calls with (item_ref, content_props). The action
closes the menu and routes to content_props['on_<action_type>'], which the
context menu controller provides (on_run_commands, on_sub_menu, on_default).

Inputs:
    - check_props (selection data), triggering event, menu definitions, refs,
      optional menu id to display

Outputs:
    - List of item descriptor dicts

Requirements:
    - Standard library only
"""

import re
from typing import Any, Callable, Dict, List, Optional

from utils.debug_log import debug_log


ACTION_TYPE_DEFAULT = 'Default'
ACTION_TYPE_RUN_COMMANDS = 'RunCommands'
ACTION_TYPE_SUB_MENU = 'SubMenu'
ACTION_TYPE_SHOW_SUB_MENU = 'ShowSubMenu'


def _selector_passes(definition: Dict[str, Any], check_props: Dict[str, Any]) -> bool:
    selector = definition.get('selector')
    return selector is None or bool(selector(check_props))


def find_menu_by_id(menus: List[Dict[str, Any]], menu_id: Optional[str]) -> Optional[Dict[str, Any]]:
    """Find a menu definition by id."""
    if not menu_id:
        return None
    for menu in menus:
        if menu.get('id') == menu_id:
            return menu
    return None


def find_menu_default(menus: List[Dict[str, Any]], check_props: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Find the first menu whose selector accepts the check props (or has none)."""
    for menu in menus:
        if _selector_passes(menu, check_props):
            return menu
    return None


def find_menu(menus: List[Dict[str, Any]], check_props: Dict[str, Any],
              menu_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Find the menu to display.

    An explicit menu id (or a 'sub_menu' in the check props) wins; otherwise
    the first menu selected by the check props is used.
    """
    menu = find_menu_by_id(menus, menu_id or check_props.get('sub_menu'))
    if menu is not None:
        return menu
    return find_menu_default(menus, check_props)


def _method_name(action_type: str) -> str:
    # 'RunCommands' -> 'on_run_commands'
    return 'on_' + re.sub(r'(?<!^)(?=[A-Z])', '_', action_type).lower()


def run_item_action(item: Dict[str, Any], item_ref: Dict[str, Any],
                    content_props: Dict[str, Any], sub_props: Optional[Dict[str, Any]] = None) -> Any:
    """
    Route a selected item to the matching content callback.

    The menu is closed first, then content_props['on_<action_type>'] is called
    with (item, item_ref, sub_props).

    Args:
        item: The adapted item descriptor
        item_ref: The item as the menu sees it (usually the same dict)
        content_props: Props given to the presentational menu by the controller
        sub_props: Extra data to forward (selection props, refs)

    Returns:
        The callback's return value, or None if no callback matches
    """
    event = content_props.get('event') or {}
    detail = event.get('detail') or {}
    item['element'] = detail.get('element')

    on_close = content_props.get('on_close')
    if on_close is not None:
        on_close()

    action_type = item_ref.get('action_type') or ACTION_TYPE_DEFAULT
    action = content_props.get(_method_name(action_type))
    if action is None:
        print(f"Warning: No action defined for action type '{action_type}' on item {item_ref.get('label')!r}")
        return None
    return action(item, item_ref, sub_props)


def adapt_item(item: Dict[str, Any], sub_props: Dict[str, Any]) -> Dict[str, Any]:
    """
    Copy a menu item definition into a displayable, actionable descriptor.

    Args:
        item: Item definition
        sub_props: {'check_props': ..., 'refs': ..., 'event': ...}

    Returns:
        New item dict with 'value', 'refs' and an 'action' callable
    """
    check_props = sub_props.get('check_props') or {}
    new_item = dict(item)
    new_item['value'] = check_props.get('value')
    new_item['refs'] = sub_props.get('refs')

    if item.get('action_type') == ACTION_TYPE_SHOW_SUB_MENU and not new_item.get('icon_right'):
        new_item['icon_right'] = 'chevron-menu'

    if 'action' not in item:
        def action(item_ref: Dict[str, Any], content_props: Dict[str, Any]) -> Any:
            return run_item_action(new_item, item_ref, content_props, sub_props)
        new_item['action'] = action

    return new_item


def _build_items(menu: Dict[str, Any], menus: List[Dict[str, Any]],
                 sub_props: Dict[str, Any], visited: set) -> List[Dict[str, Any]]:
    check_props = sub_props['check_props']
    visited = visited | {menu.get('id')}
    items: List[Dict[str, Any]] = []
    for item in menu.get('items', []):
        if not _selector_passes(item, check_props):
            continue
        if not item.get('delegating'):
            items.append(adapt_item(item, sub_props))
            continue

        target = item.get('sub_menu')
        if target in visited:
            print(f"Warning: Menu '{target}' delegates back to itself; skipping")
            continue
        delegate = find_menu_by_id(menus, target)
        if delegate is None:
            print(f"Warning: Delegating item refers to unknown menu '{target}'")
            continue
        items.extend(_build_items(delegate, menus, sub_props, visited))
    return items


def get_menu_items(check_props: Optional[Dict[str, Any]], event: Optional[Dict[str, Any]],
                   menus: Optional[List[Dict[str, Any]]], refs: Any = None,
                   menu_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Build the item descriptors of the menu selected by the arguments.

    Delegating items splice in the items of their 'sub_menu' menu. Items whose
    selector rejects the check props are skipped.

    Args:
        check_props: Selection data used by selectors
        event: Triggering event
        menus: Menu definitions
        refs: Opaque references forwarded to items
        menu_id: Menu to show; None selects by check props

    Returns:
        List of item descriptors (empty when no menu matches)
    """
    check_props = check_props or {}
    menus = menus or []
    menu = find_menu(menus, check_props, menu_id)
    if menu is None:
        debug_log("context_menu_items_builder.py:get_menu_items", "no menu found",
                  {"menu_id": menu_id})
        return []

    sub_props = {'check_props': check_props, 'refs': refs, 'event': event}
    return _build_items(menu, menus, sub_props, set())


def make_tool_selector(*tool_names: str) -> Callable[[Dict[str, Any]], bool]:
    """Selector accepting only selections produced by one of the named tools."""
    allowed = set(tool_names)

    def selector(check_props: Dict[str, Any]) -> bool:
        return check_props.get('tool_name') in allowed
    return selector
