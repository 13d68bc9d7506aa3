"""
Default Context Menu

Menu customizations shown by the showViewerContextMenu command. Each
customization carries the menus given to the items builder; the measurement
menu is used when no other customization is registered for a menu name.

Requirements:
    - core.context_menu_items_builder for the action type names
"""

from typing import Any, Dict

from core.context_menu_items_builder import ACTION_TYPE_SUB_MENU


DEFAULT_CONTEXT_MENU: Dict[str, Any] = {
    'id': 'measurementsContextMenu',
    'customization_type': 'viewer.contextMenu',
    'menus': [
        {
            'id': 'forExistingMeasurement',
            # Only show when a measurement is under the pointer or selected
            'selector': lambda check_props: bool(check_props.get('nearby_tool_data')),
            'items': [
                {
                    'label': 'Delete measurement',
                    'action_type': 'RunCommands',
                    'commands': [{'command_name': 'deleteMeasurement'}],
                },
                {
                    'label': 'Add Label',
                    'action_type': 'RunCommands',
                    'commands': [{'command_name': 'setMeasurementLabel'}],
                },
                {
                    'label': 'Finding',
                    'action_type': ACTION_TYPE_SUB_MENU,
                    'sub_menu': 'findingsMenu',
                },
            ],
        },
        {
            'id': 'findingsMenu',
            'selector': lambda check_props: bool(check_props.get('nearby_tool_data')),
            'items': [
                {
                    'label': 'Lesion',
                    'action_type': 'RunCommands',
                    'commands': [{
                        'command_name': 'setFinding',
                        'command_options': {'code': {'ref': 'SCT:52988006', 'text': 'Lesion'}},
                    }],
                },
                {
                    'label': 'Cyst',
                    'action_type': 'RunCommands',
                    'commands': [{
                        'command_name': 'setFinding',
                        'command_options': {'code': {'ref': 'SCT:441457006', 'text': 'Cyst'}},
                    }],
                },
            ],
        },
    ],
}
