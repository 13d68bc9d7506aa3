"""
Context Menu Setup

This module wires the saved configuration into the context menu controller
and the keyboard handler, so a host window only needs to supply its dialog
service and menu widget factory.

Inputs:
    - ConfigManager with context menu and hotkey settings
    - Commands manager and dialog service

Outputs:
    - ContextMenuController and KeyboardEventHandler configured from settings

Requirements:
    - core.context_menu_controller, gui.keyboard_event_handler, utils.config_manager
"""

from typing import Any, Optional, Tuple

from core.commands_manager import CommandsManager
from core.context_menu_controller import ContextMenuController
from gui.keyboard_event_handler import KeyboardEventHandler
from utils.config_manager import ConfigManager


def create_context_menu_controller(config_manager: ConfigManager,
                                   commands_manager: CommandsManager,
                                   dialog_service: Any,
                                   menu_content: Any = None) -> ContextMenuController:
    """Controller honouring the configured cut-off preference."""
    return ContextMenuController(
        dialog_service,
        commands_manager,
        menu_content=menu_content,
        prevent_cut_off=config_manager.get_context_menu_prevent_cut_off(),
    )


def create_keyboard_handler(config_manager: ConfigManager,
                            commands_manager: CommandsManager) -> KeyboardEventHandler:
    """Keyboard handler bound to the configured hotkeys."""
    return KeyboardEventHandler(commands_manager, config_manager.get_hotkey_bindings())


def setup_context_menu(config_manager: ConfigManager,
                       dialog_service: Any,
                       menu_content: Any = None,
                       commands_manager: Optional[CommandsManager] = None
                       ) -> Tuple[CommandsManager, ContextMenuController, KeyboardEventHandler]:
    """
    Build the commands manager, context menu controller and keyboard handler.

    Args:
        config_manager: Source of the cut-off flag and hotkey bindings
        dialog_service: Presentation backend for the menu
        menu_content: Menu widget factory passed to the dialog service
        commands_manager: Existing registry to share; a new one is created if None

    Returns:
        Tuple of (commands_manager, controller, keyboard_handler)
    """
    if commands_manager is None:
        commands_manager = CommandsManager()
    controller = create_context_menu_controller(
        config_manager, commands_manager, dialog_service, menu_content
    )
    keyboard_handler = create_keyboard_handler(config_manager, commands_manager)
    return commands_manager, controller, keyboard_handler
