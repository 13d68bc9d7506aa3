"""
Keyboard Event Handler

This module handles keyboard shortcuts by running the named command bound to
the pressed key, so hotkeys and context menu items trigger the same actions.

Inputs:
    - Keyboard events
    - Hotkey bindings: [{'keys', 'command_name', 'command_options', 'context'}]

Outputs:
    - Commands run through the commands manager

Requirements:
    - PySide6 for Qt events and key sequences
    - core.commands_manager for dispatch
"""

from typing import Any, Dict, List, Optional

from PySide6.QtCore import QKeyCombination, Qt
from PySide6.QtGui import QKeyEvent, QKeySequence

from core.commands_manager import CommandNotFoundError, CommandsManager


class KeyboardEventHandler:
    """
    Handles keyboard shortcuts and events.

    Responsibilities:
    - Parse hotkey bindings into key combinations
    - Run the bound command on key press
    - Leave unbound keys to Qt
    """

    def __init__(self, commands_manager: CommandsManager,
                 hotkey_bindings: Optional[List[Dict[str, Any]]] = None):
        """
        Initialize the keyboard event handler.

        Args:
            commands_manager: Commands manager used to run bound commands
            hotkey_bindings: Binding dicts (see ConfigManager.get_hotkey_bindings)
        """
        self.commands_manager = commands_manager
        self.bindings: Dict[int, Dict[str, Any]] = {}
        self.set_hotkey_bindings(hotkey_bindings or [])

    def set_hotkey_bindings(self, hotkey_bindings: List[Dict[str, Any]]) -> None:
        """
        Replace the hotkey bindings.

        Bindings whose key sequence cannot be parsed are skipped with a warning.

        Args:
            hotkey_bindings: Binding dicts
        """
        self.bindings = {}
        for binding in hotkey_bindings:
            sequence = QKeySequence(binding.get('keys', ''))
            if sequence.isEmpty():
                print(f"Warning: Could not parse hotkey {binding.get('keys')!r} "
                      f"for command {binding.get('command_name')!r}")
                continue
            # Only the first chord of a sequence is used
            self.bindings[sequence[0].toCombined()] = binding

    def _find_binding(self, event: QKeyEvent) -> Optional[Dict[str, Any]]:
        try:
            key = Qt.Key(event.key())
        except ValueError:
            return None
        # Keypad flag would make keypad '+'/'-' miss the bindings
        modifiers = event.modifiers() & ~Qt.KeyboardModifier.KeypadModifier
        binding = self.bindings.get(QKeyCombination(modifiers, key).toCombined())
        if binding is None and modifiers & Qt.KeyboardModifier.ShiftModifier:
            # Shifted symbols such as '+' arrive with Shift held
            unshifted = modifiers & ~Qt.KeyboardModifier.ShiftModifier
            binding = self.bindings.get(QKeyCombination(unshifted, key).toCombined())
        return binding

    def handle_key_event(self, event: QKeyEvent) -> bool:
        """
        Handle key event.

        Args:
            event: Key event

        Returns:
            True if event was handled, False otherwise
        """
        if event.type() != QKeyEvent.Type.KeyPress:
            return False

        binding = self._find_binding(event)
        if binding is None:
            return False

        try:
            self.commands_manager.run_command(
                binding['command_name'],
                dict(binding.get('command_options') or {}),
                binding.get('context'),
            )
        except CommandNotFoundError as e:
            print(f"Warning: Hotkey {binding.get('keys')!r}: {e}")
            return False
        return True
