"""
Commands Manager

This module implements the name-keyed command registry used by the context
menu, hotkeys and any other caller that triggers a viewer action by name.

Each registered command carries a handler, default ("bound") options and an
optional context tag. Invoking a command merges the bound options with the
caller's options (caller wins) and calls the handler with the merged dict as
its only argument. The handler's return value is passed back, since some
commands are queries used by other commands.

Inputs:
    - register(name, handler, bound_options, context) calls
    - invoke(name, options, context) / run_command(...) calls

Outputs:
    - Handler return values
    - CommandNotFoundError for unregistered names

Requirements:
    - Standard library only
    - utils.debug_log for optional tracing
"""

from typing import Any, Callable, Dict, List, Optional

from utils.debug_log import debug_log


class CommandNotFoundError(KeyError):
    """Raised when a command name has not been registered in any context."""

    def __init__(self, command_name: str):
        super().__init__(command_name)
        self.command_name = command_name

    def __str__(self) -> str:
        return f"Command '{self.command_name}' is not registered"


class CommandEntry:
    """
    One registered command variant.

    Attributes:
        name: Command name
        handler: Callable taking the merged options dict
        bound_options: Defaults merged under caller options
        context: Context tag, or None for a command usable from any context
    """

    def __init__(self, name: str, handler: Callable[[Dict[str, Any]], Any],
                 bound_options: Optional[Dict[str, Any]] = None,
                 context: Optional[str] = None):
        self.name = name
        self.handler = handler
        self.bound_options = dict(bound_options or {})
        self.context = context

    def __repr__(self) -> str:
        return f"CommandEntry(name={self.name!r}, context={self.context!r})"


class CommandsManager:
    """
    Registry and dispatcher of named commands.

    Features:
    - Register the same name under several context tags
    - Merge bound default options with caller options (caller wins)
    - Active contexts select the variant when the caller gives no context
    - Unknown names raise CommandNotFoundError; handler exceptions propagate
    """

    def __init__(self):
        """Initialize an empty registry."""
        # name -> {context: CommandEntry}; insertion order is registration order
        self.commands: Dict[str, Dict[Optional[str], CommandEntry]] = {}
        self.active_contexts: List[str] = []

    def register(self, name: str, handler: Callable[[Dict[str, Any]], Any],
                 bound_options: Optional[Dict[str, Any]] = None,
                 context: Optional[str] = None) -> CommandEntry:
        """
        Register a command handler.

        Registering the same name and context again replaces the earlier entry.

        Args:
            name: Command name
            handler: Callable receiving the merged options dict
            bound_options: Default options for this command
            context: Optional context tag restricting where the command applies

        Returns:
            The created CommandEntry
        """
        if not name:
            raise ValueError("Command name must be a non-empty string")
        if not callable(handler):
            raise TypeError(f"Handler for command '{name}' is not callable")

        entry = CommandEntry(name, handler, bound_options, context)
        self.commands.setdefault(name, {})[context] = entry
        return entry

    def unregister(self, name: str, context: Optional[str] = None) -> bool:
        """
        Remove a command variant.

        Returns:
            True if an entry was removed
        """
        variants = self.commands.get(name)
        if not variants or context not in variants:
            return False
        del variants[context]
        if not variants:
            del self.commands[name]
        return True

    def clear_context(self, context: str) -> None:
        """Remove every command registered under a context tag."""
        for name in list(self.commands.keys()):
            self.unregister(name, context)

    def set_active_contexts(self, contexts: List[str]) -> None:
        """
        Set the contexts used to pick a variant when the caller gives none.

        Later entries in the list take precedence over earlier ones.
        """
        self.active_contexts = list(contexts)

    def get_active_contexts(self) -> List[str]:
        """Get the active contexts, lowest precedence first."""
        return list(self.active_contexts)

    def has_command(self, name: str) -> bool:
        """Check whether a command name is registered in any context."""
        return name in self.commands

    def get_command(self, name: str, context: Optional[str] = None) -> Optional[CommandEntry]:
        """
        Find the command variant to run.

        With a context: the entry tagged with that context, else an untagged
        entry, else None (context mismatch). Without a context: the entry of
        the most recently activated context, else an untagged entry, else the
        first registered variant.

        Args:
            name: Command name
            context: Caller context, or None

        Returns:
            CommandEntry or None on context mismatch

        Raises:
            CommandNotFoundError: If the name is not registered at all
        """
        variants = self.commands.get(name)
        if not variants:
            raise CommandNotFoundError(name)

        if context is not None:
            if context in variants:
                return variants[context]
            return variants.get(None)

        for active_context in reversed(self.active_contexts):
            if active_context in variants:
                return variants[active_context]
        if None in variants:
            return variants[None]
        return next(iter(variants.values()))

    def invoke(self, name: str, options: Optional[Dict[str, Any]] = None,
               context: Optional[str] = None) -> Any:
        """
        Run a command.

        Args:
            name: Command name
            options: Caller options, merged over the bound options
            context: Caller context; a command registered only under other
                     contexts is not run

        Returns:
            The handler's return value, or None when the context did not match

        Raises:
            CommandNotFoundError: If the name is not registered
            Exception: Whatever the handler raises
        """
        entry = self.get_command(name, context)
        if entry is None:
            print(f"Warning: Command '{name}' is not available in context '{context}'")
            debug_log("commands_manager.py:invoke", "context mismatch",
                      {"command": name, "context": context,
                       "registered_contexts": list(self.commands[name].keys())})
            return None

        merged_options = dict(entry.bound_options)
        merged_options.update(options or {})
        debug_log("commands_manager.py:invoke", "run command",
                  {"command": name, "context": entry.context,
                   "option_keys": sorted(merged_options.keys())})
        return entry.handler(merged_options)

    def run_command(self, name: str, options: Optional[Dict[str, Any]] = None,
                    context: Optional[str] = None) -> Any:
        """Command-execution-host entry point; same semantics as invoke()."""
        return self.invoke(name, options, context)
