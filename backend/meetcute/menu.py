"""Interactive console editor for the env file.

A small state machine over an in-memory configuration map. Every action
works on the map only; nothing reaches disk until the operator picks
``s`` (save and exit). ``q`` discards the session's changes.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from meetcute import env_store
from meetcute.config import mask_value
from meetcute.console import ConsoleSession
from meetcute.env_store import ConfigMap
from meetcute.validation import validate

logger = logging.getLogger(__name__)


class MenuState(str, Enum):
    LISTING = "listing"
    EDITING = "editing"
    REMOVING = "removing"
    IMPORTING = "importing"
    VALIDATING = "validating"
    REVEALING_SENSITIVE = "revealing_sensitive"
    CONFIRM_EXIT = "confirm_exit"


MENU_OPTIONS: list[tuple[str, str, MenuState]] = [
    ("1", "List all variables", MenuState.LISTING),
    ("2", "Add/Update variable", MenuState.EDITING),
    ("3", "Remove variable", MenuState.REMOVING),
    ("4", "Import from .env.example", MenuState.IMPORTING),
    ("5", "Validate configuration", MenuState.VALIDATING),
    ("6", "Show sensitive values", MenuState.REVEALING_SENSITIVE),
    ("s", "Save and exit", MenuState.CONFIRM_EXIT),
    ("q", "Exit without saving", MenuState.CONFIRM_EXIT),
]


def dispatch(choice: str) -> tuple[Optional[MenuState], bool]:
    """Map one line of input to (next state, save flag). Unknown input maps to None."""
    for key, _, state in MENU_OPTIONS:
        if choice == key:
            return state, key == "s"
    return None, False


class InteractiveMenu:
    def __init__(
        self,
        env: ConfigMap,
        session: ConsoleSession,
        env_path: Path,
        template_path: Path,
    ):
        self.env = env
        self.session = session
        self.env_path = Path(env_path)
        self.template_path = Path(template_path)
        self.state = MenuState.LISTING
        self._actions = {
            MenuState.LISTING: self.list_variables,
            MenuState.EDITING: self.update_variable,
            MenuState.REMOVING: self.remove_variable,
            MenuState.IMPORTING: self.import_from_template,
            MenuState.VALIDATING: self.validate_config,
            MenuState.REVEALING_SENSITIVE: self.show_sensitive_values,
        }

    def render(self) -> None:
        self.session.print("\n" + "=" * 60)
        self.session.print(" Environment Variables Manager")
        self.session.print("=" * 60)
        for key, name, _ in MENU_OPTIONS:
            self.session.print(f"  {key}. {name}")

    def step(self) -> Optional[bool]:
        """Render, read one choice and run it. Returns the save flag once exit is chosen."""
        self.render()
        choice = self.session.ask("\nEnter your choice")
        if self.session.input_closed:
            self.session.warn("Input closed; exiting without saving")
            self.state = MenuState.CONFIRM_EXIT
            return False
        state, save = dispatch(choice)
        if state is None:
            self.session.warn("Invalid choice. Please try again.")
            return None
        if state is MenuState.CONFIRM_EXIT:
            self.state = state
            return save

        self.state = state
        self._actions[state]()
        self.state = MenuState.LISTING
        return None

    def run(self) -> bool:
        """Loop until the operator exits. Returns False only if a requested save failed."""
        save = None
        while save is None:
            save = self.step()

        if not save:
            logger.info("Discarding in-memory changes to %s", self.env_path)
            return True
        try:
            env_store.save(self.env_path, self.env)
        except OSError as e:
            self.session.error(f"Failed to save {self.env_path}: {e}")
            return False
        self.session.success(f"Environment variables saved to {self.env_path}")
        return True

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def list_variables(self) -> None:
        self.session.print("\nCurrent environment variables:")
        self.session.print("-" * 59)
        if not self.env:
            self.session.print("  No environment variables set.")
            return
        for key, value in self.env.items():
            self.session.print(f"  {key}={mask_value(key, value)}")

    def update_variable(self) -> None:
        key = self.session.ask("Enter variable name")
        if not key:
            self.session.warn("Variable name cannot be empty")
            return
        value = self.session.ask(f"Enter value for {key}", self.env.get(key, ""))
        if value == "":
            # Variables are never set to empty through the menu; remove them instead.
            self.session.warn("Value cannot be empty")
            return
        self.env[key] = value
        self.session.success(f"Updated {key}")

    def remove_variable(self) -> None:
        key = self.session.ask("Enter variable name to remove")
        if not key:
            self.session.warn("Variable name cannot be empty")
            return
        if key in self.env:
            del self.env[key]
            self.session.success(f"Removed {key}")
        else:
            self.session.warn(f"Variable {key} not found")

    def import_from_template(self) -> None:
        if not self.template_path.exists():
            self.session.error(f"{self.template_path} not found")
            return
        try:
            template = env_store.load(self.template_path)
        except OSError as e:
            self.session.error(f"Failed to import from {self.template_path}: {e}")
            return
        imported = env_store.merge_missing(self.env, template)
        if imported:
            self.session.success(f"Imported {imported} variables from {self.template_path}")
        else:
            self.session.info("No new variables to import")

    def validate_config(self) -> bool:
        self.session.info("Validating configuration...")
        result = validate(self.env)
        if result.valid:
            self.session.success("Configuration is valid!")
        else:
            self.session.error("Missing required configuration:")
            for key in result.missing:
                self.session.print(f"  - {key}")
            self.session.warn("Please set these variables before starting the application")
        return result.valid

    def show_sensitive_values(self) -> None:
        self.session.print("\nCurrent environment variables (including sensitive values):")
        self.session.print("-" * 79)
        if not self.env:
            self.session.print("  No environment variables set.")
            return
        for key, value in self.env.items():
            self.session.print(f"  {key}={value}")
