"""
Dialogue line - one unit of displayable text with its options and actions.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class DialogueLine:
    """
    A single parsed line of dialogue.

    Attributes:
        speaker: Speaker identifier, empty if the line has none
        text: Display text; the display context may rewrite it at runtime
        options: (option key, destination title or end token) pairs
        actions: (action tag, action param) pairs
    """
    speaker: str = ""
    text: str = ""
    options: list[tuple[str, str]] = field(default_factory=list)
    actions: list[tuple[str, str]] = field(default_factory=list)

    @property
    def has_choices(self) -> bool:
        return len(self.options) > 0

    @property
    def choices_only(self) -> bool:
        """True for a line made of an options block and no text."""
        return not self.text and self.has_choices

    @property
    def has_actions(self) -> bool:
        return len(self.actions) > 0

    def add_option(self, key: str, destination: str) -> None:
        self.options.append((key, destination))

    def remove_option(self, key: str) -> None:
        """Remove every option with the given key."""
        self.options = [option for option in self.options if option[0] != key]

    def add_action(self, tag: str, param: str = "") -> None:
        self.actions.append((tag, param))

    def remove_action(self, tag: str) -> None:
        """Remove every action with the given tag."""
        self.actions = [action for action in self.actions if action[0] != tag]

    def __str__(self) -> str:
        return (
            f"[DialogueLine: speaker={self.speaker}, text={self.text}, "
            f"choices={self.has_choices}, actions={len(self.actions)}]"
        )
