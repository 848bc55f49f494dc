"""
Dialogue contexts - the display boundary a session talks to.

A context renders lines and options however the host likes, and reports
player input back to the session through its event bus.
"""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, TextIO
from weakref import ref

from branchtalk.core.events import EventBus, ContextEvent
from branchtalk.dialog.grammar import apply_replacements

if TYPE_CHECKING:
    from branchtalk.dialog.line import DialogueLine
    from branchtalk.dialog.node import ConversationNode
    from branchtalk.dialog.session import DialogueSession


class DialogueContext(ABC):
    """
    Base class for anything that can display a conversation.

    Subclasses implement title, new_conversation_node() and
    display_dialogue(). Input is reported with press_continue(),
    select_option() and encounter_action().
    """

    def __init__(self):
        self.events = EventBus()
        self.is_open = False
        self._session_ref: Optional[ref] = None
        self.logger = logging.getLogger(__name__)

    @property
    @abstractmethod
    def title(self) -> str:
        """Name the dialogue manager registers this context under."""

    @abstractmethod
    def new_conversation_node(self, node: ConversationNode) -> None:
        """Called when a session starts a node; speakers may have changed."""

    @abstractmethod
    def display_dialogue(self, line: DialogueLine) -> None:
        """Show a line of dialogue and its options."""

    def conversation_over(self) -> None:
        """Called when the conversation ends; the context stays open until closed."""

    def initialize_context(self, data: Any = None) -> None:
        """Open and set up this context."""
        self.is_open = True

    def close_context(self, on_closed: Optional[Callable[[], None]] = None) -> None:
        """Close this context, then call on_closed."""
        self.is_open = False
        if on_closed:
            on_closed()

    def supports_images(self) -> bool:
        return False

    def options_display_count(self) -> int:
        """Number of options this context can show, -1 if unlimited."""
        return -1

    # ------------------------------------------------------------------
    # Session wiring
    # ------------------------------------------------------------------

    def attach(self, session: DialogueSession) -> None:
        self._session_ref = ref(session)

    def detach(self) -> None:
        self._session_ref = None

    @property
    def session(self) -> Optional[DialogueSession]:
        if self._session_ref is None:
            return None
        return self._session_ref()

    @property
    def replacements(self) -> Mapping[str, str]:
        session = self.session
        return session.replacements if session else {}

    def apply_replacement_dialogue(self, text: str) -> str:
        """Substitute the session's {key} replacement text into text."""
        return apply_replacements(text, self.replacements)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def press_continue(self) -> None:
        self.events.publish(ContextEvent.CONTINUE_PRESSED)

    def select_option(self, key: str, destination: str) -> None:
        self.events.publish(ContextEvent.OPTION_SELECTED, key=key, destination=destination)

    def encounter_action(self, tag: str, param: str = "") -> None:
        self.events.publish(ContextEvent.ACTION_ENCOUNTERED, tag=tag, param=param)

    def encounter_actions(self, line: DialogueLine) -> None:
        """Report every action on a line, in order."""
        for tag, param in line.actions:
            self.encounter_action(tag, param)


class ConsoleDialogueContext(DialogueContext):
    """
    Plain text context that writes dialogue to a stream.

    Options are numbered from 1; call choose() with the player's number.
    """

    def __init__(self, title: str = "console", stream: Optional[TextIO] = None):
        super().__init__()
        self._title = title
        self.stream = stream or sys.stdout
        self.current_line: Optional[DialogueLine] = None

    @property
    def title(self) -> str:
        return self._title

    def _write(self, text: str) -> None:
        self.stream.write(text + "\n")

    def new_conversation_node(self, node: ConversationNode) -> None:
        self._write(f"--- {node.title} ---")

    def display_dialogue(self, line: DialogueLine) -> None:
        self.current_line = line

        text = self.apply_replacement_dialogue(line.text)
        if text:
            self._write(f"{line.speaker}: {text}" if line.speaker else text)

        for number, (key, _) in enumerate(line.options, start=1):
            self._write(f"  {number}) {self.apply_replacement_dialogue(key)}")

    def conversation_over(self) -> None:
        self.current_line = None

    def choose(self, number: int) -> bool:
        """
        Select the numbered option of the current line.

        Returns:
            False if there is no such option
        """
        if not self.current_line or not 1 <= number <= len(self.current_line.options):
            self.logger.warning(f"No option {number} on the current line")
            return False

        key, destination = self.current_line.options[number - 1]
        self.select_option(key, destination)
        return True

    def close_context(self, on_closed: Optional[Callable[[], None]] = None) -> None:
        self._write("--- end ---")
        self.current_line = None
        super().close_context(on_closed)
