"""
Dialogue session - drives a conversation graph through a display context.

The session is purely reactive. It moves only when the context reports
"continue" or "option selected", and it answers synchronously by calling
back into the context and publishing on its own event bus.

States:
    IDLE     -> no active node yet
    IN_NODE  -> a node is active and its current line is on screen
    ENDED    -> the conversation is over (DIALOGUE_OVER has fired)
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from branchtalk.core.config import DialogueConfig
from branchtalk.core.events import Event, EventBus, ContextEvent, DialogueEvent
from branchtalk.dialog.context import DialogueContext
from branchtalk.dialog.graph import ConversationGraph
from branchtalk.dialog.line import DialogueLine
from branchtalk.dialog.node import ConversationNode


# Handlers receive the action's param string
ActionHandler = Callable[[str], None]


class SessionState(Enum):
    """Where a session is in its conversation."""
    IDLE = auto()
    IN_NODE = auto()
    ENDED = auto()


class DialogueSession:
    """
    Runs one conversation.

    Responsibilities:
    - Start nodes and step through their lines
    - Follow chosen options, ending on the end token
    - Multicast line actions to handlers registered per tag
    - Hold replacement text for the context to substitute

    Methods called directly raise on bad input (an empty node raises
    RuntimeError). Input that arrives through the context's event bus
    (press_continue, select_option) runs inside bus dispatch, where the
    error is logged with its traceback and not raised to the caller.

    Usage:
        session = DialogueSession(graph, context)
        session.register_action("shake", lambda param: camera.shake(float(param)))
        session.start_node("Intro")
        ...
        session.finish()
    """

    def __init__(
        self,
        graph: Optional[ConversationGraph],
        context: DialogueContext,
        config: Optional[DialogueConfig] = None,
    ):
        self.config = config or DialogueConfig()
        self.events = EventBus()
        self.logger = logging.getLogger(__name__)

        self._graph = graph
        self._context = context
        self._current_node: Optional[ConversationNode] = None
        self._state = SessionState.IDLE
        self._finished = False

        # Action tag -> handlers in registration order
        self._actions: dict[str, list[ActionHandler]] = {}
        self._replacements: dict[str, str] = {}

        # Wire up the context; its bus holds weak references back to us
        context.attach(self)
        context.events.subscribe(ContextEvent.CONTINUE_PRESSED, self._on_continue_pressed)
        context.events.subscribe(ContextEvent.OPTION_SELECTED, self._on_option_selected)
        context.events.subscribe(ContextEvent.ACTION_ENCOUNTERED, self._on_action_encountered)

    @classmethod
    def from_records(
        cls,
        records: Any,
        context: DialogueContext,
        config: Optional[DialogueConfig] = None,
        start_node: Optional[str] = None,
    ) -> DialogueSession:
        """Load raw node records and create a session over them."""
        session = cls(None, context, config)
        session.load_conversation(records, start_node)
        return session

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def graph(self) -> Optional[ConversationGraph]:
        return self._graph

    @property
    def context(self) -> DialogueContext:
        return self._context

    @property
    def current_node(self) -> Optional[ConversationNode]:
        return self._current_node

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def finished(self) -> bool:
        return self._finished

    def get_tag_values(self, key: str) -> tuple[str, ...]:
        """Tag values of the active node, empty if there is none."""
        if self._current_node is None:
            return ()
        return self._current_node.get_tag_values(key)

    # ------------------------------------------------------------------
    # Conversation flow
    # ------------------------------------------------------------------

    def load_conversation(self, records: Any, start_node: Optional[str] = None) -> None:
        """
        Replace the graph with one parsed from raw node records.

        Raises:
            ValueError: If records is not a list of node-shaped mappings
        """
        self._graph = ConversationGraph.load(
            records, case_sensitive=self.config.case_sensitive_titles
        )
        self._current_node = None
        self._state = SessionState.IDLE

        if start_node is not None:
            self.start_node(start_node)

    def start_node(self, title: str) -> bool:
        """
        Enter a node from its first line.

        Returns:
            False if the session is finished or the node does not exist;
            the active node is then left unchanged.

        Raises:
            RuntimeError: If the node has no dialogue lines
        """
        if self._finished:
            self.logger.warning(f"start_node('{title}') called on a finished session")
            return False

        node = self._graph.get(title) if self._graph is not None else None
        if node is None:
            self.logger.error(f"Can't find node '{title}'")
            return False

        node.reset()
        line = node.current_line()

        self._current_node = node
        self._state = SessionState.IN_NODE
        self.logger.info(f"Starting conversation node '{node.title}'")

        self._context.new_conversation_node(node)
        self.events.publish(DialogueEvent.NODE_ENTERED, node=node)
        self._display(line)
        return True

    def continue_pressed(self) -> None:
        """Show the next line, or end the conversation after the last one."""
        if not self._in_node("continue_pressed"):
            return

        node = self._current_node
        if node.has_next_line():
            self._display(node.advance())
        else:
            self._end()

    def option_selected(self, option_key: str, destination: str) -> None:
        """
        Follow an option to its destination node.

        The end token finishes the conversation without consulting the
        graph. Entering a node this way does not fire NODE_ENTERED.
        """
        if not self._in_node("option_selected"):
            return

        if destination == self.config.end_token:
            self._end()
            return

        node = self._graph.get(destination)
        if node is None:
            self.logger.error(
                f"'{destination}' (option '{option_key}') is not a conversation node "
                f"nor the end token."
            )
            return

        if self.config.reset_on_option:
            node.reset()
        line = node.current_line()

        self._current_node = node
        self._display(line)

    def _in_node(self, operation: str) -> bool:
        if self._finished or self._state is not SessionState.IN_NODE:
            self.logger.warning(f"{operation}() ignored while session is {self._state.name}")
            return False
        return True

    def _display(self, line: DialogueLine) -> None:
        self._context.display_dialogue(line)
        self.events.publish(DialogueEvent.LINE_DISPLAYED, line=line)

        if self.config.dispatch_actions_on_display:
            self.dispatch_actions(line)

    def _end(self) -> None:
        self._state = SessionState.ENDED
        self.logger.info("Conversation over")
        self._context.conversation_over()
        self.events.publish(DialogueEvent.DIALOGUE_OVER)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def register_action(self, tag: str, handler: ActionHandler) -> None:
        """
        Register a handler for an action tag.

        Several handlers may share a tag; all of them run, in registration
        order. Registering the same handler twice for a tag has no effect.
        Handlers are compared by equality, so `obj.method` matches itself
        across separate attribute lookups.
        """
        handlers = self._actions.setdefault(tag, [])
        if handler in handlers:
            self.logger.debug(f"Handler already registered for action '{tag}'")
            return
        handlers.append(handler)

    def remove_action(self, tag: str, handler: ActionHandler) -> None:
        handlers = self._actions.get(tag)
        if not handlers or handler not in handlers:
            return

        handlers.remove(handler)
        if not handlers:
            del self._actions[tag]

    def get_action_handlers(self, tag: str) -> tuple[ActionHandler, ...]:
        return tuple(self._actions.get(tag, ()))

    def handle_action(self, tag: str, param: str = "") -> None:
        """Invoke every handler registered for tag; unknown tags are ignored."""
        for handler in list(self._actions.get(tag, ())):
            handler(param)

    def dispatch_actions(self, line: DialogueLine) -> None:
        """Run the handlers for every action on a line, in line order."""
        for tag, param in line.actions:
            self.handle_action(tag, param)

    # ------------------------------------------------------------------
    # Replacement text
    # ------------------------------------------------------------------

    @property
    def replacements(self) -> Mapping[str, str]:
        return MappingProxyType(self._replacements)

    def register_replacement(self, key: str, text: str) -> None:
        """Store text for the context to substitute in place of {key}."""
        self._replacements[key] = text

    def remove_replacement(self, key: str) -> None:
        self._replacements.pop(key, None)

    # ------------------------------------------------------------------
    # Context events
    # ------------------------------------------------------------------

    def _on_continue_pressed(self, event: Event) -> None:
        self.continue_pressed()

    def _on_option_selected(self, event: Event) -> None:
        self.option_selected(event.get("key", ""), event.get("destination", ""))

    def _on_action_encountered(self, event: Event) -> None:
        self.handle_action(event.get("tag", ""), event.get("param", ""))

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    def finish(self, on_complete: Optional[Callable[[], None]] = None) -> None:
        """
        Tear the session down.

        Unhooks the context, clears registered actions and asks the context
        to close. CONTEXT_CLOSED is published and on_complete is called once
        the context reports it has closed.
        """
        if self._finished:
            self.logger.warning("finish() called on an already finished session")
            return
        self._finished = True

        events = self._context.events
        events.unsubscribe(ContextEvent.CONTINUE_PRESSED, self._on_continue_pressed)
        events.unsubscribe(ContextEvent.OPTION_SELECTED, self._on_option_selected)
        events.unsubscribe(ContextEvent.ACTION_ENCOUNTERED, self._on_action_encountered)

        self._actions.clear()

        def context_closed() -> None:
            if self._context.session is self:
                self._context.detach()
            self.events.publish(DialogueEvent.CONTEXT_CLOSED)
            if on_complete:
                on_complete()

        self._context.close_context(context_closed)

    def __str__(self) -> str:
        if self._graph is None:
            return "[DialogueSession] - no conversation loaded"
        return f"[DialogueSession] state={self._state.name}\n{self._graph}"
