"""
Dialogue manager - owns display contexts and loaded conversations, and
starts sessions that pair the two.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from branchtalk.core.config import DialogueConfig
from branchtalk.dialog.context import DialogueContext
from branchtalk.dialog.graph import ConversationGraph
from branchtalk.dialog.session import DialogueSession


class DialogueManager:
    """
    Registry of contexts and conversations.

    Handles:
    - Registering display contexts by title
    - Loading conversation files into cached graphs
    - Starting sessions (each on its own copy of the graph)
    - Finishing every running session

    Usage:
        manager = DialogueManager()
        manager.register_context(ConsoleDialogueContext("console"))
        manager.load_directory("game/data/dialogue")
        session = manager.start_conversation("tavern", "console", "Intro")
    """

    def __init__(self, config: Optional[DialogueConfig] = None):
        self.config = config or DialogueConfig()
        self._contexts: dict[str, DialogueContext] = {}
        self._conversations: dict[str, ConversationGraph] = {}
        # Context title -> session currently attached to it
        self._sessions: dict[str, DialogueSession] = {}
        self.logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Contexts
    # ------------------------------------------------------------------

    def register_context(self, context: DialogueContext) -> None:
        if context.title in self._contexts:
            self.logger.warning(f"Replacing dialogue context '{context.title}'")
        self._contexts[context.title] = context

    def get_context(self, title: str) -> Optional[DialogueContext]:
        return self._contexts.get(title)

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def add_conversation(self, conversation_id: str, records: Any) -> ConversationGraph:
        """
        Parse and cache a conversation.

        Raises:
            ValueError: If records is not a list of node-shaped mappings
        """
        graph = ConversationGraph.load(
            records, case_sensitive=self.config.case_sensitive_titles
        )
        self._conversations[conversation_id] = graph
        return graph

    def get_conversation(self, conversation_id: str) -> Optional[ConversationGraph]:
        return self._conversations.get(conversation_id)

    @property
    def conversation_ids(self) -> list[str]:
        return list(self._conversations)

    def load_directory(self, path: str | Path) -> int:
        """
        Load every *.json conversation file in a directory.

        The file stem becomes the conversation id. Files that fail to
        load are logged and skipped.

        Returns:
            Number of conversations loaded
        """
        directory = Path(path)
        if not directory.exists():
            self.logger.warning(f"Dialogue directory not found: {directory}")
            return 0

        count = 0
        for file_path in sorted(directory.glob("*.json")):
            try:
                with open(file_path, 'r', encoding='utf-8') as f:
                    records = json.load(f)
                self.add_conversation(file_path.stem, records)
                count += 1
            except (OSError, ValueError) as e:
                self.logger.error(f"Failed to load {file_path}: {e}")

        self.logger.info(f"Loaded {count} conversations from {directory}")
        return count

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def start_conversation(
        self,
        conversation_id: str,
        context_title: str,
        start_node: Optional[str] = None,
        init_data: Any = None,
    ) -> Optional[DialogueSession]:
        """
        Open a context and start a session on a cached conversation.

        A session still attached to the same context is finished first, so
        a context never feeds input to two sessions.

        Returns:
            The new session, or None if the conversation or context is unknown
        """
        graph = self._conversations.get(conversation_id)
        if graph is None:
            self.logger.error(f"Conversation not found: {conversation_id}")
            return None

        context = self._contexts.get(context_title)
        if context is None:
            self.logger.error(f"Dialogue context not found: {context_title}")
            return None

        previous = self._sessions.pop(context_title, None)
        if previous is not None and not previous.finished:
            self.logger.info(f"Finishing previous session on context '{context_title}'")
            previous.finish()

        context.initialize_context(init_data)
        session = DialogueSession(graph.clone(), context, self.config)
        self._sessions[context_title] = session

        if start_node is not None:
            session.start_node(start_node)
        return session

    @property
    def active_sessions(self) -> list[DialogueSession]:
        self._sessions = {
            title: s for title, s in self._sessions.items() if not s.finished
        }
        return list(self._sessions.values())

    def end_all(self) -> None:
        """Finish every session that is still running."""
        for session in self.active_sessions:
            session.finish()
        self._sessions.clear()
