"""
Conversation graph - every node of a conversation file, keyed by title.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator, Optional

import jsonschema

from branchtalk.dialog.node import ConversationNode


# Shape of an already-decoded conversation file
CONVERSATION_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "title": {"type": ["string", "null"]},
            "tags": {"type": ["string", "null"]},
            "body": {"type": ["string", "null"]},
        },
    },
}


class ConversationGraph:
    """
    Title-keyed mapping of conversation nodes.

    Usage:
        graph = ConversationGraph.load([
            {"title": "Intro", "tags": "", "body": "Eve: Hi | options([[Bye|END]])"},
        ])
        node = graph.get("Intro")
    """

    def __init__(self, case_sensitive: bool = True):
        self.case_sensitive = case_sensitive
        self._nodes: dict[str, ConversationNode] = {}
        self.logger = logging.getLogger(__name__)

    @classmethod
    def load(cls, records: Any, case_sensitive: bool = True) -> ConversationGraph:
        """
        Build a graph from a decoded list of {title, tags, body} records.

        Missing fields count as empty strings.

        Raises:
            ValueError: If records is not a list of node-shaped mappings
        """
        if isinstance(records, tuple):
            records = list(records)

        try:
            jsonschema.validate(instance=records, schema=CONVERSATION_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ValueError(f"Invalid conversation data: {e.message}") from e

        graph = cls(case_sensitive=case_sensitive)
        for record in records:
            graph.add(ConversationNode.from_record(record))

        graph.logger.info(f"Loaded conversation with {len(graph)} nodes.")
        return graph

    @classmethod
    def from_json(cls, text: str, case_sensitive: bool = True) -> ConversationGraph:
        """Build a graph from serialized JSON text."""
        try:
            records = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Conversation is not valid JSON: {e}") from e
        return cls.load(records, case_sensitive=case_sensitive)

    def _key(self, title: str) -> str:
        return title if self.case_sensitive else title.casefold()

    def add(self, node: ConversationNode) -> None:
        """Insert a node; a node with the same title replaces the old one."""
        key = self._key(node.title)
        if key in self._nodes:
            self.logger.warning(f"Duplicate conversation node '{node.title}'; replacing earlier node.")
        if not len(node):
            self.logger.warning(f"Conversation node '{node.title}' has no dialogue lines.")
        self._nodes[key] = node

    def get(self, title: str) -> Optional[ConversationNode]:
        """Get a node by title, or None."""
        return self._nodes.get(self._key(title))

    @property
    def titles(self) -> list[str]:
        return [node.title for node in self._nodes.values()]

    @property
    def nodes(self) -> list[ConversationNode]:
        return list(self._nodes.values())

    def clone(self) -> ConversationGraph:
        """Copy of the graph whose nodes have independent cursors."""
        graph = ConversationGraph(case_sensitive=self.case_sensitive)
        for key, node in self._nodes.items():
            graph._nodes[key] = node.clone()
        return graph

    def __contains__(self, title: object) -> bool:
        return isinstance(title, str) and self._key(title) in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[str]:
        return iter(self.titles)

    def __str__(self) -> str:
        return "[ConversationGraph] - Nodes:\n" + "\n".join(self.titles)
