"""
Conversation node - one titled block of dialogue with a traversal cursor.
"""

from __future__ import annotations

import copy
import logging
from types import MappingProxyType
from typing import Any, Mapping, Optional

from branchtalk.dialog.grammar import parse_body, parse_tags
from branchtalk.dialog.line import DialogueLine


TITLE_KEY = "title"
TAGS_KEY = "tags"
BODY_KEY = "body"


class ConversationNode:
    """
    An ordered sequence of dialogue lines addressed by a unique title.

    The node owns a single cursor into its lines. A session resets the
    cursor every time it enters the node through start_node().

    Usage:
        node = ConversationNode.from_record({"title": "Intro", "body": "Eve: Hi"})
        line = node.current_line()
        while node.has_next_line():
            line = node.advance()
    """

    def __init__(
        self,
        title: str,
        lines: Optional[list[DialogueLine]] = None,
        tags: Optional[Mapping[str, tuple[str, ...]]] = None,
    ):
        self.title = title
        self._lines: list[DialogueLine] = list(lines or [])
        self._tags = MappingProxyType(dict(tags or {}))
        self._cursor = 0
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> ConversationNode:
        """Build a node from a raw {title, tags, body} record."""
        title = record.get(TITLE_KEY) or ""
        return cls(
            title=title,
            lines=parse_body(record.get(BODY_KEY) or "", title),
            tags=parse_tags(record.get(TAGS_KEY) or "", title),
        )

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    @property
    def lines(self) -> tuple[DialogueLine, ...]:
        return tuple(self._lines)

    @property
    def tags(self) -> Mapping[str, tuple[str, ...]]:
        return self._tags

    @property
    def cursor(self) -> int:
        return self._cursor

    def get_tag_values(self, key: str) -> tuple[str, ...]:
        """Values for a tag key, or an empty tuple if the node lacks it."""
        if key not in self._tags:
            self.logger.debug(f"No tag key matching '{key}' found in node '{self.title}'")
            return ()
        return self._tags[key]

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Point the cursor back at the first line."""
        self._cursor = 0

    def current_line(self) -> DialogueLine:
        """
        Get the line under the cursor without moving it.

        Raises:
            RuntimeError: If the node has no lines
            IndexError: If the cursor has run past the last line
        """
        if not self._lines:
            raise RuntimeError(f"Conversation node '{self.title}' has no dialogue lines")
        if self._cursor >= len(self._lines):
            raise IndexError(f"Conversation node '{self.title}' has no line at {self._cursor}")
        return self._lines[self._cursor]

    def has_next_line(self) -> bool:
        return self._cursor < len(self._lines) - 1

    def has_line(self, index: int) -> bool:
        return 0 <= index < len(self._lines)

    def advance(self) -> Optional[DialogueLine]:
        """
        Move the cursor forward one line.

        Returns:
            The new current line, or None once the node is exhausted
            (the cursor is then left one past the last line).
        """
        if not self._lines:
            raise RuntimeError(f"Conversation node '{self.title}' has no dialogue lines")
        if self._cursor < len(self._lines):
            self._cursor += 1
        if self._cursor < len(self._lines):
            return self._lines[self._cursor]
        return None

    def seek(self, index: int) -> bool:
        """
        Jump the cursor to a specific line.

        Out of range indices are reported and ignored.

        Returns:
            True if the cursor moved
        """
        if not self.has_line(index):
            self.logger.warning(
                f"Cannot seek to line {index} of '{self.title}' "
                f"({len(self._lines)} lines); cursor left at {self._cursor}"
            )
            return False
        self._cursor = index
        return True

    # ------------------------------------------------------------------
    # Object
    # ------------------------------------------------------------------

    def clone(self) -> ConversationNode:
        """Copy of this node with its own lines and a fresh cursor."""
        return ConversationNode(
            title=self.title,
            lines=copy.deepcopy(self._lines),
            tags=self._tags,
        )

    def __len__(self) -> int:
        return len(self._lines)

    def __repr__(self) -> str:
        return f"ConversationNode(title={self.title!r}, lines={len(self._lines)}, cursor={self._cursor})"
