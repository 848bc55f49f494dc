"""
Dialog module - branching conversations driven by host events.

Provides:
- Script grammar (speakers, inline options and actions, node tags)
- Conversation nodes and graphs
- Dialogue sessions (continue / option state machine, action multicast)
- Display contexts and the dialogue manager
"""

from branchtalk.dialog.line import DialogueLine
from branchtalk.dialog.grammar import parse_body, parse_line, parse_tags, apply_replacements
from branchtalk.dialog.node import ConversationNode
from branchtalk.dialog.graph import ConversationGraph
from branchtalk.dialog.context import DialogueContext, ConsoleDialogueContext
from branchtalk.dialog.session import DialogueSession, SessionState
from branchtalk.dialog.manager import DialogueManager

__all__ = [
    "DialogueLine",
    "parse_body",
    "parse_line",
    "parse_tags",
    "apply_replacements",
    "ConversationNode",
    "ConversationGraph",
    "DialogueContext",
    "ConsoleDialogueContext",
    "DialogueSession",
    "SessionState",
    "DialogueManager",
]
