import os
import sys
import pytest

# Ensure branchtalk can be imported from a source checkout
sys.path.append(os.getcwd())

from branchtalk.dialog.context import DialogueContext  # noqa: E402


class RecordingContext(DialogueContext):
    """
    Display context that records every call the session makes.
    Used instead of a real renderer so tests stay headless.
    """

    def __init__(self, title="recording"):
        super().__init__()
        self._title = title
        self.calls = []
        self.closed = 0

    @property
    def title(self):
        return self._title

    def new_conversation_node(self, node):
        self.calls.append(("node", node.title))

    def display_dialogue(self, line):
        self.calls.append(("line", line.text))

    def conversation_over(self):
        self.calls.append(("over",))

    def close_context(self, on_closed=None):
        self.closed += 1
        self.calls.append(("close",))
        super().close_context(on_closed)

    @property
    def shown(self):
        """Text of every displayed line, in order."""
        return [call[1] for call in self.calls if call[0] == "line"]


@pytest.fixture
def event_bus():
    """Fresh EventBus for each test."""
    from branchtalk.core.events import EventBus
    return EventBus()


@pytest.fixture
def context():
    return RecordingContext()


@pytest.fixture
def records():
    """A small three-node conversation."""
    return [
        {
            "title": "Intro",
            "tags": "location[tavern, night], mood[calm]",
            "body": (
                "Eve: Hello, {player}. | actions([wave|left])\n"
                "\n"
                "Eve: Still here?\n"
                "[[Yes|Stay]], [[No|END]]"
            ),
        },
        {
            "title": "Stay",
            "tags": "",
            "body": "Eve: Good. | actions([smile])\nEve: Sit down.\nEve: Drink up.",
        },
        {
            "title": "Empty",
            "body": "",
        },
    ]


@pytest.fixture
def graph(records):
    from branchtalk.dialog.graph import ConversationGraph
    return ConversationGraph.load(records)


@pytest.fixture
def session(graph, context):
    from branchtalk.dialog.session import DialogueSession
    return DialogueSession(graph, context)


@pytest.fixture
def make_context():
    """Factory for extra recording contexts with their own titles."""
    return RecordingContext
