import json
import logging
import pytest
from branchtalk.core.config import DialogueConfig
from branchtalk.dialog.manager import DialogueManager

@pytest.fixture
def manager(records, make_context):
    manager = DialogueManager()
    manager.register_context(make_context("main"))
    manager.register_context(make_context("side"))
    manager.add_conversation("tavern", records)
    return manager

def test_start_conversation(manager):
    session = manager.start_conversation("tavern", "main", "Intro")

    context = manager.get_context("main")
    assert session is not None
    assert context.is_open
    assert context.shown == ["Hello, {player}."]

def test_unknown_conversation_or_context(manager, caplog):
    with caplog.at_level(logging.ERROR):
        assert manager.start_conversation("castle", "main") is None
        assert manager.start_conversation("tavern", "missing") is None

    assert "Conversation not found" in caplog.text
    assert "Dialogue context not found" in caplog.text

def test_sessions_do_not_share_cursors(manager):
    first = manager.start_conversation("tavern", "main", "Stay")
    second = manager.start_conversation("tavern", "side", "Stay")

    first.continue_pressed()
    first.continue_pressed()

    assert first.current_node.cursor == 2
    assert second.current_node.cursor == 0
    assert manager.get_conversation("tavern").get("Stay").cursor == 0

def test_end_all(manager):
    first = manager.start_conversation("tavern", "main", "Intro")
    manager.start_conversation("tavern", "side", "Intro")
    assert len(manager.active_sessions) == 2

    manager.end_all()

    assert first.finished
    assert manager.active_sessions == []
    assert manager.get_context("main").closed == 1

def test_config_is_passed_to_sessions(records, make_context):
    manager = DialogueManager(DialogueConfig(case_sensitive_titles=False))
    manager.register_context(make_context("main"))
    manager.add_conversation("tavern", records)

    session = manager.start_conversation("tavern", "main", "INTRO")

    assert session.current_node.title == "Intro"

def test_load_directory(tmp_path, records, caplog):
    with open(tmp_path / "tavern.json", "w") as f:
        json.dump(records, f)
    with open(tmp_path / "broken.json", "w") as f:
        f.write("{not json")
    with open(tmp_path / "wrong_shape.json", "w") as f:
        json.dump({"title": "Intro"}, f)

    manager = DialogueManager()
    with caplog.at_level(logging.ERROR):
        count = manager.load_directory(tmp_path)

    assert count == 1
    assert manager.conversation_ids == ["tavern"]
    assert "Failed to load" in caplog.text

def test_load_missing_directory(tmp_path):
    manager = DialogueManager()

    assert manager.load_directory(tmp_path / "nope") == 0

def test_restart_on_same_context_finishes_previous_session(manager):
    first = manager.start_conversation("tavern", "main", "Stay")
    second = manager.start_conversation("tavern", "main", "Stay")
    context = manager.get_context("main")

    context.press_continue()

    assert first.finished
    assert not second.finished
    assert context.is_open
    assert context.session is second
    assert context.closed == 1
    assert context.shown == ["Good.", "Good.", "Sit down."]
    assert second.current_node.cursor == 1
    assert manager.active_sessions == [second]
