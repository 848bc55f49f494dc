import logging
import pytest
from branchtalk.dialog.grammar import (
    apply_replacements,
    find_replacement_keys,
    format_tags,
    parse_action_item,
    parse_body,
    parse_line,
    parse_metadata,
    parse_option_item,
    parse_tags,
    split_action_blocks,
    split_option_blocks,
)

# ============================================================================
# Tokenizer
# ============================================================================

def test_option_split_only_between_double_brackets():
    parts = split_option_blocks("[[Yes, please|NodeA]], [[No, thanks|END]]")

    assert [p.strip() for p in parts] == ["[[Yes, please|NodeA]]", "[[No, thanks|END]]"]

def test_option_split_without_spaces():
    assert split_option_blocks("[[A|B]],[[C|D]]") == ["[[A|B]]", "[[C|D]]"]

def test_action_split():
    parts = split_action_blocks("[shake|2, 3],[fade]")

    assert parts == ["[shake|2, 3]", "[fade]"]

# ============================================================================
# Tags
# ============================================================================

def test_parse_tags():
    tags = parse_tags("location[tavern, night], mood[tense]")

    assert tags == {"location": ("tavern", "night"), "mood": ("tense",)}

def test_tags_round_trip():
    raw = "location[tavern, night], mood[tense], npc[eve, bob, carl]"

    tags = parse_tags(raw)

    assert format_tags(tags) == raw
    assert parse_tags(format_tags(tags)) == tags
    assert list(tags) == ["location", "mood", "npc"]

def test_empty_tags():
    assert parse_tags("") == {}
    assert parse_tags(None) == {}
    assert parse_tags("   ") == {}

def test_tag_values_trimmed():
    assert parse_tags("key[  a ,b  ]") == {"key": ("a", "b")}

def test_empty_tag_value_list():
    assert parse_tags("flags[]") == {"flags": ()}

def test_block_without_brackets_is_dropped(caplog):
    with caplog.at_level(logging.WARNING):
        tags = parse_tags("just words", title="Intro")

    assert tags == {}
    assert "Malformed tag block" in caplog.text

def test_duplicate_tag_key_keeps_first(caplog):
    with caplog.at_level(logging.WARNING):
        tags = parse_tags("mood[calm], mood[angry]", title="Intro")

    assert tags == {"mood": ("calm",)}
    assert "Duplicate tag key" in caplog.text

# ============================================================================
# Items
# ============================================================================

def test_option_item_splits_on_last_pipe():
    assert parse_option_item("[[Either|or|NodeB]]") == ("Either|or", "NodeB")

def test_option_item_requires_destination():
    assert parse_option_item("[[Just a label]]") is None
    assert parse_option_item("[[Label|]]") is None

def test_action_item_with_param():
    assert parse_action_item("[sound|door|creak]") == ("sound|door", "creak")

def test_action_item_without_param():
    assert parse_action_item(" [fade] ") == ("fade", "")

def test_empty_action_item():
    assert parse_action_item("[]") is None

# ============================================================================
# Lines
# ============================================================================

def test_parse_line_with_options():
    line = parse_line("Eve: Hi there | options([[Yes|NodeA]], [[No|END]])")

    assert line.speaker == "Eve"
    assert line.text == "Hi there"
    assert line.options == [("Yes", "NodeA"), ("No", "END")]
    assert line.actions == []

def test_parse_line_with_actions_and_options():
    line = parse_line(
        "Bob: Watch out! | options([[Duck|Hide]]) actions([shake|2],[sound|crash])"
    )

    assert line.text == "Watch out!"
    assert line.options == [("Duck", "Hide")]
    assert line.actions == [("shake", "2"), ("sound", "crash")]

def test_parse_line_without_speaker():
    line = parse_line("The wind howls.")

    assert line.speaker == ""
    assert line.text == "The wind howls."
    assert not line.has_choices

def test_choices_only_line():
    line = parse_line("| options([[Left|A]], [[Right|B]])")

    assert line.text == ""
    assert line.choices_only
    assert line.options == [("Left", "A"), ("Right", "B")]

def test_speaker_split_on_first_colon():
    line = parse_line("Eve: Meet me at 10:30.")

    assert line.speaker == "Eve"
    assert line.text == "Meet me at 10:30."

def test_metadata_without_captures():
    options, actions = parse_metadata(" nothing to see")

    assert options == []
    assert actions == []

def test_malformed_option_dropped(caplog):
    with caplog.at_level(logging.WARNING):
        line = parse_line("Eve: Pick | options([[Broken]], [[Fine|A]])", title="Intro")

    assert line.options == [("Fine", "A")]
    assert "Malformed option" in caplog.text

# ============================================================================
# Bodies
# ============================================================================

def test_trailing_options_attach_to_previous_line():
    lines = parse_body("Eve: Choose.\n[[One|A]], [[Two|B]]")

    assert len(lines) == 1
    assert lines[0].options == [("One", "A"), ("Two", "B")]

def test_trailing_action_attaches_to_previous_line():
    lines = parse_body("Eve: Hello.\n[action1|p1]")

    assert len(lines) == 1
    assert lines[0].actions == [("action1", "p1")]

def test_empty_lines_do_not_shift_attachment():
    lines = parse_body("Eve: First.\nEve: Second.\n\n   \n[[Go|A]]\n\n[wave]")

    assert [line.text for line in lines] == ["First.", "Second."]
    assert lines[0].options == []
    assert lines[1].options == [("Go", "A")]
    assert lines[1].actions == [("wave", "")]

def test_orphan_options_reported(caplog):
    with caplog.at_level(logging.ERROR):
        lines = parse_body("[[Go|A]]\nEve: Hi.", title="Orphan")

    assert len(lines) == 1
    assert lines[0].options == []
    assert "without a preceding line" in caplog.text

def test_windows_line_endings():
    lines = parse_body("Eve: One.\r\nEve: Two.\r\n")

    assert [line.text for line in lines] == ["One.", "Two."]

def test_empty_body():
    assert parse_body("") == []
    assert parse_body(None) == []

# ============================================================================
# Replacement text
# ============================================================================

def test_find_replacement_keys():
    assert find_replacement_keys("Hi {player}, meet {npc}.") == ["player", "npc"]

def test_apply_replacements():
    text = apply_replacements("Hi {player}! {player}, meet {npc}.", {"player": "Ann"})

    assert text == "Hi Ann! Ann, meet {npc}."

def test_unclosed_replacement_left_alone():
    assert apply_replacements("Hi {player", {"player": "Ann"}) == "Hi {player"
