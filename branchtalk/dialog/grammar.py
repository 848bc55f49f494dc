"""
Script grammar - turns raw node text into dialogue lines and tag maps.

Body lines look like:

```
SpeakerName: Some text | options([[Yes|NodeA]], [[No|END]]) actions([shake|2],[fade])
[[Trailing choice|NodeB]]
[trailing_action|param]
```

Node tags look like:

```
location[tavern, night], mood[tense]
```

List separators are commas that sit strictly between a closing and an
opening bracket, so commas inside a single item never split it. The
splitting is done by scanning, not by regex lookaround.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Optional, Union

from branchtalk.dialog.line import DialogueLine


logger = logging.getLogger(__name__)

OPTION_OPEN = "[["
OPTION_CLOSE = "]]"
ACTION_OPEN = "["
ACTION_CLOSE = "]"
OPTIONS_TAG = "options"
ACTIONS_TAG = "actions"
PARAM_SPLIT = "|"
SPEAKER_SPLIT = ":"
LIST_SPLIT = ","
BRACKET_CHARS = " []"
REPLACE_OPEN = "{"
REPLACE_CLOSE = "}"

Opening = Union[str, Callable[[str], bool]]


# ============================================================================
# TOKENIZER
# ============================================================================

def split_between(text: str, closing: str, opening: Opening) -> list[str]:
    """
    Split text on every comma that sits between two list items.

    A comma splits only if the text before it (ignoring whitespace) ends
    with `closing` and the text after it (ignoring whitespace) starts with
    `opening`. `opening` may also be a predicate over the remaining text.
    """
    if isinstance(opening, str):
        prefix = opening

        def opens(rest: str) -> bool:
            return rest.startswith(prefix)
    else:
        opens = opening

    parts = []
    start = 0
    for index, char in enumerate(text):
        if char != LIST_SPLIT:
            continue
        if text[:index].rstrip().endswith(closing) and opens(text[index + 1:].lstrip()):
            parts.append(text[start:index])
            start = index + 1
    parts.append(text[start:])
    return parts


def split_option_blocks(raw: str) -> list[str]:
    """Split `[[a|b]], [[c|d]]` into its option items."""
    return split_between(raw, OPTION_CLOSE, OPTION_OPEN)


def split_action_blocks(raw: str) -> list[str]:
    """Split `[a|x], [b]` into its action items."""
    return split_between(raw, ACTION_CLOSE, ACTION_OPEN)


def _is_word_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def _starts_with_tag_key(text: str) -> bool:
    """True if text starts with word characters immediately followed by `[`."""
    index = 0
    while index < len(text) and _is_word_char(text[index]):
        index += 1
    return 0 < index < len(text) and text[index] == ACTION_OPEN


def _capture(metadata: str, tag: str) -> Optional[str]:
    """Contents of `tag(...)` up to the first closing paren, or None."""
    marker = f"{tag}("
    start = metadata.find(marker)
    if start == -1:
        return None
    start += len(marker)
    end = metadata.find(")", start)
    if end == -1:
        return None
    return metadata[start:end]


# ============================================================================
# TAGS
# ============================================================================

def parse_tag_block(block: str) -> Optional[tuple[str, tuple[str, ...]]]:
    """
    Parse one `key[v1, v2]` block.

    The key is the run of word characters right before the first `[` that
    follows one; the values are everything from there to the last `]`.
    Returns None if no key or no closing bracket is found.
    """
    for index, char in enumerate(block):
        if char != ACTION_OPEN:
            continue

        start = index
        while start > 0 and _is_word_char(block[start - 1]):
            start -= 1
        if start == index:
            continue

        close = block.rfind(ACTION_CLOSE)
        if close < index:
            return None

        inner = block[index + 1:close]
        if not inner.strip():
            return block[start:index], ()
        return block[start:index], tuple(value.strip() for value in inner.split(LIST_SPLIT))

    return None


def parse_tags(raw: Optional[str], title: str = "") -> dict[str, tuple[str, ...]]:
    """
    Parse a node's tag string into a key -> values mapping.

    Malformed blocks and repeated keys are logged and skipped.
    """
    tags: dict[str, tuple[str, ...]] = {}
    if not raw or not raw.strip():
        return tags

    for block in split_between(raw, ACTION_CLOSE, _starts_with_tag_key):
        parsed = parse_tag_block(block)
        if parsed is None:
            logger.warning(f"Malformed tag block '{block.strip()}' in node '{title}'; skipping.")
            continue

        key, values = parsed
        if key in tags:
            logger.warning(f"Duplicate tag key '{key}' in node '{title}'; keeping the first.")
            continue
        tags[key] = values

    return tags


def format_tags(tags: Mapping[str, tuple[str, ...]]) -> str:
    """Serialize a tag map back to `key[v1, v2], key2[v3]` form."""
    return ", ".join(f"{key}[{', '.join(values)}]" for key, values in tags.items())


# ============================================================================
# OPTIONS AND ACTIONS
# ============================================================================

def parse_option_item(raw: str) -> Optional[tuple[str, str]]:
    """
    Parse `[[Label|Destination]]`.

    Split on the last `|`; the destination is mandatory.
    """
    item = raw.strip(BRACKET_CHARS)
    if PARAM_SPLIT not in item:
        return None
    key, _, destination = item.rpartition(PARAM_SPLIT)
    destination = destination.strip()
    if not destination:
        return None
    return key.strip(), destination


def parse_action_item(raw: str) -> Optional[tuple[str, str]]:
    """
    Parse `[tag|param]` or `[tag]`.

    Split on the last `|`; the param defaults to an empty string.
    """
    item = raw.strip(BRACKET_CHARS)
    if PARAM_SPLIT in item:
        tag, _, param = item.rpartition(PARAM_SPLIT)
        tag, param = tag.strip(), param.strip()
    else:
        tag, param = item, ""
    if not tag:
        return None
    return tag, param


def add_options(line: DialogueLine, items: list[str], title: str = "") -> None:
    for item in items:
        option = parse_option_item(item)
        if option is None:
            logger.warning(f"Malformed option '{item.strip()}' in node '{title}'; dropping.")
            continue
        line.add_option(*option)


def add_actions(line: DialogueLine, items: list[str], title: str = "") -> None:
    for item in items:
        action = parse_action_item(item)
        if action is None:
            logger.warning(f"Malformed action '{item.strip()}' in node '{title}'; dropping.")
            continue
        line.add_action(*action)


def parse_metadata(metadata: str, title: str = "") -> tuple[list[tuple[str, str]], list[tuple[str, str]]]:
    """
    Parse the text after a line's `|` separator.

    Returns:
        (options, actions)
    """
    line = DialogueLine()

    actions = _capture(metadata, ACTIONS_TAG)
    if actions is not None:
        add_actions(line, split_action_blocks(actions), title)

    options = _capture(metadata, OPTIONS_TAG)
    if options is not None:
        add_options(line, split_option_blocks(options), title)

    return line.options, line.actions


# ============================================================================
# LINES
# ============================================================================

def parse_line(raw: str, title: str = "") -> DialogueLine:
    """Parse one spoken body line into speaker, text, options and actions."""
    line = DialogueLine()
    text = raw

    if SPEAKER_SPLIT in text:
        speaker, _, text = text.partition(SPEAKER_SPLIT)
        line.speaker = speaker.strip()

    if PARAM_SPLIT in text:
        text, _, metadata = text.partition(PARAM_SPLIT)
        line.options, line.actions = parse_metadata(metadata, title)

    line.text = text.strip()
    return line


def parse_body(body: Optional[str], title: str = "") -> list[DialogueLine]:
    """
    Parse a node body into its dialogue lines.

    Lines starting with `[[` are trailing option blocks and lines starting
    with a single `[` are trailing action blocks; both attach to the last
    parsed line of the node. Blank lines are skipped.
    """
    lines: list[DialogueLine] = []
    if not body:
        return lines

    for number, raw in enumerate(body.split("\n"), start=1):
        stripped = raw.strip()

        if stripped.startswith(OPTION_OPEN):
            if not lines:
                logger.error(
                    f"Cannot have options without a preceding line of dialogue "
                    f"(line {number} of '{title}')."
                )
                continue
            add_options(lines[-1], split_option_blocks(stripped), title)

        elif stripped.startswith(ACTION_OPEN):
            if not lines:
                logger.error(
                    f"Cannot have actions without a preceding line of dialogue "
                    f"(line {number} of '{title}')."
                )
                continue
            add_actions(lines[-1], split_action_blocks(stripped), title)

        elif not stripped:
            logger.debug(f"Empty line on line {number} of '{title}'; skipping.")

        else:
            lines.append(parse_line(stripped, title))

    return lines


# ============================================================================
# REPLACEMENT TEXT
# ============================================================================

def find_replacement_keys(text: str) -> list[str]:
    """Keys of every `{key}` token in text, in order of appearance."""
    keys = []
    position = 0
    while True:
        start = text.find(REPLACE_OPEN, position)
        if start == -1:
            break
        end = text.find(REPLACE_CLOSE, start + 1)
        if end == -1:
            break
        keys.append(text[start + 1:end])
        position = end + 1
    return keys


def apply_replacements(text: str, replacements: Mapping[str, str]) -> str:
    """Substitute registered `{key}` tokens; unknown keys are left untouched."""
    for key in find_replacement_keys(text):
        if key in replacements:
            text = text.replace(f"{REPLACE_OPEN}{key}{REPLACE_CLOSE}", replacements[key])
    return text
