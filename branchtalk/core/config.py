"""
Dialogue configuration.

Settings are a Pydantic model so values are validated on load and on
assignment:

    config = DialogueConfig(case_sensitive_titles=False)
    config = DialogueConfig.from_file("game/data/dialogue.json")
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class DialogueConfig(BaseModel):
    """
    Behaviour switches for conversation traversal.

    Attributes:
        end_token: Option destination that ends the conversation
        case_sensitive_titles: Whether node lookup by title is case-sensitive
        reset_on_option: Whether choosing an option restarts the destination
            node from its first line (otherwise it resumes where it was left)
        dispatch_actions_on_display: Whether the session fires a line's
            actions as soon as the line is handed to the display context
        log_level: Level used by configure_logging()
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra='forbid',
    )

    end_token: str = "END"
    case_sensitive_titles: bool = True
    reset_on_option: bool = True
    dispatch_actions_on_display: bool = True
    log_level: LogLevel = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DialogueConfig:
        return cls.model_validate(data)

    @classmethod
    def from_file(cls, path: str | Path) -> DialogueConfig:
        """Load configuration from a JSON file."""
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)


def configure_logging(level: str | int = "INFO") -> None:
    """Set up root logging for scripts and demos."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
