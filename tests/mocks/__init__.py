"""Test mocks for stacc-cli.

- ScriptedPrompter: answers prompts from queued responses
- write_source: builds a small stacc asset repository
"""

from .prompter import ScriptedPrompter
from .source_tree import REGISTRY, SOURCE_FILES, write_source

__all__ = ["ScriptedPrompter", "REGISTRY", "SOURCE_FILES", "write_source"]
