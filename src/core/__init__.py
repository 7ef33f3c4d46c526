"""Core utilities for story authoring prompts.

Exports:
    render: Substitute ``{{key}}`` placeholders in a template.
    StoryTemplate: Named story starter.
    STORY_TEMPLATES: Built-in story starters.
"""

from .templates import STORY_TEMPLATES, StoryTemplate, get_template, render

__all__ = ["STORY_TEMPLATES", "StoryTemplate", "get_template", "render"]
