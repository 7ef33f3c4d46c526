# SPDX-License-Identifier: MIT
"""Prompt templates with ``{{ key }}`` placeholders."""

from __future__ import annotations

import re
from typing import Mapping

from pydantic import BaseModel, ConfigDict

_PLACEHOLDER = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)


def render(template: str, context: Mapping[str, str]) -> str:
    """Replace ``{{key}}`` tokens in ``template`` with values from ``context``.

    Whitespace inside the braces is ignored and unknown keys render as empty
    strings.
    """
    return _PLACEHOLDER.sub(
        lambda match: str(context.get(match.group(1).strip(), "")), template
    )


class StoryTemplate(BaseModel):
    """Named story starter offered to authors."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    prompt_template: str

    def render(self, **context: str) -> str:
        """Return the prompt with ``context`` substituted."""
        return render(self.prompt_template, context)


STORY_TEMPLATES: tuple[StoryTemplate, ...] = (
    StoryTemplate(
        name="Adventure",
        description="A thrilling journey filled with excitement and challenges",
        prompt_template=(
            "Write an adventure story about {{character}} who discovers "
            "{{discovery}} and must overcome {{challenge}}."
        ),
    ),
    StoryTemplate(
        name="Mystery",
        description="A puzzling tale with clues and revelations",
        prompt_template=(
            "Create a mystery story where {{character}} investigates {{mystery}} "
            "and uncovers {{revelation}}."
        ),
    ),
    StoryTemplate(
        name="Fantasy",
        description="A magical story in a world of imagination",
        prompt_template=(
            "Tell a fantasy story about {{character}} who possesses "
            "{{magical_power}} and must {{quest}}."
        ),
    ),
    StoryTemplate(
        name="Science Fiction",
        description="A futuristic tale of technology and discovery",
        prompt_template=(
            "Write a sci-fi story where {{character}} encounters {{technology}} "
            "and faces {{conflict}}."
        ),
    ),
    StoryTemplate(
        name="Romance",
        description="A story of love and relationships",
        prompt_template=(
            "Create a romance story about {{character}} who meets "
            "{{love_interest}} and must overcome {{obstacle}}."
        ),
    ),
    StoryTemplate(
        name="Horror",
        description="A spine-chilling tale of fear and suspense",
        prompt_template=(
            "Tell a horror story where {{character}} confronts {{terror}} in "
            "{{setting}}."
        ),
    ),
)


def get_template(name: str) -> StoryTemplate:
    """Return the built-in template called ``name`` (case-insensitive).

    Raises:
        KeyError: If no template has that name.
    """
    for template in STORY_TEMPLATES:
        if template.name.lower() == name.lower():
            return template
    raise KeyError(name)


__all__ = ["STORY_TEMPLATES", "StoryTemplate", "get_template", "render"]
