# SPDX-License-Identifier: MIT
"""Tests for prompt template rendering."""

from __future__ import annotations

import pytest

from core.templates import STORY_TEMPLATES, get_template, render


def test_render_single_placeholder() -> None:
    assert render("Hello, {{name}}!", {"name": "Alice"}) == "Hello, Alice!"


def test_render_multiple_placeholders() -> None:
    output = render(
        "{{greeting}}, {{name}}! Today is {{day}}.",
        {"greeting": "Hi", "name": "Bob", "day": "Monday"},
    )
    assert output == "Hi, Bob! Today is Monday."


def test_render_missing_key_leaves_empty() -> None:
    assert render("Hello, {{unknown}}!", {}) == "Hello, !"


def test_render_ignores_whitespace_inside_braces() -> None:
    assert render("{{ greeting }} buddies", {"greeting": "Hey there"}) == (
        "Hey there buddies"
    )


def test_render_no_placeholders_unchanged() -> None:
    assert render("Just text.", {}) == "Just text."


def test_values_are_not_rendered_again() -> None:
    assert render("{{a}}", {"a": "{{b}}", "b": "x"}) == "{{b}}"


def test_builtin_templates() -> None:
    names = [t.name for t in STORY_TEMPLATES]
    assert names == [
        "Adventure",
        "Mystery",
        "Fantasy",
        "Science Fiction",
        "Romance",
        "Horror",
    ]
    prompt = get_template("horror").render(
        character="Mara", terror="the tide", setting="a lighthouse"
    )
    assert prompt == "Tell a horror story where Mara confronts the tide in a lighthouse."


def test_unknown_template_raises() -> None:
    with pytest.raises(KeyError):
        get_template("Western")
