from __future__ import annotations

from appforge.generation.prompts import build_prompt, parse_attachments
from appforge.models import ImageAttachment, TextAttachment


def test_parse_attachments_drops_unrecognized_entries() -> None:
    raw = [
        {"type": "text", "content": "Use a blue palette."},
        {"type": "image", "data": "data:image/png;base64,AAAA", "filename": None},
        {"type": "text"},
        {"type": "image", "data": ""},
        {"type": "audio", "data": "AAAA"},
        "not a dict",
        None,
    ]

    parsed = parse_attachments(raw)

    assert parsed == [
        TextAttachment(filename="document.txt", content="Use a blue palette.", description=""),
        ImageAttachment(filename="image.png", data="data:image/png;base64,AAAA", description=""),
    ]


def test_parse_attachments_handles_missing_list() -> None:
    assert parse_attachments(None) == []
    assert parse_attachments([]) == []


def test_create_prompt_contains_brief_and_closing_instruction() -> None:
    prompt = build_prompt("todo app", [], round_index=1)

    assert "based on this brief:\n\ntodo app" in prompt
    assert "without any external dependencies" in prompt
    assert "Additional Requirements" not in prompt
    assert prompt.endswith("Provide ONLY the complete HTML code, nothing else.")


def test_create_prompt_itemizes_attachments() -> None:
    attachments = [
        ImageAttachment(filename="mock.png", data="AAAA", description="header layout"),
        TextAttachment(filename="rules.txt", content="Max 10 items."),
    ]

    prompt = build_prompt("todo app", attachments)

    assert "Additional Requirements from Attachments:" in prompt
    assert "1. Image Reference: mock.png - header layout" in prompt
    assert "[Design should incorporate elements from this image]" in prompt
    assert "2. Additional Specifications from rules.txt:\nMax 10 items.\n" in prompt
    # Image payloads are referenced, never inlined.
    assert "AAAA" not in prompt


def test_update_prompt_embeds_prior_document() -> None:
    prior = "<!DOCTYPE html><html><body>v1</body></html>"
    attachments = [TextAttachment(filename="notes.txt", content="Keep the footer.")]

    prompt = build_prompt("add dark mode", attachments, round_index=2, prior_document=prior)

    assert prompt.startswith("You are updating an existing web application.")
    assert f"```html\n{prior}\n```" in prompt
    assert "Update Brief (Round 2):\nadd dark mode" in prompt
    assert "1. From notes.txt:\nKeep the footer." in prompt
    assert "Preserving existing functionality unless explicitly asked to change" in prompt
    assert prompt.endswith("Provide ONLY the complete updated HTML code, nothing else.")


def test_round_without_prior_document_uses_create_prompt() -> None:
    prompt = build_prompt("todo app", [], round_index=3, prior_document=None)
    assert prompt.startswith("Create a complete, fully functional single-page web application")


def test_round_one_ignores_prior_document() -> None:
    prompt = build_prompt("todo app", [], round_index=1, prior_document="<html></html>")
    assert "<html></html>" not in prompt
