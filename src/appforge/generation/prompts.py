"""Prompt construction for create and update rounds."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from appforge.models import Attachment, ImageAttachment, TextAttachment

SYSTEM_PROMPT = (
    "You are an expert web developer. Generate complete, functional HTML "
    "applications with inline CSS and JavaScript. Return ONLY the HTML code "
    "without explanations."
)

_CREATE_REQUIREMENTS = """Requirements:
- Create a single, complete HTML file with inline CSS and JavaScript
- Make it fully functional and interactive
- Use modern, responsive design
- Ensure it works without any external dependencies
- Include proper error handling
- Make it visually appealing

Provide ONLY the complete HTML code, nothing else."""

_UPDATE_REQUIREMENTS = """Update the application according to these requirements while:
- Preserving existing functionality unless explicitly asked to change
- Maintaining code quality and organization
- Ensuring all features work correctly
- Keeping everything in a single HTML file

Provide ONLY the complete updated HTML code, nothing else."""


def parse_attachments(raw: list[Any] | None) -> list[Attachment]:
    """Keep well-formed text/image entries; drop anything else silently."""
    if not raw:
        return []

    parsed: list[Attachment] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        kind = item.get("type")
        try:
            if kind == "image" and item.get("data"):
                parsed.append(ImageAttachment.model_validate(_without_nulls(item)))
            elif kind == "text" and item.get("content"):
                parsed.append(TextAttachment.model_validate(_without_nulls(item)))
        except ValidationError:
            continue
    return parsed


def build_prompt(
    brief: str,
    attachments: list[Attachment],
    round_index: int = 1,
    prior_document: str | None = None,
) -> str:
    """Return the single user prompt sent to the generation backend.

    An update prompt is produced only for round > 1 with a prior document;
    everything else gets the create prompt.
    """
    if round_index > 1 and prior_document is not None:
        return _update_prompt(brief, attachments, round_index, prior_document)
    return _create_prompt(brief, attachments)


def _create_prompt(brief: str, attachments: list[Attachment]) -> str:
    parts = [
        "Create a complete, fully functional single-page web application "
        f"based on this brief:\n\n{brief}\n\n"
    ]
    if attachments:
        parts.append("Additional Requirements from Attachments:\n")
        for index, attachment in enumerate(attachments, start=1):
            if isinstance(attachment, ImageAttachment):
                line = f"\n{index}. Image Reference: {attachment.filename}"
                if attachment.description:
                    line += f" - {attachment.description}"
                line += "\n   [Design should incorporate elements from this image]"
            else:
                line = (
                    f"\n{index}. Additional Specifications from {attachment.filename}:\n"
                    f"{attachment.content}\n"
                )
            parts.append(line)
        parts.append("\n")
    parts.append(_CREATE_REQUIREMENTS)
    return "".join(parts)


def _update_prompt(
    brief: str,
    attachments: list[Attachment],
    round_index: int,
    prior_document: str,
) -> str:
    parts = [
        "You are updating an existing web application.\n\n"
        "Current Application Code:\n"
        f"```html\n{prior_document}\n```\n\n"
        f"Update Brief (Round {round_index}):\n{brief}\n\n"
    ]
    if attachments:
        parts.append("Additional Update Requirements:\n")
        for index, attachment in enumerate(attachments, start=1):
            if isinstance(attachment, ImageAttachment):
                line = f"\n{index}. Reference Image: {attachment.filename}"
                if attachment.description:
                    line += f" - {attachment.description}"
            else:
                line = f"\n{index}. From {attachment.filename}:\n{attachment.content}\n"
            parts.append(line)
        parts.append("\n")
    parts.append(_UPDATE_REQUIREMENTS)
    return "".join(parts)


def _without_nulls(item: dict[str, Any]) -> dict[str, Any]:
    # Explicit nulls fall back to model defaults (filename, description).
    return {key: value for key, value in item.items() if value is not None}
