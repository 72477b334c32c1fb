"""Prompt building, text generation backends, and HTML recovery."""

from appforge.generation.extract import extract_html
from appforge.generation.llm import (
    AnthropicMessagesGenerator,
    OpenAIChatGenerator,
    TextGenerator,
    build_generator,
)
from appforge.generation.prompts import build_prompt, parse_attachments

__all__ = [
    "AnthropicMessagesGenerator",
    "OpenAIChatGenerator",
    "TextGenerator",
    "build_generator",
    "build_prompt",
    "extract_html",
    "parse_attachments",
]
