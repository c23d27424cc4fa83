"""Default system instructions, one per response mode."""

from __future__ import annotations

from chat_relay.llm.models import ResponseMode

PLAIN_SYSTEM_PROMPT = (
    "You are a helpful assistant. Answer clearly and concisely using Markdown. "
    "Use numbered lists for step-by-step instructions and write links as "
    "[descriptive text](url). Do not use the phrase 'Click here' as link text."
)

STRUCTURED_SYSTEM_PROMPT = (
    "You are a helpful assistant. Respond with a single JSON object and "
    "nothing else, using exactly this shape:\n"
    '{"mainAnswer": "short direct answer", '
    '"steps": [{"title": "step title", "description": "what to do", '
    '"links": [{"text": "link label", "url": "https://..."}]}], '
    '"sources": [{"name": "source name", "url": "https://..."}], '
    '"language": "en"}\n'
    "Use an empty list when there are no steps, links or sources. Write "
    "mainAnswer in the language of the user's question and set language to "
    "its ISO 639-1 code."
)

DEFAULT_PROMPTS = {
    ResponseMode.PLAIN: PLAIN_SYSTEM_PROMPT,
    ResponseMode.STRUCTURED: STRUCTURED_SYSTEM_PROMPT,
}


def system_prompt_for(mode: ResponseMode, override: str | None = None) -> str:
    """Return the configured override, or the default prompt for ``mode``."""
    if override and override.strip():
        return override
    return DEFAULT_PROMPTS[mode]
