"""OpenAI access for seed distribution generation.

Credentials come from the environment (``OPENAI_API_KEY``, optional
``OPENAI_ORG``); the model from ``WWFM_OPENAI_MODEL``.  Generation code only
needs :func:`json_completion`:

    from wwfm_fields.openai_client import json_completion

    content = json_completion(messages, temperature=0.7)
"""
from __future__ import annotations

import logging
import os
import types
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

Message = Dict[str, str]


class OpenAIClientError(RuntimeError):
    """Raised when the client is misconfigured or the API returns nothing usable."""


_DEFAULT_MODEL = os.getenv("WWFM_OPENAI_MODEL", "gpt-4.1")
_JSON_RESPONSE_FORMAT = {"type": "json_object"}


def _load_openai() -> types.ModuleType:
    """Import ``openai`` lazily so tests can patch ``sys.modules`` first."""

    import importlib

    return importlib.import_module("openai")


def get_openai_client() -> types.ModuleType:
    """Return the ``openai`` module with credentials applied.

    Raises
    ------
    OpenAIClientError
        If ``OPENAI_API_KEY`` is missing or empty.
    """

    openai = _load_openai()
    if getattr(openai, "api_key", None):
        return openai

    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise OpenAIClientError("OPENAI_API_KEY environment variable is not set.")
    openai.api_key = api_key

    org = os.getenv("OPENAI_ORG")
    if org:
        openai.organization = org
    return openai


def chat_completion(
    messages: List[Message],
    *,
    model: str = _DEFAULT_MODEL,
    **kwargs: Any,
) -> Dict[str, Any]:
    """Run ``chat.completions.create`` and flatten the result to plain dicts.

    Returns ``{"choices": [{"message": {"content": ...}}], "model": ...}``;
    *kwargs* are forwarded unchanged.
    """

    openai = get_openai_client()
    completion = openai.chat.completions.create(model=model, messages=messages, **kwargs)
    return {
        "choices": [
            {"message": {"content": choice.message.content}}
            for choice in completion.choices
        ],
        "model": completion.model,
    }


def json_completion(messages: List[Message], **kwargs: Any) -> str:
    """Request a JSON-object response and return the first choice's content.

    Raises
    ------
    OpenAIClientError
        If the response carries no choices or empty content.
    """

    kwargs.setdefault("response_format", _JSON_RESPONSE_FORMAT)
    response = chat_completion(messages, **kwargs)
    choices = response["choices"]
    content = choices[0]["message"]["content"] if choices else None
    if not content:
        raise OpenAIClientError(f"Empty completion from model {response['model']}")
    logger.debug("Received %d chars from %s", len(content), response["model"])
    return content
