"""Classification Port and its OpenAI Chat Completions implementation.

The port is the only component that talks to the network. Its contract is
small on purpose:

``classify(system_prompt, user_prompt, expect_json) -> str``
    Returns the model's answer text, stripped. Raises
    :class:`~expense_import.exceptions.QuotaExceededError` when the service
    rejects the call for quota/rate limits and
    :class:`~expense_import.exceptions.ServiceError` for every other failure
    (transport errors, API errors, empty answers).

Prompt construction and response validation belong to the caller
(:mod:`expense_import.categorize`).
"""

from __future__ import annotations

import os
from typing import Any, Protocol

import openai
from openai import OpenAI

from .exceptions import QuotaExceededError, ServiceError
from .logging_setup import get_logger

DEFAULT_MODEL: str = "gpt-4o-mini"
MODEL_ENV_VAR: str = "EXPENSE_IMPORT_MODEL"

_logger = get_logger("expense_import.openai_client")


class ClassificationPort(Protocol):
    def classify(self, system_prompt: str, user_prompt: str, expect_json: bool) -> str: ...


def _create_client() -> OpenAI:
    return OpenAI()


def _extract_content(resp: Any) -> str:
    """Return the first choice's message content from a chat completion."""

    choices = getattr(resp, "choices", None)
    if not choices:
        raise ServiceError("classification service returned no choices")
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str) or not content.strip():
        raise ServiceError("classification service returned an empty answer")
    return content.strip()


class OpenAIClassificationPort:
    """:class:`ClassificationPort` backed by the OpenAI Chat Completions API.

    Parameters
    ----------
    client:
        Optional pre-built ``OpenAI`` client. By default one is created from
        the environment (``OPENAI_API_KEY``). The client is shared by all
        worker threads.
    model:
        Model name. Defaults to ``EXPENSE_IMPORT_MODEL`` when set, otherwise
        :data:`DEFAULT_MODEL`.
    """

    def __init__(self, client: OpenAI | None = None, *, model: str | None = None) -> None:
        self._client = client if client is not None else _create_client()
        self.model = model or os.getenv(MODEL_ENV_VAR) or DEFAULT_MODEL

    def classify(self, system_prompt: str, user_prompt: str, expect_json: bool) -> str:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        if expect_json:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            resp = self._client.chat.completions.create(**kwargs)
        except openai.RateLimitError as e:
            _logger.warning("classify:quota_exceeded model=%s", self.model)
            raise QuotaExceededError(details={"model": self.model}) from e
        except Exception as e:  # noqa: BLE001 - every other failure is a service error
            _logger.error(
                "classify:service_error model=%s error=%s", self.model, e.__class__.__name__
            )
            raise ServiceError(
                f"classification service call failed: {e}",
                details={"model": self.model},
            ) from e

        return _extract_content(resp)


__all__ = ["DEFAULT_MODEL", "ClassificationPort", "OpenAIClassificationPort"]
