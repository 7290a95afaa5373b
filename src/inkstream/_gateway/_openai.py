"""OpenAI adapter."""

from __future__ import annotations

from inkstream._gateway._openai_compat import OpenAICompatibleAdapter


class OpenAIAdapter(OpenAICompatibleAdapter):
    provider_id = "openai"
    base_url = "https://api.openai.com/v1"
