"""DeepSeek adapter."""

from __future__ import annotations

from inkstream._gateway._openai_compat import OpenAICompatibleAdapter


class DeepSeekAdapter(OpenAICompatibleAdapter):
    """DeepSeek chat completions.

    ``deepseek-reasoner`` streams its chain of thought as
    ``delta.reasoning_content``, surfaced as reasoning chunks.
    """

    provider_id = "deepseek"
    base_url = "https://api.deepseek.com"
    chat_path = "/v1/chat/completions"
    models_path = "/models"
