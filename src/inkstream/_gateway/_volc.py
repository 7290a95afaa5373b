"""Volcano Engine Ark adapter."""

from __future__ import annotations

from inkstream._gateway._openai_compat import OpenAICompatibleAdapter


class VolcAdapter(OpenAICompatibleAdapter):
    """Volcano Engine Ark (Doubao) chat completions.

    ``model`` is either a model name or an inference endpoint id
    (``ep-...``) created in the Ark console.
    """

    provider_id = "volc"
    base_url = "https://ark.cn-beijing.volces.com/api/v3"
