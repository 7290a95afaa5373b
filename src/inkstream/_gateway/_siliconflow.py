"""SiliconFlow adapter."""

from __future__ import annotations

from inkstream._core._models import ModelInfo
from inkstream._gateway._openai_compat import OpenAICompatibleAdapter

# Listing includes image, audio and embedding models that can't chat
NON_CHAT_MARKERS = (
    "embedding",
    "reranker",
    "stable-diffusion",
    "flux",
    "-vl",
    "video",
    "speech",
    "voice",
    "tts",
)


class SiliconFlowAdapter(OpenAICompatibleAdapter):
    """SiliconFlow hosted open models."""

    provider_id = "siliconflow"
    base_url = "https://api.siliconflow.cn/v1"

    def filter_models(self, models: list[ModelInfo]) -> list[ModelInfo]:
        return [m for m in models if not any(marker in m.id.lower() for marker in NON_CHAT_MARKERS)]
