"""Generation providers: Gemini scripts, Google TTS audio, DeepAI images."""

from src.studio.services.providers.base import (
    ImageProvider,
    ImageResult,
    ProviderError,
    ScriptParams,
    ScriptProvider,
    ScriptResult,
    SpeechProvider,
    SpeechResult,
)
from src.studio.services.providers.deepai import DeepAIImageProvider
from src.studio.services.providers.gemini import GeminiScriptProvider
from src.studio.services.providers.google_tts import GoogleTTSProvider

__all__ = [
    "DeepAIImageProvider",
    "GeminiScriptProvider",
    "GoogleTTSProvider",
    "ImageProvider",
    "ImageResult",
    "ProviderError",
    "ScriptParams",
    "ScriptProvider",
    "ScriptResult",
    "SpeechProvider",
    "SpeechResult",
]
