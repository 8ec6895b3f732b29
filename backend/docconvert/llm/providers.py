"""
LLM provider factory — builds the LangChain chat model from settings.

Supported providers:
  google  → Gemini via langchain-google-genai   (default: gemini-2.5-flash)
  openai  → GPT via langchain-openai

The returned BaseChatModel is handed to LLMGateway by the caller; nothing
here holds a module-level client.
"""

from __future__ import annotations

import logging
from enum import Enum

from langchain_core.language_models.chat_models import BaseChatModel

from docconvert.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class Provider(str, Enum):
    GOOGLE = "google"
    OPENAI = "openai"


def _build_google(cfg: Settings, streaming: bool) -> BaseChatModel:
    from langchain_google_genai import ChatGoogleGenerativeAI
    return ChatGoogleGenerativeAI(
        model=cfg.llm_model,
        google_api_key=cfg.google_api_key or None,
        temperature=cfg.llm_temperature,
        max_output_tokens=cfg.llm_max_tokens,
        streaming=streaming,
    )


def _build_openai(cfg: Settings, streaming: bool) -> BaseChatModel:
    from langchain_openai import ChatOpenAI
    return ChatOpenAI(
        model=cfg.llm_model,
        api_key=cfg.openai_api_key,
        temperature=cfg.llm_temperature,
        max_tokens=cfg.llm_max_tokens,
        streaming=streaming,
    )


_BUILDERS = {
    Provider.GOOGLE: _build_google,
    Provider.OPENAI: _build_openai,
}


def build_chat_model(cfg: Settings | None = None, *, streaming: bool = True) -> BaseChatModel:
    """Instantiate the configured chat model; raises ValueError on unknown provider."""
    cfg = cfg or default_settings
    try:
        provider = Provider(cfg.llm_provider.lower())
    except ValueError:
        raise ValueError(f"Unsupported LLM provider: {cfg.llm_provider}") from None

    logger.info("LLM provider | provider=%s model=%s", provider.value, cfg.llm_model)
    return _BUILDERS[provider](cfg, streaming)
