"""
LLM Gateway Package

Provider-agnostic streaming interface over one injected chat model:
  - Google Gemini  (default: gemini-2.5-flash)
  - OpenAI         (GPT-4o family)

Public API::

    from docconvert.llm import LLMGateway, build_chat_model

    gateway = LLMGateway(build_chat_model(), model_name=settings.llm_model)
    async for token in gateway.stream(LLMGateway.build_messages(prompt)):
        ...
"""

from docconvert.llm.gateway import LLMGateway
from docconvert.llm.providers import Provider, build_chat_model

__all__ = [
    "LLMGateway",
    "Provider",
    "build_chat_model",
]
