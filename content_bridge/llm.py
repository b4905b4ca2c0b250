"""
Generative text providers.

The provider call itself is a thin adapter: everything after the raw text
comes back is handled by the response parser.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import tiktoken
from openai import OpenAI

from content_bridge.config import config

logger = logging.getLogger(__name__)


class LLMInterface(ABC):
    """Abstract interface for LLM providers"""

    @abstractmethod
    def generate(self, prompt: str, **kwargs) -> str:
        pass

    @abstractmethod
    def get_token_count(self, text: str) -> int:
        pass


class OpenAILLM(LLMInterface):
    """Chat-completions provider"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 temperature: Optional[float] = None, client: Optional[Any] = None):
        self.model = model or config.openai_llm_model
        self.temperature = config.llm_temperature if temperature is None else temperature
        self.client = client or OpenAI(api_key=api_key or config.openai_api_key)
        self._encoding = None

    def generate(self, prompt: str, **kwargs) -> str:
        logger.info(f"Calling {self.model} for generation...")
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=kwargs.get("temperature", self.temperature),
        )
        return response.choices[0].message.content or ""

    def get_token_count(self, text: str) -> int:
        if self._encoding is None:
            try:
                self._encoding = tiktoken.encoding_for_model(self.model)
            except KeyError:
                self._encoding = tiktoken.get_encoding("cl100k_base")
        return len(self._encoding.encode(text))


class MockLLM(LLMInterface):
    """Mock LLM for demos and tests - returns a canned response"""

    def __init__(self, response: str):
        self.response = response
        self.prompts: List[str] = []

    def generate(self, prompt: str, **kwargs) -> str:
        self.prompts.append(prompt)
        return self.response

    def get_token_count(self, text: str) -> int:
        # Rough approximation: 1 token ≈ 4 characters
        return len(text) // 4
