"""
Configuration module for the Content Bridge
"""

import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path('.') / '.env'
load_dotenv(dotenv_path=env_path)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class SystemConfig:
    """System configuration settings"""

    # OpenAI API Configuration
    openai_api_key: str = ""
    openai_llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.7

    # Catalog inference
    max_schema_depth: int = 5

    # Reconstruction
    key_length: int = 12

    # Response parsing
    diagnostic_excerpt_length: int = 500

    # Normalization
    normalize_markdown: bool = True
    max_concurrent_normalizations: int = 5

    # System Behavior
    log_level: str = "INFO"

    @classmethod
    def from_environment(cls) -> "SystemConfig":
        """Load configuration from environment variables"""
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_llm_model=os.getenv("OPENAI_LLM_MODEL", "gpt-4o-mini"),
            llm_temperature=float(os.getenv("LLM_TEMPERATURE", "0.7")),
            max_schema_depth=int(os.getenv("MAX_SCHEMA_DEPTH", "5")),
            key_length=int(os.getenv("KEY_LENGTH", "12")),
            diagnostic_excerpt_length=int(os.getenv("DIAGNOSTIC_EXCERPT_LENGTH", "500")),
            normalize_markdown=_env_flag("NORMALIZE_MARKDOWN", "true"),
            max_concurrent_normalizations=int(os.getenv("MAX_CONCURRENT_NORMALIZATIONS", "5")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

# Global configuration instance
config = SystemConfig.from_environment()
