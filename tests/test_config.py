#!/usr/bin/env python3
"""
Test script to demonstrate .env file configuration loading
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from content_bridge.config import SystemConfig, config

console = Console()


def test_config():
    """Test and display the configuration"""

    console.print(Panel("[bold green]Configuration Test[/bold green]"))

    table = Table(title="Current Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Source", style="yellow")

    table.add_row("OpenAI API Key", "***SET***" if config.openai_api_key else "NOT SET", ".env or ENV")
    table.add_row("LLM Model", config.openai_llm_model, ".env or ENV or default")
    table.add_row("LLM Temperature", str(config.llm_temperature), ".env or ENV or default")
    table.add_row("Max Schema Depth", str(config.max_schema_depth), ".env or ENV or default")
    table.add_row("Key Length", str(config.key_length), ".env or ENV or default")
    table.add_row("Diagnostic Excerpt Length", str(config.diagnostic_excerpt_length), ".env or ENV or default")
    table.add_row("Normalize Markdown", str(config.normalize_markdown), ".env or ENV or default")
    table.add_row("Max Concurrent Normalizations", str(config.max_concurrent_normalizations), ".env or ENV or default")
    table.add_row("Log Level", config.log_level, ".env or ENV or default")

    console.print(table)

    assert config.max_schema_depth > 0
    assert config.key_length > 0
    assert config.max_concurrent_normalizations > 0


def test_defaults(monkeypatch):
    for name in ("MAX_SCHEMA_DEPTH", "KEY_LENGTH", "DIAGNOSTIC_EXCERPT_LENGTH",
                 "NORMALIZE_MARKDOWN", "MAX_CONCURRENT_NORMALIZATIONS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    loaded = SystemConfig.from_environment()
    assert loaded.max_schema_depth == 5
    assert loaded.key_length == 12
    assert loaded.diagnostic_excerpt_length == 500
    assert loaded.normalize_markdown is True
    assert loaded.max_concurrent_normalizations == 5
    assert loaded.log_level == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("MAX_SCHEMA_DEPTH", "3")
    monkeypatch.setenv("KEY_LENGTH", "8")
    monkeypatch.setenv("NORMALIZE_MARKDOWN", "False")
    monkeypatch.setenv("LLM_TEMPERATURE", "0.1")

    loaded = SystemConfig.from_environment()
    assert loaded.max_schema_depth == 3
    assert loaded.key_length == 8
    assert loaded.normalize_markdown is False
    assert loaded.llm_temperature == 0.1


if __name__ == "__main__":
    test_config()
