"""
SkillFinder Common Module

Shared infrastructure for the retriever pipeline and the MCP server.
"""

from .config import FinderConfig, LLMConfig, SearchConfig, load_config
from .llm_client import LLMClient, StubLLMClient, TextGenerator
from .llm_utils import parse_llm_json

__all__ = [
    "FinderConfig",
    "LLMConfig",
    "SearchConfig",
    "load_config",
    "LLMClient",
    "StubLLMClient",
    "TextGenerator",
    "parse_llm_json",
]
