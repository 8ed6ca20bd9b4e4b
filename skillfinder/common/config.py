"""
Configuration Management for SkillFinder

Loads configuration from ~/.skillfinder/config.json and environment variables.
The resulting FinderConfig is passed explicitly into the components that need
it; pipeline code never reads the process environment itself.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import List

logger = logging.getLogger("skillfinder.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".skillfinder"
CONFIG_PATH = CONFIG_DIR / "config.json"

DEFAULT_AZURE_API_VERSION = "2024-10-21"
DEFAULT_SOURCE_ID = "b09a7990-05ea-4af9-81ef-edfab16c4e31"


@dataclass
class LLMConfig:
    """Extraction model configuration"""
    provider: str = "azure"  # "azure" | "openai" | "anthropic"
    azure_endpoint: str = ""
    azure_api_key: str = ""
    azure_deployment: str = ""
    azure_api_version: str = DEFAULT_AZURE_API_VERSION
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-haiku-4-5-20251001"
    max_tokens: int = 256
    timeout: float = 30.0

    @property
    def is_configured(self) -> bool:
        """True when the selected provider has the credentials it needs."""
        provider = (self.provider or "").lower()
        if provider == "azure":
            return bool(self.azure_endpoint and self.azure_api_key)
        if provider == "openai":
            return bool(self.openai_api_key)
        if provider == "anthropic":
            return bool(self.anthropic_api_key)
        return False

    @property
    def model(self) -> str:
        """Model (or Azure deployment) name for the selected provider."""
        provider = (self.provider or "").lower()
        if provider == "azure":
            return self.azure_deployment
        if provider == "anthropic":
            return self.anthropic_model
        return self.openai_model


@dataclass
class SearchConfig:
    """People-search backend configuration"""
    site_url: str = ""
    source_id: str = DEFAULT_SOURCE_ID
    access_token: str = ""
    select_properties: List[str] = field(default_factory=list)
    timeout: float = 20.0


@dataclass
class FinderConfig:
    """Main SkillFinder configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    search: SearchConfig = field(default_factory=SearchConfig)


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    defaults = LLMConfig()
    return LLMConfig(
        provider=llm_data.get("provider", defaults.provider),
        azure_endpoint=llm_data.get("azure_endpoint", ""),
        azure_api_key=llm_data.get("azure_api_key", ""),
        azure_deployment=llm_data.get("azure_deployment", ""),
        azure_api_version=llm_data.get("azure_api_version") or DEFAULT_AZURE_API_VERSION,
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", defaults.openai_model),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", defaults.anthropic_model),
        max_tokens=int(llm_data.get("max_tokens", defaults.max_tokens)),
        timeout=float(llm_data.get("timeout", defaults.timeout)),
    )


def _parse_search_config(data: dict) -> SearchConfig:
    """Parse search section from config dict"""
    search_data = data.get("search", {})
    select = search_data.get("select_properties", [])
    if isinstance(select, str):
        select = [p.strip() for p in select.split(",") if p.strip()]
    return SearchConfig(
        site_url=search_data.get("site_url", ""),
        source_id=search_data.get("source_id") or DEFAULT_SOURCE_ID,
        access_token=search_data.get("access_token", ""),
        select_properties=list(select),
        timeout=float(search_data.get("timeout", 20.0)),
    )


# Environment variable -> (section, attribute)
_ENV_OVERRIDES = {
    "AZURE_OPENAI_ENDPOINT": ("llm", "azure_endpoint"),
    "AZURE_OPENAI_API_KEY": ("llm", "azure_api_key"),
    "AZURE_OPENAI_DEPLOYMENT_NAME": ("llm", "azure_deployment"),
    "OPENAI_API_VERSION": ("llm", "azure_api_version"),
    "OPENAI_API_KEY": ("llm", "openai_api_key"),
    "OPENAI_MODEL": ("llm", "openai_model"),
    "ANTHROPIC_API_KEY": ("llm", "anthropic_api_key"),
    "ANTHROPIC_MODEL": ("llm", "anthropic_model"),
    "SKILLFINDER_LLM_PROVIDER": ("llm", "provider"),
    "SHAREPOINT_SITE_URL": ("search", "site_url"),
    "SHAREPOINT_SOURCE_ID": ("search", "source_id"),
    "SHAREPOINT_ACCESS_TOKEN": ("search", "access_token"),
}


def load_config() -> FinderConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.skillfinder/config.json)
    3. Default values
    """
    config = FinderConfig()

    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.llm = _parse_llm_config(data)
            config.search = _parse_search_config(data)
        except (json.JSONDecodeError, IOError, ValueError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    for env_var, (section, attr) in _ENV_OVERRIDES.items():
        val = os.getenv(env_var)
        if val:
            setattr(getattr(config, section), attr, val)

    return config
