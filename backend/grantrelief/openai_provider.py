"""
Azure OpenAI Provider for the relief grant service.

This module provides a centralized Azure OpenAI client configuration and
the per-feature model settings used by the AI calls (final decision
review).

Environment Variables:
- AZURE_OPENAI_ENDPOINT: Azure OpenAI endpoint URL
- AZURE_OPENAI_KEY: Azure OpenAI API key
- AZURE_OPENAI_API_VERSION: API version for chat completions (default: 2024-12-01-preview)
- AZURE_OPENAI_DEPLOYMENT_CHAT: Deployment name for main chat model (default: gpt-4.1)
- AZURE_OPENAI_DEPLOYMENT_CHAT_MINI: Deployment name for fast/cheap chat model (default: gpt-4.1-mini)

Unlike a fail-fast module-level client, the client here is created on
first use so the service (and its tests) can start without credentials.
Callers that need AI treat a missing configuration like any other AI
failure.

Usage:
    from grantrelief.openai_provider import (
        get_async_client,
        get_feature_model_config,
    )
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import load_dotenv
from openai import AsyncAzureOpenAI

load_dotenv()

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Loading
# =============================================================================


def _get_required_env(name: str) -> str:
    """Get a required environment variable or raise an error."""
    if value := os.getenv(name):
        return value
    else:
        raise ValueError(
            f"Missing required environment variable: {name}. "
            f"Azure OpenAI configuration is required for AI features."
        )


def _get_optional_env(name: str, default: str) -> str:
    """Get an optional environment variable with a default value."""
    return os.getenv(name, default)


class AzureOpenAIConfig:
    """Azure OpenAI configuration container."""

    def __init__(self):
        """Load configuration from environment variables."""
        # Required configuration
        self.endpoint = _get_required_env("AZURE_OPENAI_ENDPOINT")
        self.api_key = _get_required_env("AZURE_OPENAI_KEY")

        self.chat_api_version = _get_optional_env(
            "AZURE_OPENAI_API_VERSION", "2024-12-01-preview"
        )

        # Deployment names (Azure-specific model deployment names)
        self.deployment_chat = _get_optional_env(
            "AZURE_OPENAI_DEPLOYMENT_CHAT", "gpt-4.1"
        )
        self.deployment_chat_mini = _get_optional_env(
            "AZURE_OPENAI_DEPLOYMENT_CHAT_MINI", "gpt-4.1-mini"
        )

    def log_configuration(self):
        """Log the current configuration (without sensitive data)."""
        logger.info("Azure OpenAI Configuration:")
        logger.info(f"  Endpoint: {self.endpoint}")
        logger.info(f"  Chat API Version: {self.chat_api_version}")
        logger.info(f"  Chat Deployment: {self.deployment_chat}")
        logger.info(f"  Chat Mini Deployment: {self.deployment_chat_mini}")


# =============================================================================
# Per-Feature Model Configuration
# =============================================================================


@dataclass(frozen=True)
class FeatureModelConfig:
    """Model tier and sampling settings for one AI feature."""

    tier: str  # "chat" or "chat_mini"
    max_tokens: int
    temperature: float


FEATURE_MODEL_CONFIG: Dict[str, FeatureModelConfig] = {
    "AI_DECISIONING": FeatureModelConfig(tier="chat", max_tokens=2000, temperature=0.2),
}


def get_feature_model_config(feature: str) -> FeatureModelConfig:
    """Return the model settings for a feature key (e.g. ``AI_DECISIONING``)."""
    try:
        return FEATURE_MODEL_CONFIG[feature]
    except KeyError:
        raise ValueError(
            f"Unknown AI feature: {feature}. "
            f"Available features: {list(FEATURE_MODEL_CONFIG.keys())}"
        ) from None


# =============================================================================
# Lazy Client Initialization
# =============================================================================

_config: Optional[AzureOpenAIConfig] = None
_async_client: Optional[AsyncAzureOpenAI] = None


def get_config() -> AzureOpenAIConfig:
    """Load (once) and return the Azure OpenAI configuration.

    Raises:
        ValueError: If required environment variables are missing
    """
    global _config
    if _config is None:
        _config = AzureOpenAIConfig()
        _config.log_configuration()
    return _config


def get_async_client() -> AsyncAzureOpenAI:
    """Return the shared asynchronous Azure OpenAI client, creating it on first use."""
    global _async_client
    if _async_client is None:
        config = get_config()
        _async_client = AsyncAzureOpenAI(
            api_key=config.api_key,
            api_version=config.chat_api_version,
            azure_endpoint=config.endpoint,
        )
        logger.info("Azure OpenAI async client initialized")
    return _async_client


def get_deployment_for_feature(feature: str) -> str:
    """Map a feature key to its Azure deployment name."""
    config = get_config()
    tier = get_feature_model_config(feature).tier
    if tier == "chat":
        return config.deployment_chat
    return config.deployment_chat_mini


def is_configured() -> bool:
    """True when the required Azure OpenAI variables are present."""
    return bool(os.getenv("AZURE_OPENAI_ENDPOINT") and os.getenv("AZURE_OPENAI_KEY"))


__all__ = [
    "AzureOpenAIConfig",
    "FeatureModelConfig",
    "FEATURE_MODEL_CONFIG",
    "get_feature_model_config",
    "get_config",
    "get_async_client",
    "get_deployment_for_feature",
    "is_configured",
]
