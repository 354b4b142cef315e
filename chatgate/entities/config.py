"""Stored provider configuration and proxy settings."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class GenericConfig(BaseModel):
    """Stored connection config of one model entry."""

    provider: str
    config: str


class RawConfig(BaseModel):
    """Base for provider config shapes (camelCase in storage)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class RawAzureConfig(RawConfig):
    api_key: str
    endpoint: str
    api_version: str
    deployment_id: str


class RawOpenAIConfig(RawConfig):
    """Shared by OpenAI, OpenRouter and Custom endpoints."""

    api_key: str
    model: Optional[str] = None
    endpoint: Optional[str] = None
    org_id: Optional[str] = None


class RawDeepseekConfig(RawConfig):
    api_key: str
    model: Optional[str] = None
    endpoint: Optional[str] = None


class RawXaiConfig(RawConfig):
    api_key: str
    model: Optional[str] = None
    endpoint: Optional[str] = None


class RawClaudeConfig(RawConfig):
    api_key: str
    model: str
    api_version: str
    endpoint: Optional[str] = None


class RawOllamaConfig(RawConfig):
    endpoint: str
    model: Optional[str] = None


class RawGoogleConfig(RawConfig):
    api_key: str
    model: str
    api_version: str
    endpoint: Optional[str] = None


class ProxySetting(BaseModel):
    """Network proxy setting.

    With both ``http`` and ``https`` unset the proxy applies to all protocols.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    on: bool = False
    server: str = ""
    http: bool = False
    https: bool = False
    username: Optional[str] = None
    password: Optional[str] = None
