"""Provider identities supported by the gateway."""

from __future__ import annotations

from enum import Enum


class Providers(str, Enum):
    """Closed set of provider identities."""

    OPENAI = "OpenAI"
    AZURE = "Azure"
    CLAUDE = "Claude"
    OLLAMA = "Ollama"
    OPENROUTER = "Openrouter"
    DEEPSEEK = "Deepseek"
    XAI = "Xai"
    GOOGLE = "Google"
    CUSTOM = "Custom"
    UNSUPPORTED = "Unsupported"

    @classmethod
    def parse(cls, value: str) -> "Providers":
        """Map a stored provider string to its identity, case-insensitively.

        Unknown strings map to ``UNSUPPORTED``.
        """
        normalized = (value or "").strip().lower()
        for provider in cls:
            if provider is cls.UNSUPPORTED:
                continue
            if provider.value.lower() == normalized:
                return provider
        return cls.UNSUPPORTED

    @property
    def requires_model(self) -> bool:
        # Azure encodes the model in the deployment, Google in the endpoint path
        return self not in (Providers.AZURE, Providers.GOOGLE, Providers.UNSUPPORTED)


SUPPORTED_PROVIDERS = [p for p in Providers if p is not Providers.UNSUPPORTED]
