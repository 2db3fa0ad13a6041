"""Provider registry — which AI backends are usable, and their cached clients."""

from __future__ import annotations

from collections.abc import Callable, Mapping

from pydantic import SecretStr

from pullwise.core.config import Settings
from pullwise.core.constants import PROVIDER_CONFIGS, ProviderConfig
from pullwise.core.exceptions import (
    MissingCredentialError,
    NoProviderConfiguredError,
    UnknownProviderError,
)
from pullwise.core.logging import get_logger
from pullwise.core.models import AIProvider, ProviderInfo
from pullwise.llm.base import LLMProvider
from pullwise.llm.openai_provider import OpenAICompatibleProvider

logger = get_logger(__name__)

ClientFactory = Callable[[AIProvider], LLMProvider]


class ProviderRegistry:
    """Resolves provider ids to configured backends.

    Credentials are captured once at construction.  Network clients are built
    lazily, one per provider id, and reused for the registry's lifetime.
    """

    def __init__(
        self,
        credentials: Mapping[str, SecretStr | str | None],
        *,
        client_factory: ClientFactory | None = None,
        configs: tuple[ProviderConfig, ...] = PROVIDER_CONFIGS,
    ) -> None:
        self._configs = configs
        self._credentials: dict[str, SecretStr] = {}
        for setting, value in credentials.items():
            if isinstance(value, str):
                value = SecretStr(value)
            if value is not None and value.get_secret_value():
                self._credentials[setting] = value
        self._client_factory = client_factory or OpenAICompatibleProvider
        self._clients: dict[str, LLMProvider] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> ProviderRegistry:
        timeout = settings.ai_timeout_seconds
        return cls(
            settings.provider_credentials(),
            client_factory=lambda provider: OpenAICompatibleProvider(provider, timeout=timeout),
        )

    def _build(self, config: ProviderConfig, api_key: SecretStr) -> AIProvider:
        return AIProvider(
            id=config.id,
            name=config.name,
            model=config.model,
            base_url=config.base_url,
            api_key=api_key,
        )

    def list_available(self) -> list[ProviderInfo]:
        """Every provider with a credential, in priority order."""
        return [
            ProviderInfo(id=c.id, name=c.name)
            for c in self._configs
            if c.credential_setting in self._credentials
        ]

    def resolve(self, provider_id: str | None = None) -> AIProvider:
        """Pick the provider for a review.

        With an explicit id the provider must exist and have a credential.
        Without one, the first configured provider in priority order wins.

        Raises:
            UnknownProviderError: ``provider_id`` is not in the table.
            MissingCredentialError: ``provider_id`` exists but has no key.
            NoProviderConfiguredError: No id given and nothing is configured.
        """
        if provider_id:
            config = next((c for c in self._configs if c.id == provider_id), None)
            if config is None:
                raise UnknownProviderError(provider_id)
            api_key = self._credentials.get(config.credential_setting)
            if api_key is None:
                raise MissingCredentialError(config.name, config.credential_setting)
            return self._build(config, api_key)

        for config in self._configs:
            api_key = self._credentials.get(config.credential_setting)
            if api_key is not None:
                return self._build(config, api_key)
        raise NoProviderConfiguredError()

    def is_known(self, provider_id: str) -> bool:
        return any(c.id == provider_id for c in self._configs)

    def client_for(self, provider: AIProvider) -> LLMProvider:
        """Return the cached client for ``provider``, building it on first use."""
        client = self._clients.get(provider.id)
        if client is None:
            client = self._client_factory(provider)
            self._clients[provider.id] = client
            logger.info("llm_client_created", provider=provider.id, model=provider.model)
        return client

    async def close(self) -> None:
        """Close every client built so far."""
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
