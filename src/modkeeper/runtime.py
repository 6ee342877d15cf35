from __future__ import annotations

from dataclasses import dataclass

import httpx

from .config import KeeperSettings
from .graph import KeeperGraph
from .ledger import LedgerClient, Web3LedgerClient
from .llm import ClaudeModerationProvider
from .loaders import load_policy_set
from .orchestrator import Orchestrator
from .perspective import PerspectiveProvider
from .policy_tables import PolicySet
from .providers import ScoreProvider
from .resolver import ContentResolver
from .state_schema import ProviderId


@dataclass(frozen=True, slots=True)
class RuntimeAssets:
    provider_ids: tuple[ProviderId, ...]
    configured_provider_ids: tuple[ProviderId, ...]
    gateway_count: int
    dry_run: bool


def build_providers(
    settings: KeeperSettings,
    policies: PolicySet,
    http_client: httpx.Client | None = None,
) -> list[ScoreProvider]:
    providers: list[ScoreProvider] = []
    for provider_id in settings.provider_order:
        attributes = policies.for_provider(provider_id).attributes
        if provider_id is ProviderId.PERSPECTIVE:
            providers.append(
                PerspectiveProvider(
                    settings.perspective_api_key,
                    attributes,
                    languages=settings.perspective_languages,
                    max_chars=settings.provider_max_chars,
                    timeout=settings.request_timeout,
                    client=http_client,
                )
            )
        elif provider_id is ProviderId.CLAUDE:
            providers.append(
                ClaudeModerationProvider(
                    settings.anthropic_api_key,
                    attributes,
                    model=settings.anthropic_model,
                    max_chars=settings.provider_max_chars,
                    timeout=settings.request_timeout,
                )
            )
    return providers


def configured_providers(settings: KeeperSettings) -> tuple[ProviderId, ...]:
    keys = {
        ProviderId.PERSPECTIVE: settings.perspective_api_key,
        ProviderId.CLAUDE: settings.anthropic_api_key,
    }
    return tuple(p for p in settings.provider_order if keys.get(p))


def build_keeper(
    settings: KeeperSettings,
    ledger: LedgerClient | None = None,
    policies: PolicySet | None = None,
) -> tuple[KeeperGraph, RuntimeAssets]:
    """Wire resolver, providers, orchestrator and ledger from one settings object.

    Raises ``PolicyError`` for an unreadable or invalid policy file.
    """
    policies = policies or load_policy_set(settings.policy_file)
    http_client = httpx.Client(timeout=settings.request_timeout, follow_redirects=True)

    resolver = ContentResolver(settings.resolver_config(), client=http_client)
    orchestrator = Orchestrator(build_providers(settings, policies, http_client), policies)
    if ledger is None:
        ledger = Web3LedgerClient(
            settings.rpc_url,
            settings.game_address,
            settings.private_key,
            chain_id=settings.chain_id,
            timeout=settings.request_timeout,
            confirmations=settings.tx_confirmations,
            tx_timeout=settings.tx_timeout,
        )

    keeper = KeeperGraph(ledger, resolver, orchestrator, dry_run=settings.dry_run)
    assets = RuntimeAssets(
        provider_ids=tuple(orchestrator.provider_ids),
        configured_provider_ids=configured_providers(settings),
        gateway_count=len(settings.ipfs_gateways),
        dry_run=settings.dry_run,
    )
    return keeper, assets
