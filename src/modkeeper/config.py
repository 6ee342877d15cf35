"""Process configuration, read once from the environment at startup."""
from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .llm import DEFAULT_MODEL
from .redaction import redact_payload
from .resolver import DEFAULT_IPFS_GATEWAYS, ResolverConfig
from .state_schema import ProviderId

logger = logging.getLogger(__name__)

REQUIRED_ENV = ("RPC_URL", "GAME_ADDRESS", "BOT_PRIVATE_KEY")

DEFAULT_PROVIDER_ORDER = (ProviderId.PERSPECTIVE, ProviderId.CLAUDE)


class ConfigError(ValueError):
    pass


def _clean(environ: Mapping[str, str], name: str) -> str:
    return (environ.get(name) or "").strip()


def _csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _number(environ: Mapping[str, str], name: str, default, cast, minimum=None):
    raw = _clean(environ, name)
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("ignoring malformed %s=%r, using %r", name, raw, default)
        return default
    if minimum is not None and value < minimum:
        logger.warning("ignoring out-of-range %s=%r, using %r", name, raw, default)
        return default
    return value


def _flag(environ: Mapping[str, str], name: str) -> bool:
    return _clean(environ, name).lower() in {"1", "true", "yes", "on"}


def parse_provider_order(value: str) -> tuple[ProviderId, ...]:
    if not value:
        return DEFAULT_PROVIDER_ORDER
    order: list[ProviderId] = []
    for name in _csv(value.lower()):
        try:
            provider = ProviderId(name)
        except ValueError:
            logger.warning("unknown provider %r in PROVIDER_ORDER, skipping", name)
            continue
        if provider is not ProviderId.NONE and provider not in order:
            order.append(provider)
    return tuple(order)


@dataclass(frozen=True, slots=True)
class KeeperSettings:
    rpc_url: str
    game_address: str
    private_key: str = field(repr=False)
    chain_id: int | None = None
    perspective_api_key: str | None = field(default=None, repr=False)
    perspective_languages: tuple[str, ...] = ()
    anthropic_api_key: str | None = field(default=None, repr=False)
    anthropic_model: str = DEFAULT_MODEL
    provider_order: tuple[ProviderId, ...] = DEFAULT_PROVIDER_ORDER
    policy_file: str | None = None
    max_text_chars: int = 10_000
    provider_max_chars: int = 5_000
    request_timeout: float = 10.0
    ipfs_gateways: tuple[str, ...] = DEFAULT_IPFS_GATEWAYS
    inline_text_prefix: str = "meow:text:"
    content_index_url: str | None = None
    content_index_key: str | None = field(default=None, repr=False)
    dry_run: bool = False
    tx_confirmations: int = 1
    tx_timeout: float = 120.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "KeeperSettings":
        env = os.environ if environ is None else environ

        missing = [name for name in REQUIRED_ENV if not _clean(env, name)]
        if missing:
            raise ConfigError(f"Missing required env: {', '.join(missing)}")

        gateways = _csv(_clean(env, "IPFS_GATEWAYS")) or DEFAULT_IPFS_GATEWAYS
        single_gateway = _clean(env, "IPFS_GATEWAY")
        if single_gateway:
            gateways = (single_gateway,) + tuple(g for g in gateways if g != single_gateway)

        return cls(
            rpc_url=_clean(env, "RPC_URL"),
            game_address=_clean(env, "GAME_ADDRESS"),
            private_key=_clean(env, "BOT_PRIVATE_KEY"),
            chain_id=_number(env, "CHAIN_ID", None, int, minimum=1),
            perspective_api_key=_clean(env, "PERSPECTIVE_API_KEY") or None,
            perspective_languages=_csv(_clean(env, "PERSPECTIVE_LANGUAGES")),
            anthropic_api_key=_clean(env, "ANTHROPIC_API_KEY") or None,
            anthropic_model=_clean(env, "ANTHROPIC_MODEL") or DEFAULT_MODEL,
            provider_order=parse_provider_order(_clean(env, "PROVIDER_ORDER")),
            policy_file=_clean(env, "POLICY_FILE") or None,
            max_text_chars=_number(env, "MAX_TEXT_CHARS", 10_000, int, minimum=1),
            provider_max_chars=_number(env, "PROVIDER_MAX_CHARS", 5_000, int, minimum=1),
            request_timeout=_number(env, "REQUEST_TIMEOUT", 10.0, float, minimum=0.1),
            ipfs_gateways=gateways,
            inline_text_prefix=_clean(env, "INLINE_TEXT_PREFIX") or "meow:text:",
            content_index_url=_clean(env, "CONTENT_INDEX_URL") or None,
            content_index_key=_clean(env, "CONTENT_INDEX_KEY") or None,
            dry_run=_flag(env, "DRY_RUN"),
            tx_confirmations=_number(env, "TX_CONFIRMATIONS", 1, int, minimum=1),
            tx_timeout=_number(env, "TX_TIMEOUT", 120.0, float, minimum=1.0),
        )

    def resolver_config(self) -> ResolverConfig:
        return ResolverConfig(
            max_chars=self.max_text_chars,
            timeout=self.request_timeout,
            ipfs_gateways=self.ipfs_gateways,
            inline_text_prefix=self.inline_text_prefix,
            content_index_url=self.content_index_url,
            content_index_key=self.content_index_key,
        )

    def summary(self) -> dict:
        """Loggable view of the settings with every credential masked."""
        return redact_payload(
            {
                "rpc_url": self.rpc_url,
                "game_address": self.game_address,
                "private_key": self.private_key,
                "chain_id": self.chain_id,
                "perspective_api_key": self.perspective_api_key,
                "anthropic_api_key": self.anthropic_api_key,
                "provider_order": [p.value for p in self.provider_order],
                "policy_file": self.policy_file,
                "max_text_chars": self.max_text_chars,
                "request_timeout": self.request_timeout,
                "ipfs_gateways": list(self.ipfs_gateways),
                "content_index_url": self.content_index_url,
                "dry_run": self.dry_run,
            }
        )
