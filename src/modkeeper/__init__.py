"""Periodic content-moderation keeper for the active item of an on-chain message board."""

from .config import ConfigError, KeeperSettings
from .decision import evaluate
from .graph import KeeperGraph
from .ledger import ActionRejected, LedgerClient, LedgerError, Web3LedgerClient
from .llm import ClaudeModerationProvider
from .loaders import PolicyError, load_policy_set
from .orchestrator import Orchestrator
from .perspective import PerspectiveProvider
from .policy_tables import ComboRule, Policy, PolicySet
from .providers import ScoreMap, ScoreProvider, Unavailable
from .readiness import ReadinessGateResult, ReadinessReport, run_preflight
from .resolver import ContentResolver, ResolverConfig
from .runtime import RuntimeAssets, build_keeper
from .state_schema import ItemRecord, OutcomeKind, ProviderId, ResolvedText, RunOutcome, TxReceipt, Verdict

__all__ = [
    "ConfigError",
    "KeeperSettings",
    "evaluate",
    "KeeperGraph",
    "ActionRejected",
    "LedgerClient",
    "LedgerError",
    "Web3LedgerClient",
    "ClaudeModerationProvider",
    "PolicyError",
    "load_policy_set",
    "Orchestrator",
    "PerspectiveProvider",
    "ComboRule",
    "Policy",
    "PolicySet",
    "ScoreMap",
    "ScoreProvider",
    "Unavailable",
    "ReadinessGateResult",
    "ReadinessReport",
    "run_preflight",
    "ContentResolver",
    "ResolverConfig",
    "RuntimeAssets",
    "build_keeper",
    "ItemRecord",
    "OutcomeKind",
    "ProviderId",
    "ResolvedText",
    "RunOutcome",
    "TxReceipt",
    "Verdict",
]
