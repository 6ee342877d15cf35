from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .state_schema import ProviderId


def _frozen(table: Mapping) -> Mapping:
    return MappingProxyType(dict(table))


@dataclass(frozen=True, slots=True)
class ComboRule:
    """Weighted sum of several attribute scores compared against one threshold."""

    name: str
    weights: Mapping[str, float]
    threshold: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "weights", _frozen(self.weights))

    def total(self, scores: Mapping[str, float]) -> float:
        return sum(weight * scores.get(attr, 0.0) for attr, weight in self.weights.items())


@dataclass(frozen=True, slots=True)
class Policy:
    """Threshold table plus combination rules; read-only once constructed."""

    thresholds: Mapping[str, float]
    combos: tuple[ComboRule, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "thresholds", _frozen(self.thresholds))
        object.__setattr__(self, "combos", tuple(self.combos))

    @property
    def attributes(self) -> tuple[str, ...]:
        """Every attribute the policy references, in declaration order."""
        seen: dict[str, None] = dict.fromkeys(self.thresholds)
        for combo in self.combos:
            seen.update(dict.fromkeys(combo.weights))
        return tuple(seen)


@dataclass(frozen=True, slots=True)
class PolicySet:
    policies: Mapping[ProviderId, Policy] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "policies", _frozen(self.policies))

    @classmethod
    def default(cls) -> "PolicySet":
        return cls(
            policies={
                ProviderId.PERSPECTIVE: Policy(thresholds=dict(PERSPECTIVE_THRESHOLDS)),
                ProviderId.CLAUDE: Policy(thresholds={c: 1.0 for c in MODERATION_CATEGORIES}),
            }
        )

    def for_provider(self, provider: ProviderId) -> Policy:
        return self.policies.get(provider) or Policy(thresholds={})

    def merged(self, overrides: dict[ProviderId, Policy]) -> "PolicySet":
        policies = dict(self.policies)
        policies.update(overrides)
        return PolicySet(policies=policies)


PERSPECTIVE_THRESHOLDS = {
    "SEVERE_TOXICITY": 0.85,
    "THREAT": 0.80,
    "SEXUALLY_EXPLICIT": 0.85,
    "IDENTITY_ATTACK": 0.80,
    "INSULT": 0.90,
    "TOXICITY": 0.92,
}

PERSPECTIVE_ATTRIBUTES = frozenset(
    {
        "TOXICITY",
        "SEVERE_TOXICITY",
        "IDENTITY_ATTACK",
        "INSULT",
        "PROFANITY",
        "THREAT",
        "SEXUALLY_EXPLICIT",
        "FLIRTATION",
    }
)

# categories the categorical classifier may report; FLAGGED covers a bare flagged=true
MODERATION_CATEGORIES = (
    "HARASSMENT",
    "HATE",
    "SEXUAL",
    "VIOLENCE",
    "SELF_HARM",
    "ILLICIT",
    "FLAGGED",
)
