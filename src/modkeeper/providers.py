from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union

from .state_schema import ProviderId


@dataclass(frozen=True, slots=True)
class ScoreMap:
    """Normalized attribute -> score map produced by one provider call."""

    provider: ProviderId
    scores: dict[str, float]

    @classmethod
    def zeroed(cls, provider: ProviderId, attributes: tuple[str, ...] | list[str]) -> "ScoreMap":
        return cls(provider=provider, scores={attr: 0.0 for attr in attributes})


@dataclass(frozen=True, slots=True)
class Unavailable:
    provider: ProviderId
    reason: str


ProviderResult = Union[ScoreMap, Unavailable]


class ScoreProvider(Protocol):
    provider_id: ProviderId

    def score(self, text: str) -> ProviderResult: ...


def clamp_score(value: object) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if number != number:  # NaN
        return 0.0
    return min(1.0, max(0.0, number))
