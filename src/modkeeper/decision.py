from __future__ import annotations

from collections.abc import Mapping

from .policy_tables import Policy
from .state_schema import ProviderId, Verdict


def format_reason(attribute: str, value: float, threshold: float) -> str:
    return f"{attribute}={value:.2f}≥{threshold:g}"


def evaluate(
    scores: Mapping[str, float],
    policy: Policy,
    provider: ProviderId = ProviderId.NONE,
) -> Verdict:
    """Deterministic threshold check of one score map against one policy.

    Comparisons are inclusive. Reasons follow policy declaration order
    (thresholds first, then combination rules), never score magnitude.
    """
    reasons: list[str] = []
    for attr, threshold in policy.thresholds.items():
        value = float(scores.get(attr, 0.0))
        if value >= threshold:
            reasons.append(format_reason(attr, value, threshold))

    for combo in policy.combos:
        total = combo.total(dict(scores))
        if total >= combo.threshold:
            reasons.append(format_reason(combo.name, total, combo.threshold))

    return Verdict(flagged=bool(reasons), reasons=tuple(reasons), provider=provider)
