from __future__ import annotations

import logging

from .decision import evaluate
from .policy_tables import PolicySet
from .providers import ScoreProvider, Unavailable
from .state_schema import ProviderId, Verdict

logger = logging.getLogger(__name__)

NO_PROVIDER_REASON = "no provider available"


class Orchestrator:
    """Tries providers in priority order; the first usable score map decides.

    Results are never aggregated across providers. When no provider produces
    a score map the verdict is a pass, never a flag.
    """

    def __init__(
        self,
        providers: list[ScoreProvider],
        policies: PolicySet | None = None,
    ):
        self.providers = list(providers)
        self.policies = policies or PolicySet.default()

    @property
    def provider_ids(self) -> list[ProviderId]:
        return [p.provider_id for p in self.providers]

    def decide(self, text: str) -> Verdict:
        for provider in self.providers:
            result = provider.score(text)
            if isinstance(result, Unavailable):
                logger.info("provider %s unavailable: %s", result.provider.value, result.reason)
                continue

            logger.info("scores from %s: %s", result.provider.value, result.scores)
            policy = self.policies.for_provider(result.provider)
            return evaluate(result.scores, policy, provider=result.provider)

        return Verdict(flagged=False, reasons=(NO_PROVIDER_REASON,), provider=ProviderId.NONE)
