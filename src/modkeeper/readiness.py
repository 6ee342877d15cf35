from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .ledger import LedgerError
from .runtime import RuntimeAssets


class PreflightLedger(Protocol):
    account_address: str

    def has_contract_code(self) -> bool: ...

    def moderation_signer(self) -> str: ...


@dataclass(frozen=True, slots=True)
class ReadinessGateResult:
    gate: str
    passed: bool
    details: str
    required: bool = True


@dataclass(frozen=True, slots=True)
class ReadinessReport:
    passed: bool
    gates: list[ReadinessGateResult]

    @property
    def failures(self) -> list[ReadinessGateResult]:
        return [g for g in self.gates if g.required and not g.passed]


def run_preflight(ledger: PreflightLedger, assets: RuntimeAssets) -> ReadinessReport:
    """Check the keeper can act before it reads any item.

    Contract code and signer gates are required; provider credentials are
    reported only, since a run with no provider still passes safely.
    """
    gates: list[ReadinessGateResult] = []

    try:
        has_code = ledger.has_contract_code()
        gates.append(
            ReadinessGateResult(
                gate="contract_code_present",
                passed=has_code,
                details="ok" if has_code else "no contract code at GAME_ADDRESS (check address / chain)",
            )
        )
    except LedgerError as exc:
        gates.append(
            ReadinessGateResult(gate="contract_code_present", passed=False, details=f"error:{exc}")
        )

    try:
        signer = ledger.moderation_signer()
        matches = signer.lower() == ledger.account_address.lower()
        gates.append(
            ReadinessGateResult(
                gate="moderation_signer_matches",
                passed=matches,
                details="ok" if matches else f"moderationSigner is {signer}, bot is {ledger.account_address}",
            )
        )
    except LedgerError as exc:
        gates.append(
            ReadinessGateResult(gate="moderation_signer_matches", passed=False, details=f"error:{exc}")
        )

    configured = assets.configured_provider_ids
    gates.append(
        ReadinessGateResult(
            gate="provider_credentials",
            passed=bool(configured),
            details=",".join(p.value for p in configured) if configured else "no provider has credentials",
            required=False,
        )
    )

    return ReadinessReport(passed=all(g.passed for g in gates if g.required), gates=gates)
