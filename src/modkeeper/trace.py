from __future__ import annotations

from .state_schema import RunOutcome


def build_run_trace(outcome: RunOutcome) -> dict:
    """Build trace strictly from the run outcome; text is limited to a preview."""
    verdict = outcome.verdict
    source = outcome.source
    receipt = outcome.receipt
    return {
        "item_id": outcome.item_id,
        "outcome": outcome.kind.value,
        "exit_code": outcome.exit_code,
        "verdict": {
            "flagged": verdict.flagged,
            "provider": verdict.provider.value,
            "reasons": list(verdict.reasons),
        }
        if verdict
        else None,
        "source": {
            "scheme": source.scheme,
            "endpoint": source.endpoint,
            "chars": len(source.text),
            "preview": source.preview(),
        }
        if source
        else None,
        "receipt": {
            "tx_hash": receipt.tx_hash,
            "block_number": receipt.block_number,
            "status": receipt.status,
        }
        if receipt
        else None,
        "error": outcome.error,
    }
