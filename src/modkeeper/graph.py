"""LangGraph-based keeper run for one active item.

Implements the run as a linear state graph; every node may end the run with
a terminal outcome:
  1: read_active_item   -> NO_ACTIVE_ITEM
  2: load_item          -> ALREADY_RESOLVED
  3: check_flag         -> ALREADY_FLAGGED
  4: resolve_content    -> NO_RETRIEVABLE_TEXT
  5: score_content      -> PASSED
  6: recheck_flag       -> ALREADY_FLAGGED / DRY_RUN
  7: submit_flag        -> FLAGGED / ACTION_FAILED

The flag is re-read in step 6 immediately before the mutating call; at most
one mutating call is issued per run.
"""
from __future__ import annotations

import logging
from typing import Any, TypedDict

from langgraph.graph import END, StateGraph

from .ledger import LedgerClient
from .orchestrator import Orchestrator
from .resolver import ContentResolver
from .state_schema import ItemRecord, OutcomeKind, ResolvedText, RunOutcome, Verdict

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Graph State
# ---------------------------------------------------------------------------

class RunState(TypedDict, total=False):
    dry_run: bool
    item_id: int
    item: ItemRecord
    source: ResolvedText
    verdict: Verdict
    outcome: RunOutcome


STEPS = (
    "read_active_item",
    "load_item",
    "check_flag",
    "resolve_content",
    "score_content",
    "recheck_flag",
    "submit_flag",
)


# ---------------------------------------------------------------------------
# Keeper Graph
# ---------------------------------------------------------------------------

class KeeperGraph:
    """Builds and runs the LangGraph moderation run against one ledger."""

    def __init__(
        self,
        ledger: LedgerClient,
        resolver: ContentResolver,
        orchestrator: Orchestrator,
        *,
        dry_run: bool = False,
    ):
        self.ledger = ledger
        self.resolver = resolver
        self.orchestrator = orchestrator
        self.dry_run = dry_run
        self.graph = self._build_graph()

    def _build_graph(self) -> Any:
        builder = StateGraph(RunState)

        for step in STEPS:
            builder.add_node(step, getattr(self, f"_node_{step}"))

        builder.set_entry_point(STEPS[0])
        for step, following in zip(STEPS, STEPS[1:]):
            builder.add_conditional_edges(
                step,
                self._route_after_step,
                {"continue": following, "end": END},
            )
        builder.add_edge(STEPS[-1], END)

        return builder.compile()

    @staticmethod
    def _route_after_step(state: RunState) -> str:
        return "end" if state.get("outcome") is not None else "continue"

    @staticmethod
    def _finish(kind: OutcomeKind, state: RunState, **extra: Any) -> dict:
        outcome = RunOutcome(
            kind=kind,
            item_id=state.get("item_id"),
            verdict=extra.pop("verdict", state.get("verdict")),
            source=state.get("source"),
            **extra,
        )
        return {"outcome": outcome}

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def _node_read_active_item(self, state: RunState) -> dict:
        item_id = self.ledger.get_active_item_id()
        logger.info("active item id: %s", item_id)
        if not item_id:
            return {"outcome": RunOutcome(kind=OutcomeKind.NO_ACTIVE_ITEM)}
        return {"item_id": int(item_id)}

    def _node_load_item(self, state: RunState) -> dict:
        item = self.ledger.get_item(state["item_id"])
        if item.resolved:
            return self._finish(OutcomeKind.ALREADY_RESOLVED, state)
        logger.info("item %d content ref: %s", item.id, item.content_ref[:200])
        return {"item": item}

    def _node_check_flag(self, state: RunState) -> dict:
        if self.ledger.is_flagged(state["item_id"]):
            return self._finish(OutcomeKind.ALREADY_FLAGGED, state)
        return {"item_id": state["item_id"]}

    def _node_resolve_content(self, state: RunState) -> dict:
        item = state["item"]
        source = self.resolver.resolve(item.content_ref, item.digest_hex)
        if source is None or not source.text.strip():
            return self._finish(OutcomeKind.NO_RETRIEVABLE_TEXT, state)
        logger.info(
            "resolved %d chars via %s: %r",
            len(source.text),
            source.endpoint or source.scheme,
            source.preview(),
        )
        return {"source": source}

    def _node_score_content(self, state: RunState) -> dict:
        verdict = self.orchestrator.decide(state["source"].text)
        if not verdict.flagged:
            return self._finish(OutcomeKind.PASSED, state, verdict=verdict)
        logger.info("thresholds exceeded (%s): %s", verdict.provider.value, ", ".join(verdict.reasons))
        return {"verdict": verdict}

    def _node_recheck_flag(self, state: RunState) -> dict:
        if self.ledger.is_flagged(state["item_id"]):
            logger.info("item %d was flagged by a concurrent run", state["item_id"])
            return self._finish(OutcomeKind.ALREADY_FLAGGED, state)
        if state.get("dry_run"):
            return self._finish(OutcomeKind.DRY_RUN, state)
        return {"item_id": state["item_id"]}

    def _node_submit_flag(self, state: RunState) -> dict:
        try:
            receipt = self.ledger.set_flag(state["item_id"], True)
        except Exception as e:  # noqa: BLE001
            logger.error("setModerationFlag(%d, true) failed: %s", state["item_id"], e)
            return self._finish(OutcomeKind.ACTION_FAILED, state, error=str(e))
        return self._finish(OutcomeKind.FLAGGED, state, receipt=receipt)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> RunOutcome:
        """Execute one full run from step 1; nothing is carried between runs."""
        result = self.graph.invoke({"dry_run": self.dry_run})
        outcome = result["outcome"]
        log = logger.error if outcome.kind.is_failure else logger.info
        log("outcome: %s", outcome.describe())
        return outcome
