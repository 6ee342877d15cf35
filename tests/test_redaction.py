import logging
import unittest

from src.modkeeper.redaction import SecretRedactingFilter, redact_payload, redact_text
from src.modkeeper.state_schema import OutcomeKind, ProviderId, ResolvedText, RunOutcome, TxReceipt, Verdict
from src.modkeeper.trace import build_run_trace


class TestRedaction(unittest.TestCase):
    def test_query_keys_are_masked(self):
        text = "POST https://commentanalyzer.googleapis.com/v1alpha1/comments:analyze?key=AIzaSecret&x=1"
        redacted = redact_text(text)
        self.assertNotIn("AIzaSecret", redacted)
        self.assertIn("key=[REDACTED]&x=1", redacted)

    def test_bearer_and_anthropic_keys_are_masked(self):
        redacted = redact_text("Authorization: Bearer abc.def-123 and sk-ant-api03-XYZ_789")
        self.assertNotIn("abc.def-123", redacted)
        self.assertNotIn("XYZ_789", redacted)

    def test_transaction_hashes_survive(self):
        tx_hash = "0x" + "ab" * 32
        self.assertEqual(redact_text(f"sent {tx_hash}"), f"sent {tx_hash}")

    def test_payload_masks_secret_keys_only_when_set(self):
        payload = redact_payload({"private_key": "0xabc", "anthropic_api_key": None, "rpc_url": "https://rpc?key=s"})
        self.assertEqual(payload["private_key"], "[REDACTED]")
        self.assertIsNone(payload["anthropic_api_key"])
        self.assertEqual(payload["rpc_url"], "https://rpc?key=[REDACTED]")

    def test_log_filter_masks_message_and_args(self):
        record = logging.LogRecord(
            "modkeeper", logging.INFO, __file__, 1, "fetch %s failed", ("https://h/x?token=t0k3n",), None
        )
        self.assertTrue(SecretRedactingFilter().filter(record))
        self.assertNotIn("t0k3n", record.getMessage())


class TestRunTrace(unittest.TestCase):
    def test_trace_for_flagged_run(self):
        outcome = RunOutcome(
            kind=OutcomeKind.FLAGGED,
            item_id=4,
            verdict=Verdict(flagged=True, reasons=("THREAT=0.90≥0.8",), provider=ProviderId.PERSPECTIVE),
            receipt=TxReceipt(tx_hash="0xfeed", block_number=9, status=1),
            source=ResolvedText(text="x" * 500, scheme="ipfs", endpoint="https://ipfs.io/ipfs/cid"),
        )
        trace = build_run_trace(outcome)
        self.assertEqual(trace["outcome"], "flagged")
        self.assertEqual(trace["verdict"]["provider"], "perspective")
        self.assertEqual(trace["receipt"]["tx_hash"], "0xfeed")
        self.assertEqual(trace["source"]["chars"], 500)
        self.assertLess(len(trace["source"]["preview"]), 500)

    def test_trace_for_empty_run(self):
        trace = build_run_trace(RunOutcome(kind=OutcomeKind.NO_ACTIVE_ITEM))
        self.assertIsNone(trace["verdict"])
        self.assertIsNone(trace["source"])
        self.assertIsNone(trace["receipt"])
        self.assertEqual(trace["exit_code"], 0)


if __name__ == "__main__":
    unittest.main()
