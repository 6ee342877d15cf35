"""Ledger collaborator: reads item state and submits the single flagging call."""
from __future__ import annotations

import logging
import time
from typing import Protocol

from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception

from .abi import GAME_ABI, MESSAGE_FIELDS
from .state_schema import ItemRecord, TxReceipt

logger = logging.getLogger(__name__)

# requests' transport errors are OSErrors; older web3 raises ValueError for RPC errors
_READ_ERRORS = (Web3Exception, OSError, ValueError)


class LedgerError(RuntimeError):
    pass


class ActionRejected(LedgerError):
    """The mutating call was rejected, reverted or never confirmed."""


class LedgerClient(Protocol):
    def get_active_item_id(self) -> int: ...

    def get_item(self, item_id: int) -> ItemRecord: ...

    def is_flagged(self, item_id: int) -> bool: ...

    def set_flag(self, item_id: int, flagged: bool) -> TxReceipt: ...


def item_from_message(item_id: int, message: tuple | list) -> ItemRecord:
    fields = dict(zip(MESSAGE_FIELDS, message))
    content_hash = fields.pop("contentHash", b"") or b""
    uri = fields.pop("uri", "") or ""
    resolved = bool(fields.pop("resolved", False))
    fields.pop("id", None)
    return ItemRecord(
        id=item_id,
        content_ref=str(uri),
        content_hash=bytes(content_hash),
        resolved=resolved,
        extra=fields,
    )


class Web3LedgerClient:
    def __init__(
        self,
        rpc_url: str,
        game_address: str,
        private_key: str,
        *,
        chain_id: int | None = None,
        timeout: float = 10.0,
        confirmations: int = 1,
        tx_timeout: float = 120.0,
        web3: Web3 | None = None,
    ):
        self.w3 = web3 or Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        self.address = Web3.to_checksum_address(game_address)
        self.contract = self.w3.eth.contract(address=self.address, abi=GAME_ABI)
        self.account = self.w3.eth.account.from_key(private_key)
        self.chain_id = chain_id
        self.confirmations = confirmations
        self.tx_timeout = tx_timeout

    @property
    def account_address(self) -> str:
        return self.account.address

    def _read(self, label: str, call):
        try:
            return call()
        except _READ_ERRORS as e:
            raise LedgerError(f"ledger read {label} failed: {e}") from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_active_item_id(self) -> int:
        return int(self._read("activeMessageId", self.contract.functions.activeMessageId().call) or 0)

    def get_item(self, item_id: int) -> ItemRecord:
        message = self._read("messages", self.contract.functions.messages(item_id).call)
        return item_from_message(item_id, message)

    def is_flagged(self, item_id: int) -> bool:
        return bool(self._read("modFlagged", self.contract.functions.modFlagged(item_id).call))

    def has_contract_code(self) -> bool:
        code = self._read("getCode", lambda: self.w3.eth.get_code(self.address))
        return bool(code)

    def moderation_signer(self) -> str:
        return str(self._read("moderationSigner", self.contract.functions.moderationSigner().call))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_flag(self, item_id: int, flagged: bool) -> TxReceipt:
        try:
            tx_params = {
                "from": self.account.address,
                "nonce": self.w3.eth.get_transaction_count(self.account.address, "pending"),
            }
            if self.chain_id is not None:
                tx_params["chainId"] = self.chain_id
            tx = self.contract.functions.setModerationFlag(item_id, flagged).build_transaction(tx_params)
            signed = self.account.sign_transaction(tx)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
            logger.info("setModerationFlag(%d, %s) sent: %s", item_id, flagged, Web3.to_hex(tx_hash))
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.tx_timeout)
        except TimeExhausted as e:
            raise ActionRejected(f"transaction not mined within {self.tx_timeout:.0f}s") from e
        except _READ_ERRORS as e:
            raise ActionRejected(f"setModerationFlag rejected: {e}") from e

        result = TxReceipt(
            tx_hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=receipt.get("blockNumber"),
            status=int(receipt.get("status", 0)),
        )
        if result.status != 1:
            raise ActionRejected(f"setModerationFlag reverted in tx {result.tx_hash}")
        self._wait_for_confirmations(result)
        return result

    def _wait_for_confirmations(self, receipt: TxReceipt) -> None:
        if self.confirmations <= 1 or receipt.block_number is None:
            return
        target = receipt.block_number + self.confirmations - 1
        deadline = time.monotonic() + self.tx_timeout
        while self._read("blockNumber", lambda: self.w3.eth.block_number) < target:
            if time.monotonic() > deadline:
                raise ActionRejected(
                    f"tx {receipt.tx_hash} did not reach {self.confirmations} confirmations"
                )
            time.sleep(1.0)
