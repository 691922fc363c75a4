"""Arbitrum (classic) bridge implementation on top of ``Web3Ledger``.

This is the SDK-backed counterpart of ``bridgeflow.simulated.SimulatedBridge``.
It talks to the standard bridge contracts directly:

- L1 ``Inbox``: ``depositEth`` and the ``InboxMessageDelivered*`` events that
  carry the sequence number of every L1→L2 message.
- L1 ``GatewayRouter``: token → gateway / L2 address mapping and token
  deposits (``outboundTransfer`` with the retryable fee parameters).
- L2 ``GatewayRouter``: token withdrawals.
- ``ArbSys`` precompile: native withdrawals and ``L2ToL1Transaction`` events.

Fee computation is intentionally not done here: the submission cost and L2
gas parameters come from configuration and are forwarded as-is.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from eth_abi import encode
from web3 import Web3

from bridgeflow.bridge import calculate_request_id, calculate_retryable_redeem_hash
from bridgeflow.config import BridgeConfig
from bridgeflow.ledger import LedgerContext
from bridgeflow.models import PendingTransaction, TxReceipt, WithdrawalEvent
from bridgeflow.web3_ledger import Web3Ledger

INBOX_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "depositEth",
        "stateMutability": "payable",
        "inputs": [{"name": "maxSubmissionCost", "type": "uint256"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "event",
        "name": "InboxMessageDelivered",
        "anonymous": False,
        "inputs": [
            {"name": "messageNum", "type": "uint256", "indexed": True},
            {"name": "data", "type": "bytes", "indexed": False},
        ],
    },
    {
        "type": "event",
        "name": "InboxMessageDeliveredFromOrigin",
        "anonymous": False,
        "inputs": [{"name": "messageNum", "type": "uint256", "indexed": True}],
    },
]

L1_GATEWAY_ROUTER_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "getGateway",
        "stateMutability": "view",
        "inputs": [{"name": "_token", "type": "address"}],
        "outputs": [{"name": "gateway", "type": "address"}],
    },
    {
        "type": "function",
        "name": "calculateL2TokenAddress",
        "stateMutability": "view",
        "inputs": [{"name": "l1ERC20", "type": "address"}],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "type": "function",
        "name": "outboundTransfer",
        "stateMutability": "payable",
        "inputs": [
            {"name": "_token", "type": "address"},
            {"name": "_to", "type": "address"},
            {"name": "_amount", "type": "uint256"},
            {"name": "_maxGas", "type": "uint256"},
            {"name": "_gasPriceBid", "type": "uint256"},
            {"name": "_data", "type": "bytes"},
        ],
        "outputs": [{"name": "", "type": "bytes"}],
    },
]

L2_GATEWAY_ROUTER_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "outboundTransfer",
        "stateMutability": "payable",
        "inputs": [
            {"name": "_l1Token", "type": "address"},
            {"name": "_to", "type": "address"},
            {"name": "_amount", "type": "uint256"},
            {"name": "_data", "type": "bytes"},
        ],
        "outputs": [{"name": "", "type": "bytes"}],
    },
    {
        "type": "event",
        "name": "WithdrawalInitiated",
        "anonymous": False,
        "inputs": [
            {"name": "l1Token", "type": "address", "indexed": False},
            {"name": "_from", "type": "address", "indexed": True},
            {"name": "_to", "type": "address", "indexed": True},
            {"name": "_l2ToL1Id", "type": "uint256", "indexed": True},
            {"name": "_exitNum", "type": "uint256", "indexed": False},
            {"name": "_amount", "type": "uint256", "indexed": False},
        ],
    },
]

ARB_SYS_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "withdrawEth",
        "stateMutability": "payable",
        "inputs": [{"name": "destination", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "event",
        "name": "L2ToL1Transaction",
        "anonymous": False,
        "inputs": [
            {"name": "caller", "type": "address", "indexed": False},
            {"name": "destination", "type": "address", "indexed": True},
            {"name": "uniqueId", "type": "uint256", "indexed": True},
            {"name": "batchNumber", "type": "uint256", "indexed": True},
            {"name": "indexInBatch", "type": "uint256", "indexed": False},
            {"name": "arbBlockNum", "type": "uint256", "indexed": False},
            {"name": "ethBlockNum", "type": "uint256", "indexed": False},
            {"name": "timestamp", "type": "uint256", "indexed": False},
            {"name": "callvalue", "type": "uint256", "indexed": False},
            {"name": "data", "type": "bytes", "indexed": False},
        ],
    },
]

ERC20_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "approve",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "spender", "type": "address"}, {"name": "amount", "type": "uint256"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

INBOX = "ArbInbox"
L1_ROUTER = "ArbL1GatewayRouter"
L2_ROUTER = "ArbL2GatewayRouter"
ARB_SYS = "ArbSys"
ERC20 = "BridgeERC20"

TOPIC_INBOX_MESSAGE_DELIVERED = Web3.to_hex(Web3.keccak(text="InboxMessageDelivered(uint256,bytes)"))
TOPIC_INBOX_MESSAGE_FROM_ORIGIN = Web3.to_hex(Web3.keccak(text="InboxMessageDeliveredFromOrigin(uint256)"))
TOPIC_WITHDRAWAL_INITIATED = Web3.to_hex(
    Web3.keccak(text="WithdrawalInitiated(address,address,address,uint256,uint256,uint256)")
)
TOPIC_L2_TO_L1_TRANSACTION = Web3.to_hex(
    Web3.keccak(
        text="L2ToL1Transaction(address,address,uint256,uint256,uint256,uint256,uint256,uint256,uint256,bytes)"
    )
)


def _hex(value: Any) -> str:
    return value.lower() if isinstance(value, str) else Web3.to_hex(value).lower()


def _topics(log: Any) -> List[str]:
    return [_hex(t) for t in (log.get("topics") or [])]


@dataclass
class ArbitrumBridgeConfig:
    """Addresses and fee inputs for ``ArbitrumBridge``."""

    inbox: str
    l1_gateway_router: str
    l2_gateway_router: str
    arb_sys: str
    max_submission_cost: int
    l2_max_gas: int
    l2_gas_price_bid: int

    @classmethod
    def from_bridge_config(cls, cfg: BridgeConfig) -> "ArbitrumBridgeConfig":
        return cls(
            inbox=str(cfg.inbox),
            l1_gateway_router=str(cfg.l1_gateway_router),
            l2_gateway_router=str(cfg.l2_gateway_router),
            arb_sys=cfg.arb_sys,
            max_submission_cost=int(cfg.max_submission_cost),
            l2_max_gas=int(cfg.l2_max_gas),
            l2_gas_price_bid=int(cfg.l2_gas_price_bid),
        )


class ArbitrumBridge:
    """``Bridge`` implementation for an L1/L2 pair of ``Web3Ledger`` identities."""

    def __init__(self, ctx: LedgerContext, config: ArbitrumBridgeConfig) -> None:
        l1, l2 = ctx.l1_ledger, ctx.l2_ledger
        if not isinstance(l1, Web3Ledger) or not isinstance(l2, Web3Ledger):
            raise TypeError("ArbitrumBridge requires Web3Ledger identities on both sides")

        self._l1: Web3Ledger = l1
        self._l2: Web3Ledger = l2
        self._config = config

        l1.artifacts.register(INBOX, INBOX_ABI)
        l1.artifacts.register(L1_ROUTER, L1_GATEWAY_ROUTER_ABI)
        l1.artifacts.register(ERC20, ERC20_ABI)
        l2.artifacts.register(L2_ROUTER, L2_GATEWAY_ROUTER_ABI)
        l2.artifacts.register(ARB_SYS, ARB_SYS_ABI)

    # -------------
    # Mapping / deposits (L1)
    # -------------

    def l2_token_address(self, l1_token: str) -> str:
        return str(self._l1.call(self._config.l1_gateway_router, L1_ROUTER, "calculateL2TokenAddress", [Web3.to_checksum_address(l1_token)]))

    def gateway_for(self, l1_token: str) -> str:
        return str(self._l1.call(self._config.l1_gateway_router, L1_ROUTER, "getGateway", [Web3.to_checksum_address(l1_token)]))

    def approve_token(self, l1_token: str, amount: int) -> PendingTransaction:
        # The token gateway (not the router) ends up pulling the funds.
        gateway = self.gateway_for(l1_token)
        return self._l1.transact(l1_token, ERC20, "approve", [Web3.to_checksum_address(gateway), int(amount)])

    def deposit_eth(self, amount: int) -> PendingTransaction:
        cost = self._config.max_submission_cost
        return self._l1.transact(self._config.inbox, INBOX, "depositEth", [cost], value=int(amount) + cost)

    def deposit(self, l1_token: str, amount: int) -> PendingTransaction:
        cfg = self._config
        data = encode(["uint256", "bytes"], [cfg.max_submission_cost, b""])
        value = cfg.max_submission_cost + cfg.l2_max_gas * cfg.l2_gas_price_bid
        return self._l1.transact(
            cfg.l1_gateway_router,
            L1_ROUTER,
            "outboundTransfer",
            [
                Web3.to_checksum_address(l1_token),
                self._l1.address,
                int(amount),
                cfg.l2_max_gas,
                cfg.l2_gas_price_bid,
                data,
            ],
            value=value,
        )

    # -------------
    # Message tracking
    # -------------

    def inbox_sequence_numbers(self, receipt: TxReceipt) -> List[int]:
        inbox = self._config.inbox.lower()
        wanted = {TOPIC_INBOX_MESSAGE_DELIVERED, TOPIC_INBOX_MESSAGE_FROM_ORIGIN}
        out: List[int] = []
        for log in receipt.logs:
            if str(log.get("address", "")).lower() != inbox:
                continue
            topics = _topics(log)
            if len(topics) >= 2 and topics[0] in wanted:
                out.append(int(topics[1], 16))
        return out

    def l2_transaction_hash(self, seq_num: int) -> str:
        return calculate_request_id(seq_num, self._l2.chain_id)

    def l2_retryable_hash(self, seq_num: int) -> str:
        return calculate_retryable_redeem_hash(seq_num, self._l2.chain_id)

    # -------------
    # Withdrawals (L2)
    # -------------

    def withdraw_eth(self, amount: int) -> PendingTransaction:
        return self._l2.transact(self._config.arb_sys, ARB_SYS, "withdrawEth", [self._l2.address], value=int(amount))

    def withdraw_erc20(self, l1_token: str, amount: int) -> PendingTransaction:
        return self._l2.transact(
            self._config.l2_gateway_router,
            L2_ROUTER,
            "outboundTransfer",
            [Web3.to_checksum_address(l1_token), self._l2.address, int(amount), b""],
        )

    def withdrawals_in_l2_transaction(self, receipt: TxReceipt) -> List[WithdrawalEvent]:
        """Decode withdrawal events from an L2 receipt.

        Token withdrawals emit both a gateway ``WithdrawalInitiated`` (which
        carries the token amount) and a zero-value ``L2ToL1Transaction``; the
        gateway events are returned when present so the amount is meaningful.
        """

        initiated = self._l2.contract(L2_ROUTER, self._config.l2_gateway_router).events.WithdrawalInitiated()
        outbox = self._l2.contract(ARB_SYS, self._config.arb_sys).events.L2ToL1Transaction()

        token_events: List[WithdrawalEvent] = []
        native_events: List[WithdrawalEvent] = []
        for log in receipt.logs:
            topics = _topics(log)
            if not topics:
                continue
            if topics[0] == TOPIC_WITHDRAWAL_INITIATED:
                args = dict(initiated.process_log(log)["args"])
                token_events.append(
                    WithdrawalEvent(
                        caller=str(args["_from"]),
                        destination=str(args["_to"]),
                        amount=int(args["_amount"]),
                        token=str(args["l1Token"]),
                        unique_id=int(args["_l2ToL1Id"]),
                        raw=args,
                    )
                )
            elif topics[0] == TOPIC_L2_TO_L1_TRANSACTION:
                args = dict(outbox.process_log(log)["args"])
                native_events.append(
                    WithdrawalEvent(
                        caller=str(args["caller"]),
                        destination=str(args["destination"]),
                        amount=int(args["callvalue"]),
                        token=None,
                        unique_id=int(args["uniqueId"]),
                        raw=args,
                    )
                )
        return token_events or native_events
