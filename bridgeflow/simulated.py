"""In-memory, single-process two-ledger simulation.

This is the simulated counterpart of the web3/Arbitrum backend. It is useful
for tests and for dry runs of the whole flow (``--backend SIM``) without any
node or funded key.

The model is small:
- Each ``SimulatedChain`` keeps native balances, deployed contract objects and
  mined receipts. Every user transaction pays a flat ``gas_fee``.
- Contracts are plain Python classes whose public methods mirror the Solidity
  entry points the flow uses (``balanceOf``, ``createChild``, ...). A method
  raises ``SimulatedRevert`` to revert; contracts validate before mutating, so
  a revert leaves state untouched apart from the refunded call value.
- ``SimulatedBridge`` owns an inbox, a token gateway on L1, and an ArbSys /
  router pair on L2. L1→L2 messages are *scheduled* on L2 under their derived
  hash and become included after a configurable number of lookups (or never,
  to exercise timeouts).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from web3 import Web3

from bridgeflow.bridge import calculate_request_id, calculate_retryable_redeem_hash
from bridgeflow.errors import LedgerTransactionError
from bridgeflow.ledger import LedgerContext
from bridgeflow.models import ZERO_ADDRESS, PendingTransaction, TxReceipt, WithdrawalEvent

L1_CHAIN_ID = 1337
L2_CHAIN_ID = 412346
DEFAULT_GAS_FEE = 21_000 * 10**9  # 21k gas at 1 gwei

DEFAULT_USER = "0x" + "f39fd6e51aad88f6f4ce6ab8827279cfffb92266"
INBOX_ADDRESS = Web3.to_checksum_address("0x" + "10" * 20)
L1_GATEWAY_ADDRESS = Web3.to_checksum_address("0x" + "11" * 20)
L2_ROUTER_ADDRESS = Web3.to_checksum_address("0x" + "21" * 20)
ARB_SYS_ADDRESS = Web3.to_checksum_address("0x" + "00" * 19 + "64")


class SimulatedRevert(Exception):
    """Raised inside simulated contracts to revert the current transaction."""


def _derive_address(*parts: bytes) -> str:
    return Web3.to_checksum_address(Web3.keccak(b"".join(parts))[-20:])


def _addr_bytes(address: str) -> bytes:
    return Web3.to_bytes(hexstr=address)


def _pad32(value: int) -> bytes:
    return int(value).to_bytes(32, "big")


@dataclass
class Msg:
    sender: str
    value: int = 0


@dataclass
class SimTx:
    """Record of a submitted transaction (for assertions in tests)."""

    tx_hash: str
    sender: str
    kind: str  # deploy | call | value | message
    to: Optional[str]
    function: Optional[str] = None
    value: int = 0
    status: int = 1


@dataclass
class _Scheduled:
    effect: Callable[[], None]
    include_after_lookups: int
    lookups: int = 0


class SimulatedChain:
    """State of one simulated ledger."""

    def __init__(self, name: str, chain_id: int, *, gas_fee: int = DEFAULT_GAS_FEE) -> None:
        self.name = name
        self.chain_id = chain_id
        self.gas_fee = gas_fee
        self.balances: Dict[str, int] = {}
        self.contracts: Dict[str, Any] = {}
        self.receipts: Dict[str, TxReceipt] = {}
        self.transactions: List[SimTx] = []
        self.block_number = 0
        self._nonces: Dict[str, int] = {}
        self._scheduled: Dict[str, _Scheduled] = {}
        self._logs: List[Dict[str, Any]] = []

    # -------------
    # Balances and addresses
    # -------------

    @staticmethod
    def key(address: str) -> str:
        return str(address).lower()

    def balance(self, address: str) -> int:
        return self.balances.get(self.key(address), 0)

    def credit(self, address: str, amount: int) -> None:
        k = self.key(address)
        self.balances[k] = self.balances.get(k, 0) + int(amount)

    def debit(self, address: str, amount: int) -> None:
        k = self.key(address)
        have = self.balances.get(k, 0)
        if have < amount:
            raise SimulatedRevert(f"insufficient native balance: {have} < {amount}")
        self.balances[k] = have - int(amount)

    def move(self, frm: str, to: str, amount: int) -> None:
        if amount:
            self.debit(frm, amount)
            self.credit(to, amount)

    def next_nonce(self, address: str) -> int:
        k = self.key(address)
        n = self._nonces.get(k, 0)
        self._nonces[k] = n + 1
        return n

    def contract_at(self, address: str) -> Any:
        c = self.contracts.get(self.key(address))
        if c is None:
            raise SimulatedRevert(f"no contract at {address}")
        return c

    def install(self, address: str, contract: Any) -> None:
        self.contracts[self.key(address)] = contract
        contract.address = Web3.to_checksum_address(address)

    def emit(self, address: str, event: str, **args: Any) -> None:
        self._logs.append({"address": Web3.to_checksum_address(address), "event": event, "args": dict(args)})

    # -------------
    # Execution
    # -------------

    def call_contract(self, address: str, function: str, msg: Msg, args: Sequence[Any] = ()) -> Any:
        contract = self.contract_at(address)
        fn = getattr(contract, function, None)
        if fn is None or function.startswith("_"):
            raise SimulatedRevert(f"{type(contract).__name__} has no entry point {function!r}")
        return fn(self, msg, *args)

    def execute(
        self,
        *,
        sender: str,
        kind: str,
        to: Optional[str],
        value: int,
        action: Callable[[], Optional[str]],
        function: Optional[str] = None,
        charge_fee: bool = True,
        tx_hash: Optional[str] = None,
    ) -> TxReceipt:
        """Run ``action`` as one transaction and mine its receipt.

        ``action`` returns the created contract address for deployments.
        """

        nonce = self.next_nonce(sender)
        if tx_hash is None:
            tx_hash = Web3.to_hex(Web3.keccak(_pad32(self.chain_id) + _addr_bytes(sender) + _pad32(nonce)))
        fee = self.gas_fee if charge_fee else 0

        self._logs = []
        status = 1
        created: Optional[str] = None
        try:
            if fee:
                self.debit(sender, fee)
            moved = False
            try:
                if value and to is not None:
                    self.move(sender, to, value)
                    moved = True
                created = action()
            except SimulatedRevert:
                if moved:
                    self.move(to, sender, value)
                raise
        except SimulatedRevert:
            status = 0
            self._logs = []

        self.block_number += 1
        receipt = TxReceipt(
            tx_hash=tx_hash,
            status=status,
            block_number=self.block_number,
            contract_address=created if status == 1 else None,
            logs=tuple(self._logs),
        )
        self._logs = []
        self.receipts[tx_hash] = receipt
        self.transactions.append(
            SimTx(tx_hash=tx_hash, sender=sender, kind=kind, to=to, function=function, value=value, status=status)
        )
        return receipt

    # -------------
    # Scheduled (cross-layer) transactions
    # -------------

    def schedule(self, tx_hash: str, effect: Callable[[], None], *, include_after_lookups: int = 0) -> None:
        self._scheduled[tx_hash] = _Scheduled(effect=effect, include_after_lookups=include_after_lookups)

    def include(self, tx_hash: str) -> TxReceipt:
        """Force inclusion of a scheduled transaction."""

        item = self._scheduled.pop(tx_hash)

        def _action() -> None:
            item.effect()
            return None

        return self.execute(
            sender=ZERO_ADDRESS,
            kind="message",
            to=None,
            value=0,
            action=_action,
            charge_fee=False,
            tx_hash=tx_hash,
        )

    def lookup(self, tx_hash: str) -> Optional[TxReceipt]:
        if tx_hash in self.receipts:
            return self.receipts[tx_hash]
        item = self._scheduled.get(tx_hash)
        if item is None or item.include_after_lookups < 0:
            return None
        item.lookups += 1
        if item.lookups > item.include_after_lookups:
            return self.include(tx_hash)
        return None

    def is_scheduled(self, tx_hash: str) -> bool:
        return tx_hash in self._scheduled


# -------------
# Contracts
# -------------


class SimToken:
    """Minimal ERC20."""

    address: str = ZERO_ADDRESS

    def __init__(self, owner: Optional[str] = None, initial_supply: int = 0) -> None:
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        if owner is not None and initial_supply:
            self._mint(owner, int(initial_supply))

    def _mint(self, to: str, amount: int) -> None:
        k = SimulatedChain.key(to)
        self._balances[k] = self._balances.get(k, 0) + int(amount)

    def _burn(self, frm: str, amount: int) -> None:
        k = SimulatedChain.key(frm)
        have = self._balances.get(k, 0)
        if have < amount:
            raise SimulatedRevert(f"burn amount exceeds balance: {have} < {amount}")
        self._balances[k] = have - int(amount)

    def _move(self, frm: str, to: str, amount: int) -> None:
        self._burn(frm, amount)
        self._mint(to, amount)

    def balanceOf(self, chain: SimulatedChain, msg: Msg, account: str) -> int:  # noqa: N802
        return self._balances.get(SimulatedChain.key(account), 0)

    def allowance(self, chain: SimulatedChain, msg: Msg, owner: str, spender: str) -> int:
        return self._allowances.get((SimulatedChain.key(owner), SimulatedChain.key(spender)), 0)

    def transfer(self, chain: SimulatedChain, msg: Msg, to: str, amount: int) -> bool:
        self._move(msg.sender, to, int(amount))
        chain.emit(self.address, "Transfer", **{"from": msg.sender, "to": to, "value": int(amount)})
        return True

    def approve(self, chain: SimulatedChain, msg: Msg, spender: str, amount: int) -> bool:
        self._allowances[(SimulatedChain.key(msg.sender), SimulatedChain.key(spender))] = int(amount)
        chain.emit(self.address, "Approval", owner=msg.sender, spender=spender, value=int(amount))
        return True

    def transferFrom(self, chain: SimulatedChain, msg: Msg, frm: str, to: str, amount: int) -> bool:  # noqa: N802
        key = (SimulatedChain.key(frm), SimulatedChain.key(msg.sender))
        allowed = self._allowances.get(key, 0)
        if allowed < amount:
            raise SimulatedRevert(f"insufficient allowance: {allowed} < {amount}")
        self._move(frm, to, int(amount))
        self._allowances[key] = allowed - int(amount)
        chain.emit(self.address, "Transfer", **{"from": frm, "to": to, "value": int(amount)})
        return True


class SimChildContract:
    """Master template and its clones: holds funds for one identifier."""

    address: str = ZERO_ADDRESS

    def __init__(self, token: Optional[str] = None, identifier: Optional[int] = None) -> None:
        self.token = token
        self.identifier = identifier

    def receiveEth(self, chain: SimulatedChain, msg: Msg) -> None:  # noqa: N802
        chain.emit(self.address, "EthReceived", sender=msg.sender, value=msg.value)

    def withdrawEth(self, chain: SimulatedChain, msg: Msg, recipient: str) -> None:  # noqa: N802
        amount = chain.balance(self.address)
        chain.move(self.address, recipient, amount)
        chain.emit(self.address, "EthWithdrawn", recipient=recipient, value=amount)

    def withdraw(self, chain: SimulatedChain, msg: Msg, recipient: str) -> None:
        if not self.token:
            raise SimulatedRevert("child has no token")
        token = chain.contract_at(self.token)
        amount = token.balanceOf(chain, msg, self.address)
        token.transfer(chain, Msg(sender=self.address), recipient, amount)


class SimContractFactory:
    """Deploys deterministic-address child clones keyed by identifier."""

    address: str = ZERO_ADDRESS

    def __init__(self, token: str, master: str) -> None:
        self.token = token
        self.master = master
        self._children: Dict[int, str] = {}

    def _child_address(self, identifier: int) -> str:
        return _derive_address(b"child", _addr_bytes(self.address), _pad32(identifier))

    def createChild(self, chain: SimulatedChain, msg: Msg, identifier: int, token: str) -> None:  # noqa: N802
        identifier = int(identifier)
        if identifier in self._children:
            raise SimulatedRevert(f"child {identifier} already exists")
        addr = self._child_address(identifier)
        chain.install(addr, SimChildContract(token=token, identifier=identifier))
        self._children[identifier] = addr
        chain.emit(self.address, "ChildCreated", id=identifier, child=addr)

    def getChildAddress(self, chain: SimulatedChain, msg: Msg, identifier: int) -> str:  # noqa: N802
        return self._children.get(int(identifier), ZERO_ADDRESS)


def _deploy_token(deployer: str, args: Sequence[Any]) -> SimToken:
    supply = int(args[0]) if args else 0
    return SimToken(owner=deployer, initial_supply=supply)


def _deploy_master(deployer: str, args: Sequence[Any]) -> SimChildContract:
    return SimChildContract()


def _deploy_factory(deployer: str, args: Sequence[Any]) -> SimContractFactory:
    if len(args) != 2:
        raise SimulatedRevert("ContractFactory expects (token, master)")
    return SimContractFactory(token=str(args[0]), master=str(args[1]))


CONTRACT_TYPES: Dict[str, Callable[[str, Sequence[Any]], Any]] = {
    "DappToken3": _deploy_token,
    "ChildContract": _deploy_master,
    "ContractFactory": _deploy_factory,
}


# -------------
# Ledger
# -------------


class SimulatedLedger:
    """``Ledger`` implementation for one account on a ``SimulatedChain``."""

    def __init__(self, chain: SimulatedChain, address: str, *, contract_types: Optional[Dict[str, Callable]] = None) -> None:
        self.name = chain.name
        self.chain = chain
        self._address = Web3.to_checksum_address(address)
        self._contract_types = dict(CONTRACT_TYPES if contract_types is None else contract_types)

    @property
    def address(self) -> str:
        return self._address

    @property
    def chain_id(self) -> int:
        return self.chain.chain_id

    def _pending(self, receipt: TxReceipt) -> PendingTransaction:
        return PendingTransaction(tx_hash=receipt.tx_hash, ledger=self)

    def native_balance(self, address: str) -> int:
        return self.chain.balance(address)

    def deploy(self, contract_name: str, args: Sequence[Any] = ()) -> PendingTransaction:
        ctor = self._contract_types.get(contract_name)
        if ctor is None:
            raise LedgerTransactionError(f"[{self.name}] unknown contract type {contract_name!r}")

        def _action() -> str:
            instance = ctor(self._address, tuple(args))
            addr = _derive_address(b"create", _addr_bytes(self._address), _pad32(len(self.chain.contracts)))
            self.chain.install(addr, instance)
            return addr

        return self._pending(
            self.chain.execute(sender=self._address, kind="deploy", to=None, value=0, action=_action, function=contract_name)
        )

    def transact(
        self,
        address: str,
        contract_name: str,
        function: str,
        args: Sequence[Any] = (),
        *,
        value: int = 0,
    ) -> PendingTransaction:
        msg = Msg(sender=self._address, value=int(value))

        def _action() -> None:
            self.chain.call_contract(address, function, msg, args)
            return None

        return self._pending(
            self.chain.execute(
                sender=self._address, kind="call", to=address, value=int(value), action=_action, function=function
            )
        )

    def call(self, address: str, contract_name: str, function: str, args: Sequence[Any] = ()) -> Any:
        try:
            return self.chain.call_contract(address, function, Msg(sender=self._address), args)
        except SimulatedRevert as exc:
            raise LedgerTransactionError(f"[{self.name}] call {contract_name}.{function} reverted: {exc}") from exc

    def send_value(self, to: str, amount: int) -> PendingTransaction:
        return self._pending(
            self.chain.execute(sender=self._address, kind="value", to=to, value=int(amount), action=lambda: None)
        )

    def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        receipt = self.chain.receipts.get(tx_hash)
        if receipt is None:
            raise LedgerTransactionError(f"[{self.name}] {tx_hash} never confirmed", tx_hash=tx_hash)
        if not receipt.succeeded:
            raise LedgerTransactionError(f"[{self.name}] transaction {tx_hash} reverted", tx_hash=tx_hash)
        return receipt

    def get_receipt(self, tx_hash: str) -> Optional[TxReceipt]:
        return self.chain.lookup(tx_hash)


# -------------
# Bridge
# -------------


class _SimInbox:
    address: str = ZERO_ADDRESS

    def __init__(self, bridge: "SimulatedBridge") -> None:
        self._bridge = bridge

    def depositEth(self, chain: SimulatedChain, msg: Msg) -> int:  # noqa: N802
        if msg.value <= 0:
            raise SimulatedRevert("depositEth requires value")
        return self._bridge._send_message(chain, native_to=msg.sender, amount=msg.value)


class _SimL1Gateway:
    address: str = ZERO_ADDRESS

    def __init__(self, bridge: "SimulatedBridge") -> None:
        self._bridge = bridge

    def outboundTransfer(self, chain: SimulatedChain, msg: Msg, token: str, to: str, amount: int) -> int:  # noqa: N802
        chain.contract_at(token).transferFrom(chain, Msg(sender=self.address), msg.sender, self.address, int(amount))
        return self._bridge._send_message(chain, token=token, token_to=to, amount=int(amount))


class _SimArbSys:
    address: str = ZERO_ADDRESS

    def __init__(self, bridge: "SimulatedBridge") -> None:
        self._bridge = bridge

    def withdrawEth(self, chain: SimulatedChain, msg: Msg, destination: str) -> int:  # noqa: N802
        uid = self._bridge._next_unique_id()
        chain.emit(
            self.address,
            "L2ToL1Transaction",
            caller=msg.sender,
            destination=destination,
            uniqueId=uid,
            callvalue=msg.value,
            data=b"",
        )
        return uid


class _SimL2Router:
    address: str = ZERO_ADDRESS

    def __init__(self, bridge: "SimulatedBridge") -> None:
        self._bridge = bridge

    def outboundTransfer(self, chain: SimulatedChain, msg: Msg, l1_token: str, to: str, amount: int) -> int:  # noqa: N802
        l2_token = self._bridge.l2_token_address(l1_token)
        token = chain.contracts.get(SimulatedChain.key(l2_token))
        if token is None:
            raise SimulatedRevert(f"no L2 token for {l1_token}")
        token._burn(msg.sender, int(amount))
        uid = self._bridge._next_unique_id()
        chain.emit(
            self.address,
            "WithdrawalInitiated",
            l1Token=l1_token,
            _from=msg.sender,
            _to=to,
            _l2ToL1Id=uid,
            _exitNum=0,
            _amount=int(amount),
        )
        return uid


class SimulatedBridge:
    """``Bridge`` implementation over a pair of ``SimulatedLedger`` identities.

    ``include_after_lookups`` controls when scheduled L2 transactions appear:
    0 means on the first lookup, N means after N misses, and a negative value
    means never (the message stays in flight until ``include_all`` is called).
    """

    def __init__(self, ctx: LedgerContext, *, first_seq_num: int = 1000, include_after_lookups: int = 0) -> None:
        l1, l2 = ctx.l1_ledger, ctx.l2_ledger
        if not isinstance(l1, SimulatedLedger) or not isinstance(l2, SimulatedLedger):
            raise TypeError("SimulatedBridge requires SimulatedLedger identities on both sides")
        self._l1: SimulatedLedger = l1
        self._l2: SimulatedLedger = l2
        self._seq = first_seq_num
        self._unique_id = 0
        self.include_after_lookups = include_after_lookups
        self.approvals: List[Tuple[str, int]] = []

        l1.chain.install(INBOX_ADDRESS, _SimInbox(self))
        l1.chain.install(L1_GATEWAY_ADDRESS, _SimL1Gateway(self))
        l2.chain.install(ARB_SYS_ADDRESS, _SimArbSys(self))
        l2.chain.install(L2_ROUTER_ADDRESS, _SimL2Router(self))

    def _next_unique_id(self) -> int:
        self._unique_id += 1
        return self._unique_id

    def _send_message(
        self,
        chain: SimulatedChain,
        *,
        amount: int,
        native_to: Optional[str] = None,
        token: Optional[str] = None,
        token_to: Optional[str] = None,
    ) -> int:
        seq = self._seq
        self._seq += 1
        chain.emit(INBOX_ADDRESS, "InboxMessageDelivered", messageNum=seq, data=b"")

        l2_chain = self._l2.chain
        if token is None:
            recipient = str(native_to)
            l2_hash = self.l2_transaction_hash(seq)

            def _effect() -> None:
                l2_chain.credit(recipient, amount)

        else:
            l1_token, recipient = str(token), str(token_to)
            l2_hash = self.l2_retryable_hash(seq)

            def _effect() -> None:
                l2_addr = self.l2_token_address(l1_token)
                existing = l2_chain.contracts.get(SimulatedChain.key(l2_addr))
                if existing is None:
                    existing = SimToken()
                    l2_chain.install(l2_addr, existing)
                existing._mint(recipient, amount)

        l2_chain.schedule(l2_hash, _effect, include_after_lookups=self.include_after_lookups)
        return seq

    def include_all(self) -> List[TxReceipt]:
        """Force every in-flight message onto L2."""

        chain = self._l2.chain
        return [chain.include(h) for h in list(chain._scheduled)]

    # -------------
    # Bridge interface
    # -------------

    def l2_token_address(self, l1_token: str) -> str:
        return _derive_address(b"l2token", _addr_bytes(l1_token))

    def approve_token(self, l1_token: str, amount: int) -> PendingTransaction:
        self.approvals.append((l1_token, int(amount)))
        return self._l1.transact(l1_token, "DappToken3", "approve", [L1_GATEWAY_ADDRESS, int(amount)])

    def deposit_eth(self, amount: int) -> PendingTransaction:
        return self._l1.transact(INBOX_ADDRESS, "ArbInbox", "depositEth", [], value=int(amount))

    def deposit(self, l1_token: str, amount: int) -> PendingTransaction:
        return self._l1.transact(
            L1_GATEWAY_ADDRESS, "ArbL1Gateway", "outboundTransfer", [l1_token, self._l1.address, int(amount)]
        )

    def inbox_sequence_numbers(self, receipt: TxReceipt) -> List[int]:
        return [
            int(log["args"]["messageNum"])
            for log in receipt.logs
            if log.get("event") in {"InboxMessageDelivered", "InboxMessageDeliveredFromOrigin"}
            and SimulatedChain.key(log.get("address", "")) == SimulatedChain.key(INBOX_ADDRESS)
        ]

    def l2_transaction_hash(self, seq_num: int) -> str:
        return calculate_request_id(seq_num, self._l2.chain_id)

    def l2_retryable_hash(self, seq_num: int) -> str:
        return calculate_retryable_redeem_hash(seq_num, self._l2.chain_id)

    def withdraw_eth(self, amount: int) -> PendingTransaction:
        return self._l2.transact(ARB_SYS_ADDRESS, "ArbSys", "withdrawEth", [self._l2.address], value=int(amount))

    def withdraw_erc20(self, l1_token: str, amount: int) -> PendingTransaction:
        return self._l2.transact(
            L2_ROUTER_ADDRESS, "ArbL2GatewayRouter", "outboundTransfer", [l1_token, self._l2.address, int(amount)]
        )

    def withdrawals_in_l2_transaction(self, receipt: TxReceipt) -> List[WithdrawalEvent]:
        token_events: List[WithdrawalEvent] = []
        native_events: List[WithdrawalEvent] = []
        for log in receipt.logs:
            args = log.get("args", {})
            if log.get("event") == "WithdrawalInitiated":
                token_events.append(
                    WithdrawalEvent(
                        caller=args["_from"],
                        destination=args["_to"],
                        amount=int(args["_amount"]),
                        token=args["l1Token"],
                        unique_id=int(args["_l2ToL1Id"]),
                        raw=dict(args),
                    )
                )
            elif log.get("event") == "L2ToL1Transaction":
                native_events.append(
                    WithdrawalEvent(
                        caller=args["caller"],
                        destination=args["destination"],
                        amount=int(args["callvalue"]),
                        token=None,
                        unique_id=int(args["uniqueId"]),
                        raw=dict(args),
                    )
                )
        return token_events or native_events


@dataclass
class SimulatedBackend:
    ctx: LedgerContext
    bridge: SimulatedBridge
    l1_chain: SimulatedChain = field(repr=False)
    l2_chain: SimulatedChain = field(repr=False)


def make_simulated_backend(
    *,
    user: str = DEFAULT_USER,
    l1_balance: int = 100 * 10**18,
    l2_balance: int = 10**18,
    include_after_lookups: int = 0,
    gas_fee: int = DEFAULT_GAS_FEE,
) -> SimulatedBackend:
    """Build a funded two-ledger simulation with the same user on both sides."""

    l1_chain = SimulatedChain("l1", L1_CHAIN_ID, gas_fee=gas_fee)
    l2_chain = SimulatedChain("l2", L2_CHAIN_ID, gas_fee=gas_fee)
    l1_chain.credit(user, l1_balance)
    l2_chain.credit(user, l2_balance)

    ctx = LedgerContext.from_ledgers(
        SimulatedLedger(l1_chain, user),
        SimulatedLedger(l2_chain, user),
        l1_endpoint="sim://l1",
        l2_endpoint="sim://l2",
    )
    bridge = SimulatedBridge(ctx, include_after_lookups=include_after_lookups)
    return SimulatedBackend(ctx=ctx, bridge=bridge, l1_chain=l1_chain, l2_chain=l2_chain)
