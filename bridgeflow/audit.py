"""Read-only balance sampling at phase boundaries.

Each call to ``BalanceAuditor.sample`` reads the native balances of both
identities (and of the child contract once known) plus token balances when
the token addresses are known, and returns the rows as a ``DataFrame``::

    phase | ledger | holder | holder_address | asset | balance

All samples are kept so that ``delta`` can compare any two phases. A token
balance that cannot be read (token not deployed yet) is recorded as missing
and counts as zero in ``delta``. Nothing here writes to a ledger.
"""
from __future__ import annotations

from typing import List, Optional

import pandas as pd

from bridgeflow.errors import LedgerTransactionError
from bridgeflow.ledger import LedgerContext

COLUMNS = ["phase", "ledger", "holder", "holder_address", "asset", "balance"]
KEY = ["ledger", "holder", "asset"]


class BalanceAuditor:
    def __init__(
        self,
        ctx: LedgerContext,
        *,
        l1_token: Optional[str] = None,
        l2_token: Optional[str] = None,
        token_contract: str = "DappToken3",
        verbose: bool = True,
    ) -> None:
        self._ctx = ctx
        self.l1_token = l1_token
        self.l2_token = l2_token
        self._token_contract = token_contract
        self._verbose = verbose
        self._frames: List[pd.DataFrame] = []

    def _token_balance(self, ledger, token: str, holder: str) -> Optional[int]:  # noqa: ANN001
        # The L2 token only exists after the first deposit reaches L2.
        try:
            return int(ledger.call(token, self._token_contract, "balanceOf", [holder]))
        except LedgerTransactionError as exc:
            print(f"[audit] token balance of {holder} unreadable on {ledger.name}: {exc}")
            return None

    def sample(self, phase: str, child: Optional[str] = None) -> pd.DataFrame:
        l1, l2 = self._ctx.l1_ledger, self._ctx.l2_ledger
        rows = [
            (phase, "l1", "wallet", l1.address, "native", int(l1.native_balance(l1.address))),
            (phase, "l2", "wallet", l2.address, "native", int(l2.native_balance(l2.address))),
        ]
        if self.l1_token:
            rows.append((phase, "l1", "wallet", l1.address, "token", self._token_balance(l1, self.l1_token, l1.address)))
        if self.l2_token:
            rows.append((phase, "l2", "wallet", l2.address, "token", self._token_balance(l2, self.l2_token, l2.address)))
        if child:
            rows.append((phase, "l2", "child", child, "native", int(l2.native_balance(child))))
            if self.l2_token:
                rows.append((phase, "l2", "child", child, "token", self._token_balance(l2, self.l2_token, child)))

        # object dtype keeps wei amounts as exact Python ints (they overflow int64).
        frame = pd.DataFrame(rows, columns=COLUMNS, dtype=object)
        self._frames.append(frame)
        if self._verbose:
            for r in frame.itertuples(index=False):
                print(f"[audit] {r.phase:<16} {r.ledger} {r.holder:<6} {r.holder_address} {r.asset:<6} {r.balance}")
        return frame

    def history(self) -> pd.DataFrame:
        if not self._frames:
            return pd.DataFrame(columns=COLUMNS)
        return pd.concat(self._frames, ignore_index=True)

    def delta(self, before: str, after: str) -> pd.DataFrame:
        """Per (ledger, holder, asset) change between two sampled phases.

        Holders missing from one of the phases count as zero there.
        """

        hist = self.history()
        a = hist[hist["phase"] == before].set_index(KEY)["balance"]
        b = hist[hist["phase"] == after].set_index(KEY)["balance"]
        joined = pd.concat([a.rename("before"), b.rename("after")], axis=1)
        for col in ("before", "after"):
            joined[col] = _exact(joined[col])
        joined["change"] = joined["after"] - joined["before"]
        return joined.reset_index()


def _exact(col: pd.Series) -> pd.Series:
    # fillna would downcast to (u)int64 and silently wrap wei-sized values.
    return pd.Series([0 if pd.isna(v) else int(v) for v in col], index=col.index, dtype=object)
