"""Read-side aggregations over recorded history.

Sign conventions:
  reimbursements  net = they_owe_me - i_owe_them
  receivables     net = i_lent - collect - i_borrowed + repay
A positive net always means the other side owes me.
"""

from collections.abc import Iterable
from datetime import date

from textledger.models.schemas import (
    Expense,
    LedgerEntry,
    LedgerTotals,
    ReceivableBalance,
    Reimbursement,
    ReimbursementBalance,
    SpendTotal,
)

RECEIVABLE_SIGN = {"i_lent": 1, "collect": -1, "i_borrowed": -1, "repay": 1}

_TOTAL_FIELDS = {
    "income": "income_total",
    "transfer": "savings_total",
    "investment": "investment_total",
    "liability": "liability_total",
}


def _same_party(a: str | None, b: str) -> bool:
    return (a or "").strip().lower() == b.strip().lower()


def reimbursement_balance(
    rows: Iterable[Reimbursement],
    other_party: str | None = None,
    currency: str | None = None,
) -> ReimbursementBalance:
    they_owe_me = 0.0
    i_owe_them = 0.0
    for row in rows:
        if other_party and not _same_party(row.other_party, other_party):
            continue
        if currency and row.currency != currency:
            continue
        if row.direction == "they_owe_me":
            they_owe_me += row.amount
        elif row.direction == "i_owe_them":
            i_owe_them += row.amount
    return ReimbursementBalance(
        they_owe_me=they_owe_me, i_owe_them=i_owe_them, net=they_owe_me - i_owe_them
    )


def receivable_balances(
    entries: Iterable[LedgerEntry], currency: str | None = None
) -> list[ReceivableBalance]:
    """Net loan position per counterparty, grouped case-insensitively."""
    nets: dict[str, float] = {}
    names: dict[str, str] = {}
    for entry in entries:
        if entry.type != "receivable" or not (entry.counterparty or "").strip():
            continue
        if currency and entry.currency != currency:
            continue
        name = entry.counterparty.strip()
        key = name.lower()
        names.setdefault(key, name)
        nets[key] = nets.get(key, 0.0) + RECEIVABLE_SIGN.get(entry.direction, 0) * entry.amount

    return [
        ReceivableBalance(
            counterparty=names[key],
            net=net,
            they_owe=max(net, 0.0),
            i_owe=max(-net, 0.0),
        )
        for key, net in sorted(nets.items())
    ]


def ledger_totals(entries: Iterable[LedgerEntry], currency: str | None = None) -> LedgerTotals:
    totals = LedgerTotals()
    for entry in entries:
        field = _TOTAL_FIELDS.get(entry.type)
        if field is None or (currency and entry.currency != currency):
            continue
        setattr(totals, field, getattr(totals, field) + entry.amount)
    return totals


def net_worth(totals: LedgerTotals, expense_total: float) -> float:
    """Point-in-time snapshot: income minus everything that went out of it."""
    return totals.income_total - (
        expense_total + totals.savings_total + totals.investment_total + totals.liability_total
    )


def spend_total(
    expenses: Iterable[Expense],
    start: date | None = None,
    end: date | None = None,
    currency: str | None = None,
) -> SpendTotal:
    """Count and sum of expense amounts with ``start <= occurred_on <= end``."""
    count = 0
    total = 0.0
    for expense in expenses:
        if start and expense.occurred_on < start:
            continue
        if end and expense.occurred_on > end:
            continue
        if currency and expense.currency != currency:
            continue
        count += 1
        total += expense.amount
    return SpendTotal(count=count, total=total)
