from collections.abc import Callable
from datetime import date, timedelta

from loguru import logger

from textledger.core.allocation import allocate
from textledger.core.balances import (
    ledger_totals,
    net_worth,
    receivable_balances,
    reimbursement_balance,
    spend_total,
)
from textledger.db.repository import LedgerRepository
from textledger.models.schemas import (
    Allocation,
    Expense,
    IngestResult,
    LedgerEntry,
    LedgerTotals,
    ParsedMessage,
    ReceivableBalance,
    Reimbursement,
    ReimbursementBalance,
    Summary,
)
from textledger.parsing.parser import MessageParser

LEDGER_TYPES = ("income", "transfer", "investment", "liability", "receivable")


class InvalidLedgerEntry(ValueError):
    """A ledger message that can't be recorded as given."""


def format_amount(amount: float) -> str:
    """Render ``300.0`` as ``300`` and ``12.5`` as ``12.5``."""
    if amount == int(amount):
        return str(int(amount))
    return f"{amount:.2f}".rstrip("0").rstrip(".")


def validate_ledger_entry(parsed: ParsedMessage) -> None:
    if parsed.type not in LEDGER_TYPES:
        raise InvalidLedgerEntry(f"Unsupported ledger type: {parsed.type}")
    if parsed.type == "receivable":
        if not parsed.counterparty:
            raise InvalidLedgerEntry("Missing counterparty (use counterparty:<name>)")
        if not parsed.direction:
            raise InvalidLedgerEntry(
                "Missing direction (use direction:i_borrowed|i_lent|repay|collect)"
            )


def _month_bounds(day: date) -> tuple[date, date]:
    start = day.replace(day=1)
    next_month = (start + timedelta(days=32)).replace(day=1)
    return start, next_month - timedelta(days=1)


class LedgerService:
    def __init__(
        self,
        repo: LedgerRepository,
        parser: MessageParser,
        default_currency: str = "USD",
        default_other_party: str = "vyas",
        today: Callable[[], date] = date.today,
    ):
        self.repo = repo
        self.parser = parser
        self.default_currency = default_currency
        self.default_other_party = default_other_party
        self.today = today

    def parse(self, raw_text: str) -> ParsedMessage | None:
        return self.parser.parse(raw_text)

    def _reimbursements(self, expense: Expense, allocation: Allocation) -> list[Reimbursement]:
        return [
            Reimbursement(
                occurred_on=expense.occurred_on,
                source=expense.source,
                from_user=expense.from_user,
                expense_id=expense.id,
                other_party=debt.other_party,
                direction=debt.direction,
                amount=debt.amount,
                currency=expense.currency,
                note=expense.note,
                raw_text=expense.raw_text,
            )
            for debt in allocation.peer_debts
        ]

    def acknowledge(self, expense: Expense) -> str:
        """One-line confirmation with the month and year-to-date spend."""
        expenses = self.repo.list_expenses(currency=expense.currency)
        month_start, month_end = _month_bounds(expense.occurred_on)
        month = spend_total(expenses, month_start, month_end)
        ytd = spend_total(expenses, expense.occurred_on.replace(month=1, day=1), expense.occurred_on)
        return (
            f"Added {expense.currency} {format_amount(expense.amount)} on "
            f"{expense.occurred_on.isoformat()}. Month total: {format_amount(month.total)}. "
            f"YTD: {format_amount(ytd.total)}."
        )

    def ingest(
        self,
        parsed: ParsedMessage,
        raw_text: str,
        source: str = "message",
        from_user: str | None = None,
    ) -> IngestResult:
        allocation = allocate(parsed, self.default_other_party)
        ratio = allocation.split_type == "ratio"
        expense = Expense(
            occurred_on=parsed.occurred_on or self.today(),
            source=source,
            from_user=from_user,
            raw_text=raw_text,
            amount=parsed.amount,
            currency=parsed.currency or self.default_currency,
            category=parsed.category,
            note=parsed.note,
            card=parsed.card,
            paid_by=parsed.paid_by or "me",
            split_type=allocation.split_type,
            split_ratio_me=parsed.split_ratio_me if ratio else None,
            split_ratio_other=parsed.split_ratio_other if ratio else None,
            other_party=allocation.other_party,
            my_amount=allocation.my_amount,
        )
        # Built before anything is written so a bad row can't leave a bare expense
        rows = self._reimbursements(expense, allocation)
        rows = self.repo.record_expense(expense, rows)
        logger.info(
            "Recorded expense #{} of {} {} with {} reimbursement(s)",
            expense.id, expense.currency, expense.amount, len(rows),
        )
        return IngestResult(expense=expense, reimbursements=rows, ack=self.acknowledge(expense))

    def reallocate(
        self,
        expense_id: int,
        parsed: ParsedMessage,
        raw_text: str,
        occurred_on: date | None = None,
    ) -> IngestResult | None:
        """Re-derive an expense from new text and rebuild its reimbursements.

        The edited expense and its new rows are saved as one unit: a failure
        leaves both the stored expense and its old rows untouched.
        """
        if occurred_on:
            parsed = parsed.model_copy(update={"occurred_on": occurred_on})

        allocation = allocate(parsed, self.default_other_party)
        ratio = allocation.split_type == "ratio"
        updated = self.repo.merge_expense(
            expense_id,
            unset=() if ratio else ("split_ratio_me", "split_ratio_other"),
            occurred_on=parsed.occurred_on,
            raw_text=raw_text,
            amount=parsed.amount,
            my_amount=allocation.my_amount,
            category=parsed.category,
            note=parsed.note,
            card=parsed.card,
            paid_by=parsed.paid_by or "me",
            split_type=allocation.split_type,
            split_ratio_me=parsed.split_ratio_me if ratio else None,
            split_ratio_other=parsed.split_ratio_other if ratio else None,
            other_party=allocation.other_party,
        )
        if updated is None:
            return None
        rows = self.repo.rewrite_expense(updated, self._reimbursements(updated, allocation))
        logger.info("Updated expense #{}, {} reimbursement(s) rebuilt", expense_id, len(rows))
        return IngestResult(expense=updated, reimbursements=rows, ack=self.acknowledge(updated))

    def delete_expense(self, expense_id: int) -> bool:
        deleted = self.repo.delete_expense(expense_id)
        if deleted:
            logger.info("Deleted expense #{} and its reimbursements", expense_id)
        return deleted

    def record_ledger_entry(
        self,
        parsed: ParsedMessage,
        raw_text: str,
        source: str = "message",
        from_user: str | None = None,
    ) -> LedgerEntry:
        try:
            validate_ledger_entry(parsed)
        except InvalidLedgerEntry as e:
            logger.warning("Rejected ledger entry {!r}: {}", raw_text, e)
            raise

        entry = self.repo.add_ledger_entry(
            LedgerEntry(
                occurred_on=parsed.occurred_on or self.today(),
                source=source,
                from_user=from_user,
                raw_text=raw_text,
                type=parsed.type,
                amount=parsed.amount,
                currency=parsed.currency or self.default_currency,
                direction=parsed.direction,
                counterparty=parsed.counterparty,
                account=parsed.account,
                asset=parsed.asset,
                liability=parsed.liability,
                note=parsed.note,
            )
        )
        logger.info("Recorded {} entry #{} of {} {}", entry.type, entry.id, entry.currency, entry.amount)
        return entry

    def handle_message(
        self, raw_text: str, source: str = "message", from_user: str | None = None
    ) -> IngestResult | LedgerEntry | None:
        """Chat entry point: expenses go to ``ingest``, other types to the ledger."""
        parsed = self.parse(raw_text)
        if parsed is None:
            return None
        if parsed.type != "expense":
            return self.record_ledger_entry(parsed, raw_text, source, from_user)
        return self.ingest(parsed, raw_text, source, from_user)

    # queries

    def list_expenses(self, **filters) -> list[Expense]:
        return self.repo.list_expenses(**filters)

    def list_reimbursements(self, **filters) -> list[Reimbursement]:
        filters.setdefault("currency", self.default_currency)
        return self.repo.list_reimbursements(**filters)

    def list_ledger_entries(self, **filters) -> list[LedgerEntry]:
        return self.repo.list_ledger_entries(**filters)

    def list_other_parties(self, currency: str | None = None) -> list[str]:
        return self.repo.list_other_parties(currency or self.default_currency)

    def reimbursement_balance(
        self, other_party: str | None = None, currency: str | None = None
    ) -> ReimbursementBalance:
        currency = currency or self.default_currency
        rows = self.repo.list_reimbursements(other_party=other_party, currency=currency)
        return reimbursement_balance(rows, other_party, currency)

    def receivable_balances(self, currency: str | None = None) -> list[ReceivableBalance]:
        currency = currency or self.default_currency
        entries = self.repo.list_ledger_entries(type="receivable", currency=currency)
        return receivable_balances(entries, currency)

    def ledger_totals(self, currency: str | None = None) -> LedgerTotals:
        currency = currency or self.default_currency
        return ledger_totals(self.repo.list_ledger_entries(currency=currency), currency)

    def summary(self, currency: str | None = None) -> Summary:
        currency = currency or self.default_currency
        today = self.today()
        expenses = self.repo.list_expenses(currency=currency)
        month_start, month_end = _month_bounds(today)
        all_time = spend_total(expenses)
        totals = self.ledger_totals(currency)
        return Summary(
            currency=currency,
            all_time=all_time,
            week=spend_total(expenses, today - timedelta(days=today.weekday()), today),
            month=spend_total(expenses, month_start, month_end),
            ytd=spend_total(expenses, today.replace(month=1, day=1), today),
            reimbursement_balance=self.reimbursement_balance(currency=currency),
            ledger=totals,
            net_worth=net_worth(totals, all_time.total),
            receivables=self.receivable_balances(currency),
        )
