from datetime import date
from functools import reduce
from operator import and_

from loguru import logger
from tinydb import Query, TinyDB
from tinydb.table import Document, Table

from textledger.models.schemas import Expense, LedgerEntry, Reimbursement


def _dump(record) -> dict:
    data = record.model_dump(mode="json")
    data.pop("id", None)
    return data


def _newest_first(records: list, limit: int | None) -> list:
    records.sort(key=lambda r: (r.occurred_on, r.created_at), reverse=True)
    return records[:limit] if limit else records


def _date_conditions(start: date | None, end: date | None) -> list:
    Row = Query()
    conditions = []
    if start:
        conditions.append(Row.occurred_on >= start.isoformat())
    if end:
        conditions.append(Row.occurred_on <= end.isoformat())
    return conditions


def _search(table: Table, conditions: list) -> list[Document]:
    if not conditions:
        return table.all()
    return table.search(reduce(and_, conditions))


def _same_name(name: str):
    return lambda val: (val or "").lower() == name.strip().lower()


class LedgerRepository:
    def __init__(self, db_path: str = "ledger.json"):
        self.db = TinyDB(db_path)
        self.expenses = self.db.table("expenses")
        self.reimbursements = self.db.table("reimbursements")
        self.ledger = self.db.table("ledger_entries")

    def close(self) -> None:
        self.db.close()

    # expenses

    def add_expense(self, expense: Expense) -> Expense:
        expense.id = self.expenses.insert(_dump(expense))
        return expense

    def get_expense(self, id: int) -> Expense | None:
        doc = self.expenses.get(doc_id=id)
        if doc is None:
            return None
        return Expense(id=doc.doc_id, **doc)

    def list_expenses(
        self,
        start: date | None = None,
        end: date | None = None,
        currency: str | None = None,
        card: str | None = None,
        limit: int | None = None,
    ) -> list[Expense]:
        Row = Query()
        conditions = _date_conditions(start, end)
        if currency:
            conditions.append(Row.currency == currency)
        if card == "none":
            conditions.append(Row.card.test(lambda val: not val))
        elif card:
            conditions.append(Row.card == card)
        docs = _search(self.expenses, conditions)
        return _newest_first([Expense(id=doc.doc_id, **doc) for doc in docs], limit)

    def record_expense(self, expense: Expense, rows: list[Reimbursement]) -> list[Reimbursement]:
        """Insert an expense together with its reimbursements.

        The expense is removed again if the reimbursements can't be written.
        """
        self.add_expense(expense)
        for row in rows:
            row.expense_id = expense.id
        try:
            return self.add_reimbursements(rows)
        except Exception:
            logger.error("Writing reimbursements of expense #{} failed, removing it", expense.id)
            self.expenses.remove(doc_ids=[expense.id])
            raise

    def merge_expense(self, id: int, unset: tuple[str, ...] = (), **fields) -> Expense | None:
        """The stored expense with ``fields`` applied, without saving it."""
        doc = self.expenses.get(doc_id=id)
        if doc is None:
            return None
        # Only overwrite the fields that were provided, plus explicit clears
        updates = {k: v for k, v in fields.items() if v is not None}
        updates.update({k: None for k in unset})
        return Expense(id=id, **{**doc, **updates})

    def rewrite_expense(self, expense: Expense, rows: list[Reimbursement]) -> list[Reimbursement]:
        """Save an edited expense and swap in its new reimbursement set.

        If anything fails, the previous expense document is put back as well
        as the previous reimbursements.
        """
        previous = self.expenses.get(doc_id=expense.id)
        self.expenses.update(_dump(expense), doc_ids=[expense.id])
        try:
            return self.replace_reimbursements(expense.id, rows)
        except Exception:
            logger.error("Edit of expense #{} failed, restoring it", expense.id)
            self.expenses.remove(doc_ids=[expense.id])
            self.expenses.insert(Document(dict(previous), doc_id=expense.id))
            raise

    def delete_expense(self, id: int) -> bool:
        if self.expenses.get(doc_id=id) is None:
            return False
        Row = Query()
        self.reimbursements.remove(Row.expense_id == id)
        self.expenses.remove(doc_ids=[id])
        return True

    # reimbursements

    def add_reimbursements(self, rows: list[Reimbursement]) -> list[Reimbursement]:
        if not rows:
            return []
        ids = self.reimbursements.insert_multiple(_dump(r) for r in rows)
        for row, doc_id in zip(rows, ids):
            row.id = doc_id
        return rows

    def reimbursements_for(self, expense_id: int) -> list[Reimbursement]:
        Row = Query()
        docs = self.reimbursements.search(Row.expense_id == expense_id)
        return [Reimbursement(id=doc.doc_id, **doc) for doc in docs]

    def replace_reimbursements(
        self, expense_id: int, rows: list[Reimbursement]
    ) -> list[Reimbursement]:
        """Swap the whole reimbursement set of an expense.

        If inserting the new set fails, the previous set is restored with its
        original ids before the error propagates.
        """
        Row = Query()
        previous = self.reimbursements.search(Row.expense_id == expense_id)
        self.reimbursements.remove(doc_ids=[doc.doc_id for doc in previous])
        try:
            return self.add_reimbursements(rows)
        except Exception:
            logger.error("Replacing reimbursements of expense #{} failed, restoring", expense_id)
            self.reimbursements.remove(Row.expense_id == expense_id)
            self.reimbursements.insert_multiple(
                Document(dict(doc), doc_id=doc.doc_id) for doc in previous
            )
            raise

    def list_reimbursements(
        self,
        start: date | None = None,
        end: date | None = None,
        other_party: str | None = None,
        currency: str | None = None,
        limit: int | None = None,
    ) -> list[Reimbursement]:
        Row = Query()
        conditions = _date_conditions(start, end)
        if other_party:
            conditions.append(Row.other_party.test(_same_name(other_party)))
        if currency:
            conditions.append(Row.currency == currency)
        docs = _search(self.reimbursements, conditions)
        return _newest_first([Reimbursement(id=doc.doc_id, **doc) for doc in docs], limit)

    def list_other_parties(self, currency: str | None = None) -> list[str]:
        names: dict[str, str] = {}
        for row in reversed(self.list_reimbursements(currency=currency)):
            names.setdefault(row.other_party.lower(), row.other_party)
        return [names[key] for key in sorted(names)]

    # ledger

    def add_ledger_entry(self, entry: LedgerEntry) -> LedgerEntry:
        entry.id = self.ledger.insert(_dump(entry))
        return entry

    def list_ledger_entries(
        self,
        start: date | None = None,
        end: date | None = None,
        type: str | None = None,
        currency: str | None = None,
        limit: int | None = None,
    ) -> list[LedgerEntry]:
        Row = Query()
        conditions = _date_conditions(start, end)
        if type:
            conditions.append(Row.type == type)
        if currency:
            conditions.append(Row.currency == currency)
        docs = _search(self.ledger, conditions)
        return _newest_first([LedgerEntry(id=doc.doc_id, **doc) for doc in docs], limit)
