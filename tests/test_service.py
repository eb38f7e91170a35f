"""LedgerService against a real TinyDB file."""

from datetime import date

import pytest

from textledger.core.service import InvalidLedgerEntry, format_amount
from textledger.models.schemas import IngestResult, LedgerEntry, Reimbursement


def _ingest(service, text, **kwargs) -> IngestResult:
    parsed = service.parse(text)
    assert parsed is not None
    return service.ingest(parsed, text, **kwargs)


class TestIngest:
    def test_plain_expense(self, service, repo):
        result = _ingest(service, "food 499 swiggy")
        expense = result.expense
        assert expense.id is not None
        assert expense.amount == 499
        assert expense.my_amount == 499
        assert expense.currency == "USD"
        assert expense.occurred_on == date(2026, 2, 20)
        assert expense.category == "food"
        assert expense.paid_by == "me"
        assert result.reimbursements == []
        assert repo.get_expense(expense.id) == expense

    def test_detected_currency_wins_over_default(self, service):
        assert _ingest(service, "₹1,250 groceries").expense.currency == "INR"

    def test_roommate_paid_equal_split(self, service):
        before = service.reimbursement_balance(other_party="vyas").net

        result = _ingest(
            service, "room 300 paidby:roommate other:vyas split:equal 2026-02-15", source="test"
        )

        assert result.expense.my_amount == 150
        assert result.expense.other_party == "vyas"
        [row] = result.reimbursements
        assert (row.direction, row.other_party, row.amount) == ("i_owe_them", "vyas", 150)
        assert row.expense_id == result.expense.id
        assert row.occurred_on == date(2026, 2, 15)
        assert row.source == "test"

        after = service.reimbursement_balance(other_party="vyas").net
        assert after - before == pytest.approx(-150)

    def test_for_person(self, service):
        result = _ingest(service, "food 20 for:kevin")
        assert result.expense.my_amount == 0
        assert result.expense.split_type == "none"
        assert [(r.other_party, r.direction, r.amount) for r in result.reimbursements] == [
            ("kevin", "they_owe_me", 20)
        ]

    def test_ack_reports_month_and_ytd(self, service):
        _ingest(service, "food 100 2026-01-10")
        _ingest(service, "food 40 2026-02-02")
        result = _ingest(service, "food 12.5 2026-02-05")
        assert result.ack == "Added USD 12.5 on 2026-02-05. Month total: 52.5. YTD: 152.5."

    def test_overflowing_ratio_is_recorded_as_equal_split(self, service, repo):
        result = _ingest(service, "food 90 split:" + "9" * 400 + "/1 other:amy")
        assert result.expense.split_type == "equal"
        assert result.expense.my_amount == 45
        assert [r.amount for r in repo.reimbursements_for(result.expense.id)] == [45]

    def test_lopsided_ratio_keeps_expense_without_debts(self, service, repo):
        result = _ingest(service, "food 1 split:100000000000000000000/1 other:amy")
        assert result.expense.my_amount == pytest.approx(1)
        assert result.reimbursements == []
        assert repo.list_expenses() == [result.expense]

    def test_failed_reimbursement_write_removes_expense(self, service, repo, monkeypatch):
        def boom(rows):
            raise RuntimeError("disk full")

        monkeypatch.setattr(repo, "add_reimbursements", boom)
        with pytest.raises(RuntimeError):
            _ingest(service, "dinner 90 split:equal other:amy")
        assert repo.list_expenses() == []

    def test_from_user_is_kept(self, service):
        result = _ingest(service, "food 10 split other:amy", from_user="+15550100")
        assert result.expense.from_user == "+15550100"
        assert result.reimbursements[0].from_user == "+15550100"


class TestReallocate:
    def test_replaces_reimbursements(self, service, repo):
        created = _ingest(service, "dinner 90 split:equal other:amy,bob")
        assert len(repo.reimbursements_for(created.expense.id)) == 2

        text = "dinner 120 paidby:roommate split:2/1 other:amy"
        result = service.reallocate(created.expense.id, service.parse(text), text)

        assert result.expense.id == created.expense.id
        assert result.expense.amount == 120
        assert result.expense.my_amount == pytest.approx(80)
        assert result.expense.split_type == "ratio"
        assert result.expense.raw_text == text
        rows = repo.reimbursements_for(created.expense.id)
        assert [(r.other_party, r.direction, r.amount) for r in rows] == [
            ("amy", "i_owe_them", pytest.approx(80))
        ]

    def test_edit_to_no_split_drops_reimbursements(self, service, repo):
        created = _ingest(service, "dinner 90 split:2/1 other:amy")
        result = service.reallocate(created.expense.id, service.parse("dinner 90"), "dinner 90")
        assert result.expense.my_amount == 90
        assert result.expense.split_type == "none"
        assert result.expense.split_ratio_me is None
        assert repo.reimbursements_for(created.expense.id) == []

    def test_occurred_on_override(self, service):
        created = _ingest(service, "food 10")
        result = service.reallocate(
            created.expense.id, service.parse("food 11"), "food 11", occurred_on=date(2026, 1, 2)
        )
        assert result.expense.occurred_on == date(2026, 1, 2)

    def test_missing_fields_keep_stored_values(self, service):
        created = _ingest(service, "food 10 card:amex swiggy")
        result = service.reallocate(created.expense.id, service.parse("15"), "15")
        assert result.expense.amount == 15
        assert result.expense.category == "food"
        assert result.expense.card == "amex"

    def test_not_found(self, service):
        assert service.reallocate(999, service.parse("food 1"), "food 1") is None

    def test_failed_insert_restores_previous_set(self, service, repo, monkeypatch):
        created = _ingest(service, "dinner 90 split:equal other:amy")
        previous = repo.reimbursements_for(created.expense.id)

        def boom(rows):
            raise RuntimeError("disk full")

        monkeypatch.setattr(repo, "add_reimbursements", boom)
        with pytest.raises(RuntimeError):
            repo.replace_reimbursements(created.expense.id, [])
        assert repo.reimbursements_for(created.expense.id) == previous

    def test_failed_edit_leaves_expense_and_rows_untouched(self, service, repo, monkeypatch):
        created = _ingest(service, "dinner 90 split:equal other:amy")
        stored = repo.get_expense(created.expense.id)
        previous = repo.reimbursements_for(created.expense.id)

        def boom(rows):
            raise RuntimeError("disk full")

        monkeypatch.setattr(repo, "add_reimbursements", boom)
        text = "dinner 120 paidby:roommate split:2/1 other:amy"
        with pytest.raises(RuntimeError):
            service.reallocate(created.expense.id, service.parse(text), text)

        assert repo.get_expense(created.expense.id) == stored
        assert repo.reimbursements_for(created.expense.id) == previous


class TestDelete:
    def test_cascades_to_reimbursements(self, service, repo):
        created = _ingest(service, "dinner 90 split:equal other:amy,bob")
        other = _ingest(service, "lunch 30 split other:amy")

        assert service.delete_expense(created.expense.id) is True
        assert repo.get_expense(created.expense.id) is None
        assert repo.reimbursements_for(created.expense.id) == []
        assert len(repo.reimbursements_for(other.expense.id)) == 1

    def test_not_found(self, service):
        assert service.delete_expense(12345) is False


class TestLedger:
    def test_income(self, service):
        text = "salary 5000 type:income account:checking"
        entry = service.record_ledger_entry(service.parse(text), text)
        assert entry.id is not None
        assert entry.type == "income"
        assert entry.account == "checking"
        assert entry.currency == "USD"

    def test_receivable_balance(self, service):
        text = "took 1200 type:receivable counterparty:kevin direction:i_borrowed"
        service.record_ledger_entry(service.parse(text), text)
        [kevin] = service.receivable_balances()
        assert (kevin.counterparty, kevin.net, kevin.i_owe, kevin.they_owe) == ("kevin", -1200, 1200, 0)

    def test_receivable_without_counterparty_is_rejected(self, service, repo):
        text = "took 1200 type:receivable direction:i_borrowed"
        with pytest.raises(InvalidLedgerEntry, match="counterparty"):
            service.record_ledger_entry(service.parse(text), text)
        assert repo.list_ledger_entries() == []

    def test_receivable_without_direction_is_rejected(self, service, repo):
        text = "took 1200 type:receivable counterparty:kevin"
        with pytest.raises(InvalidLedgerEntry, match="direction"):
            service.record_ledger_entry(service.parse(text), text)
        assert repo.list_ledger_entries() == []

    def test_expense_type_is_rejected(self, service):
        with pytest.raises(InvalidLedgerEntry, match="Unsupported ledger type"):
            service.record_ledger_entry(service.parse("food 10"), "food 10")


class TestHandleMessage:
    def test_unparseable(self, service):
        assert service.handle_message("hello there") is None

    def test_expense(self, service):
        assert isinstance(service.handle_message("food 10"), IngestResult)

    def test_ledger_type_goes_to_ledger(self, service):
        outcome = service.handle_message("bonus 300 type:income")
        assert isinstance(outcome, LedgerEntry)
        assert service.list_expenses() == []


def test_summary(service):
    _ingest(service, "food 100 2026-02-16")  # this week
    _ingest(service, "food 50 2026-02-02")  # this month
    _ingest(service, "food 25 2026-01-05")  # this year
    _ingest(service, "food 10 2025-12-31")
    _ingest(service, "dinner 60 split:equal other:amy 2026-02-19")
    for text in ("pay 5000 type:income", "save 500 type:transfer", "lend 40 type:receivable cp:amy dir:i_lent"):
        service.record_ledger_entry(service.parse(text), text)

    summary = service.summary()
    assert summary.week.total == 160
    assert summary.month.total == 210
    assert summary.ytd.total == 235
    assert summary.all_time.total == 245
    assert summary.reimbursement_balance.they_owe_me == 30
    assert summary.ledger.income_total == 5000
    assert summary.net_worth == 5000 - (245 + 500)
    assert [r.counterparty for r in summary.receivables] == ["amy"]


def test_list_other_parties(service):
    _ingest(service, "dinner 90 split:equal other:Bob,amy")
    _ingest(service, "lunch 20 split other:bob")
    assert service.list_other_parties() == ["amy", "Bob"]


def test_list_reimbursements_filters_party(service):
    _ingest(service, "dinner 90 split:equal other:bob,amy")
    rows = service.list_reimbursements(other_party="AMY")
    assert all(isinstance(r, Reimbursement) for r in rows)
    assert [r.other_party for r in rows] == ["amy"]


@pytest.mark.parametrize(
    "amount, text", [(300.0, "300"), (12.5, "12.5"), (33.333333, "33.33"), (0.1, "0.1")]
)
def test_format_amount(amount, text):
    assert format_amount(amount) == text
