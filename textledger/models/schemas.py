from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

EntryType = Literal["expense", "income", "transfer", "investment", "liability", "receivable"]
LedgerType = Literal["income", "transfer", "investment", "liability", "receivable"]
LoanDirection = Literal["i_lent", "i_borrowed", "repay", "collect"]
DebtDirection = Literal["they_owe_me", "i_owe_them"]
SplitType = Literal["none", "equal", "ratio"]


class ParsedMessage(BaseModel):
    amount: float = Field(gt=0)
    currency: str | None = None
    occurred_on: date | None = None
    category: str | None = None
    note: str | None = None

    card: str | None = None
    paid_by: str | None = None
    type: EntryType = "expense"
    account: str | None = None
    asset: str | None = None
    liability: str | None = None
    counterparty: str | None = None
    direction: LoanDirection | None = None
    split_type: SplitType = "none"
    split_ratio_me: float | None = None
    split_ratio_other: float | None = None
    other_party: str | None = None
    other_parties: list[str] = []
    for_person: str | None = None


class Expense(BaseModel):
    id: int | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    occurred_on: date
    source: str
    from_user: str | None = None
    raw_text: str
    amount: float
    currency: str
    category: str | None = None
    note: str | None = None
    card: str | None = None
    paid_by: str = "me"
    split_type: SplitType = "none"
    split_ratio_me: float | None = None
    split_ratio_other: float | None = None
    other_party: str | None = None
    my_amount: float


class Reimbursement(BaseModel):
    id: int | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    occurred_on: date
    source: str
    from_user: str | None = None
    expense_id: int | None = None
    other_party: str
    direction: DebtDirection
    amount: float = Field(gt=0)
    currency: str
    note: str | None = None
    raw_text: str


class LedgerEntry(BaseModel):
    id: int | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    occurred_on: date
    source: str
    from_user: str | None = None
    raw_text: str
    type: LedgerType
    amount: float
    currency: str
    direction: LoanDirection | None = None
    counterparty: str | None = None
    account: str | None = None
    asset: str | None = None
    liability: str | None = None
    note: str | None = None


class PeerDebt(BaseModel):
    other_party: str
    direction: DebtDirection
    amount: float


class Allocation(BaseModel):
    my_amount: float
    split_type: SplitType
    other_party: str | None = None
    peer_debts: list[PeerDebt] = []


class ReimbursementBalance(BaseModel):
    they_owe_me: float = 0.0
    i_owe_them: float = 0.0
    net: float = 0.0


class ReceivableBalance(BaseModel):
    counterparty: str
    net: float
    they_owe: float
    i_owe: float


class LedgerTotals(BaseModel):
    income_total: float = 0.0
    savings_total: float = 0.0
    investment_total: float = 0.0
    liability_total: float = 0.0


class SpendTotal(BaseModel):
    count: int = 0
    total: float = 0.0


class Summary(BaseModel):
    currency: str
    all_time: SpendTotal
    week: SpendTotal
    month: SpendTotal
    ytd: SpendTotal
    reimbursement_balance: ReimbursementBalance
    ledger: LedgerTotals
    net_worth: float
    receivables: list[ReceivableBalance]


class IngestResult(BaseModel):
    expense: Expense
    reimbursements: list[Reimbursement] = []
    ack: str


class MessageRequest(BaseModel):
    text: str = Field(min_length=1)
    source: str | None = None
    from_user: str | None = None


class EditExpenseRequest(BaseModel):
    text: str = Field(min_length=1)
    occurred_on: date | None = None


class LedgerRequest(BaseModel):
    text: str = Field(min_length=1)
    from_user: str | None = None


class ReimbursementListing(BaseModel):
    currency: str
    reimbursements: list[Reimbursement]
    balance: ReimbursementBalance
