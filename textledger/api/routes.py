from datetime import date

from fastapi import APIRouter, HTTPException
from loguru import logger

from textledger.core.service import InvalidLedgerEntry
from textledger.deps import service
from textledger.models.schemas import (
    EditExpenseRequest,
    Expense,
    IngestResult,
    LedgerEntry,
    LedgerRequest,
    LedgerTotals,
    MessageRequest,
    ReceivableBalance,
    ReimbursementBalance,
    ReimbursementListing,
    Summary,
)

router = APIRouter()

UNPARSEABLE = "Could not parse amount from message"


def _clamp(limit: int, ceiling: int) -> int:
    return min(max(limit, 1), ceiling)


@router.get("/health")
def health():
    return {"ok": True, "status": "up"}


@router.post("/parse")
def parse_message(request: MessageRequest):
    parsed = service.parse(request.text)
    if parsed is None:
        return {"ok": False, "error": UNPARSEABLE, "text": request.text}
    return parsed


@router.post("/messages")
def ingest_message(request: MessageRequest):
    logger.info("Ingesting message: {}", request.text)
    parsed = service.parse(request.text)
    if parsed is None:
        return {"ok": False, "error": UNPARSEABLE, "text": request.text}
    return service.ingest(
        parsed, request.text, source=request.source or "message", from_user=request.from_user
    )


@router.get("/expenses", response_model=list[Expense])
def list_expenses(
    limit: int = 50,
    start: date | None = None,
    end: date | None = None,
    card: str | None = None,
):
    return service.list_expenses(start=start, end=end, card=card, limit=_clamp(limit, 200))


@router.put("/expenses/{expense_id}", response_model=IngestResult)
def edit_expense(expense_id: int, request: EditExpenseRequest):
    parsed = service.parse(request.text)
    if parsed is None:
        raise HTTPException(status_code=400, detail=UNPARSEABLE)
    result = service.reallocate(expense_id, parsed, request.text, occurred_on=request.occurred_on)
    if result is None:
        raise HTTPException(status_code=404, detail="Expense not found")
    return result


@router.delete("/expenses/{expense_id}")
def delete_expense(expense_id: int):
    if not service.delete_expense(expense_id):
        raise HTTPException(status_code=404, detail="Expense not found")
    return {"detail": "Expense deleted"}


@router.post("/ledger", response_model=LedgerEntry)
def create_ledger_entry(request: LedgerRequest):
    parsed = service.parse(request.text)
    if parsed is None:
        raise HTTPException(status_code=400, detail=UNPARSEABLE)
    try:
        return service.record_ledger_entry(parsed, request.text, from_user=request.from_user)
    except InvalidLedgerEntry as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/ledger", response_model=list[LedgerEntry])
def list_ledger_entries(
    limit: int = 50,
    start: date | None = None,
    end: date | None = None,
    type: str | None = None,
):
    return service.list_ledger_entries(start=start, end=end, type=type, limit=_clamp(limit, 200))


@router.get("/ledger/totals", response_model=LedgerTotals)
def get_ledger_totals():
    return service.ledger_totals()


@router.get("/reimbursements", response_model=ReimbursementListing)
def list_reimbursements(
    limit: int = 100,
    start: date | None = None,
    end: date | None = None,
    other_party: str | None = None,
):
    rows = service.list_reimbursements(
        start=start, end=end, other_party=other_party, limit=_clamp(limit, 500)
    )
    return ReimbursementListing(
        currency=service.default_currency,
        reimbursements=rows,
        balance=service.reimbursement_balance(other_party=other_party),
    )


@router.get("/reimbursements/balance", response_model=ReimbursementBalance)
def get_reimbursement_balance(other_party: str | None = None):
    return service.reimbursement_balance(other_party=other_party)


@router.get("/reimbursements/parties", response_model=list[str])
def list_parties():
    return service.list_other_parties()


@router.get("/receivables", response_model=list[ReceivableBalance])
def list_receivables():
    return service.receivable_balances()


@router.get("/summary", response_model=Summary)
def get_summary():
    return service.summary()
