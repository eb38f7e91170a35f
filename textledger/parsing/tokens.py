"""Extraction of ``key:value`` control tokens from a message.

Meta tokens configure how a message is recorded (who paid, how it is split,
which ledger it belongs to) without being part of its description. Every
recognised token is removed; everything else is kept, in order, as the
residual text.
"""

import math
import re

from pydantic import BaseModel

from textledger.models.schemas import EntryType, LoanDirection, SplitType

_CARD = re.compile(r"^card:(.+)$", re.IGNORECASE)
_TYPE = re.compile(
    r"^type:(expense|income|transfer|investment|liability|receivable)$", re.IGNORECASE
)
_ACCOUNT = re.compile(r"^(?:acct|account):(.+)$", re.IGNORECASE)
_ASSET = re.compile(r"^(?:asset|inv|investment):(.+)$", re.IGNORECASE)
_LIABILITY = re.compile(r"^(?:liab|liability):(.+)$", re.IGNORECASE)
_COUNTERPARTY = re.compile(r"^(?:cp|counterparty|person):(.+)$", re.IGNORECASE)
_DIRECTION = re.compile(r"^(?:dir|direction):(i_lent|i_borrowed|repay|collect)$", re.IGNORECASE)
_PAID_BY = re.compile(r"^paidby:(me|roommate)$", re.IGNORECASE)
_FOR = re.compile(r"^(?:for|owner):(.+)$", re.IGNORECASE)
_OTHER = re.compile(r"^other:(.+)$", re.IGNORECASE)
_SPLIT = re.compile(r"^split:(.+)$", re.IGNORECASE)
_RATIO = re.compile(r"^(\d+(?:\.\d+)?)/(\d+(?:\.\d+)?)$")

# (pattern, field, lower-case the value); last occurrence wins
_FIELD_TOKENS = [
    (_CARD, "card", False),
    (_TYPE, "type", True),
    (_ACCOUNT, "account", False),
    (_ASSET, "asset", False),
    (_LIABILITY, "liability", False),
    (_COUNTERPARTY, "counterparty", False),
    (_DIRECTION, "direction", True),
    (_PAID_BY, "paid_by", True),
    (_FOR, "for_person", False),
]


class MetaTokens(BaseModel):
    cleaned: str = ""
    card: str | None = None
    paid_by: str | None = None
    for_person: str | None = None
    split_type: SplitType = "none"
    split_ratio_me: float | None = None
    split_ratio_other: float | None = None
    other_party: str | None = None
    other_parties: list[str] = []
    type: EntryType | None = None
    account: str | None = None
    asset: str | None = None
    liability: str | None = None
    counterparty: str | None = None
    direction: LoanDirection | None = None


def parse_ratio(value: str) -> tuple[float, float] | None:
    """Return ``(me, other)`` for a ``a/b`` token with both parts finite and positive."""
    m = _RATIO.match(value)
    if not m:
        return None
    a, b = float(m.group(1)), float(m.group(2))
    if math.isfinite(a) and math.isfinite(b) and a > 0 and b > 0:
        return a, b
    return None


def dedupe_parties(names: list[str]) -> list[str]:
    """Drop blanks and case-insensitive repeats, keeping first-seen casing and order."""
    seen: dict[str, str] = {}
    for name in names:
        name = name.strip()
        if name and name.lower() not in seen:
            seen[name.lower()] = name
    return list(seen.values())


def _apply_field_token(token: str, meta: MetaTokens) -> bool:
    for pattern, field, lower in _FIELD_TOKENS:
        m = pattern.match(token)
        if m:
            value = m.group(1).strip()
            setattr(meta, field, value.lower() if lower else value)
            return True
    return False


def extract_meta_tokens(text: str) -> MetaTokens:
    meta = MetaTokens()
    raw_others: list[str] = []
    kept: list[str] = []

    tokens = [t for t in text.split(" ") if t]
    i = 0
    while i < len(tokens):
        token = tokens[i]
        i += 1

        if _apply_field_token(token, meta):
            continue

        m = _OTHER.match(token)
        if m:
            parts = [p.strip() for p in m.group(1).split(",") if p.strip()]
            raw_others.extend(parts)
            if meta.other_party is None and parts:
                meta.other_party = parts[0]
            continue

        m = _SPLIT.match(token)
        if m:
            ratio = parse_ratio(m.group(1))
            if ratio:
                meta.split_type = "ratio"
                meta.split_ratio_me, meta.split_ratio_other = ratio
            else:
                # split:equal and anything unrecognised
                meta.split_type = "equal"
            continue

        if token.lower() == "split":
            meta.split_type = "equal"
            if i < len(tokens) and _RATIO.match(tokens[i]):
                ratio = parse_ratio(tokens[i])
                if ratio:
                    meta.split_type = "ratio"
                    meta.split_ratio_me, meta.split_ratio_other = ratio
                i += 1
            continue

        kept.append(token)

    meta.other_parties = dedupe_parties(raw_others)
    meta.cleaned = " ".join(kept)
    return meta
