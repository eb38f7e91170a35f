"""Splitting an expense into my share and the peer debts it implies.

``allocate`` is pure: the same parsed message and default party always give
the same allocation. It is used both when an expense is first recorded and
when it is edited, in which case its previous peer debts are discarded and
replaced by the freshly computed ones.
"""

import math

from textledger.models.schemas import Allocation, ParsedMessage, PeerDebt
from textledger.parsing.tokens import dedupe_parties


def _paid_by_me(parsed: ParsedMessage) -> bool:
    return parsed.paid_by in (None, "", "me")


def split_parties(parsed: ParsedMessage, default_other_party: str) -> list[str]:
    """Parties sharing a split expense with me, falling back to the default party."""
    if parsed.other_parties:
        names = parsed.other_parties
    elif parsed.other_party:
        names = [parsed.other_party]
    else:
        names = [default_other_party]
    return dedupe_parties(names)


def has_valid_ratio(parsed: ParsedMessage) -> bool:
    me, other = parsed.split_ratio_me, parsed.split_ratio_other
    if parsed.split_type != "ratio" or me is None or other is None:
        return False
    return math.isfinite(me) and math.isfinite(other) and me > 0 and other > 0


def my_share(parsed: ParsedMessage, n_others: int) -> float:
    """My part of a split expense; an unusable ratio falls back to an equal split."""
    if has_valid_ratio(parsed):
        me, other = parsed.split_ratio_me, parsed.split_ratio_other
        # me / (me + other) without overflowing the sum
        return parsed.amount / (1 + other / me)
    return parsed.amount / (1 + max(1, n_others))


def allocate(parsed: ParsedMessage, default_other_party: str) -> Allocation:
    amount = parsed.amount

    if parsed.for_person:
        beneficiary = parsed.other_parties[0] if parsed.other_parties else parsed.for_person
        direction = "they_owe_me" if _paid_by_me(parsed) else "i_owe_them"
        return Allocation(
            my_amount=0.0,
            split_type="none",
            other_party=parsed.other_party or parsed.for_person,
            peer_debts=[PeerDebt(other_party=beneficiary, direction=direction, amount=amount)],
        )

    if parsed.split_type == "none":
        return Allocation(my_amount=amount, split_type="none", other_party=parsed.other_party)

    others = split_parties(parsed, default_other_party)
    mine = my_share(parsed, len(others))
    remainder = amount - mine
    each_other = remainder / len(others) if others else remainder
    primary = others[0] if others else default_other_party

    if _paid_by_me(parsed):
        debts = [PeerDebt(other_party=p, direction="they_owe_me", amount=each_other) for p in others]
    else:
        # Someone else paid: I owe the payer my share only
        debts = [PeerDebt(other_party=primary, direction="i_owe_them", amount=mine)]

    return Allocation(
        my_amount=mine,
        split_type="ratio" if has_valid_ratio(parsed) else "equal",
        other_party=primary,
        # an extreme ratio can round one side's share down to nothing
        peer_debts=[d for d in debts if d.amount > 0],
    )
