import math
import re
from collections.abc import Callable
from datetime import date

from loguru import logger

from textledger.models.schemas import ParsedMessage
from textledger.parsing.categories import classify
from textledger.parsing.dates import extract_date
from textledger.parsing.normalize import currency_for_marker, normalize
from textledger.parsing.tokens import extract_meta_tokens

# Optional currency marker, digits with optional thousands groups, 1-2 decimals
AMOUNT_RE = re.compile(
    r"(?:(\$|₹|(?<![a-z])(?:usd|inr|rs\.?))\s*)?([0-9]+(?:,[0-9]{3})*)(?:\.(\d{1,2}))?",
    re.IGNORECASE,
)
STOPWORD_RE = re.compile(r"^(?:spent|spend|paid|pay|for|on|rs\.?|₹|\$|inr|usd)$", re.IGNORECASE)


def _words(text: str) -> list[str]:
    return [w for w in text.split(" ") if w]


class MessageParser:
    """Turns SMS/chat-style text into a ``ParsedMessage``.

    Supported shapes include ``food 250 chai``, ``spent 250 chai``,
    ``₹1,250 groceries`` and ``250``, with any number of meta tokens
    (``paidby:me``, ``split:2/1``, ``other:vyas``, ``type:income`` ...) and an
    optional date anywhere in the text.
    """

    def __init__(self, today: Callable[[], date] = date.today):
        self.today = today

    def parse(self, text: str) -> ParsedMessage | None:
        meta = extract_meta_tokens(normalize(text))
        occurred_on, remaining = extract_date(meta.cleaned, self.today())

        match = AMOUNT_RE.search(remaining)
        if not match:
            logger.debug("No amount in message: {}", text)
            return None

        digits = match.group(2).replace(",", "")
        if match.group(3):
            digits = f"{digits}.{match.group(3)}"
        amount = float(digits)
        if not math.isfinite(amount) or amount <= 0:
            logger.debug("Unusable amount {} in message: {}", digits, text)
            return None

        before = remaining[: match.start()].strip()
        after = remaining[match.end():].strip()

        currency = currency_for_marker(match.group(1))
        before_words = []
        for word in _words(before):
            if STOPWORD_RE.match(word):
                currency = currency or currency_for_marker(word)
            else:
                before_words.append(word)

        # "spent 250 chai": nothing but stop-words before the amount
        candidate = after if not before_words else f"{before} {after}"
        words = [w for w in _words(candidate) if not STOPWORD_RE.match(w)]

        category = None
        if words:
            category = classify(words[0])
            if category:
                words = words[1:]
        note = " ".join(words) or None

        return ParsedMessage(
            amount=amount,
            currency=currency,
            occurred_on=occurred_on,
            category=category,
            note=note,
            card=meta.card,
            paid_by=meta.paid_by,
            type=meta.type or "expense",
            account=meta.account,
            asset=meta.asset,
            liability=meta.liability,
            counterparty=meta.counterparty,
            direction=meta.direction,
            split_type=meta.split_type,
            split_ratio_me=meta.split_ratio_me,
            split_ratio_other=meta.split_ratio_other,
            other_party=meta.other_party,
            other_parties=meta.other_parties,
            for_person=meta.for_person,
        )
