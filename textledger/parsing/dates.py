import re
from datetime import date, timedelta

_ISO = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
_DAY_MONTH_YEAR = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b")
_YESTERDAY = re.compile(r"\byesterday\b", re.IGNORECASE)
_TODAY = re.compile(r"\btoday\b", re.IGNORECASE)


def _strip(text: str, fragment: str) -> str:
    return " ".join(text.replace(fragment, "", 1).split())


def _calendar_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def extract_date(text: str, today: date) -> tuple[date | None, str]:
    """Pull at most one occurrence date out of ``text``.

    Priority is ISO ``YYYY-MM-DD``, then ``DD/MM/YYYY``, then the words
    ``yesterday`` and ``today``. Returns the resolved date (or ``None``) and
    the text with the consumed fragment removed.
    """
    m = _ISO.search(text)
    if m:
        found = _calendar_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if found:
            return found, _strip(text, m.group(0))

    m = _DAY_MONTH_YEAR.search(text)
    if m:
        found = _calendar_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
        if found:
            return found, _strip(text, m.group(0))

    if _YESTERDAY.search(text):
        return today - timedelta(days=1), " ".join(_YESTERDAY.sub("", text).split())
    if _TODAY.search(text):
        return today, " ".join(_TODAY.sub("", text).split())

    return None, text
