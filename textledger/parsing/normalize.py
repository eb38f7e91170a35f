import re

_WHITESPACE = re.compile(r"\s+")

# Variant glyphs folded onto the two symbols the parser understands
_SYMBOL_VARIANTS = {
    "₨": "₹",  # ₨ rupee sign
    "＄": "$",  # fullwidth dollar
    "﹩": "$",  # small dollar
}

_CURRENCY_MARKERS = {
    "$": "USD",
    "usd": "USD",
    "₹": "INR",
    "inr": "INR",
    "rs": "INR",
    "rs.": "INR",
}


def normalize(text: str) -> str:
    """Trim, collapse whitespace and fold currency symbol variants."""
    for variant, canonical in _SYMBOL_VARIANTS.items():
        text = text.replace(variant, canonical)
    return _WHITESPACE.sub(" ", text.strip())


def currency_for_marker(marker: str | None) -> str | None:
    """Map a currency marker such as ``$``, ``usd`` or ``rs.`` to its code."""
    if not marker:
        return None
    return _CURRENCY_MARKERS.get(marker.strip().lower())
