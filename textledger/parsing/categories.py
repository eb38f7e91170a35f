"""Category vocabulary.

The first meaningful word of a message is taken as its category when it is
one of ``CATEGORY_WORDS``. ``canonical_category`` folds synonyms and brand
names onto a small stable set so that reports don't fragment.
"""

from types import MappingProxyType

CATEGORY_WORDS = frozenset(
    {
        # food
        "food", "dining", "restaurant",
        # explicit keyword only, "groceries" stays a note
        "grocery",
        # housing
        "rent", "housing", "mortgage",
        # transport / travel
        "travel", "transport", "transit", "cab", "uber", "lyft", "ola", "taxi",
        "flight", "hotel", "parking", "toll", "fuel", "gas",
        "clipper", "bart", "muni", "caltrain",
        # utilities & recurring
        "bills", "utilities", "electric", "water", "internet", "phone",
        "subscription", "subscriptions", "netflix", "spotify", "youtube", "apple",
        # lifestyle
        "shopping", "walmart", "amazon", "dollartree", "dollar-tree", "dollar_tree", "dollar",
        "entertainment", "movies", "movie", "comedy", "show", "shows",
        # health
        "health", "medical", "pharmacy",
        # other
        "education", "gifts",
    }
)

SYNONYMS = MappingProxyType(
    {
        "walmart": "shopping",
        "amazon": "shopping",
        "dollartree": "shopping",
        "dollar-tree": "shopping",
        "dollar_tree": "shopping",
        "groceries": "grocery",
        "mortgage": "housing",
        "cab": "transport",
        "uber": "transport",
        "lyft": "transport",
        "ola": "transport",
        "taxi": "transport",
        "clipper": "travel",
        "bart": "travel",
        "muni": "travel",
        "caltrain": "travel",
        "restaurant": "dining",
        "movie": "entertainment",
        "movies": "entertainment",
        "comedy": "entertainment",
        "show": "entertainment",
        "shows": "entertainment",
        "electric": "utilities",
        "water": "utilities",
        "internet": "utilities",
        "phone": "utilities",
        "subscription": "subscriptions",
        "netflix": "subscriptions",
        "spotify": "subscriptions",
        "youtube": "subscriptions",
    }
)


def canonical_category(word: str) -> str:
    word = word.strip().lower()
    return SYNONYMS.get(word, word)


def classify(word: str) -> str | None:
    """Return the canonical category for ``word``, or ``None`` if it isn't one."""
    word = word.strip().lower()
    if word not in CATEGORY_WORDS:
        return None
    return canonical_category(word)
