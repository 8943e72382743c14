"""Text normalization shared by the search index and the search query.

Store names and descriptions are reduced to the same token form the query is:
NFKD folded to ASCII, lowercased, stop words dropped, plurals folded. The
tokens are stored in Store.search_text, so "Café" is found by "cafe" and
"Cities" by "city".
"""

import re
import unicodedata

STOP_WORDS = frozenset(
    {"a", "an", "and", "at", "by", "for", "in", "is", "it", "of", "on", "or", "the", "to", "with"}
)

_WORD = re.compile(r"[a-z0-9]+")


def stem(token: str) -> str:
    """Light plural folding: bakeries -> bakery, shops -> shop."""
    if len(token) > 4 and token.endswith("ies"):
        return token[:-3] + "y"
    if len(token) > 3 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


def tokenize(text: str) -> list[str]:
    """Lowercase ASCII words, stemmed, stop words removed."""
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return [stem(w) for w in _WORD.findall(ascii_text.lower()) if w not in STOP_WORDS]


def search_document(name: str | None, description: str | None) -> str:
    """Value for Store.search_text.

    Tokens are space separated with a leading and trailing space, so
    LIKE '% token %' is an exact token match.

    Example:
        >>> search_document("Twin Cities Café", None)
        ' twin city cafe '
    """
    tokens = tokenize(name or "") + tokenize(description or "")
    return f" {' '.join(tokens)} " if tokens else ""
