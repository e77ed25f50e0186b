"""
AI relevance filter.

Decides whether a record we have never stored before is about AI policy.
Existing records are never passed through here.
"""
import re
from typing import Iterable, Optional

_PHRASE = "artificial intelligence"
_TOKEN = re.compile(r"\bai\b", re.IGNORECASE)


def is_relevant(
    title: Optional[str],
    summary_text: Optional[str] = None,
    abstract_texts: Optional[Iterable[Optional[str]]] = None,
) -> bool:
    """
    True if the text mentions AI explicitly.

    Matches the phrase "artificial intelligence" anywhere, or "AI" as a
    whole word (so "air" and "said" do not count). Case-insensitive.

    Examples:
        >>> is_relevant("AI Safety Act")
        True
        >>> is_relevant("This bill regulates air traffic")
        False
    """
    parts = [title or "", summary_text or ""]
    parts.extend(text or "" for text in abstract_texts or [])
    text = " ".join(parts)

    return _PHRASE in text.lower() or bool(_TOKEN.search(text))
