from __future__ import annotations

from collections.abc import Sequence

from rapidfuzz import fuzz

from .formatters import phone_key
from .model import Contact
from .qr import ParsedContact

DUPLICATE_THRESHOLD = 90.0


def similarity(scanned: ParsedContact | Contact, existing: Contact) -> float:
    """0–100 score that a scanned or imported contact is already in the address book.

    Same name and same phone is a duplicate; a matching email also counts,
    name alone never does.
    """
    name_score = fuzz.token_sort_ratio(scanned.full_name.lower(), existing.full_name.lower())
    if name_score < 85:
        return 0.0
    score = 0.5 * name_score
    a, b = phone_key(scanned.phone), phone_key(existing.phone)
    if a and b and a == b:
        score += 50
    elif scanned.email and existing.email and scanned.email.lower() == existing.email.lower():
        score += 45
    return min(score, 100.0)


def find_duplicate(scanned: ParsedContact | Contact, contacts: Sequence[Contact]) -> Contact | None:
    """Best existing match for ``scanned`` at or above the duplicate threshold."""
    best: Contact | None = None
    best_score = 0.0
    for c in contacts:
        s = similarity(scanned, c)
        if s > best_score:
            best, best_score = c, s
    return best if best_score >= DUPLICATE_THRESHOLD else None
