"""
Medication classification.

Acute-class detection (triptans) is a clinical classification, so it matches
exact substrings of a normalized name only. There is deliberately no
edit-distance tolerance here: "Sumatriptan 50mg" and "SUMATRIPTAN" match,
"Sumatripan" does not.
"""

import re
import unicodedata

ACUTE_CLASS_STEM = "triptan"

# Brand names whose generic name does not appear on the package
ACUTE_CLASS_BRANDS: tuple[str, ...] = (
    "imigran",
    "maxalt",
    "ascotop",
    "naramig",
    "almogran",
    "relpax",
    "allegro",
    "dolotriptan",
    "formigran",
    "zomig",
    "amerge",
    "axert",
    "frova",
    "treximet",
)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_name(name: str | None) -> str:
    """Lowercase, strip diacritics and drop every non-alphanumeric character."""
    if not name:
        return ""
    decomposed = unicodedata.normalize("NFKD", name.lower())
    ascii_only = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALNUM.sub("", ascii_only)


_NORMALIZED_BRANDS = tuple(normalize_name(brand) for brand in ACUTE_CLASS_BRANDS)


def is_acute_class(name: str | None) -> bool:
    """True if ``name`` is a triptan by generic stem or known brand."""
    normalized = normalize_name(name)
    if not normalized:
        return False
    if ACUTE_CLASS_STEM in normalized:
        return True
    return any(brand in normalized for brand in _NORMALIZED_BRANDS)


def same_medication(a: str | None, b: str | None) -> bool:
    """Name equality as used for limits and per-medication grouping."""
    normalized = normalize_name(a)
    return bool(normalized) and normalized == normalize_name(b)
