"""
Class-name normalizer
=====================

Maps free-text class names from the payroll export onto a small vocabulary
of canonical class types. Rules are checked in order; the first family that
matches wins, so e.g. "Cardio Barre Plus Express" becomes
"Studio Cardio Barre Plus" (the `plus` check runs before `express`).
"""

from __future__ import annotations
import re
from typing import List, Optional, Tuple

HOSTED_CLASS = "Studio Hosted Class"

_EXPRESS = re.compile(r"express", re.IGNORECASE)
_PLUS = re.compile(r"plus", re.IGNORECASE)

# (pattern, base name, express name). express name None = no express variant.
_FAMILIES: List[Tuple[re.Pattern, str, Optional[str]]] = [
    (re.compile(r"barre 57|barre57", re.IGNORECASE), "Studio Barre 57", "Studio Barre 57 Express"),
    (re.compile(r"mat", re.IGNORECASE), "Studio Mat 57", "Studio Mat 57 Express"),
    (re.compile(r"Trainer|Trainer's", re.IGNORECASE), "Studio Trainer's Choice", "Studio Trainer's Choice Express"),
    (re.compile(r"cardio barre|Studio Cardio", re.IGNORECASE), "Studio Cardio Barre", "Studio Cardio Barre Express"),
    (re.compile(r"back body", re.IGNORECASE), "Studio Back Body Blaze", "Studio Back Body Blaze Express"),
    (re.compile(r"fit", re.IGNORECASE), "Studio FIT", "Studio FIT Express"),
    (re.compile(r"powercycle", re.IGNORECASE), "Studio powerCycle", "Studio powerCycle Express"),
    (re.compile(r"amped", re.IGNORECASE), "Studio Amped Up!", "Studio Amped Up! Express"),
    (re.compile(r"sweat", re.IGNORECASE), "Studio SWEAT In 30", "Studio SWEAT In 30 Express"),
    (re.compile(r"foundation", re.IGNORECASE), "Studio Foundations", "Studio Foundations Express"),
    (re.compile(r"recovery", re.IGNORECASE), "Studio Recovery", "Studio Recovery Express"),
    (re.compile(r"pre/post", re.IGNORECASE), "Studio Pre/Post Natal", None),
    (re.compile(r"hiit", re.IGNORECASE), "Studio HIIT", "Studio HIIT Express"),
]

_CARDIO_BARRE = "Studio Cardio Barre"

# NOTE: the trailing bare `x` matches any name containing the letter x.
_HOSTED = re.compile(
    r"hosted|bridal|lrs|x p57|rugby|wework|olympics|birthday|host|raheja|pop|"
    r"workshop|community|physique|soundrise|outdoor|p57 x|x",
    re.IGNORECASE,
)


def normalize_class_name(raw: object) -> str:
    """Return the canonical class type for a raw class name.

    Unknown names are returned unchanged so no data is dropped.
    """
    if raw is None:
        return ""
    name = str(raw)

    for pattern, base, express in _FAMILIES:
        if not pattern.search(name):
            continue
        if base == _CARDIO_BARRE and _PLUS.search(name):
            return "Studio Cardio Barre Plus"
        if express is not None and _EXPRESS.search(name):
            return express
        return base

    if _HOSTED.search(name):
        return HOSTED_CLASS
    return name
