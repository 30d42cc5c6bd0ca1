"""Phone-number normalization and matching strategies.

Customer phones were stored in two eras: legacy national digits (DDD +
number, e.g. 53994242183) and E.164 (+5553994242183). The provider keys
messages by digits with the country code and no `+`. `SuffixPhoneMatcher`
bridges the formats by accepting a number that ends with the other one.
That rule can pair unrelated short numbers; swap in `ExactPhoneMatcher`
where the data is clean enough.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any

from delivery_audit.exceptions import ConfigurationError

_NON_DIGITS = re.compile(r"\D")


def digits_only(phone: Any) -> str:
    if not phone:
        return ""
    return _NON_DIGITS.sub("", str(phone))


def same_number(a: Any, b: Any) -> bool:
    da = digits_only(a)
    db = digits_only(b)
    if not da or not db:
        return False
    if da == db:
        return True
    # Tolerates a country code (e.g. 55) present on only one side
    return da.endswith(db) or db.endswith(da)


class PhoneMatcher(ABC):
    name: str = ""

    @abstractmethod
    def matches(self, a: Any, b: Any) -> bool:
        """Return True when `a` and `b` identify the same phone line."""


class SuffixPhoneMatcher(PhoneMatcher):
    name = "suffix"

    def matches(self, a: Any, b: Any) -> bool:
        return same_number(a, b)


class ExactPhoneMatcher(PhoneMatcher):
    name = "exact"

    def matches(self, a: Any, b: Any) -> bool:
        da = digits_only(a)
        return bool(da) and da == digits_only(b)


_MATCHERS: dict[str, type[PhoneMatcher]] = {
    SuffixPhoneMatcher.name: SuffixPhoneMatcher,
    ExactPhoneMatcher.name: ExactPhoneMatcher,
}


def get_phone_matcher(name: str = SuffixPhoneMatcher.name) -> PhoneMatcher:
    try:
        return _MATCHERS[name.lower()]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown phone match strategy {name!r}; expected one of {', '.join(sorted(_MATCHERS))}"
        ) from None


__all__ = [
    "digits_only",
    "same_number",
    "PhoneMatcher",
    "SuffixPhoneMatcher",
    "ExactPhoneMatcher",
    "get_phone_matcher",
]
