"""Sent-message index keyed by normalized recipient phone.

Built once per run, never mutated afterwards. Grouping is by exact digit key;
fuzzy matching happens at lookup time through the configured PhoneMatcher,
which scans every key (bounded by the distinct recipients in the window).
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

from delivery_audit.models.records import SentMessage
from delivery_audit.services.phone_matching import PhoneMatcher, SuffixPhoneMatcher, digits_only


class MessageIndex:
    def __init__(self, groups: Mapping[str, Sequence[SentMessage]]):
        self._groups: Mapping[str, tuple[SentMessage, ...]] = MappingProxyType(
            {key: tuple(msgs) for key, msgs in groups.items()}
        )

    @classmethod
    def build(cls, messages: Iterable[SentMessage]) -> "MessageIndex":
        groups: dict[str, list[SentMessage]] = {}
        for message in messages:
            key = digits_only(message.recipient_phone)
            if not key:
                continue
            groups.setdefault(key, []).append(message)
        return cls(groups)

    @classmethod
    def empty(cls) -> "MessageIndex":
        return cls({})

    def __len__(self) -> int:
        return sum(len(msgs) for msgs in self._groups.values())

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self._groups)

    def group(self, key: str) -> tuple[SentMessage, ...]:
        return self._groups.get(key, ())

    def lookup(self, phone: str, matcher: PhoneMatcher | None = None) -> list[SentMessage]:
        """All messages whose key matches `phone`, most recent first."""
        tel = digits_only(phone)
        if not tel:
            return []
        matcher = matcher or SuffixPhoneMatcher()
        found: list[SentMessage] = []
        for key, msgs in self._groups.items():
            if key == tel or matcher.matches(key, tel):
                found.extend(msgs)
        # sorted() is stable: equal timestamps keep insertion order
        return sorted(found, key=lambda m: m.sent_at_epoch or 0, reverse=True)


__all__ = ["MessageIndex"]
