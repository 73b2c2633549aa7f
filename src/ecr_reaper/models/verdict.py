"""Retention verdicts for individual images."""

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Self

__all__ = [
    "KeepReason",
    "Verdict",
    "VerdictKind",
]


class VerdictKind(Enum):
    """What the retention policy says should happen to an image."""

    KEEP = "keep"
    DELETE_UNTAGGED = "delete-untagged"
    DELETE_EXPIRED = "delete-expired"


class KeepReason(Enum):
    """Why an image survives."""

    PREFIX_MATCHED = "prefix matched"
    NOT_EXPIRED = "not yet expired"


@dataclass(frozen=True)
class Verdict:
    """The decision for a single image.

    Use the named constructors rather than building one by hand: they
    guarantee that a keep always carries a reason and that only keeps do.
    """

    kind: VerdictKind
    age: datetime.timedelta
    reason: KeepReason | None = None

    @classmethod
    def keep(cls, reason: KeepReason, age: datetime.timedelta) -> Self:
        return cls(kind=VerdictKind.KEEP, age=age, reason=reason)

    @classmethod
    def delete_untagged(cls, age: datetime.timedelta) -> Self:
        return cls(kind=VerdictKind.DELETE_UNTAGGED, age=age)

    @classmethod
    def delete_expired(cls, age: datetime.timedelta) -> Self:
        return cls(kind=VerdictKind.DELETE_EXPIRED, age=age)

    @property
    def delete(self) -> bool:
        return self.kind != VerdictKind.KEEP

    def __str__(self) -> str:
        if self.reason is not None:
            return f"{self.kind.value} ({self.reason.value})"
        return self.kind.value
