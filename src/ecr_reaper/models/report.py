"""Accumulated results of a reaper run."""

import datetime
from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .image import DATEFMT
from .verdict import Verdict

__all__ = [
    "Action",
    "ImageOutcome",
    "RepositoryOutcome",
    "RepositoryStatus",
    "RunReport",
]


class Action(Enum):
    """What was actually done to an image."""

    KEPT = "kept"
    SKIPPED_DRY_RUN = "skipped-dry-run"
    DELETED = "deleted"
    DELETE_FAILED = "delete-failed"


class RepositoryStatus(Enum):
    PROCESSED = "processed"
    NO_IMAGES = "no-images"
    LIST_FAILED = "list-failed"


@dataclass(frozen=True)
class ImageOutcome:
    """Auditable record of one classified image."""

    repository: str
    digest: str
    tags: tuple[str, ...]
    verdict: Verdict
    action: Action
    error: str | None = None

    @property
    def age(self) -> datetime.timedelta:
        return self.verdict.age

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository": self.repository,
            "digest": self.digest,
            "tags": list(self.tags),
            "age_seconds": int(self.age.total_seconds()),
            "verdict": self.verdict.kind.value,
            "reason": (
                self.verdict.reason.value if self.verdict.reason else None
            ),
            "action": self.action.value,
            "error": self.error,
        }


@dataclass(frozen=True)
class RepositoryOutcome:
    """Processing note for one repository."""

    repository: str
    status: RepositoryStatus
    images: int = 0
    undated: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository": self.repository,
            "status": self.status.value,
            "images": self.images,
            "undated": self.undated,
            "error": self.error,
        }


@dataclass
class RunReport:
    """Built incrementally by the runner, read-only once finalized."""

    region: str
    dry_run: bool
    started_at: datetime.datetime
    finished_at: datetime.datetime | None = None
    repositories: list[RepositoryOutcome] = field(default_factory=list)
    _images: list[ImageOutcome] = field(default_factory=list, repr=False)

    @property
    def finalized(self) -> bool:
        return self.finished_at is not None

    def _check_open(self) -> None:
        if self.finalized:
            raise RuntimeError("Run report is finalized; cannot record")

    def record_repository(self, outcome: RepositoryOutcome) -> None:
        self._check_open()
        self.repositories.append(outcome)

    def record_image(self, outcome: ImageOutcome) -> None:
        self._check_open()
        self._images.append(outcome)

    def finalize(self, finished_at: datetime.datetime) -> None:
        self._check_open()
        self.finished_at = finished_at

    def outcomes(self) -> Iterator[ImageOutcome]:
        """Yield per-image outcomes in the order they were recorded."""
        yield from self._images

    def failures(self) -> int:
        """Count of recoverable failures (listing or deletion)."""
        counts = self.counts()
        return counts["list_failed"] + counts[Action.DELETE_FAILED.value]

    def counts(self) -> dict[str, int]:
        actions = Counter(x.action for x in self._images)
        statuses = Counter(x.status for x in self.repositories)
        retval: dict[str, int] = {}
        retval["repositories"] = len(self.repositories)
        retval["list_failed"] = statuses[RepositoryStatus.LIST_FAILED]
        retval["no_images"] = statuses[RepositoryStatus.NO_IMAGES]
        retval["images"] = len(self._images)
        retval["undated"] = sum(x.undated for x in self.repositories)
        for action in Action:
            retval[action.value] = actions[action]
        return retval

    def to_dict(self) -> dict[str, Any]:
        finished: str | None = None
        if self.finished_at is not None:
            finished = self.finished_at.strftime(DATEFMT)
        return {
            "region": self.region,
            "dry_run": self.dry_run,
            "started_at": self.started_at.strftime(DATEFMT),
            "finished_at": finished,
            "counts": self.counts(),
            "repositories": [x.to_dict() for x in self.repositories],
            "images": [x.to_dict() for x in self.outcomes()],
        }
