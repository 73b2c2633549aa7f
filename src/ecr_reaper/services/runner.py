"""Apply a retention policy to every image in a registry."""

import datetime
from collections.abc import Callable

import structlog
from safir.datetime import current_datetime

from ..config import PolicyConfig
from ..exceptions import ServiceError
from ..models.image import ImageRecord
from ..models.report import (
    Action,
    ImageOutcome,
    RepositoryOutcome,
    RepositoryStatus,
    RunReport,
)
from ..storage.registry import RegistryGateway
from .classifier import classify


class CleanupRunner:
    """Walk a registry one repository and one image at a time, classify
    each image, and delete the ones the policy condemns.

    Only failing to enumerate repositories is fatal.  Failures listing the
    images of one repository, or deleting one image, are recorded in the
    report and the sweep carries on.

    Parameters
    ----------
    clock
        Source of the current time, sampled once per run.
    """

    def __init__(
        self,
        clock: Callable[[], datetime.datetime] = current_datetime,
    ) -> None:
        self._clock = clock
        self._logger = structlog.get_logger(__name__)

    def run(self, policy: PolicyConfig, gateway: RegistryGateway) -> RunReport:
        now = self._clock()
        report = RunReport(
            region=policy.region, dry_run=policy.dry_run, started_at=now
        )
        # Raises ServiceError, which is fatal: nothing has been done yet.
        repos = gateway.list_repositories()
        if not repos:
            self._logger.warning(
                f"No repositories found in region {policy.region}"
            )
        for repo in repos:
            self._process_repository(repo.name, policy, gateway, now, report)
        report.finalize(self._clock())
        counts = report.counts()
        self._logger.info("Run complete", **counts)
        return report

    def _process_repository(
        self,
        name: str,
        policy: PolicyConfig,
        gateway: RegistryGateway,
        now: datetime.datetime,
        report: RunReport,
    ) -> None:
        self._logger.info(f"Repository: {name}")
        try:
            images = gateway.list_images(name)
        except ServiceError as exc:
            self._logger.warning(f"Error fetching images for {name}: {exc}")
            report.record_repository(
                RepositoryOutcome(
                    repository=name,
                    status=RepositoryStatus.LIST_FAILED,
                    error=str(exc),
                )
            )
            return
        if not images:
            self._logger.warning(f"No images found in repository {name}")
            report.record_repository(
                RepositoryOutcome(
                    repository=name, status=RepositoryStatus.NO_IMAGES
                )
            )
            return
        undated = 0
        for image in images:
            if image.pushed_at is None:
                self._logger.warning(f"Image '{image.digest}' has no date")
                undated += 1
                continue
            report.record_image(
                self._process_image(name, image, policy, gateway, now)
            )
        report.record_repository(
            RepositoryOutcome(
                repository=name,
                status=RepositoryStatus.PROCESSED,
                images=len(images) - undated,
                undated=undated,
            )
        )

    def _process_image(
        self,
        repository: str,
        image: ImageRecord,
        policy: PolicyConfig,
        gateway: RegistryGateway,
        now: datetime.datetime,
    ) -> ImageOutcome:
        verdict = classify(image, policy, now)
        error: str | None = None
        if not verdict.delete:
            action = Action.KEPT
        elif policy.dry_run:
            action = Action.SKIPPED_DRY_RUN
        else:
            try:
                gateway.delete_image(repository, image.digest)
            except ServiceError as exc:
                action = Action.DELETE_FAILED
                error = str(exc)
            else:
                action = Action.DELETED
        outcome = ImageOutcome(
            repository=repository,
            digest=image.digest,
            tags=tuple(sorted(image.tags)),
            verdict=verdict,
            action=action,
            error=error,
        )
        logger = self._logger.bind(
            repository=repository,
            digest=image.digest,
            tags=list(outcome.tags),
            age=policy.age_unit.count(verdict.age),
            unit=policy.age_unit.value,
            verdict=str(verdict),
            action=action.value,
        )
        if error is not None:
            logger.error(f"Error deleting image {image.digest}", error=error)
        else:
            logger.info(f"Image {image}: {action.value}")
        return outcome
