"""Provides reaping services for an ECR registry configuration."""

import json

import structlog

from ..config import ReaperConfig
from ..exceptions import ConfigError
from ..factory import Factory
from ..models.report import RunReport
from ..storage.registry import RegistryGateway
from .runner import CleanupRunner


class Reaper:
    """Provides the mechanism to implement an image retention policy."""

    def __init__(
        self,
        cfg: ReaperConfig,
        *,
        gateway: RegistryGateway | None = None,
        runner: CleanupRunner | None = None,
    ) -> None:
        self._cfg = cfg
        self._policy = cfg.policy
        factory = Factory(cfg)
        self._gateway = gateway or factory.create_gateway()
        self._runner = runner or factory.create_runner()
        self._report: RunReport | None = None
        self.name = f"ecr:{self._policy.region}"
        self._logger = structlog.get_logger(f"ecr_reaper.{self.name}")

    @property
    def gateway(self) -> RegistryGateway:
        return self._gateway

    def connect(self) -> None:
        self._gateway.connect()

    def run(self) -> RunReport:
        """Enforce the policy and return the finalized report.

        Raises
        ------
        ServiceError
            Raised if the registry session cannot be established or the
            repositories cannot be listed.
        """
        policy = self._policy
        self._logger.info(
            "Starting run",
            region=policy.region,
            max_age=str(policy.max_age),
            age_unit=policy.age_unit.value,
            keep_prefixes=list(policy.keep_prefixes),
            dry_run=policy.dry_run,
        )
        self.connect()
        self._report = self._runner.run(policy, self._gateway)
        return self._report

    def report(self) -> None:
        """Print the outcome of each classified image."""
        if self._report is None:
            self._logger.warning("No run has been made, so nothing to report.")
            return
        dry = " (dry run)" if self._report.dry_run else ""
        headline = f"Image retention for {self.name}{dry}:"
        print(headline)
        print("-" * len(headline))
        for repo in self._report.repositories:
            note = repo.status.value
            if repo.error:
                note += f": {repo.error}"
            print(f"{repo.repository}  [{note}]")
        rows = [
            (
                f"{x.repository}@{x.digest}",
                ",".join(x.tags) or "<untagged>",
                str(self._policy.age_unit.count(x.age)),
                str(x.verdict),
                x.action.value + (f": {x.error}" if x.error else ""),
            )
            for x in self._report.outcomes()
        ]
        if rows:
            widths = [max(len(r[i]) for r in rows) for i in range(4)]
            for row in rows:
                cols = [c.ljust(w) for c, w in zip(row, widths, strict=False)]
                print(" ".join([*cols, row[4]]))
        print()
        counts = self._report.counts()
        print(", ".join(f"{k}: {v}" for k, v in counts.items()))
        print("\n")

    def write_report(self) -> None:
        """Write the run report as JSON to the configured report file.

        Raises
        ------
        ConfigError
            Raised if the report file cannot be written.
        """
        if self._report is None or self._cfg.report_file is None:
            return
        try:
            self._cfg.report_file.write_text(
                json.dumps(self._report.to_dict(), indent=2)
            )
        except OSError as exc:
            raise ConfigError(
                f"Cannot write report file {self._cfg.report_file}: {exc}"
            ) from exc
        self._logger.info(f"Wrote report to {self._cfg.report_file}")
