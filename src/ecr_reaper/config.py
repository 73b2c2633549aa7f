"""Configuration for the ECR registry reaper."""

from __future__ import annotations

import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Self

import yaml
from pydantic import (
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from safir.pydantic import CamelCaseModel, HumanTimedelta

from .exceptions import ConfigError

__all__ = [
    "AgeUnit",
    "PolicyConfig",
    "ReaperConfig",
    "split_prefixes",
]


class AgeUnit(Enum):
    """Granularity in which image ages are measured and compared."""

    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"

    @property
    def delta(self) -> datetime.timedelta:
        return datetime.timedelta(**{self.value: 1})

    def truncate(self, age: datetime.timedelta) -> datetime.timedelta:
        """Round an age down to a whole number of units."""
        return (age // self.delta) * self.delta

    def count(self, age: datetime.timedelta) -> int:
        return age // self.delta


def split_prefixes(inp: Any) -> Any:
    """Split a comma-separated prefix list.

    Empty segments are kept: an empty prefix matches every tag, so
    ``"prod,"`` protects every image, exactly as the operator typed it.
    """
    if isinstance(inp, str):
        return tuple(inp.split(","))
    return inp


class PolicyConfig(CamelCaseModel):
    """Retention parameters for a single run.  Immutable once built."""

    model_config = ConfigDict(frozen=True)

    region: Annotated[
        str,
        Field(
            title="Region",
            description="AWS region holding the registry",
            examples=["us-east-1"],
        ),
    ]

    max_age: Annotated[
        HumanTimedelta,
        Field(
            title="Maximum age",
            description=(
                "Images older than this are eligible for deletion unless a "
                "tag matches one of the keep prefixes.  Accepts a number of "
                "seconds or a human-readable duration such as '10d'."
            ),
            examples=["30d"],
        ),
    ]

    age_unit: Annotated[
        AgeUnit,
        Field(
            title="Age unit",
            description=(
                "Unit in which image ages are measured; ages are rounded "
                "down to whole units before comparison."
            ),
            examples=[AgeUnit.MINUTES],
        ),
    ] = AgeUnit.DAYS

    keep_prefixes: Annotated[
        tuple[str, ...],
        BeforeValidator(split_prefixes),
        Field(
            title="Keep prefixes",
            description=(
                "Images with any tag starting with one of these prefixes "
                "are never deleted for age.  A comma-separated string is "
                "also accepted."
            ),
            examples=[["latest", "dev", "main"]],
        ),
    ] = ()

    dry_run: Annotated[
        bool,
        Field(
            title="Dry run",
            description="Do not actually delete any images from registry.",
        ),
    ] = True

    @field_validator("region")
    @classmethod
    def _validate_region(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("region must not be empty")
        return v

    @field_validator("max_age")
    @classmethod
    def _validate_max_age(cls, v: datetime.timedelta) -> datetime.timedelta:
        if v < datetime.timedelta(0):
            raise ValueError(f"max_age must not be negative, not {v}")
        return v

    @model_validator(mode="after")
    def _validate_unit_alignment(self) -> Self:
        # Ages are truncated to whole units, so a threshold between two
        # units would silently round up to the next one.
        if self.max_age % self.age_unit.delta:
            raise ValueError(
                f"max_age {self.max_age} is not a whole number of "
                f"{self.age_unit.value}; set age_unit to a finer unit"
            )
        return self


class ReaperConfig(CamelCaseModel):
    """Configuration for a complete reaper run."""

    policy: Annotated[
        PolicyConfig,
        Field(
            title="Policy",
            description="Retention policy to enforce.",
        ),
    ]

    profile: Annotated[
        str | None,
        Field(
            title="Profile",
            description="AWS credentials profile; default credential chain "
            "if unset",
        ),
    ] = None

    endpoint_url: Annotated[
        str | None,
        Field(
            title="Endpoint URL",
            description="Override ECR API endpoint (e.g. a local emulator)",
        ),
    ] = None

    input_file: Annotated[
        Path | None,
        Field(
            title="Input file",
            description=(
                "If supplied, use repository data from this file, rather than "
                "scanned from actual registry."
            ),
        ),
    ] = None

    log_file: Annotated[
        Path | None,
        Field(
            title="Log file",
            description="File receiving a copy of all log output.",
        ),
    ] = Path("ecr-cleanup.log")

    report_file: Annotated[
        Path | None,
        Field(
            title="Report file",
            description="If supplied, write the run report here as JSON.",
        ),
    ] = None

    debug: Annotated[
        bool,
        Field(
            title="Debug",
            description="Much more verbose logging in human-readable format.",
        ),
    ] = False

    @classmethod
    def from_dict(cls, obj: Any) -> Self:
        try:
            return cls.model_validate(obj)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc

    @classmethod
    def from_file(cls, path: Path) -> Self:
        try:
            obj = yaml.safe_load(path.read_text())
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(
                f"Cannot read config file {path}: {exc}"
            ) from exc
        return cls.from_dict(obj)
