"""Test fixtures for ECR image reaper."""

import datetime
from collections.abc import Callable, Iterator
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
import yaml
from safir.datetime import parse_timedelta as pt

from ecr_reaper.config import AgeUnit, PolicyConfig, ReaperConfig
from ecr_reaper.exceptions import ServiceError
from ecr_reaper.models.image import ImageRecord, RepositoryRecord
from ecr_reaper.storage.preloaded import PreloadedClient

NOW = datetime.datetime(2024, 6, 1, tzinfo=datetime.UTC)
"""Fixed instant all test runs are judged against."""

SUPPORT_DIR = Path(__file__).parent / "support"


class FlakyClient(PreloadedClient):
    """Preloaded gateway that can be told to fail, and that remembers what
    it was asked to delete.
    """

    def __init__(self, region: str, inputfile: Path | None = None) -> None:
        super().__init__(region, inputfile)
        self.fail_repositories = False
        self.fail_list: set[str] = set()
        self.fail_delete: set[str] = set()
        self.deleted: list[tuple[str, str]] = []

    def list_repositories(self) -> list[RepositoryRecord]:
        if self.fail_repositories:
            raise ServiceError("AccessDenied", "describe_repositories")
        return super().list_repositories()

    def list_images(self, repository: str) -> list[ImageRecord]:
        if repository in self.fail_list:
            raise ServiceError("RepositoryNotFound", "describe_images")
        return super().list_images(repository)

    def delete_image(self, repository: str, digest: str) -> None:
        self.deleted.append((repository, digest))
        if digest in self.fail_delete:
            raise ServiceError("ImageNotFound", "batch_delete_image")
        super().delete_image(repository, digest)


def _make_image(
    digest: str,
    tags: list[str] | None = None,
    age: str | None = "1d",
) -> ImageRecord:
    pushed_at = None if age is None else NOW - pt(age)
    return ImageRecord(
        digest=digest, tags=frozenset(tags or []), pushed_at=pushed_at
    )


@pytest.fixture
def now() -> datetime.datetime:
    return NOW


@pytest.fixture
def make_image() -> Callable[..., ImageRecord]:
    """Build an image from a digest, a list of tags, and an age string
    such as ``"30d"``, measured back from the fixed test instant.  An age
    of `None` gives an undated image.
    """
    return _make_image


@pytest.fixture
def policy() -> PolicyConfig:
    """Ten days, protecting anything tagged ``prod``; really deletes."""
    return PolicyConfig(
        region="us-east-1",
        max_age=pt("10d"),
        age_unit=AgeUnit.DAYS,
        keep_prefixes=("prod",),
        dry_run=False,
    )


@pytest.fixture
def dry_policy(policy: PolicyConfig) -> PolicyConfig:
    return policy.model_copy(update={"dry_run": True})


@pytest.fixture
def input_file() -> Path:
    return SUPPORT_DIR / "ecr.contents.json"


@pytest.fixture
def preloaded_client(input_file: Path) -> FlakyClient:
    """Gateway loaded from the support snapshot."""
    client = FlakyClient("us-east-1", input_file)
    client.connect()
    return client


@pytest.fixture
def reaper_cfg(input_file: Path) -> ReaperConfig:
    return ReaperConfig(
        policy=PolicyConfig(
            region="us-east-1",
            max_age=pt("10d"),
            keep_prefixes=("prod", "release-"),
            dry_run=True,
        ),
        input_file=input_file,
        log_file=None,
        debug=True,
    )


@pytest.fixture(scope="session")
def test_config() -> Iterator[Path]:
    """YAML configuration file."""
    with TemporaryDirectory() as td:
        new_config = Path(td) / "config.yaml"
        config = yaml.safe_load((SUPPORT_DIR / "config.yaml").read_text())
        config["inputFile"] = str(SUPPORT_DIR / "ecr.contents.json")
        new_config.write_text(yaml.dump(config))

        yield new_config
