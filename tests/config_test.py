"""Test configuration file."""

from pathlib import Path

import pytest
from pydantic import ValidationError
from safir.datetime import parse_timedelta as pt

from ecr_reaper.config import AgeUnit, PolicyConfig, ReaperConfig
from ecr_reaper.exceptions import ConfigError
from ecr_reaper.services.reaper import Reaper


def test_config_from_file(test_config: Path) -> None:
    """Test loading a config from a YAML file."""
    cfg = ReaperConfig.from_file(test_config)
    assert cfg.policy.region == "us-east-1"
    assert cfg.policy.max_age == pt("10d")
    assert cfg.policy.age_unit == AgeUnit.DAYS
    assert cfg.policy.keep_prefixes == ("prod", "release-")
    assert cfg.policy.dry_run
    assert cfg.log_file is None
    reaper = Reaper(cfg)
    reaper.run()
    reaper.report()


def test_prefixes_keep_empty_segments() -> None:
    policy = PolicyConfig(region="us-east-1", max_age=0, keep_prefixes="a,,b,")
    assert policy.keep_prefixes == ("a", "", "b", "")
    policy = PolicyConfig(region="us-east-1", max_age=0, keep_prefixes="")
    assert policy.keep_prefixes == ("",)
    policy = PolicyConfig(region="us-east-1", max_age=0)
    assert policy.keep_prefixes == ()


def test_max_age_formats() -> None:
    policy = PolicyConfig(
        region="us-east-1", max_age="5m", age_unit=AgeUnit.MINUTES
    )
    assert policy.max_age == pt("5m")
    policy = PolicyConfig(region="us-east-1", max_age=300, age_unit="minutes")
    assert policy.max_age == pt("5m")


def test_policy_defaults() -> None:
    policy = PolicyConfig(region=" eu-west-1 ", max_age="1d")
    assert policy.region == "eu-west-1"
    assert policy.dry_run
    assert policy.age_unit == AgeUnit.DAYS


def test_policy_immutable() -> None:
    policy = PolicyConfig(region="us-east-1", max_age="1d")
    with pytest.raises(ValidationError):
        policy.dry_run = False  # type: ignore[misc]


def test_invalid_policy() -> None:
    with pytest.raises(ValidationError):
        PolicyConfig(region="  ", max_age="1d")
    with pytest.raises(ValidationError):
        PolicyConfig(region="us-east-1", max_age=-1)
    with pytest.raises(ConfigError):
        ReaperConfig.from_dict({"policy": {"region": "", "maxAge": "1d"}})
    with pytest.raises(ConfigError):
        ReaperConfig.from_dict({"policy": {"region": "us-east-1"}})


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        ReaperConfig.from_file(tmp_path / "nonexistent.yaml")


def test_age_unit() -> None:
    assert AgeUnit.MINUTES.count(pt("5m59s")) == 5
    assert AgeUnit.DAYS.truncate(pt("3d23h")) == pt("3d")
    assert AgeUnit.SECONDS.delta == pt("1s")


def test_max_age_finer_than_unit() -> None:
    """A threshold that isn't a whole number of units is rejected rather
    than silently rounded up to the next unit.
    """
    with pytest.raises(ConfigError, match="whole number of days"):
        ReaperConfig.from_dict(
            {
                "policy": {
                    "region": "us-east-1",
                    "maxAge": "12h",
                    "dryRun": False,
                }
            }
        )
    with pytest.raises(ValidationError):
        PolicyConfig(region="us-east-1", max_age="90s", age_unit="minutes")

    policy = {"region": "us-east-1", "maxAge": "12h", "ageUnit": "hours"}
    cfg = ReaperConfig.from_dict({"policy": policy})
    assert cfg.policy.max_age == pt("12h")
