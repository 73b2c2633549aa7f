"""Retention decisions for individual images."""

import datetime

from ..config import PolicyConfig
from ..models.image import ImageRecord
from ..models.verdict import KeepReason, Verdict

__all__ = ["classify", "image_age", "matches_prefix"]


def image_age(
    image: ImageRecord, policy: PolicyConfig, now: datetime.datetime
) -> datetime.timedelta:
    """Age of an image at ``now``, rounded down to whole policy units."""
    if image.pushed_at is None:
        raise ValueError(f"Image {image.digest} has no push date")
    return policy.age_unit.truncate(now - image.pushed_at)


def matches_prefix(tags: frozenset[str], prefixes: tuple[str, ...]) -> bool:
    """Whether any tag starts with any prefix.

    A single matching tag protects the whole image.
    """
    return any(t.startswith(p) for t in tags for p in prefixes)


def classify(
    image: ImageRecord, policy: PolicyConfig, now: datetime.datetime
) -> Verdict:
    """Decide whether an image is kept or deleted.

    Parameters
    ----------
    image
        Image to judge.  It must have a push date; undated images are the
        caller's to skip.
    policy
        Retention policy.
    now
        Instant the whole run is judged against.

    Returns
    -------
    Verdict
        Untagged images are always deleted.  Tagged images are kept until
        they are strictly older than ``policy.max_age``, and after that only
        if one of their tags starts with a keep prefix.

    Raises
    ------
    ValueError
        Raised if the image has no push date.
    """
    age = image_age(image, policy, now)
    if image.untagged:
        return Verdict.delete_untagged(age)
    if age <= policy.max_age:
        return Verdict.keep(KeepReason.NOT_EXPIRED, age)
    if matches_prefix(image.tags, policy.keep_prefixes):
        return Verdict.keep(KeepReason.PREFIX_MATCHED, age)
    return Verdict.delete_expired(age)
