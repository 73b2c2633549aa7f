"""Model for necessary information about container images."""

import datetime
import json
from dataclasses import dataclass, field
from typing import Self, TypeAlias, cast

DATEFMT = "%Y-%m-%dT%H:%M:%S.%f%z"

JSONImage: TypeAlias = dict[str, str | list[str] | None]


@dataclass(frozen=True)
class RepositoryRecord:
    """An ECR repository.  Names are unique within a region."""

    name: str


@dataclass(frozen=True)
class ImageRecord:
    """Class representing the things about an OCI image we care about.

    Images are identified by digest; an image may carry any number of tags,
    including none at all.  Registry metadata is not always complete, so
    the push time may be missing.
    """

    digest: str
    tags: frozenset[str] = field(default_factory=frozenset)
    pushed_at: datetime.datetime | None = None

    def __str__(self) -> str:
        """Pretty(?)-printed version.  Humans care about tags, and digests
        not so much.
        """
        colon_pos = self.digest.find(":")
        dig = self.digest
        if colon_pos > -1:
            dig = self.digest[1 + colon_pos :]
        if len(dig) > 8:
            dig = dig[:8] + "..."
        dig = f"<{dig}>"
        if not self.tags:
            return f"[<untagged>] {dig}"
        return f"[{','.join(sorted(self.tags))}] {dig}"

    @property
    def untagged(self) -> bool:
        return not self.tags

    def to_dict(self) -> JSONImage:
        # set and datetime aren't JSON-serializable, so we make them a
        # sorted list and a string.
        pushed_at: str | None = None
        if self.pushed_at is not None:
            pushed_at = self.pushed_at.strftime(DATEFMT)
        return {
            "digest": self.digest,
            "tags": sorted(self.tags),
            "pushed_at": pushed_at,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, inp: JSONImage | str) -> Self:
        """Much painful assertion that each field is the right type."""
        if isinstance(inp, str):
            obj = json.loads(inp)
            inp = cast("JSONImage", obj)
        if not isinstance(inp.get("digest"), str):
            raise TypeError(f"'digest' field of {inp} must be a string")
        digest = cast(str, inp["digest"])
        new_date: datetime.datetime | None = None
        p_a = inp.get("pushed_at")
        if p_a and isinstance(p_a, str):
            new_date = datetime.datetime.strptime(p_a, DATEFMT)
            if new_date.tzinfo is None:
                new_date = new_date.replace(tzinfo=datetime.UTC)
        new_tags: frozenset[str] = frozenset()
        t_s = inp.get("tags")
        if t_s and not isinstance(t_s, str):
            new_tags = frozenset(t_s)
        return cls(digest=digest, tags=new_tags, pushed_at=new_date)
