"""Registry gateway backed by a JSON snapshot rather than a live registry."""

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Self, cast

from ..exceptions import ConfigError, ServiceError
from ..models.image import ImageRecord, JSONImage, RepositoryRecord
from .registry import RegistryGateway


class PreloadedClient(RegistryGateway):
    """Serve repository data from a file written by
    `~ecr_reaper.storage.registry.RegistryGateway.dump_images`.

    Deletions remove the image from the in-memory snapshot only; the file is
    never rewritten.
    """

    def __init__(self, region: str, inputfile: Path | None = None) -> None:
        super().__init__(region)
        self._inputfile = inputfile
        self._repos: dict[str, dict[str, ImageRecord]] = {}

    @classmethod
    def from_images(
        cls, region: str, repos: dict[str, Iterable[ImageRecord]]
    ) -> Self:
        """Build a gateway directly from images, keyed by repository."""
        client = cls(region)
        client._repos = {
            name: {x.digest: x for x in imgs} for name, imgs in repos.items()
        }
        return client

    def connect(self) -> None:
        if self._inputfile is None:
            return
        try:
            inp = json.loads(self._inputfile.read_text())
        except (OSError, ValueError) as exc:
            raise ServiceError(
                f"Cannot load {self._inputfile}: {exc}", "connect"
            ) from exc
        region = inp.get("metadata", {}).get("region")
        if region != self.region:
            raise ConfigError(f"Dump is from {region}, not {self.region}")
        self._repos = {}
        count = 0
        for name, jsons in inp.get("data", {}).items():
            imgs: dict[str, ImageRecord] = {}
            for digest, obj in jsons.items():
                imgs[digest] = ImageRecord.from_json(cast("JSONImage", obj))
                count += 1
            self._repos[name] = imgs
        self._logger.debug(
            f"Ingested {count} image{'s' if count != 1 else ''} in "
            f"{len(self._repos)} repositories"
        )

    def list_repositories(self) -> list[RepositoryRecord]:
        return [RepositoryRecord(name=x) for x in self._repos]

    def list_images(self, repository: str) -> list[ImageRecord]:
        if repository not in self._repos:
            raise ServiceError(
                f"Repository {repository} not found", "list_images"
            )
        return list(self._repos[repository].values())

    def delete_image(self, repository: str, digest: str) -> None:
        imgs = self._repos.get(repository, {})
        if digest not in imgs:
            raise ServiceError(
                f"Image {repository}@{digest} not found", "delete_image"
            )
        del imgs[digest]
