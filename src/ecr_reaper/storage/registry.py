"""Abstract superclass for container registry gateways."""

import json
from abc import ABC, abstractmethod
from pathlib import Path

import structlog

from ..exceptions import ConfigError
from ..models.image import ImageRecord, JSONImage, RepositoryRecord


class RegistryGateway(ABC):
    """Collection of methods we expect any registry gateway to provide.

    Note that these are synchronous.  That's on purpose.  A run is a batch
    sweep over a single region, visiting one repository at a time, and
    registries rate-limit requests in any event, so there is nothing to be
    gained by blasting out requests in parallel.

    Every failure to talk to the registry must surface as a
    `~ecr_reaper.exceptions.ServiceError`; the runner decides whether that
    is fatal.
    """

    def __init__(self, region: str) -> None:
        self.region = region
        self._logger = structlog.get_logger(__name__).bind(region=region)

    @abstractmethod
    def connect(self) -> None:
        """Establish the session with the registry service."""
        ...

    @abstractmethod
    def list_repositories(self) -> list[RepositoryRecord]: ...

    @abstractmethod
    def list_images(self, repository: str) -> list[ImageRecord]: ...

    @abstractmethod
    def delete_image(self, repository: str, digest: str) -> None:
        """Delete a single image, identified by digest rather than tag."""
        ...

    def dump_images(self, outputfile: Path) -> None:
        """Write JSON of the repository and image map.

        The result can be fed back in through
        `~ecr_reaper.storage.preloaded.PreloadedClient`.
        """
        data: dict[str, dict[str, JSONImage]] = {}
        count = 0
        for repo in self.list_repositories():
            imgs = self.list_images(repo.name)
            data[repo.name] = {x.digest: x.to_dict() for x in imgs}
            count += len(imgs)
        dd = {"metadata": {"region": self.region}, "data": data}
        try:
            outputfile.write_text(json.dumps(dd, indent=2))
        except OSError as exc:
            raise ConfigError(
                f"Cannot write dump file {outputfile}: {exc}"
            ) from exc
        self._logger.info(
            f"Dumped {count} image{'s' if count != 1 else ''} from "
            f"{len(data)} repositories to {outputfile}"
        )
