"""Component factory."""

from __future__ import annotations

import structlog
from structlog.stdlib import BoundLogger

from .config import ReaperConfig
from .services.runner import CleanupRunner
from .storage.ecr import ECRClient
from .storage.preloaded import PreloadedClient
from .storage.registry import RegistryGateway


class Factory:
    """Build reaper components.

    Parameters
    ----------
    config
        Reaper configuration.
    logger
        Logger to use for messages.
    """

    def __init__(
        self, config: ReaperConfig, logger: BoundLogger | None = None
    ) -> None:
        self._config = config
        self._logger = logger or structlog.get_logger(__name__)

    def create_gateway(self) -> RegistryGateway:
        """Create the registry gateway.

        A preloaded snapshot takes precedence over the live registry.
        """
        region = self._config.policy.region
        if self._config.input_file:
            self._logger.debug(
                f"Using preloaded data from {self._config.input_file}"
            )
            return PreloadedClient(region, self._config.input_file)
        return ECRClient(
            region,
            profile=self._config.profile,
            endpoint_url=self._config.endpoint_url,
        )

    def create_runner(self) -> CleanupRunner:
        return CleanupRunner()
