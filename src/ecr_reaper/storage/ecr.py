"""Storage client for AWS Elastic Container Registry."""

import datetime
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import ServiceError
from ..models.image import ImageRecord, RepositoryRecord
from .registry import RegistryGateway


class ECRClient(RegistryGateway):
    """Gateway to the ECR API for one region.

    Parameters
    ----------
    region
        AWS region.
    profile
        Named AWS credentials profile.  If not given, the default boto3
        credential chain is used.
    endpoint_url
        Override for the ECR endpoint.
    client
        Preconstructed botocore ECR client.  If given, `connect` is a no-op.
        Intended for the test suite.
    """

    def __init__(
        self,
        region: str,
        *,
        profile: str | None = None,
        endpoint_url: str | None = None,
        client: Any = None,
    ) -> None:
        super().__init__(region)
        self._profile = profile
        self._endpoint_url = endpoint_url
        self._client = client

    def connect(self) -> None:
        if self._client is not None:
            return
        try:
            session = boto3.Session(
                profile_name=self._profile, region_name=self.region
            )
            self._client = session.client(
                "ecr", endpoint_url=self._endpoint_url
            )
        except (BotoCoreError, ClientError) as exc:
            raise ServiceError(str(exc), "connect") from exc
        self._logger.debug(
            "Created ECR client",
            profile=self._profile,
            endpoint_url=self._endpoint_url,
        )

    @property
    def client(self) -> Any:
        if self._client is None:
            raise ServiceError("Not connected to ECR", "connect")
        return self._client

    def list_repositories(self) -> list[RepositoryRecord]:
        repos: list[RepositoryRecord] = []
        try:
            paginator = self.client.get_paginator("describe_repositories")
            for page in paginator.paginate():
                repos.extend(
                    RepositoryRecord(name=x["repositoryName"])
                    for x in page.get("repositories", [])
                )
        except (BotoCoreError, ClientError) as exc:
            raise ServiceError(str(exc), "describe_repositories") from exc
        self._logger.debug(f"Found {len(repos)} repositories")
        return repos

    def list_images(self, repository: str) -> list[ImageRecord]:
        images: list[ImageRecord] = []
        try:
            paginator = self.client.get_paginator("describe_images")
            for page in paginator.paginate(repositoryName=repository):
                images.extend(
                    self._ecr_to_image(x) for x in page.get("imageDetails", [])
                )
        except (BotoCoreError, ClientError) as exc:
            raise ServiceError(str(exc), "describe_images") from exc
        self._logger.debug(f"Found {len(images)} images in {repository}")
        return images

    def _ecr_to_image(self, detail: dict[str, Any]) -> ImageRecord:
        pushed_at: datetime.datetime | None = detail.get("imagePushedAt")
        if pushed_at is not None and pushed_at.tzinfo is None:
            pushed_at = pushed_at.replace(tzinfo=datetime.UTC)
        return ImageRecord(
            digest=detail["imageDigest"],
            tags=frozenset(detail.get("imageTags", [])),
            pushed_at=pushed_at,
        )

    def delete_image(self, repository: str, digest: str) -> None:
        try:
            resp = self.client.batch_delete_image(
                repositoryName=repository,
                imageIds=[{"imageDigest": digest}],
            )
        except (BotoCoreError, ClientError) as exc:
            raise ServiceError(str(exc), "batch_delete_image") from exc
        # The call itself succeeds even when the image could not be
        # deleted; per-image problems come back as failures.
        failures = resp.get("failures", [])
        if failures:
            reasons = "; ".join(
                f"{x.get('failureCode', 'Unknown')}: "
                f"{x.get('failureReason', 'no reason given')}"
                for x in failures
            )
            raise ServiceError(reasons, "batch_delete_image")
        self._logger.debug(f"Deleted {repository}@{digest}")
