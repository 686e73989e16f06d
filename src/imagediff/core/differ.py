"""Dual-fetch orchestration for Dockerfile diffs.

:func:`diff_images` reconstructs the Dockerfiles of two images concurrently
and pairs them up again by request slot::

    result = await diff_images("alpine:3.18", "alpine:3.19", config=config)
    result.image1.dockerfile  # always the first requested image

Each fetch task is tagged with its slot (``image1`` / ``image2``) before it
starts, and its :class:`FetchOutcome` carries that tag back.  Completion
order is irrelevant and identical identifiers in both slots are two
independent fetches.

Both fetches always run to completion (or failure) before the result is
assembled.  Failures are collected into a single :class:`DiffFailed` scoped
to the request; cancelling the caller cancels both fetches and their
analyzer processes.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from imagediff.core.artifacts import ArtifactManager
from imagediff.core.config import ImageDiffConfig
from imagediff.core.config import config as default_config
from imagediff.core.errors import DiffFailed, FetchError
from imagediff.core.fetcher import fetch_dockerfile
from imagediff.core.logs import RequestLogAdapter, request_logger

SLOTS = ("image1", "image2")


@dataclass(frozen=True)
class ImageDockerfile:
    """An image identifier and its reconstructed Dockerfile."""

    name: str
    dockerfile: str


@dataclass(frozen=True)
class DiffResult:
    """Both reconstructions of one diff request, in request order."""

    image1: ImageDockerfile
    image2: ImageDockerfile


@dataclass(frozen=True)
class FetchOutcome:
    """Result of one slot's fetch: either a Dockerfile or the error."""

    slot: str
    image: str
    dockerfile: str | None = None
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _fetch_slot(
    slot: str,
    image: str,
    *,
    config: ImageDiffConfig,
    artifacts: ArtifactManager,
    log: RequestLogAdapter,
) -> FetchOutcome:
    slot_log = log.bind(slot=slot)
    try:
        dockerfile = await fetch_dockerfile(image, config=config, artifacts=artifacts, log=slot_log)
    except FetchError as e:
        slot_log.error(f"Fetch of {image} failed: {e}")
        return FetchOutcome(slot=slot, image=image, error=e)
    return FetchOutcome(slot=slot, image=image, dockerfile=dockerfile)


async def diff_images(
    image1: str,
    image2: str,
    *,
    config: ImageDiffConfig = default_config,
    artifacts: ArtifactManager | None = None,
    log: RequestLogAdapter | None = None,
) -> DiffResult:
    """Reconstruct the Dockerfiles of two local images concurrently.

    Args:
        image1: First image identifier; reported in ``DiffResult.image1``.
        image2: Second image identifier; reported in ``DiffResult.image2``.
        config: Service configuration passed to both fetches.
        artifacts: Shared artifact manager.  Built from ``config`` if omitted.
        log: Request-scoped logger.  A fresh one is created if omitted.

    Returns:
        The paired reconstructions.

    Raises:
        DiffFailed: One or both fetches failed.  Lists every failed slot.
    """
    if log is None:
        log = request_logger(__name__)
    if artifacts is None:
        artifacts = ArtifactManager(config.report_dir, config.report_suffix)

    log.info(f"image1: {image1}")
    log.info(f"image2: {image2}")

    tasks = [
        asyncio.create_task(
            _fetch_slot(slot, image, config=config, artifacts=artifacts, log=log),
            name=f"fetch-{slot}",
        )
        for slot, image in zip(SLOTS, (image1, image2))
    ]

    # Wait for both; anything other than a FetchError is a bug and re-raised
    # only once the sibling fetch has finished too.
    results = await asyncio.gather(*tasks, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result

    by_slot: dict[str, FetchOutcome] = {outcome.slot: outcome for outcome in results}
    failures = [(slot, by_slot[slot].error) for slot in SLOTS if not by_slot[slot].ok]
    if failures:
        raise DiffFailed(failures)

    log.info(f"Reconstructed Dockerfiles for {image1} and {image2}")
    return DiffResult(
        image1=ImageDockerfile(name=by_slot["image1"].image, dockerfile=by_slot["image1"].dockerfile),
        image2=ImageDockerfile(name=by_slot["image2"].image, dockerfile=by_slot["image2"].dockerfile),
    )
