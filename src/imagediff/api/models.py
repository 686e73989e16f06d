"""Pydantic response models for the imagediff API.

Models
------
DiffResponse
    Body of a successful ``GET /diff``: both images with their reconstructed
    Dockerfiles, in the order they were requested.
DiffErrorResponse
    Body of a failed ``GET /diff`` (HTTP 502).  Its ``detail`` is a
    DiffErrorDetail saying which image failed and why.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from imagediff.core.differ import DiffResult, ImageDockerfile
from imagediff.core.errors import DiffFailed


class ImageResponse(BaseModel):
    """One image and its reconstructed Dockerfile."""

    name: str = Field(..., description="Image identifier as supplied in the request.")
    dockerfile: str = Field(..., description="Reconstructed Dockerfile, one instruction per line.")

    @classmethod
    def from_result(cls, result: ImageDockerfile) -> ImageResponse:
        return cls(name=result.name, dockerfile=result.dockerfile)


class DiffResponse(BaseModel):
    """Response body for ``GET /diff``."""

    image1: ImageResponse
    image2: ImageResponse

    @classmethod
    def from_result(cls, result: DiffResult) -> DiffResponse:
        return cls(
            image1=ImageResponse.from_result(result.image1),
            image2=ImageResponse.from_result(result.image2),
        )


class FetchFailureDetail(BaseModel):
    """A single failed fetch within a diff request.

    Attributes:
        slot: ``"image1"`` or ``"image2"``.
        image: Image identifier whose fetch failed.
        error: Failure kind, e.g. ``"analyzer_invocation_failed"``.
        message: Human-readable description.
    """

    slot: str
    image: str
    error: str
    message: str


class DiffErrorDetail(BaseModel):
    """``detail`` payload returned with HTTP 502 when a fetch fails."""

    message: str
    failures: list[FetchFailureDetail]


class DiffErrorResponse(BaseModel):
    """Response body for a failed ``GET /diff`` (HTTP 502)."""

    detail: DiffErrorDetail

    @classmethod
    def from_exception(cls, exc: DiffFailed) -> DiffErrorResponse:
        return cls(detail=DiffErrorDetail.model_validate(exc.to_detail()))
