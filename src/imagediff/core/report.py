"""Analyzer report schema and Dockerfile reconstruction.

``slim xray --changes all --changes-output report`` writes a JSON document
describing the image's layer stack.  Only a small part of it matters here::

    {
      "image_stack": [
        {
          "full_name": "alpine:3.19",
          "instructions": [
            {"type": "ADD", "layer_index": 0, "command_all": "ADD file:... /"},
            {"type": "CMD", "layer_index": 1, "command_all": "CMD [\\"/bin/sh\\"]"}
          ]
        }
      ]
    }

:func:`reconstruct_dockerfile` walks the stack in report order and emits one
line per instruction.  No instruction is dropped, reordered or deduplicated,
including no-op and empty-layer ones.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from imagediff.core.errors import ReportParseError


class Instruction(BaseModel):
    """A single reconstructed build instruction of one image layer."""

    model_config = ConfigDict(extra="ignore")

    type: str | None = None
    time: datetime | None = None
    is_nop: bool = False
    local_image_exists: bool = False
    layer_index: int | None = None
    layer_id: str | None = None
    layer_fsdiff_id: str | None = None
    size: int | None = None
    size_human: str | None = None
    params: str | None = None
    command_snippet: str | None = None
    command_all: str = Field(..., description="Full reconstructed command line.")
    target: str | None = None
    source_type: str | None = None
    is_exec_form: bool = False
    empty_layer: bool = False
    system_commands: list[str] = Field(default_factory=list)
    is_last_instruction: bool = False
    raw_tags: list[str] = Field(default_factory=list)

    @field_validator("system_commands", "raw_tags", mode="before")
    @classmethod
    def null_lists_as_empty(cls, value):
        return [] if value is None else value


class ImageStackEntry(BaseModel):
    """One image in the layer stack, from base image to top image."""

    model_config = ConfigDict(extra="ignore")

    is_top_image: bool = False
    id: str | None = None
    full_name: str | None = None
    repo_name: str | None = None
    version_tag: str | None = None
    raw_tags: list[str] = Field(default_factory=list)
    create_time: datetime | None = None
    new_size: int | None = None
    new_size_human: str | None = None
    instructions: list[Instruction] = Field(default_factory=list)

    @field_validator("raw_tags", "instructions", mode="before")
    @classmethod
    def null_lists_as_empty(cls, value):
        return [] if value is None else value


class SlimReport(BaseModel):
    """Top-level ``slim xray`` report.  Only ``image_stack`` is modelled."""

    model_config = ConfigDict(extra="ignore")

    image_stack: list[ImageStackEntry] = Field(default_factory=list)

    @field_validator("image_stack", mode="before")
    @classmethod
    def null_lists_as_empty(cls, value):
        return [] if value is None else value


def parse_report(raw: str | bytes, image: str = "") -> SlimReport:
    """Validate a raw analyzer report.

    Args:
        raw: JSON text of the report.
        image: Image identifier the report belongs to (for error messages).

    Returns:
        The validated report.

    Raises:
        ReportParseError: If ``raw`` is not JSON or does not match the schema.
    """
    try:
        return SlimReport.model_validate_json(raw)
    except ValidationError as e:
        raise ReportParseError(image, f"Invalid analyzer report for {image}: {e}") from e


def reconstruct_dockerfile(report: SlimReport) -> str:
    """Concatenate every instruction's ``command_all`` in stack order.

    Each command is followed by a newline, so the result has exactly one
    line per instruction in the report.
    """
    lines: list[str] = []
    for entry in report.image_stack:
        for instruction in entry.instructions:
            lines.append(f"{instruction.command_all}\n")
    return "".join(lines)
