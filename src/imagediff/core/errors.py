"""Exceptions raised while reconstructing and diffing image Dockerfiles."""

from __future__ import annotations


class ImageDiffError(Exception):
    """Base exception for all imagediff errors."""

    pass


class FetchError(ImageDiffError):
    """A single image could not be turned into a reconstructed Dockerfile.

    Attributes:
        image: The image identifier whose fetch failed.
    """

    kind = "fetch_failed"

    def __init__(self, image: str, message: str) -> None:
        super().__init__(message)
        self.image = image


class AnalyzerInvocationError(FetchError):
    """Raised when the analyzer cannot be started, exits nonzero or times out."""

    kind = "analyzer_invocation_failed"

    def __init__(self, image: str, message: str, returncode: int | None = None) -> None:
        super().__init__(image, message)
        self.returncode = returncode


class ReportReadError(FetchError):
    """Raised when the report artifact is missing or unreadable."""

    kind = "report_read_failed"


class ReportParseError(FetchError):
    """Raised when the report artifact is not a valid analyzer report."""

    kind = "report_parse_failed"


class CleanupError(ImageDiffError):
    """A report artifact could not be removed.

    Never propagated out of the artifact manager.  It is attached to the
    warning record as ``exc_info``, with the ``OSError`` as its cause.
    """

    pass


class DiffFailed(ImageDiffError):
    """One or both fetches of a diff request failed.

    Attributes:
        failures: ``(slot, error)`` pairs in slot order.
    """

    def __init__(self, failures: list[tuple[str, FetchError]]) -> None:
        self.failures = failures
        summary = "; ".join(f"{slot} ({err.image}): {err}" for slot, err in failures)
        super().__init__(f"Failed to reconstruct Dockerfile for {summary}")

    def to_detail(self) -> dict:
        """Return a JSON-serialisable description of the failures."""
        return {
            "message": str(self),
            "failures": [
                {
                    "slot": slot,
                    "image": err.image,
                    "error": err.kind,
                    "message": str(err),
                }
                for slot, err in self.failures
            ],
        }
