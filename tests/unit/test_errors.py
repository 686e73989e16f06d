"""Tests for imagediff.core.errors - exception hierarchy and failure details."""

from __future__ import annotations

from imagediff.core.errors import (
    AnalyzerInvocationError,
    DiffFailed,
    FetchError,
    ImageDiffError,
    ReportParseError,
    ReportReadError,
)


class TestHierarchy:
    """All per-image failures are FetchErrors carrying the image."""

    def test_fetch_errors(self):
        for cls in (AnalyzerInvocationError, ReportReadError, ReportParseError):
            err = cls("alpine:3.18", "boom")
            assert isinstance(err, FetchError)
            assert isinstance(err, ImageDiffError)
            assert err.image == "alpine:3.18"
            assert str(err) == "boom"

    def test_kinds_are_distinct(self):
        kinds = {cls.kind for cls in (AnalyzerInvocationError, ReportReadError, ReportParseError)}
        assert len(kinds) == 3

    def test_returncode(self):
        err = AnalyzerInvocationError("alpine:3.18", "exited 3", returncode=3)
        assert err.returncode == 3
        assert AnalyzerInvocationError("alpine:3.18", "not found").returncode is None


class TestDiffFailed:
    """Test DiffFailed message and detail payload."""

    def test_message_names_failed_images(self):
        exc = DiffFailed([("image2", AnalyzerInvocationError("alpine:3.19", "exited 3"))])
        assert "image2" in str(exc)
        assert "alpine:3.19" in str(exc)

    def test_to_detail(self):
        exc = DiffFailed(
            [
                ("image1", ReportParseError("a:1", "bad json")),
                ("image2", ReportReadError("b:2", "missing")),
            ]
        )
        detail = exc.to_detail()
        assert detail["message"] == str(exc)
        assert detail["failures"] == [
            {"slot": "image1", "image": "a:1", "error": "report_parse_failed", "message": "bad json"},
            {"slot": "image2", "image": "b:2", "error": "report_read_failed", "message": "missing"},
        ]
