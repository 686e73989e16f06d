"""Reconstruct a single image's Dockerfile with the ``slim`` analyzer.

One fetch runs::

    slim --report <artifact> xray --target <image> --changes all --changes-output report

waits for it, reads the JSON report it wrote to ``<artifact>`` and turns it
into Dockerfile text.  The child process belongs to the calling task: if the
task is cancelled (client went away) or the configured timeout expires, the
child is killed and reaped before the fetch returns.  The report artifact is
removed on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from imagediff.core.artifacts import ArtifactManager
from imagediff.core.config import ImageDiffConfig
from imagediff.core.errors import AnalyzerInvocationError, ReportReadError
from imagediff.core.report import parse_report, reconstruct_dockerfile

logger = logging.getLogger(__name__)


def analyzer_command(binary: str, image: str, report_path: Path) -> list[str]:
    """Build the analyzer argument vector for ``image``."""
    return [
        binary,
        "--report",
        str(report_path),
        "xray",
        "--target",
        image,
        "--changes",
        "all",
        "--changes-output",
        "report",
    ]


async def fetch_dockerfile(
    image: str,
    *,
    config: ImageDiffConfig,
    artifacts: ArtifactManager | None = None,
    log: logging.Logger | logging.LoggerAdapter = logger,
) -> str:
    """Return the reconstructed Dockerfile of a local image.

    Args:
        image: Local image identifier, e.g. ``"alpine:3.19"``.
        config: Supplies the analyzer binary, its timeout and the artifact
            location.
        artifacts: Artifact manager to use.  Built from ``config`` if omitted.
        log: Logger (usually a request-scoped adapter).

    Returns:
        One line per layer instruction, each terminated by ``\\n``.

    Raises:
        AnalyzerInvocationError: The analyzer could not start, failed, or
            timed out.
        ReportReadError: The analyzer succeeded but its report is missing or
            unreadable.
        ReportParseError: The report is not a valid analyzer report.
    """
    if artifacts is None:
        artifacts = ArtifactManager(config.report_dir, config.report_suffix)

    with artifacts.artifact(image, log) as report_path:
        await _run_analyzer(image, report_path, config, log)
        raw = await asyncio.to_thread(_read_report, image, report_path)
        report = parse_report(raw, image)

    dockerfile = reconstruct_dockerfile(report)
    log.debug(f"Dockerfile ({image}):\n{dockerfile}")
    return dockerfile


async def _run_analyzer(
    image: str,
    report_path: Path,
    config: ImageDiffConfig,
    log: logging.Logger | logging.LoggerAdapter,
) -> None:
    cmd = analyzer_command(config.analyzer_binary, image, report_path)
    log.info(f"Running {' '.join(cmd)}")

    # stderr is inherited so analyzer diagnostics end up in the service log.
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
        )
    except OSError as e:
        raise AnalyzerInvocationError(
            image, f"Could not start {config.analyzer_binary} for {image}: {e}"
        ) from e

    try:
        returncode = await asyncio.wait_for(proc.wait(), timeout=config.analyzer_timeout)
    except asyncio.TimeoutError:
        await _kill(proc, log)
        raise AnalyzerInvocationError(
            image,
            f"{config.analyzer_binary} timed out after {config.analyzer_timeout}s for {image}",
        ) from None
    except asyncio.CancelledError:
        log.warning(f"Fetch of {image} cancelled, killing analyzer (pid {proc.pid})")
        await _kill(proc, log)
        raise

    if returncode != 0:
        raise AnalyzerInvocationError(
            image,
            f"{config.analyzer_binary} exited with status {returncode} for {image}",
            returncode=returncode,
        )


async def _kill(proc: asyncio.subprocess.Process, log: logging.Logger | logging.LoggerAdapter) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()
    log.info(f"Analyzer (pid {proc.pid}) exited with status {proc.returncode}")


def _read_report(image: str, report_path: Path) -> bytes:
    try:
        return report_path.read_bytes()
    except OSError as e:
        raise ReportReadError(image, f"Could not read analyzer report {report_path}: {e}") from e
