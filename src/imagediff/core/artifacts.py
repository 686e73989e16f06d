"""Transient report artifact paths for analyzer invocations.

Every ``slim xray`` run writes its JSON report to a file on disk.  This
module decides where that file lives and makes sure it is gone once the
fetch that created it has finished.

File names combine three parts::

    <sanitized image>-<invocation token>-<suffix>

The sanitized image keeps names readable when browsing the temp directory.
Sanitizing alone is lossy (``repo/app:tag`` and ``repo_app_tag`` both become
``repo_app_tag``), and the same image may be fetched by several requests at
once, so a fresh token per invocation keeps every path unique.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from imagediff.core.errors import CleanupError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = str.maketrans({"/": "_", ":": "_"})


def sanitize(image: str) -> str:
    """Replace path-unsafe separators in an image identifier with ``_``."""
    return image.translate(_UNSAFE_CHARS)


class ArtifactManager:
    """Hands out unique report paths and removes them after use.

    Attributes:
        directory (Path): Directory in which report files are created.
        suffix (str): Fixed file name suffix of every report.
    """

    def __init__(self, directory: Path, suffix: str = "slim.report.json") -> None:
        self.directory = Path(directory)
        self.suffix = suffix

    def path_for(self, image: str, token: str | None = None) -> Path:
        """Return the report path for one invocation against ``image``.

        Args:
            image: Image identifier being analyzed.
            token: Invocation token.  A random one is generated when omitted,
                so two calls for the same image never return the same path.

        Returns:
            Absolute path inside :attr:`directory`.  The file is not created.
        """
        if token is None:
            token = uuid.uuid4().hex
        return self.directory / f"{sanitize(image)}-{token}-{self.suffix}"

    def release(self, path: Path, log: logging.Logger | logging.LoggerAdapter = logger) -> bool:
        """Remove a report artifact if it exists.

        Removing an absent artifact is not an error.  Failing to remove an
        existing one is logged and swallowed.

        Args:
            path: Report path previously returned by :meth:`path_for`.
            log: Logger used for the removal messages.

        Returns:
            ``True`` if the path no longer exists afterwards.
        """
        if not path.exists():
            return True

        log.info(f"Removing file {path}")
        try:
            path.unlink()
        except FileNotFoundError:
            return True
        except OSError as e:
            err = CleanupError(f"Could not remove report artifact {path}: {e}")
            err.__cause__ = e
            log.warning(str(err), exc_info=err)
            return False
        return True

    @contextmanager
    def artifact(
        self, image: str, log: logging.Logger | logging.LoggerAdapter = logger
    ) -> Iterator[Path]:
        """Yield a fresh report path for ``image`` and release it on exit."""
        path = self.path_for(image)
        log.info(f"Report artifact: {path}")
        try:
            yield path
        finally:
            self.release(path, log)
