"""Core functionality for reconstructing and diffing image Dockerfiles.

Layers, leaves first:

1. **Configuration** (config.py): ``IMAGEDIFF_*`` settings via Pydantic Settings.
2. **Artifacts** (artifacts.py): unique report paths and their cleanup.
3. **Report** (report.py): analyzer report schema and Dockerfile reconstruction.
4. **Fetcher** (fetcher.py): one ``slim xray`` run per image.
5. **Differ** (differ.py): two concurrent fetches joined per request.
"""

from imagediff.core.config import ImageDiffConfig, config
from imagediff.core.differ import DiffResult, ImageDockerfile, diff_images
from imagediff.core.fetcher import fetch_dockerfile

__all__ = [
    "DiffResult",
    "ImageDiffConfig",
    "ImageDockerfile",
    "config",
    "diff_images",
    "fetch_dockerfile",
]
