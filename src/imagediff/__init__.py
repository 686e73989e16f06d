"""imagediff - Compare reconstructed Dockerfiles of two local container images."""

__version__ = "0.1.0"

from imagediff.core.config import ImageDiffConfig, config
from imagediff.core.differ import DiffResult, diff_images
from imagediff.core.report import reconstruct_dockerfile

__all__ = [
    "DiffResult",
    "ImageDiffConfig",
    "config",
    "diff_images",
    "reconstruct_dockerfile",
]
