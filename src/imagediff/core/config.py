"""Configuration management for imagediff.

Configuration is loaded with Pydantic Settings from environment variables
carrying the ``IMAGEDIFF_`` prefix, falling back to a ``.env`` file in the
working directory and finally to the defaults defined on
:class:`ImageDiffConfig`.

Example .env file::

    IMAGEDIFF_SOCKET_PATH=/run/guest-services/backend.sock
    IMAGEDIFF_ANALYZER_BINARY=slim
    IMAGEDIFF_ANALYZER_TIMEOUT=300
    IMAGEDIFF_LOG_LEVEL=DEBUG

A global ``config`` instance is created at import time.  Its ``socket_path``
is only the default of the ``--socket`` flag of ``imagediff``, which passes
the chosen path straight to uvicorn.
"""

import tempfile
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ImageDiffConfig(BaseSettings):
    """Main configuration for the imagediff service.

    Attributes
    ----------
    Listener:
        socket_path : Path
            Unix domain socket the HTTP server binds to.

    Analyzer:
        analyzer_binary : str
            Name or path of the ``slim`` executable.
        analyzer_timeout : float
            Seconds a single ``slim xray`` run may take before it is killed.

    Report artifacts:
        report_dir : Path
            Directory that holds the transient JSON reports.
        report_suffix : str
            File name suffix appended to every report artifact.

    Logging:
        log_level : Literal["DEBUG", "INFO", "WARNING", "ERROR"]
            Root log level applied by ``main()``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="IMAGEDIFF_",
        case_sensitive=False,
    )

    socket_path: Path = Field(
        default=Path("/run/guest-services/backend.sock"),
        description="Unix domain socket to listen on",
    )

    analyzer_binary: str = Field(
        default="slim",
        description="Executable used to analyze image layers",
    )
    analyzer_timeout: float = Field(
        default=300.0,
        description="Seconds before a running analyzer is killed",
        gt=0,
    )

    report_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()),
        description="Directory for transient analyzer reports",
    )
    report_suffix: str = Field(
        default="slim.report.json",
        description="Suffix of every report artifact file name",
        min_length=1,
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level",
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create the report directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.report_dir.mkdir(parents=True, exist_ok=True)


# Global configuration instance, loaded from IMAGEDIFF_* variables and .env.
config = ImageDiffConfig()
