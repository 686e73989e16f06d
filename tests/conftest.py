"""Shared pytest fixtures for imagediff tests."""

import os
import shutil
import stat
import sys
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from imagediff.core.artifacts import ArtifactManager
from imagediff.core.config import ImageDiffConfig

# A stand-in for the ``slim`` CLI.  It honours the same argument contract and
# picks its behaviour from the image name:
#
#   fail            exit with status 3
#   missing-report  exit 0 without writing a report
#   garbage         write a report that is not JSON
#   badschema       write JSON whose instruction lacks command_all
#   slow            sleep before writing the report
#   hang            sleep far longer than any test timeout
#
# Every invocation appends its report path to ``invocations.log`` and, for
# ``hang``, writes its pid to ``hang.pid`` next to the script.
FAKE_ANALYZER = '''\
import json
import os
import sys
import time

args = sys.argv[1:]
report = args[args.index("--report") + 1]
image = args[args.index("--target") + 1]
assert args[args.index("--changes") + 1] == "all"
assert args[args.index("--changes-output") + 1] == "report"

here = os.path.dirname(os.path.abspath(__file__))
with open(os.path.join(here, "invocations.log"), "a") as log:
    log.write(report + "\\n")

sys.stderr.write("fake slim: analyzing %s\\n" % image)

if "fail" in image:
    sys.exit(3)
if "missing-report" in image:
    sys.exit(0)
if "hang" in image:
    with open(os.path.join(here, "hang.pid"), "w") as f:
        f.write(str(os.getpid()))
    time.sleep(60)
if "slow" in image:
    time.sleep(0.5)

with open(report, "w") as f:
    if "garbage" in image:
        f.write("this is not json")
    elif "badschema" in image:
        json.dump({"image_stack": [{"instructions": [{"type": "RUN"}]}]}, f)
    else:
        json.dump(
            {
                "image_stack": [
                    {
                        "is_top_image": True,
                        "id": "sha256:0123",
                        "full_name": image,
                        "raw_tags": None,
                        "create_time": "2023-08-07T19:20:20Z",
                        "new_size": 7331,
                        "instructions": [
                            {
                                "type": "FROM",
                                "layer_index": 0,
                                "size": 7331,
                                "is_nop": False,
                                "command_all": "FROM " + image,
                            },
                            {
                                "type": "RUN",
                                "layer_index": 1,
                                "time": "2023-08-07T19:20:20Z",
                                "system_commands": ["apk update"],
                                "command_all": "RUN apk update",
                            },
                            {
                                "type": "CMD",
                                "layer_index": 2,
                                "is_nop": True,
                                "empty_layer": True,
                                "is_exec_form": True,
                                "system_commands": None,
                                "command_all": 'CMD ["sh"]',
                            },
                        ],
                    }
                ]
            },
            f,
        )
'''


@pytest.fixture
def expected_dockerfile():
    """Return a callable giving the Dockerfile the fake analyzer reconstructs to."""

    def _expected(image: str) -> str:
        return f'FROM {image}\nRUN apk update\nCMD ["sh"]\n'

    return _expected


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def fake_analyzer(temp_dir: Path) -> Path:
    """Write the fake ``slim`` executable and return its path."""
    bin_dir = temp_dir / "bin"
    bin_dir.mkdir()
    script = bin_dir / "slim"
    script.write_text(f"#!{sys.executable}\n{FAKE_ANALYZER}")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def invocations(fake_analyzer: Path):
    """Return a callable listing the report paths the fake analyzer was given."""
    log_path = fake_analyzer.parent / "invocations.log"

    def _read() -> list[Path]:
        if not log_path.exists():
            return []
        return [Path(line) for line in log_path.read_text().splitlines() if line]

    return _read


@pytest.fixture
def test_config(temp_dir: Path, fake_analyzer: Path) -> ImageDiffConfig:
    """Create a test configuration that runs the fake analyzer.

    Args:
        temp_dir: Temporary directory from fixture
        fake_analyzer: Fake ``slim`` executable

    Returns:
        ImageDiffConfig instance for testing
    """
    return ImageDiffConfig(
        analyzer_binary=str(fake_analyzer),
        analyzer_timeout=10,
        report_dir=str(temp_dir / "reports"),
        _env_file=None,
    )


@pytest.fixture
def artifacts(test_config: ImageDiffConfig) -> ArtifactManager:
    """Artifact manager writing into the test report directory."""
    return ArtifactManager(test_config.report_dir, test_config.report_suffix)


@pytest.fixture
def report_files(test_config: ImageDiffConfig):
    """Return a callable listing report-related files left in the report dir."""

    def _list() -> list[str]:
        return sorted(os.listdir(test_config.report_dir))

    return _list


@pytest.fixture
def test_client(test_config: ImageDiffConfig):
    """FastAPI TestClient whose routes use the fake-analyzer configuration."""
    from fastapi.testclient import TestClient

    from imagediff.api.main import app, get_config

    app.dependency_overrides[get_config] = lambda: test_config
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
