"""
Pytest configuration and shared fixtures for win2go tests.

No test touches a real block device: every external tool is replaced with a
mock or with FakePopen below.
"""

import json
import subprocess
from typing import Any, Dict, List
from unittest.mock import Mock

import pytest
from loguru import logger

from win2go.config import settings

GIB = 1024**3


# ==============================================================================
# Global state
# ==============================================================================


@pytest.fixture(autouse=True)
def default_settings(monkeypatch, tmp_path):
    """Run every test against default settings stored under tmp_path."""
    monkeypatch.setattr(settings, "SETTINGS_PATH", tmp_path / "settings.json")
    settings.settings_store.values = dict(settings.DEFAULT_SETTINGS)
    yield settings.settings_store
    settings.settings_store.values = dict(settings.DEFAULT_SETTINGS)


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger.remove()


@pytest.fixture
def log_records():
    """Collect loguru records emitted during a test."""
    records: List[dict] = []
    logger.add(lambda message: records.append(message.record), level="DEBUG", enqueue=False)
    return records


# ==============================================================================
# lsblk Fixtures
# ==============================================================================


@pytest.fixture
def mock_usb_device() -> Dict[str, Any]:
    """A 15GiB removable USB stick as reported by lsblk -J -b -d."""
    return {
        "name": "sda",
        "path": "/dev/sda",
        "type": "disk",
        "size": 15 * GIB,
        "model": "USB Flash Drive",
        "vendor": "Generic ",
        "tran": "usb",
        "rm": True,
    }


@pytest.fixture
def mock_large_disk() -> Dict[str, Any]:
    """A 500GiB NVMe disk, with older lsblk string values."""
    return {
        "name": "nvme0n1",
        "path": "/dev/nvme0n1",
        "type": "disk",
        "size": str(500 * GIB),
        "model": "Samsung SSD 980",
        "vendor": None,
        "tran": "nvme",
        "rm": "0",
    }


@pytest.fixture
def mock_lsblk_output(mock_usb_device, mock_large_disk) -> str:
    devices = [
        mock_usb_device,
        mock_large_disk,
        {"name": "loop0", "path": "/dev/loop0", "type": "loop", "size": 4096},
        {"name": "sr0", "path": "/dev/sr0", "type": "rom", "size": 1024},
    ]
    return json.dumps({"blockdevices": devices})


@pytest.fixture
def completed():
    """Factory for subprocess.CompletedProcess results."""

    def make(stdout: str = "", returncode: int = 0, stderr: str = "", args=None):
        return subprocess.CompletedProcess(args or [], returncode, stdout=stdout, stderr=stderr)

    return make


# ==============================================================================
# Subprocess Fixtures
# ==============================================================================


class FakePopen:
    """Stand-in for subprocess.Popen that stays alive for a few polls."""

    def __init__(self, argv, *, polls: int, returncode: int, output: bytes, **kwargs):
        self.args = argv
        self.kwargs = kwargs
        self.returncode = returncode
        self._remaining_polls = polls
        self.wait_calls: List[Any] = []
        self.killed = False
        kwargs["stdout"].write(output)

    def poll(self):
        if self._remaining_polls > 0:
            self._remaining_polls -= 1
            return None
        return self.returncode

    def wait(self, timeout=None):
        self.wait_calls.append(timeout)
        return self.returncode

    def kill(self):
        self.killed = True


@pytest.fixture
def fake_popen(mocker):
    """Patch Popen; call the returned function to configure the fake child.

    Returns a list that collects every FakePopen instance created.
    """
    instances: List[FakePopen] = []

    def install(returncode: int = 0, output: bytes = b"", polls: int = 2) -> List[FakePopen]:
        def factory(argv, **kwargs):
            process = FakePopen(argv, polls=polls, returncode=returncode, output=output, **kwargs)
            instances.append(process)
            return process

        mocker.patch("win2go.ui.progress.subprocess.Popen", side_effect=factory)
        return instances

    return install


@pytest.fixture
def mock_spinner() -> Mock:
    return Mock(return_value=subprocess.CompletedProcess([], 0, stdout="", stderr=""))
