"""Tests for exit-time cleanup."""

import signal
from pathlib import Path
from unittest.mock import Mock, call

import pytest

from win2go import cleanup as cleanup_module
from win2go.cleanup import CleanupHandler
from win2go.exceptions import UnmountFailedError


@pytest.fixture
def unmount(mocker):
    return mocker.patch("win2go.cleanup.unmount", return_value=True)


class TestUnmounting:
    def test_reverse_registration_order(self, unmount):
        handler = CleanupHandler()
        for mountpoint in ("/mnt/win", "/mnt/boot", "/mnt/iso"):
            handler.register_mount(mountpoint)

        handler.run()

        assert unmount.call_args_list == [
            call(Path("/mnt/iso"), check=True),
            call(Path("/mnt/boot"), check=True),
            call(Path("/mnt/win"), check=True),
        ]

    def test_failure_retries_lazily_and_continues(self, unmount):
        unmount.side_effect = [UnmountFailedError("/mnt/boot", "busy"), False, True]
        handler = CleanupHandler()
        handler.register_mount("/mnt/win")
        handler.register_mount("/mnt/boot")

        handler.run()

        assert unmount.call_args_list == [
            call(Path("/mnt/boot"), check=True),
            call(Path("/mnt/boot"), lazy=True, check=False),
            call(Path("/mnt/win"), check=True),
        ]

    def test_duplicate_registration_is_ignored(self, unmount):
        handler = CleanupHandler()
        handler.register_mount("/mnt/win")
        handler.register_mount(Path("/mnt/win"))

        handler.run()

        assert unmount.call_count == 1

    def test_run_twice_is_harmless(self, unmount):
        handler = CleanupHandler()
        handler.register_mount("/mnt/win")

        handler.run()
        handler.run()

        assert unmount.call_count == 1


class TestTempDirs:
    def test_temp_dirs_are_removed(self, unmount):
        handler = CleanupHandler()
        win = handler.make_temp_dir("win")
        (win / "file").write_text("x", encoding="utf-8")

        handler.run()

        assert not win.exists()

    def test_missing_temp_dir_is_fine(self, unmount, tmp_path):
        handler = CleanupHandler()
        handler.register_temp_dir(tmp_path / "gone")
        handler.run()


class TestDownloadedIso:
    def test_deleted_when_confirmed(self, unmount, tmp_path):
        iso = tmp_path / "win.iso"
        iso.write_bytes(b"")
        confirm = Mock(return_value=True)
        handler = CleanupHandler(confirm=confirm)
        handler.set_downloaded_iso(iso)

        handler.run()

        confirm.assert_called_once_with("Delete downloaded ISO? (y/N)")
        assert not iso.exists()

    def test_kept_when_declined(self, unmount, tmp_path):
        iso = tmp_path / "win.iso"
        iso.write_bytes(b"")
        handler = CleanupHandler(confirm=Mock(return_value=False))
        handler.set_downloaded_iso(iso)

        handler.run()

        assert iso.exists()

    def test_kept_without_prompt_when_assume_yes(self, unmount, tmp_path):
        iso = tmp_path / "win.iso"
        iso.write_bytes(b"")
        confirm = Mock(return_value=True)
        handler = CleanupHandler(assume_yes=True, confirm=confirm)
        handler.set_downloaded_iso(iso)

        handler.run()

        confirm.assert_not_called()
        assert iso.exists()

    def test_asked_only_once(self, unmount, tmp_path):
        iso = tmp_path / "win.iso"
        iso.write_bytes(b"")
        confirm = Mock(return_value=False)
        handler = CleanupHandler(confirm=confirm)
        handler.set_downloaded_iso(iso)

        handler.run()
        handler.run()

        assert confirm.call_count == 1

    def test_no_prompt_when_download_never_happened(self, unmount, tmp_path):
        confirm = Mock()
        handler = CleanupHandler(confirm=confirm)
        handler.set_downloaded_iso(tmp_path / "never.iso")

        handler.run()

        confirm.assert_not_called()


class TestContextManager:
    def test_runs_cleanup_on_error(self, unmount):
        with pytest.raises(ValueError):
            with CleanupHandler() as handler:
                handler.register_mount("/mnt/win")
                raise ValueError("boom")

        unmount.assert_called_once_with(Path("/mnt/win"), check=True)

    def test_runs_cleanup_on_keyboard_interrupt(self, unmount):
        with pytest.raises(KeyboardInterrupt):
            with CleanupHandler() as handler:
                handler.register_mount("/mnt/iso")
                raise KeyboardInterrupt

        unmount.assert_called_once_with(Path("/mnt/iso"), check=True)

    def test_sigterm_handler_installed_and_restored(self, unmount):
        previous = signal.getsignal(signal.SIGTERM)

        with CleanupHandler():
            assert signal.getsignal(signal.SIGTERM) is cleanup_module._raise_system_exit

        assert signal.getsignal(signal.SIGTERM) == previous

    def test_sigterm_becomes_system_exit(self):
        with pytest.raises(SystemExit) as excinfo:
            cleanup_module._raise_system_exit(signal.SIGTERM, None)
        assert excinfo.value.code == 143
