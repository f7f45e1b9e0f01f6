"""Tests for the progress spinner."""

import io
import subprocess
from unittest.mock import Mock

import pytest

from win2go.exceptions import CommandError
from win2go.ui import progress


class TTYStream(io.StringIO):
    def isatty(self):
        return True


class TestFormatting:
    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, "00:00:00"),
            (59.9, "00:00:59"),
            (3725, "01:02:05"),
            (None, "00:00:00"),
            (-3, "00:00:00"),
        ],
    )
    def test_format_elapsed(self, seconds, expected):
        assert progress.format_elapsed(seconds) == expected

    def test_spinner_line(self):
        line = progress.format_spinner_line("Copying", "◐", 61)
        assert line == "Copying... ◐ [Elapsed: 00:01:01]"

    def test_complete_line(self):
        assert progress.format_complete_line("Copying", 3600) == "Copying completed ✅ [Total: 01:00:00]"


class TestRunWithSpinner:
    def test_success_draws_frames_and_completion(self, fake_popen):
        processes = fake_popen(output=b"line one\nline two\n", polls=2)
        stream = io.StringIO()
        sleep = Mock()

        result = progress.run_with_spinner(
            ["rsync", "-a", "src/", "dst/"],
            "Copying",
            stream=stream,
            clock=Mock(side_effect=[0, 1, 2, 5]),
            sleep=sleep,
        )

        output = stream.getvalue()
        assert "\rCopying... ◐ [Elapsed: 00:00:01]" in output
        assert "\rCopying... ◓ [Elapsed: 00:00:02]" in output
        assert output.endswith("\rCopying completed ✅ [Total: 00:00:05]\n")
        assert result.returncode == 0
        assert result.stdout == "line one\nline two\n"
        assert sleep.call_count == 2
        sleep.assert_called_with(0.2)
        assert processes[0].args == ["rsync", "-a", "src/", "dst/"]

    def test_title_defaults_to_command_line(self, fake_popen):
        fake_popen(polls=0)
        stream = io.StringIO()

        progress.run_with_spinner(["sync"], stream=stream, sleep=Mock())

        assert "sync completed ✅" in stream.getvalue()

    def test_interval_comes_from_settings(self, fake_popen, default_settings):
        fake_popen(polls=1)
        default_settings.values["spinner_interval"] = 0.5
        sleep = Mock()

        progress.run_with_spinner(["true"], stream=io.StringIO(), sleep=sleep)

        sleep.assert_called_once_with(0.5)

    def test_failure_raises_command_error_with_output_tail(self, fake_popen):
        fake_popen(returncode=2, output=b"warming up\n\nError: disk busy\n", polls=1)
        stream = io.StringIO()

        with pytest.raises(CommandError) as excinfo:
            progress.run_with_spinner(["parted", "/dev/sdb"], "Partitioning", stream=stream, sleep=Mock())

        assert excinfo.value.returncode == 2
        assert excinfo.value.command == ["parted", "/dev/sdb"]
        assert excinfo.value.output == "warming up\nError: disk busy"
        assert "Partitioning failed ❌" in stream.getvalue()

    def test_missing_tool_raises_command_error(self, mocker):
        mocker.patch(
            "win2go.ui.progress.subprocess.Popen",
            side_effect=FileNotFoundError("No such file or directory: 'wimlib-imagex'"),
        )

        with pytest.raises(CommandError) as excinfo:
            progress.run_with_spinner(["wimlib-imagex"], stream=io.StringIO())

        assert excinfo.value.returncode == 127

    def test_keyboard_interrupt_waits_for_child_and_propagates(self, fake_popen):
        processes = fake_popen(polls=5)
        stream = io.StringIO()

        with pytest.raises(KeyboardInterrupt):
            progress.run_with_spinner(
                ["wget", "url"], stream=stream, sleep=Mock(side_effect=KeyboardInterrupt)
            )

        assert processes[0].wait_calls == [progress.INTERRUPT_WAIT_SECONDS]
        assert processes[0].killed is False
        assert stream.getvalue().endswith("\n")

    def test_keyboard_interrupt_kills_child_that_keeps_running(self, fake_popen):
        processes = fake_popen(polls=5)

        def stubborn_wait(timeout=None):
            processes[0].wait_calls.append(timeout)
            if timeout is not None:
                raise subprocess.TimeoutExpired("rsync", timeout)
            return -9

        def interrupt(interval):
            processes[0].wait = stubborn_wait
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            progress.run_with_spinner(["rsync", "a/", "b/"], stream=io.StringIO(), sleep=interrupt)

        assert processes[0].killed is True
        assert processes[0].wait_calls == [progress.INTERRUPT_WAIT_SECONDS, None]

    def test_tty_output_is_colored(self, fake_popen):
        fake_popen(polls=1)
        stream = TTYStream()

        progress.run_with_spinner(["true"], "Working", stream=stream, sleep=Mock())

        output = stream.getvalue()
        assert "\033[K" in output
        assert "\033[1;32m" in output

    def test_child_output_is_logged_as_tool_output(self, fake_popen, log_records):
        fake_popen(output=b"Applying image 1\n", polls=0)

        progress.run_with_spinner(["wimlib-imagex"], stream=io.StringIO(), sleep=Mock())

        tool_lines = [r for r in log_records if "tool-output" in r["extra"].get("tags", [])]
        assert [r["message"] for r in tool_lines] == ["Applying image 1"]
