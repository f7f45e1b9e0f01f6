"""Tests for GPT partitioning."""

from unittest.mock import Mock, call

import pytest

from win2go.exceptions import PartitionError
from win2go.storage import partition


@pytest.fixture
def partition_env(mocker, mock_spinner):
    mocker.patch("win2go.storage.partition.run_with_spinner", mock_spinner)
    return {
        "spinner": mock_spinner,
        "settle": mocker.patch("win2go.storage.partition.settle"),
        "force_unmount": mocker.patch("win2go.storage.partition.force_unmount"),
        "wait": mocker.patch("win2go.storage.partition.wait_for_partitions"),
    }


def test_parted_commands_default_layout():
    assert partition.parted_commands("/dev/sdb", 512) == [
        ["parted", "/dev/sdb", "--script", "mklabel", "gpt"],
        ["parted", "/dev/sdb", "--script", "mkpart", "EFI", "fat32", "1MiB", "513MiB"],
        ["parted", "/dev/sdb", "--script", "set", "1", "esp", "on"],
        ["parted", "/dev/sdb", "--script", "mkpart", "WIN", "ntfs", "513MiB", "100%"],
    ]


def test_parted_commands_rejects_empty_esp():
    with pytest.raises(PartitionError):
        partition.parted_commands("/dev/sdb", 0)


class TestPartitionDrive:
    def test_runs_parted_then_settles(self, partition_env):
        sleep = Mock()

        layout = partition.partition_drive("/dev/sdb", sleep=sleep)

        assert layout == partition.PartitionLayout("/dev/sdb", "/dev/sdb1", "/dev/sdb2")
        commands = [c.args[0] for c in partition_env["spinner"].call_args_list]
        assert commands == partition.parted_commands("/dev/sdb", 512)
        partition_env["settle"].assert_called_once_with()
        sleep.assert_called_once_with(2.0)
        partition_env["force_unmount"].assert_called_once_with("/dev/sdb")
        partition_env["wait"].assert_called_once_with(["/dev/sdb1", "/dev/sdb2"], sleep=sleep)

    def test_nvme_partition_names(self, partition_env):
        layout = partition.partition_drive("/dev/nvme0n1", sleep=Mock())
        assert (layout.esp, layout.windows) == ("/dev/nvme0n1p1", "/dev/nvme0n1p2")

    def test_esp_size_from_settings(self, partition_env, default_settings):
        default_settings.values["esp_size_mib"] = 256

        partition.partition_drive("/dev/sdb", sleep=Mock())

        mkpart = partition_env["spinner"].call_args_list[1].args[0]
        assert mkpart[-2:] == ["1MiB", "257MiB"]


class TestWaitForPartitions:
    def test_returns_when_nodes_exist(self):
        sleep = Mock()
        partition.wait_for_partitions(["/dev/sdb1", "/dev/sdb2"], exists=lambda p: True, sleep=sleep)
        sleep.assert_not_called()

    def test_waits_for_late_nodes(self):
        seen = iter([False, True, True, True])
        sleep = Mock()

        partition.wait_for_partitions(["/dev/sdb1"], exists=lambda p: next(seen), sleep=sleep)

        assert sleep.call_args_list == [call(partition.PARTITION_POLL_INTERVAL)]

    def test_times_out(self):
        sleep = Mock()
        with pytest.raises(PartitionError, match="/dev/sdb2"):
            partition.wait_for_partitions(
                ["/dev/sdb1", "/dev/sdb2"], exists=lambda p: p.endswith("1"), sleep=sleep
            )
        assert sleep.call_count == 9
