# SPDX-FileCopyrightText: NVIDIA CORPORATION & AFFILIATES
# Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
from datetime import timedelta
from pathlib import Path

import pytest

from galyleo.cli import setup_logging
from galyleo.util import CommandShell, format_time_limit, parse_time_limit


@pytest.mark.parametrize(
    "limit,expected",
    [
        ("45", timedelta(minutes=45)),
        ("10:30", timedelta(minutes=10, seconds=30)),
        ("01:30:00", timedelta(hours=1, minutes=30)),
        ("2-12", timedelta(days=2, hours=12)),
        ("2-12:30", timedelta(days=2, hours=12, minutes=30)),
        ("2-12:30:15", timedelta(days=2, hours=12, minutes=30, seconds=15)),
        ("30m", timedelta(minutes=30)),
        ("12H", timedelta(hours=12)),
        ("7d", timedelta(days=7)),
        ("1w", timedelta(weeks=1)),
    ],
)
def test_parse_time_limit(limit: str, expected: timedelta):
    assert parse_time_limit(limit) == expected


@pytest.mark.parametrize("limit", ["", "soon", "1:2:3:4", "1-2:3:4:5", "x-12"])
def test_parse_invalid_time_limit(limit: str):
    with pytest.raises(ValueError):
        parse_time_limit(limit)


@pytest.mark.parametrize(
    "delta,expected",
    [
        (timedelta(minutes=30), "00:30:00"),
        (timedelta(hours=25), "1-01:00:00"),
        (timedelta(days=2, seconds=5), "2-00:00:05"),
    ],
)
def test_format_time_limit(delta: timedelta, expected: str):
    assert format_time_limit(delta) == expected


def test_command_shell_missing_executable():
    with pytest.raises(FileNotFoundError):
        CommandShell("/no/such/shell")


def test_command_shell_environment_and_cwd(tmp_path: Path):
    shell = CommandShell()
    stdout, stderr, returncode = shell.output("echo hello")
    assert (stdout, returncode) == ("hello\n", 0)

    process = shell.execute('echo "${JUPYTER_TOKEN}" && pwd', extra_env={"JUPYTER_TOKEN": "f00d"}, cwd=tmp_path)
    stdout, _ = process.communicate()
    assert stdout.splitlines() == ["f00d", str(tmp_path)]


def test_setup_logging_file(tmp_path: Path):
    log_file = tmp_path / "debug.log"
    setup_logging(str(log_file), "INFO")
    logging.debug("debug details")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "DEBUG - debug details" in log_file.read_text()


def test_setup_logging_invalid_level():
    with pytest.raises(ValueError):
        setup_logging(None, "LOUD")
