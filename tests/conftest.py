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

import errno
import os
import subprocess
from pathlib import Path
from typing import Optional
from unittest.mock import Mock

import pytest
import requests
from requests import Response

from galyleo import GalyleoConfig, LaunchRequest, ReverseProxyBroker, SessionIdentity
from galyleo.util import CommandShell


class DummyResponse(Response):
    def __init__(self, text: str, status_code: int = 200) -> None:
        super().__init__()
        self.status_code = status_code
        self._content = text.encode()
        self.encoding = "utf-8"


class FakeSession(requests.Session):
    """Returns queued responses and records requested URLs."""

    def __init__(self, *responses: DummyResponse) -> None:
        super().__init__()
        self.responses = list(responses)
        self.urls: list[str] = []

    def get(self, url, **kwargs):
        self.urls.append(url)
        if not self.responses:
            return DummyResponse("OK", 200)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def called(self, endpoint: str) -> int:
        return sum(1 for url in self.urls if f"/{endpoint}" in url)


class MockCommandShell(CommandShell):
    def __init__(self, stdout: str = "Submitted batch job 456", stderr: str = "", returncode: int = 0) -> None:
        super().__init__()
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode
        self.commands: list[str] = []
        self.extra_env: Optional[dict] = None
        self.cwd = None

    def execute(self, command, extra_env=None, cwd=None):
        self.commands.append(command)
        self.extra_env = dict(extra_env) if extra_env else None
        self.cwd = cwd
        mock_popen = Mock(spec=subprocess.Popen)
        mock_popen.communicate.return_value = (self.stdout, self.stderr)
        mock_popen.returncode = self.returncode
        return mock_popen


@pytest.fixture(autouse=True)
def keep_cwd(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def galyleo_config(tmp_path: Path) -> GalyleoConfig:
    return GalyleoConfig(
        reverse_proxy_fqdn="proxy.example.org",
        dns_domain="cluster.local",
        default_partition="shared",
        cache_dir=tmp_path / "cache",
    )


@pytest.fixture
def notebook_dir(tmp_path: Path) -> Path:
    path = tmp_path / "notebooks"
    path.mkdir()
    return path


@pytest.fixture
def launch_request(notebook_dir: Path) -> LaunchRequest:
    return LaunchRequest(account="abc123", partition="shared", nodes=1, memory_per_cpu=2, notebook_dir=notebook_dir)


@pytest.fixture
def identity() -> SessionIdentity:
    return SessionIdentity(prefix="galyleo", local_time="20250101T000000+0000", unix_time=1735689600, random_id=42)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def broker(galyleo_config: GalyleoConfig, fake_session: FakeSession) -> ReverseProxyBroker:
    return ReverseProxyBroker(galyleo_config, session=fake_session)


class FullDiskFile:
    """Writes the first bytes of the data, then fails like a full filesystem."""

    def __init__(self, file) -> None:
        self.file = file

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.file.close()

    def write(self, data: str) -> int:
        self.file.write(data[:20])
        self.file.flush()
        raise OSError(errno.ENOSPC, os.strerror(errno.ENOSPC))


@pytest.fixture
def full_disk(monkeypatch: pytest.MonkeyPatch) -> None:
    real_open = Path.open

    def open_on_full_disk(self, mode="r", *args, **kwargs):
        file = real_open(self, mode, *args, **kwargs)
        return FullDiskFile(file) if mode == "x" else file

    monkeypatch.setattr(Path, "open", open_on_full_disk)
