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
import shlex
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import List, Optional

from .broker import BrokerToken, ReverseProxyBroker
from .cache import prepare_cache_dir
from .config import GalyleoConfig
from .exceptions import DirectoryError, DuplicateSession, InvalidParameter
from .launch_request import ContainerGpuType, LaunchRequest
from .port_allocator import PortAllocator
from .session import SessionIdentity, SessionRegistry

PORT_VARIABLE = "JUPYTER_PORT"
SERVER_START_GRACE_SECONDS = 5


def _galyleo_version() -> str:
    try:
        return version("galyleo")
    except PackageNotFoundError:
        return "unknown"


@dataclass(frozen=True)
class GeneratedScript:
    """A batch script written to the cache directory."""

    name: str
    path: Path
    output_pattern: str


class SlurmScriptGenerator:
    """
    Renders a LaunchRequest into a self-contained Slurm batch script.

    The script requests resources, prepares the environment, picks a free port, starts Jupyter (optionally inside a
    Singularity container), redeems the proxy token, waits for the server and finally destroys the token.

    Attributes
        config (GalyleoConfig): Site configuration.
        broker (ReverseProxyBroker): Used to render the redeem/destroy commands run inside the job.
        registry (SessionRegistry): Session names that already have a script in this process.
        port_allocator (PortAllocator): Renders the port selection loop.
    """

    def __init__(
        self,
        config: GalyleoConfig,
        broker: ReverseProxyBroker,
        registry: Optional[SessionRegistry] = None,
        port_allocator: Optional[PortAllocator] = None,
    ) -> None:
        self.config = config
        self.broker = broker
        self.registry = registry or SessionRegistry()
        self.port_allocator = port_allocator or PortAllocator()

    def script_path(self, identity: SessionIdentity) -> Path:
        return self.config.cache_dir / f"{identity.name}.sh"

    def output_pattern(self, identity: SessionIdentity) -> str:
        return str(self.config.cache_dir / f"{identity.name}.o%j.%N")

    def generate(self, request: LaunchRequest, identity: SessionIdentity, token: BrokerToken) -> GeneratedScript:
        """
        Render and write the batch script, never overwriting an existing one.

        Raises:
            InvalidParameter: If no account is specified. Nothing is written in that case.
            DuplicateSession: If a script for this session already exists. The existing file is left untouched.
            DirectoryError: If the cache directory or the script cannot be written. A partial script is removed and the
                session name is released.
        """
        content = self.render(request, identity, token)

        self.registry.reserve(identity)
        path = self.script_path(identity)
        try:
            prepare_cache_dir(self.config.cache_dir)
            self._write_script(identity, path, content)
        except DirectoryError:
            self.registry.release(identity)
            raise

        logging.info(f"Generated Jupyter launch script {path}")
        return GeneratedScript(name=identity.name, path=path, output_pattern=self.output_pattern(identity))

    def _write_script(self, identity: SessionIdentity, path: Path, content: str) -> None:
        try:
            with path.open("x") as script:
                script.write(content)
            path.chmod(0o700)
        except FileExistsError as e:
            raise DuplicateSession(identity.name, path) from e
        except OSError as e:
            path.unlink(missing_ok=True)
            raise DirectoryError(path, f"Failed to write Jupyter launch script ({e.strerror})") from e

    def render(self, request: LaunchRequest, identity: SessionIdentity, token: BrokerToken) -> str:
        if not request.account:
            raise InvalidParameter("account", "No account specified. Every job must be charged to an account.")

        lines = ["#!/bin/bash", f"# generated by galyleo@{_galyleo_version()}"]
        self._append_sbatch_directives(lines, request, identity)
        lines.append("")
        self._append_runtime_setup(lines, token)
        self._append_environment_setup(lines, request)
        lines.extend(self.port_allocator.render(PORT_VARIABLE))
        lines.append("")
        lines.extend(self._container_prefix(request))
        lines.append(self._jupyter_command(request))
        self._append_start_check(lines)
        lines.extend([self.broker.redeem_command(token, PORT_VARIABLE), ""])
        lines.extend(['wait "${jupyter_pid}"', ""])
        lines.append(self.broker.destroy_command(token))
        return "\n".join(lines) + "\n"

    def _append_sbatch_directives(
        self, lines: List[str], request: LaunchRequest, identity: SessionIdentity
    ) -> None:
        lines.append(f"#SBATCH --job-name={identity.name}")
        lines.append(f"#SBATCH --account={request.account}")
        if request.reservation:
            lines.append(f"#SBATCH --reservation={request.reservation}")
        if request.qos:
            lines.append(f"#SBATCH --qos={request.qos}")
        lines.append(f"#SBATCH --partition={request.partition}")
        lines.append(f"#SBATCH --nodes={request.nodes}")
        lines.append(f"#SBATCH --ntasks-per-node={request.ntasks_per_node}")
        lines.append(f"#SBATCH --cpus-per-task={request.cpus_per_task}")
        lines.append(f"#SBATCH {request.memory_directive}")
        if request.gpus:
            lines.append(f"#SBATCH --gpus={request.gpus}")
        elif request.gres:
            lines.append(f"#SBATCH --gres={request.gres}")
        lines.append(f"#SBATCH --time={request.time_limit}")
        if request.constraint:
            lines.append(f"#SBATCH --constraint={request.constraint}")
        lines.append("#SBATCH --no-requeue")
        lines.append("#SBATCH --export=ALL")
        lines.append(f"#SBATCH --output={self.output_pattern(identity)}")

    def _append_runtime_setup(self, lines: List[str], token: BrokerToken) -> None:
        lines.extend(
            [
                'declare -xr JUPYTER_RUNTIME_DIR="${HOME}/.jupyter/runtime"',
                f"declare -xi {PORT_VARIABLE}=-1",
                "",
                "galyleo_abort() {",
                '  echo "ERROR: ${1}" >&2',
                f"  {self.broker.destroy_command(token)}",
                "  exit 1",
                "}",
                "",
            ]
        )

    def _append_environment_setup(self, lines: List[str], request: LaunchRequest) -> None:
        if request.env_modules:
            lines.append("module purge")
            for module in request.env_modules:
                error = shlex.quote(f"module not found: {module}")
                lines.append(f"module load {shlex.quote(module)} || galyleo_abort {error}")
        if request.conda_env:
            error = shlex.quote(f"conda environment not found: {request.conda_env}")
            lines.append("source ~/.bashrc")
            lines.append(f"conda activate {shlex.quote(request.conda_env)} || galyleo_abort {error}")
        if request.env_modules or request.conda_env:
            lines.append("")

    def _container_prefix(self, request: LaunchRequest) -> List[str]:
        if request.sif is None:
            return []

        prefix = ["singularity exec \\"]
        if request.bind:
            prefix.append(f"  --bind {shlex.quote(request.bind)} \\")
        if request.gpu_type is not ContainerGpuType.NONE:
            prefix.append(f"  --{request.gpu_type.value} \\")
        prefix.append(f"  {shlex.quote(str(request.sif))} \\")
        return prefix

    def _jupyter_command(self, request: LaunchRequest) -> str:
        return " ".join(
            [
                "jupyter",
                request.jupyter_interface.value,
                f'--ip="$(hostname -s).{self.config.dns_domain}"',
                f"--notebook-dir={shlex.quote(str(request.notebook_dir))}",
                f'--port="${{{PORT_VARIABLE}}}"',
                "--NotebookApp.allow_origin='*'",
                "--KernelManager.transport='ipc'",
                "--no-browser",
                "&",
            ]
        )

    def _append_start_check(self, lines: List[str]) -> None:
        lines.extend(
            [
                'jupyter_pid="${!}"',
                f"sleep {SERVER_START_GRACE_SECONDS}",
                'if ! kill -0 "${jupyter_pid}" 2> /dev/null; then',
                f'  galyleo_abort "Failed to launch Jupyter on port ${{{PORT_VARIABLE}}}."',
                "fi",
                "",
            ]
        )
