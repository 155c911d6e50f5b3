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
import os
from pathlib import Path
from typing import Any, Dict, Mapping

from pydantic import ValidationError

from .config import GalyleoConfig
from .exceptions import DirectoryError, InvalidParameter, UnsupportedOption
from .launch_request import ContainerGpuType, JupyterInterface, LaunchRequest

# (short flag, long flag) -> LaunchRequest field
LAUNCH_OPTIONS: Dict[str, tuple[str, str]] = {
    "account": ("-A", "--account"),
    "reservation": ("-R", "--reservation"),
    "partition": ("-p", "--partition"),
    "qos": ("-q", "--qos"),
    "nodes": ("-N", "--nodes"),
    "ntasks_per_node": ("-n", "--ntasks-per-node"),
    "cpus_per_task": ("-c", "--cpus-per-task"),
    "memory_per_node": ("-M", "--memory-per-node"),
    "memory_per_cpu": ("-m", "--memory-per-cpu"),
    "gpus": ("-G", "--gpus"),
    "gres": ("", "--gres"),
    "time_limit": ("-t", "--time-limit"),
    "constraint": ("-C", "--constraint"),
    "jupyter_interface": ("-j", "--jupyter"),
    "notebook_dir": ("-d", "--notebook-dir"),
    "sif": ("-s", "--sif"),
    "bind": ("-B", "--bind"),
    "gpu_type": ("", "--gpu-type"),
    "env_modules": ("-e", "--env-modules"),
    "conda_env": ("", "--conda-env"),
}

GPU_TYPE_FLAGS = {"--nv": ContainerGpuType.NV, "--rocm": ContainerGpuType.ROCM}


def _build_alias_table() -> Dict[str, str]:
    aliases: Dict[str, str] = {}
    for field, flags in LAUNCH_OPTIONS.items():
        aliases[field] = field
        for flag in flags:
            if flag:
                aliases[flag] = field
                aliases[flag.lstrip("-")] = field
    return aliases


OPTION_ALIASES = _build_alias_table()


def option_name(field: str) -> str:
    """Return the long command-line flag for a LaunchRequest field."""
    return LAUNCH_OPTIONS.get(field, ("", field))[1]


class ParameterResolver:
    """
    Turns raw launch options into a validated LaunchRequest.

    Options may be keyed by short flag (`-A`), long flag (`--account`) or field name (`account`). Unknown keys are
    rejected. Resolving changes the process working directory to the notebook directory, so a missing directory is
    detected before anything is requested from the reverse proxy service.
    """

    def __init__(self, config: GalyleoConfig) -> None:
        self.config = config

    def normalize(self, options: Mapping[str, Any]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for key, value in options.items():
            flag = key.strip()
            if not flag.startswith("-") and f"--{flag}" in GPU_TYPE_FLAGS:
                flag = f"--{flag}"

            if flag in GPU_TYPE_FLAGS:
                if value:
                    values["gpu_type"] = GPU_TYPE_FLAGS[flag]
                continue

            field = OPTION_ALIASES.get(flag) or OPTION_ALIASES.get(flag.replace("-", "_"))
            if field is None:
                raise UnsupportedOption(key)
            if value is None:
                continue
            values[field] = value
        return values

    def resolve(self, options: Mapping[str, Any]) -> LaunchRequest:
        values = self.normalize(options)

        values.setdefault("partition", self.config.default_partition)

        interface = values.get("jupyter_interface") or self.config.default_jupyter_interface or JupyterInterface.LAB
        if isinstance(interface, JupyterInterface):
            interface = interface.value
        if interface not in {i.value for i in JupyterInterface}:
            raise InvalidParameter(
                option_name("jupyter_interface"),
                f"Not a valid Jupyter user interface: {interface}. "
                "Only --jupyter lab OR --jupyter notebook are allowed.",
            )
        values["jupyter_interface"] = interface

        values["notebook_dir"] = Path(values.get("notebook_dir") or Path.home()).expanduser().absolute()
        if values.get("sif"):
            values["sif"] = Path(values["sif"]).expanduser().absolute()

        try:
            request = LaunchRequest(**values)
        except ValidationError as e:
            first = e.errors()[0]
            field = str(first["loc"][0]) if first["loc"] else "launch request"
            raise InvalidParameter(option_name(field), first["msg"]) from e

        if request.sif is not None and not request.sif.is_file():
            raise InvalidParameter(option_name("sif"), f"Singularity image file does not exist: {request.sif}")

        self._enter_notebook_dir(request.notebook_dir)
        return request

    def _enter_notebook_dir(self, notebook_dir: Path) -> None:
        try:
            os.chdir(notebook_dir)
        except FileNotFoundError as e:
            raise DirectoryError(notebook_dir, "Jupyter notebook directory does not exist") from e
        except OSError as e:
            raise DirectoryError(notebook_dir, "Unable to change to the Jupyter notebook directory") from e
        logging.debug(f"Changed working directory to {notebook_dir}")


def log_launch_parameters(request: LaunchRequest) -> None:
    logging.info("Listing all launch parameters ...")
    logging.info("  command-line option      : value")
    for field, (short, long) in LAUNCH_OPTIONS.items():
        value = getattr(request, field)
        if isinstance(value, (JupyterInterface, ContainerGpuType)):
            value = value.value
        elif isinstance(value, tuple):
            value = ",".join(value)
        elif value is None:
            value = ""
        logging.info(f"  {short:>4} | {long:<18}: {value}")
