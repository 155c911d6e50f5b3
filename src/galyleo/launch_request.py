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

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, PositiveInt, ValidationInfo, field_validator

from .util import format_time_limit, parse_time_limit


class JupyterInterface(Enum):
    """User interface started on the compute node."""

    LAB = "lab"
    NOTEBOOK = "notebook"


class ContainerGpuType(Enum):
    """GPU flavor passed to `singularity exec`."""

    NONE = "none"
    NV = "nv"
    ROCM = "rocm"


class LaunchRequest(BaseModel):
    """
    Fully resolved parameters of a single Jupyter launch.

    Built once by the ParameterResolver and never modified afterwards. Memory values are in GB.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    account: Optional[str] = None
    reservation: Optional[str] = None
    partition: str
    qos: Optional[str] = None
    nodes: PositiveInt = 1
    ntasks_per_node: PositiveInt = 1
    cpus_per_task: PositiveInt = 1
    memory_per_node: Optional[PositiveInt] = None
    memory_per_cpu: PositiveInt = 2
    gpus: Optional[str] = None
    gres: Optional[str] = None
    time_limit: str = "00:30:00"
    constraint: Optional[str] = None

    jupyter_interface: JupyterInterface = JupyterInterface.LAB
    notebook_dir: Path

    sif: Optional[Path] = None
    bind: Optional[str] = None
    gpu_type: ContainerGpuType = ContainerGpuType.NONE

    env_modules: tuple[str, ...] = ()
    conda_env: Optional[str] = None

    @field_validator("account", "reservation", "qos", "gpus", "gres", "constraint", "bind", "conda_env", mode="before")
    @classmethod
    def empty_as_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("memory_per_node", mode="before")
    @classmethod
    def non_positive_memory_is_unset(cls, value: Any) -> Any:
        if value is not None and int(value) <= 0:
            return None
        return value

    @field_validator("gres")
    @classmethod
    def gpus_and_gres_are_exclusive(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        if value is not None and info.data.get("gpus") is not None:
            raise ValueError("--gpus and --gres are mutually exclusive, specify only one of them")
        return value

    @field_validator("time_limit")
    @classmethod
    def normalize_time_limit(cls, value: str) -> str:
        return format_time_limit(parse_time_limit(value))

    @field_validator("env_modules", mode="before")
    @classmethod
    def split_env_modules(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(m.strip() for m in value.split(",") if m.strip())
        return value

    @property
    def memory_directive(self) -> str:
        if self.memory_per_node is not None:
            return f"--mem={self.memory_per_node}G"
        return f"--mem-per-cpu={self.memory_per_cpu}G"

    @property
    def uses_container(self) -> bool:
        return self.sif is not None
