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

from .broker import BrokerToken, ReverseProxyBroker, TokenState, parse_getlink_response
from .cache import clean_cache, prepare_cache_dir
from .config import GalyleoConfig, load_config, write_config
from .exceptions import (
    BrokerError,
    BrokerRejected,
    BrokerUnreachable,
    ConfigError,
    DirectoryError,
    DuplicateSession,
    GalyleoError,
    InvalidParameter,
    LinkWarning,
    PortAllocationError,
    SubmissionError,
    UnsupportedOption,
)
from .job_submitter import JobHandle, SlurmJobSubmitter
from .launch_request import ContainerGpuType, JupyterInterface, LaunchRequest
from .orchestrator import LaunchOrchestrator, LaunchResult
from .parameter_resolver import ParameterResolver
from .port_allocator import PortAllocator, parse_listening_ports
from .script_generator import GeneratedScript, SlurmScriptGenerator
from .session import SessionIdentity, SessionRegistry

__all__ = [
    "BrokerError",
    "BrokerRejected",
    "BrokerToken",
    "BrokerUnreachable",
    "ConfigError",
    "ContainerGpuType",
    "DirectoryError",
    "DuplicateSession",
    "GalyleoConfig",
    "GalyleoError",
    "GeneratedScript",
    "InvalidParameter",
    "JobHandle",
    "JupyterInterface",
    "LaunchOrchestrator",
    "LaunchRequest",
    "LaunchResult",
    "LinkWarning",
    "ParameterResolver",
    "PortAllocationError",
    "PortAllocator",
    "ReverseProxyBroker",
    "SessionIdentity",
    "SessionRegistry",
    "SlurmJobSubmitter",
    "SlurmScriptGenerator",
    "SubmissionError",
    "TokenState",
    "UnsupportedOption",
    "clean_cache",
    "load_config",
    "parse_getlink_response",
    "parse_listening_ports",
    "prepare_cache_dir",
    "write_config",
]
