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
import sys
from pathlib import Path
from typing import Optional

import toml
from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, ValidationError, field_serializer, field_validator

from .exceptions import ConfigError
from .launch_request import JupyterInterface

CONFIG_ENV_VAR = "GALYLEO_CONFIG"
DEFAULT_CONFIG_PATH = Path(sys.prefix) / "etc" / "galyleo" / "galyleo.toml"


class GalyleoConfig(BaseModel):
    """
    Site-wide deployment settings.

    Loaded once at startup and passed explicitly to every component.

    Attributes
        reverse_proxy_fqdn (str): Fully-qualified domain name of the reverse proxy service.
        dns_domain (str): DNS domain appended to compute node short hostnames.
        default_partition (str): Partition used when none is requested.
        default_jupyter_interface (JupyterInterface): Interface used when none is requested.
        cache_dir (Path): Directory holding generated batch scripts and job output.
        broker_timeout (float): Timeout in seconds for each request to the reverse proxy service.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    reverse_proxy_fqdn: str = "expanse-user-content.sdsc.edu"
    dns_domain: str = "eth.cluster"
    default_partition: str = "shared"
    default_jupyter_interface: JupyterInterface = JupyterInterface.LAB
    cache_dir: Path = Field(default_factory=lambda: Path.home() / ".galyleo")
    broker_timeout: PositiveFloat = 30.0

    @field_validator("cache_dir")
    @classmethod
    def expand_cache_dir(cls, value: Path) -> Path:
        return value.expanduser().absolute()

    @field_serializer("cache_dir")
    def _path_serializer(self, v: Path) -> str:
        return str(v)

    @field_serializer("default_jupyter_interface")
    def _interface_serializer(self, v: JupyterInterface) -> str:
        return v.value

    @property
    def management_url(self) -> str:
        return f"https://manage.{self.reverse_proxy_fqdn}"


def config_path(path: Optional[Path] = None) -> Path:
    if path is not None:
        return path
    if env_path := os.environ.get(CONFIG_ENV_VAR):
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_config(path: Optional[Path] = None) -> GalyleoConfig:
    """
    Load the site configuration from a TOML file.

    A missing file is not fatal: built-in defaults are used and a warning is logged.

    Raises:
        ConfigError: If the file exists but cannot be parsed or validated.
    """
    path = config_path(path)
    if not path.is_file():
        logging.warning(f"galyleo configuration file {path} does not exist yet, using defaults.")
        return GalyleoConfig()

    try:
        data = toml.load(path)
    except (OSError, toml.TomlDecodeError) as e:
        raise ConfigError(f"Failed to read galyleo configuration file {path}: {e}") from e

    try:
        config = GalyleoConfig.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise ConfigError(f"Invalid galyleo configuration in {path}: {field}: {first['msg']}") from e

    logging.debug(f"Loaded galyleo configuration from {path}: {config.model_dump_json(indent=None)}")
    return config


def write_config(config: GalyleoConfig, path: Optional[Path] = None) -> Path:
    """
    Write a new configuration file.

    An existing file is never overwritten; it has to be removed manually by its owner first.

    Raises:
        ConfigError: If the file already exists or cannot be created.
    """
    path = config_path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("x") as f:
            toml.dump(config.model_dump(), f)
    except FileExistsError as e:
        raise ConfigError(f"{path} already exists and cannot be overwritten with this command.") from e
    except OSError as e:
        raise ConfigError(f"Failed to create galyleo configuration file {path}: {e}") from e

    return path
