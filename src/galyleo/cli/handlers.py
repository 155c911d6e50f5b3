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
from pathlib import Path
from typing import Any, Dict, Optional

import click

from ..cache import clean_cache
from ..config import GalyleoConfig, load_config, write_config
from ..exceptions import ConfigError, GalyleoError
from ..orchestrator import LaunchOrchestrator
from ..util import parse_time_limit


def handle_launch(config_path: Optional[Path], options: Dict[str, Any]) -> int:
    try:
        config = load_config(config_path)
        result = LaunchOrchestrator(config).launch(options)
    except GalyleoError as e:
        logging.error(str(e))
        return 1

    click.echo(result.url)
    return 0


def handle_configure(config_path: Optional[Path], settings: Dict[str, Any]) -> int:
    values = {key: value for key, value in settings.items() if value is not None}
    try:
        path = write_config(GalyleoConfig(**values), config_path)
    except ConfigError as e:
        logging.error(str(e))
        return 1

    logging.info(f"galyleo configuration written to {path}.")
    return 0


def handle_clean(config_path: Optional[Path], older_than: Optional[str]) -> int:
    try:
        config = load_config(config_path)
        retention = parse_time_limit(older_than) if older_than else None
    except ConfigError as e:
        logging.error(str(e))
        return 1
    except ValueError as e:
        logging.error(f"Invalid value for '--older-than': {e}")
        return 1

    try:
        clean_cache(config.cache_dir, retention)
    except OSError as e:
        logging.error(f"Failed to clean cache directory {config.cache_dir}: {e}")
        return 1

    return 0
