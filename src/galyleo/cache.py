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
import shutil
import stat
import time
from datetime import timedelta
from pathlib import Path
from typing import Optional

from .exceptions import DirectoryError

CACHE_DIR_MODE = stat.S_IRWXU


def prepare_cache_dir(path: Path) -> Path:
    """
    Create the cache directory on first use with owner-only permissions.

    Group and other access are stripped. An already existing directory is left as is.
    """
    if path.is_dir():
        return path

    try:
        path.mkdir(parents=True, mode=CACHE_DIR_MODE)
        path.chmod(CACHE_DIR_MODE)
    except OSError as e:
        raise DirectoryError(path, f"Failed to create galyleo cache directory ({e.strerror})") from e

    logging.debug(f"Created cache directory {path}")
    return path


def clean_cache(path: Path, older_than: Optional[timedelta] = None) -> int:
    """
    Remove generated scripts and job output files from the cache directory.

    Args:
        path (Path): The cache directory.
        older_than (timedelta, optional): Retention window. Without it the whole directory is removed.

    Returns:
        int: Number of removed entries.
    """
    if not path.exists():
        logging.info(f"Cache directory {path} does not exist, nothing to clean.")
        return 0

    if older_than is None:
        removed = sum(1 for _ in path.iterdir())
        shutil.rmtree(path)
        logging.info(f"Removed cache directory {path} ({removed} entries).")
        return removed

    cutoff = time.time() - older_than.total_seconds()
    removed = 0
    for entry in sorted(path.iterdir()):
        if entry.lstat().st_mtime >= cutoff:
            continue
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
        logging.debug(f"Removed {entry}")
        removed += 1

    logging.info(f"Removed {removed} cache entries older than {older_than} from {path}.")
    return removed
