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

import random
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .exceptions import DuplicateSession

SESSION_PREFIX = "galyleo"
RANDOM_ID_LIMIT = 32767


@dataclass(frozen=True)
class SessionIdentity:
    """
    Unique name of one launch.

    Composed of a readable prefix, the local timestamp, the unix time and a random component, so concurrent
    invocations by the same or different users do not need to coordinate.
    """

    prefix: str
    local_time: str
    unix_time: int
    random_id: int

    @property
    def name(self) -> str:
        return f"{self.prefix}-{self.local_time}-{self.unix_time}-{self.random_id}"

    def __str__(self) -> str:
        return self.name

    @classmethod
    def generate(
        cls, prefix: str = SESSION_PREFIX, now: Optional[datetime] = None, rng: Optional[random.Random] = None
    ) -> "SessionIdentity":
        now = now or datetime.now().astimezone()
        rng = rng or random.Random()
        return cls(
            prefix=prefix,
            local_time=now.strftime("%Y%m%dT%H%M%S%z"),
            unix_time=int(now.timestamp()),
            random_id=rng.randint(0, RANDOM_ID_LIMIT),
        )


class SessionRegistry:
    """In-process registry of session names that already have (or are getting) a launch script."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._names: set[str] = set()

    def reserve(self, identity: SessionIdentity) -> None:
        with self._lock:
            if identity.name in self._names:
                raise DuplicateSession(identity.name)
            self._names.add(identity.name)

    def release(self, identity: SessionIdentity) -> None:
        with self._lock:
            self._names.discard(identity.name)

    def __contains__(self, identity: object) -> bool:
        if not isinstance(identity, SessionIdentity):
            return False
        with self._lock:
            return identity.name in self._names
