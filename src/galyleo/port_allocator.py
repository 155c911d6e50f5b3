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
import random
from typing import Callable, Iterable, Optional

from .exceptions import PortAllocationError
from .util import CommandShell

LOWEST_EPHEMERAL_PORT = 49152
HIGHEST_PORT = 65535
LISTENING_SOCKETS_CMD = "ss -Htuln"


def parse_listening_ports(ss_output: str) -> set[int]:
    """
    Extract local ports from `ss -Htuln` output.

    The local address is the fifth column, e.g. `0.0.0.0:22`, `[::]:8888` or `*:631`.
    """
    ports: set[int] = set()
    for line in ss_output.splitlines():
        columns = line.split()
        if len(columns) < 5:
            continue
        _, _, port = columns[4].rpartition(":")
        if port.isdigit():
            ports.add(int(port))
    return ports


def node_listening_ports(cmd_shell: Optional[CommandShell] = None) -> set[int]:
    cmd_shell = cmd_shell or CommandShell()
    stdout, stderr, _ = cmd_shell.output(LISTENING_SOCKETS_CMD)
    if stderr:
        logging.debug(f"{LISTENING_SOCKETS_CMD}: {stderr.strip()}")
    return parse_listening_ports(stdout)


class PortAllocator:
    """
    Picks an unused port from the ephemeral range by sampling until a free one is found.

    This is a check, not a reservation: another process may bind the same port between the check and the server's bind
    call, so the server start has to fail loudly in that case. There is no limit on the number of attempts unless
    `max_attempts` is given, which is a liveness risk on nodes where most of the range is in use.

    Attributes
        lower (int): Lowest port that can be returned.
        upper (int): Highest port that can be returned.
        max_attempts (int, optional): Number of samples after which PortAllocationError is raised.
    """

    def __init__(
        self,
        lower: int = LOWEST_EPHEMERAL_PORT,
        upper: int = HIGHEST_PORT,
        listening_ports: Optional[Callable[[], Iterable[int]]] = None,
        rng: Optional[random.Random] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        if not 1 <= lower <= upper <= HIGHEST_PORT:
            raise ValueError(f"Invalid port range: {lower}-{upper}")
        self.lower = lower
        self.upper = upper
        self.listening_ports = listening_ports or node_listening_ports
        self.rng = rng or random.Random()
        self.max_attempts = max_attempts

    def allocate(self) -> int:
        attempt = 0
        while self.max_attempts is None or attempt < self.max_attempts:
            attempt += 1
            candidate = self.rng.randint(self.lower, self.upper)
            if candidate not in set(self.listening_ports()):
                logging.debug(f"Selected port {candidate} after {attempt} attempt(s)")
                return candidate

        raise PortAllocationError(
            f"No free port found in {self.lower}-{self.upper} after {self.max_attempts} attempts."
        )

    def render(self, port_variable: str = "JUPYTER_PORT") -> list[str]:
        """Return the bash loop doing the same selection inside the batch job."""
        return [
            f'while (( "${{{port_variable}}}" < 0 )); do',
            f'  candidate_port="$(shuf -i {self.lower}-{self.upper} -n 1)"',
            f"  if ! {LISTENING_SOCKETS_CMD} | awk '{{print $5}}' | grep -q \":${{candidate_port}}$\"; then",
            f'    {port_variable}="${{candidate_port}}"',
            "  fi",
            "done",
        ]
