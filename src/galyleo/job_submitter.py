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
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import SubmissionError
from .script_generator import GeneratedScript
from .util import CommandShell


@dataclass(frozen=True)
class JobHandle:
    """Slurm job id of a submitted launch script."""

    job_id: int

    def __str__(self) -> str:
        return str(self.job_id)


class SlurmJobSubmitter:
    """
    Submits generated scripts with sbatch.

    Attributes
        cmd_shell (CommandShell): An instance of CommandShell for executing system commands.
    """

    def __init__(self, cmd_shell: Optional[CommandShell] = None) -> None:
        self.cmd_shell = cmd_shell or CommandShell()

    def get_job_id(self, stdout: str) -> Optional[int]:
        match = re.search(r"\d+", stdout)
        if match:
            return int(match.group(0))
        return None

    def submit(self, script: GeneratedScript, extra_env: Optional[Mapping[str, str]] = None) -> JobHandle:
        """
        Submit a batch script and return its job id.

        Raises:
            SubmissionError: If sbatch exits with a non-zero code or its output does not contain a job id.
        """
        command = f"sbatch {script.path}"
        logging.debug(f"Executing command for session {script.name}: {command}")
        process = self.cmd_shell.execute(command, extra_env=extra_env, cwd=script.path.parent)
        stdout, stderr = process.communicate()
        logging.debug(f"sbatch: {process.returncode=} {stdout=} {stderr=}")

        if process.returncode != 0:
            raise SubmissionError(
                command=command, stdout=stdout, stderr=stderr, message="Failed job submission to Slurm."
            )

        job_id = self.get_job_id(stdout)
        if job_id is None:
            raise SubmissionError(command=command, stdout=stdout, stderr=stderr, message="Failed to retrieve job ID.")

        logging.info(f"Submitted Jupyter launch script to Slurm. Your SLURM_JOB_ID is {job_id}.")
        return JobHandle(job_id)
