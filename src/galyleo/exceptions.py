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

from pathlib import Path
from typing import Optional, Union


class GalyleoError(Exception):
    """Base class for all errors that abort a galyleo command."""

    pass


class InvalidParameter(GalyleoError):
    """
    Exception raised for a bad or missing launch option.

    Attributes
        option (str): The name of the offending option.
        message (str): A custom message describing the error.
    """

    def __init__(self, option: str, message: str):
        super().__init__(message)
        self.option = option
        self.message = message

    def __str__(self):
        return f"Invalid value for '{self.option}': {self.message}"


class UnsupportedOption(InvalidParameter):
    """Exception raised when an option is not recognized."""

    def __init__(self, option: str):
        super().__init__(option, "Command-line option not recognized or not supported.")

    def __str__(self):
        return f"Command-line option {self.option} not recognized or not supported."


class DirectoryError(GalyleoError):
    """
    Exception raised when a required directory is missing or inaccessible.

    Attributes
        path (Path): The directory that could not be used.
        message (str): A custom message describing the error.
    """

    def __init__(self, path: Union[str, Path], message: str):
        super().__init__(message)
        self.path = Path(path)
        self.message = message

    def __str__(self):
        return f"{self.message}: {self.path}"


class ConfigError(GalyleoError):
    """Exception raised when the site configuration cannot be loaded or written."""

    pass


class BrokerError(GalyleoError):
    """Base class for failures talking to the reverse proxy broker."""

    pass


class BrokerUnreachable(BrokerError):
    """Exception raised on a transport-level failure (DNS, connection, timeout)."""

    pass


class BrokerRejected(BrokerError):
    """
    Exception raised when the broker answers with a non-200 status or an unparsable body.

    Attributes
        status (int): HTTP status code returned by the broker.
        endpoint (str): The management endpoint that was called.
    """

    def __init__(self, status: int, endpoint: str = "", message: str = ""):
        self.status = status
        self.endpoint = endpoint
        self.message = message or f"Reverse proxy service returned HTTP status {status}"
        super().__init__(self.message)

    def __str__(self):
        where = f" ({self.endpoint})" if self.endpoint else ""
        return f"{self.message}{where}"


class DuplicateSession(GalyleoError):
    """Exception raised when a launch script for the same session name already exists."""

    def __init__(self, name: str, path: Optional[Path] = None):
        super().__init__(name)
        self.name = name
        self.path = path

    def __str__(self):
        return f"Jupyter launch script already exists for session '{self.name}'. Cannot overwrite."


class SubmissionError(GalyleoError):
    """
    Exception raised for errors that occur during job submission.

    Attributes
        command (str): The command that was executed to submit the job.
        stdout (str): The standard output from the command execution.
        stderr (str): The standard error from the command execution.
        message (str): A custom message describing the error.
    """

    def __init__(self, command: str, stdout: str, stderr: str, message: str):
        super().__init__(message)
        self.command = command
        self.stdout = stdout.strip()
        self.stderr = stderr.strip()
        self.message = message

    def __str__(self):
        details = self.stderr or self.stdout
        suffix = f" stderr: '{details}'" if details else ""
        return f"{self.message} Command: '{self.command}'.{suffix}"


class PortAllocationError(GalyleoError):
    """Exception raised when no free port was found within the configured number of attempts."""

    pass


class LinkWarning(UserWarning):
    """Non-fatal: the job is running but the broker could not associate it with the token."""

    pass
