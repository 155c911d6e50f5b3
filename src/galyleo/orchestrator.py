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
import secrets
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from .broker import BrokerToken, ReverseProxyBroker
from .config import GalyleoConfig
from .exceptions import BrokerError, LinkWarning
from .job_submitter import JobHandle, SlurmJobSubmitter
from .parameter_resolver import ParameterResolver, log_launch_parameters
from .script_generator import GeneratedScript, SlurmScriptGenerator
from .session import SessionIdentity

SERVER_TOKEN_ENV_VAR = "JUPYTER_TOKEN"


@dataclass(frozen=True)
class LaunchResult:
    """Outcome of a successful launch."""

    session: SessionIdentity
    token: BrokerToken
    job: JobHandle
    script: GeneratedScript
    url: str
    link_warning: Optional[LinkWarning] = None


class LaunchOrchestrator:
    """
    Runs a launch in a fixed order: resolve, acquire, generate, submit, link.

    Any failure after the token was acquired destroys it before the error is propagated. A failure to link the token to
    the job is only a warning because the job is already queued. The orchestrator does not wait for the job, the rest of
    the token lifecycle is handled by the batch script.
    """

    def __init__(
        self,
        config: GalyleoConfig,
        broker: Optional[ReverseProxyBroker] = None,
        generator: Optional[SlurmScriptGenerator] = None,
        submitter: Optional[SlurmJobSubmitter] = None,
        resolver: Optional[ParameterResolver] = None,
        identity_factory: Callable[[], SessionIdentity] = SessionIdentity.generate,
    ) -> None:
        self.config = config
        self.broker = broker or ReverseProxyBroker(config)
        self.generator = generator or SlurmScriptGenerator(config, self.broker)
        self.submitter = submitter or SlurmJobSubmitter()
        self.resolver = resolver or ParameterResolver(config)
        self.identity_factory = identity_factory

    def launch(self, options: Mapping[str, Any]) -> LaunchResult:
        logging.info("Preparing galyleo for launch into Jupyter orbit ...")
        request = self.resolver.resolve(options)
        log_launch_parameters(request)
        identity = self.identity_factory()

        logging.info("Requesting a connection token from the reverse proxy service ...")
        token = self.broker.acquire()
        server_token = secrets.token_hex(16)

        try:
            logging.info("Generating Jupyter launch script ...")
            script = self.generator.generate(request, identity, token)
            job = self.submitter.submit(script, extra_env={SERVER_TOKEN_ENV_VAR: server_token})
        except Exception:
            self._rollback(token)
            raise

        link_warning = None
        try:
            self.broker.link(token, job.job_id)
        except BrokerError as e:
            link_warning = LinkWarning(f"Failed to link token to job {job}: {e}")
            logging.warning(str(link_warning))

        url = self.broker.access_url(token, server_token)
        logging.info("Please copy and paste the HTTPS URL provided below into your web browser.")
        logging.info("Do not share this URL with others. It is the password to your Jupyter notebook session.")
        logging.info(
            "Your Jupyter notebook session will begin once compute resources are allocated to your Slurm job by the "
            "scheduler."
        )
        return LaunchResult(
            session=identity, token=token, job=job, script=script, url=url, link_warning=link_warning
        )

    def _rollback(self, token: BrokerToken) -> None:
        logging.info(f"Destroying connection token {token.value} ...")
        try:
            self.broker.destroy(token)
        except BrokerError as e:
            logging.error(
                f"Failed to destroy connection token {token.value}: {e}. "
                f"The proxy mapping may be orphaned, destroy it manually with "
                f"'{self.broker.destroy_command(token)}'."
            )
