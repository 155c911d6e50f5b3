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
import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from urllib.parse import urlencode

import requests

from .config import GalyleoConfig
from .exceptions import BrokerRejected, BrokerUnreachable

GETLINK_ENDPOINT = "getlink.cgi"
LINKTOKEN_ENDPOINT = "linktoken.cgi"
REDEEMTOKEN_ENDPOINT = "redeemtoken.cgi"
DESTROYTOKEN_ENDPOINT = "destroytoken.cgi"


class TokenState(Enum):
    """
    Lifecycle of a reverse proxy token.

    - REQUESTED: Not issued yet.
    - ACQUIRED: Issued by the broker, not tied to a job.
    - LINKED: Associated with a Slurm job id.
    - REDEEMED: The job announced the Jupyter port (happens on the compute node).
    - DESTROYED: Revoked, terminal.
    """

    REQUESTED = "requested"
    ACQUIRED = "acquired"
    LINKED = "linked"
    REDEEMED = "redeemed"
    DESTROYED = "destroyed"


_ALLOWED_TRANSITIONS = {
    TokenState.REQUESTED: {TokenState.ACQUIRED},
    TokenState.ACQUIRED: {TokenState.LINKED, TokenState.DESTROYED},
    TokenState.LINKED: {TokenState.REDEEMED, TokenState.DESTROYED},
    TokenState.REDEEMED: {TokenState.DESTROYED},
    TokenState.DESTROYED: set(),
}


@dataclass
class BrokerToken:
    """Opaque token issued by the reverse proxy broker together with its locally observed state."""

    value: str
    state: TokenState = TokenState.REQUESTED
    job_id: Optional[int] = field(default=None, repr=False)

    def transition(self, new_state: TokenState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise ValueError(f"Illegal token transition {self.state.name} -> {new_state.name}")
        self.state = new_state

    def __str__(self) -> str:
        return self.value


def parse_getlink_response(raw: str) -> tuple[str, int]:
    """
    Parse a getlink response in the form produced by `curl -w %{http_code}`.

    The final whitespace-delimited field is the HTTP status code, the second-to-last field is the token.

    Returns:
        tuple[str, int]: The token and the status code.

    Raises:
        BrokerRejected: If the status is not 200 or the response cannot be parsed.
    """
    fields = raw.split()
    if not fields or not fields[-1].isdigit():
        raise BrokerRejected(-1, GETLINK_ENDPOINT, "Malformed response from reverse proxy service")

    status = int(fields[-1])
    if status != 200:
        raise BrokerRejected(status, GETLINK_ENDPOINT)
    if len(fields) < 2:
        raise BrokerRejected(status, GETLINK_ENDPOINT, "Reverse proxy service response does not contain a token")

    return fields[-2], status


class ReverseProxyBroker:
    """
    Client for the reverse proxy (Satellite) management endpoints.

    Only acquire, link and destroy are called from the login node. Redeem and the final destroy happen inside the batch
    job, so for those the client renders shell commands instead of calling the service.
    """

    def __init__(self, config: GalyleoConfig, session: Optional[requests.Session] = None) -> None:
        self.base_url = config.management_url
        self.fqdn = config.reverse_proxy_fqdn
        self.timeout = config.broker_timeout
        self.session = session or requests.Session()

    def endpoint_url(self, endpoint: str, **params: object) -> str:
        url = f"{self.base_url}/{endpoint}"
        if params:
            url = f"{url}?{urlencode(params)}"
        return url

    def _get(self, endpoint: str, **params: object) -> requests.Response:
        url = self.endpoint_url(endpoint, **params)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as err:
            logging.debug(f"Request to {url} failed", exc_info=True)
            message = f"Unable to connect to the reverse proxy service at {self.base_url}: {err}"
            raise BrokerUnreachable(message) from err

        logging.info(f"Reverse proxy service ({endpoint}): {response.text.strip()} {response.status_code}")
        return response

    def acquire(self) -> BrokerToken:
        response = self._get(GETLINK_ENDPOINT)
        value, _ = parse_getlink_response(f"{response.text}\n{response.status_code}")
        token = BrokerToken(value)
        token.transition(TokenState.ACQUIRED)
        return token

    def link(self, token: BrokerToken, job_id: int) -> None:
        response = self._get(LINKTOKEN_ENDPOINT, token=token.value, jobid=job_id)
        if response.status_code != 200:
            raise BrokerRejected(response.status_code, LINKTOKEN_ENDPOINT)
        token.transition(TokenState.LINKED)
        token.job_id = job_id

    def destroy(self, token: BrokerToken) -> None:
        if token.state is TokenState.DESTROYED:
            logging.debug(f"Token {token.value} is already destroyed.")
            return

        response = self._get(DESTROYTOKEN_ENDPOINT, token=token.value)
        if response.status_code != 200:
            raise BrokerRejected(response.status_code, DESTROYTOKEN_ENDPOINT)
        token.transition(TokenState.DESTROYED)

    def redeem_command(self, token: BrokerToken, port_variable: str = "JUPYTER_PORT") -> str:
        url = shlex.quote(self.endpoint_url(REDEEMTOKEN_ENDPOINT, token=token.value))
        return f'curl -s {url}"&port=${{{port_variable}}}"'

    def destroy_command(self, token: BrokerToken) -> str:
        return f"curl -s {shlex.quote(self.endpoint_url(DESTROYTOKEN_ENDPOINT, token=token.value))}"

    def access_url(self, token: BrokerToken, server_token: str) -> str:
        return f"https://{token.value}.{self.fqdn}?token={server_token}"
