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

import pytest
import requests

from galyleo import BrokerRejected, BrokerToken, BrokerUnreachable, GalyleoConfig, ReverseProxyBroker, TokenState
from galyleo.broker import parse_getlink_response

from tests.conftest import DummyResponse, FakeSession


class TestParseGetlinkResponse:
    def test_token_and_status(self):
        assert parse_getlink_response("abc123token\n200") == ("abc123token", 200)

    def test_token_is_second_to_last_field(self):
        assert parse_getlink_response("https://manage.example.org abc123token 200") == ("abc123token", 200)

    @pytest.mark.parametrize("raw,status", [("token 503", 503), ("Forbidden\n403", 403), ("404", 404)])
    def test_rejected_status(self, raw: str, status: int):
        with pytest.raises(BrokerRejected) as exc_info:
            parse_getlink_response(raw)
        assert exc_info.value.status == status

    @pytest.mark.parametrize("raw", ["", "token", "token 2OO"])
    def test_malformed(self, raw: str):
        with pytest.raises(BrokerRejected) as exc_info:
            parse_getlink_response(raw)
        assert exc_info.value.status == -1

    def test_no_token(self):
        with pytest.raises(BrokerRejected) as exc_info:
            parse_getlink_response("200")
        assert "does not contain a token" in str(exc_info.value)


class TestBrokerToken:
    def test_lifecycle(self):
        token = BrokerToken("t")
        for state in (TokenState.ACQUIRED, TokenState.LINKED, TokenState.REDEEMED, TokenState.DESTROYED):
            token.transition(state)
        assert token.state is TokenState.DESTROYED

    def test_destroy_without_link(self):
        token = BrokerToken("t", TokenState.ACQUIRED)
        token.transition(TokenState.DESTROYED)

    @pytest.mark.parametrize(
        "start,target",
        [
            (TokenState.REQUESTED, TokenState.LINKED),
            (TokenState.ACQUIRED, TokenState.REDEEMED),
            (TokenState.DESTROYED, TokenState.ACQUIRED),
            (TokenState.DESTROYED, TokenState.DESTROYED),
        ],
    )
    def test_illegal_transition(self, start: TokenState, target: TokenState):
        with pytest.raises(ValueError):
            BrokerToken("t", start).transition(target)


def test_endpoint_url(broker: ReverseProxyBroker):
    assert broker.endpoint_url("getlink.cgi") == "https://manage.proxy.example.org/getlink.cgi"
    assert (
        broker.endpoint_url("linktoken.cgi", token="abc", jobid=7)
        == "https://manage.proxy.example.org/linktoken.cgi?token=abc&jobid=7"
    )


def test_acquire(broker: ReverseProxyBroker, fake_session: FakeSession):
    fake_session.responses.append(DummyResponse("abc123token\n", 200))

    token = broker.acquire()

    assert token.value == "abc123token"
    assert token.state is TokenState.ACQUIRED
    assert fake_session.urls == ["https://manage.proxy.example.org/getlink.cgi"]


def test_acquire_rejected(broker: ReverseProxyBroker, fake_session: FakeSession):
    fake_session.responses.append(DummyResponse("Service Unavailable", 503))
    with pytest.raises(BrokerRejected) as exc_info:
        broker.acquire()
    assert exc_info.value.status == 503
    assert "503" in str(exc_info.value)


def test_acquire_unreachable(broker: ReverseProxyBroker, fake_session: FakeSession):
    fake_session.responses.append(requests.exceptions.ConnectionError("Name or service not known"))
    with pytest.raises(BrokerUnreachable) as exc_info:
        broker.acquire()
    assert "manage.proxy.example.org" in str(exc_info.value)


def test_timeout_from_config(galyleo_config: GalyleoConfig):
    assert ReverseProxyBroker(galyleo_config).timeout == galyleo_config.broker_timeout


def test_link(broker: ReverseProxyBroker, fake_session: FakeSession):
    token = BrokerToken("abc", TokenState.ACQUIRED)

    broker.link(token, 456)

    assert token.state is TokenState.LINKED
    assert token.job_id == 456
    assert fake_session.urls == ["https://manage.proxy.example.org/linktoken.cgi?token=abc&jobid=456"]


def test_link_rejected(broker: ReverseProxyBroker, fake_session: FakeSession):
    fake_session.responses.append(DummyResponse("", 500))
    token = BrokerToken("abc", TokenState.ACQUIRED)
    with pytest.raises(BrokerRejected):
        broker.link(token, 456)
    assert token.state is TokenState.ACQUIRED


def test_destroy(broker: ReverseProxyBroker, fake_session: FakeSession):
    token = BrokerToken("abc", TokenState.ACQUIRED)

    broker.destroy(token)
    broker.destroy(token)

    assert token.state is TokenState.DESTROYED
    assert fake_session.called("destroytoken.cgi") == 1


def test_destroy_rejected(broker: ReverseProxyBroker, fake_session: FakeSession):
    fake_session.responses.append(DummyResponse("", 404))
    token = BrokerToken("abc", TokenState.LINKED)
    with pytest.raises(BrokerRejected) as exc_info:
        broker.destroy(token)
    assert exc_info.value.endpoint == "destroytoken.cgi"
    assert token.state is TokenState.LINKED


def test_redeem_command(broker: ReverseProxyBroker):
    token = BrokerToken("abc", TokenState.LINKED)
    assert (
        broker.redeem_command(token)
        == "curl -s 'https://manage.proxy.example.org/redeemtoken.cgi?token=abc'\"&port=${JUPYTER_PORT}\""
    )


def test_commands_quote_token(broker: ReverseProxyBroker):
    token = BrokerToken("a$(id)`b`", TokenState.LINKED)
    for command in (broker.redeem_command(token), broker.destroy_command(token)):
        assert "$(id)" not in command
        assert "`" not in command
        assert command.startswith("curl -s 'https://manage.proxy.example.org/")


def test_destroy_command(broker: ReverseProxyBroker):
    token = BrokerToken("abc", TokenState.LINKED)
    assert broker.destroy_command(token) == "curl -s 'https://manage.proxy.example.org/destroytoken.cgi?token=abc'"


def test_access_url(broker: ReverseProxyBroker):
    token = BrokerToken("abc", TokenState.LINKED)
    assert broker.access_url(token, "f00d") == "https://abc.proxy.example.org?token=f00d"
