from __future__ import annotations

from dataclasses import replace

from connect_worker.actuator import LifxActuator
from tests.conftest import FakeResponse, FakeSession


def test_disabled_without_token(config):
    session = FakeSession()
    act = LifxActuator(config, session=session)
    assert not act.enabled
    assert act.actuate("blue") is False
    assert session.calls == []


def test_placeholder_token_counts_as_unconfigured(config):
    act = LifxActuator(replace(config, lifx_access_token="{LIFX_ACCESS_TOKEN}"), session=FakeSession())
    assert not act.enabled


def test_sets_color_on_selector(config):
    session = FakeSession()
    session.queue("put", FakeResponse(207, json_body={"results": []}))
    act = LifxActuator(replace(config, lifx_access_token="lifx-tok", lifx_selector="group:Office"), session=session)

    assert act.actuate("green") is True

    call = session.calls[0]
    assert call["url"] == "https://api.lifx.com/v1/lights/group:Office/state"
    assert call["headers"]["Authorization"] == "Bearer lifx-tok"
    assert call["data"] == {"power": "on", "color": "green", "duration": 0.0}


def test_http_error_is_swallowed(config):
    session = FakeSession()
    session.queue("put", FakeResponse(500))
    act = LifxActuator(replace(config, lifx_access_token="lifx-tok"), session=session)
    assert act.actuate("red") is False


def test_transport_exception_is_swallowed(config):
    session = FakeSession()
    session.queue("put", TimeoutError("lifx timed out"))
    act = LifxActuator(replace(config, lifx_access_token="lifx-tok"), session=session)
    assert act.actuate("red") is False


def test_empty_color_skipped(config):
    session = FakeSession()
    act = LifxActuator(replace(config, lifx_access_token="lifx-tok"), session=session)
    assert act.actuate("") is False
    assert session.calls == []
