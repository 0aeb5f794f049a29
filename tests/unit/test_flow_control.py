"""Tests for demand-driven pause/resume."""

from __future__ import annotations

import pytest

from peerstream.events import EngineEventType
from peerstream.session.flow_control import FlowController

pytestmark = pytest.mark.unit


@pytest.fixture
def controller(engine):
    controller = FlowController(engine)
    controller.attach()
    return controller


@pytest.mark.asyncio
async def test_uninterested_pauses(engine, controller):
    await engine.events.emit(EngineEventType.UNINTERESTED)

    assert engine.swarm.calls == ["pause"]
    assert controller.paused is True


@pytest.mark.asyncio
async def test_interested_while_running_is_ignored(engine, controller):
    await engine.events.emit(EngineEventType.INTERESTED)

    assert engine.swarm.calls == []
    assert controller.paused is False


@pytest.mark.asyncio
async def test_no_redundant_calls(engine, controller):
    sequence = [
        EngineEventType.UNINTERESTED,
        EngineEventType.UNINTERESTED,
        EngineEventType.INTERESTED,
        EngineEventType.INTERESTED,
        EngineEventType.UNINTERESTED,
        EngineEventType.INTERESTED,
    ]
    for event_type in sequence:
        await engine.events.emit(event_type)

    assert engine.swarm.calls == ["pause", "resume", "pause", "resume"]
    assert controller.stats == {"pauses": 2, "resumes": 2}


@pytest.mark.asyncio
async def test_detach_stops_reacting(engine, controller):
    controller.detach()

    await engine.events.emit(EngineEventType.UNINTERESTED)

    assert engine.swarm.calls == []


@pytest.mark.asyncio
async def test_attach_is_idempotent(engine, controller):
    controller.attach()

    await engine.events.emit(EngineEventType.UNINTERESTED)

    assert engine.swarm.calls == ["pause"]
