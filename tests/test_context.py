from __future__ import annotations

import asyncio

import pytest
from conftest import LISTING_URL, html_transport

from collectors.http_client import HttpClient
from core.context import InvalidTransition, RunContext, RunStatus


def test_run_walks_the_happy_path() -> None:
    ctx = RunContext()
    assert ctx.status == RunStatus.IDLE

    for status in (RunStatus.COLLECTING, RunStatus.RECONCILING, RunStatus.DONE):
        ctx.transition(status)

    assert ctx.finished
    assert ctx.completed_at is not None


@pytest.mark.parametrize("start", [RunStatus.IDLE, RunStatus.COLLECTING, RunStatus.RECONCILING])
def test_any_live_state_can_fail(start) -> None:
    ctx = RunContext(status=start)
    ctx.transition(RunStatus.FAILED)
    assert ctx.status == RunStatus.FAILED


def test_illegal_transitions_are_rejected() -> None:
    ctx = RunContext()
    with pytest.raises(InvalidTransition):
        ctx.transition(RunStatus.DONE)

    ctx = RunContext(status=RunStatus.DONE)
    with pytest.raises(InvalidTransition):
        ctx.transition(RunStatus.COLLECTING)


def test_stage_records_and_summary() -> None:
    ctx = RunContext()
    stage = ctx.start_stage("collect", items_in=3)
    assert stage.duration_seconds is None

    stage.finish(items_out=7, errors=["beta: boom"])

    summary = ctx.summary()
    assert summary["status"] == "idle"
    assert summary["stages"][0]["items_out"] == 7
    assert summary["stages"][0]["errors"] == 1
    assert summary["stages"][0]["duration"] >= 0


def test_http_client_reports_error_status() -> None:
    async def go():
        async with HttpClient(transport=html_transport({LISTING_URL: 404})) as client:
            return await client.fetch(LISTING_URL)

    result = asyncio.run(go())
    assert not result.success
    assert result.status_code == 404
    assert result.error == "HTTP 404"


def test_http_client_requires_context_manager() -> None:
    client = HttpClient()
    with pytest.raises(RuntimeError):
        asyncio.run(client.fetch(LISTING_URL))
