"""Tests for the inline and Celery dispatch strategies."""

from unittest.mock import MagicMock

import pytest

from blueolive.core.dispatch import (
    CeleryDispatcher,
    DispatchError,
    InlineDispatcher,
    build_dispatcher,
)
from blueolive.models.enums import AnalysisStatus


@pytest.mark.asyncio
async def test_inline_dispatch_runs_worker_in_background(
    db_session, analysis_factory, session_factory, fake_analyzer
):
    analysis = await analysis_factory()
    dispatcher = InlineDispatcher(session_factory, fake_analyzer)

    ack = await dispatcher.dispatch(analysis.analysis_id)
    assert ack == f"inline-{analysis.analysis_id}"

    await dispatcher.drain()
    assert dispatcher.pending_count == 0

    await db_session.refresh(analysis)
    assert analysis.status == AnalysisStatus.COMPLETED.value
    fake_analyzer.analyze.assert_awaited_once()


@pytest.mark.asyncio
async def test_inline_worker_errors_do_not_reach_caller(fake_analyzer):
    failing_factory = MagicMock(side_effect=RuntimeError("database is down"))
    dispatcher = InlineDispatcher(failing_factory, fake_analyzer)

    await dispatcher.dispatch("ana_whatever")
    await dispatcher.drain()

    fake_analyzer.analyze.assert_not_awaited()


@pytest.mark.asyncio
async def test_celery_dispatch_sends_task():
    celery_app = MagicMock()
    celery_app.send_task.return_value = MagicMock(id="celery-task-123")

    ack = await CeleryDispatcher(celery_app).dispatch("ana_1")

    assert ack == "celery-task-123"
    celery_app.send_task.assert_called_once_with(
        "analysis_worker.process_analysis", kwargs={"analysis_id": "ana_1"}
    )


@pytest.mark.asyncio
async def test_celery_dispatch_failure_raises_dispatch_error():
    celery_app = MagicMock()
    celery_app.send_task.side_effect = ConnectionError("broker unreachable")

    with pytest.raises(DispatchError, match="broker unreachable"):
        await CeleryDispatcher(celery_app).dispatch("ana_1")


@pytest.mark.asyncio
async def test_build_dispatcher_selects_strategy(session_factory, fake_analyzer):
    inline = build_dispatcher(MagicMock(dispatch_mode="inline"), session_factory, fake_analyzer)
    queued = build_dispatcher(MagicMock(dispatch_mode="CELERY"), session_factory, fake_analyzer)

    assert isinstance(inline, InlineDispatcher)
    assert isinstance(queued, CeleryDispatcher)

    with pytest.raises(ValueError, match="Unknown dispatch mode"):
        build_dispatcher(MagicMock(dispatch_mode="cloud"), session_factory, fake_analyzer)
