"""Tests for AnalysisService orchestration."""

import asyncio
from datetime import timedelta

import pytest

from src.core.exceptions import (
    ConfigurationError,
    NoProviderConfiguredError,
    SessionAlreadyRunningError,
    SessionNotFoundError,
)
from src.domain.models.session import SessionStatus
from src.services.analysis_service import CANCELLED_MESSAGE, AnalysisService
from src.services.progress_simulator import ProgressSimulator
from tests.helpers import FakeAnalyzer, make_settings

ALL_FLAGS = ["GROQ_API_KEY", "PERPLEXITY_API_KEY", "OPENAI_API_KEY", "TIGER_DATABASE_URL"]


# ============ SESSION FACTORY ============


class TestSessionFactory:
    def test_create_and_get(self, make_service):
        service = make_service()

        session = service.create_session()

        assert service.get_session(session.session_id) is session
        assert session.status == SessionStatus.PENDING

    def test_get_unknown(self, make_service):
        assert make_service().get_session("nope") is None


# ============ NO PROVIDER ============


class TestNoProvider:
    """Scenario A and the missing-code variant."""

    @pytest.mark.asyncio
    async def test_no_flags_fails_and_names_every_flag(self, make_service, simulator):
        analyzer = FakeAnalyzer()
        service = make_service(analyzer=analyzer, settings=make_settings())
        session = service.create_session()

        with pytest.raises(NoProviderConfiguredError) as exc_info:
            await service.run_analysis(session.session_id, "x=1")

        message = str(exc_info.value)
        for flag in ALL_FLAGS:
            assert flag in message
        assert exc_info.value.missing == ALL_FLAGS
        assert exc_info.value.providers == {flag: False for flag in ALL_FLAGS}

        assert session.status == SessionStatus.ERROR
        assert session.results is None
        assert session.error_message == message
        assert session.finished_at is not None
        assert analyzer.calls == []
        assert not simulator.is_active(session.session_id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", [None, ""])
    async def test_missing_code_fails(self, make_service, simulator, code):
        analyzer = FakeAnalyzer()
        service = make_service(analyzer=analyzer)
        session = service.create_session()

        with pytest.raises(NoProviderConfiguredError) as exc_info:
            await service.run_analysis(session.session_id, code)

        assert exc_info.value.code_supplied is False
        assert "No code supplied" in str(exc_info.value)
        assert session.status == SessionStatus.ERROR
        assert analyzer.calls == []
        assert simulator.active_count == 0


# ============ SUCCESS ============


class TestSuccess:
    """Scenario B."""

    @pytest.mark.asyncio
    async def test_completes_with_collaborator_results(
        self, make_service, simulator, sample_results
    ):
        analyzer = FakeAnalyzer(results=sample_results)
        service = make_service(analyzer=analyzer)
        session = service.create_session()

        await service.run_analysis(session.session_id, "print('hi')")

        assert session.status == SessionStatus.COMPLETED
        assert session.progress == 100
        assert session.results == sample_results
        assert session.completed_at >= session.started_at
        assert session.finished_at == session.completed_at
        assert session.error_message is None
        assert analyzer.calls == ["print('hi')"]
        assert not simulator.is_active(session.session_id)

    @pytest.mark.asyncio
    async def test_tiger_flag_alone_is_enough(self, make_service, sample_results):
        service = make_service(
            analyzer=FakeAnalyzer(results=sample_results),
            settings=make_settings(tiger_database_url="postgres://tiger"),
        )
        session = service.create_session()

        await service.run_analysis(session.session_id, "x=1")

        assert session.status == SessionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_real_stages_update_session(self, store, sample_results):
        release = asyncio.Event()
        analyzer = FakeAnalyzer(results=sample_results, stages=(1, 2, 3), release=release)
        service = AnalysisService(
            store=store,
            simulator=ProgressSimulator(store, interval_seconds=10),
            analyzer=analyzer,
            settings=make_settings(groq_api_key="k"),
        )
        session = service.create_session()

        task = asyncio.create_task(service.run_analysis(session.session_id, "x=1"))
        await asyncio.sleep(0)

        assert session.status == SessionStatus.RUNNING
        assert session.current_stage == 3
        assert session.stage_message == "stage 3"

        release.set()
        await task
        assert session.status == SessionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_stage_callback_clamped(self, store, sample_results):
        simulator = ProgressSimulator(store, interval_seconds=10)
        service = AnalysisService(
            store=store,
            simulator=simulator,
            analyzer=FakeAnalyzer(results=sample_results, stages=(9,)),
            settings=make_settings(openai_api_key="k"),
        )
        session = service.create_session()

        await service.run_analysis(session.session_id, "x=1")

        assert session.current_stage == 4

    @pytest.mark.asyncio
    async def test_analyzer_built_lazily_from_factory(self, store, simulator, sample_results):
        built = []

        def factory(settings):
            built.append(settings)
            return FakeAnalyzer(results=sample_results)

        settings = make_settings(groq_api_key="k")
        service = AnalysisService(
            store=store, simulator=simulator, analyzer_factory=factory, settings=settings
        )
        assert built == []

        session = service.create_session()
        await service.run_analysis(session.session_id, "x=1")

        assert built == [settings]
        assert session.status == SessionStatus.COMPLETED


# ============ FAILURE ============


class TestFailure:
    """Scenario C."""

    @pytest.mark.asyncio
    async def test_collaborator_error_propagates(self, make_service, simulator):
        service = make_service(analyzer=FakeAnalyzer(error=RuntimeError("boom")))
        session = service.create_session()

        with pytest.raises(RuntimeError, match="^boom$"):
            await service.run_analysis(session.session_id, "x=1")

        assert session.status == SessionStatus.ERROR
        assert session.results is None
        assert session.completed_at is None
        assert session.finished_at is not None
        assert session.error_message == "boom"
        assert not simulator.is_active(session.session_id)

    @pytest.mark.asyncio
    async def test_analyzer_construction_failure_marks_error(self, store, simulator):
        def factory(settings):
            raise ConfigurationError("No LLM API key configured")

        service = AnalysisService(
            store=store,
            simulator=simulator,
            analyzer_factory=factory,
            settings=make_settings(tiger_database_url="postgres://tiger"),
        )
        session = service.create_session()

        with pytest.raises(ConfigurationError):
            await service.run_analysis(session.session_id, "x=1")

        assert session.status == SessionStatus.ERROR
        assert simulator.active_count == 0

    @pytest.mark.asyncio
    async def test_failed_session_cannot_be_rerun(self, make_service):
        service = make_service(analyzer=FakeAnalyzer(error=RuntimeError("boom")))
        session = service.create_session()
        with pytest.raises(RuntimeError):
            await service.run_analysis(session.session_id, "x=1")

        with pytest.raises(SessionAlreadyRunningError):
            await service.run_analysis(session.session_id, "x=1")

        assert session.status == SessionStatus.ERROR


# ============ PRECONDITIONS ============


class TestPreconditions:
    """Scenario D and the already-running guard."""

    @pytest.mark.asyncio
    async def test_unknown_session(self, make_service, store):
        service = make_service(analyzer=FakeAnalyzer())
        store.create()
        before = store.list_ids()

        with pytest.raises(SessionNotFoundError):
            await service.run_analysis("never-created", "x=1")

        assert store.list_ids() == before

    @pytest.mark.asyncio
    async def test_second_run_on_running_session_rejected(
        self, make_service, sample_results
    ):
        release = asyncio.Event()
        analyzer = FakeAnalyzer(results=sample_results, release=release)
        service = make_service(analyzer=analyzer)
        session = service.create_session()

        first = asyncio.create_task(service.run_analysis(session.session_id, "x=1"))
        await asyncio.sleep(0)

        with pytest.raises(SessionAlreadyRunningError):
            await service.run_analysis(session.session_id, "y=2")

        assert session.status == SessionStatus.RUNNING
        release.set()
        await first

        assert analyzer.calls == ["x=1"]
        assert session.status == SessionStatus.COMPLETED


# ============ SIMULATION INTERPLAY ============


class TestSimulationInterplay:
    """Scenario E."""

    @pytest.mark.asyncio
    async def test_progress_saturates_before_completion(self, store, sample_results):
        simulator = ProgressSimulator(store, interval_seconds=0.001, increment=30)
        release = asyncio.Event()
        service = AnalysisService(
            store=store,
            simulator=simulator,
            analyzer=FakeAnalyzer(results=sample_results, release=release),
            settings=make_settings(perplexity_api_key="k"),
        )
        session = service.create_session()

        task = asyncio.create_task(service.run_analysis(session.session_id, "x=1"))

        async def _saturated():
            while session.progress < 100:
                await asyncio.sleep(0.001)

        await asyncio.wait_for(_saturated(), 2.0)
        await asyncio.sleep(0.01)

        assert session.current_stage == 4
        assert session.status == SessionStatus.RUNNING
        assert not simulator.is_active(session.session_id)

        release.set()
        await task

        assert session.status == SessionStatus.COMPLETED
        assert session.current_stage == 4
        assert session.progress == 100


# ============ CANCELLATION ============


class TestCancellation:
    """A cancelled run must not leave its progress task or a live session behind."""

    @pytest.mark.asyncio
    async def test_cancel_stops_simulation_and_ends_session(
        self, make_service, simulator, sample_results
    ):
        release = asyncio.Event()
        service = make_service(analyzer=FakeAnalyzer(results=sample_results, release=release))
        session = service.create_session()

        task = asyncio.create_task(service.run_analysis(session.session_id, "x=1"))
        await asyncio.sleep(0.01)
        assert simulator.is_active(session.session_id)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        progress_at_cancel = session.progress
        await asyncio.sleep(0.01)

        assert not simulator.is_active(session.session_id)
        assert simulator.active_count == 0
        assert session.status == SessionStatus.ERROR
        assert session.error_message == CANCELLED_MESSAGE
        assert session.results is None
        assert session.finished_at is not None
        assert session.progress == progress_at_cancel

    @pytest.mark.asyncio
    async def test_cancelled_session_is_evictable(self, make_service, store, sample_results):
        release = asyncio.Event()
        service = make_service(analyzer=FakeAnalyzer(results=sample_results, release=release))
        session = service.create_session()

        task = asyncio.create_task(service.run_analysis(session.session_id, "x=1"))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        later = session.finished_at + timedelta(seconds=120)
        assert store.evict_expired(max_age_seconds=60, now=later) == [session.session_id]

    @pytest.mark.asyncio
    async def test_wait_for_timeout_cleans_up(self, make_service, simulator, sample_results):
        service = make_service(
            analyzer=FakeAnalyzer(results=sample_results, release=asyncio.Event())
        )
        session = service.create_session()

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(service.run_analysis(session.session_id, "x=1"), 0.01)

        assert session.status == SessionStatus.ERROR
        assert not simulator.is_active(session.session_id)


# ============ BACKGROUND WRAPPER ============


@pytest.mark.asyncio
async def test_background_run_does_not_raise(make_service):
    service = make_service(analyzer=FakeAnalyzer(error=RuntimeError("boom")))
    session = service.create_session()

    await service.run_analysis_in_background(session.session_id, "x=1")

    assert session.status == SessionStatus.ERROR
