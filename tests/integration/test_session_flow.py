"""
Integration Tests: Session Flow

Tests collaboration between:
- CommandGenerator → LearningStore → ExecutionEngine → QualityScorer → Reporter
driven by the SessionOrchestrator against the recording transport.
"""
import asyncio
import json
import os
import random

import pytest

from autotester.config import SessionConfig
from autotester.domain import IterationFailureContext
from autotester.errors import SessionAlreadyRunningError, SessionFatalError
from autotester.interfaces import IWebsiteGenerator
from autotester.mocks import MockAutomationTransport, MockWebsiteGenerator
from autotester.orchestrator import SessionOrchestrator
from autotester.scoring import FlatHeuristic, QualityScorer


def make_orchestrator(paths, no_sleep, transport=None, **kwargs):
    return SessionOrchestrator(
        transport or MockAutomationTransport(),
        paths,
        rng=random.Random(5),
        sleep=no_sleep,
        **kwargs,
    )


class StoppingGenerator(IWebsiteGenerator):
    """Requests a stop while the first website is being prepared."""

    def __init__(self):
        self.orchestrator = None
        self.calls = 0

    async def prepare(self, industry, template, profile):
        self.calls += 1
        self.orchestrator.stop()
        return "http://builder.test"


class BlockingGenerator(IWebsiteGenerator):
    def __init__(self):
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def prepare(self, industry, template, profile):
        self.entered.set()
        await self.release.wait()
        return None


class SlowTransport(MockAutomationTransport):
    async def dispatch(self, intent):
        if intent.operation == "navigate":
            await asyncio.sleep(10)
        return await super().dispatch(intent)


@pytest.mark.asyncio
async def test_full_success_session(paths, no_sleep):
    transport = MockAutomationTransport()
    website_generator = MockWebsiteGenerator("http://builder.test")
    orchestrator = make_orchestrator(paths, no_sleep, transport, website_generator=website_generator,
                                     scorer=QualityScorer(FlatHeuristic()))

    report = await orchestrator.run_session(SessionConfig(website_count=2))

    assert orchestrator.session.status == "completed"
    assert orchestrator.session.website_count == 2
    assert report.total_websites == 2
    assert report.successful_websites == 2
    assert report.failed_websites == 0
    assert report.average_score == pytest.approx(9.0)
    assert report.command_success_rate == 1.0
    assert report.total_commands == 162
    assert all(s.meets_threshold for s in orchestrator.session.quality_scores)
    assert orchestrator.is_running is False

    assert transport.started is True
    assert transport.operations().count("close") == 2
    navigate = next(i for i in transport.intents if i.operation == "navigate")
    assert navigate.parameters["url"] == "http://builder.test/merlin8"
    assert len(website_generator.requests) == 2


@pytest.mark.asyncio
async def test_session_summary_kept_after_session(paths, no_sleep):
    transport = MockAutomationTransport(fail_operations={"hover"})
    orchestrator = make_orchestrator(paths, no_sleep, transport, scorer=QualityScorer(FlatHeuristic()))

    report = await orchestrator.run_session(SessionConfig(website_count=2))
    summary = orchestrator.last_summary

    assert summary.session_id == report.session_id
    assert summary.total_websites == 2
    assert summary.successful_websites == report.successful_websites
    assert sum(summary.score_distribution.values()) == 2
    assert summary.learnings_generated == len(orchestrator.session.learnings)
    assert summary.improvement_from_previous == report.improvement_from_previous


@pytest.mark.asyncio
async def test_session_persists_state(paths, no_sleep):
    orchestrator = make_orchestrator(paths, no_sleep, scorer=QualityScorer(FlatHeuristic()))

    report = await orchestrator.run_session(SessionConfig(website_count=1))

    assert os.path.exists(os.path.join(paths.report_dir, f"report_{report.session_id}.md"))
    assert os.path.exists(os.path.join(paths.report_dir, f"report_{report.session_id}.json"))
    assert os.path.exists(os.path.join(paths.log_dir, f"session_{report.session_id}.jsonl"))

    knowledge = os.path.join(paths.knowledge_dir, f"knowledge_{report.session_id}.json")
    with open(knowledge, encoding="utf-8") as f:
        entities = json.load(f)["entities"]
    assert any(e["entityType"] == "success_pattern" for e in entities)
    assert orchestrator.store.staging.pending_entities() == []

    with open(paths.learnings, encoding="utf-8") as f:
        assert len(json.load(f)["learnings"]) == len(orchestrator.store.learnings)

    checkpoint = orchestrator.load_checkpoint()
    assert checkpoint.id == report.session_id
    assert checkpoint.status == "completed"
    assert len(checkpoint.quality_scores) == 1


@pytest.mark.asyncio
async def test_learnings_carry_over_between_sessions(paths, no_sleep):
    first = make_orchestrator(paths, no_sleep, scorer=QualityScorer(FlatHeuristic()))
    await first.run_session(SessionConfig(website_count=2))
    carried = {l.id for l in first.store.learnings}

    second = make_orchestrator(paths, no_sleep, scorer=QualityScorer(FlatHeuristic()))
    report = await second.run_session(SessionConfig(website_count=1))

    assert carried <= {l.id for l in second.store.learnings}
    # same flat score as the persisted previous report
    assert report.improvement_from_previous == pytest.approx(0.0)


@pytest.mark.asyncio
async def test_improvement_against_previous_session(paths, no_sleep):
    orchestrator = make_orchestrator(paths, no_sleep, MockAutomationTransport(fail_operations={"snapshot"}),
                                     scorer=QualityScorer(FlatHeuristic()))
    weak = await orchestrator.run_session(SessionConfig(website_count=1))

    orchestrator.transport = MockAutomationTransport()
    strong = await orchestrator.run_session(SessionConfig(website_count=1))

    assert strong.average_score > weak.average_score
    expected = (strong.average_score - weak.average_score) / weak.average_score
    assert strong.improvement_from_previous == pytest.approx(expected)


@pytest.mark.asyncio
async def test_failed_commands_lower_score_and_feed_learning(paths, no_sleep):
    transport = MockAutomationTransport(fail_operations={"hover"})
    orchestrator = make_orchestrator(paths, no_sleep, transport, scorer=QualityScorer(FlatHeuristic()))

    report = await orchestrator.run_session(SessionConfig(website_count=1))

    assert report.command_success_rate < 1.0
    failures = orchestrator.session.failure_log
    assert failures and all(f.step == "interaction/hover" for f in failures)
    patterns = orchestrator.store.get_learnings_by_type("failure_pattern")
    assert [p.context for p in patterns] == ["command_execution_interaction/hover"]


@pytest.mark.asyncio
async def test_attempt_exception_does_not_abort_session(paths, no_sleep):
    orchestrator = make_orchestrator(paths, no_sleep, website_generator=MockWebsiteGenerator(fail=True))

    report = await orchestrator.run_session(SessionConfig(website_count=3))

    assert orchestrator.session.status == "completed"
    assert report.total_websites == 3
    assert report.successful_websites == 0
    assert report.average_score == 0.0
    errors = orchestrator.session.failure_log
    assert [f.error_type for f in errors] == ["iteration_error"] * 3
    assert isinstance(errors[0].context, IterationFailureContext)
    assert [f.context.attempt_index for f in errors] == [0, 1, 2]
    assert "generation failed" in errors[0].error_message


@pytest.mark.asyncio
async def test_attempt_timeout_is_iteration_error(paths, no_sleep):
    orchestrator = make_orchestrator(paths, no_sleep, SlowTransport())

    report = await orchestrator.run_session(SessionConfig(website_count=1, timeout_per_website=0.05))

    assert report.successful_websites == 0
    assert orchestrator.session.failure_log[0].error_message == "TimeoutError"


@pytest.mark.asyncio
async def test_stop_pauses_session(paths, no_sleep):
    generator = StoppingGenerator()
    orchestrator = make_orchestrator(paths, no_sleep, website_generator=generator)
    generator.orchestrator = orchestrator

    report = await orchestrator.run_session(SessionConfig(website_count=3))

    assert generator.calls == 1
    assert orchestrator.session.status == "paused"
    assert orchestrator.session.current_index == 1
    assert report.total_websites == 1
    assert orchestrator.load_checkpoint().status == "paused"


@pytest.mark.asyncio
async def test_concurrent_session_rejected(paths, no_sleep):
    generator = BlockingGenerator()
    orchestrator = make_orchestrator(paths, no_sleep, website_generator=generator)

    task = asyncio.create_task(orchestrator.run_session(SessionConfig(website_count=1)))
    await generator.entered.wait()

    assert orchestrator.get_status()["running"] is True
    with pytest.raises(SessionAlreadyRunningError):
        await orchestrator.run_session(SessionConfig(website_count=1))

    generator.release.set()
    report = await task
    assert report.total_websites == 1
    assert orchestrator.get_status()["running"] is False


@pytest.mark.asyncio
async def test_fatal_error_marks_session_failed(paths, no_sleep, monkeypatch):
    orchestrator = make_orchestrator(paths, no_sleep)

    def explode(*args, **kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(orchestrator, "_run_attempt", explode)

    with pytest.raises(SessionFatalError) as info:
        await orchestrator.run_session(SessionConfig(website_count=2))

    assert isinstance(info.value.cause, RuntimeError)
    assert orchestrator.is_running is False
    assert orchestrator.load_checkpoint().status == "failed"


@pytest.mark.asyncio
async def test_get_status_after_session(paths, no_sleep):
    orchestrator = make_orchestrator(paths, no_sleep, scorer=QualityScorer(FlatHeuristic()))
    assert orchestrator.get_status()["session_id"] is None

    report = await orchestrator.run_session(SessionConfig(website_count=1))
    status = orchestrator.get_status()

    assert status["session_id"] == report.session_id
    assert status["status"] == "completed"
    assert status["website_count"] == 1
    assert status["average_score"] == pytest.approx(9.0)
