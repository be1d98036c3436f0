"""
SessionOrchestrator - runs a session of website attempts.

Each attempt: select industry + template, invent a business, generate
commands, apply learnings, execute, score, learn, report, checkpoint.
Attempts run one after another; stop() takes effect between attempts.
"""
import asyncio
import logging
import random
import time
from dataclasses import replace
from typing import Any, Dict, Optional

from ..config import (
    AutotesterPaths,
    ExecutorConfig,
    GeneratorConfig,
    LearningConfig,
    SessionConfig,
)
from ..domain import (
    FailureEntry,
    IterationFailureContext,
    QualityScore,
    Session,
    SessionReport,
    SessionStatus,
    SessionSummary,
    WebsiteResult,
    utc_now,
)
from ..errors import IterationError, PersistenceError, SessionAlreadyRunningError, SessionFatalError
from ..execution.engine import ExecutionEngine, Sleep
from ..generators.command_generator import CommandGenerator
from ..interfaces import IAutomationTransport, IWebsiteGenerator
from ..learning.store import LearningStore
from ..logger import SessionLogger
from ..reporting.reporter import Reporter
from ..scoring.quality_scorer import PerturbationHeuristic, QualityScorer
from ..utils import load_text, new_id, save_text
from .checkpoint import load_checkpoint, save_checkpoint

logger = logging.getLogger("autotester.orchestrator")


class SessionOrchestrator:
    """Owns the Session and drives the Reflexion loop for one session at a time."""

    def __init__(self, transport: IAutomationTransport, paths: AutotesterPaths,
                 website_generator: Optional[IWebsiteGenerator] = None,
                 generator_config: Optional[GeneratorConfig] = None,
                 executor_config: Optional[ExecutorConfig] = None,
                 learning_config: Optional[LearningConfig] = None,
                 scorer: Optional[QualityScorer] = None,
                 rng: Optional[random.Random] = None,
                 sleep: Optional[Sleep] = None):
        self.transport = transport
        self.paths = paths
        self.website_generator = website_generator
        self.generator_config = generator_config or GeneratorConfig()
        self.executor_config = executor_config or ExecutorConfig()
        self.learning_config = learning_config or LearningConfig()
        self.scorer = scorer
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.log = SessionLogger("autotester.orchestrator")

        self.session: Optional[Session] = None
        self.config: Optional[SessionConfig] = None
        self.store: Optional[LearningStore] = None
        self.reporter: Optional[Reporter] = None
        self.last_report: Optional[SessionReport] = None
        self.last_summary: Optional[SessionSummary] = None
        self._running = False
        self._stop_requested = False
        self._previous_average: Optional[float] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def stop(self):
        """Request a stop; the in-flight attempt still finishes."""
        if self._running:
            self.log.warning("Stop requested; finishing current website")
        self._stop_requested = True

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def run_session(self, config: Optional[SessionConfig] = None,
                          session_id: Optional[str] = None) -> SessionReport:
        """
        Run one session of `config.website_count` attempts.

        Raises:
            SessionAlreadyRunningError: another session is in progress
            SessionFatalError: an exception escaped the attempt loop
        """
        if self._running:
            raise SessionAlreadyRunningError("A session is already running")

        self._running = True
        self._stop_requested = False
        config = config or SessionConfig()
        self.config = config
        session = Session(
            id=session_id or new_id("session"),
            target_count=config.website_count,
            status=SessionStatus.RUNNING.value,
        )
        self.session = session

        try:
            self.paths.ensure()
        except OSError as e:
            logger.warning(f"Could not create state directories: {e}")

        store = LearningStore(
            session.id,
            replace(self.learning_config, quality_threshold=config.quality_threshold),
        )
        reporter = Reporter(session.id, self.paths.log_dir, self.paths.report_dir)
        generator = CommandGenerator(
            self.generator_config,
            rng=self.rng,
            use_real_images=config.use_real_images,
            random_selection=config.random_industries,
        )
        scorer = self.scorer or QualityScorer(
            PerturbationHeuristic(self.rng), quality_threshold=config.quality_threshold
        )
        executor_config = replace(
            self.executor_config,
            max_retries=config.max_retries,
            save_screenshots=config.save_screenshots,
        )
        self.store = store
        self.reporter = reporter

        self.log.banner(
            f"AUTONOMOUS TESTER - SESSION {session.id}",
            f"Target: {config.website_count} websites",
            f"Images: {'Real' if config.use_real_images else 'Placeholders'}",
            f"Industries: {'Random' if config.random_industries else 'Sequential'}",
        )

        previous_average = self._previous_average
        if previous_average is None:
            previous_average = Reporter.latest_average_score(self.paths.report_dir)
        self._load_learnings(store)
        save_checkpoint(self.paths.checkpoint, session, config)

        try:
            for index in range(config.website_count):
                if self._stop_requested:
                    break
                session.current_index = index + 1
                self.log.step(f"WEBSITE {index + 1}/{config.website_count}")

                result = await self._run_attempt(index, session, config, generator,
                                                 store, scorer, reporter, executor_config)
                if result.success:
                    session.website_count += 1
                    self.log.success(f"Website {result.website_id} passed")
                else:
                    self.log.warning(f"Website {result.website_id} below threshold or failed")

                suggestions = store.get_improvement_suggestions()
                if suggestions:
                    self.log.learn(f"{len(suggestions)} improvement suggestions available")

                save_checkpoint(self.paths.checkpoint, session, config)

            stopped_early = self._stop_requested and session.current_index < session.target_count
            session.status = (SessionStatus.PAUSED.value if stopped_early
                              else SessionStatus.COMPLETED.value)
            session.completed_at = utc_now()
        except Exception as e:
            session.status = SessionStatus.FAILED.value
            session.completed_at = utc_now()
            save_checkpoint(self.paths.checkpoint, session, config)
            self.log.error(f"Session failed: {e}")
            self._running = False
            raise SessionFatalError(session.id, e) from e

        try:
            report = self._finish(session, config, store, reporter, previous_average)
        finally:
            self._running = False
        return report

    def _finish(self, session: Session, config: SessionConfig, store: LearningStore,
                reporter: Reporter, previous_average: Optional[float]) -> SessionReport:
        scores = [s.overall_score for s in session.quality_scores]
        average = sum(scores) / len(scores) if scores else 0.0
        improvement = (average - previous_average) / previous_average if previous_average else 0.0

        report = reporter.generate_session_report(
            session, store.top_learnings(), improvement, all_learnings=store.learnings
        )
        save_checkpoint(self.paths.checkpoint, session, config)

        reflection = store.reflect_on_session(report)
        self.log.info("Session Reflection:")
        for insight in reflection.insights:
            self.log.info(f"  • {insight}")

        self._save_learnings(store)
        try:
            store.staging.drain_to_file(self.paths.knowledge_dir, session.id)
        except PersistenceError as e:
            logger.warning(f"Failed to export knowledge: {e}")

        summary = reporter.generate_session_summary(len(session.learnings), improvement)
        distribution = ", ".join(f"{band}={n}" for band, n in summary.score_distribution.items())

        self._previous_average = report.average_score
        self.last_report = report
        self.last_summary = summary
        self.log.banner(
            "SESSION COMPLETE",
            f"Successful: {summary.successful_websites}/{summary.total_websites}",
            f"Average Score: {summary.average_score:.2f}",
            f"Scores: {distribution}",
            f"Learnings Generated: {summary.learnings_generated}",
            f"Report: {reporter.report_path}",
        )
        for message, count in summary.top_issues:
            self.log.warning(f"{message} (x{count})")
        return report

    # ------------------------------------------------------------------
    # Attempt
    # ------------------------------------------------------------------

    async def _run_attempt(self, index: int, session: Session, config: SessionConfig,
                           generator: CommandGenerator, store: LearningStore,
                           scorer: QualityScorer, reporter: Reporter,
                           executor_config: ExecutorConfig) -> WebsiteResult:
        website_id = new_id("website")
        start = time.monotonic()
        industry = template = profile = None
        score: Optional[QualityScore] = None

        try:
            industry = generator.select_industry()
            template = generator.select_template()
            profile = generator.generate_profile(industry, template)
            logger.info(f"Industry: {industry.name} | Template: {template.name} | Business: {profile.name}")

            commands = generator.generate(industry, template, profile)
            commands = store.apply_learnings_to_commands(commands)

            base_url = config.base_url
            if self.website_generator:
                base_url = await self.website_generator.prepare(industry, template, profile) or base_url

            engine = ExecutionEngine(self.transport, session.id, website_id,
                                     executor_config, base_url, self.sleep)
            execution = await asyncio.wait_for(
                self._execute(engine, commands), timeout=config.timeout_per_website
            )
            reporter.log_execution(execution.logs)
            session.failure_log.extend(execution.failures)
            logger.info(f"Executed: {execution.successful_commands}/{execution.total_commands} commands")

            score = scorer.evaluate(website_id, execution, industry.id, template.id, profile.name)
            session.quality_scores.append(score)
            self.log.info(f"Score: {score.overall_score:.1f} ({score.verdict})")

            new_learnings = store.learn_from_result(website_id, score, execution.failures, len(commands))
            session.learnings.extend(new_learnings)

            result = WebsiteResult(
                success=score.overall_score >= config.quality_threshold,
                website_id=website_id,
                industry_id=industry.id,
                template_id=template.id,
                business_name=profile.name,
                generation_time_ms=(time.monotonic() - start) * 1000,
                commands_executed=execution.successful_commands,
                commands_failed=execution.failed_commands,
            )
        except Exception as e:
            error = IterationError(index, e)
            logger.error(f"{error}")
            session.failure_log.append(FailureEntry(
                id=new_id("failure"),
                website_id=website_id,
                step="attempt",
                error_type="iteration_error",
                error_message=str(e) or type(e).__name__,
                context=IterationFailureContext(
                    attempt_index=index,
                    industry_id=industry.id if industry else "",
                    template_id=template.id if template else "",
                ),
            ))
            result = WebsiteResult(
                success=False,
                website_id=website_id,
                industry_id=industry.id if industry else "",
                template_id=template.id if template else "",
                business_name=profile.name if profile else "",
                generation_time_ms=(time.monotonic() - start) * 1000,
                errors=[str(error)],
            )

        failures = [f for f in session.failure_log if f.website_id == website_id]
        reporter.log_attempt(result, score, failures)
        return result

    async def _execute(self, engine: ExecutionEngine, commands):
        await self.transport.start()
        try:
            return await engine.execute_commands(commands)
        finally:
            await engine.close()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load_learnings(self, store: LearningStore):
        try:
            data = load_text(self.paths.learnings)
        except PersistenceError as e:
            logger.warning(f"Could not read learnings: {e}")
            return
        if data:
            count = store.import_learnings(data)
            self.log.learn(f"Loaded {count} previous learnings")

    def _save_learnings(self, store: LearningStore):
        try:
            save_text(self.paths.learnings, store.export_learnings())
            self.log.save(self.paths.learnings)
        except PersistenceError as e:
            logger.warning(f"Failed to save learnings: {e}")

    def load_checkpoint(self) -> Optional[Session]:
        return load_checkpoint(self.paths.checkpoint)

    def get_status(self) -> Dict[str, Any]:
        session = self.session
        scores = [s.overall_score for s in session.quality_scores] if session else []
        return {
            "running": self._running,
            "session_id": session.id if session else None,
            "status": session.status if session else None,
            "current_index": session.current_index if session else 0,
            "target_count": session.target_count if session else 0,
            "website_count": session.website_count if session else 0,
            "average_score": sum(scores) / len(scores) if scores else 0.0,
            "learnings": len(self.store.learnings) if self.store else 0,
        }
