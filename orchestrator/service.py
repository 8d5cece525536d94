"""Sequential stage runner producing a FinalAnalysis from an article URL."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Dict, List, Optional, Sequence, Union

from core import (
    Failure,
    Partial,
    PipelineContext,
    PipelineRunResult,
    Stage,
    Success,
)
from models import FinalAnalysis
from utils.exceptions import ArticleAgentError
from utils.logger import get_pipeline_logger


logger = get_pipeline_logger()

StageOutcome = Union[Success, Failure, Partial]


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class AnalysisOrchestrator:
    """Runs an ordered list of stages over one PipelineContext per call.

    The orchestrator keeps no run data; concurrent ``run`` calls only share the
    injected stages and their collaborators.
    """

    def __init__(self, stages: Sequence[Stage], *, stop_on_failure: bool = True, mock_mode: bool = False) -> None:
        names = [stage.name for stage in stages]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate stage names: {names}")
        self._stages: Dict[str, Stage] = {stage.name: stage for stage in stages}
        self.stop_on_failure = stop_on_failure
        self.mock_mode = mock_mode

    @property
    def stage_names(self) -> List[str]:
        return list(self._stages)

    def get_stage(self, name: str) -> Optional[Stage]:
        return self._stages.get(name)

    def _invoke(self, stage: Stage, context: PipelineContext) -> StageOutcome:
        try:
            return stage.process(context)
        except ArticleAgentError as exc:
            logger.warning(f"Stage {stage.name} raised {type(exc).__name__}: {exc.message}")
            return Failure(messages=[exc.message], error_type=type(exc).__name__)
        except Exception as exc:
            logger.exception(f"Stage {stage.name} crashed")
            return Failure(messages=[f"{type(exc).__name__}: {exc}"], error_type=type(exc).__name__)

    def run_stage(self, name: str, context: PipelineContext) -> StageOutcome:
        """Run a single named stage against an existing context."""
        stage = self._stages.get(name)
        if stage is None:
            return Failure(messages=[f"Unknown stage: {name}"], error_type="ConfigurationError")
        return self._invoke(stage, context)

    def run(self, url: str, query: Optional[str] = None) -> PipelineRunResult:
        started = time.perf_counter()
        context = PipelineContext(url=url, query=query)
        invoked: List[str] = []
        results: Dict[str, StageOutcome] = {}
        failures: List[tuple] = []

        logger.info(f"Pipeline start: {url} ({len(self._stages)} stages, mock={self.mock_mode})")

        for name, stage in self._stages.items():
            invoked.append(name)
            stage_started = time.perf_counter()
            outcome = self._invoke(stage, context)
            results[name] = outcome

            if isinstance(outcome, Success):
                context = context.apply(outcome.side_effects).mark_processed(name)
                logger.info(f"[{name}] ok in {_elapsed_ms(stage_started)}ms")
            elif isinstance(outcome, Partial):
                logger.info(f"[{name}] needs clarification: {outcome.clarification_question}")
                return PipelineRunResult(
                    success=False,
                    needs_clarification=True,
                    clarification_question=outcome.clarification_question,
                    clarification_reason=outcome.reason or None,
                    duration_ms=_elapsed_ms(started),
                    stage_names=invoked,
                    stage_results=results,
                    final_analysis=self._finalize(context),
                )
            elif isinstance(outcome, Failure):
                logger.warning(f"[{name}] failed: {outcome.message}")
                failures.append((name, outcome))
                if self.stop_on_failure:
                    break
            else:
                raise TypeError(f"Unexpected stage result: {type(outcome).__name__}")

        failed_stage, failure = failures[0] if failures else (None, None)
        result = PipelineRunResult(
            success=not failures,
            error=failure.message if failure else None,
            failed_stage=failed_stage,
            duration_ms=_elapsed_ms(started),
            stage_names=invoked,
            stage_results=results,
            final_analysis=self._finalize(context),
        )
        logger.info(f"Pipeline end: success={result.success} in {result.duration_ms}ms")
        return result

    def _finalize(self, context: PipelineContext) -> Optional[FinalAnalysis]:
        if context.analysis is None:
            return None
        return FinalAnalysis.build(
            context.analysis,
            context.article,
            source_url=context.url,
            agents_used=context.processed_by,
            mock_mode=self.mock_mode,
        )

    def run_with_timeout(self, url: str, timeout_s: float, query: Optional[str] = None) -> PipelineRunResult:
        """Run with a wall-clock deadline; an expired run is reported as a failure."""
        started = time.perf_counter()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pipeline")
        future = executor.submit(self.run, url, query)
        try:
            return future.result(timeout=timeout_s)
        except FutureTimeout:
            logger.error(f"Pipeline exceeded {timeout_s}s for {url}")
            return PipelineRunResult(
                success=False,
                error=f"Pipeline timed out after {timeout_s}s",
                duration_ms=_elapsed_ms(started),
            )
        finally:
            # the worker thread is left to finish on its own
            executor.shutdown(wait=False)
