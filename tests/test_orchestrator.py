"""
Tests for the orchestrator, the pipeline factory and the CLI
"""
from __future__ import annotations

import json
import time

import pytest

import main as cli
from conftest import article_html
from core import Failure, Partial, PipelineContext, Success
from core.contracts import ContextUpdate
from models import AnalysisResult
from orchestrator import AnalysisOrchestrator, build_pipeline, resolve_stage_names
from scrapers import ArticleScraper
from storage import StyleStore
from utils.exceptions import ConfigurationError, ProviderError


URL = "https://news.example.com/world/test-headline"


class FakeStage:
    """可编程阶段: 返回固定结果, 或抛出异常"""

    def __init__(self, name, outcome=None, error=None, delay=0.0):
        self.name = name
        self.outcome = outcome if outcome is not None else Success()
        self.error = error
        self.delay = delay
        self.seen = []

    def validate(self, data):
        return True

    def process(self, context):
        self.seen.append(context)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.outcome


def _offline_pipeline(settings, html=None, **kwargs) -> AnalysisOrchestrator:
    scraper = ArticleScraper.offline({URL: (200, html or article_html())}, settings=settings)
    return build_pipeline(settings, mock_mode=True, scraper=scraper, **kwargs)


class TestMockRun:
    """离线端到端运行"""

    def test_full_scenario(self, offline_settings):
        result = _offline_pipeline(offline_settings).run(URL)

        assert result.success is True
        assert result.error is None
        assert result.stage_names == ["validation", "analysis", "interpret", "illustration"]
        final = result.final_analysis
        assert final.title == "[Mock] Test Headline"
        assert final.original_title == "Test Headline"
        assert len(final.key_points) >= 3
        assert len(final.narration) >= 900
        assert final.image_url == "https://cdn.example.com/lead.jpg"
        assert final.metadata.mock_mode is True
        assert final.metadata.agents_used == result.stage_names
        assert final.metadata.source_url == URL

    def test_any_url_is_served_offline(self, offline_settings):
        result = build_pipeline(offline_settings, mock_mode=True).run("https://example.org/business/markets-rally-again")

        assert result.success is True
        assert len(result.final_analysis.key_points) >= 1

    def test_invalid_url_stops_at_validation(self, offline_settings):
        result = _offline_pipeline(offline_settings).run("not-a-url")

        assert result.success is False
        assert result.failed_stage == "validation"
        assert result.stage_names == ["validation"]
        assert result.final_analysis is None
        assert isinstance(result.stage_results["validation"], Failure)

    def test_vague_query_asks_for_clarification(self, offline_settings):
        result = _offline_pipeline(offline_settings).run(URL, query="AI")

        assert result.success is False
        assert result.needs_clarification is True
        assert result.error is None
        assert result.clarification_question
        assert result.stage_names == ["validation", "analysis", "interpret"]
        assert result.final_analysis is not None
        assert "illustration" not in result.final_analysis.metadata.agents_used

    def test_learned_style_is_applied(self, offline_settings):
        store = StyleStore(offline_settings.storage.style_path)
        store.save_patterns({"style": {"tone": "analytical"}})

        result = _offline_pipeline(offline_settings, style_store=store).run(URL)

        assert "style" in result.stage_names
        assert result.final_analysis.translated_summary.startswith("The bottom line is this.")

    def test_payload_shape(self, offline_settings):
        payload = _offline_pipeline(offline_settings).run(URL).to_payload()

        assert set(payload) == {
            "success", "error", "failedStage", "needsClarification", "clarificationQuestion",
            "clarificationReason", "durationMs", "agents", "results", "finalAnalysis",
        }
        assert payload["results"]["validation"]["kind"] == "success"
        assert payload["finalAnalysis"]["keyPoints"]
        assert payload["finalAnalysis"]["metadata"]["agentsUsed"] == payload["agents"]
        json.dumps(payload)


class TestOrchestrator:
    """阶段调度语义"""

    def test_success_side_effects_flow_to_next_stage(self):
        analysis = AnalysisResult(translated_summary="Summary", key_points=["One"])
        first = FakeStage("first", Success(side_effects=ContextUpdate(analysis=analysis, metadata={"k": 1})))
        second = FakeStage("second")

        result = AnalysisOrchestrator([first, second]).run(URL)

        assert result.success is True
        seen = second.seen[0]
        assert seen.analysis == analysis
        assert seen.metadata == {"k": 1}
        assert seen.processed_by == ["first"]
        assert result.final_analysis.metadata.agents_used == ["first", "second"]

    def test_stop_on_failure(self):
        third = FakeStage("third")
        stages = [FakeStage("first"), FakeStage("second", Failure(messages="broken")), third]

        result = AnalysisOrchestrator(stages).run(URL)

        assert result.success is False
        assert result.error == "broken"
        assert result.failed_stage == "second"
        assert result.stage_names == ["first", "second"]
        assert third.seen == []

    def test_continue_after_failure(self):
        third = FakeStage("third")
        stages = [FakeStage("first", Failure(messages="a")), FakeStage("second", Failure(messages="b")), third]

        result = AnalysisOrchestrator(stages, stop_on_failure=False).run(URL)

        assert result.success is False
        assert result.failed_stage == "first"
        assert result.error == "a"
        assert result.stage_names == ["first", "second", "third"]
        assert third.seen[0].processed_by == []

    def test_partial_stops_the_run(self):
        after = FakeStage("after")
        stages = [FakeStage("ask", Partial(clarification_question="Which angle?", reason="vague")), after]

        result = AnalysisOrchestrator(stages).run(URL)

        assert result.needs_clarification is True
        assert result.clarification_question == "Which angle?"
        assert result.clarification_reason == "vague"
        assert result.final_analysis is None
        assert after.seen == []

    def test_domain_errors_become_failures(self):
        stage = FakeStage("flaky", error=ProviderError("quota exceeded", status=402))

        result = AnalysisOrchestrator([stage]).run(URL)

        failure = result.stage_results["flaky"]
        assert isinstance(failure, Failure)
        assert failure.error_type == "ProviderError"
        assert result.error == "quota exceeded"

    def test_unexpected_errors_stay_inside_the_stage(self):
        after = FakeStage("after")
        stages = [FakeStage("bug", error=KeyError("missing")), after]

        result = AnalysisOrchestrator(stages).run(URL)

        failure = result.stage_results["bug"]
        assert isinstance(failure, Failure)
        assert failure.error_type == "KeyError"
        assert result.success is False
        assert result.failed_stage == "bug"
        assert "missing" in result.error
        assert after.seen == []

    def test_unknown_result_type(self):
        with pytest.raises(TypeError):
            AnalysisOrchestrator([FakeStage("odd", outcome="not a result")]).run(URL)

    def test_duplicate_stage_names(self):
        with pytest.raises(ValueError):
            AnalysisOrchestrator([FakeStage("same"), FakeStage("same")])

    def test_run_stage(self):
        stage = FakeStage("only", Success(data={"x": 1}))
        orchestrator = AnalysisOrchestrator([stage])
        context = PipelineContext(url=URL)

        assert orchestrator.get_stage("only") is stage
        assert orchestrator.get_stage("missing") is None
        assert orchestrator.run_stage("only", context).data == {"x": 1}
        assert stage.seen == [context]
        missing = orchestrator.run_stage("missing", context)
        assert isinstance(missing, Failure)
        assert missing.error_type == "ConfigurationError"

    def test_run_with_timeout(self):
        orchestrator = AnalysisOrchestrator([FakeStage("slow", delay=0.5)])

        result = orchestrator.run_with_timeout(URL, 0.05)

        assert result.success is False
        assert result.error == "Pipeline timed out after 0.05s"

    def test_run_with_timeout_returns_result(self):
        result = AnalysisOrchestrator([FakeStage("fast")]).run_with_timeout(URL, 5)
        assert result.success is True


class TestFactory:
    """流水线组装"""

    def test_style_needs_learned_patterns(self, offline_settings, tmp_path):
        store = StyleStore(str(tmp_path / "patterns.json"))
        assert "style" not in resolve_stage_names(offline_settings, store)

        store.save_patterns({"style": {}})
        assert resolve_stage_names(offline_settings, store) == [
            "validation", "analysis", "interpret", "style", "illustration",
        ]

    def test_enable_flags_and_dedup(self, offline_settings, tmp_path):
        offline_settings.pipeline.enable_interpret = False
        store = StyleStore(str(tmp_path / "patterns.json"))

        names = resolve_stage_names(offline_settings, store, ["Validation", "analysis", "analysis", "interpret"])

        assert names == ["validation", "analysis"]

    def test_unknown_stage(self, offline_settings, tmp_path):
        with pytest.raises(ConfigurationError):
            resolve_stage_names(offline_settings, StyleStore(str(tmp_path / "p.json")), ["validation", "summarize"])

    def test_stage_override(self, offline_settings):
        pipeline = build_pipeline(offline_settings, mock_mode=True, stages=["validation", "illustration"])
        assert pipeline.stage_names == ["validation", "illustration"]


class TestCLI:
    """命令行入口"""

    @pytest.fixture(autouse=True)
    def _settings(self, monkeypatch, offline_settings):
        monkeypatch.setattr(cli, "get_settings", lambda: offline_settings)

    def test_analyze_json(self, capsys):
        code = cli.main(["analyze", "https://example.org/world/summit-ends", "--mock", "--json"])

        payload = json.loads(capsys.readouterr().out)
        assert code == 0
        assert payload["success"] is True
        assert payload["finalAnalysis"]["metadata"]["mockMode"] is True

    def test_analyze_failure_exit_code(self):
        assert cli.main(["analyze", "ftp://example.org/file", "--mock"]) == 1

    def test_learn_and_reset(self, tmp_path, offline_settings):
        sample = tmp_path / "sample.txt"
        sample.write_text("A sample column with a distinctive voice.", encoding="utf-8")

        assert cli.main(["learn", str(sample), "--mock"]) == 0
        assert StyleStore(offline_settings.storage.style_path).has_patterns()

        assert cli.main(["reset-style", "--mock"]) == 0
        assert not StyleStore(offline_settings.storage.style_path).has_patterns()
