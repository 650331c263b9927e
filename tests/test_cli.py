"""
Tests for the CLI interface.
"""
import json
from dataclasses import replace
from datetime import datetime
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from ai_cost_lens.cli.main import EXIT_CODE_FAIL, EXIT_CODE_PASS, app
from ai_cost_lens.config.loader import reset_catalog
from ai_cost_lens.core.estimate import estimate_cost
from ai_cost_lens.core.pricing import Provider
from ai_cost_lens.core.thinking import ThinkingBudget
from ai_cost_lens.core.token_counter import UsageReport
from ai_cost_lens.sdk.base import ProviderResult
from ai_cost_lens.storage.models import HistoryEntry, ResponseData
from ai_cost_lens.storage.repository import HistoryRepository, default_export_name

runner = CliRunner()


@pytest.fixture(autouse=True)
def fresh_catalog(monkeypatch):
    """Resolve the built-in catalog for every test."""
    monkeypatch.delenv("AI_COST_LENS_PRICING", raising=False)
    reset_catalog()
    yield
    reset_catalog()


def _entry(entry_id: str, title: str = None) -> HistoryEntry:
    usage = UsageReport(input_units=1000, text_output_units=200)
    return HistoryEntry(
        id=entry_id,
        timestamp=datetime(2025, 1, 1, 12, 0, 0),
        provider=Provider.GOOGLE,
        model="gemini-2.5-flash",
        prompt="Summarize this",
        title=title,
        result=ResponseData(
            provider=Provider.GOOGLE,
            estimate=estimate_cost("gemini-2.5-flash", usage),
            usage=usage,
            text="Summary",
        ),
    )


def _write_history(path, *entries):
    repo = HistoryRepository()
    for entry in reversed(entries):
        repo.add(entry)
    repo.save(str(path))


class TestCLI:
    """Test CLI commands."""

    def test_no_command_prints_hint(self):
        result = runner.invoke(app, [])
        assert result.exit_code == EXIT_CODE_PASS
        assert "Use --help" in result.output

    def test_models_lists_catalog(self):
        result = runner.invoke(app, ["models"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "Pricing Catalog" in result.output
        assert "gemini" in result.output

    def test_estimate_from_options(self):
        """Simple token pricing from command-line counts."""
        result = runner.invoke(app, ["estimate", "gemini-3-flash-preview", "-i", "1000000", "-o", "500000"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "Cost & Token Analysis" in result.output
        assert "Standard Tier" in result.output
        assert "$2.000000" in result.output

    def test_estimate_high_tier(self):
        result = runner.invoke(app, ["estimate", "gemini-2.5-pro", "-i", "250000", "-o", "1000"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "High Tier" in result.output

    def test_estimate_video_without_duration_is_flagged(self):
        result = runner.invoke(app, ["estimate", "veo-3.1-generate-preview", "--videos", "1"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "$2.000000" in result.output
        assert "Approximate:" in result.output

    def test_estimate_from_usage_file(self, tmp_path):
        usage_path = tmp_path / "usage.yaml"
        usage_path.write_text(yaml.dump({
            "input_units": 3000000,
            "input_details": [
                {"modality": "TEXT", "units": 1000000},
                {"modality": "AUDIO", "units": 2000000},
            ],
        }))
        result = runner.invoke(app, ["estimate", "gemini-2.5-flash", "--usage", str(usage_path)])
        assert result.exit_code == EXIT_CODE_PASS
        assert "AUDIO Input" in result.output
        assert "$2.300000" in result.output

    def test_estimate_unknown_model(self):
        result = runner.invoke(app, ["estimate", "no-such-model", "-i", "10"])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "Pricing not found for model: no-such-model" in result.output

    def test_estimate_missing_usage_file(self, tmp_path):
        result = runner.invoke(app, ["estimate", "gemini-2.5-flash", "--usage", str(tmp_path / "none.json")])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "Usage file not found" in result.output

    def test_custom_pricing_catalog(self, tmp_path):
        pricing_path = tmp_path / "pricing.yaml"
        pricing_path.write_text(yaml.dump({
            "models": {"house-model": {"standard": {"input": {"TEXT": 1}, "output": 2}}}
        }))
        result = runner.invoke(
            app, ["--pricing", str(pricing_path), "estimate", "house-model", "-i", "1000000", "-o", "1000000"]
        )
        assert result.exit_code == EXIT_CODE_PASS
        assert "$3.000000" in result.output

    def test_invalid_pricing_catalog(self, tmp_path):
        pricing_path = tmp_path / "pricing.yaml"
        pricing_path.write_text(yaml.dump({"models": {}}))
        result = runner.invoke(app, ["--pricing", str(pricing_path), "models"])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "Error loading pricing catalog" in result.output


class TestRunCommand:
    """Test the run command with a stubbed provider."""

    @patch('ai_cost_lens.sdk.client.CostLensClient.fetcher_for')
    def test_run_saves_history(self, mock_fetcher_for, tmp_path):
        mock_fetcher_for.return_value.fetch_usage.return_value = ProviderResult(
            usage=UsageReport(input_units=100, text_output_units=50),
            text="The answer",
        )
        history_path = tmp_path / "history.json"

        result = runner.invoke(
            app,
            ["run", "gemini-2.5-flash", "What is 2+2?", "--thinking-level", "low", "--history", str(history_path)],
        )

        assert result.exit_code == EXIT_CODE_PASS
        assert "The answer" in result.output
        assert "Thinking budget: 4,096 tokens" in result.output
        saved = json.loads(history_path.read_text())
        assert len(saved) == 1
        assert saved[0]["thinking"] == {"mode": "LEVEL", "level": "LOW"}

    @patch('ai_cost_lens.sdk.client.CostLensClient.fetcher_for')
    def test_run_defaults_to_dated_history_file(self, mock_fetcher_for, tmp_path, monkeypatch):
        mock_fetcher_for.return_value.fetch_usage.return_value = ProviderResult(
            usage=UsageReport(input_units=100, text_output_units=50),
        )
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["run", "gemini-2.5-flash", "Hi"])

        assert result.exit_code == EXIT_CODE_PASS
        saved = json.loads((tmp_path / default_export_name()).read_text())
        assert len(saved) == 1
        assert saved[0]["prompt"] == "Hi"

    @patch('ai_cost_lens.sdk.client.CostLensClient.fetcher_for')
    def test_run_hides_budget_for_models_without_thinking(self, mock_fetcher_for, tmp_path):
        """Image models ignore thinking settings, so no budget is shown."""
        mock_fetcher_for.return_value.fetch_usage.return_value = ProviderResult(usage=UsageReport())

        result = runner.invoke(
            app,
            ["run", "imagen-4.0-generate-001", "A cat", "--thinking-level", "HIGH",
             "--history", str(tmp_path / "history.json")],
        )

        assert result.exit_code == EXIT_CODE_PASS
        assert "Thinking budget" not in result.output

    def test_run_rejects_both_thinking_options(self):
        result = runner.invoke(
            app, ["run", "gemini-2.5-flash", "Hi", "--thinking-budget", "10", "--thinking-level", "HIGH"]
        )
        assert result.exit_code == EXIT_CODE_FAIL
        assert "not both" in result.output

    def test_run_missing_attachment(self, tmp_path):
        result = runner.invoke(app, ["run", "gemini-2.5-flash", "Hi", "--attach", str(tmp_path / "none.png")])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "Attachment not found" in result.output

    @patch('ai_cost_lens.sdk.client.CostLensClient.fetcher_for')
    def test_run_provider_error(self, mock_fetcher_for):
        mock_fetcher_for.return_value.fetch_usage.side_effect = RuntimeError("API Error")
        result = runner.invoke(app, ["run", "gemini-2.5-flash", "Hi"])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "API Error" in result.output


class TestHistoryCommands:
    """Test history file commands."""

    def test_show(self, tmp_path):
        path = tmp_path / "history.json"
        _write_history(path, _entry("a", title="Quarterly summary"))
        result = runner.invoke(app, ["history", "show", str(path)])
        assert result.exit_code == EXIT_CODE_PASS
        assert "Quarterly" in result.output

    def test_show_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("[]")
        result = runner.invoke(app, ["history", "show", str(path)])
        assert result.exit_code == EXIT_CODE_PASS
        assert "No history yet." in result.output

    def test_show_invalid_file(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text('{"entries": []}')
        result = runner.invoke(app, ["history", "show", str(path)])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "Invalid history file format" in result.output

    def test_merge_appends_imported_first(self, tmp_path):
        source = tmp_path / "source.json"
        target = tmp_path / "target.json"
        _write_history(source, _entry("imported"))
        _write_history(target, _entry("current"))

        result = runner.invoke(app, ["history", "merge", str(source), str(target)])

        assert result.exit_code == EXIT_CODE_PASS
        assert [e["id"] for e in json.loads(target.read_text())] == ["imported", "current"]

    def test_merge_replace(self, tmp_path):
        source = tmp_path / "source.json"
        target = tmp_path / "target.json"
        _write_history(source, _entry("imported"))
        _write_history(target, _entry("current"))

        result = runner.invoke(app, ["history", "merge", str(source), str(target), "--replace"])

        assert result.exit_code == EXIT_CODE_PASS
        assert [e["id"] for e in json.loads(target.read_text())] == ["imported"]

    @patch('ai_cost_lens.sdk.client.CostLensClient.fetcher_for')
    def test_rerun_repeats_stored_call(self, mock_fetcher_for, tmp_path):
        mock_fetcher_for.return_value.fetch_usage.return_value = ProviderResult(
            usage=UsageReport(input_units=1000, text_output_units=300),
            text="Fresh summary",
        )
        path = tmp_path / "history.json"
        stored = replace(_entry("a", title="Quarterly summary"), thinking=ThinkingBudget(1024))
        _write_history(path, stored)

        result = runner.invoke(app, ["history", "rerun", str(path), "a"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Fresh summary" in result.output
        assert "Thinking budget: 1,024 tokens" in result.output
        mock_fetcher_for.return_value.fetch_usage.assert_called_once_with(
            "gemini-2.5-flash", "Summarize this", [], ThinkingBudget(1024)
        )
        saved = json.loads(path.read_text())
        assert len(saved) == 2
        assert saved[0]["id"] != "a"
        assert saved[0]["title"] == "Quarterly summary"
        assert saved[0]["thinking"] == {"mode": "BUDGET", "budget": 1024}
        assert saved[1]["id"] == "a"

    def test_rerun_unknown_entry(self, tmp_path):
        path = tmp_path / "history.json"
        _write_history(path, _entry("a"))

        result = runner.invoke(app, ["history", "rerun", str(path), "missing"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "History entry not found: missing" in result.output
        assert len(json.loads(path.read_text())) == 1
