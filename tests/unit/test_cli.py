"""Unit tests for the command-line entry point."""

from __future__ import annotations

import json
from collections.abc import Iterator
from unittest.mock import patch

import pytest

from kb_assistant import cli
from kb_assistant.exceptions import ConfigurationError
from kb_assistant.ingestion.models import IngestReport
from kb_assistant.resources import BestEffort
from kb_assistant.retrieval.models import StoreStats


class StubAssistant:
    def __init__(self) -> None:
        self.ingested: list | None = None

    async def ingest(self, pages):
        self.ingested = pages
        return IngestReport(total_pages=len(pages), succeeded=len(pages))

    async def ask(self, question: str):
        raise ConfigurationError("OPENAI_API_KEY is not set")

    def stats(self) -> BestEffort[StoreStats]:
        return BestEffort.ok(StoreStats(total_vector_count=7))


@pytest.fixture()
def assistant() -> Iterator[StubAssistant]:
    stub = StubAssistant()
    with patch.object(cli, "build_assistant", return_value=stub):
        yield stub


def test_stats_prints_json(assistant: StubAssistant, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["stats"]) == 0
    assert json.loads(capsys.readouterr().out) == {"total_vector_count": 7, "degraded": False}


def test_ingest_pages_from_flags(assistant: StubAssistant, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["ingest", "--page", "https://x/a", "A", "--page", "https://x/b", "B"]) == 0
    assert [p.label for p in assistant.ingested] == ["A", "B"]
    assert json.loads(capsys.readouterr().out)["succeeded"] == 2


def test_errors_exit_nonzero(assistant: StubAssistant, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["ask", "hello"]) == 1
    assert "OPENAI_API_KEY" in capsys.readouterr().err


def test_wiring_failure_exits_nonzero(capsys: pytest.CaptureFixture[str]) -> None:
    with patch.object(cli, "build_assistant", side_effect=ConfigurationError("Unsupported embedding_provider")):
        assert cli.main(["stats"]) == 1
    assert "Unsupported embedding_provider" in capsys.readouterr().err


def test_subcommand_required() -> None:
    with pytest.raises(SystemExit):
        cli.main([])
