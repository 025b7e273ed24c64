"""Tests for the routing + correction pipeline."""

from datetime import datetime
from unittest.mock import Mock, patch

import pytest

from transcript_filer.config import CorrectionSettings, DatabaseSettings, FilerSettings
from transcript_filer.errors import ConfigurationError, ResourceError
from transcript_filer.knowledge import StaticKnowledgeStore
from transcript_filer.models import Entity, EntityType, RoutingContext
from transcript_filer.pipeline import TranscriptProcessor


ENTITIES = [
    Entity(
        id="protokoll",
        name="Protokoll",
        type=EntityType.PROJECT,
        sounds_like=["protocol"],
        trigger_phrases=["transcript tool"],
    ),
    Entity(id="priya", name="Priya", type=EntityType.PERSON, sounds_like=["pria"]),
]

ROUTING = {
    "default": {"path": "/notes"},
    "projects": [
        {
            "project_id": "protokoll",
            "classification": {"explicit_phrases": ["transcript tool"]},
            "destination": {"path": "/work/protokoll"},
            "auto_tags": ["protokoll"],
        }
    ],
}


def make_settings(**correction):
    return FilerSettings(
        database=DatabaseSettings(context_paths=[]),
        correction=CorrectionSettings(**correction),
    )


def make_context(text):
    return RoutingContext(
        transcript_text=text,
        audio_date=datetime(2026, 5, 10, 9, 5),
        source_file="memo.m4a",
    )


class TestTranscriptProcessor:
    """Tests for TranscriptProcessor."""

    def test_routed_transcript_corrected(self):
        """Test a routed transcript gets tier 2 corrections for its project."""
        processor = TranscriptProcessor.from_settings(
            make_settings(), ROUTING, StaticKnowledgeStore(ENTITIES)
        )

        processed = processor.process(
            make_context("The transcript tool protocol is done. pria approved.")
        )

        assert processed.decision.project_id == "protokoll"
        assert processed.text == "The transcript tool Protokoll is done. Priya approved."
        assert processed.correction.stats.tier2_replacements == 1
        assert processed.output_path == (
            "/work/protokoll/2026/5/10-0905-the-transcript-tool-protocol-is-done.md"
        )

    def test_unrouted_transcript_tier1_only(self):
        """Test a transcript without a project only gets tier 1 corrections."""
        processor = TranscriptProcessor.from_settings(
            make_settings(), ROUTING, StaticKnowledgeStore(ENTITIES)
        )

        processed = processor.process(make_context("pria mentioned the protocol."))

        assert processed.decision.project_id is None
        assert processed.text == "Priya mentioned the protocol."
        assert processed.output_path.startswith("/notes/2026/5/")

    def test_store_read_once(self):
        """Test entities are read once for routing and correction together."""
        store = Mock()
        store.load_entities.return_value = ENTITIES
        processor = TranscriptProcessor.from_settings(make_settings(), ROUTING, store)

        for _ in range(3):
            processor.process(make_context("transcript tool protocol"))

        assert store.load_entities.call_count == 1

    def test_to_dict(self):
        """Test the summary payload."""
        processor = TranscriptProcessor.from_settings(
            make_settings(), ROUTING, StaticKnowledgeStore(ENTITIES)
        )
        payload = processor.process(make_context("transcript tool protocol")).to_dict()

        assert payload["project_id"] == "protokoll"
        assert payload["auto_tags"] == ["protokoll"]
        assert payload["stats"]["tier2_replacements"] == 1

    def test_routing_config_from_settings_path(self, tmp_path):
        """Test the routing config is read from the settings path when not given."""
        routing_file = tmp_path / "routing.yaml"
        routing_file.write_text("default:\n  path: /inbox\n  structure: none\n")
        settings = make_settings().model_copy(update={"routing_config_path": str(routing_file)})

        processor = TranscriptProcessor.from_settings(settings, store=StaticKnowledgeStore([]))
        processed = processor.process(make_context("Hello there."))

        assert processed.output_path == "/inbox/260510-0905-hello-there.md"

    def test_missing_routing_file(self, tmp_path):
        """Test a missing routing config path is a resource error."""
        settings = make_settings().model_copy(
            update={"routing_config_path": str(tmp_path / "missing.yaml")}
        )

        with pytest.raises(ResourceError):
            TranscriptProcessor.from_settings(settings, store=StaticKnowledgeStore([]))

    def test_correction_failure_logged(self):
        """Test a failing correction pass is logged and re-raised."""
        routing = Mock()
        routing.route.return_value = Mock(project_id=None, confidence=1.0)
        corrector = Mock()
        corrector.correct.side_effect = ConfigurationError("Invalid term registry")
        processor = TranscriptProcessor(routing, corrector)

        with patch("transcript_filer.pipeline.log_operation_failed") as failed:
            with pytest.raises(ConfigurationError):
                processor.process(make_context("Hello there."))

        failed.assert_called_once()
        assert failed.call_args[0][1] == "process transcript"
        routing.build_output_path.assert_not_called()
