"""Tests for context document assembly and YAML rendering."""

from datetime import datetime, timezone

import pytest
import yaml

from ctxfile.generator import GenerateOptions, generate_context
from ctxfile.output import (
    build_document,
    clean_text,
    confidence_level,
    render_yaml,
    stack_string,
)

GENERATED_AT = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.fixture
def document(fastapi_repo):
    result = generate_context(fastapi_repo, GenerateOptions(ai="off"))
    return build_document(result, GENERATED_AT)


class TestHelpers:
    @pytest.mark.parametrize(
        "percentage,level",
        [(100, "VERY_HIGH"), (90, "VERY_HIGH"), (85, "HIGH"), (70, "GOOD"), (60, "MODERATE"), (59, "LOW"), (0, "LOW")],
    )
    def test_confidence_level(self, percentage, level):
        assert confidence_level(percentage) == level

    def test_clean_text(self):
        assert clean_text("- **Fast**\n- *small*\n\nsafe") == "Fast small safe"
        assert clean_text("") is None
        assert clean_text(None) is None

    def test_stack_string(self):
        assert stack_string({"framework": "React", "main_language": "TypeScript", "hosting": "Vercel"}) == (
            "React/TypeScript/Vercel"
        )
        assert stack_string({}) == "Not specified"


class TestBuildDocument:
    def test_top_level_key_order(self, document):
        assert list(document) == [
            "generated",
            "ai_score",
            "ai_confidence",
            "ai_tldr",
            "instant_context",
            "context_quality",
            "project",
            "stack",
            "scores",
            "tags",
            "human_context",
            "languages",
            "structure",
            "local_quality",
        ]

    def test_scores(self, document):
        assert document["generated"] == "2026-01-02T03:04:05+00:00"
        assert document["ai_score"] == "82%"
        assert document["ai_confidence"] == "HIGH"
        assert document["scores"] == {
            "context_score": 82,
            "slot_based_percentage": 68,
            "total_slots": 19,
            "na_slots": 1,
            "bonus_points": 25,
        }

    def test_context_quality(self, document):
        quality = document["context_quality"]
        assert quality["slots_filled"] == "13/19 (68%)"
        assert quality["ai_confidence"] == "MODERATE"
        assert quality["handoff_ready"] is False
        assert quality["missing_context"] == ["server", "build_tool", "who", "why", "where", "when"]

    def test_project_and_stack(self, document):
        assert document["project"] == {
            "name": "Shop API",
            "goal": "Orders and payments over HTTP.",
            "main_language": "Python",
            "type": "python-api",
        }
        assert document["ai_tldr"]["project"] == "Shop API - Orders and payments over HTTP."
        assert document["stack"]["backend"] == "FastAPI"
        assert document["stack"]["runtime"] is None
        assert document["instant_context"]["tech_stack"] == "FastAPI/Python/Docker"

    def test_undetected_values_are_null(self, document):
        assert document["human_context"]["who"] is None
        assert document["human_context"]["how"] == "Run uvicorn."

    def test_tags(self, document):
        assert document["tags"]["auto_generated"] == ["shop-api", "fastapi", "python", "docker"]
        assert document["tags"]["topics"] == []

    def test_local_quality(self, document):
        local = document["local_quality"]
        assert local["license"] == "Not found"
        assert local["factors"]["has_docker"] is True
        assert local["tier"] in ("Trophy", "Gold", "Silver", "Bronze", "Green", "Yellow", "Red", "White")

    def test_empty_project(self, tmp_path):
        result = generate_context(tmp_path, GenerateOptions(ai="off"))
        document = build_document(result, GENERATED_AT)

        assert document["ai_score"] == "0%"
        assert document["ai_confidence"] == "LOW"
        assert document["project"]["goal"] is None
        assert document["project"]["main_language"] == "Unknown"
        assert document["languages"] is None
        assert document["structure"] == {"total_files": 0, "files": []}
        assert document["local_quality"]["tier"] == "White"


class TestRenderYaml:
    def test_round_trips_through_safe_load(self, document):
        text = render_yaml(document)
        assert yaml.safe_load(text) == document

    def test_keeps_document_order(self, document):
        text = render_yaml(document)
        assert text.startswith("generated: ")
        assert text.index("ai_score:") < text.index("local_quality:")

    def test_nulls_are_explicit(self, document):
        assert "runtime: null" in render_yaml(document)
