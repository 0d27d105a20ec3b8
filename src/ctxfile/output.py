"""Context document assembly and YAML rendering.

Undetected values are written as ``null`` rather than guessed, so the
document shows exactly what the scan found.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

import yaml

from .generator import ContextResult
from .scoring import applicable_slots, is_filled

DEFAULT_OUTPUT_NAME = "project.context.yaml"
MAX_STRUCTURE_ENTRIES = 30
MAX_KEY_FILES = 5
MAX_AUTO_TAGS = 21
MAX_TAG_LENGTH = 30
HANDOFF_THRESHOLD = 70

# (minimum percentage, level), highest first.
CONFIDENCE_LEVELS = ((90, "VERY_HIGH"), (80, "HIGH"), (70, "GOOD"), (60, "MODERATE"))
LOWEST_CONFIDENCE = "LOW"

_LIST_MARKER_RE = re.compile(r"^\s*[-*]\s*", re.MULTILINE)
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_ITALIC_RE = re.compile(r"\*(.+?)\*")
_NEWLINES_RE = re.compile(r"\n+")
_TAG_STRIP_RE = re.compile(r"[^a-z0-9\s-]")


def confidence_level(percentage: int) -> str:
    for threshold, level in CONFIDENCE_LEVELS:
        if percentage >= threshold:
            return level
    return LOWEST_CONFIDENCE


def clean_text(value: Any) -> str | None:
    """Flatten markdown prose to one line. Empty input becomes None."""
    if not is_filled(value):
        return None
    text = _LIST_MARKER_RE.sub("", str(value))
    text = _BOLD_RE.sub(r"\1", text)
    text = _ITALIC_RE.sub(r"\1", text)
    text = _NEWLINES_RE.sub(" ", text).strip()
    return text or None


def stack_string(slots: dict[str, Any]) -> str:
    parts: list[str] = []
    for key in ("framework", "main_language", "build_tool", "hosting", "backend"):
        value = slots.get(key)
        if is_filled(value) and value not in parts:
            parts.append(value)
    return "/".join(parts) or "Not specified"


def _tag(value: str) -> str:
    return value.lower().strip().replace(" ", "-")


def project_tags(result: ContextResult) -> dict[str, list[str]]:
    slots = result.slots
    auto: list[str] = []

    name = _TAG_STRIP_RE.sub("", result.project_name.lower())
    name = re.sub(r"\s+", "-", name)[:MAX_TAG_LENGTH]
    candidates = [name] + [
        _tag(slots[key])
        for key in ("framework", "main_language", "build_tool", "hosting", "backend")
        if is_filled(slots.get(key))
    ]
    for tag in candidates:
        if tag and tag != "-" and tag not in auto:
            auto.append(tag)

    return {
        "auto_generated": auto[:MAX_AUTO_TAGS],
        "topics": [_tag(t) for t in result.topics],
    }


def missing_context(result: ContextResult) -> list[str]:
    """Applicable slots still empty, in slot order."""
    return [s for s in applicable_slots(result.project_type) if not is_filled(result.slots.get(s))]


def build_document(result: ContextResult, generated_at: datetime) -> dict[str, Any]:
    """Assemble the ordered context document for a generation result."""
    slots = result.slots
    scoring = result.scoring
    scan = result.scan
    goal = clean_text(slots.get("project_goal"))
    stack = stack_string(slots)
    name = result.project_name

    return {
        "generated": generated_at.isoformat(),
        "ai_score": f"{scoring.final_score}%",
        "ai_confidence": confidence_level(scoring.final_score),
        "ai_tldr": {
            "project": f"{name} - {goal}" if goal else name,
            "stack": stack,
        },
        "instant_context": {
            "what_building": goal,
            "tech_stack": stack,
            "main_language": slots.get("main_language"),
            "deployment": slots.get("hosting"),
            "key_files": result.key_files.files[:MAX_KEY_FILES],
        },
        "context_quality": {
            "slots_filled": (
                f"{scoring.filled_slots}/{scoring.applicable_slots} "
                f"({scoring.slot_based_percentage}%)"
            ),
            "ai_confidence": confidence_level(scoring.slot_based_percentage),
            "handoff_ready": scoring.slot_based_percentage > HANDOFF_THRESHOLD,
            "missing_context": missing_context(result),
        },
        "project": {
            "name": name,
            "goal": goal,
            "main_language": slots.get("main_language") or scan.primary_language,
            "type": result.project_type,
        },
        "stack": {
            "frontend": slots.get("framework"),
            "backend": slots.get("backend"),
            "runtime": slots.get("server"),
            "database": slots.get("database"),
            "build": slots.get("build_tool"),
            "package_manager": slots.get("package_manager"),
            "api_type": slots.get("api_type"),
            "hosting": slots.get("hosting"),
            "cicd": slots.get("cicd"),
            "test_framework": slots.get("test_framework"),
            "linter": slots.get("linter"),
        },
        "scores": {
            "context_score": scoring.final_score,
            "slot_based_percentage": scoring.slot_based_percentage,
            "total_slots": scoring.applicable_slots,
            "na_slots": scoring.na_slots,
            "bonus_points": scoring.bonus_points,
        },
        "tags": project_tags(result),
        "human_context": {
            key: clean_text(slots.get(key))
            for key in ("who", "what", "why", "where", "when", "how")
        },
        "languages": {"detected": scan.language_strings} if scan.language_strings else None,
        "structure": {
            "total_files": scan.total_files,
            "files": scan.structure[:MAX_STRUCTURE_ENTRIES],
        },
        "local_quality": {
            "score": scan.quality_score,
            "tier": scan.quality_tier,
            "factors": dict(scan.quality_factors),
            "license": scan.license_name or ("Detected" if scan.has_license else "Not found"),
        },
    }


def render_yaml(document: dict[str, Any]) -> str:
    return yaml.safe_dump(
        document,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=100,
    )
