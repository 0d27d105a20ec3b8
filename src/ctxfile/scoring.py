"""Type-aware context completeness scoring.

Every context slot belongs to one category. A project type declares which
categories apply to it; slots outside those categories are N/A and leave
both the numerator and the denominator. Raw slot points are scaled so a
fully filled project of any type reaches the same ceiling, and auxiliary
quality signals add bonus points on top.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from .logging import get_logger

logger = get_logger("scoring")

CATEGORIES = ("project", "frontend", "backend", "universal", "human")

SLOT_CATEGORIES: Mapping[str, str] = MappingProxyType({
    "project_name": "project",
    "project_goal": "project",
    "main_language": "project",
    "framework": "frontend",
    "backend": "backend",
    "server": "backend",
    "api_type": "backend",
    "database": "backend",
    "hosting": "universal",
    "cicd": "universal",
    "build_tool": "universal",
    "package_manager": "universal",
    "test_framework": "universal",
    "linter": "universal",
    "who": "human",
    "what": "human",
    "why": "human",
    "where": "human",
    "when": "human",
    "how": "human",
})

TECHNICAL_SLOTS = (
    "project_name", "project_goal", "main_language", "framework",
    "backend", "server", "api_type", "database", "hosting",
    "cicd", "build_tool", "package_manager", "test_framework", "linter",
)
HUMAN_SLOTS = ("who", "what", "why", "where", "when", "how")
TOTAL_SLOTS = len(TECHNICAL_SLOTS) + len(HUMAN_SLOTS)

TECHNICAL_SLOT_POINTS = 4
HUMAN_SLOT_POINTS = 5
# 14 * 4 + 6 * 5: the ceiling every project type is scaled to.
MAX_SLOT_POINTS = 86
MAX_FINAL_SCORE = 99

_CLI = ("project", "universal", "human")
_LIBRARY = ("project", "universal", "human")
_AI = ("project", "backend", "human")
_BACKEND = ("project", "backend", "universal", "human")
_FRONTEND = ("project", "frontend", "universal", "human")
_FULLSTACK = ("project", "frontend", "backend", "universal", "human")
_APP = ("project", "frontend", "human")
_INFRA = ("project", "human")

TYPE_CATEGORIES: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "cli": _CLI,
    "cli-tool": _CLI,
    "cli-ts": _CLI,
    "cli-js": _CLI,
    "library": _LIBRARY,
    "npm-package": _LIBRARY,
    "pip-package": _LIBRARY,
    "crate": _LIBRARY,
    "typescript": _LIBRARY,
    "data-science": _AI,
    "ml-model": _AI,
    "mcp-server": _AI,
    "backend-api": _BACKEND,
    "node-api": _BACKEND,
    "node-api-ts": _BACKEND,
    "python-api": _BACKEND,
    "python-app": _AI,
    "python-generic": _AI,
    "go-api": _BACKEND,
    "rust-api": _BACKEND,
    "frontend": _FRONTEND,
    "react": _FRONTEND,
    "react-ts": _FRONTEND,
    "vue": _FRONTEND,
    "vue-ts": _FRONTEND,
    "svelte": _FRONTEND,
    "svelte-ts": _FRONTEND,
    "angular": _FRONTEND,
    "static-html": ("project", "frontend", "human"),
    "fullstack": _FULLSTACK,
    "fullstack-ts": _FULLSTACK,
    "nextjs": _FULLSTACK,
    "django": _FULLSTACK,
    "rails": _FULLSTACK,
    "mobile": _APP,
    "react-native": _APP,
    "flutter": _APP,
    "ios": _APP,
    "android": _APP,
    "desktop": _APP,
    "electron": _APP,
    "tauri": _APP,
    "terraform": _INFRA,
    "kubernetes": _INFRA,
    "docker": _INFRA,
    "infrastructure": _INFRA,
    "documentation": _INFRA,
    "cookbook": _INFRA,
})

DEFAULT_TYPE = "fullstack"

# Project types as an AI summarizer names them -> canonical type keys.
AI_TYPE_ALIASES: Mapping[str, str] = MappingProxyType({
    "cli": "cli",
    "library": "library",
    "web-app": "frontend",
    "api": "backend-api",
    "mobile-app": "mobile",
    "desktop-app": "desktop",
    "framework": "library",
    "tool": "cli",
    "plugin": "library",
    "data-science": "data-science",
    "devops": "infrastructure",
})

SYSTEMS_LANGUAGES = frozenset({"C", "C++", "Rust", "Go", "Zig"})

WEB_FRAMEWORKS = frozenset({
    "next.js", "nuxt.js", "sveltekit", "remix", "gatsby", "astro", "angular",
    "react", "vue", "svelte", "express", "fastify", "koa", "nestjs",
    "django", "fastapi", "flask", "starlette", "tornado", "rails", "sinatra",
    "laravel", "symfony", "actix web", "axum", "rocket", "warp",
    "gin", "echo", "fiber", "gorilla mux",
})

DOCUMENTATION_GRADE_BONUS: Mapping[str, int] = MappingProxyType({
    "EXCEPTIONAL": 20,
    "PROFESSIONAL": 15,
    "GOOD": 10,
    "BASIC": 5,
})

# (exclusive lower bound on depth, bonus), highest first.
EXTRACTION_DEPTH_BONUS = ((80, 15), (60, 10), (40, 5))

TYPED_BONUS = 5
STRICT_TYPING_BONUS = 5


@dataclass(frozen=True)
class BonusSignals:
    """Auxiliary quality signals rewarded on top of slot completeness."""

    documentation_grade: str | None = None
    extraction_depth: int = 0
    typed: bool = False
    strict_typing: bool = False


@dataclass(frozen=True)
class ScoringResult:
    filled_slots: int
    applicable_slots: int
    na_slots: int
    raw_score: float
    final_score: int
    slot_based_percentage: int
    bonus_points: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "filled_slots": self.filled_slots,
            "applicable_slots": self.applicable_slots,
            "na_slots": self.na_slots,
            "raw_score": round(self.raw_score, 2),
            "final_score": self.final_score,
            "slot_based_percentage": self.slot_based_percentage,
            "bonus_points": self.bonus_points,
        }


# --- Slot filling ---

def is_filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


def fill_if_absent(slots: dict[str, Any], key: str, value: Any) -> bool:
    """Set ``slots[key]`` only if it is still empty and value is non-empty."""
    if is_filled(slots.get(key)) or not is_filled(value):
        return False
    slots[key] = value
    return True


def apply_contributions(
    slots: dict[str, Any],
    contributions: Iterable[tuple[str, Any]],
    source: str = "",
) -> list[str]:
    """Apply ``(slot, value)`` pairs in order; earlier fills always win.

    Returns the keys this call filled.
    """
    filled = []
    for key, value in contributions:
        if fill_if_absent(slots, key, value):
            logger.debug(f"slot {key} <- {source or 'unknown source'}")
            filled.append(key)
    return filled


# --- Type inference ---

def normalize_type_name(name: str) -> str:
    """Type key form of a name: lower-cased, spaces to hyphens (React Native -> react-native)."""
    return name.strip().lower().replace(" ", "-")


def infer_project_type(
    primary_language: str,
    ai_type: str | None = None,
    framework: str | None = None,
    legacy_type: str | None = None,
) -> str:
    """Choose the project's archetype, first applicable signal wins.

    1. AI type hint, through AI_TYPE_ALIASES or as a direct key.
    2. Framework detector result, normalized.
    3. Systems primary language without a web framework -> library.
    4. Legacy classification, if it is a known key.
    5. DEFAULT_TYPE, which treats every category as applicable.
    """
    if ai_type:
        hint = normalize_type_name(ai_type)
        mapped = AI_TYPE_ALIASES.get(hint)
        if mapped and mapped in TYPE_CATEGORIES:
            return mapped
        if hint in TYPE_CATEGORIES:
            return hint

    has_framework = bool(framework) and framework != "Unknown"
    if has_framework:
        fw = normalize_type_name(framework)
        if fw in TYPE_CATEGORIES:
            return fw

    web_framework = has_framework and framework.strip().lower() in WEB_FRAMEWORKS
    if primary_language in SYSTEMS_LANGUAGES and not web_framework:
        return "library"

    if legacy_type and legacy_type in TYPE_CATEGORIES:
        return legacy_type

    return DEFAULT_TYPE


def applicable_categories(project_type: str) -> tuple[str, ...]:
    return TYPE_CATEGORIES.get(project_type, CATEGORIES)


def applicable_slots(project_type: str) -> list[str]:
    categories = applicable_categories(project_type)
    return [slot for slot, category in SLOT_CATEGORIES.items() if category in categories]


# --- Scoring ---

def round_half_up(value: float) -> int:
    # round() rounds half to even; scores round .5 upward.
    return math.floor(value + 0.5 + 1e-9)


def calculate_bonus(bonuses: BonusSignals) -> int:
    bonus = DOCUMENTATION_GRADE_BONUS.get(bonuses.documentation_grade or "", 0)
    for floor, points in EXTRACTION_DEPTH_BONUS:
        if bonuses.extraction_depth > floor:
            bonus += points
            break
    if bonuses.typed:
        bonus += TYPED_BONUS
        if bonuses.strict_typing:
            bonus += STRICT_TYPING_BONUS
    return bonus


def score_slots(
    project_type: str,
    slots: Mapping[str, Any],
    bonuses: BonusSignals | None = None,
    bonus_cap: float | None = None,
) -> ScoringResult:
    """Score context completeness for a project type.

    Args:
        project_type: canonical type key; unknown keys make every slot applicable.
        slots: slot name -> value; empty values count as unfilled.
        bonuses: auxiliary signals added on top of the scaled slot score.
        bonus_cap: optional ceiling on bonus points. ``None`` keeps bonuses
            unbounded relative to slots, so only the final 99 cap applies.
    """
    categories = applicable_categories(project_type)
    applicable_tech = [s for s in TECHNICAL_SLOTS if SLOT_CATEGORIES[s] in categories]
    applicable_human = [s for s in HUMAN_SLOTS if SLOT_CATEGORIES[s] in categories]

    total_applicable = len(applicable_tech) + len(applicable_human)
    na_count = TOTAL_SLOTS - total_applicable

    raw_max = len(applicable_tech) * TECHNICAL_SLOT_POINTS + len(applicable_human) * HUMAN_SLOT_POINTS
    scale = MAX_SLOT_POINTS / raw_max if raw_max > 0 else 1

    score = 0.0
    filled = 0
    for slot in applicable_tech:
        if is_filled(slots.get(slot)):
            filled += 1
            score += TECHNICAL_SLOT_POINTS * scale
    for slot in applicable_human:
        if is_filled(slots.get(slot)):
            filled += 1
            score += HUMAN_SLOT_POINTS * scale

    slot_percentage = round_half_up(100 * filled / total_applicable) if total_applicable else 0

    bonus = calculate_bonus(bonuses) if bonuses else 0
    if bonus_cap is not None:
        bonus = min(bonus, int(bonus_cap))
    score += bonus

    return ScoringResult(
        filled_slots=filled,
        applicable_slots=total_applicable,
        na_slots=na_count,
        raw_score=score,
        final_score=min(round_half_up(score), MAX_FINAL_SCORE),
        slot_based_percentage=slot_percentage,
        bonus_points=bonus,
    )
