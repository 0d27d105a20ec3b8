"""Context generator - combines the local scan, manifests and AI summary.

Collects slot values from every source in a fixed priority order, infers
the project type, and scores completeness for that type.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .analyzer import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_FILES,
    UNKNOWN_LANGUAGE,
    ScanResult,
    scan_project,
)
from .keyfiles import KeyFileAnalysis, analyze_key_files
from .logging import get_logger
from .manifests import (
    BACKEND_FRAMEWORKS,
    FrameworkResult,
    ManifestInfo,
    detect_api_type,
    detect_database,
    detect_framework,
    legacy_project_type,
    read_manifests,
)
from .model import ReadmeSummary, summarize_readme
from .paths import is_dir
from .readme import read_readme_text
from .scoring import (
    BonusSignals,
    ScoringResult,
    apply_contributions,
    infer_project_type,
    normalize_type_name,
    score_slots,
)

logger = get_logger("generator")

TESTS_DETECTED = "Detected (tests/ directory)"

# Package manager -> where a published package lives.
REGISTRY_HOSTING = {
    "npm": "npm registry",
    "pnpm": "npm registry",
    "Yarn": "npm registry",
    "Bun": "npm registry",
    "pip": "PyPI",
    "Poetry": "PyPI",
    "uv": "PyPI",
    "Cargo": "crates.io",
    "Composer": "Packagist",
    "Bundler": "RubyGems",
}


@dataclass
class GenerateOptions:
    """Caller-supplied values and knobs for one generation run."""

    project_type: str | None = None
    name: str | None = None
    goal: str | None = None
    language: str | None = None
    framework: str | None = None
    ai: str = "auto"
    model: str | None = None
    max_depth: int = DEFAULT_MAX_DEPTH
    max_files: int = DEFAULT_MAX_FILES
    bonus_cap: float | None = None


@dataclass
class ContextResult:
    """Everything known about a project, ready for output."""

    scan: ScanResult
    manifest: ManifestInfo
    framework: FrameworkResult
    key_files: KeyFileAnalysis
    ai_summary: ReadmeSummary | None
    slots: dict[str, Any]
    slot_sources: dict[str, str]
    project_type: str
    scoring: ScoringResult
    topics: list[str] = field(default_factory=list)

    @property
    def project_name(self) -> str:
        return self.slots.get("project_name") or Path(self.scan.path).name

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_type": self.project_type,
            "slots": dict(self.slots),
            "slot_sources": dict(self.slot_sources),
            "scoring": self.scoring.to_dict(),
            "topics": list(self.topics),
            "ai_summary": self.ai_summary.to_dict() if self.ai_summary else None,
            "scan": self.scan.to_dict(),
        }


def _user_contributions(options: GenerateOptions) -> list[tuple[str, Any]]:
    return [
        ("project_name", options.name),
        ("project_goal", options.goal),
        ("main_language", options.language),
        ("framework", options.framework),
    ]


def _framework_contributions(framework: FrameworkResult) -> list[tuple[str, Any]]:
    name = framework.framework if framework.framework != "Unknown" else None
    return [
        ("framework", name),
        ("main_language", framework.language),
        ("package_manager", framework.ecosystem),
    ]


def _ai_contributions(summary: ReadmeSummary | None) -> list[tuple[str, Any]]:
    if summary is None:
        return []
    return [("project_goal", summary.description), *summary.human_fields().items()]


def _readme_contributions(scan: ScanResult) -> list[tuple[str, Any]]:
    readme = scan.readme
    return [
        ("project_name", readme.name),
        ("project_goal", readme.description),
        *readme.human_fields().items(),
    ]


def _detector_contributions(scan: ScanResult, key_files: KeyFileAnalysis) -> list[tuple[str, Any]]:
    return [
        ("cicd", scan.cicd_platform),
        ("test_framework", key_files.test_framework),
        ("test_framework", TESTS_DETECTED if scan.has_tests else None),
        ("hosting", "Docker" if scan.has_docker else None),
        ("build_tool", key_files.build_tool),
        ("linter", key_files.linter),
        ("license", scan.license_name),
    ]


def _manifest_contributions(
    manifest: ManifestInfo, framework: FrameworkResult
) -> list[tuple[str, Any]]:
    backend = framework.framework if framework.framework in BACKEND_FRAMEWORKS else None
    hosting = REGISTRY_HOSTING.get(manifest.package_manager or "") if manifest.name else None
    return [
        ("project_name", manifest.name),
        ("project_goal", manifest.description),
        ("package_manager", manifest.package_manager),
        ("backend", backend),
        ("server", manifest.runtime),
        ("api_type", detect_api_type(manifest, framework)),
        ("database", detect_database(manifest)),
        ("hosting", hosting),
    ]


def _summarize(scan: ScanResult, options: GenerateOptions, project_name: str) -> ReadmeSummary | None:
    if options.ai == "off" or not scan.readme.exists:
        return None
    readme_text = read_readme_text(Path(scan.path))
    if not readme_text:
        return None
    return summarize_readme(
        readme_text,
        scan.language_strings,
        project_name,
        provider=options.ai,
        model=options.model,
    )


def generate_context(path: str | Path, options: GenerateOptions | None = None) -> ContextResult:
    """Build the full project context for ``path``.

    Raises:
        ValueError: if ``path`` is not a directory.
    """
    options = options or GenerateOptions()
    root = Path(path).resolve()
    if not is_dir(root):
        raise ValueError(f"Not a directory: {root}")

    scan = scan_project(root, max_depth=options.max_depth, max_files=options.max_files)

    with ThreadPoolExecutor(max_workers=2) as pool:
        manifest_future = pool.submit(read_manifests, root)
        key_files_future = pool.submit(analyze_key_files, root)
        manifest = manifest_future.result()
        key_files = key_files_future.result()

    framework = detect_framework(manifest)
    name_hint = options.name or scan.readme.name or manifest.name or root.name
    ai_summary = _summarize(scan, options, name_hint)

    primary = scan.primary_language if scan.primary_language != UNKNOWN_LANGUAGE else None
    sources: list[tuple[str, list[tuple[str, Any]]]] = [
        ("user", _user_contributions(options)),
        ("scanner", [("main_language", primary)]),
        ("framework", _framework_contributions(framework)),
        ("ai", _ai_contributions(ai_summary)),
        ("readme", _readme_contributions(scan)),
        ("detectors", _detector_contributions(scan, key_files)),
        ("manifest", _manifest_contributions(manifest, framework)),
    ]

    slots: dict[str, Any] = {}
    slot_sources: dict[str, str] = {}
    for source, contributions in sources:
        for key in apply_contributions(slots, contributions, source=source):
            slot_sources[key] = source

    legacy = normalize_type_name(options.project_type) if options.project_type else None
    project_type = infer_project_type(
        scan.primary_language,
        ai_type=ai_summary.project_type if ai_summary else None,
        framework=framework.framework,
        legacy_type=legacy or legacy_project_type(manifest, framework),
    )
    logger.debug(f"Project type for {root.name}: {project_type}")

    bonuses = BonusSignals(
        documentation_grade=key_files.highest_grade,
        extraction_depth=key_files.depth,
        typed=key_files.typed,
        strict_typing=key_files.strict_typing,
    )
    scoring = score_slots(project_type, slots, bonuses=bonuses, bonus_cap=options.bonus_cap)

    return ContextResult(
        scan=scan,
        manifest=manifest,
        framework=framework,
        key_files=key_files,
        ai_summary=ai_summary,
        slots=slots,
        slot_sources=slot_sources,
        project_type=project_type,
        scoring=scoring,
        topics=ai_summary.topics if ai_summary else [],
    )
