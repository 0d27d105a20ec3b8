"""Local project scanner. No network, no model needed.

Walks the project tree, classifies files by language, parses the README,
checks for license/tests/CI/Docker, and computes a diagnostic quality score.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from pathlib import Path
from types import MappingProxyType

from .logging import get_logger
from .paths import is_dir
from .readme import ReadmeContext, load_readme
from .signals import (
    detect_cicd,
    detect_docker,
    detect_license,
    detect_tests,
    scan_top_level_structure,
)

logger = get_logger("analyzer")

UNKNOWN_LANGUAGE = "Unknown"

DEFAULT_MAX_DEPTH = 25
DEFAULT_MAX_FILES = 50_000


# --- Classification tables ---

EXT_LANG = MappingProxyType({
    # C/C++ family
    ".c": "C", ".h": "C",
    ".cpp": "C++", ".cc": "C++", ".cxx": "C++", ".c++": "C++",
    ".hpp": "C++", ".hh": "C++", ".hxx": "C++",
    ".m": "Objective-C", ".mm": "Objective-C++",
    # Web
    ".js": "JavaScript", ".mjs": "JavaScript", ".cjs": "JavaScript", ".jsx": "JavaScript",
    ".ts": "TypeScript", ".tsx": "TypeScript", ".mts": "TypeScript", ".cts": "TypeScript",
    ".html": "HTML", ".htm": "HTML",
    ".css": "CSS", ".scss": "SCSS", ".sass": "Sass", ".less": "Less",
    ".svelte": "Svelte", ".vue": "Vue",
    # Systems
    ".rs": "Rust", ".go": "Go", ".zig": "Zig",
    ".swift": "Swift", ".kt": "Kotlin", ".kts": "Kotlin",
    # JVM
    ".java": "Java", ".scala": "Scala", ".clj": "Clojure",
    ".groovy": "Groovy", ".gradle": "Groovy",
    # Scripting
    ".py": "Python", ".pyw": "Python", ".pyi": "Python",
    ".rb": "Ruby", ".erb": "Ruby",
    ".php": "PHP",
    ".pl": "Perl", ".pm": "Perl",
    ".lua": "Lua",
    ".r": "R",
    ".jl": "Julia",
    # Shell
    ".sh": "Shell", ".bash": "Shell", ".zsh": "Shell", ".fish": "Shell",
    ".ps1": "PowerShell", ".bat": "Batchfile", ".cmd": "Batchfile",
    # Data/config
    ".json": "JSON", ".yaml": "YAML", ".yml": "YAML",
    ".toml": "TOML", ".xml": "XML", ".ini": "INI",
    # GPU/shader
    ".cu": "Cuda", ".cuh": "Cuda",
    ".metal": "Metal",
    ".glsl": "GLSL", ".vert": "GLSL", ".frag": "GLSL",
    ".wgsl": "WGSL", ".hlsl": "HLSL",
    ".cmake": "CMake",
    # .NET
    ".cs": "C#", ".fs": "F#", ".vb": "Visual Basic",
    # Functional
    ".ex": "Elixir", ".exs": "Elixir",
    ".erl": "Erlang", ".hrl": "Erlang",
    ".hs": "Haskell", ".lhs": "Haskell",
    ".ml": "OCaml", ".mli": "OCaml",
    ".dart": "Dart",
    ".sol": "Solidity", ".v": "V", ".nim": "Nim", ".d": "D", ".cr": "Crystal",
    # Markup/docs
    ".md": "Markdown", ".rst": "reStructuredText",
    ".tex": "TeX", ".latex": "TeX",
})

FILENAME_LANG = MappingProxyType({
    "Dockerfile": "Dockerfile",
    "Makefile": "Makefile",
    "CMakeLists.txt": "CMake",
    "Rakefile": "Ruby",
    "Gemfile": "Ruby",
    "Vagrantfile": "Ruby",
    "Justfile": "Just",
    "Taskfile.yml": "YAML",
})

# Binary or generated files; matched against the end of the lower-cased name
# so compound suffixes like ".min.js" win over the ".js" extension.
SKIP_SUFFIXES = frozenset({
    ".png", ".jpg", ".jpeg", ".gif", ".ico", ".svg", ".webp", ".bmp",
    ".mp3", ".mp4", ".wav", ".avi", ".mov", ".flac", ".ogg",
    ".zip", ".tar", ".gz", ".bz2", ".xz", ".7z", ".rar",
    ".woff", ".woff2", ".ttf", ".eot", ".otf",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx",
    ".exe", ".dll", ".so", ".dylib", ".o", ".obj", ".a",
    ".lock", ".lockb",
    ".map", ".min.js", ".min.css",
    ".pyc", ".pyo", ".class",
    ".db", ".sqlite", ".sqlite3",
})

SKIP_FILENAMES = frozenset({"package-lock.json", "npm-shrinkwrap.json", "pnpm-lock.yaml"})

SKIP_DIRS = frozenset({
    "node_modules", ".git", ".svn", ".hg", "dist", "build", "out",
    ".next", ".nuxt", "__pycache__", ".pytest_cache", ".mypy_cache",
    "venv", ".venv", "env", ".env", "vendor", "target", ".cargo",
    "coverage", ".idea", ".vscode", "tmp", "temp", "logs",
    ".cache", ".parcel-cache", ".turbo", ".output",
    "bower_components", "jspm_packages",
    "zig-cache", "zig-out",
})

# Classified and counted, but never part of percentages or primary language.
CONFIG_LANGUAGES = frozenset({
    "JSON", "YAML", "TOML", "XML", "INI", "Markdown", "reStructuredText", "TeX",
})

CPP_SOURCE_EXTENSIONS = frozenset({".cpp", ".cc", ".cxx", ".c++"})
HEADER_EXTENSION = ".h"

QUALITY_TIERS = (
    (100, "Trophy"),
    (99, "Gold"),
    (95, "Silver"),
    (85, "Bronze"),
    (70, "Green"),
    (55, "Yellow"),
    (1, "Red"),
)
LOWEST_TIER = "White"


@dataclass
class LanguageBreakdown:
    language: str
    bytes: int
    percentage: float
    file_count: int


@dataclass
class LanguageStats:
    """Per-language totals from one walk, before percentages are derived."""

    bytes_by_language: dict[str, int] = field(default_factory=dict)
    files_by_language: dict[str, int] = field(default_factory=dict)
    header_bytes: int = 0
    header_files: int = 0
    extensions_seen: set[str] = field(default_factory=set)
    total_files: int = 0
    total_bytes: int = 0

    def add(self, language: str, size: int, ext: str) -> None:
        self.bytes_by_language[language] = self.bytes_by_language.get(language, 0) + size
        self.files_by_language[language] = self.files_by_language.get(language, 0) + 1
        if ext == HEADER_EXTENSION and language == "C":
            self.header_bytes += size
            self.header_files += 1
        self.extensions_seen.add(ext)
        self.total_files += 1
        self.total_bytes += size


@dataclass
class LanguageResult:
    languages: list[LanguageBreakdown]
    language_strings: list[str]
    primary_language: str
    total_files: int
    total_bytes: int


@dataclass
class ScanResult:
    """Complete local scan of a project directory."""

    path: str
    languages: list[LanguageBreakdown] = field(default_factory=list)
    language_strings: list[str] = field(default_factory=list)
    primary_language: str = UNKNOWN_LANGUAGE
    readme: ReadmeContext = field(default_factory=lambda: ReadmeContext(exists=False))
    has_license: bool = False
    license_name: str | None = None
    has_tests: bool = False
    has_cicd: bool = False
    cicd_platform: str | None = None
    has_docker: bool = False
    total_files: int = 0
    total_bytes: int = 0
    structure: list[dict] = field(default_factory=list)
    quality_score: int = 0
    quality_tier: str = LOWEST_TIER
    quality_factors: dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["readme"] = self.readme.to_dict()
        return data


# --- Classifier ---

def is_excluded_file(name: str) -> bool:
    """True for binary, generated and lock files."""
    lower = name.lower()
    if lower in SKIP_FILENAMES:
        return True
    return any(lower.endswith(suffix) for suffix in SKIP_SUFFIXES)


def classify_path(path: str | Path) -> str | None:
    """Map a file path to a language label, or None when it is not counted.

    Exclusion runs first, then the special-filename table, then the
    lower-cased extension table.
    """
    name = os.path.basename(str(path))
    if is_excluded_file(name):
        return None
    if name in FILENAME_LANG:
        return FILENAME_LANG[name]
    ext = os.path.splitext(name)[1].lower()
    return EXT_LANG.get(ext)


# --- Walker ---

def walk_files(
    root: str | Path,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_files: int = DEFAULT_MAX_FILES,
) -> Iterator[tuple[str, int]]:
    """Yield ``(path, size)`` for each regular file under root.

    Entries are visited in name order. Symlinks are never followed, skipped
    and hidden directories are pruned before descent, and the walk stops
    quietly at ``max_depth`` or after ``max_files`` files.
    """
    visited = 0
    stack: list[tuple[str, int]] = [(str(root), 0)]

    while stack:
        dirpath, depth = stack.pop()
        try:
            with os.scandir(dirpath) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.debug(f"Cannot list {dirpath}: {e}")
            continue

        subdirs = []
        for entry in entries:
            try:
                if entry.is_symlink():
                    continue
                if entry.is_dir(follow_symlinks=False):
                    if entry.name in SKIP_DIRS or entry.name.startswith("."):
                        continue
                    if depth + 1 > max_depth:
                        logger.debug(f"Depth limit {max_depth} reached at {entry.path}")
                        continue
                    subdirs.append(entry.path)
                elif entry.is_file(follow_symlinks=False):
                    if visited >= max_files:
                        logger.debug(f"File limit {max_files} reached, stopping walk")
                        return
                    size = entry.stat(follow_symlinks=False).st_size
                    visited += 1
                    yield entry.path, size
            except OSError as e:
                logger.debug(f"Skipping {entry.path}: {e}")

        # Reversed so the stack pops subdirectories in name order.
        for subdir in reversed(subdirs):
            stack.append((subdir, depth + 1))


# --- Language aggregation ---

def collect_language_stats(
    root: str | Path,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_files: int = DEFAULT_MAX_FILES,
) -> LanguageStats:
    stats = LanguageStats()
    for path, size in walk_files(root, max_depth=max_depth, max_files=max_files):
        language = classify_path(path)
        if language is None:
            continue
        stats.add(language, size, os.path.splitext(path)[1].lower())
    return stats


def reassign_headers(stats: LanguageStats) -> LanguageStats:
    """Move ``.h`` header totals from C to C++ when C++ sources are present.

    Needs the whole scan: a header is only a C++ header by convention of the
    other files in the project.
    """
    if not stats.header_files or not (stats.extensions_seen & CPP_SOURCE_EXTENSIONS):
        return stats

    by_bytes = dict(stats.bytes_by_language)
    by_files = dict(stats.files_by_language)
    by_bytes["C"] -= stats.header_bytes
    by_files["C"] -= stats.header_files
    by_bytes["C++"] = by_bytes.get("C++", 0) + stats.header_bytes
    by_files["C++"] = by_files.get("C++", 0) + stats.header_files
    if by_files["C"] == 0:
        del by_bytes["C"]
        del by_files["C"]

    return LanguageStats(
        bytes_by_language=by_bytes,
        files_by_language=by_files,
        header_bytes=0,
        header_files=0,
        extensions_seen=set(stats.extensions_seen),
        total_files=stats.total_files,
        total_bytes=stats.total_bytes,
    )


def build_language_result(stats: LanguageStats) -> LanguageResult:
    """Derive percentages and primary language from aggregated stats.

    Ties on byte count keep first-encountered order (sort is stable over
    the walk's insertion order). With no ranked code the primary language
    is UNKNOWN_LANGUAGE, the capitalized "Unknown" that the context file
    and the framework detector also use.
    """
    code = [
        (lang, size) for lang, size in stats.bytes_by_language.items()
        if lang not in CONFIG_LANGUAGES
    ]
    code_total = sum(size for _, size in code)

    languages = [
        LanguageBreakdown(
            language=lang,
            bytes=size,
            percentage=(size / code_total * 100) if code_total > 0 else 0.0,
            file_count=stats.files_by_language[lang],
        )
        for lang, size in code
    ]
    languages.sort(key=lambda lb: -lb.bytes)

    return LanguageResult(
        languages=languages,
        language_strings=[f"{lb.language} ({lb.percentage:.1f}%)" for lb in languages],
        primary_language=languages[0].language if languages else UNKNOWN_LANGUAGE,
        total_files=stats.total_files,
        total_bytes=stats.total_bytes,
    )


def scan_languages(
    root: str | Path,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_files: int = DEFAULT_MAX_FILES,
) -> LanguageResult:
    stats = collect_language_stats(root, max_depth=max_depth, max_files=max_files)
    return build_language_result(reassign_headers(stats))


# --- Quality scoring ---

def quality_factors(
    readme: ReadmeContext,
    languages: list[LanguageBreakdown],
    has_license: bool,
    has_tests: bool,
    has_cicd: bool,
    has_docker: bool,
) -> dict[str, bool]:
    return {
        "has_description": bool(readme.description),
        "has_readme": readme.exists,
        "has_license": has_license,
        "has_tests": has_tests,
        "has_cicd": has_cicd,
        "has_docker": has_docker,
        "has_multiple_languages": len(languages) >= 2,
        "has_structured_readme": len(readme.sections) >= 3,
    }


def calculate_quality_score(
    factors: dict[str, bool],
    language_count: int,
    total_files: int,
    readme: ReadmeContext,
) -> int:
    """Weighted 0-100 project health score. Diagnostic only."""
    score = 0

    if factors["has_readme"]:
        score += 15
    if factors["has_description"]:
        score += 15
    if factors["has_structured_readme"]:
        score += 10
    if factors["has_license"]:
        score += 10
    if factors["has_tests"]:
        score += 10
    if factors["has_cicd"]:
        score += 10
    if factors["has_docker"]:
        score += 5

    if language_count >= 3:
        score += 10
    elif language_count >= 2:
        score += 5

    if total_files >= 50:
        score += 10
    elif total_files >= 20:
        score += 7
    elif total_files >= 5:
        score += 3

    filled_fields = sum(1 for value in readme.human_fields().values() if value)
    if filled_fields >= 3:
        score += 5

    return min(100, score)


def quality_tier(score: int) -> str:
    for threshold, label in QUALITY_TIERS:
        if score >= threshold:
            return label
    return LOWEST_TIER


# --- Full scan ---

def scan_project(
    path: str | Path,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_files: int = DEFAULT_MAX_FILES,
) -> ScanResult:
    """Run the full local scan on a project directory.

    The sub-scans share no state and run in parallel; scoring starts only
    after all of them have finished.
    """
    root = Path(path).resolve()
    if not is_dir(root):
        raise ValueError(f"Not a directory: {root}")

    with ThreadPoolExecutor(max_workers=4) as pool:
        languages_future = pool.submit(scan_languages, root, max_depth, max_files)
        readme_future = pool.submit(load_readme, root)
        license_future = pool.submit(detect_license, root)
        structure_future = pool.submit(scan_top_level_structure, root)
        cicd_future = pool.submit(detect_cicd, root)
        tests_future = pool.submit(detect_tests, root)
        docker_future = pool.submit(detect_docker, root)

        lang_result = languages_future.result()
        readme = readme_future.result()
        has_license, license_name = license_future.result()
        structure = structure_future.result()
        has_cicd, cicd_platform = cicd_future.result()
        has_tests = tests_future.result()
        has_docker = docker_future.result()

    factors = quality_factors(
        readme, lang_result.languages, has_license, has_tests, has_cicd, has_docker
    )
    score = calculate_quality_score(
        factors, len(lang_result.languages), lang_result.total_files, readme
    )
    logger.debug(f"Scanned {root}: {lang_result.total_files} files, quality {score}")

    return ScanResult(
        path=str(root),
        languages=lang_result.languages,
        language_strings=lang_result.language_strings,
        primary_language=lang_result.primary_language,
        readme=readme,
        has_license=has_license,
        license_name=license_name,
        has_tests=has_tests,
        has_cicd=has_cicd,
        cicd_platform=cicd_platform,
        has_docker=has_docker,
        total_files=lang_result.total_files,
        total_bytes=lang_result.total_bytes,
        structure=structure,
        quality_score=score,
        quality_tier=quality_tier(score),
        quality_factors=factors,
    )
