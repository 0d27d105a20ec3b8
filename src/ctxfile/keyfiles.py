"""Key project file discovery.

Looks for well-known project files at the root (and a few fixed
subpaths), grades how much structure and documentation they reveal, and
picks up build tool, linter, test framework and static-typing signals.
"""

from __future__ import annotations

import json
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .logging import get_logger
from .paths import any_match, is_file, path_exists

logger = get_logger("keyfiles")

GRADES = ("MINIMAL", "BASIC", "GOOD", "PROFESSIONAL", "EXCEPTIONAL")

# path -> (grade, extraction depth points)
KEY_FILES: dict[str, tuple[str, int]] = {
    "README.md": ("BASIC", 10),
    "README.rst": ("BASIC", 10),
    "LICENSE": ("BASIC", 5),
    "LICENSE.md": ("BASIC", 5),
    "package.json": ("GOOD", 15),
    "pyproject.toml": ("GOOD", 15),
    "setup.py": ("BASIC", 10),
    "requirements.txt": ("BASIC", 5),
    "Cargo.toml": ("GOOD", 15),
    "go.mod": ("GOOD", 15),
    "pom.xml": ("GOOD", 15),
    "build.gradle": ("GOOD", 15),
    "build.gradle.kts": ("GOOD", 15),
    "Gemfile": ("GOOD", 10),
    "composer.json": ("GOOD", 10),
    "Package.swift": ("GOOD", 10),
    "CMakeLists.txt": ("GOOD", 10),
    "Makefile": ("BASIC", 5),
    "tsconfig.json": ("GOOD", 10),
    "Dockerfile": ("GOOD", 10),
    "docker-compose.yml": ("GOOD", 5),
    ".github/workflows": ("GOOD", 10),
    ".gitlab-ci.yml": ("GOOD", 10),
    "CONTRIBUTING.md": ("PROFESSIONAL", 10),
    "CHANGELOG.md": ("PROFESSIONAL", 10),
    "SECURITY.md": ("PROFESSIONAL", 5),
    "CODE_OF_CONDUCT.md": ("PROFESSIONAL", 5),
    "docs": ("PROFESSIONAL", 10),
    "ARCHITECTURE.md": ("EXCEPTIONAL", 15),
    "CLAUDE.md": ("EXCEPTIONAL", 10),
}

# First match wins.
BUILD_TOOLS: tuple[tuple[str, str], ...] = (
    ("CMakeLists.txt", "CMake"),
    ("Makefile", "Make"),
    ("meson.build", "Meson"),
    ("build.gradle", "Gradle"),
    ("build.gradle.kts", "Gradle"),
    ("pom.xml", "Maven"),
    ("build.zig", "Zig Build"),
    ("vite.config.ts", "Vite"),
    ("vite.config.js", "Vite"),
    ("webpack.config.js", "Webpack"),
    ("rollup.config.js", "Rollup"),
)

LINTERS: tuple[tuple[str, str], ...] = (
    ("eslint.config.js", "ESLint"),
    ("eslint.config.mjs", "ESLint"),
    (".eslintrc.json", "ESLint"),
    (".eslintrc.js", "ESLint"),
    (".eslintrc", "ESLint"),
    ("biome.json", "Biome"),
    ("ruff.toml", "Ruff"),
    (".ruff.toml", "Ruff"),
    (".flake8", "Flake8"),
    (".pylintrc", "Pylint"),
    (".golangci.yml", "golangci-lint"),
    ("clippy.toml", "Clippy"),
    (".rubocop.yml", "RuboCop"),
    (".clang-tidy", "clang-tidy"),
)

TEST_FRAMEWORKS: tuple[tuple[str, str], ...] = (
    ("jest.config.js", "Jest"),
    ("jest.config.ts", "Jest"),
    ("jest.config.mjs", "Jest"),
    ("vitest.config.ts", "Vitest"),
    ("vitest.config.js", "Vitest"),
    ("vitest.config.mts", "Vitest"),
    ("pytest.ini", "pytest"),
    ("conftest.py", "pytest"),
    ("tests/conftest.py", "pytest"),
    ("tox.ini", "pytest"),
    ("phpunit.xml", "PHPUnit"),
    ("phpunit.xml.dist", "PHPUnit"),
    (".rspec", "RSpec"),
    ("playwright.config.ts", "Playwright"),
    ("cypress.config.js", "Cypress"),
)


@dataclass
class KeyFileAnalysis:
    """Known files found in the project and what they tell us."""

    files: list[str] = field(default_factory=list)
    highest_grade: str = "MINIMAL"
    depth: int = 0
    typed: bool = False
    strict_typing: bool = False
    build_tool: str | None = None
    linter: str | None = None
    test_framework: str | None = None


def _first_present(root: Path, table: tuple[tuple[str, str], ...]) -> str | None:
    for rel_path, label in table:
        if path_exists(root / rel_path):
            return label
    return None


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug(f"Cannot read {path}: {e}")
        return None


def _tsconfig_strict(path: Path) -> bool:
    text = _read_text(path)
    if text is None:
        return False
    # tsconfig allows comments and trailing commas; fall back to a regex search.
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return re.search(r'"strict"\s*:\s*true', text) is not None
    options = data.get("compilerOptions") if isinstance(data, dict) else None
    return isinstance(options, dict) and options.get("strict") is True


def _python_typing(root: Path) -> tuple[bool, bool]:
    typed = False
    strict = False

    mypy_ini = root / "mypy.ini"
    if is_file(mypy_ini):
        typed = True
        text = _read_text(mypy_ini) or ""
        strict = re.search(r"^\s*strict\s*=\s*(true|1)", text, re.MULTILINE | re.IGNORECASE) is not None

    pyright = root / "pyrightconfig.json"
    if is_file(pyright):
        typed = True
        text = _read_text(pyright) or ""
        strict = strict or re.search(r'"typeCheckingMode"\s*:\s*"strict"', text) is not None

    pyproject = root / "pyproject.toml"
    if is_file(pyproject):
        text = _read_text(pyproject) or ""
        try:
            tool = tomllib.loads(text).get("tool", {})
        except tomllib.TOMLDecodeError:
            logger.debug(f"Malformed {pyproject}")
            tool = {}
        mypy = tool.get("mypy")
        if isinstance(mypy, dict):
            typed = True
            strict = strict or mypy.get("strict") is True
        pyright_cfg = tool.get("pyright")
        if isinstance(pyright_cfg, dict):
            typed = True
            strict = strict or pyright_cfg.get("typeCheckingMode") == "strict"

    if not typed and any_match(root, "src/*/py.typed"):
        typed = True

    return typed, strict


def detect_static_typing(root: Path) -> tuple[bool, bool]:
    """Return ``(typed, strict)`` for TypeScript or type-checked Python."""
    tsconfig = root / "tsconfig.json"
    if is_file(tsconfig):
        return True, _tsconfig_strict(tsconfig)
    return _python_typing(root)


def analyze_key_files(root: str | Path) -> KeyFileAnalysis:
    root = Path(root)
    analysis = KeyFileAnalysis()

    grade_rank = 0
    depth = 0
    for rel_path, (grade, points) in KEY_FILES.items():
        if not path_exists(root / rel_path):
            continue
        analysis.files.append(rel_path)
        grade_rank = max(grade_rank, GRADES.index(grade))
        depth += points

    analysis.highest_grade = GRADES[grade_rank]
    analysis.depth = min(100, depth)
    analysis.typed, analysis.strict_typing = detect_static_typing(root)
    analysis.build_tool = _first_present(root, BUILD_TOOLS)
    analysis.linter = _first_present(root, LINTERS)
    analysis.test_framework = _first_present(root, TEST_FRAMEWORKS)
    return analysis
