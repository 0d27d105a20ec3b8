"""Filesystem detectors for auxiliary project signals.

Each detector checks a fixed, ordered list of candidate names under the
project root and returns on the first match. Missing or unreadable files
mean the signal is absent, never an error.
"""

from __future__ import annotations

import os
from pathlib import Path

from .logging import get_logger
from .paths import is_dir, is_file, path_exists

logger = get_logger("signals")

LICENSE_FILES = ("LICENSE", "LICENSE.md", "LICENSE.txt", "LICENCE", "LICENCE.md", "COPYING")

# (required phrases, license id), checked in order against upper-cased text.
LICENSE_PHRASES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("MIT LICENSE",), "MIT"),
    (("PERMISSION IS HEREBY GRANTED",), "MIT"),
    (("APACHE LICENSE", "VERSION 2.0"), "Apache-2.0"),
    (("GNU GENERAL PUBLIC LICENSE", "VERSION 3"), "GPL-3.0"),
    (("GNU GENERAL PUBLIC LICENSE", "VERSION 2"), "GPL-2.0"),
    (("GNU LESSER GENERAL PUBLIC",), "LGPL"),
    (("BSD 2-CLAUSE",), "BSD-2-Clause"),
    (("SIMPLIFIED BSD",), "BSD-2-Clause"),
    (("BSD 3-CLAUSE",), "BSD-3-Clause"),
    (("NEW BSD",), "BSD-3-Clause"),
    (("ISC LICENSE",), "ISC"),
    (("MOZILLA PUBLIC LICENSE",), "MPL-2.0"),
    (("UNLICENSE",), "Unlicense"),
    (("PUBLIC DOMAIN",), "Unlicense"),
    (("CREATIVE COMMONS",), "CC"),
)

TEST_DIRS = ("test", "tests", "__tests__", "spec", "specs", "testing")

TEST_CONFIGS = (
    "jest.config.js",
    "jest.config.ts",
    "vitest.config.ts",
    "pytest.ini",
    "setup.cfg",
    "tox.ini",
    "cypress.config.js",
    "playwright.config.ts",
    ".rspec",
)

CI_PLATFORMS: tuple[tuple[str, str], ...] = (
    (".github/workflows", "GitHub Actions"),
    (".gitlab-ci.yml", "GitLab CI"),
    ("Jenkinsfile", "Jenkins"),
    (".circleci/config.yml", "CircleCI"),
    (".travis.yml", "Travis CI"),
    ("azure-pipelines.yml", "Azure Pipelines"),
    ("bitbucket-pipelines.yml", "Bitbucket Pipelines"),
    (".drone.yml", "Drone CI"),
)

DOCKER_FILES = ("Dockerfile", "docker-compose.yml", "docker-compose.yaml", ".dockerignore")

# Hidden top-level entries that still belong in the structure listing.
VISIBLE_DOT_ENTRIES = {".github", ".devops"}


def identify_license(content: str) -> str:
    """Classify license text into an SPDX-like id, or "Custom"."""
    upper = content.upper()
    for phrases, license_id in LICENSE_PHRASES:
        if all(phrase in upper for phrase in phrases):
            return license_id
    return "Custom"


def detect_license(root: Path) -> tuple[bool, str | None]:
    for name in LICENSE_FILES:
        path = root / name
        if not is_file(path):
            continue
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug(f"Cannot read {path}: {e}")
            continue
        return True, identify_license(content)
    return False, None


def detect_tests(root: Path) -> bool:
    for name in TEST_DIRS:
        if is_dir(root / name):
            return True
    return any(path_exists(root / name) for name in TEST_CONFIGS)


def detect_cicd(root: Path) -> tuple[bool, str | None]:
    """Return the first CI/CD platform found, in CI_PLATFORMS order."""
    for rel_path, platform in CI_PLATFORMS:
        if path_exists(root / rel_path):
            return True, platform
    return False, None


def detect_docker(root: Path) -> bool:
    return any(path_exists(root / name) for name in DOCKER_FILES)


def scan_top_level_structure(root: Path) -> list[dict]:
    """List top-level entries as ``{path, type, size}`` sorted by name.

    Hidden entries are skipped except CI/devops folders. Symlinked
    directories are listed as plain files so nothing is followed.
    """
    results = []
    try:
        entries = list(os.scandir(root))
    except OSError as e:
        logger.debug(f"Cannot list {root}: {e}")
        return []

    for entry in entries:
        if entry.name.startswith(".") and entry.name not in VISIBLE_DOT_ENTRIES:
            continue
        try:
            directory = entry.is_dir(follow_symlinks=False)
            size = 0 if directory else entry.stat(follow_symlinks=False).st_size
        except OSError:
            continue
        results.append({
            "path": entry.name,
            "type": "dir" if directory else "file",
            "size": size,
        })

    return sorted(results, key=lambda e: e["path"])
