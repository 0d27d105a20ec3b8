"""Shared fixtures: small projects built on disk."""

import logging
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _detach_log_handlers():
    """Drop handlers installed by configure_logging during a test."""
    yield
    logger = logging.getLogger("ctxfile")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def deny_paths(monkeypatch):
    """Make Path existence checks under the named directories raise EACCES.

    chmod 000 does not stop root, so the unreadable-parent behaviour of
    ``Path.exists`` is reproduced directly.
    """

    def deny(*names):
        for method in ("exists", "is_file", "is_dir"):
            original = getattr(Path, method)

            def check(self, *args, _original=original, **kwargs):
                if any(name in self.parts for name in names):
                    raise PermissionError(13, "Permission denied", str(self))
                return _original(self, *args, **kwargs)

            monkeypatch.setattr(Path, method, check)

    return deny


@pytest.fixture
def fastapi_repo(tmp_path):
    """A typed FastAPI service with Docker, CI, tests and a linter."""
    (tmp_path / "README.md").write_text(
        "# Shop API\n\nOrders and payments over HTTP.\n\n## Usage\n\nRun uvicorn.\n"
    )
    (tmp_path / "pyproject.toml").write_text(
        '[project]\nname = "shop-api"\ndescription = "Order API"\n'
        'dependencies = ["fastapi>=0.110", "sqlalchemy>=2.0", "psycopg2-binary"]\n'
        "\n[tool.mypy]\nstrict = true\n"
    )
    src = tmp_path / "src" / "shop"
    src.mkdir(parents=True)
    (src / "__init__.py").write_text("")
    (src / "main.py").write_text("from fastapi import FastAPI\napp = FastAPI()\n")
    tests = tmp_path / "tests"
    tests.mkdir()
    (tests / "conftest.py").write_text("import pytest\n")
    (tmp_path / "Dockerfile").write_text("FROM python:3.12\n")
    (tmp_path / "ruff.toml").write_text("line-length = 100\n")
    ci = tmp_path / ".github" / "workflows"
    ci.mkdir(parents=True)
    (ci / "ci.yml").write_text("name: CI\n")
    return tmp_path
