"""Package manifest readers and framework detection.

Reads package.json, pyproject.toml, Cargo.toml, go.mod, requirements.txt,
Gemfile and composer.json for name, description, package manager and
dependencies. Unparsable manifests are skipped.
"""

from __future__ import annotations

import json
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .logging import get_logger
from .paths import is_file, path_exists

logger = get_logger("manifests")

MANIFEST_READ_LIMIT = 200_000


@dataclass
class ManifestInfo:
    """What the project's package manifests declare."""

    name: str | None = None
    description: str | None = None
    package_manager: str | None = None
    language: str | None = None
    runtime: str | None = None
    dependencies: list[str] = field(default_factory=list)
    manifests: list[str] = field(default_factory=list)
    is_cli: bool = False

    def has_dependency(self, *names: str) -> bool:
        deps = set(self.dependencies)
        return any(name in deps for name in names)


@dataclass
class FrameworkResult:
    framework: str = "Unknown"
    language: str | None = None
    ecosystem: str | None = None


# dependency -> framework name, in detection priority order
# (meta-frameworks before UI libraries before backend frameworks).
FRAMEWORK_DEPENDENCIES: tuple[tuple[str, str], ...] = (
    ("next", "Next.js"),
    ("nuxt", "Nuxt.js"),
    ("@sveltejs/kit", "SvelteKit"),
    ("@remix-run/react", "Remix"),
    ("gatsby", "Gatsby"),
    ("astro", "Astro"),
    ("react-native", "React Native"),
    ("electron", "Electron"),
    ("@tauri-apps/api", "Tauri"),
    ("@angular/core", "Angular"),
    ("react", "React"),
    ("vue", "Vue"),
    ("svelte", "Svelte"),
    ("express", "Express"),
    ("fastify", "Fastify"),
    ("koa", "Koa"),
    ("@nestjs/core", "NestJS"),
    ("django", "Django"),
    ("fastapi", "FastAPI"),
    ("flask", "Flask"),
    ("starlette", "Starlette"),
    ("tornado", "Tornado"),
    ("rails", "Rails"),
    ("sinatra", "Sinatra"),
    ("laravel/framework", "Laravel"),
    ("symfony/framework-bundle", "Symfony"),
    ("actix-web", "Actix Web"),
    ("axum", "Axum"),
    ("rocket", "Rocket"),
    ("warp", "Warp"),
    ("tauri", "Tauri"),
    ("github.com/gin-gonic/gin", "Gin"),
    ("github.com/labstack/echo", "Echo"),
    ("github.com/gofiber/fiber", "Fiber"),
    ("github.com/gorilla/mux", "Gorilla Mux"),
)

BACKEND_FRAMEWORKS = frozenset({
    "Express", "Fastify", "Koa", "NestJS", "Django", "FastAPI", "Flask",
    "Starlette", "Tornado", "Rails", "Sinatra", "Laravel", "Symfony",
    "Actix Web", "Axum", "Rocket", "Warp", "Gin", "Echo", "Fiber", "Gorilla Mux",
})

DATABASE_DEPENDENCIES: tuple[tuple[str, str], ...] = (
    ("pg", "PostgreSQL"),
    ("postgres", "PostgreSQL"),
    ("psycopg2", "PostgreSQL"),
    ("psycopg2-binary", "PostgreSQL"),
    ("psycopg", "PostgreSQL"),
    ("asyncpg", "PostgreSQL"),
    ("mysql2", "MySQL"),
    ("mysqlclient", "MySQL"),
    ("pymysql", "MySQL"),
    ("mongoose", "MongoDB"),
    ("mongodb", "MongoDB"),
    ("pymongo", "MongoDB"),
    ("better-sqlite3", "SQLite"),
    ("sqlite3", "SQLite"),
    ("redis", "Redis"),
    ("ioredis", "Redis"),
    ("@prisma/client", "Prisma"),
    ("prisma", "Prisma"),
    ("drizzle-orm", "Drizzle ORM"),
    ("typeorm", "TypeORM"),
    ("sqlalchemy", "SQLAlchemy"),
    ("diesel", "Diesel"),
    ("sqlx", "SQLx"),
    ("gorm.io/gorm", "GORM"),
)

CLI_DEPENDENCIES = frozenset({
    "commander", "yargs", "oclif", "@oclif/core", "inquirer", "meow", "cac",
    "click", "typer", "fire",
    "clap", "structopt", "argh",
    "github.com/spf13/cobra", "github.com/urfave/cli",
    "thor",
})


def _read(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8", errors="replace")[:MANIFEST_READ_LIMIT]
    except OSError as e:
        logger.debug(f"Cannot read {path}: {e}")
        return None


def _requirement_name(requirement: str) -> str | None:
    match = re.match(r"^\s*([A-Za-z0-9_.\-]+)", requirement)
    return match.group(1).lower() if match else None


def _read_package_json(content: str, info: ManifestInfo, root: Path) -> None:
    try:
        pkg = json.loads(content)
    except json.JSONDecodeError:
        logger.debug("Malformed package.json, skipping")
        return
    if not isinstance(pkg, dict):
        return

    info.name = info.name or pkg.get("name") or None
    info.description = info.description or pkg.get("description") or None
    info.language = info.language or "JavaScript"

    deps: list[str] = []
    for dep_key in ("dependencies", "devDependencies", "peerDependencies"):
        section = pkg.get(dep_key)
        if isinstance(section, dict):
            deps.extend(section.keys())
    info.dependencies.extend(deps)
    if "typescript" in deps:
        info.language = "TypeScript"

    if path_exists(root / "bun.lockb"):
        info.package_manager = info.package_manager or "Bun"
        info.runtime = "Bun"
    elif path_exists(root / "pnpm-lock.yaml"):
        info.package_manager = info.package_manager or "pnpm"
    elif path_exists(root / "yarn.lock"):
        info.package_manager = info.package_manager or "Yarn"
    else:
        info.package_manager = info.package_manager or "npm"

    engines = pkg.get("engines")
    if info.runtime is None:
        if isinstance(engines, dict) and engines.get("node"):
            info.runtime = f"Node.js {engines['node']}"
        else:
            info.runtime = "Node.js"

    keywords = pkg.get("keywords") if isinstance(pkg.get("keywords"), list) else []
    if (
        pkg.get("bin")
        or "cli" in str(pkg.get("name", ""))
        or "cli" in keywords
        or "command-line" in keywords
        or CLI_DEPENDENCIES.intersection(deps)
    ):
        info.is_cli = True


def _read_pyproject(content: str, info: ManifestInfo, root: Path) -> None:
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError:
        logger.debug("Malformed pyproject.toml, skipping")
        return

    info.language = info.language or "Python"
    project = data.get("project", {})
    poetry = data.get("tool", {}).get("poetry", {})

    info.name = info.name or project.get("name") or poetry.get("name") or None
    info.description = (
        info.description or project.get("description") or poetry.get("description") or None
    )

    if poetry:
        info.package_manager = info.package_manager or "Poetry"
        deps = [name.lower() for name in poetry.get("dependencies", {}) if name != "python"]
    else:
        if path_exists(root / "uv.lock"):
            info.package_manager = info.package_manager or "uv"
        info.package_manager = info.package_manager or "pip"
        deps = [
            name for name in (_requirement_name(d) for d in project.get("dependencies", []))
            if name
        ]
        for extra in project.get("optional-dependencies", {}).values():
            deps.extend(name for name in (_requirement_name(d) for d in extra) if name)
    info.dependencies.extend(deps)

    if project.get("scripts") or poetry.get("scripts") or CLI_DEPENDENCIES.intersection(deps):
        info.is_cli = True


def _read_requirements(content: str, info: ManifestInfo, root: Path) -> None:
    info.language = info.language or "Python"
    info.package_manager = info.package_manager or "pip"
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith(("#", "-")):
            continue
        name = _requirement_name(line)
        if name:
            info.dependencies.append(name)


def _read_cargo(content: str, info: ManifestInfo, root: Path) -> None:
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError:
        logger.debug("Malformed Cargo.toml, skipping")
        return

    info.language = info.language or "Rust"
    info.package_manager = info.package_manager or "Cargo"
    package = data.get("package", {})
    info.name = info.name or package.get("name") or None
    info.description = info.description or package.get("description") or None

    deps = list(data.get("dependencies", {}).keys())
    deps.extend(data.get("dev-dependencies", {}).keys())
    info.dependencies.extend(deps)
    if data.get("bin") or CLI_DEPENDENCIES.intersection(deps):
        info.is_cli = True


def _read_go_mod(content: str, info: ManifestInfo, root: Path) -> None:
    info.language = info.language or "Go"
    info.package_manager = info.package_manager or "Go modules"
    module = re.search(r"^module\s+(\S+)", content, re.MULTILINE)
    if module:
        info.name = info.name or module.group(1).rstrip("/").split("/")[-1]
    deps = re.findall(r"^\s*(?:require\s+)?([\w.\-]+\.[\w.\-]+/[\w./\-]+)\s+v", content, re.MULTILINE)
    info.dependencies.extend(deps)
    if any(dep.startswith(cli) for dep in deps for cli in CLI_DEPENDENCIES if "/" in cli):
        info.is_cli = True


def _read_gemfile(content: str, info: ManifestInfo, root: Path) -> None:
    info.language = info.language or "Ruby"
    info.package_manager = info.package_manager or "Bundler"
    info.dependencies.extend(re.findall(r"gem\s+['\"]([^'\"]+)['\"]", content))


def _read_composer(content: str, info: ManifestInfo, root: Path) -> None:
    try:
        pkg = json.loads(content)
    except json.JSONDecodeError:
        logger.debug("Malformed composer.json, skipping")
        return
    if not isinstance(pkg, dict):
        return
    info.language = info.language or "PHP"
    info.package_manager = info.package_manager or "Composer"
    info.name = info.name or pkg.get("name") or None
    info.description = info.description or pkg.get("description") or None
    for key in ("require", "require-dev"):
        section = pkg.get(key)
        if isinstance(section, dict):
            info.dependencies.extend(d for d in section if not d.startswith("php"))


MANIFEST_READERS = (
    ("package.json", _read_package_json),
    ("pyproject.toml", _read_pyproject),
    ("requirements.txt", _read_requirements),
    ("Cargo.toml", _read_cargo),
    ("go.mod", _read_go_mod),
    ("Gemfile", _read_gemfile),
    ("composer.json", _read_composer),
)


def read_manifests(root: str | Path) -> ManifestInfo:
    """Read every known manifest at the project root.

    Earlier manifests in MANIFEST_READERS win for scalar fields;
    dependencies accumulate.
    """
    root = Path(root)
    info = ManifestInfo()
    for filename, reader in MANIFEST_READERS:
        path = root / filename
        if not is_file(path):
            continue
        content = _read(path)
        if content is None:
            continue
        info.manifests.append(filename)
        reader(content, info, root)
    return info


def detect_framework(manifest: ManifestInfo) -> FrameworkResult:
    """Pick the project's primary framework from declared dependencies."""
    for dep, framework in FRAMEWORK_DEPENDENCIES:
        if dep.startswith("github.com/"):
            found = any(d.startswith(dep) for d in manifest.dependencies)
        else:
            found = manifest.has_dependency(dep)
        if found:
            return FrameworkResult(
                framework=framework,
                language=manifest.language,
                ecosystem=manifest.package_manager,
            )
    return FrameworkResult(language=manifest.language, ecosystem=manifest.package_manager)


def detect_database(manifest: ManifestInfo) -> str | None:
    for dep, database in DATABASE_DEPENDENCIES:
        if dep.startswith("gorm.io/"):
            if any(d.startswith(dep) for d in manifest.dependencies):
                return database
        elif manifest.has_dependency(dep):
            return database
    return None


def detect_api_type(manifest: ManifestInfo, framework: FrameworkResult) -> str | None:
    if manifest.has_dependency("graphql", "apollo-server", "@apollo/server", "graphene", "strawberry-graphql", "async-graphql"):
        return "GraphQL"
    if manifest.has_dependency("tonic", "grpcio", "@grpc/grpc-js") or any(
        d.startswith("google.golang.org/grpc") for d in manifest.dependencies
    ):
        return "gRPC"
    if framework.framework in BACKEND_FRAMEWORKS:
        return "REST"
    if manifest.is_cli:
        return "CLI"
    return None


def legacy_project_type(manifest: ManifestInfo, framework: FrameworkResult) -> str | None:
    """Manifest-pattern classification, used only after better signals.

    Only looks at JavaScript and Python ecosystems, so it has nothing to say
    about most other projects.
    """
    fw = framework.framework
    if manifest.language in ("JavaScript", "TypeScript"):
        ts = manifest.language == "TypeScript"
        if fw == "Next.js":
            return "nextjs"
        if fw in ("React", "Vue", "Svelte"):
            return fw.lower() + ("-ts" if ts else "")
        if fw == "Angular":
            return "angular"
        if fw in BACKEND_FRAMEWORKS:
            return "node-api-ts" if ts else "node-api"
        if manifest.is_cli:
            return "cli-ts" if ts else "cli-js"
        return "typescript" if ts else "npm-package"
    if manifest.language == "Python":
        if fw == "Django":
            return "django"
        if fw in BACKEND_FRAMEWORKS:
            return "python-api"
        if manifest.is_cli:
            return "cli"
        if manifest.has_dependency("numpy", "pandas", "scikit-learn", "torch", "tensorflow"):
            return "data-science"
        if "pyproject.toml" in manifest.manifests:
            return "pip-package"
        return "python-generic"
    return None
