"""README structural parser.

Turns a README document into a title, a lead description, a map of
second-level sections, and the six human-context fields
(who/what/why/where/when/how) used to fill context slots.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from .logging import get_logger
from .paths import is_file

logger = get_logger("readme")

README_CANDIDATES = (
    "README.md",
    "readme.md",
    "Readme.md",
    "README.rst",
    "README.txt",
    "README",
)

DESCRIPTION_LIMIT = 500
SECTION_LIMIT = 1000
FIELD_LIMIT = 300
LICENSE_HINT_LIMIT = 100

# Heading-name patterns per human-context field, matched against the start
# of the lower-cased section key.
FIELD_HEADINGS: dict[str, tuple[str, ...]] = {
    "who": ("target", "audience", "for", "user", "who", "contributor"),
    "what": ("what", "about", "overview", "description", "introduction", "summary"),
    "why": ("why", "motivation", "purpose", "problem", "background", "rationale"),
    "where": ("deploy", "hosting", "where", "platform", "installation", r"getting.?started"),
    "when": ("roadmap", "timeline", "when", "changelog", "release", "version"),
    "how": ("how", "usage", r"quick.?start", r"getting.?started", "installation", "setup"),
}

_FIELD_RES = {
    name: re.compile(r"^(?:" + "|".join(patterns) + r")", re.IGNORECASE)
    for name, patterns in FIELD_HEADINGS.items()
}

_H1_RE = re.compile(r"^#[ \t]+(.+)$", re.MULTILINE)
_H2_RE = re.compile(r"^##[ \t]+(.+)$", re.MULTILINE)
_BADGE_RE = re.compile(r"\[!\[.*?\]\(.*?\)\]\(.*?\)")
_BADGE_ALT_RE = re.compile(r"!\[([^\]]*)\]")
_IMAGE_RE = re.compile(r"!\[.*?\]\(.*?\)")
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_HTML_RE = re.compile(r"<[^>]+>")
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_ITALIC_RE = re.compile(r"\*(.+?)\*")
_CODE_RE = re.compile(r"`(.+?)`")
_FENCE_RE = re.compile(r"```[\s\S]*?```")
_IMAGE_LINE_RE = re.compile(r"^!\[.*?\]\(.*?\)$")
_BADGE_LINE_RE = re.compile(r"^\[!\[.*?\]\(.*?\)\]\(.*?\)$")
_META_LINE_RE = re.compile(r"^(?:Stable|Latest|Version):", re.IGNORECASE)
_BUILT_FOR_RE = re.compile(
    r"(?:built|designed|made|created)\s+(?:for|by)\s+([^.!\n]+)", re.IGNORECASE
)


@dataclass(frozen=True)
class ReadmeContext:
    """Structured view of a project's README."""

    exists: bool
    name: str | None = None
    description: str | None = None
    sections: dict[str, str] = field(default_factory=dict)
    who: str | None = None
    what: str | None = None
    why: str | None = None
    where: str | None = None
    when: str | None = None
    how: str | None = None
    badges: list[str] = field(default_factory=list)
    license: str | None = None

    def human_fields(self) -> dict[str, str | None]:
        return {
            "who": self.who,
            "what": self.what,
            "why": self.why,
            "where": self.where,
            "when": self.when,
            "how": self.how,
        }

    def to_dict(self) -> dict:
        return {k: v for k, v in self.__dict__.items() if v not in (None, [], {})}


def _strip_inline_markup(text: str) -> str:
    text = _IMAGE_RE.sub("", text)
    text = _LINK_RE.sub(r"\1", text)
    text = _BOLD_RE.sub(r"\1", text)
    text = _ITALIC_RE.sub(r"\1", text)
    text = _CODE_RE.sub(r"\1", text)
    text = _HTML_RE.sub("", text)
    return text.strip()


def _clean_title(raw: str) -> str:
    text = _BADGE_RE.sub("", raw)
    text = _IMAGE_RE.sub("", text)
    text = _LINK_RE.sub(r"\1", text)
    text = _HTML_RE.sub("", text)
    return text.strip()


def _clean_section(content: str) -> str:
    return _strip_inline_markup(_FENCE_RE.sub("", content))[:FIELD_LIMIT]


def _parse_description(after_title: str) -> str | None:
    desc_lines: list[str] = []
    for line in after_title.split("\n"):
        stripped = line.strip()
        if not stripped:
            if desc_lines:
                break
            continue
        if _IMAGE_LINE_RE.match(stripped) or _BADGE_LINE_RE.match(stripped):
            continue
        if _META_LINE_RE.match(stripped):
            continue
        if stripped.startswith("#"):
            break
        desc_lines.append(stripped)

    if not desc_lines:
        return None
    desc = _strip_inline_markup(" ".join(desc_lines))
    return desc[:DESCRIPTION_LIMIT] or None


def _parse_sections(content: str) -> dict[str, str]:
    matches = list(_H2_RE.finditer(content))
    sections: dict[str, str] = {}
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(content)
        body = content[match.end():end].strip()[:SECTION_LIMIT]
        sections[match.group(1).strip().lower()] = body
    return sections


def _match_section(sections: dict[str, str], field_name: str) -> str | None:
    pattern = _FIELD_RES[field_name]
    for key, body in sections.items():
        if pattern.match(key):
            return _clean_section(body)
    return None


def extract_human_fields(
    sections: dict[str, str], content: str, description: str | None
) -> dict[str, str | None]:
    """Extract who/what/why/where/when/how from parsed sections.

    Section keys are scanned in document order; the first key whose text
    starts with one of the field's heading patterns wins. ``who`` falls back
    to a "built for <X>" phrase anywhere in the document and ``what`` falls
    back to the lead description.
    """
    fields = {name: _match_section(sections, name) for name in FIELD_HEADINGS}

    if fields["who"] is None:
        built_for = _BUILT_FOR_RE.search(content)
        if built_for:
            fields["who"] = built_for.group(1).strip()
    if fields["what"] is None and description:
        fields["what"] = description
    return fields


def _badge_label(badge: str) -> str:
    alt = _BADGE_ALT_RE.search(badge)
    return alt.group(1).strip() if alt and alt.group(1).strip() else "badge"


def parse_readme(content: str) -> ReadmeContext:
    """Parse README text into a ReadmeContext."""
    name = None
    description = None

    title = _H1_RE.search(content)
    if title:
        name = _clean_title(title.group(1)) or None
        description = _parse_description(content[title.end():])

    sections = _parse_sections(content)
    fields = extract_human_fields(sections, content, description)

    badges = [_badge_label(badge) for badge in _BADGE_RE.findall(content)]

    license_hint = None
    for key, body in sections.items():
        if "license" in key or "licence" in key:
            license_hint = body[:LICENSE_HINT_LIMIT]
            break

    return ReadmeContext(
        exists=True,
        name=name,
        description=description,
        sections=sections,
        badges=badges,
        license=license_hint,
        **fields,
    )


def find_readme(root: Path) -> Path | None:
    """Return the first README-like file by name priority."""
    for candidate in README_CANDIDATES:
        path = root / candidate
        if is_file(path):
            return path
    return None


def read_readme_text(root: Path) -> str | None:
    path = find_readme(root)
    if path is None:
        return None
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug(f"Cannot read {path}: {e}")
        return None


def load_readme(root: Path) -> ReadmeContext:
    """Find, read and parse the project's README."""
    content = read_readme_text(root)
    if content is None:
        return ReadmeContext(exists=False)
    return parse_readme(content)
