"""Tests for the README structural parser."""

from ctxfile.readme import (
    DESCRIPTION_LIMIT,
    FIELD_LIMIT,
    extract_human_fields,
    find_readme,
    load_readme,
    parse_readme,
)

BADGED_README = """\
# [![Logo](logo.png)](https://example.com) Stellar

[![CI](https://ci.example/badge.svg)](https://ci.example)
[![](https://cov.example/badge.svg)](https://cov.example)
Version: 2.1.0

A *small* engine for `orbital` simulations. See [docs](https://docs.example).
Runs anywhere.

## Who is this for

Astronomers and **students**.

## Installation

```bash
pip install stellar
```

Then import it.

## Motivation

Existing tools are slow.

## License

Apache-2.0, see LICENSE.
"""


class TestParseReadme:
    """Test README parsing."""

    def test_title_strips_markup(self):
        ctx = parse_readme(BADGED_README)
        assert ctx.exists is True
        assert ctx.name == "Stellar"

    def test_description_skips_badges_and_version(self):
        ctx = parse_readme(BADGED_README)
        assert ctx.description == "A small engine for orbital simulations. See docs. Runs anywhere."

    def test_sections_keyed_lowercase(self):
        ctx = parse_readme(BADGED_README)
        assert list(ctx.sections) == ["who is this for", "installation", "motivation", "license"]
        assert ctx.sections["motivation"] == "Existing tools are slow."

    def test_human_fields(self):
        ctx = parse_readme(BADGED_README)
        assert ctx.who == "Astronomers and students."
        assert ctx.why == "Existing tools are slow."
        # Installation matches both where and how; code fences are dropped.
        assert ctx.where == "Then import it."
        assert ctx.how == "Then import it."
        assert ctx.what == ctx.description
        assert ctx.when is None

    def test_badges(self):
        ctx = parse_readme(BADGED_README)
        assert ctx.badges == ["Logo", "CI", "badge"]

    def test_license_hint(self):
        ctx = parse_readme(BADGED_README)
        assert ctx.license == "Apache-2.0, see LICENSE."

    def test_title_only(self):
        ctx = parse_readme("# Lonely\n")
        assert ctx.name == "Lonely"
        assert ctx.description is None
        assert ctx.sections == {}
        assert all(v is None for v in ctx.human_fields().values())

    def test_no_title(self):
        ctx = parse_readme("Just some text.\n\n## Usage\n\nRun it.\n")
        assert ctx.name is None
        assert ctx.description is None
        assert ctx.how == "Run it."

    def test_description_stops_at_blank_line(self):
        ctx = parse_readme("# P\n\n\nFirst line\nsecond line\n\nNext paragraph.\n")
        assert ctx.description == "First line second line"

    def test_description_stops_at_heading(self):
        ctx = parse_readme("# P\nLead.\n## Usage\nRun.\n")
        assert ctx.description == "Lead."

    def test_description_capped(self):
        ctx = parse_readme("# P\n\n" + "word " * 300 + "\n")
        assert len(ctx.description) == DESCRIPTION_LIMIT

    def test_empty_matched_section_is_empty_string(self):
        ctx = parse_readme("# P\n\n## Roadmap\n\n## Usage\n\nRun.\n")
        assert ctx.when == ""
        assert ctx.how == "Run."

    def test_to_dict_drops_empty_values(self):
        data = parse_readme("# P\n").to_dict()
        assert data == {"exists": True, "name": "P"}


class TestExtractHumanFields:
    """Test six-field extraction and fallbacks."""

    def test_first_matching_section_in_document_order(self):
        sections = {"getting started": "Clone it.", "usage": "Call run()."}
        fields = extract_human_fields(sections, "", None)
        assert fields["how"] == "Clone it."
        assert fields["where"] == "Clone it."

    def test_who_falls_back_to_built_for(self):
        fields = extract_human_fields({}, "This tool was built for data engineers. It is fast.", None)
        assert fields["who"] == "data engineers"

    def test_what_falls_back_to_description(self):
        fields = extract_human_fields({}, "", "A thing.")
        assert fields["what"] == "A thing."

    def test_field_capped(self):
        fields = extract_human_fields({"why": "y" * 2000}, "", None)
        assert len(fields["why"]) == FIELD_LIMIT


class TestLoadReadme:
    """Test README discovery on disk."""

    def test_missing(self, tmp_path):
        assert load_readme(tmp_path).exists is False
        assert find_readme(tmp_path) is None

    def test_candidate_priority(self, tmp_path):
        (tmp_path / "README.rst").write_text("Title\n=====\n")
        (tmp_path / "README.md").write_text("# From Markdown\n")
        assert find_readme(tmp_path).name == "README.md"
        assert load_readme(tmp_path).name == "From Markdown"

    def test_directory_named_readme_is_ignored(self, tmp_path):
        (tmp_path / "README.md").mkdir()
        (tmp_path / "README").write_text("# Plain\n")
        assert load_readme(tmp_path).name == "Plain"
