"""Prompt templates for README analysis.

The summarizer sends one prompt per project: the README excerpt plus the
scanner's language breakdown, asking for a fixed JSON shape.
"""

from __future__ import annotations

README_EXCERPT_LIMIT = 4000

PROJECT_TYPE_CHOICES = (
    "cli", "library", "web-app", "api", "mobile-app", "desktop-app",
    "framework", "tool", "plugin", "data-science", "devops",
)

SYSTEM_PROMPT = """You are an expert software engineer reading project READMEs.
Extract what the project is, who it is for, and how it is used.
Answer with a single JSON object and nothing else.
Use null for anything the README does not say. Do not guess."""


def readme_analysis_prompt(readme: str, languages: list[str], project_name: str) -> str:
    """Build the README extraction prompt. The README is cut to 4000 chars."""
    excerpt = readme[:README_EXCERPT_LIMIT]
    return f"""Analyze this README and extract structured information. Return ONLY valid JSON, no markdown.

PROJECT NAME: {project_name}
DETECTED LANGUAGES: {", ".join(languages) or "Unknown"}

README CONTENT:
{excerpt}

Return this exact JSON structure (use null for fields you can't determine):
{{
  "description": "One sentence describing what this project does",
  "who": "Target users or audience",
  "what": "Core problem it solves or what it provides",
  "why": "Motivation or purpose behind the project",
  "where": "Where it runs or is deployed",
  "when": "Timeline, version info, or roadmap status",
  "how": "How to get started or how it works (one sentence)",
  "topics": ["topic1", "topic2", "topic3"],
  "projectType": "One of: {", ".join(PROJECT_TYPE_CHOICES)}, or null"
}}"""
