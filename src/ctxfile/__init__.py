"""ctxfile - project context files for AI coding assistants."""

__version__ = "0.3.0"
