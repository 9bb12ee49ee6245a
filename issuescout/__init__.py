"""IssueScout — resumable per-language mirror of repository and issue metadata."""

__version__ = "0.1.0"
