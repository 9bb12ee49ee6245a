"""Tests for ingest gates and payload normalisation (no DB, no network)."""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from fakes import make_issue, make_repo
from issuescout.engines.crawler.mapping import (
    TemporalDataError,
    is_active_repo,
    is_main_language,
    is_qualifying_issue,
    issue_fields,
    parse_timestamp,
    refreshed_issue_fields,
    repo_fields,
)
from issuescout.engines.github.models import IssueHandle, RepoHandle
from issuescout.models.repo import MUTABLE_FIELDS


class TestParseTimestamp:
    def test_z_suffix(self):
        ts = parse_timestamp({"t": "2024-03-01T12:00:00Z"}, "t")
        assert ts == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_offset(self):
        ts = parse_timestamp({"t": "2024-03-01T14:00:00+02:00"}, "t")
        assert ts == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_missing_required(self):
        with pytest.raises(TemporalDataError, match="missing"):
            parse_timestamp({}, "created_at")

    def test_missing_optional(self):
        assert parse_timestamp({"closed_at": None}, "closed_at", required=False) is None

    def test_malformed_even_when_optional(self):
        with pytest.raises(TemporalDataError, match="unreadable"):
            parse_timestamp({"pushed_at": "last tuesday"}, "pushed_at", required=False)


class TestGates:
    def test_active(self):
        assert is_active_repo(RepoHandle(make_repo(1)))
        assert not is_active_repo(RepoHandle(make_repo(1, archived=True)))
        assert not is_active_repo(RepoHandle(make_repo(1, disabled=True)))

    def test_main_language(self):
        assert is_main_language({"Go": 900, "Shell": 100}, "Go")
        assert not is_main_language({"Go": 100, "Python": 900}, "Go")

    def test_main_language_tie_counts(self):
        assert is_main_language({"Go": 500, "C": 500}, "Go")

    def test_main_language_case_insensitive(self):
        assert is_main_language({"TypeScript": 10}, "typescript")

    def test_main_language_absent_or_empty(self):
        assert not is_main_language({}, "Go")
        assert not is_main_language({"Rust": 10}, "Go")

    def test_qualifying_issue(self):
        assert is_qualifying_issue(IssueHandle(make_issue(1, 1)))
        assert not is_qualifying_issue(IssueHandle(make_issue(1, 1, locked=True)))
        assert not is_qualifying_issue(IssueHandle(make_issue(1, 1, pull_request={})))
        assert not is_qualifying_issue(IssueHandle(make_issue(1, 1, state="closed")))


class TestNormalisation:
    def test_repo_fields(self):
        fields = repo_fields(RepoHandle(make_repo(7, "acme/widget", stargazers_count=3)))

        assert set(fields) == {"repo_id", *MUTABLE_FIELDS}
        assert fields["repo_id"] == 7
        assert fields["name"] == "widget"
        assert fields["stargazers_count"] == 3
        assert fields["is_public"] is True
        assert fields["created_at"] == datetime(2020, 1, 1, tzinfo=timezone.utc)

    def test_repo_fields_private_visibility(self):
        fields = repo_fields(RepoHandle(make_repo(7, visibility="private")))
        assert fields["is_public"] is False

    def test_repo_fields_without_pushed_at(self):
        fields = repo_fields(RepoHandle(make_repo(7, pushed_at=None)))
        assert fields["pushed_at"] is None

    def test_repo_fields_missing_updated_at(self):
        data = make_repo(7)
        del data["updated_at"]
        with pytest.raises(TemporalDataError):
            repo_fields(RepoHandle(data))

    def test_issue_fields(self):
        fields = issue_fields(IssueHandle(make_issue(99, 4, comments=6, title="Crash")))

        assert fields["issue_id"] == 99
        assert fields["number"] == 4
        assert fields["title"] == "Crash"
        assert fields["comments_count"] == 6
        assert fields["is_locked"] is False
        assert fields["closed_at"] is None

    def test_refreshed_issue_fields_keep_stored_identity(self):
        stored = SimpleNamespace(issue_id=11, number=1)
        fields = refreshed_issue_fields(stored, IssueHandle(make_issue(999, 7, comments=2, title="Moved")))

        assert fields["issue_id"] == 11
        assert fields["number"] == 1
        assert fields["title"] == "Moved"
        assert fields["comments_count"] == 2
