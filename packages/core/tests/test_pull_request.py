"""Tests for GitHub pull request helper functions."""

import types
from datetime import datetime, timezone
from unittest.mock import MagicMock

from plangate_core.gh.pull_request import (
    approve_pull,
    get_pull,
    get_repo,
    is_merged,
    list_comments,
    post_comment,
    request_reviewers,
)
from plangate_core.models import Comment

CREATED = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _issue_comment(body, login="atlantis-bot"):
    return types.SimpleNamespace(user=types.SimpleNamespace(login=login), body=body, created_at=CREATED)


class TestGetRepo:
    def test_authenticates_with_token(self, mocker):
        mock_github = mocker.patch("plangate_core.gh.pull_request.Github")
        mock_auth = mocker.patch("plangate_core.gh.pull_request.Auth")

        repo = get_repo("acme/infra", token="tok")

        mock_auth.Token.assert_called_once_with("tok")
        mock_github.assert_called_once_with(auth=mock_auth.Token.return_value)
        mock_github.return_value.get_repo.assert_called_once_with("acme/infra")
        assert repo is mock_github.return_value.get_repo.return_value


class TestPullHelpers:
    def test_get_pull(self):
        repo = MagicMock()
        assert get_pull(repo, 22) is repo.get_pull.return_value
        repo.get_pull.assert_called_once_with(22)

    def test_is_merged(self):
        assert is_merged(MagicMock(merged=True)) is True
        assert is_merged(MagicMock(merged=False)) is False
        assert is_merged(MagicMock(merged=None)) is False

    def test_list_comments_returns_snapshots_in_provider_order(self):
        pr = MagicMock()
        pr.get_issue_comments.return_value = [_issue_comment("b"), _issue_comment("a", login="alice")]

        comments = list_comments(pr)

        assert comments == [
            Comment(author="atlantis-bot", body="b", created_at=CREATED),
            Comment(author="alice", body="a", created_at=CREATED),
        ]

    def test_list_comments_empty(self):
        pr = MagicMock()
        pr.get_issue_comments.return_value = []
        assert list_comments(pr) == []

    def test_post_comment_returns_created_comment(self):
        pr = MagicMock()
        pr.create_issue_comment.return_value = _issue_comment("atlantis plan", login="gate-user")

        comment = post_comment(pr, "atlantis plan")

        pr.create_issue_comment.assert_called_once_with("atlantis plan")
        assert comment.body == "atlantis plan"
        assert comment.created_at == CREATED

    def test_approve_pull_submits_approve_review(self):
        pr = MagicMock()
        approve_pull(pr, "looks good")
        pr.create_review.assert_called_once_with(body="looks good", event="APPROVE")

    def test_request_reviewers(self):
        pr = MagicMock()
        request_reviewers(pr, ("alice", "bob"))
        pr.create_review_request.assert_called_once_with(reviewers=["alice", "bob"])
