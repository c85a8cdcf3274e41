"""Tests for the Atlantis text protocol helpers and shared models."""

import types
from datetime import datetime, timezone

import pytest

from plangate_core.models import Comment, PullRequestRef
from plangate_core.protocol import apply_command, extract_path, workspace_for

PLAN_BODY = (
    "Ran Plan for dir: `infra/network` workspace: `infra_network`\n"
    "\n"
    "<details><summary>Show Output</summary>\n"
    "```diff\n"
    "+ resource `aws_vpc.main`\n"
    "```\n"
)


class TestExtractPath:
    def test_extracts_directory_between_first_backticks(self):
        assert extract_path("Ran Plan for dir `infra/network` ...") == "infra/network"

    def test_only_first_line_is_considered(self):
        assert extract_path(PLAN_BODY) == "infra/network"

    def test_no_delimiter_raises(self):
        with pytest.raises(ValueError):
            extract_path("Ran Plan for dir infra/network")

    def test_unclosed_delimiter_raises(self):
        with pytest.raises(ValueError):
            extract_path("Ran Plan for dir `infra/network")

    def test_delimiters_on_later_lines_are_ignored(self):
        with pytest.raises(ValueError):
            extract_path("Ran Plan for dir\n`infra/network`")

    def test_empty_body_raises(self):
        with pytest.raises(ValueError):
            extract_path("")


class TestWorkspaceAndCommand:
    def test_workspace_replaces_separators(self):
        assert workspace_for("infra/network") == "infra_network"

    def test_workspace_for_nested_path(self):
        assert workspace_for("envs/prod/us-east-1/vpc") == "envs_prod_us-east-1_vpc"

    def test_workspace_for_flat_path_unchanged(self):
        assert workspace_for("network") == "network"

    def test_apply_command_format(self):
        assert apply_command("infra/network") == "atlantis apply -d infra/network -w infra_network"


class TestPullRequestRef:
    def test_parse_slug(self):
        ref = PullRequestRef.parse("acme/infra", 22)
        assert ref.owner == "acme"
        assert ref.repo_name == "infra"
        assert ref.number == 22
        assert ref.slug == "acme/infra"
        assert str(ref) == "acme/infra/pull/22"

    @pytest.mark.parametrize("slug", ["", "acme", "acme/", "/infra", "acme/infra/extra", None])
    def test_malformed_slug_raises(self, slug):
        with pytest.raises(ValueError):
            PullRequestRef.parse(slug, 1)


class TestComment:
    def test_from_github_copies_fields(self):
        created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        raw = types.SimpleNamespace(user=types.SimpleNamespace(login="atlantis-bot"), body="hello", created_at=created)
        comment = Comment.from_github(raw)
        assert comment == Comment(author="atlantis-bot", body="hello", created_at=created)

    def test_from_github_handles_missing_body_and_user(self):
        raw = types.SimpleNamespace(user=None, body=None, created_at=None)
        comment = Comment.from_github(raw)
        assert comment.author == ""
        assert comment.body == ""

    def test_first_line(self):
        comment = Comment(author="a", body=PLAN_BODY, created_at=None)
        assert comment.first_line == "Ran Plan for dir: `infra/network` workspace: `infra_network`"
