from __future__ import annotations

from github import Auth, Github

from plangate_core.models import Comment


def get_repo(repo_name: str, token: str):
    return Github(auth=Auth.Token(token)).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def is_merged(pr) -> bool:
    return bool(pr.merged)


def list_comments(pr) -> list[Comment]:
    """Return a fresh snapshot of the PR's issue comments, in provider order."""
    return [Comment.from_github(c) for c in pr.get_issue_comments()]


def post_comment(pr, body: str) -> Comment:
    return Comment.from_github(pr.create_issue_comment(body))


def approve_pull(pr, body: str):
    return pr.create_review(body=body, event="APPROVE")


def request_reviewers(pr, reviewers: list[str]):
    return pr.create_review_request(reviewers=list(reviewers))
