from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class SummaryOut(BaseModel):
    repo_path: str
    current_branch: str
    commit_count: int
    latest_commit_id: str | None


class AuthorOut(BaseModel):
    name: str
    email: str


class FileChangeOut(BaseModel):
    path: str
    change_type: str
    lines_added: int
    lines_deleted: int
    old_path: str


class StatsOut(BaseModel):
    files_changed: int
    insertions: int
    deletions: int


class CommitOut(BaseModel):
    id: str
    short_id: str
    author: AuthorOut
    committer: AuthorOut
    timestamp: datetime | None
    subject: str
    body: str
    message: str
    parent_ids: list[str]
    is_merge: bool
    stats: StatsOut
    file_changes: list[FileChangeOut]


class ContributorOut(BaseModel):
    name: str
    commit_count: int
    share: float


class IssueOut(BaseModel):
    kind: str
    detail: str


class HistoryOut(BaseModel):
    repo_path: str
    total_commits: int
    merge_commits: int
    first_commit_date: datetime | None
    last_commit_date: datetime | None
    totals: StatsOut
    contributors: list[ContributorOut]
    commits: list[CommitOut]
    issues: list[IssueOut]


class FilePairOut(BaseModel):
    file_a: str
    file_b: str
    co_changes: int
    score: float
    strength: str


class CouplingOut(BaseModel):
    repo_path: str
    total_commits: int
    ignore_patterns: list[str]
    pairs: list[FilePairOut]
    file_total_changes: dict[str, int]
