from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ChangeType(Enum):
    ADDED = "Added"
    MODIFIED = "Modified"
    DELETED = "Deleted"
    RENAMED = "Renamed"


@dataclass(frozen=True)
class Author:
    """Identity attached to the author or committer role of a commit."""

    name: str
    email: str


@dataclass(frozen=True)
class FileChange:
    """A single file's change within one commit."""

    path: str  # post-change location
    change_type: ChangeType
    lines_added: int
    lines_deleted: int
    old_path: str = ""  # set only for renames


@dataclass(frozen=True)
class CommitStats:
    """Aggregate over a commit's decoded file changes."""

    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0

    @classmethod
    def from_changes(cls, changes: list[FileChange]) -> CommitStats:
        return cls(
            files_changed=len(changes),
            insertions=sum(c.lines_added for c in changes),
            deletions=sum(c.lines_deleted for c in changes),
        )

    def __add__(self, other: CommitStats) -> CommitStats:
        return CommitStats(
            files_changed=self.files_changed + other.files_changed,
            insertions=self.insertions + other.insertions,
            deletions=self.deletions + other.deletions,
        )


@dataclass(frozen=True)
class Commit:
    """One decoded change-set, in the order git emitted it."""

    id: str
    short_id: str
    author: Author
    committer: Author
    timestamp: datetime | None  # None when the timestamp could not be parsed
    subject: str
    body: str
    file_changes: list[FileChange] = field(default_factory=list)
    parent_ids: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.body:
            return f"{self.subject}\n\n{self.body}"
        return self.subject

    @property
    def stats(self) -> CommitStats:
        return CommitStats.from_changes(self.file_changes)

    @property
    def is_merge(self) -> bool:
        return len(self.parent_ids) > 1


@dataclass(frozen=True)
class LoadOptions:
    """Filters applied when loading history from git."""

    branch: str = ""  # empty = current HEAD
    since: datetime | None = None
    until: datetime | None = None
    author: str = ""
    max_commits: int = 0  # 0 = unlimited
    include_merges: bool = False
    include_file_stats: bool = True


@dataclass(frozen=True)
class LogQuery:
    """Arguments for `git log` and the format template they embed."""

    args: list[str]
    template: str


class IssueKind(Enum):
    MALFORMED_RECORD = "malformed_record"
    MALFORMED_STAT_LINE = "malformed_stat_line"
    UNPARSABLE_TIMESTAMP = "unparsable_timestamp"


@dataclass(frozen=True)
class DecodeIssue:
    """A non-fatal problem met while decoding; the offending item is skipped or degraded."""

    kind: IssueKind
    detail: str


@dataclass(frozen=True)
class DecodeResult:
    commits: list[Commit]
    issues: list[DecodeIssue] = field(default_factory=list)

    @property
    def skipped_records(self) -> int:
        return sum(1 for i in self.issues if i.kind is IssueKind.MALFORMED_RECORD)

    @property
    def skipped_lines(self) -> int:
        return sum(1 for i in self.issues if i.kind is IssueKind.MALFORMED_STAT_LINE)


class CouplingStrength(Enum):
    CRITICAL = "Critical"
    STRONG = "Strong"
    MODERATE = "Moderate"
    WEAK = "Weak"

    @classmethod
    def from_score(cls, score: float) -> CouplingStrength:
        if score >= 0.8:
            return cls.CRITICAL
        if score >= 0.5:
            return cls.STRONG
        if score >= 0.2:
            return cls.MODERATE
        return cls.WEAK


@dataclass(frozen=True)
class FilePair:
    """Co-change coupling between two files."""

    file_a: str  # alphabetically first
    file_b: str  # alphabetically second
    co_changes: int
    score: float  # co_changes / min(total changes of a, total changes of b)

    @property
    def strength(self) -> CouplingStrength:
        return CouplingStrength.from_score(self.score)


@dataclass(frozen=True)
class CouplingResult:
    pairs: list[FilePair]  # sorted by score descending
    file_total_changes: dict[str, int]  # commits touching each file, after ignore filtering


@dataclass(frozen=True)
class RepoSummary:
    repo_path: str
    current_branch: str
    commit_count: int
    latest_commit_id: str | None


@dataclass(frozen=True)
class ContributorStat:
    name: str
    commit_count: int
    share: float  # commit_count / total commits


@dataclass(frozen=True)
class HistoryReport:
    """Decoded history plus the statistics derived from it."""

    repo_path: str
    options: LoadOptions
    commits: list[Commit]
    totals: CommitStats
    first_commit_date: datetime | None
    last_commit_date: datetime | None
    contributors: list[ContributorStat]  # sorted by commit_count descending
    merge_commits: int
    issues: list[DecodeIssue]


@dataclass(frozen=True)
class CouplingReport:
    repo_path: str
    total_commits: int
    ignore_patterns: list[str]
    result: CouplingResult
