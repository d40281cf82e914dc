from collections import Counter
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime

from git_tandem.domain.models import (
    Commit,
    CommitStats,
    ContributorStat,
    CouplingReport,
    HistoryReport,
    LoadOptions,
    RepoSummary,
)
from git_tandem.domain.ports import GitRepository
from git_tandem.infrastructure.coupling_engine import compute_coupling
from git_tandem.logging_config import get_logger

logger = get_logger(__name__)


def get_repo_summary(repo: GitRepository, repo_path: str) -> RepoSummary:
    return RepoSummary(
        repo_path=repo_path,
        current_branch=repo.current_branch(),
        commit_count=repo.commit_count(),
        latest_commit_id=repo.latest_commit_id(),
    )


def compute_contributors(commits: Sequence[Commit]) -> list[ContributorStat]:
    """Authors ranked by commit count, ties broken by name."""
    if not commits:
        return []
    counts = Counter(c.author.name for c in commits)
    total = len(commits)
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [
        ContributorStat(name=name, commit_count=n, share=round(n / total, 4))
        for name, n in ranked
    ]


def compute_date_range(commits: Sequence[Commit]) -> tuple[datetime | None, datetime | None]:
    """Earliest and latest known timestamps; undefined timestamps are ignored."""
    stamps = [c.timestamp for c in commits if c.timestamp is not None]
    if not stamps:
        return None, None
    return min(stamps), max(stamps)


def load_history(
    repo: GitRepository, repo_path: str, options: LoadOptions,
) -> HistoryReport:
    result = repo.load_commits(options)
    commits = result.commits

    totals = CommitStats()
    for c in commits:
        totals = totals + c.stats

    first, last = compute_date_range(commits)
    return HistoryReport(
        repo_path=repo_path,
        options=options,
        commits=commits,
        totals=totals,
        first_commit_date=first,
        last_commit_date=last,
        contributors=compute_contributors(commits),
        merge_commits=sum(1 for c in commits if c.is_merge),
        issues=result.issues,
    )


def build_coupling_report(
    repo_path: str,
    commits: Sequence[Commit],
    ignore_patterns: Sequence[str] = (),
) -> CouplingReport:
    """Coupling over commits that were already loaded with file stats."""
    result = compute_coupling(commits, ignore_patterns)
    logger.info(
        "Coupling: %d commits, %d files, %d pairs",
        len(commits), len(result.file_total_changes), len(result.pairs),
    )
    return CouplingReport(
        repo_path=repo_path,
        total_commits=len(commits),
        ignore_patterns=list(ignore_patterns),
        result=result,
    )


def analyze_coupling(
    repo: GitRepository,
    repo_path: str,
    options: LoadOptions,
    ignore_patterns: Sequence[str] = (),
) -> CouplingReport:
    # Coupling needs the per-file block regardless of what the caller asked for.
    if not options.include_file_stats:
        options = replace(options, include_file_stats=True)
    commits = repo.load_commits(options).commits
    return build_coupling_report(repo_path, commits, ignore_patterns)
