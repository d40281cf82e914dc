from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from git_tandem.application.use_cases import (
    analyze_coupling,
    get_repo_summary,
    load_history,
)
from git_tandem.config import DEFAULT_IGNORE_PATTERNS
from git_tandem.domain.errors import (
    GitCommandError,
    GitNotFoundError,
    GitTandemError,
    GitTimeoutError,
    NotARepositoryError,
)
from git_tandem.domain.models import Commit, CommitStats, LoadOptions
from git_tandem.infrastructure.git_cli_reader import GitCliReader
from git_tandem.web.models import (
    AuthorOut,
    CommitOut,
    ContributorOut,
    CouplingOut,
    FileChangeOut,
    FilePairOut,
    HistoryOut,
    IssueOut,
    StatsOut,
    SummaryOut,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    repo_path = getattr(app.state, "repo_path", None) or "."
    app.state.reader = GitCliReader(repo_path, timeout=getattr(app.state, "git_timeout", None))
    yield
    app.state.reader = None


app = FastAPI(title="git-tandem", lifespan=lifespan)


def _reader() -> GitCliReader:
    return app.state.reader


# Checked in order, subclasses before their bases.
_STATUS_BY_ERROR: list[tuple[type[GitTandemError], int]] = [
    (GitTimeoutError, 504),
    (NotARepositoryError, 400),
    (GitNotFoundError, 503),
    (GitCommandError, 500),
]


@app.exception_handler(GitTandemError)
async def _git_error_handler(request: Request, exc: GitTandemError) -> JSONResponse:
    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


def _stats_out(stats: CommitStats) -> StatsOut:
    return StatsOut(
        files_changed=stats.files_changed,
        insertions=stats.insertions,
        deletions=stats.deletions,
    )


def _commit_out(c: Commit) -> CommitOut:
    return CommitOut(
        id=c.id,
        short_id=c.short_id,
        author=AuthorOut(name=c.author.name, email=c.author.email),
        committer=AuthorOut(name=c.committer.name, email=c.committer.email),
        timestamp=c.timestamp,
        subject=c.subject,
        body=c.body,
        message=c.message,
        parent_ids=list(c.parent_ids),
        is_merge=c.is_merge,
        stats=_stats_out(c.stats),
        file_changes=[
            FileChangeOut(
                path=fc.path,
                change_type=fc.change_type.value,
                lines_added=fc.lines_added,
                lines_deleted=fc.lines_deleted,
                old_path=fc.old_path,
            )
            for fc in c.file_changes
        ],
    )


@app.get("/api/summary", response_model=SummaryOut)
def summary():
    reader = _reader()
    s = get_repo_summary(reader, reader.path)
    return SummaryOut(
        repo_path=s.repo_path,
        current_branch=s.current_branch,
        commit_count=s.commit_count,
        latest_commit_id=s.latest_commit_id,
    )


@app.get("/api/branches", response_model=list[str])
def branches():
    return _reader().branches()


@app.get("/api/commits", response_model=HistoryOut)
def commits(
    branch: str = Query("", description="Branch or ref (default: HEAD)"),
    author: str = Query("", description="Author filter"),
    max_commits: int = Query(100, ge=0, description="0 = unlimited"),
    include_merges: bool = Query(False),
    include_file_stats: bool = Query(True),
    since: datetime | None = Query(None),
    until: datetime | None = Query(None),
):
    reader = _reader()
    options = LoadOptions(
        branch=branch, since=since, until=until, author=author,
        max_commits=max_commits, include_merges=include_merges,
        include_file_stats=include_file_stats,
    )
    try:
        history = load_history(reader, reader.path, options)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return HistoryOut(
        repo_path=history.repo_path,
        total_commits=len(history.commits),
        merge_commits=history.merge_commits,
        first_commit_date=history.first_commit_date,
        last_commit_date=history.last_commit_date,
        totals=_stats_out(history.totals),
        contributors=[
            ContributorOut(name=a.name, commit_count=a.commit_count, share=a.share)
            for a in history.contributors
        ],
        commits=[_commit_out(c) for c in history.commits],
        issues=[IssueOut(kind=i.kind.value, detail=i.detail) for i in history.issues],
    )


@app.get("/api/commits/{ref:path}", response_model=CommitOut)
def commit_detail(ref: str):
    try:
        commit = _reader().get_commit(ref)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Commit {ref} not found")
    return _commit_out(commit)


@app.get("/api/coupling", response_model=CouplingOut)
def coupling(
    ignore: list[str] | None = Query(None, description="Glob to exclude; repeatable"),
    ignore_defaults: bool = Query(True, description="Apply default globs when no ignore is given"),
    branch: str = Query(""),
    max_commits: int = Query(0, ge=0),
    include_merges: bool = Query(False),
    limit: int = Query(100, ge=1, description="Maximum pairs returned"),
):
    reader = _reader()
    if ignore is not None:
        patterns = ignore
    elif ignore_defaults:
        patterns = list(DEFAULT_IGNORE_PATTERNS)
    else:
        patterns = []
    options = LoadOptions(
        branch=branch, max_commits=max_commits, include_merges=include_merges,
    )
    try:
        report = analyze_coupling(reader, reader.path, options, patterns)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return CouplingOut(
        repo_path=report.repo_path,
        total_commits=report.total_commits,
        ignore_patterns=report.ignore_patterns,
        pairs=[
            FilePairOut(
                file_a=p.file_a, file_b=p.file_b, co_changes=p.co_changes,
                score=round(p.score, 4), strength=p.strength.value,
            )
            for p in report.result.pairs[:limit]
        ],
        file_total_changes=report.result.file_total_changes,
    )
