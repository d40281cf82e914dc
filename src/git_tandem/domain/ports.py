from __future__ import annotations

from typing import Protocol

from git_tandem.domain.models import Commit, DecodeResult, LoadOptions


class GitRepository(Protocol):
    """Read-only view of a repository's history."""

    def current_branch(self) -> str: ...

    def commit_count(self) -> int: ...

    def latest_commit_id(self) -> str | None: ...

    def branches(self) -> list[str]: ...

    def load_commits(self, options: LoadOptions) -> DecodeResult: ...

    def get_commit(self, ref: str) -> Commit: ...
