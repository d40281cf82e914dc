import shutil
import subprocess
from pathlib import Path

from git_tandem.domain.errors import (
    GitCommandError,
    GitNotFoundError,
    GitTimeoutError,
    NotARepositoryError,
)
from git_tandem.domain.models import Commit, DecodeResult, LoadOptions
from git_tandem.infrastructure.log_decoder import decode_log
from git_tandem.infrastructure.log_query import (
    DEFAULT_LOG_FORMAT,
    LogFormat,
    build_log_query,
)
from git_tandem.logging_config import get_logger

logger = get_logger(__name__)


class GitCliReader:
    def __init__(
        self,
        repo_path: str,
        log_format: LogFormat = DEFAULT_LOG_FORMAT,
        timeout: float | None = None,
    ) -> None:
        git_bin = shutil.which("git")
        if git_bin is None:
            raise GitNotFoundError()
        path = Path(repo_path).resolve()
        self._git = git_bin
        self._path = str(path)
        self._log_format = log_format
        self._timeout = timeout
        if not path.is_dir():
            raise NotARepositoryError(self._path)
        try:
            self._run("rev-parse", "--git-dir")
        except GitTimeoutError:
            raise
        except GitCommandError:
            raise NotARepositoryError(self._path) from None

    @property
    def path(self) -> str:
        return self._path

    def _run(self, *args: str) -> str:
        logger.debug("git %s", " ".join(args))
        try:
            result = subprocess.run(
                [self._git, "-C", self._path, *args],
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self._timeout,
            )
        except FileNotFoundError:
            raise GitNotFoundError() from None
        except subprocess.TimeoutExpired:
            raise GitTimeoutError(list(args), self._timeout or 0) from None
        if result.returncode != 0:
            raise GitCommandError(list(args), result.returncode, result.stderr)
        return result.stdout

    def _has_commits(self) -> bool:
        try:
            self._run("rev-parse", "--verify", "--quiet", "HEAD")
        except GitTimeoutError:
            raise
        except GitCommandError:
            return False
        return True

    def current_branch(self) -> str:
        # symbolic-ref works on an unborn branch, rev-parse --abbrev-ref does not
        try:
            return self._run("symbolic-ref", "--short", "HEAD").strip()
        except GitCommandError:
            return self._run("rev-parse", "--abbrev-ref", "HEAD").strip()

    def commit_count(self) -> int:
        if not self._has_commits():
            return 0
        return int(self._run("rev-list", "--count", "HEAD").strip())

    def latest_commit_id(self) -> str | None:
        if not self._has_commits():
            return None
        return self._run("rev-parse", "HEAD").strip()

    def branches(self) -> list[str]:
        output = self._run("branch", "--format=%(refname:short)")
        return [line.strip() for line in output.splitlines() if line.strip()]

    def load_commits(self, options: LoadOptions) -> DecodeResult:
        """Decode the history selected by ``options``.

        Raises ValueError for a ref that git could read as an option.
        """
        if options.branch.startswith("-"):
            raise ValueError(f"Cannot resolve ref: {options.branch}")
        if not options.branch and not self._has_commits():
            return DecodeResult(commits=[])
        query = build_log_query(options, self._log_format)
        output = self._run(*query.args)
        result = decode_log(output, self._log_format, options.include_file_stats)
        logger.info("Loaded %d commits from %s", len(result.commits), self._path)
        return result

    def get_commit(self, ref: str) -> Commit:
        """Load a single commit (with file stats) by id, tag or branch."""
        options = LoadOptions(
            branch=ref, max_commits=1, include_merges=True, include_file_stats=True,
        )
        try:
            result = self.load_commits(options)
        except GitTimeoutError:
            raise
        except GitCommandError:
            raise ValueError(f"Cannot resolve ref: {ref}") from None
        if not result.commits:
            raise ValueError(f"Cannot resolve ref: {ref}")
        return result.commits[0]
