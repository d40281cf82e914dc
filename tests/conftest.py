import os
import subprocess
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest


def git(repo: Path, *args: str, env: dict | None = None) -> str:
    result = subprocess.run(
        ["git", "-C", str(repo), *args],
        capture_output=True, check=True, text=True,
        env=env,
    )
    return result.stdout


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository on branch main."""
    subprocess.run(
        ["git", "init", str(tmp_path)],
        capture_output=True, check=True,
    )
    git(tmp_path, "symbolic-ref", "HEAD", "refs/heads/main")
    git(tmp_path, "config", "user.name", "Test User")
    git(tmp_path, "config", "user.email", "test@example.com")
    git(tmp_path, "config", "commit.gpgsign", "false")
    return tmp_path


def _commit_env(days_ago: int, author_name: str, author_email: str) -> dict:
    date = datetime.now(timezone.utc) - timedelta(days=days_ago)
    date_str = date.strftime("%Y-%m-%dT%H:%M:%S %z")
    return {
        **os.environ,
        "GIT_AUTHOR_DATE": date_str,
        "GIT_COMMITTER_DATE": date_str,
        "GIT_AUTHOR_NAME": author_name,
        "GIT_AUTHOR_EMAIL": author_email,
        "GIT_COMMITTER_NAME": author_name,
        "GIT_COMMITTER_EMAIL": author_email,
    }


def commit_files(
    repo: Path,
    files: dict[str, str],
    message: str,
    days_ago: int = 0,
    author_name: str = "Test User",
    author_email: str = "test@example.com",
) -> None:
    """Create a single commit touching multiple files at a known relative date."""
    for file_path, content in files.items():
        full_path = repo / file_path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_text(content)
        git(repo, "add", file_path)

    git(
        repo, "commit", "-m", message,
        env=_commit_env(days_ago, author_name, author_email),
    )


def commit_file(
    repo: Path,
    file_path: str,
    content: str,
    message: str,
    days_ago: int = 0,
    author_name: str = "Test User",
    author_email: str = "test@example.com",
) -> None:
    """Create a commit touching one file at a known relative date."""
    commit_files(
        repo, {file_path: content}, message, days_ago=days_ago,
        author_name=author_name, author_email=author_email,
    )


@pytest.fixture
def git_repo_with_history(tmp_git_repo: Path) -> Path:
    """Create a repo with 5 commits across 3 files over 60 days."""
    commit_file(tmp_git_repo, "README.md", "# Project\n", "Initial commit", days_ago=60)
    commit_file(tmp_git_repo, "src/main.py", "print('hello')\n", "Add main", days_ago=45)
    commit_file(tmp_git_repo, "src/utils.py", "def helper(): pass\n", "Add utils", days_ago=30)
    commit_file(
        tmp_git_repo, "src/main.py", "print('hello world')\n",
        "Update main\n\nPrint the whole greeting.", days_ago=15,
    )
    commit_file(tmp_git_repo, "README.md", "# Project\nUpdated.\n", "Update README", days_ago=5)
    return tmp_git_repo


@pytest.fixture
def multi_author_repo(tmp_git_repo: Path) -> Path:
    """Create a repo with 3 authors and 6 commits.

    Alice: 3 commits, Bob: 2 commits, Carol: 1 commit.
    """
    commit_file(tmp_git_repo, "main.py", "print('v1')\n", "Alice: create main",
                days_ago=30, author_name="Alice", author_email="alice@example.com")
    commit_file(tmp_git_repo, "main.py", "print('v2')\n", "Alice: update main",
                days_ago=25, author_name="Alice", author_email="alice@example.com")
    commit_file(tmp_git_repo, "config.py", "DEBUG=True\n", "Bob: create config",
                days_ago=20, author_name="Bob", author_email="bob@example.com")
    commit_file(tmp_git_repo, "utils.py", "def util(): pass\n", "Alice: add utils",
                days_ago=15, author_name="Alice", author_email="alice@example.com")
    commit_file(tmp_git_repo, "config.py", "DEBUG=False\n", "Bob: update config",
                days_ago=10, author_name="Bob", author_email="bob@example.com")
    commit_file(tmp_git_repo, "utils.py", "def util(): pass\ndef other(): pass\n",
                "Carol: add to utils", days_ago=5,
                author_name="Carol", author_email="carol@example.com")
    return tmp_git_repo


@pytest.fixture
def coupled_repo(tmp_git_repo: Path) -> Path:
    """Create a repo for coupling analysis.

    a+b always together (3 commits, README.md rides along each time),
    a+c twice, c alone once, d alone once. Totals: a=3, b=3, c=3, d=1.
    """
    commit_files(tmp_git_repo, {
        "a.py": "a_v1\n",
        "b.py": "b_v1\n",
        "c.py": "c_v1\n",
        "README.md": "v1\n",
    }, "commit 1: a+b+c", days_ago=25)

    commit_files(tmp_git_repo, {
        "a.py": "a_v2\n",
        "b.py": "b_v2\n",
        "c.py": "c_v2\n",
        "README.md": "v2\n",
    }, "commit 2: a+b+c", days_ago=20)

    commit_files(tmp_git_repo, {
        "a.py": "a_v3\n",
        "b.py": "b_v3\n",
        "README.md": "v3\n",
    }, "commit 3: a+b", days_ago=15)

    commit_files(tmp_git_repo, {"c.py": "c_v3\n"}, "commit 4: c alone", days_ago=10)
    commit_files(tmp_git_repo, {"d.py": "d_v1\n"}, "commit 5: d alone", days_ago=5)

    return tmp_git_repo


@pytest.fixture
def renamed_repo(tmp_git_repo: Path) -> Path:
    """Create a repo whose last commit moves src/old_name.py to src/new_name.py."""
    body = "".join(f"line {i}\n" for i in range(20))
    commit_file(tmp_git_repo, "src/old_name.py", body, "Add module", days_ago=10)
    git(tmp_git_repo, "mv", "src/old_name.py", "src/new_name.py")
    git(
        tmp_git_repo, "commit", "-m", "Rename module",
        env=_commit_env(5, "Test User", "test@example.com"),
    )
    return tmp_git_repo


@pytest.fixture
def merge_repo(tmp_git_repo: Path) -> Path:
    """Create a repo with a feature branch merged into main with --no-ff."""
    commit_file(tmp_git_repo, "base.py", "base\n", "Base", days_ago=10)
    git(tmp_git_repo, "checkout", "-q", "-b", "feature")
    commit_file(tmp_git_repo, "feature.py", "feature\n", "Feature work", days_ago=8)
    git(tmp_git_repo, "checkout", "-q", "main")
    commit_file(tmp_git_repo, "main.py", "main\n", "Main work", days_ago=6)
    git(
        tmp_git_repo, "merge", "--no-ff", "-m", "Merge feature", "feature",
        env=_commit_env(4, "Test User", "test@example.com"),
    )
    return tmp_git_repo
