"""Operation-level failures.

Problems inside individual log records are not errors: the decoder reports
them as ``DecodeIssue`` values and keeps going.
"""

from __future__ import annotations


class GitTandemError(Exception):
    """Base exception for all git-tandem errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(GitTandemError, ValueError):
    pass


class GitNotFoundError(GitTandemError, RuntimeError):
    """The git executable is not on PATH."""

    def __init__(self) -> None:
        super().__init__("git executable not found on PATH")


class NotARepositoryError(GitTandemError, ValueError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Not a git repository: {path}")
        self.path = path


def _subcommand(args: list[str]) -> str:
    return args[0] if args else "git"


class GitCommandError(GitTandemError, RuntimeError):
    """A git invocation exited non-zero."""

    def __init__(self, args: list[str], returncode: int, stderr: str = "") -> None:
        command = _subcommand(args)
        message = stderr.strip() or f"git {command} failed"
        super().__init__(message, {"command": command, "exit": str(returncode)})
        self.command_args = list(args)
        self.returncode = returncode
        self.stderr = stderr


class GitTimeoutError(GitCommandError):
    def __init__(self, args: list[str], timeout: float) -> None:
        super().__init__(args, -1, f"git {_subcommand(args)} timed out after {timeout:g}s")
        self.timeout = timeout
