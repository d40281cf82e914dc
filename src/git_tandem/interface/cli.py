import argparse
import sys
from datetime import datetime, timezone

from git_tandem.application.use_cases import (
    build_coupling_report,
    get_repo_summary,
    load_history,
)
from git_tandem.config import load_config
from git_tandem.domain.errors import GitTandemError
from git_tandem.domain.models import LoadOptions
from git_tandem.infrastructure.git_cli_reader import GitCliReader
from git_tandem.logging_config import setup_logging


def _parse_date(value: str) -> datetime:
    """Parse 'YYYY-MM-DD' or an ISO-8601 timestamp; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid date '{value}'. Use YYYY-MM-DD or ISO-8601, e.g. 2024-06-01T12:00:00+00:00"
        )
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number '{value}'")
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"Must be greater than zero: '{value}'")
    return parsed


def _error_exit(msg: str) -> None:
    """Print error message to stderr and exit with code 1."""
    print(f"Error: {msg}", file=sys.stderr)
    sys.exit(1)


def _header_fmt(fmt_spec: str) -> str:
    """Extract header-safe format from a value format spec.

    E.g. ">7.4f" → ">7", "<25" → "<25", ">6.2f" → ">6".
    """
    stripped = fmt_spec.rstrip("df%")
    dot = stripped.find(".")
    if dot != -1:
        stripped = stripped[:dot]
    return stripped


def _truncate(text: str, width: int) -> str:
    if len(text) > width:
        return "..." + text[-(width - 3):]
    return text


def _print_table(rows, columns, limit=20, suffix="rows") -> None:
    """Generic table printer.

    Args:
        rows: list of objects to print.
        columns: list of (header, format_spec, value_fn) tuples.
            - format_spec: value format string like ">6" or ">7.4f".
            - value_fn: callable(row) -> value to format.
        limit: max rows to print.
        suffix: word used in "... and N more {suffix}" message.
    """
    if not rows:
        return

    header_line = "  ".join(
        f"{header:{_header_fmt(fmt_spec)}}" for header, fmt_spec, _ in columns
    )
    print(header_line)
    print("-" * len(header_line))

    for r in rows[:limit]:
        print("  ".join(f"{value_fn(r):{fmt_spec}}" for _, fmt_spec, value_fn in columns))

    if len(rows) > limit:
        print(f"  ... and {len(rows) - limit} more {suffix}")


def _fmt_date(dt: datetime | None) -> str:
    return dt.strftime("%Y-%m-%d") if dt else "unknown"


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="git-tandem",
        description="Commit history statistics and file coupling for a git repository",
    )
    parser.add_argument(
        "repo_path", nargs="?", default=".",
        help="Path to a local git repository (default: current directory)",
    )
    parser.add_argument(
        "-n", "--max-commits",
        type=int, default=None, metavar="N",
        help="Maximum number of commits to analyze (0 = unlimited)",
    )
    parser.add_argument(
        "-b", "--branch",
        default="",
        help="Branch or ref to analyze (default: HEAD)",
    )
    parser.add_argument(
        "-a", "--author",
        default="",
        help="Only commits whose author matches this text",
    )
    parser.add_argument(
        "-m", "--include-merges",
        action="store_true", default=None,
        help="Include merge commits",
    )
    parser.add_argument(
        "--since", type=_parse_date, metavar="DATE",
        help="Only commits after DATE",
    )
    parser.add_argument(
        "--until", type=_parse_date, metavar="DATE",
        help="Only commits before DATE",
    )
    parser.add_argument(
        "-c", "--coupling",
        action="store_true",
        help="Show file coupling analysis",
    )
    parser.add_argument(
        "-i", "--ignore",
        action="append", metavar="PATTERN", default=None,
        help="Glob to exclude from coupling analysis; repeatable "
             "(default: *.md *.txt *.json *.yaml *.yml)",
    )
    parser.add_argument(
        "--top",
        type=int, default=None, metavar="N",
        help="Rows to show in the coupling table (default: 10)",
    )
    parser.add_argument(
        "--no-file-stats",
        dest="file_stats", action="store_false",
        help="Skip per-file line counts (faster; ignored with --coupling)",
    )
    parser.add_argument(
        "--timeout",
        type=_positive_float, default=None, metavar="SECONDS",
        help="Abort git commands that run longer than this",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Errors only")
    parser.add_argument("--log-file", metavar="PATH", help="Also append logs to PATH")
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Launch the web dashboard for repo_path",
    )
    parser.add_argument(
        "--port",
        type=int, default=8000, metavar="PORT",
        help="API port for --serve (Streamlit uses PORT+1, default: 8000)",
    )
    args = parser.parse_args()

    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    try:
        config = load_config(
            args.repo_path,
            ignore_patterns=args.ignore,
            max_commits=args.max_commits,
            include_merges=args.include_merges,
            top=args.top,
            git_timeout=args.timeout,
        )
        git_reader = GitCliReader(args.repo_path, timeout=config.git_timeout)
    except GitTandemError as e:
        _error_exit(str(e))

    if args.serve:
        try:
            from git_tandem.web.server import launch
        except ImportError:
            _error_exit(
                "web dependencies not installed. "
                "Run: pip install git-tandem[web]"
            )
        launch(repo_path=git_reader.path, api_port=args.port, git_timeout=config.git_timeout)
        return

    options = LoadOptions(
        branch=args.branch,
        since=args.since,
        until=args.until,
        author=args.author,
        max_commits=config.max_commits,
        include_merges=config.include_merges,
        include_file_stats=args.file_stats or args.coupling,
    )

    try:
        summary = get_repo_summary(git_reader, git_reader.path)
        print(f"Repository:      {summary.repo_path}")
        print(f"Current branch:  {summary.current_branch}")
        print(f"Total commits:   {summary.commit_count}")
        if summary.latest_commit_id is None:
            print("No commits found.")
            return
        print(f"Latest commit:   {summary.latest_commit_id[:7]}")
        print()

        history = load_history(git_reader, git_reader.path, options)
        _print_history(history)

        if args.coupling and history.commits:
            # -c turns file stats on, so the loaded history already carries them.
            report = build_coupling_report(
                git_reader.path, history.commits, config.ignore_patterns,
            )
            print()
            _print_coupling(report, config.top)
    except (GitTandemError, ValueError) as e:
        _error_exit(str(e))


def _print_history(history) -> None:
    commits = history.commits
    print(f"--- History ({len(commits)} commits) ---\n")

    if not commits:
        print("No commits found matching the filters.")
        return

    merge_pct = history.merge_commits / len(commits)
    print(f"Date range:      {_fmt_date(history.first_commit_date)} to {_fmt_date(history.last_commit_date)}")
    print(f"Contributors:    {len(history.contributors)}")
    print(f"Merge commits:   {history.merge_commits} ({merge_pct:.1%})")
    if history.options.include_file_stats:
        print(f"Files changed:   {history.totals.files_changed}")
        print(f"Lines added:     {history.totals.insertions}")
        print(f"Lines deleted:   {history.totals.deletions}")
    if history.issues:
        print(f"Skipped:         {len(history.issues)} malformed item(s), see --verbose")

    print("\nTop contributors:\n")
    _print_table(
        history.contributors,
        [
            ("Author", "<30", lambda a: _truncate(a.name, 30)),
            ("Commits", ">7", lambda a: a.commit_count),
            ("Share", ">6.1%", lambda a: a.share),
        ],
        limit=5,
        suffix="contributors",
    )

    print("\nRecent commits:\n")
    for c in commits[:5]:
        print(f"[{c.short_id}] {c.author.name} - {c.subject}")


def _print_coupling(report, top: int = 10) -> None:
    print(f"--- Coupling Analysis ({report.total_commits} commits) ---\n")

    pairs = report.result.pairs
    if not pairs:
        print("No coupled file pairs found (no pair changed together 3 or more times).")
        return

    fa_width = min(max(len(p.file_a) for p in pairs), 40)
    fb_width = min(max(len(p.file_b) for p in pairs), 40)
    _print_table(
        list(enumerate(pairs, start=1)),
        [
            ("#", ">3", lambda r: r[0]),
            ("File A", f"<{fa_width}", lambda r: _truncate(r[1].file_a, fa_width)),
            ("File B", f"<{fb_width}", lambda r: _truncate(r[1].file_b, fb_width)),
            ("Score", ">6.2f", lambda r: r[1].score),
            ("Co-changes", ">10", lambda r: r[1].co_changes),
            ("Strength", "<8", lambda r: r[1].strength.value),
        ],
        limit=top,
        suffix="pairs",
    )
    print(f"\nTotal coupled pairs: {len(pairs)}")
