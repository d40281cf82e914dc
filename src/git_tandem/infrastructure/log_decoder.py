"""Decode delimiter-framed `git log` output into Commit records.

Decoding is best-effort: a malformed record or numstat line is skipped and
reported as a DecodeIssue, and an unparsable timestamp leaves the commit
with ``timestamp=None``. Nothing here raises on bad input.
"""

from __future__ import annotations

from datetime import datetime

from git_tandem.domain.models import (
    Author,
    ChangeType,
    Commit,
    DecodeIssue,
    DecodeResult,
    FileChange,
    IssueKind,
)
from git_tandem.infrastructure.log_query import (
    DEFAULT_LOG_FORMAT,
    MIN_RECORD_FIELDS,
    NUMSTAT_INDEX,
    LogField,
    LogFormat,
)
from git_tandem.logging_config import get_logger

logger = get_logger(__name__)

RENAME_ARROW = " => "
_FALLBACK_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def decode_log(
    raw: str,
    log_format: LogFormat = DEFAULT_LOG_FORMAT,
    include_file_stats: bool = True,
) -> DecodeResult:
    commits: list[Commit] = []
    issues: list[DecodeIssue] = []

    for segment in raw.split(log_format.record_delimiter):
        if not segment.strip():
            continue
        commit = _decode_record(segment, log_format, include_file_stats, issues)
        if commit is not None:
            commits.append(commit)

    for issue in issues:
        logger.debug("%s: %s", issue.kind.value, issue.detail)
    if issues:
        logger.info(
            "Decoded %d commits with %d issue(s)", len(commits), len(issues)
        )
    return DecodeResult(commits=commits, issues=issues)


def _decode_record(
    segment: str,
    log_format: LogFormat,
    include_file_stats: bool,
    issues: list[DecodeIssue],
) -> Commit | None:
    fields = segment.split(log_format.field_delimiter)
    if len(fields) < MIN_RECORD_FIELDS:
        issues.append(DecodeIssue(
            IssueKind.MALFORMED_RECORD,
            f"expected {MIN_RECORD_FIELDS} fields, got {len(fields)}: {segment.strip()[:80]!r}",
        ))
        return None

    def get(f: LogField) -> str:
        return fields[f.index].strip()

    commit_id = get(LogField.ID)
    timestamp_str = get(LogField.TIMESTAMP)
    timestamp = _parse_timestamp(timestamp_str)
    if timestamp is None:
        issues.append(DecodeIssue(
            IssueKind.UNPARSABLE_TIMESTAMP,
            f"{commit_id or '<no id>'}: {timestamp_str!r}",
        ))

    file_changes: list[FileChange] = []
    if include_file_stats and len(fields) > NUMSTAT_INDEX:
        for line in fields[NUMSTAT_INDEX].splitlines():
            if not line.strip():
                continue
            change = parse_numstat_line(line)
            if change is None:
                issues.append(DecodeIssue(
                    IssueKind.MALFORMED_STAT_LINE, f"{commit_id}: {line!r}"
                ))
                continue
            file_changes.append(change)

    return Commit(
        id=commit_id,
        short_id=get(LogField.SHORT_ID),
        author=Author(get(LogField.AUTHOR_NAME), get(LogField.AUTHOR_EMAIL)),
        committer=Author(get(LogField.COMMITTER_NAME), get(LogField.COMMITTER_EMAIL)),
        timestamp=timestamp,
        subject=get(LogField.SUBJECT),
        body=get(LogField.BODY),
        file_changes=file_changes,
        parent_ids=get(LogField.PARENTS).split(),
    )


def _parse_timestamp(value: str) -> datetime | None:
    """Strict ISO-8601 with an offset; naive values and bare dates are rejected."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        parsed = None
    if parsed is not None and parsed.tzinfo is not None:
        return parsed
    try:
        return datetime.strptime(value, _FALLBACK_TIMESTAMP_FORMAT)
    except ValueError:
        return None


def parse_numstat_line(line: str) -> FileChange | None:
    """Decode one ``added<TAB>deleted<TAB>path`` line.

    Binary files report ``-`` for both counts; those become 0. Returns None
    when the line does not split into exactly three parts.
    """
    parts = line.split("\t", 2)
    if len(parts) != 3:
        return None
    added_str, deleted_str, path = parts

    if RENAME_ARROW not in path:
        return FileChange(
            path=path.strip(),
            change_type=ChangeType.MODIFIED,
            lines_added=_count(added_str),
            lines_deleted=_count(deleted_str),
        )

    old_path, new_path = _expand_rename(path)
    return FileChange(
        path=new_path,
        change_type=ChangeType.RENAMED,
        lines_added=_count(added_str),
        lines_deleted=_count(deleted_str),
        old_path=old_path,
    )


def _count(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


def _expand_rename(path: str) -> tuple[str, str]:
    """Split a numstat rename path into (old, new).

    Handles both ``old => new`` and the compact ``prefix{old => new}suffix``.
    """
    old_raw, new_raw = (p.strip() for p in path.split(RENAME_ARROW, 1))

    open_idx = old_raw.find("{")
    close_idx = new_raw.rfind("}")
    if open_idx == -1 and close_idx == -1:
        return old_raw, new_raw

    if open_idx == -1:
        prefix, old_inner = "", old_raw
    else:
        prefix, old_inner = old_raw[:open_idx], old_raw[open_idx + 1:]
    if close_idx == -1:
        new_inner, suffix = new_raw, ""
    else:
        new_inner, suffix = new_raw[:close_idx], new_raw[close_idx + 1:]

    return (
        _join_compact(prefix, old_inner, suffix),
        _join_compact(prefix, new_inner, suffix),
    )


def _join_compact(prefix: str, inner: str, suffix: str) -> str:
    # "src/{ => lib}/a.py": an empty side leaves "src/" + "/a.py".
    if not inner and suffix.startswith("/") and (not prefix or prefix.endswith("/")):
        return prefix + suffix[1:]
    return prefix + inner + suffix
