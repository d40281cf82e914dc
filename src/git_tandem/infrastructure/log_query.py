"""Builds the `git log` invocation whose output the log decoder reads.

The builder and the decoder agree on two things only: the ``LogFormat``
delimiters and the ``LogField`` order. Both are passed in explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from git_tandem.domain.models import LoadOptions, LogQuery


@dataclass(frozen=True)
class LogFormat:
    record_delimiter: str = "---GIT_TANDEM_RECORD_7f3a9c---"
    field_delimiter: str = "---GIT_TANDEM_FIELD_7f3a9c---"


DEFAULT_LOG_FORMAT = LogFormat()


class LogField(Enum):
    """Per-commit fields in emission order; value is the git placeholder."""

    ID = "%H"
    SHORT_ID = "%h"
    AUTHOR_NAME = "%an"
    AUTHOR_EMAIL = "%ae"
    COMMITTER_NAME = "%cn"
    COMMITTER_EMAIL = "%ce"
    TIMESTAMP = "%aI"
    PARENTS = "%P"
    SUBJECT = "%s"
    BODY = "%b"

    @property
    def index(self) -> int:
        # Index 0 of a split record is the empty text before the first field delimiter.
        return _FIELD_ORDER.index(self) + 1


_FIELD_ORDER = list(LogField)

# Empty lead + one slot per field. The numstat block, when present, follows at this index.
MIN_RECORD_FIELDS = len(_FIELD_ORDER) + 1
NUMSTAT_INDEX = MIN_RECORD_FIELDS


def build_template(log_format: LogFormat = DEFAULT_LOG_FORMAT) -> str:
    sep = log_format.field_delimiter
    placeholders = sep.join(f.value for f in _FIELD_ORDER)
    return f"{log_format.record_delimiter}{sep}{placeholders}{sep}"


def build_log_query(
    options: LoadOptions, log_format: LogFormat = DEFAULT_LOG_FORMAT
) -> LogQuery:
    template = build_template(log_format)
    args = [
        "log",
        f"--format={template}",
        "--no-color",
        "--no-decorate",
    ]
    if options.include_file_stats:
        # -M reports a rename as a single "old => new" line.
        args += ["--numstat", "-M", "--diff-merges=first-parent"]

    if not options.include_merges:
        args.append("--no-merges")
    if options.max_commits > 0:
        args.append(f"--max-count={options.max_commits}")
    if options.since:
        args.append(f"--since={options.since.isoformat()}")
    if options.until:
        args.append(f"--until={options.until.isoformat()}")
    if options.author:
        args.append(f"--author={options.author}")

    # Everything after this marker is a revision, even text starting with "-".
    args += ["--end-of-options", options.branch or "HEAD"]

    return LogQuery(args=args, template=template)
