from datetime import datetime, timedelta, timezone

from git_tandem.domain.models import ChangeType, FileChange, IssueKind
from git_tandem.infrastructure.log_decoder import decode_log, parse_numstat_line
from git_tandem.infrastructure.log_query import DEFAULT_LOG_FORMAT, LogFormat

R = DEFAULT_LOG_FORMAT.record_delimiter
F = DEFAULT_LOG_FORMAT.field_delimiter


def _record(
    sha: str = "a" * 40,
    short: str = "aaaaaaa",
    author: tuple[str, str] = ("Alice", "alice@example.com"),
    committer: tuple[str, str] = ("Bob", "bob@example.com"),
    date: str = "2024-06-01T12:00:00+00:00",
    parents: str = "p" * 40,
    subject: str = "Fix bug",
    body: str = "",
    numstat: str = "",
    fmt: LogFormat = DEFAULT_LOG_FORMAT,
) -> str:
    """Build one record the way git renders the format template."""
    fields = [sha, short, *author, *committer, date, parents, subject, body + "\n"]
    sep = fmt.field_delimiter
    text = fmt.record_delimiter + sep + sep.join(fields) + sep + "\n"
    if numstat:
        text += "\n" + numstat + "\n"
    return text


class TestDecodeRecord:
    def test_all_fields_recovered(self):
        raw = _record(body="Longer explanation.\nSecond line.", numstat="10\t5\tsrc/main.py")
        result = decode_log(raw)
        assert len(result.commits) == 1
        c = result.commits[0]
        assert c.id == "a" * 40
        assert c.short_id == "aaaaaaa"
        assert c.author.name == "Alice"
        assert c.author.email == "alice@example.com"
        assert c.committer.name == "Bob"
        assert c.committer.email == "bob@example.com"
        assert c.timestamp == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert c.parent_ids == ["p" * 40]
        assert c.subject == "Fix bug"
        assert c.body == "Longer explanation.\nSecond line."
        assert c.message == "Fix bug\n\nLonger explanation.\nSecond line."
        assert c.file_changes == [FileChange("src/main.py", ChangeType.MODIFIED, 10, 5)]
        assert result.issues == []

    def test_empty_body_and_root_commit(self):
        result = decode_log(_record(body="", parents=""))
        c = result.commits[0]
        assert c.body == ""
        assert c.message == "Fix bug"
        assert c.parent_ids == []
        assert c.is_merge is False

    def test_timezone_offset_preserved(self):
        c = decode_log(_record(date="2024-06-01T14:30:00+02:00")).commits[0]
        assert c.timestamp.utcoffset() == timedelta(hours=2)

    def test_order_preserved(self):
        raw = _record(sha="1" * 40, subject="newest") + _record(sha="2" * 40, subject="oldest")
        result = decode_log(raw)
        assert [c.subject for c in result.commits] == ["newest", "oldest"]

    def test_empty_output(self):
        result = decode_log("")
        assert result.commits == []
        assert result.issues == []

    def test_whitespace_only_output(self):
        assert decode_log("\n\n").commits == []

    def test_subject_with_pipes_and_unicode(self):
        c = decode_log(_record(subject="fix | update deps — ünïcode")).commits[0]
        assert c.subject == "fix | update deps — ünïcode"

    def test_multi_line_body_with_blank_lines(self):
        body = "Para one.\n\nPara two.\n\n- bullet"
        c = decode_log(_record(body=body)).commits[0]
        assert c.body == body

    def test_custom_log_format(self):
        fmt = LogFormat(record_delimiter="<<R>>", field_delimiter="<<F>>")
        result = decode_log(_record(fmt=fmt, numstat="1\t1\ta.py"), fmt)
        assert len(result.commits) == 1
        assert result.commits[0].file_changes[0].path == "a.py"


class TestMergeDetection:
    def test_two_parents(self):
        c = decode_log(_record(parents=f"{'1' * 40} {'2' * 40}")).commits[0]
        assert c.parent_ids == ["1" * 40, "2" * 40]
        assert c.is_merge is True

    def test_three_parents(self):
        c = decode_log(_record(parents="a b c")).commits[0]
        assert c.is_merge is True

    def test_one_parent(self):
        assert decode_log(_record(parents="a")).commits[0].is_merge is False


class TestMalformedRecords:
    def test_short_record_dropped(self):
        raw = f"{R}{F}abc{F}abc{F}Alice\n"
        result = decode_log(raw)
        assert result.commits == []
        assert result.skipped_records == 1
        assert result.issues[0].kind is IssueKind.MALFORMED_RECORD

    def test_short_record_does_not_affect_siblings(self):
        raw = _record(sha="1" * 40) + f"{R}{F}garbage\n" + _record(sha="2" * 40)
        result = decode_log(raw)
        assert [c.id for c in result.commits] == ["1" * 40, "2" * 40]
        assert result.skipped_records == 1

    def test_leading_noise_before_first_boundary(self):
        raw = "warning: something\n" + _record()
        result = decode_log(raw)
        assert len(result.commits) == 1
        assert result.skipped_records == 1


class TestTimestamps:
    def test_zulu_suffix(self):
        c = decode_log(_record(date="2024-06-01T12:00:00Z")).commits[0]
        assert c.timestamp == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def test_compact_offset_fallback(self):
        c = decode_log(_record(date="2024-06-01T12:00:00+0200")).commits[0]
        assert c.timestamp.utcoffset() == timedelta(hours=2)

    def test_unparsable_timestamp_keeps_record(self):
        result = decode_log(_record(date="not a date"))
        assert len(result.commits) == 1
        assert result.commits[0].timestamp is None
        assert result.issues[0].kind is IssueKind.UNPARSABLE_TIMESTAMP


class TestNumstatBlock:
    def test_stats_accumulated(self):
        numstat = "10\t2\ta.py\n5\t1\tb.py\n-\t-\tlogo.png"
        c = decode_log(_record(numstat=numstat)).commits[0]
        assert c.stats.files_changed == 3
        assert c.stats.insertions == 15
        assert c.stats.deletions == 3

    def test_malformed_line_skipped_without_affecting_siblings(self):
        numstat = "10\t2\ta.py\n7\tbroken.py\n5\t1\tb.py"
        result = decode_log(_record(numstat=numstat))
        c = result.commits[0]
        assert [fc.path for fc in c.file_changes] == ["a.py", "b.py"]
        assert c.stats.files_changed == 2
        assert result.skipped_lines == 1

    def test_file_stats_not_requested(self):
        c = decode_log(_record(numstat="10\t2\ta.py"), include_file_stats=False).commits[0]
        assert c.file_changes == []
        assert c.stats.files_changed == 0

    def test_commit_without_files(self):
        c = decode_log(_record()).commits[0]
        assert c.file_changes == []


class TestParseNumstatLine:
    def test_plain_line(self):
        assert parse_numstat_line("45\t12\tsrc/auth.py") == FileChange(
            "src/auth.py", ChangeType.MODIFIED, 45, 12,
        )

    def test_binary_file(self):
        fc = parse_numstat_line("-\t-\timage.png")
        assert fc == FileChange("image.png", ChangeType.MODIFIED, 0, 0)

    def test_compact_rename(self):
        fc = parse_numstat_line("0\t0\tsrc/{old_name.go => new_name.go}")
        assert fc.path == "src/new_name.go"
        assert fc.old_path == "src/old_name.go"
        assert fc.change_type is ChangeType.RENAMED

    def test_plain_rename(self):
        fc = parse_numstat_line("3\t1\told.txt => new.txt")
        assert fc.path == "new.txt"
        assert fc.old_path == "old.txt"
        assert fc.change_type is ChangeType.RENAMED
        assert (fc.lines_added, fc.lines_deleted) == (3, 1)

    def test_rename_with_suffix(self):
        fc = parse_numstat_line("2\t2\tlib/{core => engine}/parser.py")
        assert fc.old_path == "lib/core/parser.py"
        assert fc.path == "lib/engine/parser.py"

    def test_rename_into_subdirectory(self):
        fc = parse_numstat_line("0\t0\tsrc/{ => pkg}/a.py")
        assert fc.old_path == "src/a.py"
        assert fc.path == "src/pkg/a.py"

    def test_rename_out_of_subdirectory_at_root(self):
        fc = parse_numstat_line("0\t0\t{legacy => }/a.py")
        assert fc.old_path == "legacy/a.py"
        assert fc.path == "a.py"

    def test_two_fields_rejected(self):
        assert parse_numstat_line("10\tsrc/main.py") is None

    def test_no_tabs_rejected(self):
        assert parse_numstat_line("not-a-valid-line") is None

    def test_tab_in_path_kept(self):
        fc = parse_numstat_line("1\t1\tweird\tname.txt")
        assert fc.path == "weird\tname.txt"


class TestTimestampsRequireOffset:
    def test_naive_timestamp_rejected(self):
        result = decode_log(_record(date="2024-06-01T12:00:00"))
        assert result.commits[0].timestamp is None
        assert [i.kind for i in result.issues] == [IssueKind.UNPARSABLE_TIMESTAMP]

    def test_date_only_rejected(self):
        result = decode_log(_record(date="2024-06-01"))
        assert result.commits[0].timestamp is None
        assert result.issues[0].kind is IssueKind.UNPARSABLE_TIMESTAMP

    def test_mixed_records_stay_comparable(self):
        raw = _record(sha="1" * 40, date="2024-06-01T12:00:00") + _record(
            sha="2" * 40, date="2024-06-02T12:00:00+00:00",
        )
        stamps = [c.timestamp for c in decode_log(raw).commits if c.timestamp]
        assert stamps == [datetime(2024, 6, 2, 12, 0, tzinfo=timezone.utc)]
