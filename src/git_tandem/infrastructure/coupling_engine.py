"""Co-change coupling between files.

Cost is quadratic in the number of files a single commit touches; commits
that touch thousands of files are slow and are not special-cased.
"""

from __future__ import annotations

import posixpath
from collections import defaultdict
from collections.abc import Iterable, Sequence
from fnmatch import fnmatchcase

from git_tandem.domain.models import Commit, CouplingResult, FilePair

# Pairs seen together fewer times than this are treated as coincidence.
MIN_CO_CHANGES = 3


def glob_match(path: str, pattern: str) -> bool:
    """Match ``pattern`` against the whole of ``path``, one segment at a time.

    ``*`` and ``?`` never cross a ``/``: ``vendor/*`` matches ``vendor/lib.go``
    but not ``vendor/sub/lib.go``.
    """
    path_parts = path.split("/")
    pattern_parts = pattern.split("/")
    if len(path_parts) != len(pattern_parts):
        return False
    return all(fnmatchcase(s, p) for s, p in zip(path_parts, pattern_parts))


def is_ignored(path: str, patterns: Iterable[str]) -> bool:
    """True if any glob matches the file's base name or its full path."""
    base = posixpath.basename(path)
    return any(glob_match(base, p) or glob_match(path, p) for p in patterns)


def filtered_paths(commit: Commit, patterns: Sequence[str]) -> list[str]:
    """Distinct, sorted, non-ignored paths touched by the commit.

    Only paths survive: line counts and change types are dropped here.
    """
    return sorted({
        fc.path for fc in commit.file_changes
        if not is_ignored(fc.path, patterns)
    })


def compute_coupling(
    commits: Iterable[Commit],
    ignore_patterns: Sequence[str] = (),
    min_co_changes: int = MIN_CO_CHANGES,
) -> CouplingResult:
    file_total_changes: defaultdict[str, int] = defaultdict(int)
    pair_co_changes: defaultdict[tuple[str, str], int] = defaultdict(int)

    for commit in commits:
        files = filtered_paths(commit, ignore_patterns)
        for f in files:
            file_total_changes[f] += 1
        for i in range(len(files)):
            for j in range(i + 1, len(files)):
                # files is sorted, so (files[i], files[j]) is already canonical
                pair_co_changes[(files[i], files[j])] += 1

    pairs: list[FilePair] = []
    for (fa, fb), co_changes in pair_co_changes.items():
        if co_changes < min_co_changes:
            continue
        denominator = min(file_total_changes[fa], file_total_changes[fb])
        score = co_changes / denominator if denominator > 0 else 0.0
        pairs.append(FilePair(file_a=fa, file_b=fb, co_changes=co_changes, score=score))

    # Ties fall back to the canonical pair order so output is reproducible.
    pairs.sort(key=lambda p: (-p.score, p.file_a, p.file_b))

    return CouplingResult(pairs=pairs, file_total_changes=dict(file_total_changes))
