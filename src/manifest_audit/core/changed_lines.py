"""Changed line numbers from a unified diff."""

from __future__ import annotations

import re

_HUNK_COUNTER = re.compile(r"^(\d+)")
_HEADER_PREFIXES = ("diff", "index", "---", "+++")


def _hunk_start(part: str, sign: str) -> int:
    match = _HUNK_COUNTER.match(part.lstrip(sign))
    return int(match.group(1)) if match else 0


def extract_changed_lines(patch: str) -> tuple[list[int], list[int]]:
    """Return (added, deleted) line numbers from a unified diff.

    Added lines are numbered in the new file, deleted lines in the old one.
    Both lists are ascending for a single-file patch.
    """
    added: list[int] = []
    deleted: list[int] = []
    old_line = new_line = 0

    for line in patch.split("\n"):
        if line.startswith("@@"):
            parts = line.split(" ")
            if len(parts) >= 3:
                old_line = _hunk_start(parts[1], "-")
                new_line = _hunk_start(parts[2], "+")
            continue
        if line.startswith(_HEADER_PREFIXES):
            continue
        if line.startswith("+"):
            added.append(new_line)
            new_line += 1
        elif line.startswith("-"):
            deleted.append(old_line)
            old_line += 1
        else:
            old_line += 1
            new_line += 1

    return added, deleted
