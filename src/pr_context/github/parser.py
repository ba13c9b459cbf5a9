"""
Unified Diff Parser

Parses raw unified diff text (as returned by GitHub for
``application/vnd.github.v3.diff``) into per-file, per-hunk and per-line
records, and renders those records back into unified diff text.
"""

import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..models.pr_diff import DiffHunk, DiffLine, FileDiff, FileStatus, LineKind


logger = logging.getLogger(__name__)

FILE_HEADER_PATTERN = re.compile(r'^diff --git a/(.+?) b/(.+)$')
HUNK_HEADER_PATTERN = re.compile(r'^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@ ?(.*)$')
NO_NEWLINE_MARKER = '\\ No newline at end of file'

# Structural lines git emits verbatim between the file header and the first hunk
PREAMBLE_STATUS = (
    ('new file', FileStatus.ADDED),
    ('deleted file', FileStatus.REMOVED),
    ('rename from', FileStatus.RENAMED),
)
BINARY_PREFIXES = ('Binary files', 'GIT binary patch')


class ParserState(Enum):
    """States of the diff scanner."""
    SCANNING = "scanning"
    PREAMBLE = "preamble"
    IN_HUNK = "in_hunk"


@dataclass
class _ScanState:
    """Mutable scan state threaded through the transition functions."""
    state: ParserState = ParserState.SCANNING
    files: List[FileDiff] = field(default_factory=list)
    current_file: Optional[FileDiff] = None
    current_hunk: Optional[DiffHunk] = None
    old_line: int = 0
    new_line: int = 0


def parse_diff(text: str) -> List[FileDiff]:
    """
    Parse unified diff text into structured file diffs.

    Never raises on malformed input: unrecognized lines are skipped and an
    unterminated hunk or file is flushed at end of input.

    Args:
        text: Raw unified diff text

    Returns:
        List of FileDiff objects in diff order
    """
    scan = _ScanState()
    if not text:
        return scan.files

    for line in text.split('\n'):
        header_match = FILE_HEADER_PATTERN.match(line)
        if header_match:
            _open_file(scan, header_match.group(1), header_match.group(2))
        elif scan.state is ParserState.PREAMBLE:
            _on_preamble_line(scan, line)
        elif scan.state is ParserState.IN_HUNK:
            _on_hunk_line(scan, line)

    _flush_file(scan)
    logger.debug(f"Parsed {len(scan.files)} files from diff")
    return scan.files


def _open_file(scan: _ScanState, old_path: str, new_path: str) -> None:
    _flush_file(scan)
    scan.current_file = FileDiff(filename=new_path)
    if old_path != new_path:
        scan.current_file.status = FileStatus.RENAMED
        scan.current_file.previous_filename = old_path
    scan.state = ParserState.PREAMBLE


def _on_preamble_line(scan: _ScanState, line: str) -> None:
    if _open_hunk(scan, line):
        return

    for prefix, status in PREAMBLE_STATUS:
        if line.startswith(prefix):
            scan.current_file.status = status
            if status is FileStatus.RENAMED:
                scan.current_file.previous_filename = line[len(prefix):].strip() or scan.current_file.previous_filename
            return

    if line.startswith(BINARY_PREFIXES):
        scan.current_file.is_binary = True


def _on_hunk_line(scan: _ScanState, line: str) -> None:
    if _open_hunk(scan, line):
        return

    hunk = scan.current_hunk
    file_diff = scan.current_file

    if line.startswith('+'):
        hunk.lines.append(DiffLine(LineKind.ADD, line[1:], new_line_number=scan.new_line))
        scan.new_line += 1
        file_diff.additions += 1
    elif line.startswith('-'):
        hunk.lines.append(DiffLine(LineKind.DELETE, line[1:], old_line_number=scan.old_line))
        scan.old_line += 1
        file_diff.deletions += 1
    elif line.startswith(' '):
        hunk.lines.append(DiffLine(
            LineKind.CONTEXT, line[1:],
            old_line_number=scan.old_line,
            new_line_number=scan.new_line,
        ))
        scan.old_line += 1
        scan.new_line += 1
    elif line.startswith('\\'):
        hunk.lines.append(DiffLine(LineKind.NO_NEWLINE, line))


def _open_hunk(scan: _ScanState, line: str) -> bool:
    """Start a new hunk if the line is a hunk header."""
    if not line.startswith('@@'):
        return False

    match = HUNK_HEADER_PATTERN.match(line)
    if not match:
        logger.debug(f"Ignoring malformed hunk header: {line!r}")
        return True

    _flush_hunk(scan)
    old_start = int(match.group(1))
    new_start = int(match.group(3))
    scan.current_hunk = DiffHunk(
        old_start=old_start,
        old_line_count=int(match.group(2)) if match.group(2) is not None else 1,
        new_start=new_start,
        new_line_count=int(match.group(4)) if match.group(4) is not None else 1,
        header_text=match.group(5),
    )
    scan.old_line = old_start
    scan.new_line = new_start
    scan.state = ParserState.IN_HUNK
    return True


def _flush_hunk(scan: _ScanState) -> None:
    if scan.current_hunk is not None:
        scan.current_file.hunks.append(scan.current_hunk)
        scan.current_hunk = None


def _flush_file(scan: _ScanState) -> None:
    _flush_hunk(scan)
    if scan.current_file is not None:
        file_diff = scan.current_file
        file_diff.changes = file_diff.additions + file_diff.deletions
        scan.files.append(file_diff)
        scan.current_file = None
    scan.state = ParserState.SCANNING


def reconstruct_patch(file_diff: FileDiff) -> Optional[str]:
    """
    Replay a file's hunks as unified diff text.

    Args:
        file_diff: Parsed file diff

    Returns:
        Patch text (hunk headers and prefixed lines) or None without hunks
    """
    if not file_diff.hunks:
        return None

    prefixes = {LineKind.ADD: '+', LineKind.DELETE: '-', LineKind.CONTEXT: ' '}
    patch_lines = []
    for hunk in file_diff.hunks:
        patch_lines.append(hunk.header)
        for line in hunk.lines:
            if line.kind is LineKind.NO_NEWLINE:
                patch_lines.append(line.text)
            else:
                patch_lines.append(f"{prefixes[line.kind]}{line.text}")

    return '\n'.join(patch_lines)


def render_file_diff(file_diff: FileDiff) -> str:
    """
    Render a complete ``diff --git`` section for one file.

    Parsing the result yields a FileDiff equivalent to the input.
    """
    old_path = file_diff.previous_filename or file_diff.filename
    lines = [f"diff --git a/{old_path} b/{file_diff.filename}"]

    if file_diff.status is FileStatus.ADDED:
        lines.append("new file mode 100644")
    elif file_diff.status is FileStatus.REMOVED:
        lines.append("deleted file mode 100644")
    elif file_diff.status is FileStatus.RENAMED:
        lines.append(f"rename from {old_path}")
        lines.append(f"rename to {file_diff.filename}")

    if file_diff.is_binary:
        lines.append(f"Binary files a/{old_path} and b/{file_diff.filename} differ")

    patch = reconstruct_patch(file_diff)
    if patch is not None:
        lines.append(f"--- a/{old_path}")
        lines.append(f"+++ b/{file_diff.filename}")
        lines.append(patch)

    return '\n'.join(lines)
