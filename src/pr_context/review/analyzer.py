"""
Diff Analyzer

Derives per-file and aggregate statistics from parsed diffs: language
detection, reviewability filtering, changed-line extraction, affected
symbols, context ranges and complexity scoring.
"""

import re
import logging
import posixpath
from typing import Dict, Iterable, List, Optional

from ..models.pr_diff import (
    ChangedLine,
    DiffStats,
    FileChange,
    FileDiff,
    LineContext,
    LineKind,
    LineRange,
)


logger = logging.getLogger(__name__)

LANGUAGE_BY_EXTENSION = {
    'ts': 'typescript',
    'tsx': 'typescript',
    'js': 'javascript',
    'jsx': 'javascript',
    'py': 'python',
    'rb': 'ruby',
    'go': 'go',
    'rs': 'rust',
    'java': 'java',
    'c': 'c',
    'h': 'c',
    'cpp': 'cpp',
    'cc': 'cpp',
    'hpp': 'cpp',
    'cs': 'csharp',
    'php': 'php',
    'swift': 'swift',
    'kt': 'kotlin',
    'scala': 'scala',
    'sql': 'sql',
    'html': 'html',
    'xml': 'xml',
    'css': 'css',
    'scss': 'scss',
    'json': 'json',
    'yaml': 'yaml',
    'yml': 'yaml',
    'md': 'markdown',
    'sh': 'bash',
    'bash': 'bash',
    'dockerfile': 'dockerfile',
}

# Paths that never need review: lockfiles, bundles, generated and vendored
# output, images and fonts.
SKIP_PATTERNS = [re.compile(p) for p in (
    r'package-lock\.json$',
    r'yarn\.lock$',
    r'pnpm-lock\.yaml$',
    r'\.min\.js$',
    r'\.min\.css$',
    r'\.map$',
    r'\.generated\.',
    r'node_modules/',
    r'dist/',
    r'build/',
    r'\.next/',
    r'coverage/',
    r'\.svg$',
    r'\.png$',
    r'\.jpg$',
    r'\.jpeg$',
    r'\.gif$',
    r'\.ico$',
    r'\.woff$',
    r'\.woff2$',
    r'\.ttf$',
    r'\.eot$',
)]

SYMBOL_PATTERNS = [re.compile(p) for p in (
    r'function\s+(\w+)',
    r'def\s+(\w+)',
    r'class\s+(\w+)',
    r'const\s+(\w+)\s*=',
    r'export\s+(?:function|const|class)\s+(\w+)',
)]

# (bonus, path keywords)
PATH_BONUSES = (
    (20, ('auth', 'security', 'crypto')),
    (15, ('db', 'database', 'migration')),
    (10, ('api', 'endpoint')),
)

# Each pattern adds RISK_PATTERN_BONUS at most once per file
RISK_PATTERNS = [
    re.compile(r'async|await|Promise', re.IGNORECASE),
    re.compile(r'try\s*{|catch\s*\('),
    re.compile(r'class\s+\w+'),
    re.compile(r'interface\s+\w+'),
    re.compile(r'type\s+\w+\s*='),
    re.compile(r'@\w+\('),
    re.compile(r'\.then\(|\.catch\('),
    re.compile(r'SELECT|INSERT|UPDATE|DELETE', re.IGNORECASE),
    re.compile(r'crypto|encrypt|decrypt|hash|sign', re.IGNORECASE),
]
RISK_PATTERN_BONUS = 5
MAX_SIZE_SCORE = 50
MAX_COMPLEXITY = 100
TOP_FILES_LIMIT = 10


def detect_language(filename: str) -> Optional[str]:
    """
    Detect programming language from a filename.

    Args:
        filename: Path of the file

    Returns:
        Language name or None for unknown extensions
    """
    basename = posixpath.basename(filename).lower()
    if basename == 'dockerfile':
        return 'dockerfile'
    if '.' not in basename:
        return None
    return LANGUAGE_BY_EXTENSION.get(basename.rsplit('.', 1)[-1])


def should_review(filename: str) -> bool:
    """Check whether a path is worth reviewing (denylist)."""
    return not any(pattern.search(filename) for pattern in SKIP_PATTERNS)


def filter_reviewable(files: Iterable[FileDiff]) -> List[FileDiff]:
    """
    Drop binary files and files that should not be reviewed.

    Args:
        files: Parsed file diffs

    Returns:
        Reviewable file diffs in their original order
    """
    reviewable = [f for f in files if not f.is_binary and should_review(f.filename)]
    logger.debug(f"Filtered to {len(reviewable)} reviewable files")
    return reviewable


def extract_changed_lines(file_diff: FileDiff) -> FileChange:
    """
    Flatten a file's hunks into added/deleted lines.

    Added lines carry their new-side number, deleted lines their old-side
    number. Context and no-newline markers are dropped.
    """
    changed_lines = []
    for hunk in file_diff.hunks:
        for line in hunk.lines:
            if line.kind is LineKind.ADD and line.new_line_number:
                changed_lines.append(ChangedLine(line.new_line_number, LineKind.ADD, line.text))
            elif line.kind is LineKind.DELETE and line.old_line_number:
                changed_lines.append(ChangedLine(line.old_line_number, LineKind.DELETE, line.text))

    return FileChange(
        filename=file_diff.filename,
        status=file_diff.status,
        additions=file_diff.additions,
        deletions=file_diff.deletions,
        changed_lines=tuple(changed_lines),
        language=detect_language(file_diff.filename),
    )


def extract_affected_symbols(file_diff: FileDiff) -> List[str]:
    """
    Collect function/class names from hunk header trailers.

    Best effort: only symbols git put in the ``@@`` trailer are found.
    """
    symbols: Dict[str, None] = {}
    for hunk in file_diff.hunks:
        if not hunk.header_text:
            continue
        for pattern in SYMBOL_PATTERNS:
            match = pattern.search(hunk.header_text)
            if match:
                symbols.setdefault(match.group(1))
    return list(symbols)


def compute_context_ranges(changed_lines: Iterable[ChangedLine], pad: int = 5) -> List[LineRange]:
    """
    Merge padded windows around changed lines.

    Args:
        changed_lines: Changed lines of one file
        pad: Lines of context on each side

    Returns:
        Sorted, non-overlapping ranges; touching ranges are merged
    """
    numbers = sorted(line.line_number for line in changed_lines)
    if not numbers:
        return []

    ranges = []
    start, end = max(1, numbers[0] - pad), numbers[0] + pad
    for number in numbers[1:]:
        next_start, next_end = max(1, number - pad), number + pad
        if next_start <= end + 1:
            end = max(end, next_end)
        else:
            ranges.append(LineRange(start, end))
            start, end = next_start, next_end

    ranges.append(LineRange(start, end))
    return ranges


def score_complexity(file_diff: FileDiff) -> float:
    """
    Score how much scrutiny a file deserves, from 0 to 100.

    Size contributes up to 50 points, risky paths add fixed bonuses and
    each risk pattern found in the hunk content adds 5 points once.
    """
    score = min(file_diff.changes / 10, MAX_SIZE_SCORE)

    path = file_diff.filename.lower()
    for bonus, keywords in PATH_BONUSES:
        if any(keyword in path for keyword in keywords):
            score += bonus

    content = '\n'.join(file_diff.content_lines)
    for pattern in RISK_PATTERNS:
        if pattern.search(content):
            score += RISK_PATTERN_BONUS

    return min(score, MAX_COMPLEXITY)


def aggregate_stats(files: List[FileDiff]) -> DiffStats:
    """
    Sum totals and bucket files by status and language.

    The largest files are ranked by changes, ties keep input order.
    """
    stats = DiffStats(total_files=len(files))

    for file_diff in files:
        stats.total_additions += file_diff.additions
        stats.total_deletions += file_diff.deletions
        stats.total_changes += file_diff.changes

        status = file_diff.status.value
        stats.files_by_status[status] = stats.files_by_status.get(status, 0) + 1

        language = detect_language(file_diff.filename) or 'unknown'
        stats.files_by_language[language] = stats.files_by_language.get(language, 0) + 1

        if file_diff.is_binary:
            stats.binary_files += 1

    ranked = sorted(files, key=lambda f: f.changes, reverse=True)
    stats.largest_files = [(f.filename, f.changes) for f in ranked[:TOP_FILES_LIMIT]]
    return stats


def summarize_diff(stats: DiffStats) -> str:
    """Human readable one-liner, e.g. '3 files changed, 10 additions'."""
    parts = [f"{stats.total_files} file{'' if stats.total_files == 1 else 's'} changed"]
    if stats.total_additions > 0:
        parts.append(f"{stats.total_additions} addition{'' if stats.total_additions == 1 else 's'}")
    if stats.total_deletions > 0:
        parts.append(f"{stats.total_deletions} deletion{'' if stats.total_deletions == 1 else 's'}")
    return ', '.join(parts)


def slice_line_contexts(change: FileChange, content: str, pad: int) -> List[LineContext]:
    """
    Cut the padded windows around a file's changes out of its content.

    Ranges are clipped to the file length; windows starting past the end of
    the file are dropped.
    """
    lines = content.split('\n')
    contexts = []
    for line_range in compute_context_ranges(change.changed_lines, pad):
        if line_range.start > len(lines):
            continue
        end = min(line_range.end, len(lines))
        contexts.append(LineContext(
            filename=change.filename,
            start_line=line_range.start,
            end_line=end,
            content='\n'.join(lines[line_range.start - 1:end]),
            language=change.language,
        ))
    return contexts
