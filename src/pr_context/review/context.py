"""
Context Builder

Builds the PR context handed to the external AI reviewer by combining PR
metadata, the parsed diff, commits and changed-file contents.
"""

import re
import logging
import posixpath
import threading
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

from ..errors import GitHubAPIError
from ..github.client import GitHubClient
from ..github.parser import parse_diff, reconstruct_patch
from ..models.context import (
    ComplexityScores,
    ContextBuildOptions,
    ContextMetadata,
    PRContext,
    ReviewPayload,
)
from ..models.github import FileContent
from ..models.pr_diff import DiffStats, FileChange, FileDiff, FileStatus, LineContext
from .analyzer import (
    aggregate_stats,
    detect_language,
    extract_affected_symbols,
    extract_changed_lines,
    filter_reviewable,
    score_complexity,
    slice_line_contexts,
    summarize_diff,
)


logger = logging.getLogger(__name__)

# (area, path substrings) tested in order against the lowercased filename
AFFECTED_AREAS = (
    ('API', ('api', 'endpoint')),
    ('Authentication', ('auth', 'login')),
    ('Database', ('db', 'database', 'migration')),
    ('UI', ('ui', 'component', 'page')),
    ('Tests', ('test', 'spec')),
    ('Configuration', ('config', '.env')),
    ('Security', ('security', 'crypto')),
    ('Documentation', ('doc', 'readme')),
)
DEEP_REVIEW_AREAS = {'Security', 'Authentication', 'Database'}
SENSITIVE_FILE_PATTERN = re.compile(r'auth|security|crypto|password|secret|token|key|\.env|config', re.IGNORECASE)

LARGE_CHANGE_FILES = 10
LARGE_CHANGE_LINES = 500
DEEP_REVIEW_COMPLEXITY = 70
SUMMARY_COMMIT_LIMIT = 5


def build_pr_context(
    client: GitHubClient,
    owner: str,
    repo: str,
    pr_number: int,
    options: Optional[ContextBuildOptions] = None,
    cancel_event: Optional[threading.Event] = None,
) -> PRContext:
    """
    Build the complete review context of a pull request.

    Failures fetching PR metadata or the diff propagate unchanged. File
    contents are best effort: files that could not be fetched are listed in
    ``missing_contents`` and absent from ``file_contents``.

    Args:
        client: GitHub client used for every request
        owner: Repository owner
        repo: Repository name
        pr_number: Pull request number
        options: Build options, defaults when omitted
        cancel_event: Stops further file content batches when set

    Returns:
        Read-only PRContext
    """
    opts = options or ContextBuildOptions()
    logger.info(f"Building context for {owner}/{repo}#{pr_number}")

    # 1-2. metadata and diff
    pr = client.get_pull_request(owner, repo, pr_number)
    diff = client.get_pr_diff(owner, repo, pr_number)

    # 3. parse and filter
    all_files = parse_diff(diff.diff_text)
    if opts.skip_generated_files:
        parsed_files = filter_reviewable(all_files)
    else:
        parsed_files = [f for f in all_files if not (f.is_binary and opts.skip_binary_files)]
    logger.info(f"Parsed {len(all_files)} files, {len(parsed_files)} kept for review")

    # 4. changed lines and symbols
    file_changes = [_build_file_change(f) for f in parsed_files]

    # 5. commits
    commits = []
    if opts.include_commits:
        commits = client.get_pr_commits(owner, repo, pr_number)

    # 6. file contents at head
    file_contents: Dict[str, FileContent] = {}
    missing_contents: List[str] = []
    line_contexts: List[LineContext] = []
    if opts.include_file_contents:
        paths = [f.filename for f in parsed_files if f.status is not FileStatus.REMOVED]
        paths = paths[:opts.max_files_to_fetch]
        file_contents = _fetch_contents(client, owner, repo, pr.head_sha, paths, cancel_event)
        missing_contents = [path for path in paths if path not in file_contents]
        for path in missing_contents:
            logger.warning(f"Content unavailable for {path}")
        line_contexts = _line_contexts(file_changes, file_contents, opts.context_lines)

    # 7-8. stats and complexity
    stats = aggregate_stats(parsed_files)
    complexity = _score_files(parsed_files)

    # 9. metadata
    metadata = extract_metadata(parsed_files, stats, complexity.overall)

    logger.info(f"Context built: {len(parsed_files)} files, {stats.total_changes} changes")

    return PRContext(
        pr=pr,
        diff=diff,
        parsed_files=tuple(parsed_files),
        file_changes=tuple(file_changes),
        file_contents=file_contents,
        commits=tuple(commits),
        stats=stats,
        complexity=complexity,
        metadata=metadata,
        missing_contents=tuple(missing_contents),
        line_contexts=tuple(line_contexts),
    )


def _build_file_change(file_diff: FileDiff) -> FileChange:
    return replace(
        extract_changed_lines(file_diff),
        affected_symbol_names=tuple(extract_affected_symbols(file_diff)),
    )


def _fetch_contents(
    client: GitHubClient,
    owner: str,
    repo: str,
    ref: str,
    paths: Sequence[str],
    cancel_event: Optional[threading.Event] = None,
) -> Dict[str, FileContent]:
    if not paths:
        return {}
    contents = client.get_file_contents(owner, repo, [(path, ref) for path in paths], cancel_event=cancel_event)
    return {content.path: content for content in contents}


def _line_contexts(
    file_changes: Sequence[FileChange],
    file_contents: Dict[str, FileContent],
    pad: int,
) -> List[LineContext]:
    contexts = []
    for change in file_changes:
        content = file_contents.get(change.filename)
        if content is not None:
            contexts.extend(slice_line_contexts(change, content.content, pad))
    return contexts


def _score_files(files: Sequence[FileDiff]) -> ComplexityScores:
    per_file = {f.filename: score_complexity(f) for f in files}
    overall = sum(per_file.values()) / len(files) if files else 0.0
    return ComplexityScores(overall=overall, per_file=per_file)


def extract_metadata(files: Sequence[FileDiff], stats: DiffStats, overall_complexity: float) -> ContextMetadata:
    """
    Derive languages, affected areas and review flags from the files.

    Args:
        files: Reviewable file diffs
        stats: Aggregate stats of the same files
        overall_complexity: Mean complexity score

    Returns:
        ContextMetadata
    """
    languages: Dict[str, None] = {}
    areas: Dict[str, None] = {}

    for file_diff in files:
        path = file_diff.filename.lower()
        basename = posixpath.basename(path)
        extension = basename.rsplit('.', 1)[-1] if '.' in basename else 'unknown'
        languages.setdefault(extension)

        for area, keywords in AFFECTED_AREAS:
            if any(keyword in path for keyword in keywords):
                areas.setdefault(area)

    is_large_change = stats.total_files > LARGE_CHANGE_FILES or stats.total_changes > LARGE_CHANGE_LINES
    has_sensitive_files = any(SENSITIVE_FILE_PATTERN.search(f.filename) for f in files)
    requires_deep_review = (
        is_large_change
        or has_sensitive_files
        or overall_complexity > DEEP_REVIEW_COMPLEXITY
        or any(area in DEEP_REVIEW_AREAS for area in areas)
    )

    return ContextMetadata(
        languages=tuple(languages),
        affected_areas=tuple(areas),
        is_large_change=is_large_change,
        has_sensitive_files=has_sensitive_files,
        requires_deep_review=requires_deep_review,
    )


def generate_summary(context: PRContext) -> str:
    """
    Markdown digest of the PR for a quick overview.

    Args:
        context: Built PR context

    Returns:
        Markdown text
    """
    pr, stats, metadata = context.pr, context.stats, context.metadata

    parts = [
        f"# PR #{pr.number}: {pr.title}",
        "",
        f"**Author:** {pr.author}",
        f"**Status:** {pr.state}{' (Draft)' if pr.draft else ''}",
        "",
        "## Changes",
        f"- {summarize_diff(stats)}",
    ]

    if metadata.affected_areas:
        parts.append(f"- Affected areas: {', '.join(metadata.affected_areas)}")
    if metadata.languages:
        parts.append(f"- Languages: {', '.join(metadata.languages)}")
    if metadata.is_large_change:
        parts.append("- ⚠️ Large change detected")
    if metadata.has_sensitive_files:
        parts.append("- 🔒 Sensitive files modified")
    if metadata.requires_deep_review:
        parts.append("- 🔍 Requires deep review")

    if pr.body:
        parts.extend(["", "## Description", pr.body])

    if context.commits:
        parts.extend(["", "## Commits"])
        for commit in context.commits[:SUMMARY_COMMIT_LIMIT]:
            parts.append(f"- {commit.subject} ({commit.author})")
        if len(context.commits) > SUMMARY_COMMIT_LIMIT:
            parts.append(f"- ... and {len(context.commits) - SUMMARY_COMMIT_LIMIT} more commits")

    return '\n'.join(parts)


def prepare_for_review(context: PRContext) -> Dict[str, Any]:
    """
    Payload for the external AI reviewer.

    Each file carries a patch replayed from its parsed hunks so consumers
    without the structured model still get a textual diff.

    Args:
        context: Built PR context

    Returns:
        Validated payload as a plain dict
    """
    files = []
    for change in context.file_changes:
        file_diff = context.find_file(change.filename)
        files.append({
            'filename': change.filename,
            'status': change.status.value,
            'additions': change.additions,
            'deletions': change.deletions,
            'patch': reconstruct_patch(file_diff) if file_diff is not None else None,
            'language': change.language or detect_language(change.filename),
        })

    payload = ReviewPayload(
        title=context.pr.title,
        description=context.pr.body or None,
        base_ref=context.pr.base_ref,
        head_ref=context.pr.head_ref,
        files=files,
        metadata={
            'total_files': context.stats.total_files,
            'total_changes': context.stats.total_changes,
            'total_additions': context.stats.total_additions,
            'total_deletions': context.stats.total_deletions,
            'complexity': context.complexity.overall,
            'affected_areas': list(context.metadata.affected_areas),
            'requires_deep_review': context.metadata.requires_deep_review,
            'languages': list(context.metadata.languages),
            'is_large_change': context.metadata.is_large_change,
            'has_sensitive_files': context.metadata.has_sensitive_files,
        },
    )
    return payload.model_dump()


def get_focused_context(
    client: GitHubClient,
    owner: str,
    repo: str,
    ref: str,
    filenames: Sequence[str],
) -> Dict[str, FileContent]:
    """
    Fetch the contents of selected files at a ref.

    Best effort: files that cannot be fetched are absent from the result.
    """
    return _fetch_contents(client, owner, repo, ref, list(filenames))


def get_line_contexts(
    client: GitHubClient,
    owner: str,
    repo: str,
    ref: str,
    file_changes: Sequence[FileChange],
    context_size: int = 10,
) -> List[LineContext]:
    """
    Fetch the code surrounding each file's changed lines.

    Args:
        client: GitHub client
        owner: Repository owner
        repo: Repository name
        ref: Ref to read the files at
        file_changes: Changes to fetch context for
        context_size: Lines of context on each side of a change

    Returns:
        Line contexts for the files that could be fetched
    """
    contexts = []
    for change in file_changes:
        try:
            content = client.get_file_content(owner, repo, change.filename, ref)
        except GitHubAPIError as e:
            logger.error(f"Failed to fetch context for {change.filename}: {e}")
            continue
        contexts.extend(slice_line_contexts(change, content.content, context_size))
    return contexts
