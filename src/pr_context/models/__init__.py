"""
Data Models

PR Context Pipeline의 핵심 데이터 모델들
"""

from .pr_diff import (
    LineKind,
    FileStatus,
    DiffLine,
    DiffHunk,
    FileDiff,
    ChangedLine,
    FileChange,
    LineRange,
    LineContext,
    DiffStats,
)
from .github import (
    RateLimitInfo,
    PRDetails,
    FileSummary,
    CommitSummary,
    FileContent,
    DiffTotals,
    PRDiffResult,
    CommentRef,
    ReviewCommentInput,
)
from .context import (
    ContextBuildOptions,
    ComplexityScores,
    ContextMetadata,
    PRContext,
    ReviewPayload,
)

__all__ = [
    "LineKind",
    "FileStatus",
    "DiffLine",
    "DiffHunk",
    "FileDiff",
    "ChangedLine",
    "FileChange",
    "LineRange",
    "LineContext",
    "DiffStats",
    "RateLimitInfo",
    "PRDetails",
    "FileSummary",
    "CommitSummary",
    "FileContent",
    "DiffTotals",
    "PRDiffResult",
    "CommentRef",
    "ReviewCommentInput",
    "ContextBuildOptions",
    "ComplexityScores",
    "ContextMetadata",
    "PRContext",
    "ReviewPayload",
]
