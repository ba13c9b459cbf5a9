"""
PR Context Data Models

리뷰어에게 전달할 PR 컨텍스트 관련 데이터 모델들
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, field_validator

from .github import CommitSummary, FileContent, PRDetails, PRDiffResult
from .pr_diff import DiffStats, FileChange, FileDiff, LineContext

if TYPE_CHECKING:
    from ..config import ContextConfig


@dataclass
class ContextBuildOptions:
    """컨텍스트 생성 옵션"""
    include_file_contents: bool = True
    include_commits: bool = True
    context_lines: int = 10
    max_files_to_fetch: int = 50
    skip_binary_files: bool = True
    skip_generated_files: bool = True

    def __post_init__(self):
        """데이터 검증"""
        if self.context_lines < 0:
            raise ValueError("context_lines must be non-negative")
        if self.max_files_to_fetch < 0:
            raise ValueError("max_files_to_fetch must be non-negative")

    @classmethod
    def from_config(cls, config: "ContextConfig") -> "ContextBuildOptions":
        """ContextConfig 기본값으로 옵션 생성"""
        return cls(
            include_file_contents=config.include_file_contents,
            include_commits=config.include_commits,
            context_lines=config.context_lines,
            max_files_to_fetch=config.max_files_to_fetch,
            skip_binary_files=config.skip_binary_files,
            skip_generated_files=config.skip_generated_files,
        )


@dataclass(frozen=True)
class ComplexityScores:
    """파일별/전체 복잡도 점수"""
    overall: float
    per_file: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ContextMetadata:
    """PR 메타데이터 요약"""
    languages: Tuple[str, ...]
    affected_areas: Tuple[str, ...]
    is_large_change: bool
    has_sensitive_files: bool
    requires_deep_review: bool


@dataclass(frozen=True)
class PRContext:
    """
    리뷰용 PR 컨텍스트 (생성 후 읽기 전용)

    필드 재할당과 file_contents 수정은 막지만, 안에 담긴 FileDiff/DiffStats는
    일반 dataclass이므로 소비자는 이를 변경하지 않아야 함
    """
    pr: PRDetails
    diff: PRDiffResult
    parsed_files: Tuple[FileDiff, ...]
    file_changes: Tuple[FileChange, ...]
    file_contents: Mapping[str, FileContent]
    commits: Tuple[CommitSummary, ...]
    stats: DiffStats
    complexity: ComplexityScores
    metadata: ContextMetadata
    missing_contents: Tuple[str, ...] = ()
    line_contexts: Tuple[LineContext, ...] = ()

    def __post_init__(self):
        """file_contents를 읽기 전용 매핑으로 고정"""
        object.__setattr__(self, 'file_contents', MappingProxyType(dict(self.file_contents)))

    def find_file(self, filename: str) -> Optional[FileDiff]:
        """파일명으로 파싱된 diff 조회"""
        for file_diff in self.parsed_files:
            if file_diff.filename == filename:
                return file_diff
        return None


# Pydantic models for the reviewer payload
class ReviewFilePayload(BaseModel):
    """리뷰어 전달용 파일 모델"""
    filename: str
    status: str
    additions: int
    deletions: int
    patch: Optional[str] = None
    language: Optional[str] = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        if v not in {'added', 'removed', 'modified', 'renamed'}:
            raise ValueError('Invalid file status')
        return v

    @field_validator('additions', 'deletions')
    @classmethod
    def validate_counts(cls, v):
        if v < 0:
            raise ValueError('Counts must be non-negative')
        return v


class ReviewMetadataPayload(BaseModel):
    """리뷰어 전달용 메타데이터 모델"""
    total_files: int
    total_changes: int
    total_additions: int
    total_deletions: int
    complexity: float
    affected_areas: List[str]
    requires_deep_review: bool
    languages: List[str]
    is_large_change: bool
    has_sensitive_files: bool

    @field_validator('complexity')
    @classmethod
    def validate_complexity(cls, v):
        if not 0.0 <= v <= 100.0:
            raise ValueError('Complexity must be between 0 and 100')
        return v


class ReviewPayload(BaseModel):
    """외부 AI 리뷰어에 전달할 페이로드"""
    title: str
    description: Optional[str] = None
    base_ref: str
    head_ref: str
    files: List[ReviewFilePayload]
    metadata: ReviewMetadataPayload
