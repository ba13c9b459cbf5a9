"""
PR Diff Data Models

Pull Request diff 관련 데이터 모델들
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class LineKind(str, Enum):
    """diff 라인 종류"""
    ADD = "add"
    DELETE = "delete"
    CONTEXT = "context"
    NO_NEWLINE = "no_newline"


class FileStatus(str, Enum):
    """파일 변경 상태"""
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    RENAMED = "renamed"


@dataclass(frozen=True)
class DiffLine:
    """hunk 안의 개별 라인"""
    kind: LineKind
    text: str
    old_line_number: Optional[int] = None
    new_line_number: Optional[int] = None


@dataclass
class DiffHunk:
    """PR diff의 개별 hunk"""
    old_start: int
    old_line_count: int
    new_start: int
    new_line_count: int
    header_text: str = ""
    lines: List[DiffLine] = field(default_factory=list)

    def __post_init__(self):
        """데이터 검증"""
        if self.old_start < 0 or self.new_start < 0:
            raise ValueError("Line numbers must be non-negative")
        if self.old_line_count < 0 or self.new_line_count < 0:
            raise ValueError("Line counts must be non-negative")

    @property
    def header(self) -> str:
        """unified diff 형식의 hunk 헤더"""
        header = f"@@ -{self.old_start},{self.old_line_count} +{self.new_start},{self.new_line_count} @@"
        if self.header_text:
            header = f"{header} {self.header_text}"
        return header


@dataclass
class FileDiff:
    """파일 단위 diff"""
    filename: str
    status: FileStatus = FileStatus.MODIFIED
    previous_filename: Optional[str] = None
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    hunks: List[DiffHunk] = field(default_factory=list)
    is_binary: bool = False

    def __post_init__(self):
        """데이터 검증"""
        if self.additions < 0 or self.deletions < 0:
            raise ValueError("Addition and deletion counts must be non-negative")

    @property
    def content_lines(self) -> List[str]:
        """모든 hunk의 라인 텍스트"""
        return [line.text for hunk in self.hunks for line in hunk.lines]


@dataclass(frozen=True)
class ChangedLine:
    """추가/삭제된 라인"""
    line_number: int
    kind: LineKind
    text: str


@dataclass(frozen=True)
class FileChange:
    """리뷰용 파일 변경사항 (context 라인 제외)"""
    filename: str
    status: FileStatus
    additions: int
    deletions: int
    changed_lines: Tuple[ChangedLine, ...] = ()
    affected_symbol_names: Tuple[str, ...] = ()
    language: Optional[str] = None


@dataclass(frozen=True)
class LineRange:
    """파일 라인 범위 (1부터 시작, 양끝 포함)"""
    start: int
    end: int

    def __post_init__(self):
        if self.start < 1 or self.end < self.start:
            raise ValueError(f"Invalid line range: {self.start}-{self.end}")


@dataclass(frozen=True)
class LineContext:
    """변경 라인 주변의 파일 내용"""
    filename: str
    start_line: int
    end_line: int
    content: str
    language: Optional[str] = None


@dataclass
class DiffStats:
    """요청 단위 diff 통계"""
    total_files: int = 0
    total_additions: int = 0
    total_deletions: int = 0
    total_changes: int = 0
    files_by_status: Dict[str, int] = field(default_factory=dict)
    files_by_language: Dict[str, int] = field(default_factory=dict)
    largest_files: List[Tuple[str, int]] = field(default_factory=list)
    binary_files: int = 0
