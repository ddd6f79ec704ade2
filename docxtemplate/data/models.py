"""数据模型定义."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, PrivateAttr

from docxtemplate.data.exceptions import ReplacementValidationError

MAX_NAME_LENGTH = 200


def normalize_name(name: str) -> str:
    """占位符名称归一化：去掉首尾空白并忽略大小写."""
    return name.strip().casefold()


# ---------------------------------------------------------------------------
# 段落内的临时结构，只在单个段落的处理过程中存在
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RunSpan:
    """一个文本块在逻辑字符串中的半开区间 [start, start + length)."""

    run_index: int
    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length


@dataclass
class LogicalParagraphText:
    """段落的逻辑文本及文本块偏移映射."""

    text: str
    spans: List[RunSpan]

    def overlapping(self, start: int, end: int) -> List[RunSpan]:
        """返回与 [start, end) 有字符重叠的区间，零长度区间不参与."""
        return [s for s in self.spans if s.length > 0 and s.start < end and s.end > start]


@dataclass(frozen=True)
class TextDirective:
    """文本占位符：{{NAME}}."""

    name: str
    kind = "text"


@dataclass(frozen=True)
class ImageDirective:
    """图片占位符：{{image:NAME|width:W|height:H}}，尺寸可省略."""

    name: str
    width: Optional[int] = None
    height: Optional[int] = None
    kind = "image"


Directive = Union[TextDirective, ImageDirective]


@dataclass(frozen=True)
class Match:
    """一次占位符匹配."""

    start: int
    end: int
    directive: Directive
    raw: str

    @property
    def name(self) -> str:
        return self.directive.name

    @property
    def kind(self) -> str:
        return self.directive.kind


@dataclass(frozen=True)
class ImageInfo:
    """图片探测结果."""

    width: int
    height: int
    format: str


# ---------------------------------------------------------------------------
# 扫描结果
# ---------------------------------------------------------------------------

@dataclass
class PlaceholderLocation:
    """占位符在某个文件中的位置（每个文件一条，次数累加）."""

    file_path: str
    file_name: str
    occurrences: int
    context: str = ""

    @property
    def display_location(self) -> str:
        suffix = "" if self.occurrences == 1 else "s"
        return f"{self.file_name} ({self.occurrences} occurrence{suffix})"


@dataclass
class Placeholder:
    """扫描得到的占位符."""

    name: str
    pattern: str
    kind: str = "text"
    locations: List[PlaceholderLocation] = field(default_factory=list)

    @property
    def total_occurrences(self) -> int:
        return sum(loc.occurrences for loc in self.locations)

    @property
    def unique_file_count(self) -> int:
        return len({loc.file_path for loc in self.locations})


@dataclass
class ScanError:
    """扫描单个文件时的错误."""

    file_path: str
    message: str
    error_type: str = ""


@dataclass
class PlaceholderScanResult:
    """扫描结果."""

    placeholders: List[Placeholder]
    total_files_scanned: int
    scan_duration: float
    files_with_placeholders: int = 0
    errors: List[ScanError] = field(default_factory=list)

    @property
    def total_occurrences(self) -> int:
        return sum(p.total_occurrences for p in self.placeholders)

    @property
    def failed_files(self) -> int:
        return len({e.file_path for e in self.errors})

    @property
    def is_successful(self) -> bool:
        return not self.errors

    def find(self, name: str) -> Optional[Placeholder]:
        """按名称（忽略大小写）查找占位符."""
        key = normalize_name(name)
        for placeholder in self.placeholders:
            if normalize_name(placeholder.name) == key:
                return placeholder
        return None

    def summary(self) -> str:
        text = (
            f"Scanned {self.total_files_scanned} files in {self.scan_duration * 1000:.0f}ms. "
            f"Found {len(self.placeholders)} unique placeholders with {self.total_occurrences} "
            f"total occurrences across {self.files_with_placeholders} files."
        )
        if self.failed_files:
            text += f" {self.failed_files} files failed to scan."
        return text


# ---------------------------------------------------------------------------
# 替换结果
# ---------------------------------------------------------------------------

@dataclass
class FileReplaceResult:
    """单个文件的替换结果."""

    file_path: str
    is_success: bool
    replacement_count: int = 0
    error_message: Optional[str] = None
    match_errors: List[str] = field(default_factory=list)
    backup_path: Optional[str] = None
    duration: float = 0.0

    @property
    def file_name(self) -> str:
        return Path(self.file_path).name

    @property
    def has_errors(self) -> bool:
        return not self.is_success or bool(self.match_errors)

    @classmethod
    def failure(cls, file_path: Union[str, Path], message: str, duration: float = 0.0) -> "FileReplaceResult":
        return cls(file_path=str(file_path), is_success=False, error_message=message, duration=duration)

    @property
    def display_result(self) -> str:
        if not self.is_success:
            return f"{self.file_name}: Failed - {self.error_message or 'Unknown error'}"
        suffix = "" if self.replacement_count == 1 else "s"
        text = f"{self.file_name}: {self.replacement_count} replacement{suffix}"
        if self.backup_path:
            text += " (backup created)"
        if self.match_errors:
            text += f" ({len(self.match_errors)} skipped)"
        return text


@dataclass
class BatchReplaceResult:
    """批量替换结果."""

    file_results: List[FileReplaceResult]
    duration: float = 0.0

    @property
    def total_replacements(self) -> int:
        return sum(r.replacement_count for r in self.file_results)

    @property
    def has_errors(self) -> bool:
        return any(r.has_errors for r in self.file_results)

    @property
    def successful_files(self) -> int:
        return sum(1 for r in self.file_results if r.is_success)

    @property
    def failed_files(self) -> int:
        return sum(1 for r in self.file_results if not r.is_success)

    def summary(self) -> str:
        text = (
            f"Processed {len(self.file_results)} files in {self.duration * 1000:.0f}ms. "
            f"Made {self.total_replacements} replacements across {self.successful_files} files."
        )
        if self.failed_files:
            text += f" {self.failed_files} files failed."
        return text


@dataclass
class FilePreview:
    """单个文件的预览."""

    file_path: str
    replacement_count: int
    can_process: bool = True
    error_message: Optional[str] = None
    details: Dict[str, int] = field(default_factory=dict)


@dataclass
class PreviewResult:
    """替换预览（不写文件）."""

    file_previews: List[FilePreview]
    mapped_placeholders: List[str] = field(default_factory=list)
    unmapped_placeholders: List[str] = field(default_factory=list)
    unused_mappings: List[str] = field(default_factory=list)

    @property
    def files_to_process(self) -> int:
        return sum(1 for f in self.file_previews if f.can_process and f.replacement_count > 0)

    @property
    def placeholders_to_replace(self) -> int:
        return sum(f.replacement_count for f in self.file_previews)


# ---------------------------------------------------------------------------
# 替换映射
# ---------------------------------------------------------------------------

class ReplacementMap(BaseModel):
    """占位符名称到替换值的映射（图片占位符的值为图片路径）."""

    mappings: Dict[str, str] = Field(..., description="占位符名称 -> 替换值")
    source_file_path: Optional[str] = Field(default=None, description="映射来源文件")

    _index: Optional[Dict[str, str]] = PrivateAttr(default=None)

    @property
    def names(self) -> List[str]:
        return list(self.mappings.keys())

    def is_valid(self) -> bool:
        """映射不能为空，键不能为空白，且忽略大小写后不能重复."""
        if not self.mappings:
            return False
        seen = set()
        for key in self.mappings:
            if not key or not key.strip():
                return False
            normalized = normalize_name(key)
            if normalized in seen:
                return False
            seen.add(normalized)
        return True

    def ensure_valid(self) -> None:
        if not self.is_valid():
            raise ReplacementValidationError("Invalid replacement map: empty, blank key or duplicate key")

    def get(self, name: str) -> Optional[str]:
        """查找替换值：先精确匹配，再按归一化名称匹配."""
        if name in self.mappings:
            return self.mappings[name]
        if self._index is None:
            self._index = {normalize_name(k): v for k, v in self.mappings.items()}
        return self._index.get(normalize_name(name))

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    @staticmethod
    def is_valid_placeholder_name(name: str) -> bool:
        if not name or not name.strip() or len(name) > MAX_NAME_LENGTH:
            return False
        return not any(ord(c) < 32 and c != "\t" for c in name)

    @staticmethod
    def sanitize_value(value: str) -> str:
        """把可能破坏 XML 的控制字符替换为空格."""
        if not value:
            return ""
        return "".join(" " if ord(c) < 32 and c != "\n" else c for c in value)

    @classmethod
    def from_json(cls, text: str, source_file_path: Optional[str] = None) -> "ReplacementMap":
        """从 JSON 对象文本创建映射.

        Args:
            text: 形如 {"NAME": "value"} 的 JSON 文本
            source_file_path: 来源文件路径

        Returns:
            替换映射

        Raises:
            ReplacementValidationError: JSON 非法或键值非法
        """
        if not text or not text.strip():
            raise ReplacementValidationError("JSON content cannot be empty")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ReplacementValidationError(f"Invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ReplacementValidationError("JSON root must be an object")

        mappings: Dict[str, str] = {}
        for key, value in data.items():
            if not cls.is_valid_placeholder_name(key):
                raise ReplacementValidationError(f"Invalid placeholder name: {key!r}")
            if not isinstance(value, str):
                raise ReplacementValidationError(f"Replacement value for {key!r} must be a string")
            mappings[key] = cls.sanitize_value(value)
        return cls(mappings=mappings, source_file_path=source_file_path)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "ReplacementMap":
        path = Path(path)
        if not path.is_file():
            raise ReplacementValidationError(f"Replacement map file not found: {path}")
        return cls.from_json(path.read_text(encoding="utf-8"), source_file_path=os.fspath(path))

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.mappings, ensure_ascii=False, indent=indent)
