"""占位符扫描服务."""

import threading
import time
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Tuple, Union

from docx.document import Document
from loguru import logger

from docxtemplate.config.settings import settings
from docxtemplate.data.document_io import DocumentIO
from docxtemplate.data.exceptions import DocxTemplateError, InputValidationError
from docxtemplate.data.models import (
    Placeholder,
    PlaceholderLocation,
    PlaceholderScanResult,
    ScanError,
    normalize_name,
)
from docxtemplate.data.placeholder_matcher import PlaceholderMatcher
from docxtemplate.data.reconstructor import TextSpanReconstructor
from docxtemplate.data.run_sequence import RunSequence
from docxtemplate.data.traverser import DocumentTraverser
from docxtemplate.service.batch import run_file_tasks
from docxtemplate.service.file_system import FileSystemService


def context_snippet(text: str, start: int, end: int, window: int) -> str:
    """截取匹配前后各 window 个字符作为上下文，截断处加省略号."""
    left = max(0, start - window)
    right = min(len(text), end + window)
    snippet = text[left:right]
    if left > 0:
        snippet = "..." + snippet
    if right < len(text):
        snippet = snippet + "..."
    return snippet.strip()


class PlaceholderScanEngine:
    """占位符扫描引擎，只读，不修改也不保存文档."""

    def __init__(
        self,
        pattern: Union[str, Pattern, None] = None,
        file_system: Optional[FileSystemService] = None,
        traverser: Optional[DocumentTraverser] = None,
    ) -> None:
        """初始化扫描引擎.

        Args:
            pattern: 占位符正则，默认取配置
            file_system: 文件系统服务
            traverser: 文档遍历器
        """
        self.matcher = PlaceholderMatcher(pattern)
        self.file_system = file_system or FileSystemService()
        self.traverser = traverser or DocumentTraverser()
        self.reconstructor = TextSpanReconstructor()
        self.document_io = DocumentIO()
        self.context_window = settings.document.context_window

    def scan(
        self,
        path: Union[str, Path],
        pattern: Union[str, Pattern, None] = None,
        recursive: bool = True,
        cancel_event: Optional[threading.Event] = None,
        max_workers: Optional[int] = None,
    ) -> PlaceholderScanResult:
        """扫描一个文件或目录中的全部占位符.

        Args:
            path: .docx 文件或目录
            pattern: 本次扫描使用的占位符正则，默认使用引擎的正则
            recursive: 目录是否递归
            cancel_event: 取消信号，在文件之间检查
            max_workers: 最大并发文件数

        Returns:
            扫描结果，预期内的错误记录在 errors 中

        Raises:
            InputValidationError: 路径为空或正则非法
        """
        if path is None or not str(path).strip():
            raise InputValidationError("Path cannot be null or empty")
        matcher = self.matcher if pattern is None else PlaceholderMatcher(pattern)

        start_time = time.perf_counter()
        logger.info(f"开始扫描占位符: {path}")
        try:
            files = self.file_system.discover_documents(path, recursive)
        except DocxTemplateError as e:
            logger.error(f"扫描失败: {e}")
            return PlaceholderScanResult(
                placeholders=[],
                total_files_scanned=0,
                scan_duration=time.perf_counter() - start_time,
                errors=[ScanError(file_path=str(path), message=str(e), error_type=type(e).__name__)],
            )

        results = run_file_tasks(
            files,
            lambda file_path: self._scan_file_safe(file_path, matcher),
            max_workers=max_workers,
            cancel_event=cancel_event,
        )

        aggregated: Dict[str, Placeholder] = {}
        errors: List[ScanError] = []
        files_with_placeholders = 0
        for file_path, placeholders, error in results:
            if error is not None:
                errors.append(error)
                continue
            if placeholders:
                files_with_placeholders += 1
            for placeholder in placeholders:
                key = normalize_name(placeholder.name)
                if key not in aggregated:
                    aggregated[key] = Placeholder(
                        name=placeholder.name, pattern=matcher.pattern_text, kind=placeholder.kind
                    )
                aggregated[key].locations.extend(placeholder.locations)

        result = PlaceholderScanResult(
            placeholders=list(aggregated.values()),
            total_files_scanned=len(results),
            scan_duration=time.perf_counter() - start_time,
            files_with_placeholders=files_with_placeholders,
            errors=errors,
        )
        logger.info(result.summary())
        return result

    def scan_file(self, file_path: Union[str, Path], pattern: Union[str, Pattern, None] = None) -> List[Placeholder]:
        """扫描单个文件.

        Raises:
            TemplateNotFoundError: 文件不存在
            MalformedDocumentError: 文件无法打开
        """
        matcher = self.matcher if pattern is None else PlaceholderMatcher(pattern)
        doc = self.document_io.load_document(file_path)
        return self.scan_document(doc, file_path, matcher)

    def scan_document(
        self,
        doc: Document,
        file_path: Union[str, Path] = "",
        matcher: Optional[PlaceholderMatcher] = None,
    ) -> List[Placeholder]:
        """扫描已打开的文档，每个占位符在该文件中只有一条位置记录.

        Args:
            doc: Document对象
            file_path: 文件路径，用于位置记录
            matcher: 匹配器，默认使用引擎的匹配器

        Returns:
            占位符列表，按首次出现的顺序
        """
        matcher = matcher or self.matcher
        file_path = str(file_path)
        file_name = Path(file_path).name
        found: Dict[str, Placeholder] = {}

        for ctx in self.traverser.iter_paragraphs(doc):
            # 后备内容是另一处文本框的副本，不重复计数
            if ctx.fallback:
                continue
            logical = self.reconstructor.reconstruct(RunSequence(ctx.paragraph))
            for match in matcher.find(logical.text):
                key = normalize_name(match.name)
                placeholder = found.get(key)
                if placeholder is None:
                    section = f"{ctx.section} (Table)" if ctx.in_table else ctx.section
                    snippet = context_snippet(logical.text, match.start, match.end, self.context_window)
                    placeholder = Placeholder(
                        name=match.name,
                        pattern=matcher.pattern_text,
                        kind=match.kind,
                        locations=[
                            PlaceholderLocation(
                                file_path=file_path,
                                file_name=file_name,
                                occurrences=0,
                                context=f"{section}: {snippet}",
                            )
                        ],
                    )
                    found[key] = placeholder
                placeholder.locations[0].occurrences += 1
                logger.debug(f"发现{match.kind}占位符 {match.name}（{ctx.section}）: {file_name}")

        return list(found.values())

    def _scan_file_safe(
        self, file_path: Path, matcher: PlaceholderMatcher
    ) -> Tuple[Path, List[Placeholder], Optional[ScanError]]:
        """扫描单个文件，把错误转换为 ScanError，不影响其他文件."""
        try:
            return file_path, self.scan_file(file_path, matcher.pattern), None
        except DocxTemplateError as e:
            logger.warning(f"扫描文件失败: {file_path}: {e}")
            return file_path, [], ScanError(file_path=str(file_path), message=str(e), error_type=type(e).__name__)
        except Exception as e:
            logger.exception(f"扫描文件时发生未预期的错误: {file_path}")
            return file_path, [], ScanError(file_path=str(file_path), message=str(e), error_type=type(e).__name__)
