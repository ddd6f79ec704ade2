"""占位符替换服务."""

import threading
import time
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Tuple, Union

from docx.document import Document
from loguru import logger

from docxtemplate.data.document_io import DocumentIO
from docxtemplate.data.exceptions import (
    MATCH_LEVEL_ERRORS,
    DocxTemplateError,
    InputValidationError,
    ReplacementValidationError,
)
from docxtemplate.data.image_resolver import ImagePlaceholderResolver
from docxtemplate.data.models import (
    BatchReplaceResult,
    FilePreview,
    FileReplaceResult,
    ImageDirective,
    LogicalParagraphText,
    Match,
    PreviewResult,
    ReplacementMap,
    normalize_name,
)
from docxtemplate.data.placeholder_matcher import PlaceholderMatcher
from docxtemplate.data.reconstructor import TextSpanReconstructor
from docxtemplate.data.run_rewriter import RunRewriter
from docxtemplate.data.run_sequence import RunSequence
from docxtemplate.data.traverser import DocumentTraverser
from docxtemplate.service.batch import run_file_tasks
from docxtemplate.service.file_system import FileSystemService
from docxtemplate.service.scanner import PlaceholderScanEngine


class PlaceholderReplaceEngine:
    """占位符替换引擎.

    每个文件独立处理：打开、逐段替换、有替换时（按需备份后）原子保存。
    单个占位符失败（图片问题等）只记录到该文件的 match_errors，其余占位符照常替换；
    打开或保存失败的文件不会被写入。
    """

    def __init__(
        self,
        pattern: Union[str, Pattern, None] = None,
        file_system: Optional[FileSystemService] = None,
        traverser: Optional[DocumentTraverser] = None,
    ) -> None:
        """初始化替换引擎.

        Args:
            pattern: 占位符正则，默认取配置
            file_system: 文件系统服务
            traverser: 文档遍历器
        """
        self.matcher = PlaceholderMatcher(pattern)
        self.file_system = file_system or FileSystemService()
        self.traverser = traverser or DocumentTraverser()
        self.reconstructor = TextSpanReconstructor()
        self.rewriter = RunRewriter()
        self.image_resolver = ImagePlaceholderResolver(self.rewriter)
        self.document_io = DocumentIO()
        self.scanner = PlaceholderScanEngine(
            pattern=self.matcher.pattern, file_system=self.file_system, traverser=self.traverser
        )

    def replace(
        self,
        path: Union[str, Path],
        replacement_map: ReplacementMap,
        recursive: bool = True,
        create_backup: bool = False,
        cancel_event: Optional[threading.Event] = None,
        max_workers: Optional[int] = None,
    ) -> BatchReplaceResult:
        """替换一个文件或目录中全部文档的占位符.

        Args:
            path: .docx 文件或目录
            replacement_map: 替换映射
            recursive: 目录是否递归
            create_backup: 写入前是否备份原文件
            cancel_event: 取消信号，在文件之间检查，未开始的文件不会出现在结果中
            max_workers: 最大并发文件数

        Returns:
            批量替换结果，顺序与发现的文件顺序一致

        Raises:
            InputValidationError: 路径为空
            ReplacementValidationError: 映射为空或非法
        """
        self._validate(path, replacement_map)

        start_time = time.perf_counter()
        logger.info(f"开始替换占位符: {path}，映射 {len(replacement_map.mappings)} 项")
        try:
            files = self.file_system.discover_documents(path, recursive)
        except DocxTemplateError as e:
            logger.error(f"替换失败: {e}")
            return BatchReplaceResult(
                file_results=[FileReplaceResult.failure(path, str(e))],
                duration=time.perf_counter() - start_time,
            )

        file_results = run_file_tasks(
            files,
            lambda file_path: self.replace_in_file(file_path, replacement_map, create_backup),
            max_workers=max_workers,
            cancel_event=cancel_event,
        )
        result = BatchReplaceResult(file_results=file_results, duration=time.perf_counter() - start_time)
        logger.info(result.summary())
        return result

    def replace_in_file(
        self,
        file_path: Union[str, Path],
        replacement_map: ReplacementMap,
        create_backup: bool = False,
    ) -> FileReplaceResult:
        """替换单个文件中的占位符.

        没有任何替换时不写文件，也不备份。

        Args:
            file_path: 文件路径
            replacement_map: 替换映射
            create_backup: 写入前是否备份原文件

        Returns:
            单个文件的替换结果，文件级错误不会抛出
        """
        self._validate(file_path, replacement_map)
        start_time = time.perf_counter()

        try:
            doc = self.document_io.load_document(file_path)
            count, match_errors = self.replace_in_document(doc, replacement_map)

            backup_path = None
            if count > 0:
                if create_backup:
                    backup_path = str(self.file_system.create_backup(file_path))
                self.document_io.save_document(doc, file_path)
        except DocxTemplateError as e:
            logger.error(f"替换文件失败: {file_path}: {e}")
            return FileReplaceResult.failure(file_path, str(e), time.perf_counter() - start_time)
        except Exception as e:
            logger.exception(f"替换文件时发生未预期的错误: {file_path}")
            return FileReplaceResult.failure(file_path, str(e), time.perf_counter() - start_time)

        result = FileReplaceResult(
            file_path=str(file_path),
            is_success=True,
            replacement_count=count,
            match_errors=match_errors,
            backup_path=backup_path,
            duration=time.perf_counter() - start_time,
        )
        logger.info(result.display_result)
        return result

    def replace_in_document(self, doc: Document, replacement_map: ReplacementMap) -> Tuple[int, List[str]]:
        """在已打开的文档中替换占位符（只改内存，不保存）.

        Args:
            doc: Document对象
            replacement_map: 替换映射

        Returns:
            (替换数量, 单个占位符的错误信息列表)
        """
        count = 0
        match_errors: List[str] = []

        for ctx in self.traverser.iter_paragraphs(doc):
            runs = RunSequence(ctx.paragraph)
            logical = self.reconstructor.reconstruct(runs)
            matches = self.matcher.find(logical.text)
            if not matches:
                continue

            # 从右往左替换，左侧匹配的偏移保持有效
            for match in reversed(matches):
                try:
                    replaced = self._apply(runs, logical, match, replacement_map)
                except MATCH_LEVEL_ERRORS as e:
                    message = f"{ctx.section}: {match.raw}: {e}"
                    logger.warning(f"占位符替换失败，已跳过: {message}")
                    # 后备副本与主文本框的结果一致，只记录一次
                    if not ctx.fallback:
                        match_errors.append(message)
                    continue
                # 后备副本同步改写，但不重复计数
                if replaced and not ctx.fallback:
                    count += 1

        return count, match_errors

    def preview(
        self,
        path: Union[str, Path],
        replacement_map: ReplacementMap,
        recursive: bool = True,
    ) -> PreviewResult:
        """预览替换结果，不修改任何文件.

        Args:
            path: .docx 文件或目录
            replacement_map: 替换映射
            recursive: 目录是否递归

        Returns:
            预览结果
        """
        self._validate(path, replacement_map)

        try:
            files = self.file_system.discover_documents(path, recursive)
        except DocxTemplateError as e:
            logger.error(f"预览失败: {e}")
            failed = FilePreview(file_path=str(path), replacement_count=0, can_process=False, error_message=str(e))
            return PreviewResult(file_previews=[failed], unused_mappings=list(replacement_map.names))

        previews: List[FilePreview] = []
        mapped: Dict[str, str] = {}
        unmapped: Dict[str, str] = {}
        for file_path in files:
            try:
                placeholders = self.scanner.scan_file(file_path)
            except DocxTemplateError as e:
                previews.append(
                    FilePreview(file_path=str(file_path), replacement_count=0, can_process=False, error_message=str(e))
                )
                continue

            details: Dict[str, int] = {}
            replacement_count = 0
            for placeholder in placeholders:
                occurrences = placeholder.total_occurrences
                details[placeholder.name] = occurrences
                key = normalize_name(placeholder.name)
                if placeholder.name in replacement_map:
                    replacement_count += occurrences
                    mapped.setdefault(key, placeholder.name)
                else:
                    unmapped.setdefault(key, placeholder.name)
            previews.append(FilePreview(file_path=str(file_path), replacement_count=replacement_count, details=details))

        unused = [name for name in replacement_map.names if normalize_name(name) not in mapped]
        return PreviewResult(
            file_previews=previews,
            mapped_placeholders=list(mapped.values()),
            unmapped_placeholders=list(unmapped.values()),
            unused_mappings=unused,
        )

    def _apply(
        self,
        runs: RunSequence,
        logical: LogicalParagraphText,
        match: Match,
        replacement_map: ReplacementMap,
    ) -> bool:
        """按占位符类型分派，返回是否已替换."""
        if isinstance(match.directive, ImageDirective):
            return self.image_resolver.resolve(runs, logical, match, replacement_map)

        value = replacement_map.get(match.name)
        if value is None:
            return False
        self.rewriter.replace_text(runs, logical, match, value)
        return True

    @staticmethod
    def _validate(path: Union[str, Path], replacement_map: ReplacementMap) -> None:
        if path is None or not str(path).strip():
            raise InputValidationError("Path cannot be null or empty")
        if replacement_map is None:
            raise ReplacementValidationError("Replacement map cannot be null")
        replacement_map.ensure_valid()
