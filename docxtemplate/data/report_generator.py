"""报告生成器."""

from pathlib import Path
from typing import Union

from loguru import logger

from docxtemplate.data.exceptions import DocumentSaveError
from docxtemplate.data.models import BatchReplaceResult, PlaceholderScanResult


class ReportGenerator:
    """把扫描或替换结果写成 Markdown 报告."""

    def generate_scan_report(self, result: PlaceholderScanResult, output_path: Union[str, Path]) -> None:
        """生成扫描报告.

        Args:
            result: 扫描结果
            output_path: 输出文件路径

        Raises:
            DocumentSaveError: 报告写入失败
        """
        lines = [
            "# 占位符扫描报告",
            "",
            result.summary(),
            "",
        ]

        for i, ph in enumerate(result.placeholders, 1):
            lines.append(f"## 占位符 {i}: {ph.name}")
            lines.append("")
            lines.append(f"- 类型: {ph.kind}")
            lines.append(f"- 出现次数: {ph.total_occurrences}")
            lines.append(f"- 涉及文件: {ph.unique_file_count}")
            lines.append("")
            lines.append("### 位置")
            lines.append("")
            for location in ph.locations:
                lines.append(f"- {location.display_location}")
                if location.context:
                    lines.append(f"  - 上下文: {location.context}")
            lines.append("")
            lines.append("---")
            lines.append("")

        if result.errors:
            lines.append("## 扫描错误")
            lines.append("")
            for error in result.errors:
                lines.append(f"- {error.file_path}: [{error.error_type}] {error.message}")
            lines.append("")

        self._write(lines, output_path)

    def generate_replace_report(self, result: BatchReplaceResult, output_path: Union[str, Path]) -> None:
        """生成替换报告."""
        lines = ["# 占位符替换报告", "", result.summary(), ""]
        for file_result in result.file_results:
            lines.append(f"- {file_result.display_result}")
            if file_result.backup_path:
                lines.append(f"  - 备份: {file_result.backup_path}")
            for message in file_result.match_errors:
                lines.append(f"  - 跳过: {message}")
        lines.append("")
        self._write(lines, output_path)

    @staticmethod
    def _write(lines, output_path: Union[str, Path]) -> None:
        output_path = Path(output_path)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text("\n".join(lines), encoding="utf-8")
        except OSError as e:
            logger.error(f"生成报告失败: {e}")
            raise DocumentSaveError(f"Failed to write report {output_path}: {e}") from e
        logger.info(f"已生成报告: {output_path}")
