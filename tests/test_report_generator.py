"""报告生成器测试."""

from unittest.mock import patch

import pytest

from docxtemplate.data.exceptions import DocumentSaveError
from docxtemplate.data.models import (
    BatchReplaceResult,
    FileReplaceResult,
    Placeholder,
    PlaceholderLocation,
    PlaceholderScanResult,
    ScanError,
)
from docxtemplate.data.report_generator import ReportGenerator


@pytest.fixture
def scan_result():
    return PlaceholderScanResult(
        placeholders=[
            Placeholder(
                name="Name",
                pattern=r"\{\{.*?\}\}",
                locations=[
                    PlaceholderLocation(
                        file_path="/docs/a.docx", file_name="a.docx", occurrences=2, context="Body: Dear {{Name}}"
                    )
                ],
            ),
            Placeholder(name="LOGO", pattern=r"\{\{.*?\}\}", kind="image"),
        ],
        total_files_scanned=2,
        scan_duration=0.5,
        files_with_placeholders=1,
        errors=[ScanError(file_path="/docs/b.docx", message="broken", error_type="MalformedDocumentError")],
    )


def test_generate_scan_report(scan_result, tmp_path):
    """测试生成扫描报告."""
    output = tmp_path / "out" / "report.md"

    ReportGenerator().generate_scan_report(scan_result, output)

    content = output.read_text(encoding="utf-8")
    assert content.startswith("# 占位符扫描报告")
    assert "## 占位符 1: Name" in content
    assert "- 出现次数: 2" in content
    assert "上下文: Body: Dear {{Name}}" in content
    assert "- 类型: image" in content
    assert "/docs/b.docx: [MalformedDocumentError] broken" in content


def test_generate_replace_report(tmp_path):
    result = BatchReplaceResult(
        file_results=[
            FileReplaceResult(
                file_path="/docs/a.docx",
                is_success=True,
                replacement_count=1,
                match_errors=["Body: {{image:LOGO}}: not found"],
                backup_path="/docs/a.backup.20240101_000000.docx",
            )
        ]
    )
    output = tmp_path / "replace.md"

    ReportGenerator().generate_replace_report(result, output)

    content = output.read_text(encoding="utf-8")
    assert "a.docx: 1 replacement (backup created) (1 skipped)" in content
    assert "跳过: Body: {{image:LOGO}}: not found" in content


def test_generate_report_write_failure(scan_result, tmp_path):
    with patch("pathlib.Path.write_text", side_effect=PermissionError("denied")):
        with pytest.raises(DocumentSaveError):
            ReportGenerator().generate_scan_report(scan_result, tmp_path / "report.md")
