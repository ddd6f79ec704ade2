"""占位符替换服务测试."""

import os
import stat
import threading
from unittest.mock import patch

import pytest
from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.opc.constants import RELATIONSHIP_TYPE as RT

from conftest import add_text_box, paragraph_texts
from docxtemplate.data.aspect_ratio import pixels_to_emus
from docxtemplate.data.exceptions import BackupError, InputValidationError, ReplacementValidationError
from docxtemplate.data.models import FileReplaceResult, ReplacementMap
from docxtemplate.service.replacer import PlaceholderReplaceEngine


@pytest.fixture
def engine():
    return PlaceholderReplaceEngine()


def mapping(**values):
    return ReplacementMap(mappings=values)


def test_replace_split_placeholder(make_docx, engine):
    """跨文本块的占位符替换后只改变匹配区间."""
    path = make_docx(body=[["Location: ", "{{MIST", "O_PLNENI}}"], "Untouched line"])

    result = engine.replace_in_file(path, mapping(MISTO_PLNENI="Prague"))

    assert result.is_success
    assert result.replacement_count == 1
    assert paragraph_texts(path) == ["Location: Prague", "Untouched line"]


def test_replace_multiple_in_paragraph(make_docx, engine):
    path = make_docx(body=[["{{FIR", "ST}} mid ", "{{SEC", "OND}}"]])

    result = engine.replace_in_file(path, mapping(FIRST="A", SECOND="B"))

    assert result.replacement_count == 2
    assert paragraph_texts(path) == ["A mid B"]


def test_replace_headers_footers_and_tables(make_docx, engine, nested_table_doc, tmp_path):
    """页眉、页脚和嵌套表格中的占位符都会被替换."""
    path = make_docx(header=["Header {{Com", "pany}}"], body=["Body {{Name}}"], footer="Footer {{Name}}")
    nested_path = tmp_path / "nested.docx"
    nested_table_doc.save(str(nested_path))

    result = engine.replace(tmp_path, mapping(Company="ACME", Name="Alice", Outer="O", Inner="I"))

    assert not result.has_errors
    assert result.total_replacements == 6
    doc = Document(str(path))
    assert doc.sections[0].header.paragraphs[0].text == "Header ACME"
    assert doc.sections[0].footer.paragraphs[0].text == "Footer Alice"
    nested = Document(str(nested_path))
    outer_cell = nested.tables[0].cell(0, 0)
    inner_cell = nested.tables[0].cell(0, 1).tables[0].cell(0, 0)
    assert outer_cell.paragraphs[0].text == "Cell O"
    assert inner_cell.paragraphs[0].text == "Inner I"


def test_case_insensitive_lookup(make_docx, engine):
    path = make_docx(body=["Hi {{ name }}"])

    result = engine.replace_in_file(path, mapping(Name="Bob"))

    assert result.replacement_count == 1
    assert paragraph_texts(path) == ["Hi Bob"]


def test_unmapped_placeholders_left_alone(make_docx, engine):
    """映射中没有的占位符（包括图片）保持原样，没有替换时不写文件."""
    path = make_docx(body=["{{image:LOGO|width:200|height:150}}", "{{Other}}"])
    before = path.read_bytes()

    result = engine.replace_in_file(path, mapping(Name="x"), create_backup=True)

    assert result.is_success
    assert result.replacement_count == 0
    assert result.backup_path is None
    assert path.read_bytes() == before


def test_no_placeholders(make_docx, engine):
    path = make_docx(body=["Plain text only."])

    result = engine.replace_in_file(path, mapping(Name="x"))

    assert result.is_success
    assert result.replacement_count == 0
    assert result.error_message is None
    assert not result.has_errors


def test_replace_is_idempotent(make_docx, engine):
    path = make_docx(body=["{{Name}} and {{Name}}"])

    first = engine.replace_in_file(path, mapping(Name="Alice"))
    second = engine.replace_in_file(path, mapping(Name="Alice"))

    assert first.replacement_count == 2
    assert second.replacement_count == 0
    assert paragraph_texts(path) == ["Alice and Alice"]


def test_image_replacement(make_docx, make_image, engine):
    """图片按声明尺寸等比缩放后插入，段落对齐保持不变."""
    image = make_image(size=(400, 200))

    def center(doc):
        doc.paragraphs[-1].alignment = WD_ALIGN_PARAGRAPH.CENTER

    path = make_docx(body=[["{{image:LO", "GO|width:200|height:150}}"]], build=center)

    result = engine.replace_in_file(path, mapping(LOGO=str(image)))

    assert result.replacement_count == 1
    doc = Document(str(path))
    [shape] = doc.inline_shapes
    assert (shape.width, shape.height) == (pixels_to_emus(200), pixels_to_emus(100))
    assert doc.paragraphs[-1].alignment == WD_ALIGN_PARAGRAPH.CENTER
    assert "{{" not in doc.paragraphs[-1].text


def test_header_image_survives_save(make_docx, make_image, engine):
    """页眉图片保存后仍注册在页眉部件上."""
    image = make_image()
    path = make_docx(header="{{image:LOGO|height:20}}", body=["Body"])

    result = engine.replace_in_file(path, mapping(LOGO=str(image)))

    assert result.replacement_count == 1
    doc = Document(str(path))
    header_part = doc.sections[0].header.part
    assert any(rel.reltype == RT.IMAGE for rel in header_part.rels.values())
    assert not any(rel.reltype == RT.IMAGE for rel in doc.part.rels.values())


def test_image_error_only_fails_that_match(make_docx, engine, tmp_path):
    """单个图片失败时其余替换照常保存."""
    path = make_docx(body=["{{Name}} {{image:LOGO}}"])

    result = engine.replace_in_file(path, mapping(Name="Alice", LOGO=str(tmp_path / "missing.png")))

    assert result.is_success
    assert result.replacement_count == 1
    assert len(result.match_errors) == 1
    assert "{{image:LOGO}}" in result.match_errors[0]
    assert result.has_errors
    assert paragraph_texts(path) == ["Alice {{image:LOGO}}"]


def test_backup_created_before_write(make_docx, engine):
    path = make_docx("contract.docx", body=["{{Name}}"])

    result = engine.replace_in_file(path, mapping(Name="Alice"), create_backup=True)

    assert result.backup_path is not None
    assert ".backup." in result.backup_path
    assert paragraph_texts(result.backup_path) == ["{{Name}}"]
    assert paragraph_texts(path) == ["Alice"]


def test_backup_failure_leaves_file_untouched(make_docx, engine):
    path = make_docx(body=["{{Name}}"])
    before = path.read_bytes()

    with patch.object(engine.file_system, "create_backup", side_effect=BackupError("disk full")):
        result = engine.replace_in_file(path, mapping(Name="Alice"), create_backup=True)

    assert result.is_success is False
    assert "disk full" in result.error_message
    assert path.read_bytes() == before


def test_save_failure_is_atomic(make_docx, engine, tmp_path):
    """保存失败时原文件不变，也不留下临时文件."""
    path = make_docx(body=["{{Name}}"])
    before = path.read_bytes()

    with patch("docx.document.Document.save", side_effect=OSError("no space left")):
        result = engine.replace_in_file(path, mapping(Name="Alice"))

    assert result.is_success is False
    assert path.read_bytes() == before
    assert sorted(p.name for p in tmp_path.iterdir()) == ["template.docx"]


def test_corrupt_file_fails_alone(make_docx, engine, tmp_path):
    good = make_docx("good.docx", body=["{{Name}}"])
    broken = tmp_path / "broken.docx"
    broken.write_bytes(b"not a zip archive")

    result = engine.replace(tmp_path, mapping(Name="Alice"))

    assert [r.file_name for r in result.file_results] == ["broken.docx", "good.docx"]
    assert result.failed_files == 1
    assert result.successful_files == 1
    assert result.total_replacements == 1
    assert broken.read_bytes() == b"not a zip archive"
    assert paragraph_texts(good) == ["Alice"]


def test_replace_missing_path(tmp_path, engine):
    result = engine.replace(tmp_path / "missing", mapping(Name="x"))

    [file_result] = result.file_results
    assert file_result.is_success is False
    assert result.has_errors


def test_replace_invalid_arguments(make_docx, engine):
    path = make_docx(body=["{{Name}}"])

    with pytest.raises(InputValidationError):
        engine.replace("", mapping(Name="x"))
    with pytest.raises(ReplacementValidationError):
        engine.replace(path, ReplacementMap(mappings={}))
    with pytest.raises(ReplacementValidationError):
        engine.replace_in_file(path, mapping(Name="a", name="b"))


def test_cancellation_skips_unstarted_files(make_docx, engine, tmp_path):
    """取消后尚未开始的文件不出现在结果中，也不会被修改."""
    paths = [make_docx(f"doc{i}.docx", body=["{{Name}}"]) for i in range(3)]
    event = threading.Event()
    original = engine.replace_in_file

    def replace_then_cancel(file_path, replacement_map, create_backup):
        result = original(file_path, replacement_map, create_backup)
        event.set()
        return result

    with patch.object(engine, "replace_in_file", side_effect=replace_then_cancel):
        result = engine.replace(tmp_path, mapping(Name="Alice"), cancel_event=event, max_workers=1)

    assert len(result.file_results) == 1
    assert isinstance(result.file_results[0], FileReplaceResult)
    assert paragraph_texts(paths[0]) == ["Alice"]
    assert paragraph_texts(paths[1]) == ["{{Name}}"]
    assert paragraph_texts(paths[2]) == ["{{Name}}"]


def test_preview_does_not_modify(make_docx, engine, tmp_path):
    a = make_docx("a.docx", body=["{{Name}} {{Name}}", "{{City}}"])
    make_docx("b.docx", body=["{{image:LOGO}}"])
    before = a.read_bytes()

    preview = engine.preview(tmp_path, mapping(name="x", LOGO="logo.png", Unused="y"))

    assert a.read_bytes() == before
    assert preview.files_to_process == 2
    assert preview.placeholders_to_replace == 3
    assert sorted(preview.mapped_placeholders) == ["LOGO", "Name"]
    assert preview.unmapped_placeholders == ["City"]
    assert preview.unused_mappings == ["Unused"]
    assert preview.file_previews[0].details == {"Name": 2, "City": 1}


def box_texts(path):
    """重新打开文档，返回所有文本框段落的文本，按文档顺序."""
    body = Document(str(path)).element.body
    return ["".join(p.itertext()) for p in body.xpath(".//w:txbxContent/w:p")]


def test_replace_text_box(make_docx, engine):
    path = make_docx(body=["Host"], build=lambda doc: add_text_box(doc.paragraphs[0], ["Box {{BOXED}}"]))

    result = engine.replace_in_file(path, mapping(BOXED="ACME"))

    assert result.replacement_count == 1
    assert box_texts(path) == ["Box ACME"]
    assert paragraph_texts(path) == ["Host"]


def test_replace_alternate_content_updates_both_copies(make_docx, engine, tmp_path):
    """Choice 与 Fallback 两份文本框都被改写，计数和错误只算一次."""
    path = make_docx(
        body=["Host"],
        build=lambda doc: add_text_box(doc.paragraphs[0], ["{{BOXED}} {{image:LOGO}}"], alternate=True),
    )

    result = engine.replace_in_file(path, mapping(BOXED="ACME", LOGO=str(tmp_path / "missing.png")))

    assert result.replacement_count == 1
    assert len(result.match_errors) == 1
    assert box_texts(path) == ["ACME {{image:LOGO}}", "ACME {{image:LOGO}}"]


def test_replace_keeps_file_permissions(make_docx, engine):
    path = make_docx(body=["{{Name}}"])
    os.chmod(path, 0o644)

    engine.replace_in_file(path, mapping(Name="Alice"))

    assert paragraph_texts(path) == ["Alice"]
    assert stat.S_IMODE(path.stat().st_mode) == 0o644
