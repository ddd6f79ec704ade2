"""测试公共夹具."""

from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence, Union

import pytest
from docx import Document
from docx.document import Document as DocxDocument
from docx.oxml import OxmlElement, parse_xml
from PIL import Image

Runs = Union[str, Sequence[str]]


def add_runs(paragraph, runs: Runs):
    """按给定的文本块拆分方式向段落追加文本."""
    if isinstance(runs, str):
        runs = [runs]
    return [paragraph.add_run(text) for text in runs]


def make_element_paragraph(text: str):
    """构造一个只含一个文本块的 w:p 元素."""
    p = OxmlElement("w:p")
    r = OxmlElement("w:r")
    t = OxmlElement("w:t")
    t.text = text
    r.append(t)
    p.append(r)
    return p


TEXT_BOX_NAMESPACES = (
    'xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main" '
    'xmlns:v="urn:schemas-microsoft-com:vml" '
    'xmlns:mc="http://schemas.openxmlformats.org/markup-compatibility/2006" '
    'xmlns:wps="http://schemas.microsoft.com/office/word/2010/wordprocessingShape"'
)


def add_text_box(paragraph, texts: Sequence[str], alternate: bool = False):
    """在段落末尾追加一个含文本框的文本块，texts 中每一项是文本框里的一个段落.

    alternate 为 True 时按 Word 的保存方式生成 mc:AlternateContent：
    Choice 中是 DrawingML 文本框，Fallback 中是同样内容的 VML 文本框。
    """
    content = "<w:txbxContent>{}</w:txbxContent>".format(
        "".join(f"<w:p><w:r><w:t>{text}</w:t></w:r></w:p>" for text in texts)
    )
    vml = f"<w:pict><v:shape><v:textbox>{content}</v:textbox></v:shape></w:pict>"
    if alternate:
        body = (
            '<mc:AlternateContent><mc:Choice Requires="wps">'
            f"<w:drawing><wps:wsp><wps:txbx>{content}</wps:txbx></wps:wsp></w:drawing>"
            f"</mc:Choice><mc:Fallback>{vml}</mc:Fallback></mc:AlternateContent>"
        )
    else:
        body = vml
    r = parse_xml(f"<w:r {TEXT_BOX_NAMESPACES}>{body}</w:r>")
    paragraph._p.append(r)
    return r


@pytest.fixture
def make_docx(tmp_path: Path) -> Callable[..., Path]:
    """在 tmp_path 中生成 .docx 文件.

    body 中每一项是一个段落，字符串表示单个文本块，列表表示拆分后的文本块。
    build 可以对 Document 做任意额外修改。
    """

    def _make(
        name: str = "template.docx",
        body: Iterable[Runs] = (),
        header: Optional[Runs] = None,
        footer: Optional[Runs] = None,
        build: Optional[Callable[[DocxDocument], None]] = None,
    ) -> Path:
        doc = Document()
        if header is not None:
            add_runs(doc.sections[0].header.paragraphs[0], header)
        for runs in body:
            add_runs(doc.add_paragraph(), runs)
        if footer is not None:
            add_runs(doc.sections[0].footer.paragraphs[0], footer)
        if build is not None:
            build(doc)

        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        doc.save(str(path))
        return path

    return _make


@pytest.fixture
def make_image(tmp_path: Path) -> Callable[..., Path]:
    """用 Pillow 生成图片文件."""

    def _make(name: str = "logo.png", size=(200, 100), image_format: Optional[str] = None) -> Path:
        path = tmp_path / name
        Image.new("RGB", size, "red").save(path, format=image_format)
        return path

    return _make


@pytest.fixture
def nested_table_doc() -> DocxDocument:
    """正文中有两层嵌套表格的文档."""
    doc = Document()
    doc.add_paragraph("Before {{Outer}}")
    table = doc.add_table(rows=1, cols=2)
    table.cell(0, 0).paragraphs[0].text = "Cell {{Outer}}"
    inner = table.cell(0, 1).add_table(rows=1, cols=1)
    inner.cell(0, 0).paragraphs[0].text = "Inner {{Inner}}"
    doc.add_paragraph("After")
    return doc


def paragraph_texts(path: Union[str, Path]) -> list:
    """重新打开文档，返回正文段落文本."""
    return [p.text for p in Document(str(path)).paragraphs]
