"""文档遍历器.

统一遍历一个已打开文档的所有部件：页眉、正文、页脚，以及任意层级嵌套表格
和文本框中的段落。扫描和替换使用同一个遍历器。
"""

from dataclasses import dataclass
from typing import Iterator, List, Tuple

from docx.document import Document
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from docx.opc.part import Part
from docx.oxml.ns import qn
from docx.text.paragraph import Paragraph
from loguru import logger

P_TAG = qn("w:p")
TBL_TAG = qn("w:tbl")
TXBX_CONTENT_TAG = qn("w:txbxContent")
# mc:AlternateContent 的后备内容，通常是 DrawingML 文本框的 VML 副本
MC_FALLBACK_TAG = "{http://schemas.openxmlformats.org/markup-compatibility/2006}Fallback"

# 可能包含段落的容器元素
CONTAINER_TAGS = frozenset(
    qn(tag) for tag in ("w:tbl", "w:tr", "w:tc", "w:sdt", "w:sdtContent", "w:customXml")
)


@dataclass
class ParagraphContext:
    """段落及其所属部件.

    fallback 为 True 表示段落位于 mc:Fallback 中，是另一处文本框内容的副本。
    """

    paragraph: Paragraph
    part: Part
    section: str
    table_depth: int = 0
    fallback: bool = False

    @property
    def in_table(self) -> bool:
        return self.table_depth > 0


class DocumentTraverser:
    """文档遍历器，不包含任何占位符逻辑."""

    def iter_parts(self, doc: Document) -> Iterator[Tuple[str, Part, object]]:
        """按页眉、正文、页脚的顺序返回 (区域名, 部件, 根元素).

        页眉页脚通过主文档部件的关系查找，首页、偶数页等各类页眉页脚都会包含，
        同一个部件只返回一次。
        """
        for index, part in enumerate(self._related_parts(doc, RT.HEADER)):
            yield f"Header{index}", part, part.element

        yield "Body", doc.part, doc.element.body

        for index, part in enumerate(self._related_parts(doc, RT.FOOTER)):
            yield f"Footer{index}", part, part.element

    def iter_paragraphs(self, doc: Document) -> Iterator[ParagraphContext]:
        """遍历文档中的全部段落，每个段落恰好一次，部件内按文档顺序.

        Args:
            doc: Document对象

        Yields:
            段落上下文
        """
        for section, part, root in self.iter_parts(doc):
            logger.debug(f"遍历 {section}")
            for p, depth, fallback in self.iter_block_paragraphs(root):
                # 段落的父对象直接用部件，Run.part 因此解析到正确的部件
                yield ParagraphContext(
                    paragraph=Paragraph(p, part),
                    part=part,
                    section=section,
                    table_depth=depth,
                    fallback=fallback,
                )

    @classmethod
    def iter_block_paragraphs(cls, root) -> Iterator[Tuple[object, int, bool]]:
        """用显式栈按文档顺序遍历 root 下的段落元素.

        返回 (w:p, 表格嵌套深度, 是否位于 mc:Fallback 中)。段落内的文本框
        紧跟在所在段落之后遍历。
        """
        stack = [(root.iterchildren(), 0, False)]
        while stack:
            children, depth, fallback = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                continue
            if child.tag == P_TAG:
                yield child, depth, fallback
                for content, in_fallback in reversed(cls._text_box_contents(child)):
                    stack.append((content.iterchildren(), depth, fallback or in_fallback))
            elif child.tag in CONTAINER_TAGS:
                stack.append((child.iterchildren(), depth + 1 if child.tag == TBL_TAG else depth, fallback))

    @staticmethod
    def _text_box_contents(p) -> List[Tuple[object, bool]]:
        """段落中最外层的 w:txbxContent，嵌套更深的由内层段落负责."""
        found = []
        stack = [(child, False) for child in reversed(p)]
        while stack:
            element, in_fallback = stack.pop()
            if element.tag == TXBX_CONTENT_TAG:
                found.append((element, in_fallback))
                continue
            in_fallback = in_fallback or element.tag == MC_FALLBACK_TAG
            stack.extend((child, in_fallback) for child in reversed(element))
        return found

    @staticmethod
    def _related_parts(doc: Document, reltype: str) -> List[Part]:
        parts = []
        seen = set()
        for rel in doc.part.rels.values():
            if rel.is_external or rel.reltype != reltype:
                continue
            part = rel.target_part
            if part.partname in seen:
                continue
            seen.add(part.partname)
            parts.append(part)
        return parts
