"""段落文本块序列."""

from typing import List

from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.oxml.text.run import CT_R
from docx.text.paragraph import Paragraph
from docx.text.run import Run

# 段落直接包含的文本块以及超链接中的文本块，按文档顺序
RUN_XPATH = "./w:r | ./w:hyperlink/w:r"

RPR_TAG = qn("w:rPr")
BR_TAG = qn("w:br")
BR_TYPE = qn("w:type")
# 与 Run.text 对应的文本子元素；分页符、分栏符不算文本
TEXT_TAGS = frozenset(qn(tag) for tag in ("w:t", "w:tab", "w:cr", "w:noBreakHyphen", "w:ptab"))


def is_text_child(child) -> bool:
    """子元素是否属于文本块的文字内容."""
    if child.tag == BR_TAG:
        return child.get(BR_TYPE, "textWrapping") == "textWrapping"
    return child.tag in TEXT_TAGS


class RunSequence:
    """段落文本块的可索引序列.

    所有结构修改都通过 insert_after / remove_at 完成，列表与 XML 同步更新。
    改写文字时只替换文字子元素，图形、域代码等其他内容原样保留。
    """

    def __init__(self, paragraph: Paragraph) -> None:
        self.paragraph = paragraph
        self._runs: List[CT_R] = list(paragraph._p.xpath(RUN_XPATH))

    def __len__(self) -> int:
        return len(self._runs)

    def __getitem__(self, index: int) -> CT_R:
        return self._runs[index]

    def run(self, index: int) -> Run:
        return Run(self._runs[index], self.paragraph)

    def text_at(self, index: int) -> str:
        return self.run(index).text

    def set_text(self, index: int, text: str) -> None:
        """替换第 index 个文本块的文字，新文字放在原第一个文字子元素的位置."""
        r = self._runs[index]
        text_children = [child for child in r if is_text_child(child)]
        position = r.index(text_children[0]) if text_children else len(r)
        for child in text_children:
            r.remove(child)

        # 借助 CT_R.text 生成 w:t / w:tab / w:br
        scratch = OxmlElement("w:r")
        scratch.text = text
        for offset, child in enumerate(list(scratch)):
            r.insert(position + offset, child)

    def has_other_content(self, index: int) -> bool:
        """除格式和文字外是否还有其他内容（图形、域代码、分页符等）."""
        return any(child.tag != RPR_TAG and not is_text_child(child) for child in self._runs[index])

    def texts(self) -> List[str]:
        return [self.text_at(i) for i in range(len(self._runs))]

    @property
    def text(self) -> str:
        return "".join(self.texts())

    def insert_after(self, index: int, r: CT_R) -> None:
        """把 r 插入到第 index 个文本块之后."""
        self._runs[index].addnext(r)
        self._runs.insert(index + 1, r)

    def remove_at(self, index: int) -> None:
        r = self._runs.pop(index)
        parent = r.getparent()
        if parent is not None:
            parent.remove(r)
