"""段落文本重建."""

from docx.text.paragraph import Paragraph

from docxtemplate.data.models import LogicalParagraphText, RunSpan
from docxtemplate.data.run_sequence import RunSequence


class TextSpanReconstructor:
    """把段落的文本块拼接成一个逻辑字符串，并记录每个文本块的区间.

    占位符可能被 Word 拆分到多个格式不同的文本块中，只有在拼接后的
    逻辑字符串上才能找到完整的占位符。
    """

    def reconstruct(self, runs: RunSequence) -> LogicalParagraphText:
        """重建逻辑文本.

        Args:
            runs: 段落的文本块序列

        Returns:
            逻辑文本，空文本块对应零长度区间
        """
        parts = []
        spans = []
        position = 0
        for index, text in enumerate(runs.texts()):
            spans.append(RunSpan(run_index=index, start=position, length=len(text)))
            parts.append(text)
            position += len(text)
        return LogicalParagraphText(text="".join(parts), spans=spans)

    def reconstruct_paragraph(self, paragraph: Paragraph) -> LogicalParagraphText:
        return self.reconstruct(RunSequence(paragraph))
