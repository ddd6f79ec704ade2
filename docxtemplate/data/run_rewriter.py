"""文本块改写器."""

import copy
from typing import Callable, List, Optional

from docx.oxml import OxmlElement
from docx.oxml.text.run import CT_R
from docx.text.paragraph import Paragraph
from docx.text.run import Run
from loguru import logger

from docxtemplate.data.exceptions import RewriteInconsistencyError
from docxtemplate.data.models import LogicalParagraphText, Match, RunSpan
from docxtemplate.data.run_sequence import RunSequence

# 参数为模板文本块（第一个被覆盖的文本块），返回要插入的新文本块，返回 None 表示不插入
RunFactory = Callable[[CT_R], Optional[CT_R]]


class RunRewriter:
    """把匹配区间写回文本块序列，区间外的文本和格式保持不变.

    - 第一个被覆盖的文本块保留前缀，其后插入一个新文本块（格式复制自该文本块）；
    - 最后一个被覆盖的文本块保留后缀；
    - 完全落在区间内的文本块去掉文字，零长度文本块保持不动；
    - 改写后既没有文字也没有图形、域代码等其他内容的文本块被删除。

    同一段落有多个匹配时，必须按起始位置从大到小依次调用，
    这样左侧尚未处理的匹配记录的偏移仍然有效。
    """

    @staticmethod
    def new_run(template: CT_R, paragraph: Paragraph, text: str = "") -> CT_R:
        """创建一个格式复制自 template 的新文本块."""
        r = OxmlElement("w:r")
        if template.rPr is not None:
            r.append(copy.deepcopy(template.rPr))
        if text:
            Run(r, paragraph).text = text
        return r

    def replace_text(
        self, runs: RunSequence, logical: LogicalParagraphText, match: Match, replacement: str
    ) -> None:
        """用文本替换一个匹配."""

        def make_run(template: CT_R) -> Optional[CT_R]:
            if not replacement:
                return None
            return self.new_run(template, runs.paragraph, replacement)

        self.splice(runs, logical, match.start, match.end, make_run)

    def locate(self, runs: RunSequence, logical: LogicalParagraphText, start: int, end: int) -> List[RunSpan]:
        """找出与 [start, end) 重叠的文本块区间，并核对文本块当前内容.

        Raises:
            RewriteInconsistencyError: 区间越界、无法被覆盖或文本块内容已变化
        """
        if start < 0 or end > len(logical.text) or start >= end:
            raise RewriteInconsistencyError(
                f"Span [{start}, {end}) is outside paragraph text of length {len(logical.text)}"
            )

        overlapping = logical.overlapping(start, end)
        if not overlapping or overlapping[0].start > start or overlapping[-1].end < end:
            raise RewriteInconsistencyError(f"No runs cover span [{start}, {end})")

        for span in overlapping:
            if span.run_index >= len(runs):
                raise RewriteInconsistencyError(f"Run {span.run_index} no longer exists")
            expected = logical.text[span.start:span.end]
            actual = runs.text_at(span.run_index)
            if actual != expected:
                raise RewriteInconsistencyError(
                    f"Run {span.run_index} text {actual!r} does not match recorded {expected!r}"
                )
        return overlapping

    def splice(
        self,
        runs: RunSequence,
        logical: LogicalParagraphText,
        start: int,
        end: int,
        make_run: RunFactory,
    ) -> None:
        """把 [start, end) 替换为 make_run 生成的文本块.

        先校验再修改：校验失败时段落保持原样。

        Args:
            runs: 段落文本块序列
            logical: 该段落的逻辑文本（会更新第一个文本块的区间）
            start: 区间起点
            end: 区间终点（不含）
            make_run: 新文本块工厂
        """
        overlapping = self.locate(runs, logical, start, end)
        first, last = overlapping[0], overlapping[-1]
        prefix = logical.text[first.start:start]
        suffix = logical.text[end:last.end]

        template = runs[first.run_index]
        new_r = make_run(template)

        # 从右往左修改，保证左侧索引不变
        if first.run_index == last.run_index:
            if suffix:
                runs.insert_after(first.run_index, self.new_run(template, runs.paragraph, suffix))
        else:
            self._keep_or_remove(runs, last.run_index, suffix)
            for span in reversed(overlapping[1:-1]):
                self._keep_or_remove(runs, span.run_index, "")
        if new_r is not None:
            runs.insert_after(first.run_index, new_r)
        self._keep_or_remove(runs, first.run_index, prefix)

        # 第一个文本块只剩前缀，更新它的区间供左侧的匹配使用
        logical.spans[first.run_index] = RunSpan(first.run_index, first.start, len(prefix))
        logger.debug(
            f"改写区间 [{start}, {end})，涉及 {len(overlapping)} 个文本块，前缀 {prefix!r}，后缀 {suffix!r}"
        )

    @staticmethod
    def _keep_or_remove(runs: RunSequence, index: int, text: str) -> None:
        """保留文字或清空文字；没有文字也没有其他内容时删除文本块."""
        if text or runs.has_other_content(index):
            runs.set_text(index, text)
        else:
            runs.remove_at(index)
