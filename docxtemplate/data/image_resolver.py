"""图片占位符解析器."""

from pathlib import Path
from typing import Optional

from docx.image.exceptions import UnrecognizedImageError
from docx.oxml.text.run import CT_R
from docx.shared import Emu
from docx.text.run import Run
from loguru import logger

from docxtemplate.data.aspect_ratio import display_size, pixels_to_emus
from docxtemplate.data.exceptions import UnsupportedImageFormatError
from docxtemplate.data.image_probe import probe_image
from docxtemplate.data.models import ImageDirective, LogicalParagraphText, Match, ReplacementMap
from docxtemplate.data.run_rewriter import RunRewriter
from docxtemplate.data.run_sequence import RunSequence


class ImagePlaceholderResolver:
    """把图片占位符替换为按比例缩放的内嵌图片.

    图片关系注册在段落所属的部件上（正文、某个页眉或某个页脚），
    关系 ID 只在部件内有效，注册错部件会导致文档需要修复或图片无法显示。
    段落属性（如居中）保持不变。
    """

    def __init__(self, rewriter: Optional[RunRewriter] = None) -> None:
        self.rewriter = rewriter or RunRewriter()

    def resolve(
        self,
        runs: RunSequence,
        logical: LogicalParagraphText,
        match: Match,
        replacement_map: ReplacementMap,
    ) -> bool:
        """处理一个图片占位符.

        Args:
            runs: 段落文本块序列（段落的父对象必须能解析到所属部件）
            logical: 段落逻辑文本
            match: 图片占位符匹配
            replacement_map: 替换映射，值为图片路径

        Returns:
            是否已替换；映射中没有该名称时返回 False（图片占位符是可选的）

        Raises:
            ImageProcessingError: 图片不存在、格式不支持或已损坏
            RewriteInconsistencyError: 区间无法定位
        """
        directive = match.directive
        if not isinstance(directive, ImageDirective):
            raise TypeError(f"Not an image placeholder: {match.raw}")

        image_path = replacement_map.get(directive.name)
        if not image_path:
            logger.debug(f"图片占位符 {directive.name} 没有对应的图片，保持原样")
            return False

        info = probe_image(image_path)
        width, height = display_size(info.width, info.height, directive.width, directive.height)

        paragraph = runs.paragraph

        def make_run(template: CT_R) -> CT_R:
            r = self.rewriter.new_run(template, paragraph)
            try:
                Run(r, paragraph).add_picture(
                    str(Path(image_path)),
                    width=Emu(pixels_to_emus(width)),
                    height=Emu(pixels_to_emus(height)),
                )
            except UnrecognizedImageError as e:
                raise UnsupportedImageFormatError(f"Word cannot embed image: {image_path}") from e
            return r

        self.rewriter.splice(runs, logical, match.start, match.end, make_run)
        logger.debug(
            f"图片占位符 {directive.name} 已替换为 {image_path} "
            f"({info.width}x{info.height} -> {width}x{height})"
        )
        return True
