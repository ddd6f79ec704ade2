"""占位符匹配器."""

import re
from typing import List, Optional, Pattern, Union

from loguru import logger

from docxtemplate.config.settings import settings
from docxtemplate.data.exceptions import InvalidPlaceholderPatternError
from docxtemplate.data.models import Directive, ImageDirective, Match, TextDirective

IMAGE_PREFIX = "image:"
DIMENSION_KEYS = ("width", "height")
_POSITIVE_INT = re.compile(r"[0-9]+")


def compile_pattern(pattern: Union[str, Pattern, None]) -> Pattern:
    """编译占位符正则，非法时抛出 InvalidPlaceholderPatternError.

    Args:
        pattern: 正则表达式或已编译的Pattern对象，None 表示使用配置中的默认值

    Returns:
        编译后的正则
    """
    if pattern is None:
        pattern = settings.document.placeholder_pattern
    if isinstance(pattern, re.Pattern):
        return pattern
    if not pattern or not pattern.strip():
        raise InvalidPlaceholderPatternError("Pattern cannot be null or empty")
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidPlaceholderPatternError(f"Invalid placeholder pattern {pattern!r}: {e}") from e


def parse_image_directive(body: str) -> Optional[ImageDirective]:
    """解析 image: 之后的部分，格式为 name|width:W|height:H.

    宽高段可省略、顺序任意，必须是正整数。格式不对时返回 None。
    """
    segments = body.split("|")
    name = segments[0].strip()
    if not name:
        return None

    dimensions = {}
    for segment in segments[1:]:
        key, sep, value = segment.partition(":")
        key = key.strip().lower()
        value = value.strip()
        if not sep or key not in DIMENSION_KEYS or key in dimensions:
            return None
        if not _POSITIVE_INT.fullmatch(value) or int(value) <= 0:
            return None
        dimensions[key] = int(value)

    return ImageDirective(name=name, width=dimensions.get("width"), height=dimensions.get("height"))


def parse_token(token: str) -> Directive:
    """把占位符内部文本解析为指令.

    以 image: 开头且格式正确的是图片占位符；格式错误的图片占位符
    按文本占位符处理，名称为完整的内部文本，保证扫描时不会丢失。
    """
    token = token.strip()
    if token[:len(IMAGE_PREFIX)].lower() == IMAGE_PREFIX:
        directive = parse_image_directive(token[len(IMAGE_PREFIX):])
        if directive is not None:
            return directive
        logger.debug(f"图片占位符格式不正确，按文本占位符处理: {token}")
    return TextDirective(name=token)


class PlaceholderMatcher:
    """在段落逻辑文本中查找占位符.

    默认语法：
    - {{NAME}}：文本占位符
    - {{image:NAME}}、{{image:NAME|width:W|height:H}}：图片占位符
    """

    def __init__(self, pattern: Union[str, Pattern, None] = None) -> None:
        """初始化匹配器.

        Args:
            pattern: 占位符正则，默认取配置 PLACEHOLDER_PATTERN
        """
        self.pattern = compile_pattern(pattern)

    @property
    def pattern_text(self) -> str:
        return self.pattern.pattern

    def find(self, text: str) -> List[Match]:
        """一次线性扫描找出全部占位符，按从左到右的顺序返回.

        Args:
            text: 段落逻辑文本

        Returns:
            互不重叠的匹配列表
        """
        matches = []
        if not text:
            return matches

        for m in self.pattern.finditer(text):
            if m.end() == m.start():
                continue
            token = self._inner_token(m)
            if not token:
                continue
            matches.append(Match(start=m.start(), end=m.end(), directive=parse_token(token), raw=m.group(0)))
        return matches

    def _inner_token(self, m: "re.Match") -> str:
        """取占位符内部文本：有分组取第一个分组，否则去掉两侧的花括号."""
        if self.pattern.groups and m.group(1) is not None:
            return m.group(1).strip()
        return m.group(0).strip("{}").strip()
