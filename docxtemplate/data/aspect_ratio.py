"""图片尺寸计算."""

import math
from typing import Optional, Tuple

# Word 文档中 1 像素 = 9525 EMU（96 DPI）
EMUS_PER_PIXEL = 9525


def contain_fit(original_width: int, original_height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """按 contain 模式计算显示尺寸，保持宽高比.

    缩放比例取两个方向比例的较小值；两个比例都大于 1 时会放大。

    Args:
        original_width: 原始宽度（像素）
        original_height: 原始高度（像素）
        max_width: 最大宽度（像素）
        max_height: 最大高度（像素）

    Returns:
        (宽, 高)，向下取整，最小为 1

    Raises:
        ValueError: 任一参数小于等于 0
    """
    if original_width <= 0 or original_height <= 0:
        raise ValueError("Original dimensions must be positive")
    if max_width <= 0 or max_height <= 0:
        raise ValueError("Maximum dimensions must be positive")

    scale = min(max_width / original_width, max_height / original_height)
    return (
        max(1, math.floor(original_width * scale)),
        max(1, math.floor(original_height * scale)),
    )


def display_size(
    original_width: int,
    original_height: int,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> Tuple[int, int]:
    """根据占位符声明的尺寸计算显示尺寸.

    - 同时给出宽高：contain_fit
    - 只给出一个：该方向固定，另一方向按比例缩放
    - 都没有：原始尺寸
    """
    if original_width <= 0 or original_height <= 0:
        raise ValueError("Original dimensions must be positive")
    if width is not None and height is not None:
        return contain_fit(original_width, original_height, width, height)
    if width is not None:
        if width <= 0:
            raise ValueError("Maximum dimensions must be positive")
        return width, max(1, math.floor(original_height * width / original_width))
    if height is not None:
        if height <= 0:
            raise ValueError("Maximum dimensions must be positive")
        return max(1, math.floor(original_width * height / original_height)), height
    return original_width, original_height


def pixels_to_emus(pixels: int) -> int:
    return int(pixels) * EMUS_PER_PIXEL


def emus_to_pixels(emus: int) -> int:
    return int(emus) // EMUS_PER_PIXEL
