"""图片探测."""

from pathlib import Path
from typing import Union

from loguru import logger
from PIL import Image, UnidentifiedImageError

from docxtemplate.data.exceptions import CorruptImageError, ImageNotFoundError, UnsupportedImageFormatError
from docxtemplate.data.models import ImageInfo

# Word 能直接嵌入的格式（Pillow 格式名）
SUPPORTED_FORMATS = ("PNG", "JPEG", "GIF", "BMP")
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".bmp")


def probe_image(image_path: Union[str, Path]) -> ImageInfo:
    """读取图片的原始宽高和格式.

    Args:
        image_path: 图片路径

    Returns:
        图片信息

    Raises:
        ImageNotFoundError: 文件不存在
        UnsupportedImageFormatError: 格式不受支持
        CorruptImageError: 图片无法解码
    """
    image_path = Path(image_path)
    if not image_path.is_file():
        raise ImageNotFoundError(f"Image file not found: {image_path}")

    try:
        with Image.open(image_path) as img:
            image_format = (img.format or "").upper()
            if image_format not in SUPPORTED_FORMATS:
                raise UnsupportedImageFormatError(
                    f"Image format {image_format or image_path.suffix} is not supported: {image_path}"
                )
            width, height = img.size
            # 强制解码，截断或损坏的数据在这里暴露
            img.load()
    except UnidentifiedImageError as e:
        # 扩展名声称是支持的格式却无法识别，按损坏处理
        if image_path.suffix.lower() in IMAGE_EXTENSIONS:
            raise CorruptImageError(f"Unable to decode image file: {image_path}") from e
        raise UnsupportedImageFormatError(f"Unrecognized image file: {image_path}") from e
    except (OSError, SyntaxError, ValueError) as e:
        raise CorruptImageError(f"Error processing image file: {image_path}: {e}") from e

    if width <= 0 or height <= 0:
        raise CorruptImageError(f"Image has invalid dimensions {width}x{height}: {image_path}")

    logger.debug(f"图片 {image_path.name}: {width}x{height} {image_format}")
    return ImageInfo(width=width, height=height, format=image_format)
