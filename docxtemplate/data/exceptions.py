"""异常定义.

错误分三个粒度：
- 调用级：InputValidationError 及其子类，立即抛出，不做任何处理；
- 文件级：TemplateNotFoundError、MalformedDocumentError、DocumentSaveError、BackupError，
  只让当前文件失败，批处理继续；
- 匹配级：ImageProcessingError 及其子类、RewriteInconsistencyError，
  只让当前占位符失败，文件其余替换照常保存。
"""


class DocxTemplateError(Exception):
    """所有业务异常的基类."""


class InputValidationError(DocxTemplateError, ValueError):
    """必填参数为空或非法."""


class InvalidPlaceholderPatternError(InputValidationError):
    """占位符正则表达式为空或无法编译."""


class ReplacementValidationError(InputValidationError):
    """替换映射非法（为空、键为空或键重复）."""


class TemplateNotFoundError(DocxTemplateError, FileNotFoundError):
    """模板文件或目录不存在."""


class MalformedDocumentError(DocxTemplateError):
    """文件无法作为 OOXML 包打开."""


class DocumentSaveError(DocxTemplateError):
    """文档写回失败."""


class BackupError(DocxTemplateError):
    """写回前的备份失败."""


class ImageProcessingError(DocxTemplateError):
    """图片占位符处理失败的基类."""


class ImageNotFoundError(ImageProcessingError):
    """映射中给出的图片文件不存在."""


class UnsupportedImageFormatError(ImageProcessingError):
    """图片格式不受支持."""


class CorruptImageError(ImageProcessingError):
    """图片数据无法解码."""


class RewriteInconsistencyError(DocxTemplateError):
    """偏移映射与当前文本块内容不一致."""


# 只影响单个占位符的异常
MATCH_LEVEL_ERRORS = (ImageProcessingError, RewriteInconsistencyError)
