"""docx 占位符扫描与替换引擎."""

from docxtemplate.utils.logger import setup_logger

setup_logger()

__version__ = "0.1.0"
