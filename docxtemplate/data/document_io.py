"""文档读写操作."""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Union

from docx import Document
from docx.document import Document as DocxDocument
from loguru import logger

from docxtemplate.data.exceptions import DocumentSaveError, MalformedDocumentError, TemplateNotFoundError

SUPPORTED_SUFFIXES = ('.docx',)


class DocumentIO:
    """文档读写操作类."""
    
    @staticmethod
    def load_document(file_path: Union[str, Path]) -> DocxDocument:
        """加载Word文档.
        
        Args:
            file_path: 文档路径
            
        Returns:
            加载的Document对象
            
        Raises:
            TemplateNotFoundError: 文件不存在
            MalformedDocumentError: 文件格式不正确或无法作为 OOXML 包打开
        """
        file_path = Path(file_path)
        if not file_path.is_file():
            raise TemplateNotFoundError(f"Template file not found: {file_path}")
        
        if file_path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise MalformedDocumentError(f"Unsupported file type: {file_path.suffix}")
        
        try:
            doc = Document(os.fspath(file_path))
        except Exception as e:
            logger.error(f"加载文档失败: {file_path}: {e}")
            raise MalformedDocumentError(f"Failed to open document {file_path}: {e}") from e
        logger.debug(f"已加载文档: {file_path}")
        return doc
    
    @staticmethod
    def save_document(doc: DocxDocument, output_path: Union[str, Path]) -> None:
        """原子地保存Word文档.
        
        先写入同目录下的临时文件，成功后再替换目标文件，
        任何失败都不会留下写了一半的文件。
        
        Args:
            doc: Document对象
            output_path: 输出文件路径
            
        Raises:
            DocumentSaveError: 保存失败
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        
        fd, tmp_name = tempfile.mkstemp(prefix=f".{output_path.stem}.", suffix=".tmp", dir=output_path.parent)
        os.close(fd)
        try:
            doc.save(tmp_name)
            # mkstemp 创建的文件权限为 0600，覆盖已有文件时沿用原权限
            if output_path.exists():
                shutil.copymode(output_path, tmp_name)
            os.replace(tmp_name, output_path)
        except Exception as e:
            logger.error(f"保存文档失败: {output_path}: {e}")
            raise DocumentSaveError(f"Failed to save document {output_path}: {e}") from e
        finally:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
        logger.debug(f"已保存文档: {output_path}")
