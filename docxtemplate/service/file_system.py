"""文件系统操作."""

import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from loguru import logger

from docxtemplate.config.settings import settings
from docxtemplate.data.exceptions import BackupError, InputValidationError, TemplateNotFoundError

DOCX_SUFFIX = ".docx"
BACKUP_MARKER = ".backup."


class FileSystemService:
    """模板文件查找与备份."""

    def discover_documents(self, path: Union[str, Path], recursive: bool = True) -> List[Path]:
        """查找待处理的 .docx 文件.

        Args:
            path: 单个文件或目录
            recursive: 目录是否递归查找

        Returns:
            排序后的文件列表，跳过 Office 锁文件（~$开头）和备份文件

        Raises:
            InputValidationError: 路径为空
            TemplateNotFoundError: 路径不存在
        """
        if path is None or not str(path).strip():
            raise InputValidationError("Path cannot be null or empty")
        path = Path(path)
        if path.is_file():
            return [path]
        if not path.is_dir():
            raise TemplateNotFoundError(f"File or directory not found: {path}")

        candidates = path.rglob(f"*{DOCX_SUFFIX}") if recursive else path.glob(f"*{DOCX_SUFFIX}")
        files = sorted(p for p in candidates if p.is_file() and self.is_template_file(p))
        logger.debug(f"在 {path} 中找到 {len(files)} 个模板文件")
        return files

    @staticmethod
    def is_template_file(path: Path) -> bool:
        name = path.name
        return (
            name.lower().endswith(DOCX_SUFFIX)
            and not name.startswith("~$")
            and BACKUP_MARKER not in name
        )

    def create_backup(self, file_path: Union[str, Path], timestamp: Optional[datetime] = None) -> Path:
        """在同目录下创建备份：<stem>.backup.<时间戳><suffix>.

        Raises:
            BackupError: 源文件不存在或复制失败
        """
        file_path = Path(file_path)
        if not file_path.is_file():
            raise BackupError(f"Cannot create backup: source file not found: {file_path}")

        stamp = (timestamp or datetime.now()).strftime(settings.document.backup_timestamp_format)
        backup_path = file_path.with_name(f"{file_path.stem}{BACKUP_MARKER}{stamp}{file_path.suffix}")
        counter = 1
        while backup_path.exists():
            backup_path = file_path.with_name(f"{file_path.stem}{BACKUP_MARKER}{stamp}_{counter}{file_path.suffix}")
            counter += 1

        try:
            shutil.copy2(file_path, backup_path)
        except OSError as e:
            raise BackupError(f"Failed to create backup of {file_path}: {e}") from e
        logger.debug(f"已创建备份: {backup_path}")
        return backup_path
