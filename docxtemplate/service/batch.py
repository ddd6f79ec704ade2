"""文件级并发执行."""

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional, Sequence, TypeVar

from loguru import logger

from docxtemplate.config.settings import settings
from docxtemplate.data.exceptions import InputValidationError

T = TypeVar("T")

_SKIPPED = object()


def run_file_tasks(
    paths: Sequence[Path],
    task: Callable[[Path], T],
    max_workers: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[T]:
    """并发处理多个文件，每个文件在一个线程内顺序处理.

    取消只在文件之间检查：已经开始的文件会处理完，尚未开始的文件被跳过，
    不出现在结果中。结果按输入顺序返回。

    Args:
        paths: 文件列表
        task: 处理单个文件的函数，不应抛出预期内的异常
        max_workers: 最大并发数，默认取配置 MAX_WORKERS
        cancel_event: 取消信号

    Returns:
        已处理文件的结果
    """
    if max_workers is None:
        max_workers = settings.document.max_workers
    if max_workers < 1:
        raise InputValidationError(f"max_workers must be positive, got {max_workers}")

    def guarded(path: Path):
        if cancel_event is not None and cancel_event.is_set():
            logger.debug(f"已取消，跳过 {path}")
            return _SKIPPED
        return task(path)

    if max_workers == 1 or len(paths) <= 1:
        results = [guarded(path) for path in paths]
    else:
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="docxtemplate") as executor:
            results = list(executor.map(guarded, paths))

    return [r for r in results if r is not _SKIPPED]
