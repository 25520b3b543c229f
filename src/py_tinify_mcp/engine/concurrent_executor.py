"""并发执行器模块。

提供通用的并发任务执行功能：每个任务一个线程，等待全部完成后返回。
"""

from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Generic, TypeVar

from ..utils.logging_helpers import get_logger


logger = get_logger()

T = TypeVar("T")
R = TypeVar("R")


class ConcurrentExecutor(Generic[T, R]):
    """通用并发执行器

    默认不限制并发数，一批中的所有任务同时开始。单个任务抛出的异常交给
    ``on_error`` 转换为结果，不会影响其他任务。
    """

    def __init__(self, max_workers: int | None = None, thread_name_prefix: str = "tinify"):
        """初始化并发执行器

        Args:
            max_workers: 最大并发数，None 表示每个任务一个线程
            thread_name_prefix: 工作线程名前缀
        """
        self.max_workers = max_workers
        self.thread_name_prefix = thread_name_prefix

    def execute_tasks(
        self,
        items: Sequence[T],
        task_function: Callable[[T], R],
        on_error: Callable[[T, Exception], R],
    ) -> list[tuple[T, R]]:
        """执行并发任务

        Args:
            items: 任务输入列表
            task_function: 要执行的任务函数
            on_error: 任务抛出异常时生成替代结果的函数

        Returns:
            list[tuple[T, R]]: (输入, 结果) 列表，按完成顺序排列
        """
        if not items:
            return []

        workers = self.max_workers or len(items)
        results: list[tuple[T, R]] = []

        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix=self.thread_name_prefix
        ) as executor:
            future_to_item = {
                executor.submit(task_function, item): item for item in items
            }
            self._collect_results(future_to_item, on_error, results)

        return results

    def _collect_results(
        self,
        future_to_item: dict[Future, T],
        on_error: Callable[[T, Exception], R],
        results: list[tuple[T, R]],
    ) -> None:
        """收集任务执行结果"""
        for future in as_completed(future_to_item):
            item = future_to_item[future]
            try:
                results.append((item, future.result()))
            except Exception as e:
                logger.error(f"并发任务异常: {item} - {e}")
                results.append((item, on_error(item, e)))
