"""批处理引擎模块。

包含批量运行和并发执行逻辑。
"""

from .batch import BatchRunner
from .concurrent_executor import ConcurrentExecutor


__all__ = [
    "BatchRunner",
    "ConcurrentExecutor",
]
