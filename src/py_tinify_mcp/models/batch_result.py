"""批量处理结果模型。

汇总一次批处理中所有任务的结果。
"""

from humanize import naturalsize
from pydantic import BaseModel, ConfigDict, Field

from .image_job import ImageJob
from .states import StateKind


class BatchResult(BaseModel):
    """批量处理结果"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    jobs: list[ImageJob] = Field(description="本批次的所有任务")
    cancelled: list[ImageJob] = Field(default_factory=list, description="被取消的任务")

    @property
    def success(self) -> bool:
        return self.get_failure_count() == 0

    def get_successful_items(self) -> list[ImageJob]:
        """获取成功的任务"""
        return [j for j in self.jobs if j.state.kind == StateKind.FINISHED]

    def get_failed_items(self) -> list[ImageJob]:
        """获取失败的任务"""
        return [j for j in self.jobs if j.state.kind == StateKind.ERROR]

    def get_total_count(self) -> int:
        return len(self.jobs)

    def get_success_count(self) -> int:
        return len(self.get_successful_items())

    def get_failure_count(self) -> int:
        return len(self.get_failed_items())

    def get_success_rate(self) -> float:
        """获取成功率（百分比）"""
        total = self.get_total_count()
        if total == 0:
            return 0.0
        return (self.get_success_count() / total) * 100

    def get_total_original_size(self) -> int:
        """成功任务的总原始大小"""
        return sum(j.original_size for j in self.get_successful_items())

    def get_total_size_saved(self) -> int:
        """总节省大小"""
        return sum(
            max(0, j.original_size - (j.optimized_size or 0))
            for j in self.get_successful_items()
        )

    def get_summary(self) -> str:
        """批量处理摘要"""
        total = self.get_total_count()
        successful = self.get_success_count()
        size_saved = naturalsize(self.get_total_size_saved(), binary=True)

        summary = (
            f"处理 {successful}/{total} 个文件 "
            f"(成功率 {self.get_success_rate():.1f}%), "
            f"总节省 {size_saved}"
        )
        if self.cancelled:
            summary += f", 取消 {len(self.cancelled)} 个"
        return summary
