"""Tinify 图像优化 MCP 服务器。

把批量优化流水线以 MCP 工具的形式提供出来。
"""

import logging
from typing import Any

from fastmcp import FastMCP

from .config import get_config
from .exceptions import ErrorHandler
from .models import BatchResult
from .optimizer import TinyOptimizer
from .utils.logging_helpers import configure_logging


# MCP 服务器响应类型定义
MCPOptimizeResponse = dict[str, Any]
MCPQuotaResponse = dict[str, Any]


class MCPResponseBuilder:
    """MCP 服务器响应构建器，专门用于构建符合 MCP 协议的响应格式。"""

    @staticmethod
    def error(
        message: str,
        error_type: str = "general",
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """构建错误结果。

        Args:
            message: 错误消息
            error_type: 错误类型
            details: 额外的错误详情

        Returns:
            dict: 标准化的错误响应
        """
        result = {
            "success": False,
            "error": message,
            "error_type": error_type,
        }

        if details:
            result["details"] = details

        return result

    @staticmethod
    def batch(result: BatchResult) -> dict[str, Any]:
        """构建批处理结果响应"""
        return {
            "success": result.success,
            "summary": result.get_summary(),
            "total_files": result.get_total_count(),
            "successful_files": result.get_success_count(),
            "failed_files": result.get_failure_count(),
            "cancelled_files": len(result.cancelled),
            "total_original_size": result.get_total_original_size(),
            "total_size_saved": result.get_total_size_saved(),
            "results": [
                {
                    **job.to_dict(),
                    "error_type": (
                        ErrorHandler.error_type(job.state.error)
                        if job.state.error
                        else None
                    ),
                }
                for job in result.jobs
            ],
        }


configure_logging(get_config().logging)
logger = logging.getLogger(__name__)

# 创建MCP应用
mcp: FastMCP[Any] = FastMCP("Tinify 图像优化服务")

# 全局优化器实例
optimizer = TinyOptimizer()


@mcp.tool()
def optimize_images(
    paths: list[str] | str,
    override: bool | None = None,
    destination_dir: str | None = None,
    recursive: bool = True,
) -> MCPOptimizeResponse:
    """使用 Tinify 优化图像

    所有图片同时上传压缩，完成后覆盖原文件（失败时自动回滚）或保存到指定目录
    （重名时自动追加 " (1)"、" (2)" 等编号）。

    Args:
        paths: 文件或目录路径，可以是单个字符串或列表
        override: 是否覆盖原文件，None 使用默认设置
        destination_dir: 保存目录，不覆盖原文件时必填
        recursive: 目录处理时是否递归子目录

    Returns:
        dict: 每个文件的最终状态、大小和路径
    """
    if isinstance(paths, str):
        paths = [paths]

    try:
        result = optimizer.optimize(
            paths,
            recursive=recursive,
            override=override,
            destination_dir=destination_dir,
        )
    except ValueError as e:
        logger.error(f"参数错误: {e}")
        return MCPResponseBuilder.error(str(e), "validation")

    if not result.jobs:
        return MCPResponseBuilder.error("未找到可处理的图像文件", "file")
    return MCPResponseBuilder.batch(result)


@mcp.tool()
def get_compression_count() -> MCPQuotaResponse:
    """获取本周期已使用的压缩次数（由服务端响应头报告）"""
    return {
        "success": True,
        "compression_count": optimizer.compression_count,
        "processing": optimizer.is_processing,
    }


def main() -> None:
    """启动 MCP 服务器"""
    logger.info("启动 Tinify 图像优化 MCP 服务器")
    mcp.run()


if __name__ == "__main__":
    main()
