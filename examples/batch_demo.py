"""Tinify 批量优化演示

需要设置环境变量 TINIFY_API_TOKEN：

    TINIFY_API_TOKEN=xxx python examples/batch_demo.py path/to/images
"""

import sys
from pathlib import Path

from py_tinify_mcp import ImageJob, ImageState, StateKind, TinyOptimizer


def get_output_dir(subdir: str = "") -> Path:
    """获取输出目录 - 使用项目的 tmp 目录"""
    project_root = Path(__file__).parent.parent
    output_dir = project_root / "tmp" / "examples"
    if subdir:
        output_dir = output_dir / subdir
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def print_state(job: ImageJob, state: ImageState) -> None:
    """状态回调：只打印阶段切换和终止状态"""
    match state.kind:
        case StateKind.WAITING:
            print(f"  ⏳ {job.name}")
        case StateKind.FINISHED:
            print(f"  ✅ {job.get_summary()}")
        case StateKind.ERROR:
            print(f"  ❌ {job.get_summary()}")


def demo_directory_mode(optimizer: TinyOptimizer, images: Path):
    """保存到目录演示（不修改原文件）"""
    print("\n=== 保存到目录 ===")
    output_dir = get_output_dir("tinify")
    print(f"📁 输出目录: {output_dir}")

    result = optimizer.optimize(
        [images], on_state=print_state, override=False, destination_dir=output_dir
    )
    print(f"📊 {result.get_summary()}")

    if result.get_failure_count():
        print("\n🔁 重试失败的文件")
        retried = optimizer.retry(result, on_state=print_state)
        print(f"📊 {retried.get_summary()}")


def main():
    """主函数"""
    print("🖼️  Tinify 批量优化演示")
    print("=" * 50)

    if len(sys.argv) < 2:
        print("用法: python examples/batch_demo.py <图片目录>")
        return

    images = Path(sys.argv[1])
    optimizer = TinyOptimizer()
    if not optimizer.settings.token:
        print("⚠️ 未设置 TINIFY_API_TOKEN")
        return

    demo_directory_mode(optimizer, images)
    print(f"\n🔢 本月已用压缩次数: {optimizer.compression_count}")


if __name__ == "__main__":
    main()
