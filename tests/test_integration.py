"""集成测试。

测试优化器入口和 MCP 服务器的端到端功能。
"""

from pathlib import Path

import pytest

from py_tinify_mcp import mcp_server
from py_tinify_mcp.core.quota import QuotaTracker
from py_tinify_mcp.models import OptimizeSettings, PlacementPolicy, StateKind
from py_tinify_mcp.optimizer import TinyOptimizer
from tests.conftest import FakeResponse, FakeTinify


@pytest.fixture
def optimizer(fake_tinify: FakeTinify, quota: QuotaTracker, temp_dir: Path):
    settings = OptimizeSettings(
        token="test-token",
        policy=PlacementPolicy.DIRECTORY,
        destination_dir=temp_dir / "optimized",
    )
    return TinyOptimizer(settings=settings, session=fake_tinify, quota=quota)


class TestTinyOptimizer:
    """优化器核心功能测试"""

    def test_optimize_directory(
        self, optimizer: TinyOptimizer, make_image, temp_dir: Path
    ):
        """目录递归展开，非图像文件被忽略"""
        make_image("album/a.png")
        make_image("album/nested/b.jpg")
        (temp_dir / "album" / "notes.txt").write_text("skip me")

        result = optimizer.optimize([temp_dir / "album"])

        assert result.success
        assert result.get_total_count() == 2
        # 并发响应的先后不确定，后写者覆盖
        assert optimizer.compression_count in (1, 2)
        names = sorted(job.final_path.name for job in result.jobs)
        assert names == ["a.png", "b.jpg"]

    def test_non_recursive(self, optimizer: TinyOptimizer, make_image, temp_dir: Path):
        make_image("album/a.png")
        make_image("album/nested/b.jpg")

        result = optimizer.optimize([temp_dir / "album"], recursive=False)

        assert [job.name for job in result.jobs] == ["a.png"]

    def test_call_overrides(self, optimizer: TinyOptimizer, sample_images):
        """单次调用可以切换为覆盖原文件"""
        result = optimizer.optimize([sample_images["png"]], override=True)

        job = result.jobs[0]
        assert job.final_path == job.source_path
        assert sample_images["png"].read_bytes().startswith(b"TINY")

    def test_resolve_settings_keeps_defaults(self, optimizer: TinyOptimizer):
        settings = optimizer.resolve_settings(token=" other ")

        assert settings.token == "other"
        assert settings.policy == PlacementPolicy.DIRECTORY
        assert settings.destination_dir == optimizer.settings.destination_dir

    def test_retry_reprocesses_failed_jobs(
        self, optimizer: TinyOptimizer, fake_tinify: FakeTinify, sample_images
    ):
        """重试只提交失败的任务"""
        failing = sample_images["jpeg"].read_bytes()
        fake_tinify.put_handler = lambda body: (
            FakeResponse(500, body=b"") if body == failing else None
        )
        result = optimizer.optimize(sample_images.values())
        assert result.get_failure_count() == 1

        fake_tinify.put_handler = None
        retried = optimizer.retry(result)

        assert retried.get_total_count() == 1
        assert retried.jobs[0].name == "portrait.jpg"
        assert retried.jobs[0].state.kind == StateKind.FINISHED
        assert all(job.state.kind == StateKind.FINISHED for job in result.jobs)


class TestMCPServer:
    """MCP服务器功能测试"""

    @pytest.fixture
    def server_optimizer(self, optimizer: TinyOptimizer, monkeypatch):
        monkeypatch.setattr(mcp_server, "optimizer", optimizer)
        return optimizer

    def test_tools_registered(self):
        assert mcp_server.optimize_images.name == "optimize_images"
        assert mcp_server.get_compression_count.name == "get_compression_count"

    def test_optimize_images_tool(self, server_optimizer, sample_images):
        response = mcp_server.optimize_images.fn(str(sample_images["png"]))

        assert response["success"]
        assert response["successful_files"] == 1
        entry = response["results"][0]
        assert entry["state"] == "finished"
        assert entry["error_type"] is None
        assert Path(entry["final_path"]).exists()

    def test_failed_job_reports_error_type(
        self, server_optimizer, fake_tinify: FakeTinify, sample_images
    ):
        fake_tinify.put_handler = lambda body: FakeResponse(
            401, body=b'{"error": "Unauthorized", "message": "bad"}'
        )

        response = mcp_server.optimize_images.fn([str(sample_images["png"])])

        assert not response["success"]
        assert response["failed_files"] == 1
        assert response["results"][0]["error_type"] == "api"

    def test_no_images_found(self, server_optimizer, temp_dir: Path):
        response = mcp_server.optimize_images.fn(str(temp_dir))

        assert not response["success"]
        assert response["error_type"] == "file"

    def test_compression_count_tool(self, server_optimizer, sample_images):
        mcp_server.optimize_images.fn(str(sample_images["png"]))

        response = mcp_server.get_compression_count.fn()

        assert response["compression_count"] == 1
        assert response["processing"] is False
