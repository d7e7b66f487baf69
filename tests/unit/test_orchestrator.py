"""
包生成编排器单元测试

使用 FakeGitRunner 替代真实 git，覆盖更新包、全新安装包和组合工作流。
"""

import io
import os
import zipfile
from pathlib import Path

import pytest

from upgen.build.archiver import SOURCE_ENTRY_NAME, list_entries, read_entry
from upgen.build.build_context import InvalidArgumentError, UpgenError, VersionControlError
from upgen.build.metadata import VersionDescriptor, parse_version_info
from upgen.build.orchestrator import PackageOrchestrator, WorkflowResult, parse_date
from upgen.config.schema import MetadataFormat, PackageType, UpgenConfig


def _inner_entries(outer: Path):
    with zipfile.ZipFile(io.BytesIO(read_entry(outer, SOURCE_ENTRY_NAME))) as inner:
        return sorted(info.filename for info in inner.infolist() if not info.is_dir())


def _leftover_work_dirs(output_dir: Path):
    return [p for p in output_dir.iterdir() if p.name.startswith(".upgen_")]


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "dist"


class TestParseDate:
    """日期解析测试"""

    def test_accepts_date_and_datetime(self):
        """测试接受 YYYY-MM-DD 与 ISO 8601"""
        assert parse_date("2024-01-31", "end_date").isoformat() == "2024-01-31"
        assert parse_date("2024-01-31T10:20:00", "end_date").isoformat() == "2024-01-31"

    @pytest.mark.parametrize("value", [None, "", "   ", "31/01/2024", "yesterday"])
    def test_rejects_invalid(self, value):
        """测试缺失或格式错误"""
        with pytest.raises(InvalidArgumentError):
            parse_date(value, "start_date")


class TestPackagePaths:
    """输出路径测试"""

    def test_names(self, project_root, output_dir, fake_runner):
        """测试包文件名"""
        orchestrator = PackageOrchestrator(UpgenConfig(), project_root, output_dir, runner=fake_runner)

        assert orchestrator.update_package_path("1.0.0", "1.1.0").name == "update_1.0.0_to_1.1.0.zip"
        assert orchestrator.new_package_path("2.0.0").name == "new_installation_2.0.0.zip"

    def test_unsafe_characters_are_replaced(self, project_root, output_dir, fake_runner):
        """测试版本号中的不安全字符"""
        orchestrator = PackageOrchestrator(UpgenConfig(), project_root, output_dir, runner=fake_runner)
        path = orchestrator.new_package_path("2024/05 hotfix")

        assert path.name == "new_installation_2024_05_hotfix.zip"
        assert path.parent == output_dir.resolve()

    def test_default_output_directory(self, project_root, fake_runner):
        """测试默认输出目录位于项目内"""
        orchestrator = PackageOrchestrator(UpgenConfig(), project_root, runner=fake_runner)

        assert orchestrator.output_dir == (project_root / "storage" / "app" / "update_files").resolve()

    def test_output_directory_is_excluded(self, project_root, fake_runner):
        """测试项目内的输出目录总是被排除"""
        config = UpgenConfig(exclude_new=[])
        orchestrator = PackageOrchestrator(config, project_root, runner=fake_runner)

        assert "storage/app/update_files" in orchestrator.exclusions_for(PackageType.NEW)
        assert config.exclude_new == []


class TestBuildUpdate:
    """更新包测试"""

    def test_update_package_structure(self, project_root, output_dir, make_runner):
        """测试外层两个条目，内层只含未排除的变更文件"""
        runner = make_runner(log_output="M\tapp/Foo.php\nM\tstorage/cache/x\nD\tapp/Gone.php\n")
        orchestrator = PackageOrchestrator(UpgenConfig(git_timeout=42), project_root, output_dir, runner=runner)

        artifact = orchestrator.build_update("2024-01-01", "2024-02-01", "1.0.0", "1.1.0")

        assert artifact == output_dir.resolve() / "update_1.0.0_to_1.1.0.zip"
        assert sorted(list_entries(artifact)) == [SOURCE_ENTRY_NAME, "version_info.php"]
        assert _inner_entries(artifact) == ["app/Foo.php"]
        assert runner.calls[-1]["timeout"] == 42
        assert runner.calls[-1]["cwd"] == project_root.resolve()

    def test_empty_change_set(self, project_root, output_dir, fake_runner):
        """测试无变更时仍生成只含版本信息的更新包"""
        orchestrator = PackageOrchestrator(UpgenConfig(), project_root, output_dir, runner=fake_runner)

        artifact = orchestrator.build_update("2024-01-01", "2024-01-02", "1.0.0", "1.1.0")

        assert sorted(list_entries(artifact)) == [SOURCE_ENTRY_NAME, "version_info.php"]
        assert _inner_entries(artifact) == []
        metadata = parse_version_info(read_entry(artifact, "version_info.php").decode("utf-8"))
        assert metadata == VersionDescriptor("1.0.0", "1.1.0")

    def test_json_metadata(self, project_root, output_dir, fake_runner):
        """测试 JSON 版本信息格式"""
        config = UpgenConfig(metadata_format=MetadataFormat.JSON)
        orchestrator = PackageOrchestrator(config, project_root, output_dir, runner=fake_runner)

        artifact = orchestrator.build_update("2024-01-01", "2024-01-02", "1.0.0", "1.1.0")

        assert sorted(list_entries(artifact)) == [SOURCE_ENTRY_NAME, "version_info.json"]

    def test_work_dir_cleaned_up(self, project_root, output_dir, make_runner):
        """测试成功后不留下工作目录"""
        runner = make_runner(log_output="M\tapp/Foo.php\n")
        orchestrator = PackageOrchestrator(UpgenConfig(), project_root, output_dir, runner=runner)
        orchestrator.build_update("2024-01-01", "2024-02-01", "1.0.0", "1.1.0")

        assert _leftover_work_dirs(output_dir) == []

    def test_git_failure(self, project_root, output_dir, make_runner):
        """测试 git 失败时不生成包并清理工作目录"""
        orchestrator = PackageOrchestrator(
            UpgenConfig(), project_root, output_dir, runner=make_runner(is_repo=False)
        )

        with pytest.raises(VersionControlError):
            orchestrator.build_update("2024-01-01", "2024-02-01", "1.0.0", "1.1.0")

        assert not (output_dir / "update_1.0.0_to_1.1.0.zip").exists()
        assert _leftover_work_dirs(output_dir) == []

    def test_start_after_end(self, project_root, output_dir, fake_runner):
        """测试起始日期晚于截止日期"""
        orchestrator = PackageOrchestrator(UpgenConfig(), project_root, output_dir, runner=fake_runner)

        with pytest.raises(InvalidArgumentError):
            orchestrator.build_update("2024-03-01", "2024-02-01", "1.0.0", "1.1.0")
        assert fake_runner.calls == []

    @pytest.mark.parametrize("current,update", [(None, "1.1.0"), ("1.0.0", None), ("1.0.0", "  ")])
    def test_missing_versions(self, project_root, output_dir, fake_runner, current, update):
        """测试缺少版本号"""
        orchestrator = PackageOrchestrator(UpgenConfig(), project_root, output_dir, runner=fake_runner)

        with pytest.raises(InvalidArgumentError):
            orchestrator.build_update("2024-01-01", "2024-02-01", current, update)


class TestBuildNew:
    """全新安装包测试"""

    def test_new_package_respects_exclusions(self, tmp_path, output_dir, fake_runner):
        """测试 vendor 被排除，只包含 a.txt"""
        root = tmp_path / "site"
        (root / "vendor").mkdir(parents=True)
        (root / "vendor" / "lib.php").write_text("lib")
        (root / "a.txt").write_text("a")

        orchestrator = PackageOrchestrator(UpgenConfig(exclude_new=["vendor"]), root, output_dir, runner=fake_runner)
        artifact = orchestrator.build_new("2.0.0")

        assert artifact.name == "new_installation_2.0.0.zip"
        assert list_entries(artifact) == ["a.txt"]
        assert fake_runner.calls == []

    def test_output_inside_project_not_packaged(self, project_root, fake_runner):
        """测试位于项目内的输出目录不会被打包进自身"""
        orchestrator = PackageOrchestrator(UpgenConfig(exclude_new=["vendor"]), project_root, runner=fake_runner)
        artifact = orchestrator.build_new("2.0.0")

        entries = list_entries(artifact)
        assert not any(name.startswith("storage/app/update_files") for name in entries)
        assert "app/Foo.php" in entries
        assert _leftover_work_dirs(artifact.parent) == []

    def test_missing_project_root(self, tmp_path, output_dir, fake_runner):
        """测试项目目录不存在"""
        orchestrator = PackageOrchestrator(UpgenConfig(), tmp_path / "missing", output_dir, runner=fake_runner)

        result = orchestrator.run_workflow("new", update_version="2.0.0")

        assert not result.success
        assert result.artifacts == []
        assert _leftover_work_dirs(output_dir) == []


class TestRunWorkflow:
    """run_workflow 测试"""

    def test_unknown_type(self, project_root, output_dir, fake_runner):
        """测试未知包类型"""
        orchestrator = PackageOrchestrator(UpgenConfig(), project_root, output_dir, runner=fake_runner)

        with pytest.raises(InvalidArgumentError):
            orchestrator.run_workflow("patch", update_version="1.0.0")

    def test_both_success(self, project_root, output_dir, make_runner):
        """测试两个子工作流都成功"""
        runner = make_runner(log_output="M\tapp/Foo.php\n")
        orchestrator = PackageOrchestrator(UpgenConfig(), project_root, output_dir, runner=runner)

        result = orchestrator.run_workflow(
            PackageType.BOTH,
            start_date="2024-01-01",
            end_date="2024-02-01",
            current_version="1.0.0",
            update_version="1.1.0",
        )

        assert result.success
        assert sorted(p.name for p in result.artifacts) == [
            "new_installation_1.1.0.zip",
            "update_1.0.0_to_1.1.0.zip",
        ]

    def test_both_partial(self, project_root, output_dir, make_runner):
        """测试更新包失败时全新安装包仍然生成"""
        orchestrator = PackageOrchestrator(
            UpgenConfig(), project_root, output_dir, runner=make_runner(is_repo=False)
        )

        result = orchestrator.run_workflow(
            "both",
            start_date="2024-01-01",
            end_date="2024-02-01",
            current_version="1.0.0",
            update_version="1.1.0",
        )

        assert result.partial
        assert not result.success
        assert [p.name for p in result.artifacts] == ["new_installation_1.1.0.zip"]
        assert isinstance(result.errors["update"], VersionControlError)
        with pytest.raises(VersionControlError):
            result.raise_for_failure()

    def test_invalid_arguments_are_collected(self, project_root, output_dir, fake_runner):
        """测试参数错误记录在结果中"""
        orchestrator = PackageOrchestrator(UpgenConfig(), project_root, output_dir, runner=fake_runner)

        result = orchestrator.run_workflow("update", start_date="2024-01-01", end_date="bad", update_version="1.1.0")

        assert isinstance(result.errors["update"], InvalidArgumentError)
        assert result.artifacts == []


class TestWorkflowResult:
    """WorkflowResult 测试"""

    def test_success_without_errors(self):
        result = WorkflowResult(PackageType.NEW, artifacts=[Path("a.zip")])
        assert result.success
        assert not result.partial
        result.raise_for_failure()


class TestOwnOutputsExcluded:
    """输出目录即项目根目录时的测试"""

    def test_output_dir_is_project_root(self, project_root, fake_runner):
        """测试工作目录和已生成的包不会被打包"""
        (project_root / "new_installation_1.0.0.zip").write_bytes(b"old package")
        config = UpgenConfig(exclude_new=["vendor", "storage", ".env"])
        orchestrator = PackageOrchestrator(config, project_root, output_dir=project_root, runner=fake_runner)

        first = orchestrator.build_new("2.0.0")
        second = orchestrator.build_new("2.0.0")

        expected = ["app/Bar.php", "app/Foo.php", "config/app.php"]
        assert list_entries(first) == expected
        assert list_entries(second) == expected
        assert _leftover_work_dirs(project_root) == []

    def test_update_ignores_work_dir_entries(self, project_root, make_runner):
        """测试变更列表中的目录条目不会把工作目录带入更新包"""
        runner = make_runner(log_output="M\tapp/Foo.php\nA\t.\n")
        config = UpgenConfig(exclude_update=["vendor", "storage", ".env"])
        orchestrator = PackageOrchestrator(config, project_root, output_dir=project_root, runner=runner)

        artifact = orchestrator.build_update("2024-01-01", "2024-02-01", "1.0.0", "1.1.0")

        assert not any(name.startswith(".upgen_") for name in _inner_entries(artifact))


class TestFailureIsolation:
    """组合工作流的失败隔离测试"""

    def test_timestamps_before_1980(self, tmp_path, output_dir, make_runner):
        """测试非可复现模式下旧修改时间的文件可以正常打包"""
        root = tmp_path / "legacy"
        root.mkdir()
        (root / "a.txt").write_text("a")
        os.utime(root / "a.txt", (0, 0))

        config = UpgenConfig(reproducible=False, exclude_update=[], exclude_new=[])
        orchestrator = PackageOrchestrator(config, root, output_dir, runner=make_runner(log_output="M\ta.txt\n"))

        result = orchestrator.run_workflow(
            "both",
            start_date="2024-01-01",
            end_date="2024-02-01",
            current_version="1.0.0",
            update_version="1.1.0",
        )

        assert result.success
        assert len(result.artifacts) == 2

    def test_unexpected_error_is_recorded(self, project_root, output_dir, fake_runner, monkeypatch):
        """测试非 UpgenError 异常记录在结果中且不影响另一个子工作流"""
        orchestrator = PackageOrchestrator(UpgenConfig(), project_root, output_dir, runner=fake_runner)

        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(orchestrator, "build_update", broken)

        result = orchestrator.run_workflow(
            "both",
            start_date="2024-01-01",
            end_date="2024-02-01",
            current_version="1.0.0",
            update_version="1.1.0",
        )

        assert result.partial
        assert [p.name for p in result.artifacts] == ["new_installation_1.1.0.zip"]
        err = result.errors["update"]
        assert isinstance(err, UpgenError)
        assert isinstance(err.__cause__, RuntimeError)


@pytest.mark.git
class TestBuildUpdateWithGit:
    """使用真实 git 的更新包测试"""

    def test_project_in_repository_subdirectory(self, git_repo, output_dir):
        """测试项目位于仓库子目录时变更文件仍被打包"""
        orchestrator = PackageOrchestrator(UpgenConfig(exclude_update=[]), git_repo / "app", output_dir)

        artifact = orchestrator.build_update("2024-02-01", "2024-02-28", "1.0.0", "1.1.0")

        assert _inner_entries(artifact) == ["Foo.php"]
