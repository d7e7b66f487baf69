"""
包生成编排器

组合各个步骤，提供更新包、全新安装包以及两者同时生成三种工作流。
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..config.schema import PackageType, UpgenConfig
from ..utils.filesystem import FileSystem, LocalFileSystem
from ..utils.logging import LogStage, error, info, warning
from ..utils.paths import safe_label, to_posix
from .archiver import ArchiveBuilder
from .build_context import (
    InvalidArgumentError,
    ProgressCallback,
    UpgenError,
    WorkflowContext,
)
from .change_detector import ChangeDetector
from .collector import FileCollector, TreeCollector
from .metadata import MetadataWriter
from .pipeline import WorkflowPipeline
from .process import ProcessRunner
from .steps import (
    ChangeDetectionStep,
    ContainerArchiveStep,
    FileCollectionStep,
    FlatArchiveStep,
    MetadataStep,
    StagingStep,
    TreeCollectionStep,
)


@dataclass
class WorkflowResult:
    """工作流结果

    combined 工作流中一个子工作流失败不会丢弃另一个已生成的包。
    """
    package_type: PackageType
    artifacts: List[Path] = field(default_factory=list)
    errors: Dict[str, UpgenError] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def partial(self) -> bool:
        return bool(self.artifacts) and bool(self.errors)

    def raise_for_failure(self) -> None:
        """存在失败时抛出第一个错误"""
        for err in self.errors.values():
            raise err


def parse_date(value: Optional[str], field_name: str) -> date:
    """解析 YYYY-MM-DD 或 ISO 8601 日期时间

    Raises:
        InvalidArgumentError: 缺失或格式错误
    """
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"缺少参数: {field_name}", operation="validate")

    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError as e:
        raise InvalidArgumentError(
            f"日期格式错误 {field_name}={text!r}，应为 YYYY-MM-DD",
            operation="validate",
        ) from e


def _require_version(value: Optional[str], field_name: str) -> str:
    if value is None or not value.strip():
        raise InvalidArgumentError(f"缺少参数: {field_name}", operation="validate")
    return value.strip()


class PackageOrchestrator:
    """包生成编排器

    每次调用都创建新的工作目录；同一输出路径的并发调用需要由调用方串行化。
    """

    def __init__(
        self,
        config: UpgenConfig,
        project_root: Union[str, Path],
        output_dir: Optional[Union[str, Path]] = None,
        runner: Optional[ProcessRunner] = None,
        fs: Optional[FileSystem] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.config = config
        self.project_root = Path(project_root).resolve()
        self.output_dir = (
            Path(output_dir).resolve() if output_dir is not None
            else config.resolve_output_directory(self.project_root)
        )
        self.fs = fs or LocalFileSystem()
        self.progress_callback = progress_callback

        self.detector = ChangeDetector(runner=runner, git_executable=config.git_executable)
        self.file_collector = FileCollector(fs=self.fs, match_mode=config.exclude_match)
        self.tree_collector = TreeCollector(fs=self.fs, match_mode=config.exclude_match)
        self.archiver = ArchiveBuilder(
            compression_level=config.compression_level,
            reproducible=config.reproducible,
            fs=self.fs,
        )
        self.metadata_writer = MetadataWriter(config.metadata_format)

    # 输出路径

    def update_package_path(self, current_version: str, update_version: str) -> Path:
        return self.output_dir / f"update_{safe_label(current_version)}_to_{safe_label(update_version)}.zip"

    def new_package_path(self, update_version: str) -> Path:
        return self.output_dir / f"new_installation_{safe_label(update_version)}.zip"

    def exclusions_for(self, package_type: PackageType) -> List[str]:
        """包类型对应的排除列表，位于项目内的输出目录总是被排除"""
        exclusions = self.config.exclusions_for(package_type)
        try:
            rel = to_posix(self.output_dir.relative_to(self.project_root))
        except ValueError:
            return exclusions
        if rel and rel != ".":
            if rel not in exclusions:
                exclusions.append(rel)
            return exclusions

        # 输出目录就是项目根目录：排除之前生成的包
        for pattern in ("update_*_to_*.zip", "new_installation_*.zip"):
            for existing in sorted(self.output_dir.glob(pattern)):
                if existing.name not in exclusions:
                    exclusions.append(existing.name)
        return exclusions

    # 工作流

    def build_update(
        self,
        start_date: Optional[str],
        end_date: Optional[str],
        current_version: Optional[str],
        update_version: Optional[str],
    ) -> Path:
        """生成更新包

        Returns:
            Path: 外层归档路径

        Raises:
            InvalidArgumentError: 参数缺失、日期格式错误或起始日期晚于截止日期
            VersionControlError / MissingSourceError / ArchiveCreationError
        """
        current = _require_version(current_version, "current_version")
        target = _require_version(update_version, "update_version")
        start = parse_date(start_date, "start_date")
        end = parse_date(end_date, "end_date")
        if start > end:
            raise InvalidArgumentError(
                f"起始日期 {start.isoformat()} 晚于截止日期 {end.isoformat()}",
                operation="validate",
            )

        exclusions = self.exclusions_for(PackageType.UPDATE)
        pipeline = WorkflowPipeline(
            [
                StagingStep(),
                ChangeDetectionStep(self.detector),
                FileCollectionStep(self.file_collector, exclusions),
                FlatArchiveStep(self.archiver, as_inner=True),
                MetadataStep(self.metadata_writer),
                ContainerArchiveStep(self.archiver, self.metadata_writer.entry_name),
            ],
            fs=self.fs,
        )
        context = WorkflowContext(
            config=self.config,
            package_type=PackageType.UPDATE,
            project_root=self.project_root,
            output_path=self.update_package_path(current, target),
            update_version=target,
            current_version=current,
            start_date=str(start_date).strip(),
            end_date=str(end_date).strip(),
            progress_callback=self.progress_callback,
        )
        return pipeline.execute(context).artifact

    def build_new(self, update_version: Optional[str]) -> Path:
        """生成全新安装包（单层归档，版本号只体现在文件名中）

        Raises:
            InvalidArgumentError: 缺少 update_version
            MissingSourceError: 项目目录不存在
        """
        target = _require_version(update_version, "update_version")

        pipeline = WorkflowPipeline(
            [
                StagingStep(),
                TreeCollectionStep(self.tree_collector, self.exclusions_for(PackageType.NEW)),
                FlatArchiveStep(self.archiver, as_inner=False),
            ],
            fs=self.fs,
        )
        context = WorkflowContext(
            config=self.config,
            package_type=PackageType.NEW,
            project_root=self.project_root,
            output_path=self.new_package_path(target),
            update_version=target,
            progress_callback=self.progress_callback,
        )
        return pipeline.execute(context).artifact

    def run_workflow(
        self,
        package_type: Union[PackageType, str],
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        current_version: Optional[str] = None,
        update_version: Optional[str] = None,
    ) -> WorkflowResult:
        """执行指定类型的工作流

        子工作流的错误收集在结果中，不会中断其他子工作流。

        Raises:
            InvalidArgumentError: 未知的包类型
        """
        try:
            package_type = PackageType(package_type)
        except ValueError as e:
            raise InvalidArgumentError(
                f"未知的包类型: {package_type}，可选值: update, new, both",
                operation="run_workflow",
            ) from e

        result = WorkflowResult(package_type=package_type)

        if package_type in (PackageType.UPDATE, PackageType.BOTH):
            self._run_isolated(
                result, PackageType.UPDATE,
                lambda: self.build_update(start_date, end_date, current_version, update_version),
            )

        if package_type in (PackageType.NEW, PackageType.BOTH):
            self._run_isolated(result, PackageType.NEW, lambda: self.build_new(update_version))

        if result.partial:
            warning(
                f"部分成功: 已生成 {len(result.artifacts)} 个包，失败: {', '.join(result.errors)}",
                stage=LogStage.WORKFLOW,
            )
        elif result.success:
            info(f"全部完成，共生成 {len(result.artifacts)} 个包", stage=LogStage.WORKFLOW)

        return result

    def _run_isolated(self, result: WorkflowResult, package_type: PackageType, build) -> None:
        try:
            result.artifacts.append(build())
        except UpgenError as e:
            error(f"{package_type.value} 包生成失败: {e}", stage=LogStage.WORKFLOW)
            result.errors[package_type.value] = e
        except Exception as e:
            error(f"{package_type.value} 包生成过程中发生意外错误: {e}", stage=LogStage.WORKFLOW)
            wrapped = UpgenError(f"意外错误: {e}", operation=f"build_{package_type.value}")
            wrapped.__cause__ = e
            result.errors[package_type.value] = wrapped
