"""
归档步骤模块

FlatArchiveStep 把暂存目录打包；ContainerArchiveStep 把内层归档与版本信息文件组合成外层归档。
"""

from typing import Optional

from upgen.build.archiver import ArchiveBuilder, SOURCE_ENTRY_NAME
from upgen.build.build_context import UpgenError, WorkflowContext, WorkflowState
from .build_step import BuildStep


class FlatArchiveStep(BuildStep):
    """打包暂存目录

    as_inner 为 True 时产物是工作目录中的中间归档，否则直接写入最终输出路径。
    """

    state = WorkflowState.ARCHIVING

    def __init__(self, archiver: ArchiveBuilder, as_inner: bool):
        super().__init__("archive", "打包暂存目录")
        self.archiver = archiver
        self.as_inner = as_inner

    def get_progress_range(self) -> tuple[int, int]:
        return (50, 80) if self.as_inner else (50, 100)

    def execute(self, context: WorkflowContext) -> None:
        context.report("打包文件", self.get_progress_range()[0], "")

        if self.as_inner:
            target = context.work_dir / SOURCE_ENTRY_NAME
            context.inner_archive = self.archiver.build_flat(context.staging_dir, target)
        else:
            context.artifact = self.archiver.build_flat(context.staging_dir, context.output_path)
            context.build_stats['archive_size'] = context.artifact.stat().st_size


class ContainerArchiveStep(BuildStep):
    """构建外层归档"""

    state = WorkflowState.FINALIZING

    def __init__(self, archiver: ArchiveBuilder, metadata_entry_name: Optional[str] = None):
        super().__init__("container", "组合外层归档")
        self.archiver = archiver
        self.metadata_entry_name = metadata_entry_name

    def get_progress_range(self) -> tuple[int, int]:
        return (90, 100)

    def execute(self, context: WorkflowContext) -> None:
        if context.inner_archive is None or context.metadata_file is None:
            raise UpgenError("缺少内层归档或版本信息文件", operation="build_container", path=context.output_path)

        context.report("组合归档", self.get_progress_range()[0], context.output_path.name)
        context.artifact = self.archiver.build_container(
            context.inner_archive,
            context.metadata_file,
            context.output_path,
            metadata_entry_name=self.metadata_entry_name,
        )
        context.build_stats['archive_size'] = context.artifact.stat().st_size
