"""
文件收集步骤模块

负责把要打包的文件复制到暂存目录。
"""

from typing import List

from ...utils.logging import LogStage, info, warning
from ...utils.paths import to_posix
from upgen.build.build_context import WorkflowContext, WorkflowState
from upgen.build.collector import CopyOutcome, CopyResult, FileCollector, TreeCollector
from .build_step import BuildStep


def _run_exclusions(context: WorkflowContext, exclusions: List[str]) -> List[str]:
    """在配置的排除列表上追加本次运行的工作目录和输出文件"""
    result = list(exclusions)
    own_paths = [
        context.work_dir,
        context.output_path,
        context.output_path.with_name(context.output_path.name + ".part"),
    ]

    for path in own_paths:
        if path is None:
            continue
        try:
            rel = to_posix(path.relative_to(context.project_root))
        except ValueError:
            continue
        if rel and rel != "." and rel not in result:
            result.append(rel)
    return result


def _log_result(result: CopyResult) -> None:
    stats = result.get_statistics()
    info(f"  复制条目: {stats['copied']}/{stats['total']}", stage=LogStage.COLLECT)
    info(f"  写入文件: {stats['files_written']}", stage=LogStage.COLLECT)
    if stats['failed']:
        warning(
            f"{stats['failed']} 个条目复制失败: {', '.join(result.paths_with(CopyOutcome.FAILED)[:10])}",
            stage=LogStage.COLLECT,
        )


class FileCollectionStep(BuildStep):
    """按变更列表复制文件"""

    state = WorkflowState.COLLECTING

    def __init__(self, collector: FileCollector, exclusions: List[str]):
        super().__init__("collect", "复制变更文件")
        self.collector = collector
        self.exclusions = exclusions

    def get_progress_range(self) -> tuple[int, int]:
        return (25, 50)

    def execute(self, context: WorkflowContext) -> None:
        paths = context.changed_files or []
        context.report("复制文件", self.get_progress_range()[0], f"{len(paths)} 个变更条目")

        result = self.collector.collect(
            paths, context.project_root, context.staging_dir, _run_exclusions(context, self.exclusions)
        )
        context.copy_result = result
        context.build_stats['copied_files'] = result.copied
        _log_result(result)

        if result.is_empty:
            # 只有版本号变化的发布也是合法的
            info("没有需要打包的源文件，将生成仅含版本信息的更新包", stage=LogStage.COLLECT)


class TreeCollectionStep(BuildStep):
    """复制整个项目目录"""

    state = WorkflowState.COLLECTING

    def __init__(self, collector: TreeCollector, exclusions: List[str]):
        super().__init__("collect_all", "复制项目目录")
        self.collector = collector
        self.exclusions = exclusions

    def get_progress_range(self) -> tuple[int, int]:
        return (5, 50)

    def execute(self, context: WorkflowContext) -> None:
        context.report("复制文件", self.get_progress_range()[0], str(context.project_root))

        result = self.collector.collect_all(
            context.project_root, context.staging_dir, _run_exclusions(context, self.exclusions)
        )
        context.copy_result = result
        context.build_stats['copied_files'] = result.copied
        _log_result(result)
