"""
工作流管道模块

按顺序执行工作流步骤，维护状态机，结束时清理工作目录。
"""

import time
from typing import List, Optional

from ..utils.filesystem import FileSystem, LocalFileSystem
from ..utils.logging import LogStage, debug, error, info, success, warning
from ..utils.paths import format_size
from .build_context import UpgenError, WorkflowContext, WorkflowState
from .steps.build_step import BuildStep


class WorkflowPipeline:
    """工作流管道

    状态流转: IDLE -> STAGING -> COLLECTING -> ARCHIVING -> FINALIZING -> DONE，
    任一步骤出错则进入 FAILED。
    """

    def __init__(self, steps: List[BuildStep], fs: Optional[FileSystem] = None):
        self._steps = list(steps)
        self.fs = fs or LocalFileSystem()

    def get_steps(self) -> List[BuildStep]:
        """获取所有步骤"""
        return self._steps.copy()

    def execute(self, context: WorkflowContext) -> WorkflowContext:
        """执行工作流

        Returns:
            WorkflowContext: 包含产物路径和统计信息的上下文

        Raises:
            UpgenError: 任一步骤失败
        """
        context.build_stats['start_time'] = time.time()
        info(f"开始生成 {context.package_type.value} 包: {context.output_path.name}", stage=LogStage.WORKFLOW)

        current = WorkflowState.IDLE
        try:
            for step in self._steps:
                current = step.state
                context.state = current
                debug(f"执行步骤: {step.description} [{step.state.value}]", stage=LogStage.WORKFLOW)
                step.execute(context)

            context.state = WorkflowState.DONE
            context.report("完成", 100, context.output_path.name)

        except UpgenError as e:
            context.state = WorkflowState.FAILED
            error(f"生成失败: {e.describe()}", stage=LogStage.WORKFLOW)
            raise
        except OSError as e:
            context.state = WorkflowState.FAILED
            error(f"生成失败: {e}", stage=LogStage.WORKFLOW)
            raise UpgenError(f"文件系统错误: {e}", operation=current.value, path=context.output_path) from e
        except Exception:
            context.state = WorkflowState.FAILED
            raise
        finally:
            context.build_stats['end_time'] = time.time()
            self._cleanup(context)

        build_time = context.build_stats['end_time'] - context.build_stats['start_time']
        success(f"包生成成功: {context.artifact}", stage=LogStage.WORKFLOW)
        info(f"  用时: {build_time:.1f}秒")
        info(f"  大小: {format_size(context.build_stats.get('archive_size', 0))}")
        return context

    def _cleanup(self, context: WorkflowContext) -> None:
        """删除工作目录（暂存目录和中间产物）

        清理失败只记录警告，不改变工作流结果。
        """
        if context.work_dir is None:
            return

        try:
            self.fs.remove(context.work_dir)
            debug(f"已清理工作目录: {context.work_dir}", stage=LogStage.CLEANUP)
        except OSError as e:
            warning(f"清理工作目录失败: {context.work_dir}: {e}", stage=LogStage.CLEANUP)
