"""
暂存目录准备步骤模块

为本次运行创建独占的工作目录。
"""

from ...utils.logging import LogStage, debug
from ...utils.paths import get_temp_dir
from upgen.build.build_context import WorkflowContext, WorkflowState
from .build_step import BuildStep


class StagingStep(BuildStep):
    """创建本次运行独占的工作目录，暂存目录 files/ 由收集器创建"""

    state = WorkflowState.STAGING

    def __init__(self):
        super().__init__("staging", "准备暂存目录")

    def get_progress_range(self) -> tuple[int, int]:
        return (0, 5)

    def execute(self, context: WorkflowContext) -> None:
        prefix = f".upgen_{context.package_type.value}_"
        context.work_dir = get_temp_dir(prefix=prefix, parent=context.output_path.parent)
        debug(f"工作目录: {context.work_dir}", stage=LogStage.WORKFLOW)
