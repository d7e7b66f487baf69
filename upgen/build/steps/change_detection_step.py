"""
变更检测步骤模块
"""

from ...utils.logging import LogStage, debug
from upgen.build.build_context import WorkflowContext, WorkflowState
from upgen.build.change_detector import ChangeDetector
from .build_step import BuildStep


class ChangeDetectionStep(BuildStep):
    """调用 git 获取变更文件列表"""

    state = WorkflowState.COLLECTING

    def __init__(self, detector: ChangeDetector):
        super().__init__("detect", "检测变更文件")
        self.detector = detector

    def get_progress_range(self) -> tuple[int, int]:
        return (5, 25)

    def execute(self, context: WorkflowContext) -> None:
        context.report("检测变更", self.get_progress_range()[0], f"{context.start_date} ~ {context.end_date}")

        paths = self.detector.detect_changes(
            context.project_root,
            context.start_date or "",
            context.end_date or "",
            timeout=context.config.git_timeout,
        )
        context.changed_files = paths
        context.build_stats['changed_files'] = len(paths)

        for idx, path in enumerate(paths[:20]):
            debug(f"变更[{idx}]: {path}", stage=LogStage.DETECT)
        if len(paths) > 20:
            debug(f"... 还有 {len(paths) - 20} 个文件未列出", stage=LogStage.DETECT)
