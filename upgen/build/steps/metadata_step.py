"""
版本信息步骤模块
"""

from ...utils.logging import LogStage, warning
from upgen.build.build_context import UpgenError, WorkflowContext, WorkflowState
from upgen.build.metadata import MetadataWriter
from .build_step import BuildStep


class MetadataStep(BuildStep):
    """写入版本信息文件，失败时重试一次"""

    state = WorkflowState.FINALIZING

    def __init__(self, writer: MetadataWriter, attempts: int = 2):
        super().__init__("metadata", "写入版本信息")
        self.writer = writer
        self.attempts = max(1, attempts)

    def get_progress_range(self) -> tuple[int, int]:
        return (80, 90)

    def execute(self, context: WorkflowContext) -> None:
        path = context.work_dir / self.writer.entry_name

        for attempt in range(1, self.attempts + 1):
            if self.writer.write(context.current_version, context.update_version, path):
                context.metadata_file = path
                return
            if attempt < self.attempts:
                warning(f"版本信息写入失败，重试 ({attempt}/{self.attempts})", stage=LogStage.METADATA)

        raise UpgenError("版本信息文件写入失败", operation="write_metadata", path=path)
