"""
构建步骤基类模块

定义工作流步骤的抽象接口。
"""

from abc import ABC, abstractmethod

from upgen.build.build_context import WorkflowContext, WorkflowState


class BuildStep(ABC):
    """工作流步骤抽象基类

    state 为执行该步骤时工作流所处的状态。
    """

    state: WorkflowState = WorkflowState.STAGING

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description

    @abstractmethod
    def execute(self, context: WorkflowContext) -> None:
        """执行步骤"""
        pass

    @abstractmethod
    def get_progress_range(self) -> tuple[int, int]:
        """获取此步骤的进度范围 (start_percent, end_percent)"""
        pass
