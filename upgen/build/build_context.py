"""
构建上下文模块

定义工作流执行过程中的共享数据结构、状态和异常类。
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from ..config.schema import PackageType, UpgenConfig

if TYPE_CHECKING:
    from .collector import CopyResult

# 进度回调类型: (阶段, 当前, 总数, 消息)
ProgressCallback = Callable[[str, int, int, str], None]


class UpgenError(Exception):
    """包生成错误基类

    Attributes:
        operation: 出错的操作名称
        path: 相关路径（如有）
    """

    def __init__(self, message: str, operation: Optional[str] = None, path: Optional[Path] = None):
        super().__init__(message)
        self.operation = operation
        self.path = path

    def describe(self) -> str:
        """带上下文的错误描述"""
        parts = [str(self)]
        if self.operation:
            parts.append(f"操作: {self.operation}")
        if self.path is not None:
            parts.append(f"路径: {self.path}")
        if self.__cause__ is not None:
            parts.append(f"原因: {self.__cause__}")
        return " | ".join(parts)


class InvalidArgumentError(UpgenError):
    """参数缺失或格式错误（版本号、日期顺序等）"""
    pass


class VersionControlError(UpgenError):
    """版本控制工具调用失败"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = "detect_changes",
        path: Optional[Path] = None,
        argv: Optional[List[str]] = None,
        exit_code: Optional[int] = None,
        output: str = "",
        timed_out: bool = False,
    ):
        super().__init__(message, operation, path)
        self.argv = argv or []
        self.exit_code = exit_code
        self.output = output
        self.timed_out = timed_out

    def describe(self) -> str:
        text = super().describe()
        if self.argv:
            text += f" | 命令: {' '.join(self.argv)}"
        if self.output:
            text += f" | 输出: {self.output.strip()}"
        return text


class MissingSourceError(UpgenError):
    """必需的源路径不存在"""
    pass


class ArchiveCreationError(UpgenError):
    """归档无法打开或写入"""
    pass


class WorkflowState(str, Enum):
    """工作流状态"""
    IDLE = "idle"
    STAGING = "staging"
    COLLECTING = "collecting"
    ARCHIVING = "archiving"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class WorkflowContext:
    """工作流上下文，包含单次工作流运行中的共享数据

    work_dir 由本次运行独占，结束时整体删除。
    """
    config: UpgenConfig
    package_type: PackageType
    project_root: Path
    output_path: Path
    update_version: str
    current_version: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    progress_callback: Optional[ProgressCallback] = None

    state: WorkflowState = WorkflowState.IDLE

    # 运行过程中生成的数据
    work_dir: Optional[Path] = None
    changed_files: Optional[List[str]] = None
    copy_result: Optional['CopyResult'] = None
    inner_archive: Optional[Path] = None
    metadata_file: Optional[Path] = None
    artifact: Optional[Path] = None

    build_stats: Dict[str, Any] = field(default_factory=lambda: {
        'start_time': 0.0,
        'end_time': 0.0,
        'changed_files': 0,
        'copied_files': 0,
        'archive_size': 0,
    })

    @property
    def staging_dir(self) -> Path:
        """暂存目录（源文件镜像）"""
        if self.work_dir is None:
            raise UpgenError("工作目录尚未创建", operation="staging")
        return self.work_dir / "files"

    def report(self, stage: str, current: int, message: str = "") -> None:
        if self.progress_callback:
            self.progress_callback(stage, current, 100, message)
