"""包生成服务模块

提供变更检测、文件收集、归档构建和工作流编排等核心功能。
"""

from .build_context import (
    UpgenError,
    InvalidArgumentError,
    VersionControlError,
    MissingSourceError,
    ArchiveCreationError,
    WorkflowContext,
    WorkflowState,
)
from .path_filter import PathFilter, should_exclude
from .process import ProcessRunner, ProcessResult, SubprocessRunner
from .change_detector import ChangeDetector, parse_name_status
from .collector import CopyOutcome, CopyResult, FileCollector, TreeCollector
from .archiver import ArchiveBuilder, SOURCE_ENTRY_NAME, list_entries, read_entry
from .metadata import MetadataWriter, VersionDescriptor, parse_version_info, read_version_info
from .pipeline import WorkflowPipeline
from .orchestrator import PackageOrchestrator, WorkflowResult

__all__ = [
    # 异常
    "UpgenError",
    "InvalidArgumentError",
    "VersionControlError",
    "MissingSourceError",
    "ArchiveCreationError",

    # 上下文
    "WorkflowContext",
    "WorkflowState",

    # 过滤与检测
    "PathFilter",
    "should_exclude",
    "ProcessRunner",
    "ProcessResult",
    "SubprocessRunner",
    "ChangeDetector",
    "parse_name_status",

    # 收集
    "CopyOutcome",
    "CopyResult",
    "FileCollector",
    "TreeCollector",

    # 归档与版本信息
    "ArchiveBuilder",
    "SOURCE_ENTRY_NAME",
    "list_entries",
    "read_entry",
    "MetadataWriter",
    "VersionDescriptor",
    "parse_version_info",
    "read_version_info",

    # 编排
    "WorkflowPipeline",
    "PackageOrchestrator",
    "WorkflowResult",
]
