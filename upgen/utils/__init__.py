"""通用工具模块"""

from .logging import (
    configure_logging,
    get_stage_logger,
    StageLogger,
    LogStage,
    OutputLevel,
)

from .paths import (
    ensure_directory,
    get_temp_dir,
    safe_path_join,
    safe_label,
    format_size,
    to_posix,
)

from .filesystem import FileSystem, LocalFileSystem

__all__ = [
    # 日志相关
    "configure_logging",
    "get_stage_logger",
    "StageLogger",
    "LogStage",
    "OutputLevel",

    # 路径相关
    "ensure_directory",
    "get_temp_dir",
    "safe_path_join",
    "safe_label",
    "format_size",
    "to_posix",

    # 文件系统
    "FileSystem",
    "LocalFileSystem",
]
