"""
路径工具

提供路径处理相关的工具函数。
"""

import re
import tempfile
from pathlib import Path, PurePosixPath
from typing import Union


def ensure_directory(path: Union[str, Path]) -> Path:
    """确保目录存在

    Args:
        path: 目录路径

    Returns:
        Path: 目录路径
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def get_temp_dir(prefix: str = "upgen_", parent: Union[str, Path, None] = None) -> Path:
    """创建一个新的临时目录

    每次调用都会得到独立的目录，并发运行的工作流互不共享。

    Args:
        prefix: 目录前缀
        parent: 父目录，None 时使用系统临时目录

    Returns:
        Path: 临时目录路径
    """
    if parent is not None:
        ensure_directory(parent)
    return Path(tempfile.mkdtemp(prefix=prefix, dir=str(parent) if parent is not None else None))


def to_posix(path: Union[str, Path]) -> str:
    """转换为正斜杠分隔的路径字符串"""
    return str(path).replace("\\", "/")


def safe_path_join(*parts: Union[str, Path]) -> Path:
    """安全的路径拼接（防止目录穿越）

    Args:
        *parts: 路径部分

    Returns:
        Path: 拼接后的路径

    Raises:
        ValueError: 检测到目录穿越尝试
    """
    if not parts:
        return Path(".")

    result = Path(parts[0])

    for part in parts[1:]:
        part_path = PurePosixPath(to_posix(part))

        if any(p == ".." for p in part_path.parts):
            raise ValueError(f"检测到目录穿越尝试: {part}")

        if part_path.is_absolute():
            raise ValueError(f"不允许使用绝对路径: {part}")

        result = result.joinpath(*part_path.parts)

    return result


def format_size(size_bytes: int) -> str:
    """格式化文件大小

    Args:
        size_bytes: 字节数

    Returns:
        str: 格式化的大小字符串
    """
    if size_bytes == 0:
        return "0 B"

    units = ["B", "KB", "MB", "GB", "TB"]
    unit_index = 0
    size = float(size_bytes)

    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    if unit_index == 0:
        return f"{int(size)} {units[unit_index]}"
    return f"{size:.1f} {units[unit_index]}"


_UNSAFE_LABEL_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def safe_label(value: str) -> str:
    """把版本号等标签转换为可用于文件名的形式

    Args:
        value: 原始标签，例如 "1.2.0" 或 "2024/05 hotfix"

    Returns:
        str: 仅包含字母、数字、点、下划线和连字符的字符串
    """
    return _UNSAFE_LABEL_CHARS.sub("_", value.strip())
