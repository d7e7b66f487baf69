"""
文件系统能力接口

收集器和归档器通过该接口访问文件系统，测试时可以替换为伪实现。

符号链接策略：指向文件的链接按普通文件复制（复制目标内容）；
遍历时不进入指向目录的链接，损坏的链接直接跳过。
"""

import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterator, Union

PathLike = Union[str, Path]


class FileSystem(ABC):
    """文件系统抽象接口"""

    @abstractmethod
    def exists(self, path: PathLike) -> bool:
        pass

    @abstractmethod
    def is_file(self, path: PathLike) -> bool:
        pass

    @abstractmethod
    def is_dir(self, path: PathLike) -> bool:
        pass

    @abstractmethod
    def make_dirs(self, path: PathLike) -> None:
        """创建目录（含中间目录），已存在时不报错"""
        pass

    @abstractmethod
    def copy_file(self, source: PathLike, destination: PathLike) -> None:
        """复制单个文件，目标已存在时覆盖"""
        pass

    @abstractmethod
    def walk_files(self, root: PathLike) -> Iterator[Path]:
        """递归遍历 root 下的所有文件，按路径排序返回"""
        pass

    @abstractmethod
    def remove(self, path: PathLike) -> None:
        """删除文件或目录树，不存在时不报错"""
        pass


class LocalFileSystem(FileSystem):
    """基于 pathlib / shutil 的本地文件系统实现"""

    def exists(self, path: PathLike) -> bool:
        return Path(path).exists()

    def is_file(self, path: PathLike) -> bool:
        return Path(path).is_file()

    def is_dir(self, path: PathLike) -> bool:
        return Path(path).is_dir()

    def make_dirs(self, path: PathLike) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def copy_file(self, source: PathLike, destination: PathLike) -> None:
        shutil.copy2(source, destination)

    def walk_files(self, root: PathLike) -> Iterator[Path]:
        root = Path(root)
        for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
            # 原地排序保证遍历顺序稳定
            dirnames.sort()
            current = Path(dirpath)
            for name in sorted(filenames):
                candidate = current / name
                # 损坏的符号链接在 is_file() 下为 False
                if candidate.is_file():
                    yield candidate

    def remove(self, path: PathLike) -> None:
        target = Path(path)
        if target.is_symlink() or target.is_file():
            target.unlink()
        elif target.is_dir():
            shutil.rmtree(target)
