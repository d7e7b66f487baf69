"""
归档构建器

把暂存目录打包为 ZIP，并支持构建只包含内层归档和版本信息文件两个条目的外层归档。
条目名统一使用正斜杠，按名称排序写入。
"""

import os
import zipfile
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..utils.filesystem import FileSystem, LocalFileSystem
from ..utils.logging import LogStage, StageLogger, get_stage_logger
from ..utils.paths import format_size, to_posix
from .build_context import ArchiveCreationError, MissingSourceError

# 外层归档中的固定条目名
SOURCE_ENTRY_NAME = "source_code.zip"

# ZIP 格式能表示的最早时间
FIXED_ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)
FILE_MODE = 0o100644


class ArchiveBuilder:
    """ZIP 归档构建器"""

    def __init__(
        self,
        compression_level: int = 6,
        reproducible: bool = True,
        fs: Optional[FileSystem] = None,
        logger: Optional[StageLogger] = None,
    ):
        self.compression_level = min(9, max(0, compression_level))
        self.reproducible = reproducible
        self.fs = fs or LocalFileSystem()
        self.logger = logger or get_stage_logger(LogStage.ARCHIVE)

    def build_flat(self, source_dir: Union[str, Path], archive_path: Union[str, Path]) -> Path:
        """把目录下的全部文件打包为一个归档

        Args:
            source_dir: 源目录
            archive_path: 输出归档路径（已存在时覆盖）

        Returns:
            Path: 归档路径

        Raises:
            MissingSourceError: 源目录不存在
            ArchiveCreationError: 归档无法写入
        """
        source_dir = Path(source_dir)
        archive_path = Path(archive_path)

        if not self.fs.is_dir(source_dir):
            raise MissingSourceError(
                f"源目录不存在: {source_dir}",
                operation="build_flat",
                path=source_dir,
            )

        members = sorted(
            ((to_posix(p.relative_to(source_dir)), p) for p in self.fs.walk_files(source_dir)),
            key=lambda item: item[0],
        )

        self._write_archive(archive_path, members, operation="build_flat")
        self.logger.info(
            f"归档创建完成: {archive_path.name} ({len(members)} 个文件, "
            f"{format_size(archive_path.stat().st_size)})"
        )
        return archive_path

    def build_container(
        self,
        inner_archive: Union[str, Path],
        metadata_file: Union[str, Path],
        archive_path: Union[str, Path],
        metadata_entry_name: Optional[str] = None,
    ) -> Path:
        """构建外层归档

        外层归档只包含两个条目：内层归档（source_code.zip）和版本信息文件。

        Args:
            inner_archive: 内层归档路径
            metadata_file: 版本信息文件路径
            archive_path: 输出归档路径
            metadata_entry_name: 版本信息条目名，默认使用文件名

        Raises:
            MissingSourceError: 输入文件不存在
            ArchiveCreationError: 归档无法写入
        """
        inner_archive = Path(inner_archive)
        metadata_file = Path(metadata_file)
        archive_path = Path(archive_path)

        if not self.fs.is_file(inner_archive):
            raise MissingSourceError(
                f"内层归档不存在: {inner_archive}",
                operation="build_container",
                path=inner_archive,
            )
        if not self.fs.is_file(metadata_file):
            raise MissingSourceError(
                f"版本信息文件不存在: {metadata_file}",
                operation="build_container",
                path=metadata_file,
            )

        entry_name = metadata_entry_name or metadata_file.name
        if entry_name == SOURCE_ENTRY_NAME:
            raise ArchiveCreationError(
                f"版本信息条目名与源码条目冲突: {entry_name}",
                operation="build_container",
                path=archive_path,
            )

        members = [(SOURCE_ENTRY_NAME, inner_archive), (entry_name, metadata_file)]
        self._write_archive(archive_path, members, operation="build_container")
        self.logger.info(f"外层归档创建完成: {archive_path.name} ({format_size(archive_path.stat().st_size)})")
        return archive_path

    def _write_archive(self, archive_path: Path, members: List[Tuple[str, Path]], operation: str) -> None:
        # 先写入 .part 临时文件，完成后再替换目标，避免留下写了一半的归档
        part_path = archive_path.with_name(archive_path.name + ".part")

        try:
            self.fs.make_dirs(archive_path.parent)
            with zipfile.ZipFile(
                part_path, 'w', zipfile.ZIP_DEFLATED,
                compresslevel=self.compression_level,
                strict_timestamps=False,
            ) as zf:
                for name, source in members:
                    self._add_member(zf, name, source)
            os.replace(part_path, archive_path)
        except OSError as e:
            self._discard(part_path)
            raise ArchiveCreationError(
                f"无法写入归档: {archive_path}",
                operation=operation,
                path=archive_path,
            ) from e
        except (zipfile.BadZipFile, ValueError) as e:
            self._discard(part_path)
            raise ArchiveCreationError(
                f"归档写入异常: {archive_path}",
                operation=operation,
                path=archive_path,
            ) from e

    def _add_member(self, zf: zipfile.ZipFile, name: str, source: Path) -> None:
        if not self.reproducible:
            zf.write(source, name)
            return

        info = zipfile.ZipInfo(name, date_time=FIXED_ZIP_DATE_TIME)
        info.compress_type = zipfile.ZIP_DEFLATED
        info.external_attr = (FILE_MODE & 0xFFFF) << 16
        zf.writestr(info, source.read_bytes(), compresslevel=self.compression_level)

    def _discard(self, path: Path) -> None:
        try:
            if path.exists():
                path.unlink()
        except OSError as e:
            self.logger.warning(f"无法删除临时归档 {path}: {e}")


def list_entries(archive_path: Union[str, Path]) -> List[str]:
    """列出归档中的条目名（不含目录条目）

    Raises:
        MissingSourceError: 归档不存在
    """
    archive_path = Path(archive_path)
    if not archive_path.is_file():
        raise MissingSourceError(f"归档不存在: {archive_path}", operation="list_entries", path=archive_path)

    with zipfile.ZipFile(archive_path, 'r') as zf:
        return [info.filename for info in zf.infolist() if not info.is_dir()]


def read_entry(archive_path: Union[str, Path], name: str) -> bytes:
    """读取归档中某个条目的内容"""
    archive_path = Path(archive_path)
    if not archive_path.is_file():
        raise MissingSourceError(f"归档不存在: {archive_path}", operation="read_entry", path=archive_path)

    with zipfile.ZipFile(archive_path, 'r') as zf:
        return zf.read(name)
