"""
文件收集器

把变更文件列表（或整个项目目录）复制到暂存目录，应用排除规则。
单个条目复制失败只记录警告并计数，不中断整批复制。
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..config.schema import ExcludeMatchMode
from ..utils.filesystem import FileSystem, LocalFileSystem
from ..utils.logging import LogStage, StageLogger, get_stage_logger
from ..utils.paths import safe_path_join, to_posix
from .build_context import MissingSourceError
from .path_filter import should_exclude


class CopyOutcome(str, Enum):
    """单个条目的复制结果"""
    COPIED = "copied"
    SKIPPED_EMPTY = "skipped_empty"
    SKIPPED_EXCLUDED = "skipped_excluded"
    SKIPPED_MISSING = "skipped_missing"
    FAILED = "failed"


@dataclass
class CopyResult:
    """一次收集操作的结果汇总"""
    entries: List[Tuple[str, CopyOutcome]] = field(default_factory=list)
    files_written: int = 0  # 实际写入的文件数（目录条目会展开为多个文件）

    def record(self, path: str, outcome: CopyOutcome) -> None:
        self.entries.append((path, outcome))

    def count(self, outcome: CopyOutcome) -> int:
        return sum(1 for _, o in self.entries if o == outcome)

    @property
    def total(self) -> int:
        return len(self.entries)

    @property
    def copied(self) -> int:
        return self.count(CopyOutcome.COPIED)

    @property
    def excluded(self) -> int:
        return self.count(CopyOutcome.SKIPPED_EXCLUDED)

    @property
    def missing(self) -> int:
        return self.count(CopyOutcome.SKIPPED_MISSING)

    @property
    def failed(self) -> int:
        return self.count(CopyOutcome.FAILED)

    @property
    def is_empty(self) -> bool:
        """没有任何条目被复制"""
        return self.copied == 0

    def paths_with(self, outcome: CopyOutcome) -> List[str]:
        return [p for p, o in self.entries if o == outcome]

    def get_statistics(self) -> Dict[str, int]:
        """获取收集统计信息"""
        return {
            'total': self.total,
            'copied': self.copied,
            'excluded': self.excluded,
            'missing': self.missing,
            'failed': self.failed,
            'files_written': self.files_written,
        }


class _CollectorBase:
    """收集器公共逻辑"""

    def __init__(
        self,
        fs: Optional[FileSystem] = None,
        logger: Optional[StageLogger] = None,
        match_mode: ExcludeMatchMode = ExcludeMatchMode.PREFIX,
    ):
        self.fs = fs or LocalFileSystem()
        self.logger = logger or get_stage_logger(LogStage.COLLECT)
        self.match_mode = match_mode

    def _is_excluded(self, path: str, exclusions: Iterable[str]) -> bool:
        return should_exclude(path, exclusions, self.match_mode)

    def _copy_file(self, source: Path, destination: Path) -> None:
        self.fs.make_dirs(destination.parent)
        self.fs.copy_file(source, destination)

    def _warn_failure(self, source: Path, destination: Path, exc: Exception) -> None:
        self.logger.warning(f"复制失败: {source} -> {destination}: {exc}")


class FileCollector(_CollectorBase):
    """按路径列表复制文件"""

    def collect(
        self,
        paths: Iterable[str],
        project_root: Union[str, Path],
        destination: Union[str, Path],
        exclusions: Iterable[str] = (),
    ) -> CopyResult:
        """复制变更文件到暂存目录

        Args:
            paths: 相对于项目根目录的路径列表（文件或目录）
            project_root: 项目根目录
            destination: 暂存目录
            exclusions: 排除前缀列表

        Returns:
            CopyResult: 每个条目的处理结果
        """
        project_root = Path(project_root)
        destination = Path(destination)
        exclusions = list(exclusions)
        result = CopyResult()

        self.fs.make_dirs(destination)

        for raw_path in paths:
            rel = to_posix(raw_path).strip() if raw_path else ""
            if not rel:
                result.record(rel, CopyOutcome.SKIPPED_EMPTY)
                continue

            if self._is_excluded(rel, exclusions):
                result.record(rel, CopyOutcome.SKIPPED_EXCLUDED)
                continue

            result.record(rel, self._copy_entry(rel, project_root, destination, exclusions, result))

        stats = result.get_statistics()
        self.logger.info(
            f"文件复制完成: {stats['copied']}/{stats['total']} "
            f"(排除 {stats['excluded']}, 缺失 {stats['missing']}, 失败 {stats['failed']})"
        )
        return result

    def _copy_entry(
        self,
        rel: str,
        project_root: Path,
        destination: Path,
        exclusions: List[str],
        result: CopyResult,
    ) -> CopyOutcome:
        try:
            source = safe_path_join(project_root, rel)
            target = safe_path_join(destination, rel)
        except ValueError as e:
            self.logger.warning(f"跳过非法路径 {rel}: {e}")
            return CopyOutcome.FAILED

        try:
            if self.fs.is_file(source):
                self._copy_file(source, target)
                result.files_written += 1
                return CopyOutcome.COPIED

            if self.fs.is_dir(source):
                return self._mirror_directory(rel, source, target, exclusions, result)
        except OSError as e:
            self._warn_failure(source, target, e)
            return CopyOutcome.FAILED

        # 已删除的文件：跳过，不算失败
        self.logger.debug(f"源文件不存在，跳过: {rel}")
        return CopyOutcome.SKIPPED_MISSING

    def _mirror_directory(
        self,
        rel: str,
        source: Path,
        target: Path,
        exclusions: List[str],
        result: CopyResult,
    ) -> CopyOutcome:
        self.fs.make_dirs(target)
        outcome = CopyOutcome.COPIED
        base = rel.strip('/')

        for file_path in self.fs.walk_files(source):
            inner = to_posix(file_path.relative_to(source))
            nested = inner if base in ("", ".") else f"{base}/{inner}"
            if self._is_excluded(nested, exclusions):
                continue
            dest = target / inner
            try:
                self._copy_file(file_path, dest)
                result.files_written += 1
            except OSError as e:
                self._warn_failure(file_path, dest, e)
                outcome = CopyOutcome.FAILED

        return outcome


class TreeCollector(_CollectorBase):
    """复制整个目录树"""

    def collect_all(
        self,
        source_root: Union[str, Path],
        destination: Union[str, Path],
        exclusions: Iterable[str] = (),
    ) -> CopyResult:
        """把 source_root 下的全部文件镜像到 destination

        Raises:
            MissingSourceError: source_root 不存在（此时不会创建 destination）
        """
        source_root = Path(source_root)
        destination = Path(destination)
        exclusions = list(exclusions)

        if not self.fs.is_dir(source_root):
            raise MissingSourceError(
                f"源目录不存在: {source_root}",
                operation="collect_all",
                path=source_root,
            )

        result = CopyResult()
        self.fs.make_dirs(destination)

        for file_path in self.fs.walk_files(source_root):
            rel = to_posix(file_path.relative_to(source_root))

            if self._is_excluded(rel, exclusions):
                result.record(rel, CopyOutcome.SKIPPED_EXCLUDED)
                continue

            dest = destination / rel
            try:
                self._copy_file(file_path, dest)
            except OSError as e:
                self._warn_failure(file_path, dest, e)
                result.record(rel, CopyOutcome.FAILED)
                continue

            result.files_written += 1
            result.record(rel, CopyOutcome.COPIED)

        stats = result.get_statistics()
        self.logger.info(
            f"目录复制完成: {source_root} -> {destination}, "
            f"复制 {stats['copied']}, 排除 {stats['excluded']}, 失败 {stats['failed']}"
        )
        return result
