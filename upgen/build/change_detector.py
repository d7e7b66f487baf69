"""
变更检测器

调用 git 获取指定日期区间内变更过的文件路径集合。
"""

from pathlib import Path
from typing import List, Optional, Union

from ..utils.logging import LogStage, StageLogger, get_stage_logger
from ..utils.paths import to_posix
from .build_context import VersionControlError
from .process import CommandNotFoundError, CommandTimeoutError, ProcessRunner, SubprocessRunner


def parse_name_status(output: str) -> List[str]:
    """解析 git --name-status / --name-only 的输出

    每个非空行对应一个路径。带状态前缀的行（"M\\tpath"、"R100\\told\\tnew"）
    去掉状态字段；重命名和复制取目标路径。结果保持首次出现的顺序并去重。

    Args:
        output: git 标准输出

    Returns:
        List[str]: 正斜杠分隔的相对路径列表
    """
    seen = set()
    paths: List[str] = []

    for raw_line in output.splitlines():
        line = raw_line.strip('\r\n')
        if not line.strip():
            continue

        fields = line.split('\t')
        if len(fields) == 1:
            path = fields[0].strip()
        else:
            status = fields[0].strip()
            if status[:1] in ('R', 'C') and len(fields) >= 3:
                path = fields[-1]
            else:
                path = fields[1]

        path = to_posix(path).strip()
        if path.startswith('./'):
            path = path[2:]
        if not path or path in seen:
            continue

        seen.add(path)
        paths.append(path)

    return paths


class ChangeDetector:
    """基于 git log 的变更检测器"""

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        git_executable: str = "git",
        logger: Optional[StageLogger] = None,
    ):
        self.runner = runner or SubprocessRunner()
        self.git_executable = git_executable
        self.logger = logger or get_stage_logger(LogStage.DETECT)

    def build_log_command(self, start_date: str, end_date: str) -> List[str]:
        """构造 git log 参数向量"""
        return [
            self.git_executable,
            "-c", "core.quotepath=off",
            "log",
            f"--since={start_date}",
            f"--until={end_date}",
            "--relative",
            "--name-status",
            "--pretty=format:",
        ]

    def detect_changes(
        self,
        repo_root: Union[str, Path],
        start_date: str,
        end_date: str,
        timeout: float = 300,
    ) -> List[str]:
        """检测日期区间内变更的文件

        已删除的文件仍保留在结果中，由收集器负责跳过。

        Args:
            repo_root: 仓库工作区根目录
            start_date: 起始日期
            end_date: 截止日期
            timeout: 超时时间（秒）

        Returns:
            List[str]: 去重后的相对路径列表，可能为空

        Raises:
            VersionControlError: 仓库无效、git 不可用、超时或非零退出
        """
        repo_root = Path(repo_root)
        if not repo_root.is_dir():
            raise VersionControlError(f"仓库目录不存在: {repo_root}", path=repo_root)

        self._ensure_work_tree(repo_root, timeout)

        argv = self.build_log_command(start_date, end_date)
        self.logger.debug(f"执行: {' '.join(argv)}")
        result = self._run(argv, repo_root, timeout)

        if result.exit_code != 0:
            raise VersionControlError(
                f"git log 执行失败 (退出码 {result.exit_code})",
                path=repo_root,
                argv=argv,
                exit_code=result.exit_code,
                output=result.stderr or result.stdout,
            )

        paths = parse_name_status(result.stdout)
        self.logger.info(f"检测到 {len(paths)} 个变更文件 ({start_date} ~ {end_date})")
        return paths

    def _ensure_work_tree(self, repo_root: Path, timeout: float) -> None:
        argv = [self.git_executable, "rev-parse", "--is-inside-work-tree"]
        result = self._run(argv, repo_root, timeout)
        if result.exit_code != 0 or result.stdout.strip() != "true":
            raise VersionControlError(
                f"不是有效的 git 工作区: {repo_root}",
                path=repo_root,
                argv=argv,
                exit_code=result.exit_code,
                output=result.stderr or result.stdout,
            )

    def _run(self, argv: List[str], repo_root: Path, timeout: float):
        try:
            return self.runner.run(argv, repo_root, timeout)
        except CommandTimeoutError as e:
            raise VersionControlError(
                f"git 命令超时 ({timeout} 秒)",
                path=repo_root,
                argv=argv,
                output=e.output,
                timed_out=True,
            ) from e
        except CommandNotFoundError as e:
            raise VersionControlError(
                f"git 不可用: {self.git_executable}",
                path=repo_root,
                argv=argv,
            ) from e
