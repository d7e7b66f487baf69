"""
外部进程调用

只接受参数向量，不经过 shell 拼接。超时时终止子进程并回收，避免遗留进程持有仓库锁。
"""

import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union


@dataclass(frozen=True)
class ProcessResult:
    """进程执行结果"""
    exit_code: int
    stdout: str
    stderr: str


class ProcessError(Exception):
    """进程无法启动或未正常完成"""

    def __init__(self, message: str, argv: Sequence[str], output: str = ""):
        super().__init__(message)
        self.argv: List[str] = list(argv)
        self.output = output


class CommandNotFoundError(ProcessError):
    """可执行文件不存在或不可执行"""
    pass


class CommandTimeoutError(ProcessError):
    """执行超时（子进程已被终止）"""

    def __init__(self, message: str, argv: Sequence[str], timeout: float, output: str = ""):
        super().__init__(message, argv, output)
        self.timeout = timeout


class ProcessRunner(ABC):
    """进程执行能力接口"""

    @abstractmethod
    def run(
        self,
        argv: Sequence[str],
        cwd: Union[str, Path],
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        """执行命令

        Args:
            argv: 参数向量，argv[0] 为可执行文件
            cwd: 工作目录
            timeout: 超时时间（秒）

        Returns:
            ProcessResult: 退出码与输出。非零退出码不视为异常

        Raises:
            CommandNotFoundError: 可执行文件不存在
            CommandTimeoutError: 超时
        """
        pass


class SubprocessRunner(ProcessRunner):
    """基于 subprocess 的实现"""

    def run(
        self,
        argv: Sequence[str],
        cwd: Union[str, Path],
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        argv = [str(arg) for arg in argv]
        try:
            process = subprocess.Popen(
                argv,
                cwd=str(cwd),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding='utf-8',
                errors='replace',
            )
        except FileNotFoundError as e:
            raise CommandNotFoundError(f"找不到可执行文件: {argv[0]}", argv) from e
        except PermissionError as e:
            raise CommandNotFoundError(f"无权限执行: {argv[0]}", argv) from e

        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            process.kill()
            stdout, stderr = process.communicate()
            raise CommandTimeoutError(
                f"命令执行超时 ({timeout} 秒): {' '.join(argv)}",
                argv,
                timeout or 0,
                output=stderr or stdout or "",
            ) from e

        return ProcessResult(exit_code=process.returncode, stdout=stdout or "", stderr=stderr or "")
