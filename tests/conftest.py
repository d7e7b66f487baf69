"""
测试公共夹具
"""

import os
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

import pytest

from upgen.build.process import ProcessResult, ProcessRunner
from upgen.utils.logging import close_logger


class FakeGitRunner(ProcessRunner):
    """返回预置输出的 git 运行器，记录所有调用"""

    def __init__(self, log_output: str = "", log_exit_code: int = 0, is_repo: bool = True, stderr: str = ""):
        self.log_output = log_output
        self.log_exit_code = log_exit_code
        self.is_repo = is_repo
        self.stderr = stderr
        self.calls: List[dict] = []

    def run(self, argv, cwd, timeout: Optional[float] = None) -> ProcessResult:
        self.calls.append({"argv": list(argv), "cwd": Path(cwd), "timeout": timeout})

        if "rev-parse" in argv:
            if self.is_repo:
                return ProcessResult(0, "true\n", "")
            return ProcessResult(128, "", "fatal: not a git repository")

        return ProcessResult(self.log_exit_code, self.log_output, self.stderr)


@pytest.fixture(autouse=True)
def reset_logger():
    """每个测试使用新的输出门面"""
    close_logger()
    yield
    close_logger()


@pytest.fixture
def fake_runner():
    return FakeGitRunner()


@pytest.fixture
def make_runner():
    """构造带预置输出的 FakeGitRunner"""
    return FakeGitRunner


@pytest.fixture
def project_root(tmp_path):
    """一个简单的 Laravel 风格项目目录"""
    root = tmp_path / "project"
    (root / "app").mkdir(parents=True)
    (root / "app" / "Foo.php").write_text("<?php class Foo {}")
    (root / "app" / "Bar.php").write_text("<?php class Bar {}")
    (root / "config").mkdir()
    (root / "config" / "app.php").write_text("<?php return [];")
    (root / "storage" / "cache").mkdir(parents=True)
    (root / "storage" / "cache" / "x").write_text("cache")
    (root / "vendor").mkdir()
    (root / "vendor" / "lib.php").write_text("<?php // vendor")
    (root / ".env").write_text("APP_KEY=secret")
    return root


def _git_available() -> bool:
    return shutil.which("git") is not None


@pytest.fixture
def git_repo(tmp_path):
    """带有两次提交的真实 git 仓库"""
    if not _git_available():
        pytest.skip("git 不可用")

    repo = tmp_path / "repo"
    repo.mkdir()

    def git(*args, env_date: Optional[str] = None):
        env = {
            "GIT_AUTHOR_NAME": "Test",
            "GIT_AUTHOR_EMAIL": "test@example.com",
            "GIT_COMMITTER_NAME": "Test",
            "GIT_COMMITTER_EMAIL": "test@example.com",
            "HOME": str(tmp_path),
            "PATH": os.environ.get("PATH", ""),
        }
        if env_date:
            env["GIT_AUTHOR_DATE"] = env_date
            env["GIT_COMMITTER_DATE"] = env_date
        subprocess.run(["git", *args], cwd=repo, env=env, check=True, capture_output=True)

    git("init", "-q")
    (repo / "a.txt").write_text("a")
    git("add", "a.txt")
    git("commit", "-q", "-m", "first", env_date="2024-01-10T12:00:00")

    (repo / "app").mkdir()
    (repo / "app" / "Foo.php").write_text("<?php")
    (repo / "a.txt").write_text("a2")
    git("add", ".")
    git("commit", "-q", "-m", "second", env_date="2024-02-10T12:00:00")

    return repo
