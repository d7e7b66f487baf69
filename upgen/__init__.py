"""
upgen - 基于 git 历史的更新包生成工具

Builds update and fresh-installation ZIP packages from a git history.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .config.schema import UpgenConfig
from .build.orchestrator import PackageOrchestrator, WorkflowResult

__all__ = ["UpgenConfig", "PackageOrchestrator", "WorkflowResult", "__version__"]
