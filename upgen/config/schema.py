"""
配置 Schema 定义

使用 Pydantic 定义 YAML 配置模型，支持验证和类型检查。
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator


class PackageType(str, Enum):
    """包类型枚举"""
    UPDATE = "update"
    NEW = "new"
    BOTH = "both"


class ExcludeMatchMode(str, Enum):
    """排除规则匹配方式"""
    PREFIX = "prefix"    # 字面前缀匹配：storage 同时排除 storagex/file
    SEGMENT = "segment"  # 路径段匹配：storage 只排除 storage 与 storage/...


class MetadataFormat(str, Enum):
    """版本信息文件格式"""
    PHP = "php"
    JSON = "json"


DEFAULT_EXCLUDES: List[str] = [
    "storage",
    "vendor",
    ".env",
    "node_modules",
    ".git",
    ".idea",
    "composer.lock",
    "package-lock.json",
    "yarn.lock",
    "public/storage",
    "public/uploads",
    "tests",
    "phpunit.xml",
    ".gitignore",
    ".env.example",
    "README.md",
    "CHANGELOG.md",
]


def _clean_exclusions(v: List[str]) -> List[str]:
    """去除空白、空项和重复项，保留原有顺序"""
    cleaned: List[str] = []
    for item in v:
        item = item.strip().replace("\\", "/")
        if item and item not in cleaned:
            cleaned.append(item)
    return cleaned


class UpgenConfig(BaseModel):
    """upgen 主配置模型

    所有字段都有默认值，空配置文件等价于默认配置。
    """

    exclude_update: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDES),
        description="生成更新包时排除的路径前缀",
    )
    exclude_new: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDES),
        description="生成全新安装包时排除的路径前缀",
    )
    output_directory: Path = Field(
        Path("storage/app/update_files"),
        description="生成包的输出目录（相对路径基于项目根目录）",
    )
    git_timeout: int = Field(300, description="git 命令超时时间（秒）", ge=1, le=3600)
    git_executable: str = Field("git", description="git 可执行文件", min_length=1)
    enable_logging: bool = Field(True, description="是否输出生成过程日志")
    exclude_match: ExcludeMatchMode = Field(
        ExcludeMatchMode.PREFIX,
        description="排除规则匹配方式",
    )
    metadata_format: MetadataFormat = Field(
        MetadataFormat.PHP,
        description="版本信息文件格式",
    )
    compression_level: int = Field(6, description="ZIP 压缩级别", ge=0, le=9)
    reproducible: bool = Field(True, description="是否写入固定时间戳以获得可复现的归档")

    model_config = {
        "extra": "forbid",
        "validate_assignment": True,
        "str_strip_whitespace": True,
    }

    @field_validator("exclude_update", "exclude_new")
    @classmethod
    def validate_exclusions(cls, v: List[str]) -> List[str]:
        """规范化排除列表"""
        return _clean_exclusions(v)

    def exclusions_for(self, package_type: PackageType) -> List[str]:
        """获取指定包类型的排除列表"""
        if package_type == PackageType.NEW:
            return list(self.exclude_new)
        return list(self.exclude_update)

    def resolve_output_directory(self, project_root: Path) -> Path:
        """获取输出目录的绝对路径"""
        if self.output_directory.is_absolute():
            return self.output_directory
        return (Path(project_root) / self.output_directory).resolve()

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        data = self.model_dump()

        def convert_values(obj):
            if isinstance(obj, dict):
                return {k: convert_values(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [convert_values(item) for item in obj]
            elif isinstance(obj, Enum):
                return obj.value
            elif isinstance(obj, Path):
                return obj.as_posix()
            return obj

        return convert_values(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UpgenConfig":
        """从字典创建配置实例"""
        return cls.model_validate(data)
