"""
版本信息文件

写入和读取嵌入在更新包中的版本描述（current_version / update_version）。
默认生成应用端可以直接 include 的 PHP 文件，也支持 JSON。
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..config.schema import MetadataFormat
from ..utils.logging import LogStage, StageLogger, get_stage_logger

METADATA_ENTRY_NAMES = {
    MetadataFormat.PHP: "version_info.php",
    MetadataFormat.JSON: "version_info.json",
}


class MetadataParseError(ValueError):
    """版本信息文件无法解析"""
    pass


@dataclass(frozen=True)
class VersionDescriptor:
    """版本描述，全新安装包的 current_version 为空字符串"""
    current_version: str
    update_version: str

    def to_dict(self) -> dict:
        return {
            'current_version': self.current_version,
            'update_version': self.update_version,
        }


def _php_quote(value: str) -> str:
    # PHP 单引号字符串只需要转义反斜杠和单引号
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _php_unquote(body: str) -> str:
    return re.sub(r"\\([\\'])", r"\1", body)


def render_version_info(descriptor: VersionDescriptor, fmt: MetadataFormat = MetadataFormat.PHP) -> str:
    """把版本描述渲染为文件内容"""
    if fmt == MetadataFormat.JSON:
        return json.dumps(descriptor.to_dict(), ensure_ascii=False, indent=2) + "\n"

    return (
        "<?php\n"
        f"return array('current_version' => {_php_quote(descriptor.current_version)},"
        f"'update_version' => {_php_quote(descriptor.update_version)});"
    )


_PHP_FIELD = re.compile(r"'(current_version|update_version)'\s*=>\s*'((?:[^'\\]|\\.)*)'")


def parse_version_info(text: str) -> VersionDescriptor:
    """静态解析版本信息文件内容（不执行任何代码）

    Raises:
        MetadataParseError: 内容不是受支持的格式或缺少字段
    """
    stripped = text.lstrip()

    if stripped.startswith("{"):
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError as e:
            raise MetadataParseError(f"JSON 版本信息解析失败: {e}") from e
        if not isinstance(data, dict):
            raise MetadataParseError("JSON 版本信息必须是对象")
        fields = data
    elif stripped.startswith("<?php"):
        fields = {key: _php_unquote(value) for key, value in _PHP_FIELD.findall(stripped)}
    else:
        raise MetadataParseError("无法识别的版本信息格式")

    missing = [key for key in ('current_version', 'update_version') if key not in fields]
    if missing:
        raise MetadataParseError(f"版本信息缺少字段: {', '.join(missing)}")

    return VersionDescriptor(
        current_version=str(fields['current_version'] or ""),
        update_version=str(fields['update_version'] or ""),
    )


def read_version_info(path: Union[str, Path]) -> VersionDescriptor:
    """读取版本信息文件"""
    return parse_version_info(Path(path).read_text(encoding='utf-8'))


class MetadataWriter:
    """版本信息文件写入器

    write() 不抛出异常，失败时返回 False，由调用方决定是否重试。
    """

    def __init__(self, fmt: MetadataFormat = MetadataFormat.PHP, logger: Optional[StageLogger] = None):
        self.format = fmt
        self.logger = logger or get_stage_logger(LogStage.METADATA)

    @property
    def entry_name(self) -> str:
        """在外层归档中的条目名"""
        return METADATA_ENTRY_NAMES[self.format]

    def write(self, current_version: str, update_version: str, path: Union[str, Path]) -> bool:
        """写入版本信息文件（覆盖已有文件）

        Returns:
            bool: 是否写入成功
        """
        path = Path(path)
        descriptor = VersionDescriptor(current_version or "", update_version or "")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(render_version_info(descriptor, self.format), encoding='utf-8')
        except (OSError, UnicodeError) as e:
            self.logger.warning(f"版本信息文件写入失败: {path}: {e}")
            return False

        self.logger.info(
            f"版本信息文件已创建: {path.name} "
            f"(current={descriptor.current_version or '-'}, update={descriptor.update_version})"
        )
        return True
