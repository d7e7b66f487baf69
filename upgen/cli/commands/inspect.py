"""
Inspect 命令实现

查看生成包的条目和嵌入的版本信息。
"""

import io
import json
import zipfile
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ...build.archiver import SOURCE_ENTRY_NAME
from ...build.metadata import METADATA_ENTRY_NAMES, MetadataParseError, parse_version_info


console = Console()


def _read_package(package_path: Path) -> dict:
    """读取包结构

    更新包为两层结构：外层包含 source_code.zip 与版本信息文件。
    """
    data: dict = {"file": str(package_path), "kind": "flat", "entries": [], "version_info": None}

    with zipfile.ZipFile(package_path, 'r') as zf:
        names = [info.filename for info in zf.infolist() if not info.is_dir()]
        metadata_name: Optional[str] = next(
            (name for name in names if name in METADATA_ENTRY_NAMES.values()), None
        )

        if SOURCE_ENTRY_NAME in names and metadata_name and len(names) == 2:
            data["kind"] = "update"
            with zipfile.ZipFile(io.BytesIO(zf.read(SOURCE_ENTRY_NAME)), 'r') as inner:
                data["entries"] = [i.filename for i in inner.infolist() if not i.is_dir()]
            data["version_info"] = parse_version_info(zf.read(metadata_name).decode('utf-8')).to_dict()
        else:
            data["entries"] = names

    return data


def inspect_command(
    package: str = typer.Argument(..., help="生成的包文件路径"),
    json_output: bool = typer.Option(False, "--json", help="输出 JSON 格式"),
    show_files: bool = typer.Option(False, "--files", help="显示文件列表"),
) -> None:
    """查看包信息

    示例:
        upgen inspect update_1.0.0_to_1.1.0.zip
        upgen inspect new_installation_2.0.0.zip --files
    """
    package_path = Path(package)

    if not package_path.is_file():
        console.print(f"[red]包文件不存在: {package_path}[/red]")
        raise typer.Exit(1)

    try:
        data = _read_package(package_path)
    except (zipfile.BadZipFile, MetadataParseError, UnicodeDecodeError) as e:
        console.print(f"[red]无法读取包: {e}[/red]")
        raise typer.Exit(1)

    if json_output:
        typer.echo(json.dumps(data, ensure_ascii=False, indent=2))
        return

    table = Table(title="包信息")
    table.add_column("属性", style="cyan")
    table.add_column("值", style="green")
    table.add_row("文件", data["file"])
    table.add_row("类型", "更新包" if data["kind"] == "update" else "单层归档")
    table.add_row("源文件数", str(len(data["entries"])))
    if data["version_info"]:
        table.add_row("当前版本", data["version_info"]["current_version"] or "-")
        table.add_row("目标版本", data["version_info"]["update_version"])
    console.print(table)

    if show_files:
        for name in data["entries"]:
            console.print(f"  {name}")
