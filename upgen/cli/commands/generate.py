"""
Generate 命令实现

生成更新包 / 全新安装包的核心命令。
"""

import traceback
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from ...build.build_context import UpgenError
from ...config import ConfigError, ConfigValidationError, UpgenConfig, load_config
from ...config.schema import PackageType
from ...utils.logging import OutputLevel, set_log_file, set_log_level, set_logging_enabled

DEFAULT_CONFIG_NAME = "upgen.yaml"

console = Console()


def _load_config(config: Optional[str], project_root: Path) -> UpgenConfig:
    if config:
        return load_config(Path(config))

    default_path = project_root / DEFAULT_CONFIG_NAME
    if default_path.is_file():
        return load_config(default_path)
    return UpgenConfig()


def generate_command(
    start_date: Optional[str] = typer.Option(None, "--start_date", "--start-date", help="起始日期 (YYYY-MM-DD)"),
    end_date: Optional[str] = typer.Option(None, "--end_date", "--end-date", help="截止日期 (YYYY-MM-DD)"),
    current_version: Optional[str] = typer.Option(None, "--current_version", "--current-version", help="当前版本号"),
    update_version: Optional[str] = typer.Option(None, "--update_version", "--update-version", help="目标版本号"),
    package_type: PackageType = typer.Option(PackageType.UPDATE, "--type", "-t", help="包类型: update / new / both"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help=f"配置文件路径（默认 <project>/{DEFAULT_CONFIG_NAME}）"),
    project_root: str = typer.Option(".", "--project-root", "-p", help="项目根目录（git 工作区）"),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", "-o", help="输出目录，覆盖配置中的 output_directory"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="日志输出文件"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出详细调试日志 (DEBUG 级别)"),
) -> None:
    """生成更新包或全新安装包

    示例:
        upgen generate --start_date 2024-01-01 --end_date 2024-02-01 \\
            --current_version 1.0.0 --update_version 1.1.0
        upgen generate --type new --update_version 2.0.0
        upgen generate --type both --start_date 2024-01-01 --end_date 2024-02-01 \\
            --current_version 1.0.0 --update_version 1.1.0
    """
    from ...build.orchestrator import PackageOrchestrator

    root = Path(project_root).resolve()
    set_log_level(OutputLevel.DEBUG if verbose else OutputLevel.INFO)

    if log_file:
        try:
            set_log_file(log_file)
        except OSError:
            console.print(f"[yellow]无法写入日志文件: {log_file}[/yellow]")

    try:
        config_obj = _load_config(config, root)
    except ConfigValidationError as e:
        console.print("[red]配置验证失败:[/red]")
        console.print(e.format_errors())
        raise typer.Exit(1)
    except ConfigError as e:
        console.print(f"[red]配置错误[/red]: {e}")
        raise typer.Exit(1)

    set_logging_enabled(config_obj.enable_logging)

    def progress_callback(stage: str, current: int, total: int, message: str = "") -> None:
        if verbose and total > 0:
            percentage = (current / total) * 100
            console.print(f"[blue]{stage}[/blue]: {message} ({percentage:.0f}%)")

    orchestrator = PackageOrchestrator(
        config_obj,
        root,
        output_dir=output_dir,
        progress_callback=progress_callback,
    )

    try:
        result = orchestrator.run_workflow(
            package_type,
            start_date=start_date,
            end_date=end_date,
            current_version=current_version,
            update_version=update_version,
        )
    except UpgenError as e:
        console.print(f"[red]✗ 生成失败[/red]: {e.describe()}")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]✗ 生成过程中发生意外错误[/red]: {e}")
        if log_file:
            console.print(f"[yellow]详细错误信息:[/yellow]\n{traceback.format_exc()}")
        raise typer.Exit(1)

    for artifact in result.artifacts:
        console.print(f"[green]✓ 已生成[/green]: {artifact}")

    for name, err in result.errors.items():
        console.print(f"[red]✗ {name} 包生成失败[/red]: {err.describe()}")

    if result.partial:
        console.print("[yellow]部分成功：请检查上面的错误信息[/yellow]")

    if not result.success:
        raise typer.Exit(1)
