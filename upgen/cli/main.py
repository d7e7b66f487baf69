"""
upgen CLI 主入口

提供命令行接口，支持 generate/validate/inspect/example 等命令。
"""

from typing import Optional

import typer
from rich.console import Console

from .. import __version__
from ..config import ConfigError, UpgenConfig, save_config
from .commands import generate, inspect, validate


app = typer.Typer(
    name="upgen",
    help="upgen - 基于 git 历史生成更新包与全新安装包",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

console = Console()


def version_callback(value: bool) -> None:
    """显示版本信息"""
    if value:
        console.print(f"upgen v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="显示版本信息"
    ),
) -> None:
    """upgen - 基于 git 历史生成更新包与全新安装包

    使用 --help 查看可用命令的详细信息。
    """
    pass


app.command("generate", help="生成更新包 / 全新安装包")(generate.generate_command)
app.command("validate", help="验证配置文件")(validate.validate_command)
app.command("inspect", help="查看包信息")(inspect.inspect_command)


@app.command("example")
def example_command(
    output: str = typer.Option(
        "upgen.yaml",
        "--output", "-o",
        help="输出配置文件路径"
    )
) -> None:
    """生成示例配置文件（全部为默认值）"""
    try:
        save_config(UpgenConfig(), output)
    except ConfigError as e:
        console.print(f"[red]生成示例配置失败: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"✓ 示例配置文件已生成: [green]{output}[/green]")
    console.print("请根据需要修改配置文件，然后运行:")
    console.print(
        "  [cyan]upgen generate --start_date 2024-01-01 --end_date 2024-02-01 "
        "--current_version 1.0.0 --update_version 1.1.0[/cyan]"
    )


if __name__ == "__main__":
    app()
