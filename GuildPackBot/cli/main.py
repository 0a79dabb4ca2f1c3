"""
CLI 主入口 - 使用 Click 框架
CLI main entry - using Click framework.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys

import click

from GuildPackBot.kernel.paths import get_config_file


@click.group()
def cli() -> None:
    """GuildPackBot - 基于扩展包运行时的 Discord 服务器机器人"""
    pass


@cli.command()
@click.option("--config", "config_path", default=None, help="配置文件路径")
@click.option("--debug", is_flag=True, help="输出调试日志")
def run(config_path: str | None, debug: bool) -> None:
    """启动 GuildPackBot / Start GuildPackBot."""
    from GuildPackBot.kernel.bootstrap import Bootstrap
    from GuildPackBot.kernel.paths import ensure_directories

    ensure_directories()
    logger = logging.getLogger("GuildPackBot")
    bootstrap = Bootstrap(config_path=config_path, debug=debug)

    async def main() -> None:
        await bootstrap.start()
        await bootstrap.run_forever()

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("收到键盘中断信号")
    except ValueError as exc:
        # 缺少必填配置
        click.echo(str(exc), err=True)
        sys.exit(2)
    except Exception:
        logger.exception("致命错误")
        sys.exit(1)


@cli.command()
@click.option("--config", "config_path", default=None, help="配置文件路径")
def init(config_path: str | None) -> None:
    """初始化配置 / Initialize configuration."""
    from GuildPackBot.config.defaults import build_default_config

    config_path = config_path or str(get_config_file())
    os.makedirs(os.path.dirname(config_path) or ".", exist_ok=True)

    if os.path.exists(config_path):
        click.echo(f"配置文件已存在: {config_path}")
        if not click.confirm("是否覆盖?"):
            return

    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(build_default_config(), f, ensure_ascii=False, indent=2)

    click.echo(f"配置文件已创建: {config_path}")


@cli.command()
def version() -> None:
    """显示版本信息 / Show version info."""
    from GuildPackBot import __app_name__, __version__

    click.echo(f"{__app_name__} v{__version__}")


@cli.group()
def pack() -> None:
    """扩展包管理 / Pack management."""
    pass


@pack.command("list")
@click.argument("directory", required=False)
def pack_list(directory: str | None) -> None:
    """列出目录中的扩展包及其依赖 / List the packs in a directory and their dependencies."""
    from GuildPackBot.kernel.paths import get_builtin_pack_dir
    from GuildPackBot.pack.loader import discover

    directory = directory or str(get_builtin_pack_dir())
    if not os.path.isdir(directory):
        click.echo(f"没有找到扩展包目录: {directory}")
        return

    descriptors = discover(directory)
    if not descriptors:
        click.echo("没有找到扩展包")
        return

    for descriptor in descriptors:
        deps = ", ".join(descriptor.dependencies) or "-"
        click.echo(f"  - {descriptor.name} [{deps}]")


@cli.group()
def conf() -> None:
    """配置管理 / Configuration management."""
    pass


@conf.command("show")
@click.argument("key", required=False)
@click.option("--config", "config_path", default=None, help="配置文件路径")
def conf_show(key: str | None, config_path: str | None) -> None:
    """显示配置 / Show configuration."""
    config_path = config_path or str(get_config_file())
    if not os.path.exists(config_path):
        click.echo("配置文件不存在，请先运行 init")
        return

    with open(config_path, encoding="utf-8") as f:
        config = json.load(f)

    if key:
        current = config
        for k in key.split("."):
            if isinstance(current, dict) and k in current:
                current = current[k]
            else:
                click.echo(f"键 '{key}' 不存在")
                return

        click.echo(json.dumps(current, ensure_ascii=False, indent=2))
    else:
        click.echo(json.dumps(config, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    cli()
