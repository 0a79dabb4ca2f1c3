"""`python -m GuildPackBot.cli` 的命令行启动入口。"""

from GuildPackBot.cli.main import cli

if __name__ == "__main__":
    cli()
