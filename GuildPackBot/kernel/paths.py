"""
GuildPackBot 路径管理模块

集中管理所有数据目录和文件路径，所有数据统一存放在 data/ 目录下。

目录结构:
    data/
    ├── config/              ← 配置目录
    │   └── config.json      ← 主配置文件
    ├── packs/               ← 额外扩展包
    ├── logs/                ← 日志目录
    │   └── GuildPackBot.log
    └── GuildPackBot.db      ← SQLite 数据库
"""

from __future__ import annotations

import os
from pathlib import Path


def get_root() -> Path:
    """获取项目根目录，支持环境变量 GUILDPACK_ROOT 覆盖。"""
    root = os.environ.get("GUILDPACK_ROOT", "")
    return Path(root) if root else Path.cwd()


def get_data_path() -> Path:
    """数据根目录: data/"""
    return get_root() / "data"


def get_config_file() -> Path:
    """主配置文件: data/config/config.json"""
    return get_data_path() / "config" / "config.json"


def get_db_path() -> Path:
    """数据库文件: data/GuildPackBot.db"""
    return get_data_path() / "GuildPackBot.db"


def get_log_dir() -> Path:
    """日志目录: data/logs/"""
    return get_data_path() / "logs"


def get_pack_dir() -> Path:
    """额外扩展包目录: data/packs/"""
    return get_data_path() / "packs"


def get_builtin_pack_dir() -> Path:
    """内置扩展包目录（随源码发布）"""
    return Path(__file__).resolve().parent.parent / "pack" / "builtin"


def ensure_directories() -> None:
    """创建所有必需的数据目录。"""
    for d in (get_data_path(), get_config_file().parent, get_pack_dir(), get_log_dir()):
        d.mkdir(parents=True, exist_ok=True)
