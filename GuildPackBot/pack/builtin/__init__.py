"""
内置扩展包 - 启动时由加载器按文件扫描
Built-in packs - scanned file by file by the loader at startup.
"""
