"""
内置命令扩展包 - 由 commandInteraction 扩展包加载
Built-in command packs - loaded by the commandInteraction pack.
"""
