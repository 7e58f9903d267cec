"""命令行入口（YAML 驱动）"""
