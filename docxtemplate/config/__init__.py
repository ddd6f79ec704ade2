"""配置模块."""
