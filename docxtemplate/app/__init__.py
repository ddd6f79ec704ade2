"""应用模块."""
