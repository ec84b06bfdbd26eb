"""aliasmate - save shell commands with their working directory and re-run them anywhere"""

__version__ = "1.5.0"
