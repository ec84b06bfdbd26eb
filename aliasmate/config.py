import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from rich.console import Console
from rich.logging import RichHandler

from aliasmate.constants import (
    ALIAS_FILE_NAME,
    CONFIG_DIR_ENV,
    DEBUG_ENV,
    METADATA_FILE_NAME,
)


class Config:
    """Locate the aliasmate config directory and the table files inside it"""

    def __init__(self, config_dir: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None):
        environ = os.environ if environ is None else environ
        if config_dir:
            self.config_dir = Path(config_dir).expanduser()
        elif environ.get(CONFIG_DIR_ENV):
            self.config_dir = Path(environ[CONFIG_DIR_ENV]).expanduser()
        else:
            # Default to ~/.config/aliasmate
            self.config_dir = Path.home() / ".config" / "aliasmate"

    @property
    def alias_path(self) -> Path:
        return self.config_dir / ALIAS_FILE_NAME

    @property
    def metadata_path(self) -> Path:
        return self.config_dir / METADATA_FILE_NAME

    @property
    def backup_dir(self) -> Path:
        return self.config_dir / "backups"


def debug_enabled(environ: Optional[Mapping[str, str]] = None) -> bool:
    environ = os.environ if environ is None else environ
    return environ.get(DEBUG_ENV, "").lower() in ("1", "true", "yes")


def configure_logging(debug: bool = False) -> None:
    """Send log records to stderr through rich"""
    root = logging.getLogger("aliasmate")
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=debug,
        show_path=debug,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.WARNING)
    root.propagate = False
