# Console logging for the HopCoder agent core, rendered with Rich.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.2.0

import logging
from typing import Union

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

HOPCODER_THEME = Theme({
    "logging.level.success": "bold green",
    "hopcoder.rule": "cyan",
})


class ConsoleManager:
    """
    One named logger plus a Rich console for the whole agent core.

    Everything is written to stderr: a host embedding the core may use
    stdout for its own protocol.
    """
    def __init__(self, logger_name: str = "HopCoder"):
        self._console = Console(theme=HOPCODER_THEME, stderr=True)
        self._logger = logging.getLogger(logger_name)
        if not self._logger.handlers:
            self._logger.addHandler(self._build_handler())
            self._logger.setLevel(logging.INFO)
            self._logger.propagate = False

    def _build_handler(self) -> logging.Handler:
        handler = RichHandler(
            console=self._console,
            rich_tracebacks=True,
            show_path=False,
            keywords=["SUCCESS", "HopCoder", "Tool"],
        )
        handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
        return handler

    def set_level(self, level: Union[str, int]):
        self._logger.setLevel(level.upper() if isinstance(level, str) else level)

    def debug(self, message: str):
        self._logger.debug(message)

    def info(self, message: str):
        self._logger.info(message)

    def success(self, message: str):
        self._logger.log(SUCCESS, message)

    def warning(self, message: str):
        self._logger.warning(message)

    def error(self, message: str):
        self._logger.error(message)

    def exception(self, message: str):
        """Logs at ERROR with the active exception's traceback."""
        self._logger.exception(message)

    def rule(self, title: str):
        if self._logger.isEnabledFor(logging.DEBUG):
            self._console.rule(Text(title, style="bold"), style="hopcoder.rule")

    def display_error_panel(self, title: str, error_message: str):
        self._console.print(Panel(Text(error_message), title=Text(title, style="bold red"), border_style="red"))


console = ConsoleManager()
