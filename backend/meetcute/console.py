"""Console session: the input/output ports used by the menu, wizard and bootstrap."""

import sys
from typing import Callable, Optional, TextIO


# ANSI color codes
class Color:
    RESET = '\033[0m'
    BOLD = '\033[1m'
    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    CYAN = '\033[36m'
    GRAY = '\033[90m'


class ConsoleSession:
    """One operator session. Reads a single line at a time; never overlaps prompts.

    Tests substitute ``input_fn`` with scripted answers and ``stdout`` with a buffer.
    """

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        color_enabled: bool = True,
    ):
        self._input = input_fn
        self._stdout = stdout
        self._stderr = stderr
        self.color_enabled = color_enabled
        self.input_closed = False

    @property
    def stdout(self) -> TextIO:
        return self._stdout or sys.stdout

    @property
    def stderr(self) -> TextIO:
        return self._stderr or self._stdout or sys.stderr

    def _colorize(self, text: str, color: str) -> str:
        if not self.color_enabled:
            return text
        return f"{color}{text}{Color.RESET}"

    def print(self, text: str = "") -> None:
        print(text, file=self.stdout)

    def info(self, msg: str) -> None:
        print(f"{self._colorize('[INFO]', Color.CYAN)} {msg}", file=self.stdout)

    def success(self, msg: str) -> None:
        print(f"{self._colorize('[SUCCESS]', Color.GREEN)} {msg}", file=self.stdout)

    def warn(self, msg: str) -> None:
        print(f"{self._colorize('[WARN]', Color.YELLOW)} {msg}", file=self.stdout)

    def error(self, msg: str) -> None:
        print(f"{self._colorize('[ERROR]', Color.RED)} {msg}", file=self.stderr)

    def ask(self, question: str, default: str = "") -> str:
        """Prompt for one line. A blank answer (or EOF) returns ``default``; EOF also sets ``input_closed``."""
        prompt = f"{question} [{default}]: " if default else f"{question}: "
        try:
            answer = self._input(prompt)
        except EOFError:
            self.input_closed = True
            answer = ""
        return answer.strip() or default

    def confirm(self, question: str) -> bool:
        """Yes/no prompt defaulting to no."""
        return self.ask(f"{question} (y/N)").lower() in ("y", "yes")
