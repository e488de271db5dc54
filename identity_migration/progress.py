"""Console spinner showing migration progress."""

from typing import Optional

from rich.console import Console
from rich.status import Status


class SpinnerProgress:
    """
    Single status line with a spinner.

    Purely cosmetic: nothing reads it back and counters live elsewhere.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)
        self.text = ""
        self._status: Optional[Status] = None

    def start(self, text: str) -> None:
        self.text = text
        self._status = self.console.status(text)
        self._status.start()

    def update(self, text: str) -> None:
        self.text = text
        if self._status:
            self._status.update(text)

    def succeed(self, text: str) -> None:
        self.stop()
        self.console.print(f"[green]✔[/green] {text}")

    def fail(self, text: str) -> None:
        self.stop()
        self.console.print(f"[red]✖[/red] {text}")

    def stop(self) -> None:
        if self._status:
            self._status.stop()
            self._status = None
