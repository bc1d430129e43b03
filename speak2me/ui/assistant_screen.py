"""Rich console output for the voice assistant loop."""

import time
import logging
from typing import Iterable, Optional

from pubsub import pub
from rich.console import Console
from rich.table import Table

from ..models.audio import DeviceInfo
from ..models.events import LevelEvent
from ..recording.publisher import LEVEL_TOPIC

logger = logging.getLogger(__name__)


class LevelMeter:
    """Prints the input level of recorded frames at most every interval_seconds."""

    def __init__(self, console: Console, interval_seconds: float = 0.25, topic: str = LEVEL_TOPIC):
        self.console = console
        self.interval_seconds = interval_seconds
        self.topic = topic
        self._last_print = 0.0
        self.subscribed = False

    def subscribe(self) -> None:
        if not self.subscribed:
            pub.subscribe(self.on_level, self.topic)
            self.subscribed = True

    def unsubscribe(self) -> None:
        if self.subscribed:
            pub.unsubscribe(self.on_level, self.topic)
            self.subscribed = False

    def on_level(self, event: LevelEvent) -> None:
        if event.timestamp - self._last_print < self.interval_seconds:
            return
        self._last_print = event.timestamp
        style = "green" if event.voiced else "dim"
        self.console.print(f"level: peak={event.peak:.3f} rms={event.rms:.3f}", style=style)


class AssistantScreen:
    """All console output of the assistant, in one place."""

    def __init__(self, console: Optional[Console] = None, debug_meters: bool = False):
        self.console = console or Console()
        self.meter = LevelMeter(self.console) if debug_meters else None

    def show_banner(self) -> None:
        self.console.print("[bold]Voice Assistant[/bold]: auto-stop on silence.")
        self.console.print("Press [bold]SPACE[/bold] to start; recording stops after silence, "
                           "on SPACE, or at the time limit. Press [bold]ESC[/bold] to quit.")

    def show_devices(self, devices: Iterable[DeviceInfo], selected: Optional[DeviceInfo] = None) -> None:
        table = Table(title="Input devices", show_header=True, header_style="bold magenta")
        table.add_column("Index", justify="right")
        table.add_column("Name")
        table.add_column("Channels", justify="right")
        table.add_column("Default rate", justify="right")
        for device in devices:
            marker = " *" if selected is not None and device.index == selected.index else ""
            table.add_row(f"{device.index}{marker}", device.name,
                          str(device.max_input_channels), f"{device.default_sample_rate:.0f}")
        self.console.print(table)

    def prompt_start(self) -> None:
        self.console.print("\nPress SPACE to start; auto-stops on silence. (ESC to quit) ")

    def recording_started(self) -> None:
        self.console.print("[bold red]Recording…[/bold red] (speak normally)")
        if self.meter:
            self.meter.subscribe()

    def recording_finished(self) -> None:
        if self.meter:
            self.meter.unsubscribe()

    def processing(self) -> None:
        self.console.print("Processing…")

    def show_transcript(self, text: str) -> None:
        self.console.print(f"[cyan]> You:[/cyan] {text}")

    def show_reply(self, text: str) -> None:
        self.console.print(f"[green]> Assistant:[/green] {text}")

    def show_message(self, text: str, style: str = "yellow") -> None:
        self.console.print(text, style=style)

    def goodbye(self) -> None:
        self.console.print("Goodbye.")
