"""Console rendering: banner, step tree and arrow-key selection."""

import readchar
import typer
from rich.align import Align
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

console = Console()

# ASCII Art Banner
BANNER = r"""
   _             _             ___  ___ ___ ___
  /_\  _ _  __ _| |_ _ _ ___  / _ \|_ _|   \ / __|
 / _ \| ' \/ _` |  _| '_|___|| (_) || || |) | (__
/_/ \_\_||_\__, |\__|_|       \___/|___|___/ \___|
           |___/
"""

TAGLINE = "Angular Starter - OIDC-ready projects from a template"

# key -> label, in the order `create` runs them
CREATE_STEPS = (
    ("clone", "Clone template"),
    ("tokens", "Replace configuration tokens"),
    ("ci", "Configure CI files"),
    ("app-config", "Generate runtime config"),
    ("install", "Install dependencies"),
    ("git", "Initialize git repository"),
    ("final", "Finalize"),
)

STATUS_SYMBOLS = {
    "pending": "[green dim]○[/green dim]",
    "running": "[cyan]○[/cyan]",
    "done": "[green]●[/green]",
    "error": "[red]●[/red]",
    "skipped": "[yellow]○[/yellow]",
}


class StepTracker:
    """Fixed list of steps rendered as a tree; on_change lets a Live display redraw."""

    def __init__(self, title: str, steps=CREATE_STEPS):
        self.title = title
        self.labels = dict(steps)
        self.states = {key: ("pending", "") for key in self.labels}
        self.on_change = None

    def _set(self, key: str, status: str, detail: str):
        self.states[key] = (status, detail or self.states[key][1])
        if self.on_change:
            self.on_change()

    def start(self, key: str, detail: str = ""):
        self._set(key, "running", detail)

    def complete(self, key: str, detail: str = ""):
        self._set(key, "done", detail)

    def error(self, key: str, detail: str = ""):
        self._set(key, "error", detail)

    def skip(self, key: str, detail: str = ""):
        self._set(key, "skipped", detail)

    def finish(self, key: str, ok: bool, detail: str = ""):
        self._set(key, "done" if ok else "error", detail)

    def render(self):
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        for key, label in self.labels.items():
            status, detail = self.states[key]
            if status == "pending":
                tree.add(f"{STATUS_SYMBOLS[status]} [bright_black]{label}[/bright_black]")
            elif detail:
                tree.add(f"{STATUS_SYMBOLS[status]} [white]{label}[/white] [bright_black]({detail.strip()})[/bright_black]")
            else:
                tree.add(f"{STATUS_SYMBOLS[status]} [white]{label}[/white]")
        return tree


def show_banner():
    """Display the ASCII art banner."""
    colors = ["bright_red", "red", "magenta", "bright_magenta", "white"]
    styled_banner = Text()
    for i, line in enumerate(BANNER.strip("\n").split("\n")):
        styled_banner.append(line + "\n", style=colors[i % len(colors)])

    console.print(Align.center(styled_banner))
    console.print(Align.center(Text(TAGLINE, style="italic bright_yellow")))
    console.print()


def select_with_arrows(options: dict, prompt_text: str, default_key: str) -> str:
    """Pick one key of options (key -> description) with the arrow keys.

    Esc or Ctrl+C cancels the whole command.
    """
    keys = list(options)
    index = keys.index(default_key) if default_key in keys else 0

    def panel():
        table = Table.grid(padding=(0, 2))
        for i, key in enumerate(keys):
            marker = "▶" if i == index else " "
            table.add_row(f"[cyan]{marker}[/cyan]", f"[cyan]{key}[/cyan] [dim]({options[key]})[/dim]")
        table.add_row("", "")
        table.add_row("", "[dim]Use ↑/↓ to navigate, Enter to select, Esc to cancel[/dim]")
        return Panel(table, title=f"[bold]{prompt_text}[/bold]", border_style="cyan", padding=(1, 2))

    console.print()
    with Live(panel(), console=console, transient=True, auto_refresh=False) as live:
        while True:
            try:
                key = readchar.readkey()
            except KeyboardInterrupt:
                key = readchar.key.CTRL_C
            if key == readchar.key.ENTER:
                return keys[index]
            if key in (readchar.key.ESC, readchar.key.CTRL_C):
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)
            if key in (readchar.key.UP, readchar.key.DOWN):
                index = (index + (1 if key == readchar.key.DOWN else -1)) % len(keys)
                live.update(panel(), refresh=True)
