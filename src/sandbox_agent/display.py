# display.py
# All terminal output for the assistant.
#
# This module owns presentation entirely. harness.py and run.py never format
# strings for the terminal: they call named functions here.
#
# Colour language:
#   cyan     session / routing events
#   yellow   tool operations in progress
#   green    success / final answers
#   red      failures and halts
#   dim      secondary detail

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

console = Console()

VERSION = "1.0.0"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    value = value.replace("\n", " ")
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


def banner(provider: str, model: str, root: str) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Sandbox Agent[/bold cyan]\n"
            "[dim]A terminal coding assistant confined to one working directory[/dim]\n\n"
            f"[dim]Provider  :[/dim] [white]{escape(provider)}[/white]\n"
            f"[dim]Model     :[/dim] [white]{escape(model)}[/white]\n"
            f"[dim]Directory :[/dim] [white]{escape(root)}[/white]\n\n"
            "[dim]Type a request, or /help for commands.[/dim]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def help_text(tool_names: list[str]) -> None:
    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 1))
    table.add_column("Command", style="bold cyan", width=36)
    table.add_column("Description", style="white")
    table.add_row("/help", "Show this help")
    table.add_row("/clear", "Clear the screen")
    table.add_row("/reset", "Clear the conversation history")
    table.add_row("/version", "Show the version")
    table.add_row("/model", "Show the current model")
    table.add_row(escape("/switch <provider> <model> [api_key]"), "Switch to another model")
    table.add_row("/params temperature=<v> max_tokens=<n>", "Adjust model parameters")
    table.add_row("/exit, /quit", "Leave")
    console.print()
    console.print(Panel(table, title=_label("COMMANDS", "cyan"), border_style="cyan", padding=(0, 1)))
    console.print(f"[dim]  Tools: {escape(', '.join(tool_names))}[/dim]")


def version() -> None:
    console.print(f"[cyan]sandbox-agent v{VERSION}[/cyan]")


def info(message: str) -> None:
    console.print(f"\n[white]{escape(message)}[/white]")


def error(message: str) -> None:
    console.print(f"\n[bold red]Error:[/bold red] [white]{escape(message)}[/white]")


def model_info(details: dict) -> None:
    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 1))
    table.add_column("Key", style="dim", width=14)
    table.add_column("Value", style="white")
    for key, value in details.items():
        table.add_row(escape(str(key)), escape(str(value)))
    console.print()
    console.print(Panel(table, title=_label("MODEL", "cyan"), border_style="cyan", padding=(0, 1)))


def goodbye() -> None:
    console.print("\n[cyan]Goodbye![/cyan]")


# ---------------------------------------------------------------------------
# Turn
# ---------------------------------------------------------------------------


def round_separator() -> None:
    console.print()


def tool_start(description: str) -> None:
    console.print(f"[yellow]⚙  {escape(description)}[/yellow]")


def tool_success() -> None:
    console.print("[green]  ✓ Done[/green]")


def tool_failure(message: str) -> None:
    console.print(f"[red]  ✗ Failed:[/red] [dim]{escape(_mono(message, 200))}[/dim]")


def turn_complete() -> None:
    console.print("\n[bold green]✨ Done[/bold green]")


def model_error(message: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold red]The model call failed.[/bold red]\n\n[white]{escape(message)}[/white]",
            title=_label("MODEL ERROR ✗", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )


def iteration_cap(limit: int) -> None:
    console.print()
    console.print(Rule(f"[red]Stopped after {limit} iterations[/red]", style="red"))


def final_result(result: str) -> None:
    console.print()
    console.print(
        Panel(
            Text(result),
            title=_label("ASSISTANT", "green"),
            border_style="green",
            padding=(1, 2),
        )
    )


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


def prompt() -> str:
    return console.input("\n[bold green]> [/bold green]")


def confirm_exit() -> bool:
    answer = console.input("\n[yellow]Exit? (y/n): [/yellow]")
    return answer.strip().lower() in ("y", "yes")
