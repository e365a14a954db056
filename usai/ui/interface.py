import os

from rich.align import Align
from rich.console import Console, Group
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.styles import Style

from .. import __version__
from ..core.errors import USAiError

CODE_THEME = "monokai"
HISTORY_FILE = os.path.join(os.path.expanduser("~"), ".usai_history")


def _split_thinking(text: str):
    """Separate a leading ``<think>...</think>`` block from the answer.

    Returns ``(thinking, answer, still_thinking)``.
    """
    if "<think>" not in text:
        return "", text.strip(), False
    if "</think>" in text:
        thinking, answer = text.split("</think>", 1)
        return thinking.replace("<think>", "").strip(), answer.strip(), False
    return text.replace("<think>", "").strip(), "", True


class UI:
    """Terminal rendering for the usai command."""

    def __init__(self, console: Console = None):
        self.console = console or Console()
        self.pt_style = Style.from_dict({
            'prompt': 'ansicyan bold',
        })
        self._session = None

    def banner(self, base_url: str):
        title = Text(f"USAi API client v{__version__}", style="bold bright_cyan")
        self.console.print(Align.center(title))
        self.console.print(Align.center(Text(base_url, style="dim")))
        self.console.print(Rule(style="dim cyan"))

    def show_msg(self, title: str, content: str, color: str = "white"):
        self.console.print(Panel(content, title=f"[bold]{title}[/]", border_style=color, padding=(1, 2)))

    def show_error(self, error: Exception):
        if isinstance(error, USAiError):
            lines = [f"[bold]{error.message}[/]", "", f"kind: {error.kind.name}"]
            if error.status_code:
                lines.append(f"status: {error.status_code}")
            if error.code:
                lines.append(f"code: {error.code}")
            if error.param:
                lines.append(f"param: {error.param}")
            if error.retry_after is not None:
                lines.append(f"retry after: {error.retry_after}s")
            self.show_msg("API Error", "\n".join(lines), color="red")
        else:
            self.show_msg("Error", str(error), color="red")

    def show_models(self, models):
        table = Table(show_header=True, header_style="bold magenta", border_style="dim white", expand=True)
        table.add_column("#", style="cyan", justify="right", width=4)
        table.add_column("Model", style="bold bright_white")
        table.add_column("Owned by", style="green")

        for idx, model in enumerate(models.data, 1):
            table.add_row(str(idx), model.id or "", model.owned_by or "")

        self.console.print(table)
        self.console.print(f"[dim]{len(models.data)} model(s)[/]")

    def show_embeddings(self, response, preview: int = 5):
        table = Table(show_header=True, header_style="bold magenta", border_style="dim white")
        table.add_column("Index", style="cyan", justify="right")
        table.add_column("Dimensions", style="yellow", justify="right")
        table.add_column("Preview", style="dim white")

        for idx, vector in enumerate(response.embeddings):
            head = ", ".join(f"{v:.4f}" if isinstance(v, float) else str(v) for v in vector[:preview])
            table.add_row(str(idx), str(len(vector)), f"[{head}{', ...' if len(vector) > preview else ''}]")

        self.console.print(table)
        usage = response.usage
        if usage:
            self.console.print(f"[dim]model: {response.model}  tokens: {usage.total_tokens}[/]")

    def render_markdown(self, title: str, text: str):
        self.console.print(Rule(f"[bold bright_cyan]{title}[/bold bright_cyan]", style="bright_blue"))
        self._print_answer(text)

    def stream_markdown(self, title: str, content_generator) -> str:
        """Render Markdown as it streams in; returns the full response."""
        full_response = ""

        self.console.print(Rule(f"[bold bright_cyan]{title}[/bold bright_cyan]", style="bright_blue"))

        with Live(
            Spinner("dots", text="Waiting for response...", style="bright_cyan"),
            console=self.console,
            refresh_per_second=15,
            transient=True,
        ) as live:
            for chunk in content_generator:
                if not chunk:
                    continue
                full_response += chunk

                thinking, answer, still_thinking = _split_thinking(full_response)
                elements = []
                if thinking:
                    elements.append(Panel(
                        thinking,
                        title="[italic dim bright_cyan]Thought Process[/]",
                        border_style="dim blue",
                        subtitle="[dim]Analyzing...[/]" if still_thinking else None,
                        padding=(0, 1),
                    ))
                if answer:
                    elements.append(Markdown(answer, code_theme=CODE_THEME))

                if elements:
                    live.update(Group(*elements))

        if not full_response:
            self.console.print("[bold red]✗ Empty response.[/]")
            return full_response

        self._print_answer(full_response)
        return full_response

    def _print_answer(self, text: str):
        thinking, answer, _ = _split_thinking(text)
        if thinking:
            self.console.print(Panel(
                thinking,
                title="[bold bright_cyan]Thought Process[/]",
                border_style="bright_blue",
                style="dim",
                padding=(1, 2),
            ))
        self.console.print(Markdown(answer, code_theme=CODE_THEME))
        self.console.print(Rule(style="dim bright_blue"))

    def get_input(self, label: str = "YOU") -> str:
        """Read one line with history; EOF reads as ``/exit``."""
        if self._session is None:
            self._session = PromptSession(history=FileHistory(HISTORY_FILE))

        self.console.print(f"[bold bright_yellow]◆ {label}[/]")
        try:
            return self._session.prompt([('class:prompt', ' ╰─> ')], style=self.pt_style)
        except EOFError:
            return "/exit"
