import asyncio

from rich.console import Console
from rich.prompt import Prompt

from .interfaces import Prompter
from .models import RemoveChoice, Workspace

CHOICES = {
    "reference": RemoveChoice.REMOVE_REFERENCE,
    "delete": RemoveChoice.REMOVE_AND_DELETE,
    "cancel": RemoveChoice.CANCEL,
}


class ConsolePrompter(Prompter):
    """Asks on the terminal; the blocking read runs in a worker thread."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def _ask(self, workspace: Workspace) -> RemoveChoice:
        self.console.print(
            f"[bold yellow]Remove workspace[/bold yellow] {workspace.name} "
            f"[dim]({workspace.wiki_folder_location})[/dim]\n"
            "   [cyan]reference[/cyan]: forget the workspace, keep its files\n"
            "   [cyan]delete[/cyan]: forget the workspace and delete its folder"
        )
        answer = Prompt.ask(
            "   Choice",
            choices=list(CHOICES),
            default="cancel",
            console=self.console,
        )
        return CHOICES[answer]

    async def confirm_removal(self, workspace: Workspace) -> RemoveChoice:
        return await asyncio.to_thread(self._ask, workspace)
