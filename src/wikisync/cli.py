import argparse
import asyncio
import logging
import os
import subprocess
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import daemon
from .config import CONFIG_FILE
from .constants import APP_NAME
from .errors import WikiSyncError
from .models import NewWorkspaceConfig, SubWikiRoute, SupportedStorageServices, Workspace
from .registry import JsonWorkspaceRegistry

logger = logging.getLogger(APP_NAME)
console = Console()


def find_workspace(registry: JsonWorkspaceRegistry, key: str) -> Workspace | None:
    """Resolves a workspace by id, unique id prefix, or name."""
    if workspace := registry.get(key):
        return workspace
    matches = [
        w
        for w in registry.get_workspaces_as_list()
        if w.id.startswith(key) or w.name == key
    ]
    return matches[0] if len(matches) == 1 else None


def print_error(error: WikiSyncError) -> None:
    console.print(
        Panel(
            error.description,
            title=f"[bold red]{error.category}[/bold red]",
            border_style="red",
        )
    )


def open_config() -> None:
    """Opens the global configuration file in the system default editor."""
    if not CONFIG_FILE.exists():
        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w") as f:
            f.write(
                "# wikisync configuration\n\n"
                "[sync]\n"
                '# sync_debounce_interval = "30m"\n'
                "# sync_only_when_no_draft = false\n\n"
                "[auth.github]\n"
                '# username = "you"\n'
                '# token_env = "GITHUB_TOKEN"\n'
            )

    editor = os.environ.get("EDITOR")
    if not editor:
        editor = "open" if sys.platform == "darwin" else "nano"

    console.print(f"Opening [cyan]{CONFIG_FILE}[/cyan]...")
    try:
        subprocess.run([editor, str(CONFIG_FILE)])
    except OSError as e:
        console.print(f"[red]Could not open editor: {e}[/red]")


def show_config_reference() -> None:
    """Displays a formatted table of all available configuration options."""
    table = Table(title="wikisync Configuration Schema", show_lines=True)
    table.add_column("Section", style="cyan", justify="right")
    table.add_column("Key", style="green")
    table.add_column("Type", style="dim")
    table.add_column("Default", style="yellow")
    table.add_column("Description")

    table.add_row(
        "sync",
        "sync_debounce_interval",
        "int | str",
        '"30m"',
        "Time between interval syncs (e.g., '30m', '1h', 1800000 ms).",
    )
    table.add_row(
        "", "sync_only_when_no_draft", "bool", "false", "Skip syncs while drafts exist."
    )
    table.add_row(
        "",
        "draft_check_fail_open",
        "bool",
        "true",
        "Let the sync through when drafts cannot be queried.",
    )
    table.add_row(
        "",
        "coalesce_overlapping",
        "bool",
        "true",
        "Drop a sync request for a workspace that is already syncing.",
    )
    table.add_row(
        "ai",
        "generate_backup_title",
        "bool",
        "false",
        "Ask a language model to write commit messages.",
    )
    table.add_row("", "timeout", "int | str", '"5s"', "Time budget for the model.")
    table.add_row("", "provider", "str", '""', "Provider name, required for generation.")
    table.add_row("", "model", "str", '""', "Model name, required for generation.")
    table.add_row(
        "", "base_url", "str", '"https://api.openai.com/v1"', "OpenAI-compatible API root."
    )
    table.add_row(
        "", "api_key_env", "str", '"OPENAI_API_KEY"', "Variable holding the API key."
    )
    table.add_row(
        "limits",
        "max_log_size",
        "int | str",
        '"5mb"',
        "Max size for log files before rotation (e.g., '5mb', '1gb').",
    )
    table.add_row(
        "network", "probe_host", "str", '"github.com"', "Host probed for connectivity."
    )
    table.add_row("", "probe_timeout", "int | str", '"3s"', "Probe time budget.")
    table.add_row(
        "auth.<service>",
        "username / email / token / token_env / branch",
        "str",
        "-",
        "Credentials for github, gitlab, codeberg or gitea.",
    )

    console.print(table)


def list_workspaces() -> None:
    """Lists all registered workspaces."""
    registry = JsonWorkspaceRegistry()
    workspaces = registry.get_workspaces_as_list()
    if not workspaces:
        console.print("[yellow]No workspaces registered.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Id", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Folder")
    table.add_column("Storage")
    table.add_column("Status")

    for w in workspaces:
        if w.hibernated:
            status = "[yellow]Hibernated[/yellow]"
        elif not w.wiki_folder_location.exists():
            status = "[red]Missing[/red]"
        else:
            status = "[green]Active[/green]" if w.active else "Idle"
        name = f"  └ {w.name}" if w.is_sub_wiki else w.name
        table.add_row(
            w.id[:8],
            name,
            str(w.wiki_folder_location).replace(str(Path.home()), "~"),
            w.storage_service.value,
            status,
        )

    console.print(table)


async def _sync(key: str) -> int:
    services = daemon.build_services()
    try:
        workspace = find_workspace(services.registry, key)
        if workspace is None:
            console.print(f"[red]No workspace matches '{key}'.[/red]")
            return 1
        with console.status(f"Syncing {workspace.name}...", spinner="dots"):
            await services.sync.sync_wiki_if_needed(workspace)
        console.print(f"[bold green]✔ {workspace.name} synced.[/bold green]")
        return 0
    except WikiSyncError as e:
        print_error(e)
        return 1
    finally:
        await services.aclose()


async def _add(args: argparse.Namespace) -> int:
    services = daemon.build_services()
    try:
        storage = SupportedStorageServices(args.storage)
        path = Path(args.path).expanduser().resolve()
        main = None
        if args.main:
            main = find_workspace(services.registry, args.main)
            if main is None or main.is_sub_wiki:
                console.print(f"[red]No main workspace matches '{args.main}'.[/red]")
                return 1

        config = NewWorkspaceConfig(
            name=args.name or path.name,
            wiki_folder_location=path,
            storage_service=storage,
            git_url=args.git_url,
            is_sub_wiki=main is not None,
            main_wiki_id=main.id if main else None,
            main_wiki_to_link=main.wiki_folder_location if main else None,
            tag_name=args.tag,
            sync_on_interval=args.sync_on_interval,
            backup_on_interval=not args.no_backup,
            read_only_mode=args.read_only,
        )
        path.mkdir(parents=True, exist_ok=True)
        user_info = await services.auth.get_storage_service_user_info(storage)
        workspace = await services.workspaces.init_wiki_git_transaction(config, user_info)

        if main is not None:
            await services.wiki.link_sub_wiki(main.wiki_folder_location, path)
            if args.tag:
                await services.wiki.update_sub_wiki_plugin_content(
                    main.wiki_folder_location, SubWikiRoute(args.tag, path.name)
                )

        console.print(
            f"[bold green]✔ Registered {workspace.name}[/bold green] [dim]({workspace.id})[/dim]"
        )
        return 0
    except WikiSyncError as e:
        print_error(e)
        return 1
    finally:
        await services.aclose()


async def _remove(key: str) -> int:
    services = daemon.build_services()
    try:
        workspace = find_workspace(services.registry, key)
        if workspace is None:
            console.print(f"[red]No workspace matches '{key}'.[/red]")
            return 1
        if await services.workspaces.remove_workspace(workspace.id):
            console.print(f"[bold green]✔ Removed {workspace.name}.[/bold green]")
        else:
            console.print("Cancelled.")
        return 0
    finally:
        await services.aclose()


def main() -> None:
    """Main entry point for the wikisync CLI."""
    parser = argparse.ArgumentParser(prog=APP_NAME)
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run the sync daemon")
    run_parser.add_argument(
        "--interactive", "-i", action="store_true", help="Log to the terminal"
    )

    sync_parser = subparsers.add_parser("sync", help="Sync one workspace now")
    sync_parser.add_argument("workspace", help="Workspace id, id prefix or name")

    subparsers.add_parser("list", help="List registered workspaces")

    add_parser = subparsers.add_parser("add", help="Register a wiki folder")
    add_parser.add_argument("path", help="Wiki folder")
    add_parser.add_argument("--name", help="Display name (default: folder name)")
    add_parser.add_argument(
        "--storage",
        choices=[s.value for s in SupportedStorageServices],
        default=SupportedStorageServices.LOCAL.value,
        help="Where the history is synced (default: local)",
    )
    add_parser.add_argument("--git-url", help="Remote repository URL")
    add_parser.add_argument("--main", help="Main workspace of a sub-wiki")
    add_parser.add_argument("--tag", help="Tag routed into the sub-wiki")
    add_parser.add_argument(
        "--sync-on-interval", action="store_true", help="Sync with the remote on interval"
    )
    add_parser.add_argument(
        "--no-backup", action="store_true", help="Disable interval backups"
    )
    add_parser.add_argument(
        "--read-only", action="store_true", help="Always take the remote state"
    )

    remove_parser = subparsers.add_parser("remove", help="Unregister a workspace")
    remove_parser.add_argument("workspace", help="Workspace id, id prefix or name")

    config_parser = subparsers.add_parser(
        "config", help="Open global config file or view options"
    )
    config_parser.add_argument(
        "--list",
        "-l",
        action="store_true",
        help="List all available configuration options and their descriptions",
    )

    args = parser.parse_args()

    if args.command == "run":
        daemon.main(interactive=args.interactive)
        return
    elif args.command == "sync":
        daemon.setup_logging(interactive=True)
        sys.exit(asyncio.run(_sync(args.workspace)))
    elif args.command == "list":
        list_workspaces()
        return
    elif args.command == "add":
        daemon.setup_logging(interactive=True)
        sys.exit(asyncio.run(_add(args)))
    elif args.command == "remove":
        daemon.setup_logging(interactive=True)
        sys.exit(asyncio.run(_remove(args.workspace)))
    elif args.command == "config":
        if args.list:
            show_config_reference()
        else:
            open_config()
        return

    parser.print_help()


if __name__ == "__main__":
    main()
