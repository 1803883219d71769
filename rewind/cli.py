"""Rewind CLI - Main command-line interface."""

import asyncio
import logging
import sys
from typing import Optional

import click
import questionary
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from rewind import __version__
from rewind.client import RewindClient
from rewind.config import get_config, get_cookie_file, save_config
from rewind.cookies import CookieStore
from rewind.errors import ApiError
from rewind.models import EpisodeInfo, Library, LoginRequest, SeasonInfo, ShowInfo, StreamStatus
from rewind.player import get_available_players, is_player_available, play
from rewind.session import StreamSessionController
from rewind.states import (
    BrowserState, BrowserView, EpisodePlayer, EpisodeState, HomeState,
    LibraryState, LoginState, SeasonState, ShowState, describe_browser_state
)
from rewind.viewmodel import MainViewModel

console = Console()
logger = logging.getLogger(__name__)

STREAM_START_TIMEOUT = 120

BACK = "back"
QUIT = "quit"


# ===== SETUP HELPERS =====

def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )
    # httpx logs every request at INFO; our hooks already do at DEBUG
    logging.getLogger("httpx").setLevel(logging.WARNING)


def make_client(server: Optional[str]) -> RewindClient:
    """Create a client for the configured (or given) server, with saved cookies."""
    config = get_config()
    url = server or config.server_url
    if not url:
        raise click.UsageError("No server configured. Pass --server or run 'rewind config --server URL'.")

    cookies = CookieStore.load(get_cookie_file()) if config.persist_cookies else CookieStore()
    return RewindClient(url, cookie_store=cookies, timeout=config.request_timeout)


def save_cookies(client: RewindClient) -> None:
    if get_config().persist_cookies:
        client.cookies.save(get_cookie_file())


def make_view_model(client: RewindClient) -> MainViewModel:
    config = get_config()
    sessions = StreamSessionController(
        client,
        available_interval=config.available_poll_seconds,
        pending_interval=config.pending_poll_seconds,
    )
    vm = MainViewModel(client, sessions=sessions)
    vm.errors.subscribe(lambda e: e and console.print(f"[red]{e}[/]"))
    vm.stream_errors.subscribe(lambda e: e and console.print(f"[red]{e}[/]"))
    return vm


def run_async(coro):
    """Run an async function."""
    return asyncio.run(coro)


# ===== DISPLAY HELPERS =====

def display_banner(server: str):
    """Display the Rewind banner."""
    console.print(Panel(
        Text(server, style="bold cyan"),
        title="[bold white]⏪ Rewind CLI[/]",
        subtitle=f"v{__version__}"
    ))


def display_libraries(libraries: list[Library]):
    table = Table(title=f"Libraries ({len(libraries)})", show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=4)
    table.add_column("Name", style="cyan")
    for i, lib in enumerate(libraries, 1):
        table.add_row(str(i), lib.name)
    console.print(table)


def display_shows(shows: list[ShowInfo], library: str):
    table = Table(title=f"{library} ({len(shows)} shows)", show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", style="cyan")
    table.add_column("ID", style="dim")
    for i, show in enumerate(shows, 1):
        table.add_row(str(i), show.title or "(No title)", show.id)
    console.print(table)


def display_seasons(seasons: list[SeasonInfo]):
    table = Table(title=f"Seasons ({len(seasons)})", show_header=True, header_style="bold magenta")
    table.add_column("Season", style="magenta", width=8)
    table.add_column("ID", style="dim")
    for season in sorted(seasons, key=lambda s: s.season_number):
        table.add_row(str(season.season_number), season.id)
    console.print(table)


def display_episodes(episodes: list[EpisodeInfo]):
    table = Table(title=f"Episodes ({len(episodes)})", show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", style="cyan")
    table.add_column("ID", style="dim")
    table.add_column("Library", style="green")
    for i, ep in enumerate(episodes, 1):
        table.add_row(str(i), ep.title or "(No title)", ep.id, ep.library_id)
    console.print(table)


# ===== SESSION FLOWS =====

async def do_login(vm: MainViewModel, username: str, password: str) -> bool:
    """Log in through the view model; on success the library list is loaded too."""
    vm.login(LoginRequest(username=username, password=password))
    with console.status("[dim]Logging in...[/]"):
        await vm.join_loads()
    return vm.login_state.value == LoginState.LOGGED_IN


async def ensure_logged_in(vm: MainViewModel) -> bool:
    """Reuse saved cookies if they still work, otherwise ask for credentials."""
    if len(vm.client.cookies):
        vm.errors.set(None)
        vm.set_browser_state(HomeState())
        with console.status("[dim]Loading libraries...[/]"):
            await vm.join_loads()
        if vm.errors.value is None:
            vm.mark_logged_in()
            return True

    config = get_config()
    username = await questionary.text("Username:", default=config.username).ask_async()
    if username is None:
        return False
    password = await questionary.password("Password:").ask_async()
    if password is None:
        return False

    if not await do_login(vm, username, password):
        console.print("[red]Login failed[/]")
        return False

    if username != config.username:
        config.username = username
        save_config(config)
    return True


async def play_episode(vm: MainViewModel, episode: EpisodeInfo, player: Optional[str] = None) -> None:
    """Open the player view, play once the stream is available, then return to the browser."""
    vm.set_view_state(EpisodePlayer(episode))
    try:
        with console.status(f"[dim]Preparing stream for {episode.title}...[/]"):
            status = await asyncio.wait_for(
                vm.stream_status.wait_for(lambda s: s != StreamStatus.PENDING),
                timeout=STREAM_START_TIMEOUT,
            )
        if status != StreamStatus.AVAILABLE:
            if status == StreamStatus.CANCELED:
                console.print("[yellow]Stream was canceled by the server[/]")
            return

        props = vm.stream_props.value
        url = vm.client.stream_url(props)
        headers = {}
        cookie = vm.client.cookies.header_for(url)
        if cookie:
            headers["Cookie"] = cookie

        console.print(f"[green]▶ Playing: {episode.title}[/]")
        code = await play(url, player=player, title=episode.title, headers=headers)
        logger.debug("Player exited with %s", code)
        if code is None:
            console.print("[red]Could not start the player[/]")
    except asyncio.TimeoutError:
        console.print("[red]Stream did not become available in time[/]")
    finally:
        vm.set_view_state(BrowserView())


async def choose(vm: MainViewModel, state: BrowserState):
    """Ask the user for the next screen (or an action) from the current one."""
    if isinstance(state, HomeState):
        choices = [questionary.Choice(title=lib.name, value=LibraryState(lib)) for lib in vm.libraries.value]
    elif isinstance(state, LibraryState):
        choices = [questionary.Choice(title=show.title or show.id, value=ShowState(show)) for show in vm.shows.value]
    elif isinstance(state, ShowState):
        choices = [
            questionary.Choice(title=f"Season {season.season_number}", value=SeasonState(season))
            for season in sorted(vm.seasons.value, key=lambda s: s.season_number)
        ]
    elif isinstance(state, SeasonState):
        choices = [questionary.Choice(title=ep.title or ep.id, value=EpisodeState(ep)) for ep in vm.episodes.value]
    elif isinstance(state, EpisodeState):
        choices = [questionary.Choice(title="▶ Play", value=EpisodePlayer(state.episode))]
    else:
        raise TypeError(f"Unknown browser state: {state!r}")

    if isinstance(state, HomeState):
        choices.append(questionary.Choice(title="[Quit]", value=QUIT))
    else:
        choices.append(questionary.Choice(title="[Back]", value=BACK))

    selected = await questionary.select(f"{describe_browser_state(state)}:", choices=choices).ask_async()
    return selected or QUIT


async def browse_session(server: Optional[str], player: Optional[str] = None) -> None:
    """Interactive Home -> Library -> Show -> Season -> Episode walk."""
    async with make_client(server) as client:
        display_banner(client.base_url)
        vm = make_view_model(client)
        try:
            if not await ensure_logged_in(vm):
                return

            history: list[BrowserState] = []
            while True:
                selected = await choose(vm, vm.browser_state.value)

                if selected == QUIT:
                    break
                if isinstance(selected, EpisodePlayer):
                    await play_episode(vm, selected.episode, player=player)
                    await vm.join_loads()
                    continue

                if selected == BACK:
                    target = history.pop() if history else HomeState()
                else:
                    history.append(vm.browser_state.value)
                    target = selected

                vm.set_browser_state(target)
                with console.status("[dim]Loading...[/]"):
                    await vm.join_loads()
        finally:
            await vm.close()
            save_cookies(client)


# ===== CLI COMMANDS =====

@click.group(invoke_without_command=True)
@click.option("--server", "-s", default=None, help="Rewind server URL (overrides config)")
@click.option("--verbose", is_flag=True, help="Log HTTP traffic and state changes")
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.pass_context
def main(ctx, server, verbose, version):
    """Rewind CLI - Browse and stream your Rewind media server."""
    if version:
        console.print(f"Rewind CLI v{__version__}")
        ctx.exit()

    setup_logging(verbose)
    ctx.obj = {"server": server}

    if ctx.invoked_subcommand is None:
        run_async(browse_session(server))


@main.command()
@click.option("--player", type=click.Choice(["mpv", "vlc"]), default=None, help="Player to use")
@click.pass_obj
def browse(obj, player: Optional[str]):
    """Browse the catalog interactively and play episodes."""
    run_async(browse_session(obj["server"], player=player))


@main.command()
@click.option("--username", "-u", default=None, help="Username (defaults to the saved one)")
@click.password_option("--password", "-p", confirmation_prompt=False, help="Password")
@click.pass_obj
def login(obj, username: Optional[str], password: str):
    """Log in and save the session cookie."""
    config = get_config()
    username = username or config.username or click.prompt("Username")

    async def do():
        async with make_client(obj["server"]) as client:
            vm = make_view_model(client)
            try:
                ok = await do_login(vm, username, password)
            finally:
                await vm.close()
            if ok:
                save_cookies(client)
            return ok

    if not run_async(do()):
        console.print("[red]Login failed[/]")
        sys.exit(1)

    config.username = username
    save_config(config)
    console.print(f"[green]✓ Logged in as {username}[/]")


def _fetch(server: Optional[str], fetch):
    """Run one API call with a fresh client, exiting on failure."""
    async def do():
        async with make_client(server) as client:
            result = await fetch(client)
            save_cookies(client)
            return result

    try:
        return run_async(do())
    except ApiError as e:
        if e.status_code in (401, 403):
            console.print("[red]Not logged in. Run 'rewind login' first.[/]")
        else:
            console.print(f"[red]{e}[/]")
        sys.exit(1)


@main.command()
@click.pass_obj
def libraries(obj):
    """List libraries."""
    display_libraries(_fetch(obj["server"], lambda c: c.list_libraries()))


@main.command()
@click.argument("library")
@click.pass_obj
def shows(obj, library: str):
    """List shows of a library."""
    display_shows(_fetch(obj["server"], lambda c: c.list_shows(library)), library)


@main.command()
@click.argument("show_id")
@click.pass_obj
def seasons(obj, show_id: str):
    """List seasons of a show."""
    display_seasons(_fetch(obj["server"], lambda c: c.list_seasons(show_id)))


@main.command()
@click.argument("season_id")
@click.pass_obj
def episodes(obj, season_id: str):
    """List episodes of a season."""
    display_episodes(_fetch(obj["server"], lambda c: c.list_episodes(season_id)))


@main.command("play")
@click.argument("episode_id")
@click.option("--library", "-l", "library_id", required=True, help="Library ID of the episode")
@click.option("--title", "-t", default=None, help="Title shown by the player")
@click.option("--player", type=click.Choice(["mpv", "vlc"]), default=None, help="Player to use")
@click.pass_obj
def play_cmd(obj, episode_id: str, library_id: str, title: Optional[str], player: Optional[str]):
    """Stream a single episode."""
    player = player or get_config().default_player
    if not is_player_available(player):
        console.print(f"[red]{player} not found. Available: {get_available_players()}[/]")
        sys.exit(1)

    episode = EpisodeInfo(id=episode_id, title=title or episode_id, library_id=library_id)

    async def do():
        async with make_client(obj["server"]) as client:
            vm = make_view_model(client)
            try:
                await play_episode(vm, episode, player=player)
            finally:
                await vm.close()
                save_cookies(client)
            return vm.stream_errors.value is None

    if not run_async(do()):
        sys.exit(1)


@main.command()
@click.option("--show", is_flag=True, help="Show current configuration")
@click.option("--server", "server_url", help="Set server URL")
@click.option("--username", help="Set default username")
@click.option("--player", type=click.Choice(["mpv", "vlc"]), help="Set default player")
@click.option("--persist-cookies/--no-persist-cookies", default=None, help="Keep the session between runs")
def config(show: bool, server_url: Optional[str], username: Optional[str], player: Optional[str],
           persist_cookies: Optional[bool]):
    """View or edit configuration."""
    config = get_config()

    if show or not (server_url or username or player or persist_cookies is not None):
        table = Table(title="Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Server URL", config.server_url or "(none)")
        table.add_row("Username", config.username or "(none)")
        table.add_row("Default Player", config.default_player)
        table.add_row("Request Timeout", f"{config.request_timeout:g}s")
        table.add_row("Poll (available)", f"{config.available_poll_seconds:g}s")
        table.add_row("Poll (pending)", f"{config.pending_poll_seconds:g}s")
        table.add_row("Persist Cookies", "yes" if config.persist_cookies else "no")

        console.print(table)
        return

    if server_url:
        config.server_url = server_url.rstrip("/")
    if username:
        config.username = username
    if player:
        config.default_player = player
    if persist_cookies is not None:
        config.persist_cookies = persist_cookies
        if not persist_cookies:
            get_cookie_file().unlink(missing_ok=True)

    save_config(config)
    console.print("[green]✓ Configuration saved[/]")


if __name__ == "__main__":
    main()
