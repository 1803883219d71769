"""External video player launcher (mpv / VLC)."""

import asyncio
import logging
import os
import shutil
from typing import Literal

from rewind.config import get_config

logger = logging.getLogger(__name__)

PlayerName = Literal["mpv", "vlc"]


def find_player(player: PlayerName) -> str | None:
    """Find player executable path."""
    if player == "mpv":
        paths = ["mpv", "mpv.exe"]
        for p in paths:
            if shutil.which(p):
                return p
    elif player == "vlc":
        paths = [
            "vlc",
            "vlc.exe",
            r"C:\Program Files\VideoLAN\VLC\vlc.exe",
            r"C:\Program Files (x86)\VideoLAN\VLC\vlc.exe",
        ]

        app_data = os.environ.get("APPDATA")
        if app_data:
            paths.append(os.path.join(app_data, "VLC", "vlc.exe"))

        for p in paths:
            if shutil.which(p):
                return p
            if os.path.isfile(p):
                return p
    return None


def build_mpv_args(
    url: str,
    title: str | None = None,
    headers: dict[str, str] | None = None,
    extra_args: list[str] | None = None,
) -> list[str]:
    """Build mpv command arguments."""
    args = ["mpv", "--force-window=yes", "--no-ytdl"]

    if title:
        args.append(f"--title={title}")

    # Native flags for User-Agent / Referer, everything else as raw header fields
    if headers:
        for k, v in headers.items():
            if k.lower() == "referer":
                args.append(f"--referrer={v}")
            elif k.lower() == "user-agent":
                args.append(f"--user-agent={v}")
            else:
                # One arg per header: commas in cookie values break the list form
                args.append(f"--http-header-fields={k}: {v}")

    config = get_config()
    args.extend(config.mpv_args)

    if extra_args:
        args.extend(extra_args)

    args.append(url)
    return args


def build_vlc_args(
    url: str,
    title: str | None = None,
    headers: dict[str, str] | None = None,
    extra_args: list[str] | None = None,
) -> list[str]:
    """Build VLC command arguments."""
    vlc_path = find_player("vlc") or "vlc"
    args = [vlc_path, "--no-repeat", "--no-loop", "--quiet", "--network-caching=1000"]

    if title:
        args.extend(["--meta-title", title])

    if headers:
        if "Referer" in headers:
            args.extend(["--http-referrer", headers["Referer"]])
        if "User-Agent" in headers:
            args.extend(["--http-user-agent", headers["User-Agent"]])
        if "Cookie" in headers:
            logger.warning("VLC cannot send cookies; playback may be refused by the server")

    config = get_config()
    args.extend(config.vlc_args)

    if extra_args:
        args.extend(extra_args)

    args.append(url)
    return args


async def play(
    url: str,
    player: PlayerName | None = None,
    title: str | None = None,
    headers: dict[str, str] | None = None,
) -> int | None:
    """
    Play a stream and wait for the player to exit.

    Returns the player's exit code, or None if it could not be started.
    The player runs as a child process so other tasks (the stream
    heartbeat) keep running while it plays.
    """
    config = get_config()
    player = player or config.default_player

    player_path = find_player(player)
    if not player_path:
        logger.error("%s not found. Please install it and ensure it's in your PATH.", player)
        return None

    if player == "mpv":
        args = build_mpv_args(url, title=title, headers=headers)
    else:
        args = build_vlc_args(url, title=title, headers=headers)
    args[0] = player_path

    try:
        process = await asyncio.create_subprocess_exec(*args)
    except OSError as e:
        logger.error("Failed to start %s: %s", player, e)
        return None

    try:
        return await process.wait()
    except asyncio.CancelledError:
        process.terminate()
        raise


def is_player_available(player: PlayerName) -> bool:
    """Check if a player is available."""
    return find_player(player) is not None


def get_available_players() -> list[str]:
    """Get list of available players."""
    return [p for p in ("mpv", "vlc") if is_player_available(p)]
