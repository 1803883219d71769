"""View-model states: login, outer view and inner browser screen."""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from rewind.models import EpisodeInfo, Library, SeasonInfo, ShowInfo


class LoginState(Enum):
    LOGGED_OUT = "logged_out"
    PENDING_LOGIN = "pending_login"
    LOGGED_IN = "logged_in"


# ===== VIEW STATE =====

@dataclass(frozen=True)
class BrowserView:
    """Catalog browser is shown."""


@dataclass(frozen=True)
class EpisodePlayer:
    """Player is shown for an episode."""
    episode: EpisodeInfo


ViewState = Union[BrowserView, EpisodePlayer]
VIEW_STATES = (BrowserView, EpisodePlayer)


# ===== BROWSER STATE =====

@dataclass(frozen=True)
class HomeState:
    """List of libraries."""


@dataclass(frozen=True)
class LibraryState:
    """Shows of a library."""
    library: Library


@dataclass(frozen=True)
class ShowState:
    """Seasons of a show."""
    show: ShowInfo


@dataclass(frozen=True)
class SeasonState:
    """Episodes of a season."""
    season: SeasonInfo


@dataclass(frozen=True)
class EpisodeState:
    """Single episode, ready to play."""
    episode: EpisodeInfo


BrowserState = Union[HomeState, LibraryState, ShowState, SeasonState, EpisodeState]
BROWSER_STATES = (HomeState, LibraryState, ShowState, SeasonState, EpisodeState)


def describe_browser_state(state: BrowserState) -> str:
    """Short breadcrumb label for a browser screen."""
    if isinstance(state, HomeState):
        return "Home"
    if isinstance(state, LibraryState):
        return state.library.name
    if isinstance(state, ShowState):
        return state.show.title
    if isinstance(state, SeasonState):
        return f"Season {state.season.season_number}"
    if isinstance(state, EpisodeState):
        return state.episode.title
    raise TypeError(f"Unknown browser state: {state!r}")
