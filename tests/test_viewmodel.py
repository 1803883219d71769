"""Tests for login and catalog navigation."""

import asyncio

import pytest
from conftest import E01, INCEPTION, MOVIES, SEASON_1, FakeClient

from rewind.errors import LoadFailed
from rewind.models import Library, LoginRequest, ShowInfo
from rewind.states import (
    BrowserView, EpisodeState, HomeState, LibraryState,
    LoginState, SeasonState, ShowState, describe_browser_state
)
from rewind.viewmodel import MainViewModel

CREDENTIALS = LoginRequest(username="alice", password="secret")


# ===== LOGIN =====

async def test_login_success_goes_home(fake_client):
    vm = MainViewModel(fake_client)
    vm.set_browser_state(LibraryState(MOVIES))
    await vm.join()
    seen = []
    vm.login_state.subscribe(seen.append, emit_current=True)

    vm.login(CREDENTIALS)
    assert vm.login_state.value == LoginState.PENDING_LOGIN
    await vm.join()

    assert seen == [LoginState.LOGGED_OUT, LoginState.PENDING_LOGIN, LoginState.LOGGED_IN]
    assert vm.browser_state.value == HomeState()
    assert vm.libraries.value == [MOVIES]
    assert fake_client.count("list_libraries") == 1


async def test_login_rejected(fake_client):
    fake_client.login_status = 401
    vm = MainViewModel(fake_client)
    seen = []
    vm.login_state.subscribe(seen.append, emit_current=True)

    vm.login(CREDENTIALS)
    await vm.join()

    assert seen == [LoginState.LOGGED_OUT, LoginState.PENDING_LOGIN, LoginState.LOGGED_OUT]
    assert fake_client.count("list_libraries") == 0


async def test_login_transport_error_logs_out(fake_client):
    fake_client.fail.add("login")
    vm = MainViewModel(fake_client)

    vm.login(CREDENTIALS)
    await vm.join()

    assert vm.login_state.value == LoginState.LOGGED_OUT


async def test_superseded_login_result_is_dropped():
    release_slow = asyncio.Event()

    class SlowFirstLogin(FakeClient):
        async def login(self, request):
            self.calls.append(("login", request.username))
            if request.username == "slow":
                await release_slow.wait()
                return 200
            return 401

    client = SlowFirstLogin()
    vm = MainViewModel(client)

    vm.login(LoginRequest(username="slow", password="x"))
    vm.login(LoginRequest(username="fast", password="y"))
    await vm.login_state.wait_for(lambda s: s == LoginState.LOGGED_OUT)
    release_slow.set()
    await vm.join()

    assert client.count("login", "slow") == 1
    assert vm.login_state.value == LoginState.LOGGED_OUT
    assert client.count("list_libraries") == 0


# ===== NAVIGATION =====

async def test_each_browser_state_loads_once(fake_client):
    vm = MainViewModel(fake_client)
    states = [HomeState(), LibraryState(MOVIES), ShowState(INCEPTION), SeasonState(SEASON_1), EpisodeState(E01)]

    for state in states:
        vm.set_browser_state(state)
    await vm.join()

    assert vm.browser_state.value == EpisodeState(E01)
    assert fake_client.calls == [
        ("list_libraries",),
        ("list_shows", "Movies"),
        ("list_seasons", "show-inception"),
        ("list_episodes", "season-1"),
    ]


async def test_drill_down_scenario(fake_client):
    vm = MainViewModel(fake_client)

    vm.set_browser_state(LibraryState(MOVIES))
    await vm.join()
    vm.set_browser_state(ShowState(vm.shows.value[0]))
    await vm.join()
    vm.set_browser_state(SeasonState(vm.seasons.value[0]))
    await vm.join()
    vm.set_browser_state(EpisodeState(vm.episodes.value[0]))
    await vm.join()

    assert vm.browser_state.value == EpisodeState(E01)
    assert fake_client.calls == [
        ("list_shows", "Movies"),
        ("list_seasons", "show-inception"),
        ("list_episodes", "season-1"),
    ]


async def test_home_twice_loads_twice_last_completion_wins():
    release_first = asyncio.Event()

    class SlowFirstLibraries(FakeClient):
        async def list_libraries(self):
            self.calls.append(("list_libraries",))
            if self.count("list_libraries") == 1:
                await release_first.wait()
                return [Library(name="old")]
            return [Library(name="new")]

    client = SlowFirstLibraries()
    vm = MainViewModel(client)

    vm.set_browser_state(HomeState())
    vm.set_browser_state(HomeState())
    await vm.libraries.wait_for(lambda libs: libs == [Library(name="new")])
    release_first.set()
    await vm.join()

    assert client.count("list_libraries") == 2
    assert vm.libraries.value == [Library(name="old")]


async def test_back_to_browser_reloads_current_list(fake_client):
    vm = MainViewModel(fake_client)
    vm.set_browser_state(ShowState(INCEPTION))
    await vm.join()

    vm.set_view_state(BrowserView())
    await vm.join()

    assert vm.view_state.value == BrowserView()
    assert fake_client.count("list_seasons", "show-inception") == 2


async def test_load_failure_keeps_previous_list(fake_client):
    vm = MainViewModel(fake_client)
    vm.set_browser_state(LibraryState(MOVIES))
    await vm.join()

    fake_client.fail.add("list_shows")
    fake_client.shows = [ShowInfo(id="other", title="Other")]
    vm.set_browser_state(LibraryState(MOVIES))
    await vm.join()

    assert vm.shows.value == [INCEPTION]
    assert isinstance(vm.errors.value, LoadFailed)
    assert vm.errors.value.resource == "shows"


async def test_close_cancels_pending_loads(fake_client):
    vm = MainViewModel(fake_client)
    vm.set_browser_state(HomeState())

    await vm.close()

    assert vm.scope.active == 0
    assert vm.libraries.value == []


async def test_unknown_states_are_rejected(fake_client):
    vm = MainViewModel(fake_client)

    with pytest.raises(TypeError):
        vm.set_browser_state("library")
    with pytest.raises(TypeError):
        vm.set_view_state(None)

    assert vm.browser_state.value == HomeState()
    assert vm.view_state.value == BrowserView()


def test_breadcrumbs():
    assert describe_browser_state(HomeState()) == "Home"
    assert describe_browser_state(LibraryState(MOVIES)) == "Movies"
    assert describe_browser_state(SeasonState(SEASON_1)) == "Season 1"
    assert describe_browser_state(EpisodeState(E01)) == "E01"


async def test_resumed_session_is_logged_in(fake_client):
    vm = MainViewModel(fake_client)
    seen = []
    vm.login_state.subscribe(seen.append)

    vm.mark_logged_in()

    assert seen == [LoginState.LOGGED_IN]
    assert fake_client.calls == []
