"""Tests for the navigator used to send the browser to login."""
from club_client.navigation import MAX_REDIRECTS, Navigator


def test_navigate_updates_current_and_calls_hook():
    seen = []
    navigator = Navigator(current="/coach-dashboard", on_navigate=seen.append)
    navigator.navigate("/login")
    assert navigator.current == "/login"
    assert navigator.redirects == ["/login"]
    assert seen == ["/login"]


def test_redirect_history_is_capped():
    navigator = Navigator()
    for i in range(MAX_REDIRECTS + 15):
        navigator.navigate(f"/page/{i}")
    assert len(navigator.redirects) == MAX_REDIRECTS
    assert navigator.redirects[-1] == f"/page/{MAX_REDIRECTS + 14}"
    assert navigator.redirects[0] == "/page/15"
