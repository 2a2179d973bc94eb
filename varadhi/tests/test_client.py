import pytest
import requests

from varadhi.client.api_client import ApiClient
from varadhi.client.messages import MessageBanner
from varadhi.client.views import (
    ALL_SERVICES,
    AuthView,
    CatalogView,
    LandingView,
    Navigator,
    ServiceButton,
    ServiceCard,
    format_key,
    header_search,
    services_url,
)


class FakeTimer:
    """threading.Timer stand-in that only fires when told to."""

    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.started = False
        self.cancelled = False
        self.daemon = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


@pytest.fixture
def timers():
    created = []

    def factory(delay, callback):
        timer = FakeTimer(delay, callback)
        created.append(timer)
        return timer

    factory.created = created
    return factory


@pytest.fixture
def banner(timers):
    return MessageBanner(timer_factory=timers)


@pytest.fixture
def api(mocker, banner):
    client = ApiClient(banner, base_url="http://backend")
    client.fetch_data = mocker.Mock()
    client.post_json = mocker.Mock()
    return client


@pytest.fixture
def nav(timers):
    return Navigator(timer_factory=timers)


# --- MESSAGE BANNER ---

def test_banner_fades_then_hides(banner, timers):
    banner.show("Boom", "error")

    assert banner.visible and banner.opacity == 1.0
    display = timers.created[-1]
    assert display.delay == 5.0

    display.fire()
    assert banner.visible and banner.opacity == 0.0
    fade = timers.created[-1]
    assert fade.delay == 0.5

    fade.fire()
    assert not banner.visible


def test_new_message_restarts_timer(banner, timers):
    banner.show("first", "error")
    first = timers.created[-1]

    banner.show("second", "success")

    assert first.cancelled
    assert banner.text == "second" and banner.kind == "success"
    first.fire()
    assert banner.opacity == 1.0


# --- HELPERS ---

@pytest.mark.parametrize("key, expected", [
    ("SOCIETY_NAME", "SOCIETY NAME"),
    ("organisation_need", "Organisation Need"),
    ("pincode", "Pincode"),
])
def test_format_key(key, expected):
    assert format_key(key) == expected


def test_card_skips_id_and_fills_missing():
    card = ServiceCard.from_listing({"ID": 3, "SOCIETY_NAME": "Helping Hands", "PINCODE": None})

    assert card.title == "Helping Hands"
    assert card.fields == [("SOCIETY NAME", "Helping Hands"), ("PINCODE", "N/A")]
    assert card.render().splitlines()[0] == "Helping Hands"


def test_header_search(nav):
    header_search(nav, "  ")
    assert nav.href == "services.html?category=All%20Services"
    assert nav.query_params() == {"category": ALL_SERVICES}

    header_search(nav, "food & shelter")
    assert nav.query_params() == {"search": "food & shelter"}


# --- LANDING VIEW ---

def test_landing_replaces_fallback(api, nav):
    api.fetch_data.return_value = ["Education", "Food Bank"]
    view = LandingView(api, nav, fallback=["Food Bank"])

    assert view.load() is True
    assert [b.label for b in view.buttons] == [ALL_SERVICES, "Education", "Food Bank"]
    api.fetch_data.assert_called_once_with("/api/services/distinct", quiet=True)


@pytest.mark.parametrize("result", [None, []])
def test_landing_keeps_fallback(api, nav, result):
    api.fetch_data.return_value = result
    view = LandingView(api, nav, fallback=["Food Bank", "Shelter"])

    assert view.load() is False
    assert [b.label for b in view.buttons] == ["Food Bank", "Shelter"]


def test_landing_select_navigates(api, nav):
    LandingView(api, nav).select(ServiceButton("Food Bank", "Food Bank"))

    assert nav.query_params() == {"category": "Food Bank"}


def test_landing_discards_stale_response(api, nav):
    view = LandingView(api, nav)

    def navigate_away(endpoint, quiet=False):
        nav.go("login.html")
        return ["Education"]

    api.fetch_data.side_effect = navigate_away

    assert view.load() is False
    assert not view.dynamic


# --- CATALOG VIEW ---

@pytest.mark.parametrize("params, endpoint, title", [
    ({"category": ALL_SERVICES}, "/api/services", "All Services Available"),
    ({"category": "Food Bank"}, "/api/services/category/Food%20Bank", 'Services for "Food Bank"'),
    ({"search": "chen"}, "/api/services/search?query=chen", 'Search Results for "chen"'),
    ({"category": "Shelter", "search": "x"}, "/api/services/category/Shelter", 'Services for "Shelter"'),
    ({}, "/api/services", "All Services Available"),
])
def test_catalog_routes(api, nav, params, endpoint, title):
    api.fetch_data.return_value = []
    view = CatalogView(api, nav)

    view.load(params)

    api.fetch_data.assert_called_once_with(endpoint)
    assert view.title == title
    assert view.no_results and not view.loading


def test_catalog_renders_cards_from_location(api, nav):
    nav.go("services.html?category=Food%20Bank")
    api.fetch_data.return_value = [{"SOCIETY_NAME": "Helping Hands", "SERVICE": "Food Bank"}]
    view = CatalogView(api, nav)

    assert view.load() is True
    assert [c.title for c in view.cards] == ["Helping Hands"]
    assert not view.no_results


def test_catalog_failed_fetch_shows_no_results(api, nav):
    api.fetch_data.return_value = None
    view = CatalogView(api, nav)

    view.load({"search": "x"})

    assert view.no_results


def test_catalog_discards_stale_response(api, nav):
    view = CatalogView(api, nav)

    def navigate_away(endpoint, quiet=False):
        header_search(nav, "other")
        return [{"SOCIETY_NAME": "Old"}]

    api.fetch_data.side_effect = navigate_away

    assert view.load({"search": "first"}) is False
    assert view.cards == []
    assert view.loading


# --- AUTH VIEW ---

def test_auth_toggle_swaps_copy_and_resets_form(api, nav, banner):
    view = AuthView(api, nav, banner)
    view.fill(username="alice")
    assert view.copy.submit_label == "Login"
    assert not view.register_fields_visible

    view.toggle_mode()

    assert view.copy.submit_label == "Register"
    assert view.copy.required == ("username", "email", "password")
    assert view.register_fields_visible
    assert view.form["username"] == ""


def test_auth_requires_fields(api, nav, banner):
    view = AuthView(api, nav, banner)
    view.toggle_mode()
    view.fill(username="alice", password="p1")

    assert view.submit() is False
    assert banner.text == "Please fill in all required fields."
    api.post_json.assert_not_called()


def test_login_success_redirects_later(api, nav, banner, timers):
    api.post_json.return_value = (True, {"message": "Login successful!", "username": "alice", "userId": 1})
    seen = []
    nav.href = "login.html"
    view = AuthView(api, nav, banner, on_login=seen.append)
    view.fill(username=" alice ", password="p1")

    assert view.submit() is True

    api.post_json.assert_called_once_with("/api/login", {"username": "alice", "password": "p1"})
    assert banner.kind == "success"
    assert seen[0]["userId"] == 1
    redirect = next(t for t in timers.created if t.delay == 1.5)
    assert nav.href != "index.html"
    redirect.fire()
    assert nav.href == "index.html"


def test_register_success_returns_to_login(api, nav, banner):
    api.post_json.return_value = (True, {"message": "User registered successfully!"})
    view = AuthView(api, nav, banner)
    view.toggle_mode()
    view.fill(username="alice", email="a@x.com", password="p1")

    assert view.submit() is True

    api.post_json.assert_called_once_with(
        "/api/register",
        {"username": "alice", "email": "a@x.com", "password": "p1", "mobileNumber": ""},
    )
    assert view.is_login_mode
    assert banner.text == "Registration successful! You can now login."


def test_auth_failure_shows_server_message(api, nav, banner):
    api.post_json.return_value = (False, {"message": "Invalid username or password."})
    view = AuthView(api, nav, banner)
    view.fill(username="alice", password="wrong")

    assert view.submit() is False
    assert banner.text == "Login failed: Invalid username or password."


def test_auth_failure_without_message_uses_fallback(api, nav, banner):
    api.post_json.return_value = (False, {})
    view = AuthView(api, nav, banner)
    view.toggle_mode()
    view.fill(username="alice", email="a@x.com", password="p1")

    view.submit()

    assert banner.text == "Registration failed: Server error."


# --- API CLIENT ---

def make_response(status, body):
    response = requests.Response()
    response.status_code = status
    response._content = body.encode()
    return response


def test_fetch_data_success(mocker, banner):
    session = mocker.Mock()
    session.get.return_value = make_response(200, '["Food Bank"]')

    data = ApiClient(banner, base_url="http://backend/", session=session).fetch_data("/api/services/distinct")

    assert data == ["Food Bank"]
    session.get.assert_called_once_with("http://backend/api/services/distinct", timeout=10)
    assert not banner.visible


def test_fetch_data_http_error_shows_banner(mocker, banner):
    session = mocker.Mock()
    session.get.return_value = make_response(400, '{"error": "Search query parameter is missing."}')

    data = ApiClient(banner, session=session).fetch_data("/api/services/search?query=")

    assert data is None
    assert banner.text == "HTTP error! status: 400, message: Search query parameter is missing."


def test_fetch_data_connection_error(mocker, banner):
    session = mocker.Mock()
    session.get.side_effect = requests.ConnectionError("refused")

    assert ApiClient(banner, session=session).fetch_data("/api/services") is None
    assert banner.visible and banner.kind == "error"


def test_fetch_data_unparseable_error_body(mocker, banner):
    session = mocker.Mock()
    session.get.return_value = make_response(500, "<html>oops</html>")

    ApiClient(banner, session=session).fetch_data("/api/services")

    assert banner.text.endswith("message: Unknown error")


def test_post_json_returns_status_and_body(mocker, banner):
    session = mocker.Mock()
    session.post.return_value = make_response(409, '{"message": "taken"}')

    ok, body = ApiClient(banner, session=session).post_json("/api/register", {"username": "a"})

    assert ok is False
    assert body == {"message": "taken"}


def test_post_json_transport_failure(mocker, banner):
    session = mocker.Mock()
    session.post.side_effect = requests.Timeout()

    assert ApiClient(banner, session=session).post_json("/api/login", {}) == (False, {})


def test_quiet_fetch_failure_keeps_banner_hidden(mocker, banner):
    session = mocker.Mock()
    session.get.side_effect = requests.ConnectionError("refused")

    assert ApiClient(banner, session=session).fetch_data("/api/services/distinct", quiet=True) is None
    assert not banner.visible


def test_services_url_encodes_value():
    assert services_url("category", "Food & Shelter") == "services.html?category=Food%20%26%20Shelter"
    assert services_url("search", "600001") == "services.html?search=600001"
