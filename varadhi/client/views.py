"""
Page logic for the landing, catalog and auth views.

Each view holds the state a page would render (buttons, cards, form copy)
and talks to the backend through ApiClient. Navigation is recorded on a
Navigator instead of a browser location.
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qs, quote, urlsplit

from varadhi.client.api_client import ApiClient
from varadhi.client.messages import MessageBanner

ALL_SERVICES = "All Services"
INDEX_PAGE = "index.html"
SERVICES_PAGE = "services.html"
LOGIN_REDIRECT_SECONDS = 1.5
HIDDEN_CARD_KEYS = {"ID"}


class RequestGeneration:
    """
    Monotonic token used to drop responses that arrive after navigation.

    A view calls `advance()` when it is entered and keeps the token; once
    its response arrives it applies it only if `is_current(token)`.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def advance(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def current(self) -> int:
        with self._lock:
            return self._value

    def is_current(self, token: int) -> bool:
        return token == self.current


class Navigator:
    """Records the current location and invalidates in-flight responses on every move."""

    def __init__(self, href: str = INDEX_PAGE, timer_factory=threading.Timer) -> None:
        self.href = href
        self.generation = RequestGeneration()
        self._timer_factory = timer_factory

    def go(self, href: str) -> None:
        logging.info(f"[Client] Navigating to {href}")
        self.generation.advance()
        self.href = href

    def go_later(self, href: str, delay: float) -> threading.Timer:
        timer = self._timer_factory(delay, lambda: self.go(href))
        timer.daemon = True
        timer.start()
        return timer

    def query_params(self) -> Dict[str, str]:
        """First value of each query parameter of the current location."""
        return {k: v[0] for k, v in parse_qs(urlsplit(self.href).query).items()}


def services_url(key: str, value: str) -> str:
    return f"{SERVICES_PAGE}?{key}={quote(value, safe='')}"


def header_search(nav: Navigator, term: str) -> None:
    """Header search box: blank input shows every service, anything else searches."""
    if term.strip() == "":
        nav.go(services_url("category", ALL_SERVICES))
        return
    nav.go(services_url("search", term))


def format_key(key: str) -> str:
    """Humanize a field name: SOCIETY_NAME -> "SOCIETY NAME", pin_code -> "Pin Code"."""
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), key.replace("_", " "))


@dataclass
class ServiceCard:
    title: str
    fields: List[Tuple[str, str]] = field(default_factory=list)

    @classmethod
    def from_listing(cls, listing: Mapping[str, Any]) -> "ServiceCard":
        fields = [
            (format_key(key), str(value) if value else "N/A")
            for key, value in listing.items()
            if key not in HIDDEN_CARD_KEYS
        ]
        return cls(title=listing.get("SOCIETY_NAME") or "N/A", fields=fields)

    def render(self) -> str:
        lines = [self.title]
        lines.extend(f"{label}: {value}" for label, value in self.fields)
        return "\n".join(lines)


@dataclass
class ServiceButton:
    label: str
    service: str


class LandingView:
    """
    Category buttons on the landing page.

    Starts with the static fallback set; `load` swaps in one button per
    category from the backend, plus "All Services", when that list is
    non-empty.
    """

    def __init__(self, api: ApiClient, nav: Navigator, fallback: Optional[List[str]] = None) -> None:
        self.api = api
        self.nav = nav
        self.buttons = [ServiceButton(name, name) for name in (fallback or [ALL_SERVICES])]
        self.dynamic = False

    def load(self) -> bool:
        """Returns True when the dynamic buttons replaced the fallback."""
        token = self.nav.generation.advance()
        categories = self.api.fetch_data("/api/services/distinct", quiet=True)
        if not self.nav.generation.is_current(token):
            logging.info("[Client] Discarding stale category list")
            return False
        if not categories:
            logging.warning("[Client] No dynamic services received; keeping fallback buttons")
            return False
        self.buttons = [ServiceButton(ALL_SERVICES, ALL_SERVICES)]
        self.buttons.extend(ServiceButton(name, name) for name in categories)
        self.dynamic = True
        return True

    def select(self, button: ServiceButton) -> None:
        self.nav.go(services_url("category", button.service))


class CatalogView:
    """Listing cards for a category, a search, or everything."""

    def __init__(self, api: ApiClient, nav: Navigator) -> None:
        self.api = api
        self.nav = nav
        self.title = ""
        self.loading = False
        self.cards: List[ServiceCard] = []
        self.no_results = False

    def load(self, params: Optional[Mapping[str, str]] = None) -> bool:
        """
        Fetch and render listings for the current query.

        Args:
            params: Query parameters; defaults to those of the navigator's
                location. `category` wins over `search`.

        Returns:
            bool: False if the response was discarded as stale.
        """
        if params is None:
            params = self.nav.query_params()
        endpoint, title = self._route(params)

        token = self.nav.generation.advance()
        self.loading = True
        self.no_results = False
        listings = self.api.fetch_data(endpoint)
        if not self.nav.generation.is_current(token):
            logging.info(f"[Client] Discarding stale response for {endpoint}")
            return False
        self.render(listings, title)
        return True

    @staticmethod
    def _route(params: Mapping[str, str]) -> Tuple[str, str]:
        category = params.get("category")
        term = params.get("search")
        if category:
            if category == ALL_SERVICES:
                return "/api/services", "All Services Available"
            return f"/api/services/category/{quote(category, safe='')}", f'Services for "{category}"'
        if term:
            return f"/api/services/search?query={quote(term, safe='')}", f'Search Results for "{term}"'
        return "/api/services", "All Services Available"

    def render(self, listings: Optional[List[Mapping[str, Any]]], title: str) -> None:
        self.loading = False
        self.title = title or "All Services Available"
        self.cards = [ServiceCard.from_listing(listing) for listing in listings or []]
        self.no_results = not self.cards


@dataclass
class AuthCopy:
    title: str
    submit_label: str
    toggle_prompt: str
    toggle_label: str
    required: Tuple[str, ...]
    success_message: str
    error_prefix: str
    endpoint: str


LOGIN_COPY = AuthCopy(
    title="Login to Your Account",
    submit_label="Login",
    toggle_prompt="Don't have an account? ",
    toggle_label="Register here",
    required=("username", "password"),
    success_message="Login successful! Redirecting...",
    error_prefix="Login failed: ",
    endpoint="/api/login",
)

REGISTER_COPY = AuthCopy(
    title="Register New Account",
    submit_label="Register",
    toggle_prompt="Already have an account? ",
    toggle_label="Login here",
    required=("username", "email", "password"),
    success_message="Registration successful! You can now login.",
    error_prefix="Registration failed: ",
    endpoint="/api/register",
)

FORM_FIELDS = ("username", "email", "password", "mobileNumber")


class AuthView:
    """Two-mode login/register form."""

    def __init__(
        self,
        api: ApiClient,
        nav: Navigator,
        banner: MessageBanner,
        on_login: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> None:
        self.api = api
        self.nav = nav
        self.banner = banner
        self.on_login = on_login
        self.is_login_mode = True
        self.form: Dict[str, str] = {}
        self.update_mode()

    @property
    def copy(self) -> AuthCopy:
        return LOGIN_COPY if self.is_login_mode else REGISTER_COPY

    @property
    def register_fields_visible(self) -> bool:
        return not self.is_login_mode

    def toggle_mode(self) -> None:
        self.is_login_mode = not self.is_login_mode
        self.update_mode()

    def update_mode(self, keep_message: bool = False) -> None:
        if not keep_message:
            self.banner.hide()
        self.form = {name: "" for name in FORM_FIELDS}

    def fill(self, **values: str) -> None:
        self.form.update(values)

    def _payload(self) -> Dict[str, str]:
        username = self.form.get("username", "").strip()
        password = self.form.get("password", "")
        if self.is_login_mode:
            return {"username": username, "password": password}
        return {
            "username": username,
            "email": self.form.get("email", "").strip(),
            "password": password,
            "mobileNumber": self.form.get("mobileNumber", "").strip(),
        }

    def submit(self) -> bool:
        """
        Post the form to the account API.

        Returns:
            bool: True on a successful login or registration.
        """
        copy = self.copy
        payload = self._payload()
        if any(not payload.get(name) for name in copy.required):
            self.banner.show("Please fill in all required fields.", "error")
            return False

        self.banner.hide()
        token = self.nav.generation.current
        ok, data = self.api.post_json(copy.endpoint, payload)
        if not self.nav.generation.is_current(token):
            logging.info("[Client] Discarding stale auth response")
            return False

        if not ok:
            self.banner.show(copy.error_prefix + (data.get("message") or "Server error."), "error")
            logging.error(f"[Client] Authentication error: {data}")
            return False

        self.banner.show(copy.success_message, "success")
        if self.is_login_mode:
            if self.on_login:
                self.on_login(data)
            self.nav.go_later(INDEX_PAGE, LOGIN_REDIRECT_SECONDS)
        else:
            self.is_login_mode = True
            self.update_mode(keep_message=True)
        return True
