import pytest
from argon2 import PasswordHasher

from varadhi.auth_service import accounts
from varadhi.auth_service.accounts import COUNT_EXISTING_SQL, GET_USER_SQL, INSERT_USER_SQL
from varadhi.catalog_service.catalog import ALL_SQL, BY_CATEGORY_SQL, DISTINCT_SQL, SEARCH_SQL
from varadhi.database.gateway import QueryGateway
from varadhi.gateway.server import create_app

LISTING_KEYS = ("SOCIETY_NAME", "ORGANISATION_NEED", "SERVICE", "STATE", "DISTRICT", "PINCODE")


class FakeStore:
    """
    In-memory stand-in for QueryGateway.

    Understands exactly the statements the services issue and applies the
    same semantics the SQL does.
    """

    def __init__(self, listings=None):
        self.listings = [dict(row) for row in listings or []]
        self.users = []
        self.calls = []

    def execute(self, statement, params=None, fetch=True, commit=False):
        self.calls.append((statement, params, commit))
        if statement == DISTINCT_SQL:
            services = sorted({row["SERVICE"] for row in self.listings if row["SERVICE"] is not None})
            return [{"SERVICE": s} for s in services]
        if statement == ALL_SQL:
            return [dict(row) for row in self.listings]
        if statement == BY_CATEGORY_SQL:
            return [dict(row) for row in self.listings if row["SERVICE"] == params["category"]]
        if statement == SEARCH_SQL:
            needle = unlike(params["term"]).upper()
            return [
                dict(row) for row in self.listings
                if any(needle in (row[key] or "").upper() for key in LISTING_KEYS)
            ]
        if statement == COUNT_EXISTING_SQL:
            count = sum(1 for u in self.users if u["username"] == params["username"] or u["email"] == params["email"])
            return [{"COUNT": count}]
        if statement == INSERT_USER_SQL:
            assert commit, "account inserts must commit"
            self.users.append(dict(params, id=len(self.users) + 1))
            return 1
        if statement == GET_USER_SQL:
            return [
                {"ID": u["id"], "USERNAME": u["username"], "PASSWORD_HASH": u["password_hash"]}
                for u in self.users if u["username"] == params["username"]
            ]
        raise AssertionError(f"unexpected statement: {statement}")


def unlike(pattern):
    """Turn a '%term%' LIKE pattern back into the literal term."""
    inner = pattern[1:-1]
    return inner.replace("\\%", "%").replace("\\_", "_").replace("\\\\", "\\")


@pytest.fixture(autouse=True)
def fast_hasher(mocker):
    """Cheap argon2 parameters so tests don't spend time hashing."""
    hasher = PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)
    mocker.patch.object(accounts, "ph", hasher)
    return hasher


@pytest.fixture
def gateway(mocker):
    """
    Mocks the query gateway.
    """
    return mocker.Mock(spec=QueryGateway)


@pytest.fixture
def app(gateway):
    app = create_app(gateway)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def helping_hands():
    return {
        "SOCIETY_NAME": "Helping Hands",
        "ORGANISATION_NEED": "Food",
        "SERVICE": "Food Bank",
        "STATE": "TN",
        "DISTRICT": "Chennai",
        "PINCODE": "600001",
    }


@pytest.fixture
def store(helping_hands):
    return FakeStore([helping_hands])


@pytest.fixture
def store_client(store):
    app = create_app(store)
    app.config["TESTING"] = True
    return app.test_client()
