"""
Test configuration
Fixtures for an in-memory database, a controllable clock and seeded data.
"""

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from canteen.app import create_app
from canteen.core.database import DatabaseManager
from canteen.core.security import security_manager
from canteen.models.meal import MenuItemCreate
from canteen.models.user import Principal, Role, UserCreate
from canteen.services.deadline_policy import DeadlinePolicy
from canteen.services.directory_service import MenuDirectory, UserDirectory
from canteen.services.exchange_service import ExchangeService
from canteen.services.order_service import OrderService
from canteen.services.report_service import ReportService
from canteen.services.reservation_store import ReservationStore

PRAGUE = ZoneInfo("Europe/Prague")

# A Friday in March, outside any DST switch
MEAL_DAY = date(2024, 3, 15)
NEXT_DAY = date(2024, 3, 18)


class FakeClock:
    """Clock the tests move by hand"""

    def __init__(self, current: datetime):
        self.current = current

    def __call__(self) -> datetime:
        return self.current

    def set(self, year, month, day, hour=0, minute=0, second=0):
        self.current = datetime(year, month, day, hour, minute, second, tzinfo=PRAGUE)


@pytest.fixture
def clock():
    """Starts the day before MEAL_DAY, while ordering is still open"""
    return FakeClock(datetime(2024, 3, 14, 10, 0, tzinfo=PRAGUE))


@pytest.fixture
def test_db():
    """Fresh in-memory database"""
    db = DatabaseManager(":memory:")
    db.init_database()
    yield db
    db.close()


@pytest.fixture
def policy(clock):
    return DeadlinePolicy(clock=clock, tz_name="Europe/Prague",
                          order_cutoff_hour=0, exchange_cutoff_hour=12)


@pytest.fixture
def store(test_db):
    return ReservationStore(test_db)


@pytest.fixture
def menu(test_db):
    return MenuDirectory(test_db)


@pytest.fixture
def users(test_db):
    return UserDirectory(test_db)


@pytest.fixture
def order_service(test_db, policy, store, menu, users):
    return OrderService(test_db, policy, store, menu, users)


@pytest.fixture
def exchange_service(test_db, store, menu):
    return ExchangeService(test_db, store, menu)


@pytest.fixture
def report_service(test_db, policy, store, menu, users):
    return ReportService(test_db, policy, store, menu, users)


@pytest.fixture
def people(users):
    """Three employees and one admin of each kind, keyed by login"""
    created = [
        users.add(UserCreate(username="novak", first_name="Petr", last_name="Novák",
                             personal_number="1003")),
        users.add(UserCreate(username="cermak", first_name="Jan", last_name="Čermák",
                             personal_number="1001")),
        users.add(UserCreate(username="dvorak", first_name="Eva", last_name="Dvořák",
                             personal_number="1002")),
        users.add(UserCreate(username="svoboda", first_name="Jana", last_name="Svoboda",
                             personal_number="2001", role=Role.ADMIN_MEAL)),
        users.add(UserCreate(username="horak", first_name="Karel", last_name="Horák",
                             personal_number="2002", role=Role.ADMIN_USER)),
    ]
    return {u.username: u for u in created}


def principal_of(user) -> Principal:
    return Principal(user_id=user.id, role=user.role)


@pytest.fixture
def novak(people):
    return principal_of(people["novak"])


@pytest.fixture
def cermak(people):
    return principal_of(people["cermak"])


@pytest.fixture
def dvorak(people):
    return principal_of(people["dvorak"])


@pytest.fixture
def meal_admin(people):
    return principal_of(people["svoboda"])


@pytest.fixture
def user_admin(people):
    return principal_of(people["horak"])


@pytest.fixture
def meals(menu):
    """Soup is choice 1 and Goulash choice 2 on MEAL_DAY"""
    created = menu.add_many([
        MenuItemCreate(date=MEAL_DAY, name="Soup"),
        MenuItemCreate(date=MEAL_DAY, name="Goulash", price_cents=9500),
        MenuItemCreate(date=NEXT_DAY, name="Schnitzel"),
    ])
    return {m.name: m for m in created}


@pytest.fixture
def app_instance(test_db, policy):
    return create_app(db=test_db, policy=policy)


@pytest.fixture
def client(app_instance):
    return TestClient(app_instance)


def auth_headers(principal: Principal) -> dict:
    token = security_manager.create_jwt_token(principal.user_id, principal.role)
    return {"Authorization": f"Bearer {token}"}
