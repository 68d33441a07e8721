import pytest

from src.route_planning.models.domain import ManagerHome, RouteContext, RouteKey, Stop
from src.route_planning.persistence.gateway import InMemoryGateway
from src.route_planning.services.schedule.engine import RecalculationEngine
from src.route_planning.services.schedule.models import ScheduleOptions

PLANNED_DATE = "2025-03-14"


def _stop(stop_id: str, lat: float | None, lon: float | None, postcode: str | None = None) -> Stop:
    return Stop(
        stop_id=stop_id,
        name=f"Store {stop_id}",
        latitude=lat,
        longitude=lon,
        postcode=postcode,
        address=f"{stop_id} High Street",
    )


@pytest.fixture
def route_key() -> RouteKey:
    return RouteKey(manager_id="manager-1", planned_date=PLANNED_DATE, area="North")


@pytest.fixture
def home() -> ManagerHome:
    return ManagerHome(latitude=0.0, longitude=0.0, address="1 Home Lane")


@pytest.fixture
def context(route_key: RouteKey, home: ManagerHome) -> RouteContext:
    """Home at (0,0), stop A at (0,1) and stop B at (0,2)."""
    return RouteContext(
        key=route_key,
        stops=(_stop("A", 0.0, 1.0), _stop("B", 0.0, 2.0, postcode="B1 1AA")),
        home=home,
    )


@pytest.fixture
def options() -> ScheduleOptions:
    return ScheduleOptions()


@pytest.fixture
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture
def engine(gateway: InMemoryGateway, options: ScheduleOptions) -> RecalculationEngine:
    return RecalculationEngine(gateway, options)
