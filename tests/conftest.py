from datetime import datetime

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from rentledger.core.config import Settings
from rentledger.core.security import TENANT_ROLE, create_access_token
from rentledger.database import build_engine, init_db
from rentledger.dependencies import get_dispatcher, get_storage, get_store
from rentledger.main import app
from rentledger.schemas.ledger import Building, RentPayment, Tenant, Unit
from rentledger.services.document_store import DocumentStore
from rentledger.services.ledger_session import LedgerSession
from rentledger.services.reminder_service import ReminderDispatcher
from rentledger.services.storage_service import StorageService

OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return DocumentStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))


@pytest.fixture
def sms_requests():
    """Requests captured by the fake Twilio endpoint."""
    return []


@pytest.fixture
def sms_settings():
    return Settings(
        TWILIO_ACCOUNT_SID="AC123",
        TWILIO_AUTH_TOKEN="secret",
        TWILIO_PHONE_NUMBER="+15550000000",
    )


@pytest.fixture
def dispatcher(sms_settings, sms_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        sms_requests.append(request)
        return httpx.Response(201, json={"sid": "SM1"})

    return ReminderDispatcher(config=sms_settings, transport=httpx.MockTransport(handler))


@pytest.fixture
def session(store, dispatcher):
    with LedgerSession(store, OWNER_ID, dispatcher) as ledger:
        yield ledger


def make_building(rent_payments=None, units_count=2, owner_id=OWNER_ID, rent_amount=10000.0):
    """Building ``b1`` with tenant ``t1`` in ``u1`` and ``u2`` vacant."""
    tenant = Tenant(
        id="t1",
        name="Asha",
        contact_no="+91 98765 43210",
        rent_amount=rent_amount,
        date_of_birth="1990-04-12",
        rent_payments=rent_payments or [],
        move_in_date=datetime(2024, 1, 1),
    )
    return Building(
        id="b1",
        name="Lake View",
        units_count=units_count,
        owner_id=owner_id,
        units=[Unit(id="u1", name="U1", tenant=tenant), Unit(id="u2", name="U2")],
    )


def payment(payment_id, day, amount, month=3):
    return RentPayment(id=payment_id, date=datetime(2024, month, day), amount=amount)


@pytest.fixture
def building():
    return make_building()


@pytest.fixture
def stored_building(store):
    building = make_building(rent_payments=[payment("p1", 5, 6000.0)])
    store.persist(building)
    return building


@pytest.fixture
def owner_headers():
    return {"Authorization": f"Bearer {create_access_token(OWNER_ID)}"}


@pytest.fixture
def tenant_headers():
    return {"Authorization": f"Bearer {create_access_token('t1', role=TENANT_ROLE)}"}


@pytest.fixture
def client(store, dispatcher, tmp_path):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_storage] = lambda: StorageService(
        root=str(tmp_path), public_url="http://files.test"
    )
    yield TestClient(app)
    app.dependency_overrides.clear()
