from datetime import datetime

import pytest

from conftest import make_building
from rentledger.core.exceptions import NotFoundError, ValidationError
from rentledger.services import ledger_service
from rentledger.services.tenant_portal import find_tenant_view, tenant_login


def test_login_matches_contact_digits_and_dob():
    view = tenant_login([make_building()], "919876543210", "1990-04-12T00:00:00.000Z")

    assert view.tenant.id == "t1"
    assert view.building_id == "b1"
    assert view.building_name == "Lake View"
    assert view.unit.name == "U1"


def test_login_with_wrong_dob():
    with pytest.raises(NotFoundError):
        tenant_login([make_building()], "+91 98765 43210", "1991-04-12")


def test_login_requires_both_fields():
    with pytest.raises(ValidationError):
        tenant_login([make_building()], "", "1990-04-12")
    with pytest.raises(ValidationError):
        tenant_login([make_building()], "+91 98765 43210", "")


def test_archived_tenant_cannot_sign_in():
    moved = ledger_service.move_tenant_to_previous(make_building(), "u1", now=datetime(2024, 4, 1))
    with pytest.raises(NotFoundError):
        tenant_login([moved], "+91 98765 43210", "1990-04-12")
    with pytest.raises(NotFoundError):
        find_tenant_view([moved], "t1")


def test_find_tenant_view():
    assert find_tenant_view([make_building()], "t1").unit.id == "u1"
