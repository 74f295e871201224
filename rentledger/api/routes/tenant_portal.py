"""
Tenant Portal Routes - Tenant Self-Service
Sign-in by contact number and date of birth, then a read-only view of the
tenant's own unit, rent payments and electricity records.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from rentledger.core.security import TENANT_ROLE, create_access_token
from rentledger.dependencies import get_current_tenant_id, get_store
from rentledger.schemas.reports import TenantView
from rentledger.services.document_store import DocumentStore
from rentledger.services.tenant_portal import find_tenant_view, tenant_login

router = APIRouter(tags=["tenant-portal"])


# ==================== SCHEMAS ====================

class TenantLogin(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    contact_no: str
    date_of_birth: str


# ==================== ROUTES ====================

@router.post("/login")
def login(credentials: TenantLogin, store: DocumentStore = Depends(get_store)):
    view = tenant_login(store.fetch("buildings"), credentials.contact_no, credentials.date_of_birth)
    token = create_access_token(view.tenant.id, role=TENANT_ROLE)
    return {
        "success": True,
        "access_token": token,
        "token_type": "bearer",
        "tenant": view.model_dump(by_alias=True, mode="json"),
    }


@router.get("/me", response_model=TenantView)
def get_me(tenant_id: str = Depends(get_current_tenant_id), store: DocumentStore = Depends(get_store)):
    """Current unit, rent payments and electricity records of the signed-in tenant"""
    return find_tenant_view(store.fetch("buildings"), tenant_id)
