from rentledger.api.routes.buildings import router as buildings_router
from rentledger.api.routes.expenses import router as expenses_router
from rentledger.api.routes.reminders import router as reminders_router
from rentledger.api.routes.reports import router as reports_router
from rentledger.api.routes.tenant_portal import router as tenant_portal_router

__all__ = [
    "buildings_router",
    "expenses_router",
    "reminders_router",
    "reports_router",
    "tenant_portal_router",
]
