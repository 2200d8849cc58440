"""
api/routes/dashboard.py -- Aggregated counts and the recent activity feed.

  GET /api/dashboard/stats                -- client / document / legal document totals
  GET /api/dashboard/atividades-recentes  -- last 10 audit entries, newest first

This is a read-only aggregate router -- no mutations here.
"""

from fastapi import APIRouter, Request

from api.models import AuditLogResponse, DashboardStats
from api.routes.users import audit_entry_to_response
from audit.store import AuditStore
from auth.dependencies import BUSINESS
from records.store import RecordsStore

router = APIRouter(dependencies=BUSINESS)

RECENT_ACTIVITY_LIMIT = 10


@router.get("/dashboard/stats", response_model=DashboardStats)
def get_stats(request: Request) -> DashboardStats:
    records: RecordsStore = request.app.state.records
    return DashboardStats(
        total_clients=records.count_clients(),
        total_documents=records.count_documents(),
        total_legal_documents=records.count_legal_documents(),
    )


@router.get("/dashboard/atividades-recentes", response_model=list[AuditLogResponse])
def recent_activity(request: Request) -> list[AuditLogResponse]:
    audit: AuditStore = request.app.state.audit
    return [audit_entry_to_response(e) for e in audit.list_recent(limit=RECENT_ACTIVITY_LIMIT)]
