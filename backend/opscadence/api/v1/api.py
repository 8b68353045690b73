from fastapi import APIRouter

from opscadence.api.v1.endpoints import audit_logs, cadences, cron, instances, runs

api_router = APIRouter()
api_router.include_router(cadences.router, prefix="/cadences", tags=["cadences"])
api_router.include_router(instances.router, prefix="/instances", tags=["instances"])
api_router.include_router(cron.router, prefix="/cron", tags=["cron"])
api_router.include_router(runs.router, prefix="/runs", tags=["runs"])
api_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit-logs"])
