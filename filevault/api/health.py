"""Health check endpoint with database connectivity check."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from filevault.core.database import check_db_connected, get_db
from filevault.schemas.health import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def get_health(request: Request, db: Session = Depends(get_db)) -> HealthResponse:
    """
    Return service health status and database connectivity.
    Used by load balancers and the gateway.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"

    return HealthResponse(
        status="ok",
        service=request.app.state.service_name,
        environment=request.app.state.settings.APP_ENV,
        database=db_status,
    )
