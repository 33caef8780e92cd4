from fastapi import APIRouter, HTTPException, Depends
import logging

from textile_erp.models import ClientStatement, DashboardSummary
from textile_erp.services.statement_service import statement_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/statements", tags=["Statements"])


def get_statement_service():
    return statement_service


@router.get("/clients/{client_id}", response_model=ClientStatement)
async def get_client_statement(
    client_id: str,
    service=Depends(get_statement_service)
):
    """Statement of account for one client."""
    try:
        statement = await service.get_client_statement(client_id)
    except Exception as e:
        logger.error(f"Error building client statement: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to build statement: {str(e)}")
    if not statement:
        raise HTTPException(status_code=404, detail="Client not found")
    return statement


@router.get("/dashboard", response_model=DashboardSummary)
async def get_dashboard(service=Depends(get_statement_service)):
    try:
        return await service.get_dashboard_summary()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to build dashboard: {str(e)}")
