# machine_efficiency/api_routes.py
"""API route handlers"""
from fastapi import APIRouter, Query, HTTPException, Depends, Request, Body
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime
import logging
import csv
import io

from auth import (
    Authenticator, InvalidCredentials, build_context, current_context,
    end_session, get_authenticator, start_session,
)
from models import UserContext
from services import apply_filters, fetch_records, get_dashboard_summary, record_to_row
from store_client import SheetStoreClient, StoreEnvelope, StoreError, get_store_client

logger = logging.getLogger(__name__)
router = APIRouter()

NO_STORE = {'Cache-Control': 'no-store, max-age=0'}


class LoginRequest(BaseModel):
    username: str
    password: str


class RecordsPayload(BaseModel):
    """Body forwarded to the store's append action"""
    action: str = 'saveRecords'
    data: list = []


def require_context(context: Optional[UserContext] = Depends(current_context)) -> UserContext:
    if context is None:
        raise HTTPException(status_code=401, detail="Not logged in")
    return context


def proxy_response(envelope: StoreEnvelope) -> JSONResponse:
    return JSONResponse(envelope.to_dict(), status_code=200, headers=NO_STORE)


def proxy_error(route: str, error: Exception, default: str) -> JSONResponse:
    logger.error(f"Error in {route}: {error}")
    return JSONResponse(
        {"success": False, "error": str(error) or default},
        status_code=500,
        headers=NO_STORE
    )


@router.get("/api/sheets/main", response_class=JSONResponse)
def sheets_main(store: SheetStoreClient = Depends(get_store_client)):
    """Proxy the Main sheet (machines and optimum targets)"""
    try:
        return proxy_response(store.list_machines())
    except StoreError as e:
        return proxy_error("/api/sheets/main", e, "Failed to fetch main sheet data")


@router.get("/api/sheets/master", response_class=JSONResponse)
def sheets_master(store: SheetStoreClient = Depends(get_store_client)):
    """Proxy the Master sheet (specifications and materials)"""
    try:
        return proxy_response(store.list_master())
    except StoreError as e:
        return proxy_error("/api/sheets/master", e, "Failed to fetch master sheet data")


@router.get("/api/sheets/records", response_class=JSONResponse)
def sheets_records(store: SheetStoreClient = Depends(get_store_client)):
    """Proxy the Records sheet"""
    try:
        return proxy_response(store.list_records())
    except StoreError as e:
        return proxy_error("/api/sheets/records (GET)", e, "Failed to fetch records data")


@router.post("/api/sheets/records", response_class=JSONResponse)
def sheets_records_append(
    payload: RecordsPayload = Body(...),
    store: SheetStoreClient = Depends(get_store_client)
):
    """Forward an append request to the Records sheet"""
    try:
        logger.info(f"Posting {len(payload.data)} row(s) to Google Sheets")
        return proxy_response(store.post(payload.action, payload.data))
    except StoreError as e:
        return proxy_error("/api/sheets/records (POST)", e, "Failed to submit records")


@router.get("/api/sheets/dashboard", response_class=JSONResponse)
def sheets_dashboard(store: SheetStoreClient = Depends(get_store_client)):
    """Raw records feed used by the dashboard"""
    try:
        return proxy_response(store.list_records())
    except StoreError as e:
        return proxy_error("/api/sheets/dashboard", e, "Failed to fetch dashboard data")


@router.get("/api/sheets", response_class=JSONResponse)
def sheets_action(
    action: str = Query('getMasterData'),
    store: SheetStoreClient = Depends(get_store_client)
):
    """Proxy any named list action"""
    try:
        return proxy_response(store.get(action))
    except StoreError as e:
        return proxy_error(f"/api/sheets?action={action}", e, f"Failed to fetch {action} data")


@router.post("/api/login", response_class=JSONResponse)
def api_login(
    request: Request,
    credentials: LoginRequest,
    authenticator: Authenticator = Depends(get_authenticator)
):
    """Check credentials and start a session"""
    try:
        user = authenticator.authenticate(credentials.username, credentials.password)
    except InvalidCredentials as e:
        raise HTTPException(status_code=401, detail=str(e))
    except StoreError as e:
        logger.error(f"Login error: {e}")
        raise HTTPException(status_code=502, detail="Login failed. Please try again.")

    context = build_context(user)
    start_session(request, context)
    return {"success": True, "user": context.to_dict()}


@router.post("/api/logout", response_class=JSONResponse)
async def api_logout(request: Request):
    end_session(request)
    return {"success": True}


@router.get("/api/records", response_class=JSONResponse)
def api_records(
    machine: Optional[str] = Query(None),
    specifications: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
    context: UserContext = Depends(require_context),
    store: SheetStoreClient = Depends(get_store_client)
):
    """Records in the requester's scope, searched and annotated with efficiency"""
    try:
        records = fetch_records(store, context)
        filtered = apply_filters(records, machine, specifications, date)
        return JSONResponse({
            "success": True,
            "total": len(records),
            "count": len(filtered),
            "data": [record_to_row(r) for r in filtered],
        }, headers=NO_STORE)
    except StoreError as e:
        logger.error(f"API error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to load records: {e}")


@router.get("/api/dashboard/summary", response_class=JSONResponse)
def api_dashboard_summary(
    context: UserContext = Depends(require_context),
    store: SheetStoreClient = Depends(get_store_client)
):
    """Dashboard cards and machine performance"""
    try:
        summary: Dict[str, Any] = get_dashboard_summary(store, context)
        return JSONResponse({"success": True, **summary}, headers=NO_STORE)
    except StoreError as e:
        logger.error(f"Statistics error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to load dashboard data: {e}")


@router.get("/api/records/export", response_class=StreamingResponse)
def export_records_csv(
    machine: Optional[str] = Query(None),
    specifications: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
    context: UserContext = Depends(require_context),
    store: SheetStoreClient = Depends(get_store_client)
):
    """Download the visible records as CSV"""
    try:
        records = apply_filters(fetch_records(store, context), machine, specifications, date)
    except StoreError as e:
        logger.error(f"CSV error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(['Date', 'Firm', 'Machine', 'Optimum Working Time', 'Optimum Output',
                     'Optimum Total Quantity', 'Actual Working Time', 'Actual Output',
                     'Actual Total Output', 'Material', 'Manpower', 'Specifications',
                     'Remarks', 'Efficiency (%)', 'Status'])

    for record in records:
        row = record_to_row(record)
        writer.writerow([
            record.date_time,
            record.firm_name,
            record.machine_name,
            record.optimum_working_time,
            record.optimum_output,
            record.optimum_total_quantity,
            record.actual_working_time,
            record.actual_output,
            record.actual_total_output,
            record.material,
            record.manpower,
            record.specifications,
            record.remarks,
            f"{row['efficiency']:.2f}",
            row['status'],
        ])

    output.seek(0)
    filename = f"production_records_{date or 'all'}.csv"

    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={'Content-Disposition': f'attachment; filename="{filename}"', **NO_STORE}
    )


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
    }
