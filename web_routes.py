# machine_efficiency/web_routes.py
"""Web page route handlers"""
from fastapi import APIRouter, Request, Query, Form, Depends
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from typing import Optional, List, Dict, Any
from pathlib import Path
import logging

from auth import (
    PAGES, PAGE_LABELS, Authenticator, InvalidCredentials, build_context,
    current_context, end_session, get_authenticator, navigable_pages, start_session,
)
from models import EntryRow, MachineTarget, UserContext, to_int, to_number, with_actuals
from services import (
    ValidationError, apply_filters, fetch_entry_rows, fetch_master_options,
    fetch_records, get_dashboard_summary, is_unrestricted, record_to_row, submit_entry_row,
)
from store_client import SheetStoreClient, StoreError, get_store_client
from utils import today_str

logger = logging.getLogger(__name__)
router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

FLASH_KEY = 'flash'


def flash(request: Request, kind: str, message: str) -> None:
    """Queue a banner for the next rendered page"""
    request.session[FLASH_KEY] = {"type": kind, "message": message}


def render(request: Request, template: str, context: Optional[UserContext], current_page: str, **values):
    queued = request.session.pop(FLASH_KEY, None)
    alert = values.pop('alert', None) or queued
    return templates.TemplateResponse(request, template, {
        "user": context,
        "menu": [{"id": p, "label": PAGE_LABELS[p]} for p in navigable_pages(context)],
        "current_page": current_page,
        "alert": alert,
        "all_firms": context is not None and is_unrestricted(context),
        **values
    })


def landing_url(context: Optional[UserContext]) -> str:
    if context is None:
        return "/login"
    pages = navigable_pages(context)
    return f"/{pages[0]}" if pages else "/no-access"


def guard(context: Optional[UserContext], page: str) -> Optional[RedirectResponse]:
    """Redirect away from pages outside the user's allowed set"""
    if context is None:
        return RedirectResponse("/login", status_code=303)
    if not context.can_view(PAGES[page]):
        return RedirectResponse(landing_url(context), status_code=303)
    return None


@router.get("/", response_class=HTMLResponse)
async def index(context: Optional[UserContext] = Depends(current_context)):
    return RedirectResponse(landing_url(context), status_code=303)


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, context: Optional[UserContext] = Depends(current_context)):
    if context is not None:
        return RedirectResponse(landing_url(context), status_code=303)
    return render(request, "login.html", None, "login")


@router.post("/login", response_class=HTMLResponse)
def login_submit(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    authenticator: Authenticator = Depends(get_authenticator)
):
    """Credential check; every failure shows the same message"""
    try:
        user = authenticator.authenticate(username, password)
    except (InvalidCredentials, StoreError) as e:
        logger.warning(f"Login failed for {username!r}: {e}")
        return render(request, "login.html", None, "login", username=username,
                      alert={"type": "error", "message": "Invalid username or password"})

    context = build_context(user)
    start_session(request, context)
    flash(request, "success", f"Welcome, {context.username}")
    return RedirectResponse(landing_url(context), status_code=303)


@router.get("/logout")
async def logout(request: Request):
    end_session(request)
    return RedirectResponse("/login", status_code=303)


@router.get("/no-access", response_class=HTMLResponse)
async def no_access(request: Request, context: Optional[UserContext] = Depends(current_context)):
    if context is None:
        return RedirectResponse("/login", status_code=303)
    return render(request, "no_access.html", context, "")


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(
    request: Request,
    context: Optional[UserContext] = Depends(current_context),
    store: SheetStoreClient = Depends(get_store_client)
):
    """Efficiency overview for the user's scope"""
    redirect = guard(context, 'dashboard')
    if redirect:
        return redirect

    alert = None
    try:
        summary = get_dashboard_summary(store, context)
    except StoreError as e:
        logger.error(f"Dashboard error: {e}", exc_info=True)
        alert = {"type": "error", "message": f"Failed to load dashboard data: {e}"}
        summary = {"stats": {"total": 0, "excellent": 0, "good": 0, "poor": 0,
                             "todayRecords": 0, "averageEfficiency": 0},
                   "machines": [], "scope": context.firm_name}

    return render(request, "dashboard.html", context, "dashboard", alert=alert, **summary)


def entry_page(
    request: Request,
    context: UserContext,
    store: SheetStoreClient,
    update_date: str,
    typed_row: Optional[EntryRow] = None,
    alert: Optional[Dict[str, Any]] = None
):
    """Render the entry grid, keeping a row as typed after a failed submit"""
    rows: List[EntryRow] = []
    try:
        rows = fetch_entry_rows(store, context)
    except (StoreError, ValidationError) as e:
        logger.error(f"Error loading data: {e}")
        alert = alert or {"type": "error", "message": f"Failed to load data: {e}"}

    if typed_row is not None:
        rows = [typed_row if r.target == typed_row.target else r for r in rows] or [typed_row]

    specifications, materials = fetch_master_options(store)
    return render(
        request, "data_entry.html", context, "entry",
        alert=alert,
        rows=rows,
        update_date=update_date,
        specifications=specifications,
        materials=materials,
    )


@router.get("/entry", response_class=HTMLResponse)
def data_entry(
    request: Request,
    date: Optional[str] = Query(None),
    context: Optional[UserContext] = Depends(current_context),
    store: SheetStoreClient = Depends(get_store_client)
):
    redirect = guard(context, 'entry')
    if redirect:
        return redirect
    return entry_page(request, context, store, date or today_str())


@router.post("/entry/submit", response_class=HTMLResponse)
def data_entry_submit(
    request: Request,
    update_date: str = Form(...),
    s_no: str = Form(""),
    machine_name: str = Form(...),
    firm_name: str = Form(""),
    optimum_working_time: str = Form("0"),
    optimum_output: str = Form("0"),
    optimum_total_quantity: str = Form("0"),
    actual_working_time: str = Form(""),
    actual_output: str = Form(""),
    actual_total_output: str = Form(""),
    material: str = Form(""),
    manpower: str = Form(""),
    specifications: str = Form(""),
    remarks: str = Form(""),
    context: Optional[UserContext] = Depends(current_context),
    store: SheetStoreClient = Depends(get_store_client)
):
    """Submit a single row; each row goes to the store on its own"""
    redirect = guard(context, 'entry')
    if redirect:
        return redirect

    target = MachineTarget(
        s_no=to_int(s_no),
        machine_name=machine_name,
        firm_name=firm_name,
        optimum_working_time=to_number(optimum_working_time),
        optimum_output=to_number(optimum_output),
        optimum_total_quantity=to_number(optimum_total_quantity),
    )
    row = with_actuals(
        EntryRow(target=target),
        actual_working_time=to_number(actual_working_time),
        actual_output=to_number(actual_output),
        actual_total_output=to_number(actual_total_output),
        material=material,
        manpower=to_int(manpower),
        specifications=specifications,
        remarks=remarks,
    )

    try:
        submit_entry_row(store, row, update_date)
    except ValidationError as e:
        return entry_page(request, context, store, update_date, typed_row=row,
                          alert={"type": "error", "message": str(e)})
    except StoreError as e:
        logger.error(f"Error saving record: {e}")
        return entry_page(request, context, store, update_date, typed_row=row,
                          alert={"type": "error", "message": f"Error submitting record for {machine_name}"})

    flash(request, "success", f"Record for {machine_name} ({firm_name}) submitted successfully!")
    return RedirectResponse(f"/entry?date={update_date}", status_code=303)


@router.get("/records", response_class=HTMLResponse)
def view_records(
    request: Request,
    machine: Optional[str] = Query(None),
    specifications: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
    context: Optional[UserContext] = Depends(current_context),
    store: SheetStoreClient = Depends(get_store_client)
):
    """Record history with search and per-cell performance colouring"""
    redirect = guard(context, 'records')
    if redirect:
        return redirect

    alert = None
    records = []
    try:
        records = fetch_records(store, context)
    except StoreError as e:
        logger.error(f"Records error: {e}")
        alert = {"type": "error", "message": f"Failed to load records: {e}"}

    filtered = apply_filters(records, machine, specifications, date)
    return render(
        request, "records.html", context, "records",
        alert=alert,
        rows=[record_to_row(r) for r in filtered],
        total_records=len(records),
        machine=machine or "",
        specifications=specifications or "",
        date=date or "",
    )
