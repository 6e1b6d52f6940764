"""
Main application module for the JMCC dashboard.

This module defines the FastAPI application, routes, and middleware.
"""
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List

from dotenv import load_dotenv
from fastapi import FastAPI, Depends, HTTPException, BackgroundTasks
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from jmcc_dashboard.auth import authenticate_user, create_access_token, get_current_user
from jmcc_dashboard.schemas.alerts import AlertPreviewResponse
from jmcc_dashboard.schemas.journey import JourneyRecordIn, to_api_row
from jmcc_dashboard.schemas.responses import EmailRequest, LoginRequest, LoginResponse, MessageResponse
from jmcc_dashboard.services import db_operations
from jmcc_dashboard.services.alert_engine import alert_engine
from jmcc_dashboard.services.alerting import run_alert_cycle
from jmcc_dashboard.services.error_handler import error_handler
from jmcc_dashboard.services.notifier import send_email

load_dotenv()

FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:3000")
HEALTH_CHECK_PATH = "/ping"


class HealthCheckFilter(logging.Filter):
    """
    Drops uvicorn access log lines for health check requests.
    This prevents the frequent health check requests from cluttering the logs.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        # uvicorn passes (client, method, path, http_version, status)
        args = record.args
        if isinstance(args, tuple) and len(args) >= 3:
            return args[2] != HEALTH_CHECK_PATH
        return True

logging.getLogger("uvicorn.access").addFilter(HealthCheckFilter())

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await db_operations.dispose_engine()

# Create FastAPI app
app = FastAPI(
    title="JMCC Dashboard",
    description="Journey plan tracking with IVMS check alerts",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def _server_error(operation: str, error: Exception) -> HTTPException:
    """Track a failed store operation and build the response for it."""
    error_handler.track_error(operation, error)
    return HTTPException(status_code=500, detail=error_handler.get_user_friendly_error(operation))

@app.get(HEALTH_CHECK_PATH)
@app.head(HEALTH_CHECK_PATH)
async def ping():
    """Health check endpoint. Supports both GET and HEAD methods."""
    return {"status": "ok"}

@app.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest):
    """
    Exchange dashboard credentials for a bearer token.

    Raises:
        HTTPException: 401 for unknown users or wrong passwords
    """
    try:
        user = await authenticate_user(body.username, body.password)
    except Exception as e:
        raise _server_error("login", e)

    if user is None:
        raise HTTPException(status_code=401, detail="Invalid credentials.")

    print(f"[auth] {body.username} logged in")
    return LoginResponse(message="Successfully logged in!", token=create_access_token(body.username))

@app.post("/addRecord", response_model=MessageResponse)
async def add_record(
    record: JourneyRecordIn,
    background_tasks: BackgroundTasks,
    user: Dict = Depends(get_current_user)
):
    """Insert a journey plan, then run the alert cycle in the background."""
    try:
        await db_operations.insert_record(record.to_columns())
    except Exception as e:
        raise _server_error("insert", e)

    background_tasks.add_task(run_alert_cycle)
    return MessageResponse(message="Record added successfully!")

@app.get("/dashboard")
async def dashboard(user: Dict = Depends(get_current_user)) -> List[Dict[str, Any]]:
    """Return every journey plan keyed the way the frontend expects."""
    try:
        rows = await db_operations.fetch_all_records()
    except Exception as e:
        raise _server_error("fetch", e)
    return [to_api_row(row) for row in rows]

@app.put("/modifyRecord/{journey_plan_no}", response_model=MessageResponse)
async def modify_record(
    journey_plan_no: str,
    record: JourneyRecordIn,
    background_tasks: BackgroundTasks,
    user: Dict = Depends(get_current_user)
):
    """
    Overwrite a journey plan.

    The identifier always comes from the path; fields missing from the body
    are cleared.
    """
    try:
        updated = await db_operations.update_record(journey_plan_no, record.to_columns())
    except Exception as e:
        raise _server_error("update", e)

    if not updated:
        raise HTTPException(status_code=404, detail=f"Journey plan {journey_plan_no} not found.")

    background_tasks.add_task(run_alert_cycle)
    return MessageResponse(message="Record updated successfully!")

@app.put("/batchUpdate", response_model=MessageResponse)
async def batch_update(
    records: List[JourneyRecordIn],
    background_tasks: BackgroundTasks,
    user: Dict = Depends(get_current_user)
):
    """Update several journey plans at once; alerts are evaluated once afterwards."""
    rows = [record.to_columns() for record in records]
    missing = [i for i, row in enumerate(rows) if not row["journey_plan_no"]]
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"journey_Plane_No is required for every record (missing at {missing})"
        )

    try:
        updated = await db_operations.batch_update_records(rows)
    except Exception as e:
        raise _server_error("batch_update", e)

    background_tasks.add_task(run_alert_cycle)
    return MessageResponse(message=f"{updated} record(s) updated successfully!")

@app.delete("/deleteRecord/{journey_plan_no}", response_model=MessageResponse)
async def delete_record(journey_plan_no: str, user: Dict = Depends(get_current_user)):
    """Delete a journey plan."""
    try:
        deleted = await db_operations.delete_record(journey_plan_no)
    except Exception as e:
        raise _server_error("delete", e)

    if not deleted:
        raise HTTPException(status_code=404, detail=f"Journey plan {journey_plan_no} not found.")
    return MessageResponse(message="Record deleted successfully!")

@app.post("/sendEmail", response_model=MessageResponse)
async def send_email_route(body: EmailRequest, user: Dict = Depends(get_current_user)):
    """Send an ad-hoc message to the alert distribution list."""
    if not body.message:
        raise HTTPException(status_code=400, detail="Message content is required.")

    try:
        await run_in_threadpool(send_email, body.message)
    except Exception as e:
        raise _server_error("send_email", e)
    return MessageResponse(message="Email sent successfully!")

@app.get("/alerts", response_model=AlertPreviewResponse)
async def preview_alerts(user: Dict = Depends(get_current_user)):
    """
    Show what the alert cycle would send right now, without sending it.

    Returns:
        AlertPreviewResponse with the snapshot metrics and notifications
    """
    try:
        records = await db_operations.fetch_in_transit_records()
    except Exception as e:
        raise _server_error("fetch", e)

    metrics, notifications = alert_engine.assess(records, datetime.now())
    return AlertPreviewResponse(metrics=metrics, notifications=notifications)

@app.get("/alerts/errors")
async def alert_errors(user: Dict = Depends(get_current_user)):
    """Recent failures tracked by the error handler."""
    return error_handler.get_error_stats()
