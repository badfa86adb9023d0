from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import BaseModel
from datetime import datetime, timezone
from typing import Any, Literal
import logging
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from collections import defaultdict

from config import config
from models import ItemKind
from session_store import (
    InvoiceSession, InputValidationError,
    create_session, delete_session, get_session, reset_session,
)
from pdf_generator import InvoiceExportError, export_filename, export_invoice_pdf
from totals import formatted_totals

# Configure structured logging
import json as json_lib

class StructuredFormatter(logging.Formatter):
    def format(self, record):
        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        # Add extra fields if present
        if hasattr(record, 'session_id'):
            log_obj['session_id'] = record.session_id
        if hasattr(record, 'invoice_id'):
            log_obj['invoice_id'] = record.invoice_id
        if hasattr(record, 'error_type'):
            log_obj['error_type'] = record.error_type

        return json_lib.dumps(log_obj)

# Configure logging
json_handler = logging.FileHandler(config.LOG_FILE.replace('.log', '_structured.json'))
json_handler.setFormatter(StructuredFormatter())

standard_handler = logging.StreamHandler()
standard_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL),
    handlers=[json_handler, standard_handler]
)
logger = logging.getLogger(__name__)

# Error tracking metrics
error_metrics = defaultdict(lambda: {'count': 0, 'last_error': None})

def track_error(error_type: str, session_id: str = None, details: str = None):
    """Track error occurrences for monitoring"""
    error_metrics[error_type]['count'] += 1
    error_metrics[error_type]['last_error'] = {
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'session_id': session_id,
        'details': details
    }

    logger.error(
        f"Error tracked: {error_type}",
        extra={
            'error_type': error_type,
            'session_id': session_id,
        }
    )

app = FastAPI(title="Rent Invoice API")

# Configure rate limiting
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)

class NewItem(BaseModel):
    kind: ItemKind

class ItemUpdate(BaseModel):
    field: Literal["title", "amount"]
    value: Any = None

class IdentityUpdate(BaseModel):
    field: str
    value: str = ""

def require_session(session_id: str) -> InvoiceSession:
    session = get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return session

def items_response(session: InvoiceSession, items) -> dict:
    totals = session.totals()
    return {
        "items": [item.model_dump(mode="json") for item in items],
        "totals": totals.model_dump(),
        "formatted_totals": formatted_totals(totals),
    }

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {}
    }

    # Check database connectivity
    try:
        from database import db
        db.get("health_check_test")
        health_status["checks"]["database"] = "healthy"
    except Exception as e:
        health_status["checks"]["database"] = f"unhealthy: {str(e)}"
        health_status["status"] = "degraded"
        logger.error(f"Database health check failed: {str(e)}")

    return health_status

@app.get("/metrics")
async def get_metrics():
    """Get error metrics"""
    return {
        "error_metrics": dict(error_metrics),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

@app.post("/sessions", status_code=201)
async def start_session():
    """Start a new invoice, prefilled with the last-entered landlord and tenant"""
    session = create_session()
    return session.view()

@app.get("/sessions/{session_id}")
async def preview(session_id: str):
    return require_session(session_id).view()

@app.delete("/sessions/{session_id}")
async def end_session(session_id: str):
    """Drop a session and its line items; remembered identity is kept"""
    if not delete_session(session_id):
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return {"detail": "Session deleted"}

@app.post("/sessions/{session_id}/reset")
async def reset(session_id: str):
    """Reset a session to start over"""
    require_session(session_id)
    session = reset_session(session_id)
    return session.view()

@app.post("/sessions/{session_id}/items", status_code=201)
async def add_item(session_id: str, payload: NewItem):
    session = require_session(session_id)
    items = session.items.add(payload.kind)
    return items_response(session, items)

@app.patch("/sessions/{session_id}/items/{item_id}")
async def update_item(session_id: str, item_id: str, payload: ItemUpdate):
    session = require_session(session_id)
    items = session.items.update(item_id, payload.field, payload.value)
    return items_response(session, items)

@app.delete("/sessions/{session_id}/items/{item_id}")
async def remove_item(session_id: str, item_id: str):
    session = require_session(session_id)
    items = session.items.remove(item_id)
    return items_response(session, items)

@app.get("/sessions/{session_id}/totals")
async def get_totals(session_id: str):
    session = require_session(session_id)
    totals = session.totals()
    return {
        **totals.model_dump(),
        "formatted": formatted_totals(totals),
    }

def _update_identity(session_id: str, kind: str, payload: IdentityUpdate) -> dict:
    session = require_session(session_id)
    try:
        record = session.update_identity(kind, payload.field, payload.value)
    except InputValidationError as e:
        logger.warning(f"Validation error for session {session_id}: {str(e)}",
                       extra={'session_id': session_id})
        track_error('validation_error', session_id, str(e))
        raise HTTPException(status_code=400, detail=str(e))
    return record.model_dump()

@app.put("/sessions/{session_id}/landlord")
async def update_landlord(session_id: str, payload: IdentityUpdate):
    return _update_identity(session_id, "landlord", payload)

@app.put("/sessions/{session_id}/tenant")
async def update_tenant(session_id: str, payload: IdentityUpdate):
    return _update_identity(session_id, "tenant", payload)

@app.post("/sessions/{session_id}/export")
@limiter.limit(config.EXPORT_RATE_LIMIT)
async def export_invoice(request: Request, session_id: str):
    """Generate the PDF invoice from the session as it stands right now"""
    session = require_session(session_id)
    snapshot = session.snapshot()
    invoice_id = snapshot.metadata.invoice_id

    try:
        pdf_path = await export_invoice_pdf(snapshot)
    except InvoiceExportError as e:
        logger.error(f"Error generating PDF for session {session_id}: {str(e)}",
                     extra={'session_id': session_id, 'invoice_id': invoice_id})
        track_error('export_error', session_id, str(e))
        raise HTTPException(status_code=500, detail="Failed to generate PDF")

    logger.info(f"Generated PDF for session {session_id}",
                extra={'session_id': session_id, 'invoice_id': invoice_id})
    return FileResponse(
        path=pdf_path,
        media_type="application/pdf",
        filename=export_filename(invoice_id)
    )

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.HOST, port=config.PORT)
