# tracker/app.py
import time
from typing import Optional, List, Dict, Any

# Load .env BEFORE any tracker imports (they read env vars at import time)
from dotenv import load_dotenv
load_dotenv(override=True)

from fastapi import FastAPI, Request, Query
from fastapi.responses import JSONResponse, Response, PlainTextResponse

from tracker.config import SyncConfig
from tracker.orchestrator import build_orchestrator
from tracker.processors.query import filter_requests, sort_for_board
from tracker.results import E_LOCKED
from tracker import monitoring
from tracker import auth as authmod
from tracker import stats

app = FastAPI(title="Character Request Tracker API")

config = SyncConfig.from_env()


# instantiate orchestrator once
orchestrator = build_orchestrator(config)

API_KEY_HEADER = "x-api-key"
DATA_SOURCE_HEADER = "x-data-source"

E_MISSING_ID = "E_MISSING_ID"
E_INVALID = "E_INVALID"
E_INTERNAL = "E_INTERNAL"


def _error(status_code: int, error_code: str, message: str, details: Optional[Dict[str, Any]] = None) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "error_code": error_code, "error": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _internal_error(handler: str, e: Exception) -> JSONResponse:
    monitoring.logger.exception(f"Unexpected error in {handler} handler")
    return _error(500, E_INTERNAL, "Internal server error", {"exception": str(e)})


# ---------------------------------------------------------------------------
# Auth middleware (runs first on /api/* paths)
# ---------------------------------------------------------------------------
@app.middleware("http")
async def api_key_middleware(request: Request, call_next):
    path = request.url.path
    if not path.startswith("/api/"):
        return await call_next(request)

    api_key = request.headers.get(API_KEY_HEADER)
    if not authmod.is_key_allowed(api_key):
        return JSONResponse(status_code=401, content={"detail": "Missing or invalid API key"})

    return await call_next(request)


# ---------------------------------------------------------------------------
# Metrics middleware
# ---------------------------------------------------------------------------
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.time()
    endpoint = request.url.path
    method = request.method
    status = "500"
    try:
        response = await call_next(request)
        status = str(response.status_code)
        return response
    except Exception:
        monitoring.logger.exception("Unhandled exception in request", extra={"path": endpoint})
        raise
    finally:
        monitoring.observe_request(start, endpoint, method, status)


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@app.get("/api/requests")
def list_requests(
    q: Optional[str] = None,
    status: Optional[List[str]] = Query(None),
    type: Optional[List[str]] = Query(None),
    sort: Optional[str] = None,
):
    """
    GET /api/requests
    Full normalized list; the answering store is named in the x-data-source header.
    Optional table-view params: q, status (repeatable), type (repeatable), sort=board.
    """
    try:
        items, source = orchestrator.read_requests()
        if q or status or type:
            items = filter_requests(items, q=q, statuses=status, types=type)
        if sort == "board":
            items = sort_for_board(items)
        return JSONResponse(
            status_code=200,
            content=[item.to_wire() for item in items],
            headers={DATA_SOURCE_HEADER: source},
        )
    except Exception as e:
        return _internal_error("GET /api/requests", e)


@app.put("/api/requests")
async def update_request(request: Request):
    """
    PUT /api/requests
    Body: { "id": "...", ...changed fields }
    """
    body = await _json_body(request)
    if not isinstance(body, dict) or not str(body.get("id") or "").strip():
        return _error(400, E_MISSING_ID, "Request body must include an id")

    request_id = str(body.pop("id")).strip()
    monitoring.logger.info("Received update", extra={"id": request_id, "fields": sorted(body.keys())})
    try:
        orchestrator.vocabulary.validate_fields(body)
        resp = orchestrator.update_request(request_id, body)
        return JSONResponse(status_code=200, content=resp)
    except ValueError as e:
        return _error(400, E_INVALID, str(e))
    except Exception as e:
        return _internal_error("PUT /api/requests", e)


@app.post("/api/requests")
async def create_request(request: Request):
    """
    POST /api/requests
    Body: a request record (id optional; one is generated when missing)
    """
    body = await _json_body(request)
    if not isinstance(body, dict):
        return _error(400, E_INVALID, "Request body must be a JSON object")

    monitoring.logger.info("Received create", extra={"character": body.get("characterName")})
    try:
        orchestrator.vocabulary.validate_fields(body)
        resp = orchestrator.create_request(body)
        return JSONResponse(status_code=200, content=resp)
    except ValueError as e:
        return _error(400, E_INVALID, str(e))
    except Exception as e:
        return _internal_error("POST /api/requests", e)


@app.delete("/api/requests")
def delete_request(id: Optional[str] = None):
    """DELETE /api/requests?id=..."""
    if not (id or "").strip():
        return _error(400, E_MISSING_ID, "Query parameter id is required")
    try:
        resp = orchestrator.delete_request(id.strip())
        return JSONResponse(status_code=200, content=resp)
    except Exception as e:
        return _internal_error("DELETE /api/requests", e)


@app.post("/api/sync")
async def sync_to_excel(request: Request):
    """
    POST /api/sync
    Body: the full request list; writes it to the Excel workbook.
    """
    body = await _json_body(request)
    if not isinstance(body, list):
        return _error(400, E_INVALID, "Request body must be a JSON array")
    bad = [idx for idx, entry in enumerate(body) if not isinstance(entry, dict)]
    if bad:
        return _error(400, E_INVALID, "Every array element must be a JSON object", {"indexes": bad})

    monitoring.logger.info("Received export", extra={"count": len(body)})
    try:
        resp = orchestrator.export_requests(body)
    except Exception as e:
        return _internal_error("POST /api/sync", e)

    if resp.get("success"):
        return JSONResponse(status_code=200, content=resp)
    if resp.get("error_code") == E_LOCKED:
        return JSONResponse(status_code=423, content=resp)
    return JSONResponse(status_code=500, content=resp)


@app.get("/api/analytics")
def analytics():
    """GET /api/analytics -> KPIs, status/tier breakdowns, last-7-days counts, next-up queue."""
    try:
        items, source = orchestrator.read_requests()
        return JSONResponse(
            status_code=200,
            content=stats.build_analytics(items),
            headers={DATA_SOURCE_HEADER: source},
        )
    except Exception as e:
        return _internal_error("GET /api/analytics", e)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/metrics")
async def metrics():
    if not monitoring.PROMETHEUS_ENABLED:
        return PlainTextResponse("Prometheus disabled", status_code=404)
    payload, content_type = monitoring.prometheus_metrics_response()
    return Response(content=payload, media_type=content_type)
