import os, sys, threading, time, logging
from typing import Any, Dict, List, Optional, Tuple
from fastapi import APIRouter, FastAPI, HTTPException, Request, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field, ValidationError
from prometheus_client import (
    Counter,
    Histogram,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
sys.path.insert(0, REPO_ROOT)

from Design.actions import EditResult
from Design.blueprints import BlueprintRepository, apply_blueprint
from Design.catalog import DOOR_CATALOG
from Design.constants import BLUEPRINT_NAMESPACE, BLUEPRINT_PRICE_DEFAULT, PERSIST_DEBOUNCE_S, VERSION
from Design.editor import LayoutEditor
from Design.errors import PersistenceFailure, UnknownBlueprint
from Design.persistence import DebouncedSaver, JsonLayoutStore, MemoryLayoutStore, check_namespace


def _read_version(component: str) -> str:
    """Read the VERSION file for a component."""
    path = os.path.join(REPO_ROOT, component, "VERSION")
    if not os.path.exists(path):
        raise RuntimeError(f"Missing VERSION file for {component}")
    with open(path, "r", encoding="utf-8") as f:
        return f.read().strip()


SCHEMA_VERSION = _read_version("Design")
if SCHEMA_VERSION != VERSION:
    raise RuntimeError(
        f"Layout schema version {SCHEMA_VERSION} does not match engine version {VERSION}"
    )


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("space_design_api")

# Simple API key auth
API_KEYS = set(filter(None, os.environ.get("API_KEYS", "testkey").split(",")))
LAYOUT_STORE_DIR = os.environ.get("LAYOUT_STORE_DIR")
BLUEPRINT_STORE_PATH = os.environ.get("BLUEPRINT_STORE_PATH")
DEBOUNCE_S = float(os.environ.get("PERSIST_DEBOUNCE_S", str(PERSIST_DEBOUNCE_S)))


def _get_api_key(request: Request) -> str:
    api_key = request.headers.get("X-API-Key")
    if not api_key or api_key not in API_KEYS:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Invalid API key"},
        )
    return api_key


# Prometheus metrics
PROM_REGISTRY = CollectorRegistry()
REQUEST_COUNT = Counter(
    "request_total", "Total HTTP requests", ["method", "endpoint", "http_status"],
    registry=PROM_REGISTRY,
)
REQUEST_LATENCY = Histogram(
    "request_latency_seconds", "Latency of HTTP requests", ["endpoint"],
    registry=PROM_REGISTRY,
)
ERROR_COUNT = Counter(
    "request_errors_total", "Total HTTP errors",
    registry=PROM_REGISTRY,
)
EDIT_COUNT = Counter(
    "layout_edits_total", "Layout edits by outcome", ["action", "outcome"],
    registry=PROM_REGISTRY,
)


class Metadata(BaseModel):
    processing_time: float


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None
    metadata: Metadata


class ChunkRequest(BaseModel):
    cx: int
    cy: int


class PlacementRequest(BaseModel):
    furnitureId: str = Field(min_length=1)
    x: int
    y: int
    rotation: int = Field(default=0, ge=0, le=3)


class DoorRequest(BaseModel):
    segmentId: str
    position: float
    doorType: str


class WallItemRequest(BaseModel):
    furnitureId: str = Field(min_length=1)
    segmentId: str
    gridPos: int
    z: float = 0.0


class PartitionRequest(BaseModel):
    start: Tuple[int, int]
    end: Tuple[int, int]


class BlueprintCreateRequest(BaseModel):
    name: str
    description: str = ""
    price: int = BLUEPRINT_PRICE_DEFAULT
    tags: List[str] = Field(default_factory=list)
    namespace: str = BLUEPRINT_NAMESPACE


class BlueprintUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[int] = None
    tags: Optional[List[str]] = None
    namespace: Optional[str] = Field(
        default=None, description="Re-snapshot geometry from this layout namespace"
    )


class ApplyRequest(BaseModel):
    namespace: str = BLUEPRINT_NAMESPACE


class EditResponse(BaseModel):
    ok: bool
    record: Optional[Dict[str, Any]] = None
    layout: Dict[str, Any]


app = FastAPI(title="Space Design Layout API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start_time = time.perf_counter()
    request.state.start_time = start_time
    try:
        response = await call_next(request)
        status_code = response.status_code
    except Exception as exc:
        status_code = 500
        ERROR_COUNT.inc()
        logger.exception("Unhandled exception during request: %s", exc)
        raise
    finally:
        duration = time.perf_counter() - start_time
        endpoint = request.url.path
        REQUEST_COUNT.labels(request.method, endpoint, status_code).inc()
        REQUEST_LATENCY.labels(endpoint).observe(duration)
        logger.info(
            "%s %s -> %s in %.3fs",
            request.method,
            endpoint,
            status_code,
            duration,
        )
    return response


_store = JsonLayoutStore(LAYOUT_STORE_DIR) if LAYOUT_STORE_DIR else MemoryLayoutStore()
_saver = DebouncedSaver(_store, delay=DEBOUNCE_S)
_saver.start()
_blueprints = BlueprintRepository(BLUEPRINT_STORE_PATH)
_editors: Dict[str, LayoutEditor] = {}
_lock = threading.Lock()


def _get_editor(namespace: str) -> LayoutEditor:
    try:
        check_namespace(namespace)
    except ValueError as exc:
        raise HTTPException(
            status_code=422,
            detail={"code": "validation_error", "message": str(exc)},
        )
    editor = _editors.get(namespace)
    if editor is None:
        editor = LayoutEditor(namespace, store=_store)
        editor.load()
        editor.subscribe(lambda ed: _saver.schedule(ed.namespace, ed.state))
        _editors[namespace] = editor
        logger.info("Opened layout namespace %s with %s chunks", namespace, len(editor.chunks))
    return editor


def _edit_response(editor: LayoutEditor, result: EditResult, action: Optional[str] = None) -> EditResponse:
    EDIT_COUNT.labels(action or result.label, "accepted" if result.ok else "rejected").inc()
    if not result.ok:
        raise HTTPException(
            status_code=409,
            detail={
                "code": result.error.value,
                "message": f"{result.label} rejected: {result.error.value.replace('_', ' ')}",
            },
        )
    record = result.record.model_dump(mode="json") if result.record is not None else None
    return EditResponse(ok=True, record=record, layout=editor.view())


def _validation_detail(exc: ValidationError) -> Dict[str, Any]:
    return {
        "code": "validation_error",
        "message": "Invalid blueprint",
        "details": exc.errors(include_url=False, include_context=False),
    }


@app.get("/health")
def health():
    return {"ok": True, "schema_version": SCHEMA_VERSION}


@app.get("/metrics")
def metrics():
    return Response(generate_latest(PROM_REGISTRY), media_type=CONTENT_TYPE_LATEST)


def _processing_time(request: Request) -> float:
    return time.perf_counter() - getattr(request.state, "start_time", time.perf_counter())


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning("HTTPException %s: %s", exc.status_code, exc.detail)
    detail = exc.detail
    if isinstance(detail, dict):
        content = dict(detail)
    else:
        content = {"code": "error", "message": str(detail)}
    content["metadata"] = {"processing_time": _processing_time(request)}
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(PersistenceFailure)
async def persistence_exception_handler(request: Request, exc: PersistenceFailure):
    logger.error("Persistence failure: %s", exc)
    return JSONResponse(
        status_code=503,
        content={
            "code": "persistence_failure",
            "message": str(exc),
            "metadata": {"processing_time": _processing_time(request)},
        },
    )


@app.exception_handler(UnknownBlueprint)
async def unknown_blueprint_handler(request: Request, exc: UnknownBlueprint):
    return JSONResponse(
        status_code=404,
        content={
            "code": "not_found",
            "message": str(exc),
            "metadata": {"processing_time": _processing_time(request)},
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={
            "code": "internal_error",
            "message": "Internal server error",
            "metadata": {"processing_time": _processing_time(request)},
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation error: %s", exc)
    return JSONResponse(
        status_code=422,
        content={
            "code": "validation_error",
            "message": "Invalid request",
            "details": jsonable_encoder(exc.errors()),
            "metadata": {"processing_time": _processing_time(request)},
        },
    )


router = APIRouter(
    dependencies=[Depends(_get_api_key)],
    responses={
        401: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)


@router.get("/doors/catalog")
def door_catalog():
    return [entry.model_dump() for entry in DOOR_CATALOG.values()]


@router.get("/layouts/{namespace}")
def get_layout(namespace: str):
    with _lock:
        return _get_editor(namespace).view()


@router.post("/layouts/{namespace}/chunks", response_model=EditResponse)
def add_chunk(namespace: str, req: ChunkRequest):
    with _lock:
        editor = _get_editor(namespace)
        return _edit_response(editor, editor.add_chunk((req.cx, req.cy)))


@router.post("/layouts/{namespace}/placements", response_model=EditResponse)
def place_furniture(namespace: str, req: PlacementRequest):
    with _lock:
        editor = _get_editor(namespace)
        return _edit_response(editor, editor.place_furniture(req.furnitureId, req.x, req.y, req.rotation))


@router.delete("/layouts/{namespace}/placements/{placement_id}", response_model=EditResponse)
def remove_furniture(namespace: str, placement_id: str):
    with _lock:
        editor = _get_editor(namespace)
        return _edit_response(editor, editor.remove_furniture(placement_id))


@router.post("/layouts/{namespace}/doors", response_model=EditResponse)
def place_door(namespace: str, req: DoorRequest):
    with _lock:
        editor = _get_editor(namespace)
        return _edit_response(editor, editor.place_door(req.segmentId, req.position, req.doorType))


@router.delete("/layouts/{namespace}/doors/{door_id}", response_model=EditResponse)
def remove_door(namespace: str, door_id: str):
    with _lock:
        editor = _get_editor(namespace)
        return _edit_response(editor, editor.remove_door(door_id))


@router.post("/layouts/{namespace}/wall-placements", response_model=EditResponse)
def place_wall_item(namespace: str, req: WallItemRequest):
    with _lock:
        editor = _get_editor(namespace)
        return _edit_response(
            editor, editor.place_wall_item(req.furnitureId, req.segmentId, req.gridPos, req.z)
        )


@router.delete("/layouts/{namespace}/wall-placements/{item_id}", response_model=EditResponse)
def remove_wall_item(namespace: str, item_id: str):
    with _lock:
        editor = _get_editor(namespace)
        return _edit_response(editor, editor.remove_wall_item(item_id))


@router.post("/layouts/{namespace}/partitions", response_model=EditResponse)
def add_partition(namespace: str, req: PartitionRequest):
    with _lock:
        editor = _get_editor(namespace)
        return _edit_response(editor, editor.add_partition(req.start, req.end))


@router.delete("/layouts/{namespace}/partitions/{partition_id}", response_model=EditResponse)
def remove_partition(namespace: str, partition_id: str):
    with _lock:
        editor = _get_editor(namespace)
        return _edit_response(editor, editor.remove_partition(partition_id))


@router.post("/layouts/{namespace}/undo")
def undo(namespace: str):
    with _lock:
        editor = _get_editor(namespace)
        return {"ok": editor.undo(), "layout": editor.view()}


@router.post("/layouts/{namespace}/redo")
def redo(namespace: str):
    with _lock:
        editor = _get_editor(namespace)
        return {"ok": editor.redo(), "layout": editor.view()}


@router.post("/layouts/{namespace}/reset")
def reset(namespace: str):
    with _lock:
        editor = _get_editor(namespace)
        editor.reset_layout()
        return {"ok": True, "layout": editor.view()}


@router.get("/layouts/{namespace}/persistence")
def persistence_status(namespace: str):
    with _lock:
        editor = _get_editor(namespace)
    return _saver.status(editor.namespace)


@router.post("/blueprints")
def create_blueprint(req: BlueprintCreateRequest):
    with _lock:
        layout = _get_editor(req.namespace).state
        try:
            bp = _blueprints.create(req.name, req.description, req.price, layout, req.tags)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=_validation_detail(e))
    logger.info("Created blueprint %s (%s)", bp.id, bp.name)
    return bp.model_dump(mode="json")


@router.get("/blueprints")
def list_blueprints(published: bool = False):
    items = _blueprints.published() if published else _blueprints.list()
    return [bp.model_dump(mode="json") for bp in items]


@router.get("/blueprints/{blueprint_id}")
def get_blueprint(blueprint_id: str):
    return _blueprints.get(blueprint_id).model_dump(mode="json")


@router.patch("/blueprints/{blueprint_id}")
def update_blueprint(blueprint_id: str, req: BlueprintUpdateRequest):
    changes = req.model_dump(exclude_none=True, exclude={"namespace"})
    with _lock:
        if req.namespace is not None:
            state = _get_editor(req.namespace).state
            changes.update(
                chunks=state.chunks,
                placements=state.placements,
                wallPlacements=state.wallPlacements,
                doors=state.doors,
                partitions=state.partitions,
            )
        try:
            bp = _blueprints.update(blueprint_id, **changes)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=_validation_detail(e))
    return bp.model_dump(mode="json")


@router.delete("/blueprints/{blueprint_id}")
def delete_blueprint(blueprint_id: str):
    _blueprints.delete(blueprint_id)
    return {"ok": True}


@router.post("/blueprints/{blueprint_id}/publish")
def publish_blueprint(blueprint_id: str):
    return _blueprints.publish(blueprint_id).model_dump(mode="json")


@router.post("/blueprints/{blueprint_id}/unpublish")
def unpublish_blueprint(blueprint_id: str):
    return _blueprints.unpublish(blueprint_id).model_dump(mode="json")


@router.post("/blueprints/{blueprint_id}/duplicate")
def duplicate_blueprint(blueprint_id: str):
    return _blueprints.duplicate(blueprint_id).model_dump(mode="json")


@router.post("/blueprints/{blueprint_id}/apply", response_model=EditResponse)
def apply_blueprint_route(blueprint_id: str, req: ApplyRequest):
    bp = _blueprints.get(blueprint_id)
    with _lock:
        editor = _get_editor(req.namespace)
        return _edit_response(
            editor,
            editor.load_state(apply_blueprint(bp), f"Apply blueprint {bp.name}"),
            action="Apply blueprint",
        )


app.include_router(router)
