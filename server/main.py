"""Memsync service: receives host membership hooks and syncs members to the import API."""

import logging
import os
import threading
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Response
from pydantic import BaseModel, Field

from memsync.config import load_config
from memsync.delivery import DeliveryClient
from memsync.intake import MembershipSyncHandler
from memsync.models import MembershipEvent, PaymentCompleted
from memsync.sources import HttpMembershipSource
from memsync.sync_log import SyncLog
from server.auth import ServiceAuthMiddleware
from server.logging_config import (
    DELIVERY_HEADER,
    OUTCOME_HEADER,
    RequestIDMiddleware,
    request_id_var,
    setup_logging,
)
from server.store import (
    Delivery,
    create_delivery,
    finish_delivery,
    get_delivery,
    get_settings,
    list_deliveries,
    put_settings,
)

VERSION = "1.1.0"

setup_logging("memsync-server")
logger = logging.getLogger("memsync.server")

app = FastAPI(
    title="Memsync",
    description="Syncs membership activations from the host to the external import API",
    version=VERSION,
)

app.add_middleware(ServiceAuthMiddleware)
app.add_middleware(RequestIDMiddleware)


class SettingsUpdate(BaseModel):
    api_url: Optional[str] = Field(default=None, min_length=1, examples=["https://api.example.com/v1/imports.json"])
    access_token: Optional[str] = None


class SettingsView(BaseModel):
    api_url: str
    access_token_set: bool


class ActivationResponse(BaseModel):
    ok: bool
    user_id: str
    outcome: str
    attempts: int = 0
    delivery_id: str


_handler: Optional[MembershipSyncHandler] = None
_handler_lock = threading.Lock()


def build_handler() -> MembershipSyncHandler:
    host_url = os.environ.get("MEMSYNC_HOST_URL", "")
    if not host_url:
        raise HTTPException(status_code=503, detail="MEMSYNC_HOST_URL not configured on server")
    try:
        config = load_config(settings=get_settings())
    except ValueError as e:
        raise HTTPException(status_code=503, detail=f"Invalid sync configuration: {e}")
    sync_log = SyncLog(config.log_file)
    source = HttpMembershipSource(host_url, api_key=os.environ.get("MEMSYNC_HOST_KEY", ""))
    logger.info("pipeline configured: endpoint=%s host=%s log=%s", config.endpoint, host_url, config.log_file)
    return MembershipSyncHandler(source, DeliveryClient(config, sync_log), sync_log, config)


def get_handler() -> MembershipSyncHandler:
    global _handler
    with _handler_lock:
        if _handler is None:
            _handler = build_handler()
        return _handler


def reset_handler() -> None:
    global _handler
    with _handler_lock:
        _handler = None


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "service": "memsync",
        "version": VERSION,
        "configured": bool(os.environ.get("MEMSYNC_HOST_URL")),
    }


@app.post("/events/first-activation", response_model=ActivationResponse)
def first_activation(
    event: MembershipEvent,
    response: Response,
    handler: MembershipSyncHandler = Depends(get_handler),
):
    delivery = create_delivery(str(event.user_id), request_id=request_id_var.get("-"))
    try:
        result = handler.handle_event(event)
    except Exception as e:
        finish_delivery(delivery.id, "error", detail=str(e))
        raise

    outcome = result.outcome.value
    finish_delivery(delivery.id, outcome, record_identifier=result.record_identifier,
                    attempts=result.attempts, status_code=result.status_code,
                    detail=result.body if result.ok else result.error)
    logger.info("first activation: user=%s outcome=%s attempts=%d", event.user_id, outcome, result.attempts,
                extra={"user_id": str(event.user_id), "outcome": outcome, "delivery_id": delivery.id})
    response.headers[OUTCOME_HEADER] = outcome
    response.headers[DELIVERY_HEADER] = delivery.id
    return ActivationResponse(ok=result.ok, user_id=str(event.user_id), outcome=outcome,
                              attempts=result.attempts, delivery_id=delivery.id)


@app.post("/events/payment-completed")
def payment_completed(body: PaymentCompleted, handler: MembershipSyncHandler = Depends(get_handler)):
    will_sync = handler.payment_completed(body.model_dump())
    return {"ok": True, "status": body.status, "will_sync": will_sync}


@app.get("/settings", response_model=SettingsView)
async def read_settings():
    config = load_config(settings=get_settings())
    return SettingsView(api_url=config.endpoint, access_token_set=bool(config.access_token))


@app.put("/settings", response_model=SettingsView)
async def update_settings(body: SettingsUpdate):
    values = body.model_dump(exclude_none=True)
    if not values:
        raise HTTPException(status_code=422, detail="Nothing to update")
    try:
        load_config(settings={**get_settings(), **values})
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Invalid settings: {e}")
    put_settings(values)
    reset_handler()
    logger.info("settings updated: %s", ", ".join(sorted(values)))
    config = load_config(settings=get_settings())
    return SettingsView(api_url=config.endpoint, access_token_set=bool(config.access_token))


@app.get("/deliveries", response_model=list[Delivery])
async def list_deliveries_endpoint(limit: int = Query(default=50, le=200), user_id: Optional[str] = None):
    return list_deliveries(limit=limit, user_id=user_id)


@app.get("/deliveries/{delivery_id}", response_model=Delivery)
async def get_delivery_endpoint(delivery_id: str):
    delivery = get_delivery(delivery_id)
    if delivery is None:
        raise HTTPException(status_code=404, detail=f"Delivery '{delivery_id}' not found")
    return delivery


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
