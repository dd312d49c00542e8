import logging
import time
from collections import Counter
from io import BytesIO
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from common.config import Settings
from common.db import make_engine
from common.errors import install_error_handlers
from common.events import publish_event
from common.log import setup_logging
from shipping.courier import CourierError, get_courier_client
from shipping.labels import label_filename, render_label
from shipping.models import Base, Box, BoxPart, Shipment
from shipping.schemas import (
    AwbRegeneration, AwbResult, AwbSummary, BoxOut, BoxUpdate, LabelBatch, LabelRequest, LabelResult, ShipmentDeleted,
    ShipmentIn, ShipmentList, ShipmentOut, ShipmentUpdate,
)
from shipping.status import Bucket, ShipmentStats, can_edit_or_delete, filter_shipments, shipment_stats

settings = Settings.from_env("shipping")
setup_logging(settings)
logger = logging.getLogger(__name__)

engine = make_engine(settings.db_url)
Base.metadata.create_all(engine)

courier = get_courier_client(settings)

app = FastAPI(title="Shipping Service", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
install_error_handlers(app, settings)

ROLE_COLUMNS = {
    "brand": Shipment.brand_id,
    "service_center": Shipment.service_center_id,
    "distributor": Shipment.distributor_id,
}


def _load_shipments(s: Session, brand_id: Optional[str], user_id: Optional[str], role: Optional[str]) -> List[Shipment]:
    stmt = select(Shipment).options(selectinload(Shipment.boxes).selectinload(Box.box_parts))
    if brand_id:
        stmt = stmt.where(Shipment.brand_id == brand_id)
    elif user_id or role:
        if not (user_id and role):
            raise HTTPException(status_code=400, detail="userId and role must be given together")
        role_key = role.lower()
        if role_key != "super_admin":
            column = ROLE_COLUMNS.get(role_key)
            if column is None:
                raise HTTPException(status_code=400, detail=f"Unknown role {role}")
            stmt = stmt.where(column == user_id)
    stmt = stmt.order_by(Shipment.created_at.desc())
    return list(s.execute(stmt).scalars().all())


def _get_shipment(s: Session, shipment_id: str) -> Shipment:
    sh = s.get(Shipment, shipment_id)
    if not sh:
        raise HTTPException(status_code=404, detail="Shipment not found")
    return sh


def _require_open(sh: Shipment, action: str):
    if not can_edit_or_delete(sh):
        logger.warning("Refused to %s shipment %s in status %s", action, sh.id, sh.status)
        raise HTTPException(status_code=400, detail=f"Cannot {action} delivered or cancelled shipments")


def _assign_awbs(sh: Shipment) -> List[AwbResult]:
    results = []
    for box in sh.boxes:
        if box.awb_number:
            continue
        try:
            box.awb_number = courier.generate_awb(sh, box)
        except CourierError as e:
            logger.warning("AWB generation failed for shipment %s box %s: %s", sh.id, box.box_number, e)
            results.append(AwbResult(box_id=box.id, box_number=box.box_number, success=False, message=str(e)))
            continue
        if box.status.upper() == "PENDING":
            box.status = "PICKUP_AWAITED"
        results.append(AwbResult(
            box_id=box.id, box_number=box.box_number, success=True,
            awb_number=box.awb_number, message="AWB generated",
        ))
    if sh.boxes and all(b.awb_number for b in sh.boxes) and sh.status.upper() in ("INITIATED", "PENDING"):
        sh.status = "CONFIRMED"
    return results


def _summary(results: List[AwbResult]) -> AwbSummary:
    ok = sum(1 for r in results if r.success)
    return AwbSummary(total=len(results), successful=ok, failed=len(results) - ok)


def _parts_payload(sh: Shipment) -> list:
    totals = Counter()
    for box in sh.boxes:
        for bp in box.box_parts:
            totals[bp.part_id] += bp.quantity
    return [{"partId": part_id, "quantity": qty} for part_id, qty in totals.items()]


def _event(kind: str, sh: Shipment, **extra) -> dict:
    return {
        "type": kind,
        "ts": int(time.time()),
        "shipment": {"id": sh.id, "brandId": sh.brand_id, "parts": _parts_payload(sh), **extra},
    }


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/shipments", response_model=ShipmentList)
def list_shipments(
    brand_id: Optional[str] = Query(None, alias="brandId"),
    user_id: Optional[str] = Query(None, alias="userId"),
    role: Optional[str] = None,
    bucket: Bucket = Bucket.ALL,
):
    with Session(engine) as s:
        shipments = filter_shipments(_load_shipments(s, brand_id, user_id, role), bucket)
        return ShipmentList(shipments=[ShipmentOut.model_validate(sh) for sh in shipments])


@app.get("/shipments/stats", response_model=ShipmentStats)
def get_stats(
    brand_id: Optional[str] = Query(None, alias="brandId"),
    user_id: Optional[str] = Query(None, alias="userId"),
    role: Optional[str] = None,
):
    with Session(engine) as s:
        return shipment_stats(_load_shipments(s, brand_id, user_id, role))


@app.get("/shipments/{shipment_id}", response_model=ShipmentOut)
def get_shipment(shipment_id: str):
    with Session(engine) as s:
        return ShipmentOut.model_validate(_get_shipment(s, shipment_id))


@app.post("/shipments", response_model=ShipmentOut, status_code=201)
def create_shipment(payload: ShipmentIn):
    with Session(engine) as s:
        sh = Shipment(
            brand_id=payload.brand_id,
            recipient_type=payload.recipient_type,
            service_center_id=payload.service_center_id,
            distributor_id=payload.distributor_id,
            priority=payload.priority,
            status="INITIATED",
            total_weight=sum(b.weight for b in payload.boxes),
        )
        for i, b in enumerate(payload.boxes, start=1):
            box = Box(box_number=b.box_number or i, weight=b.weight, status="PENDING")
            box.box_parts = [BoxPart(part_id=p.part_id, quantity=p.quantity) for p in b.box_parts]
            sh.boxes.append(box)
        s.add(sh)
        s.flush()
        results = _assign_awbs(sh)
        s.commit()
        s.refresh(sh)
        summary = _summary(results)
        logger.info("Created shipment %s with %d boxes (%d AWBs failed)", sh.id, len(sh.boxes), summary.failed)
        out = ShipmentOut.model_validate(sh)
        publish_event(settings, _event("shipment.created", sh))
        return out


@app.put("/shipments/{shipment_id}", response_model=ShipmentOut)
def update_shipment(shipment_id: str, payload: ShipmentUpdate):
    with Session(engine) as s:
        sh = _get_shipment(s, shipment_id)
        _require_open(sh, "update")
        if payload.status is not None:
            sh.status = payload.status.upper()
        if payload.priority is not None:
            sh.priority = payload.priority
        s.commit()
        s.refresh(sh)
        logger.info("Updated shipment %s (status=%s)", sh.id, sh.status)
        return ShipmentOut.model_validate(sh)


@app.put("/shipments/{shipment_id}/boxes/{box_id}", response_model=BoxOut)
def update_box(shipment_id: str, box_id: str, payload: BoxUpdate):
    with Session(engine) as s:
        box = s.get(Box, box_id)
        if not box or box.shipment_id != shipment_id:
            raise HTTPException(status_code=404, detail="Box not found")
        if payload.status is not None:
            box.status = payload.status.upper()
        if payload.weight is not None:
            box.weight = payload.weight
            box.shipment.total_weight = sum(b.weight for b in box.shipment.boxes)
        s.commit()
        s.refresh(box)
        return BoxOut.model_validate(box)


@app.delete("/shipments/{shipment_id}", response_model=ShipmentDeleted)
def delete_shipment(shipment_id: str):
    with Session(engine) as s:
        sh = _get_shipment(s, shipment_id)
        _require_open(sh, "delete")
        cancelled = 0
        for box in sh.boxes:
            if not box.awb_number:
                continue
            try:
                courier.cancel_awb(box.awb_number)
                cancelled += 1
            except CourierError as e:
                logger.warning("Could not cancel AWB %s for shipment %s: %s", box.awb_number, sh.id, e)
        event = _event("shipment.deleted", sh)
        s.delete(sh)
        s.commit()
    logger.info("Deleted shipment %s, cancelled %d AWBs", shipment_id, cancelled)
    publish_event(settings, event)
    return ShipmentDeleted(message="Shipment deleted successfully", cancelled_awbs=cancelled)


@app.post("/shipments/{shipment_id}/regenerate-awb", response_model=AwbRegeneration)
def regenerate_awb(shipment_id: str):
    with Session(engine) as s:
        sh = _get_shipment(s, shipment_id)
        _require_open(sh, "regenerate AWB for")
        results = _assign_awbs(sh)
        s.commit()
        summary = _summary(results)
        logger.info("AWB regeneration for %s: %d successful, %d failed", sh.id, summary.successful, summary.failed)
        if summary.successful:
            publish_event(settings, _event(
                "shipment.awb_regenerated", sh, awbNumbers=[r.awb_number for r in results if r.success]
            ))
        return AwbRegeneration(summary=summary, results=results)


@app.get("/shipments/{shipment_id}/boxes/{box_id}/label.pdf")
def get_label(shipment_id: str, box_id: str):
    with Session(engine) as s:
        box = s.get(Box, box_id)
        if not box or box.shipment_id != shipment_id:
            raise HTTPException(status_code=404, detail="Box not found")
        if not box.awb_number:
            raise HTTPException(status_code=404, detail="AWB pending, no label available")
        pdf = render_label(box.shipment, box)
        filename = label_filename(box.awb_number)
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return StreamingResponse(BytesIO(pdf), headers=headers, media_type="application/pdf")


@app.post("/labels/generate", response_model=LabelBatch)
def generate_labels(payload: LabelRequest):
    with Session(engine) as s:
        sh = _get_shipment(s, payload.shipment_id)
        labels = []
        for box in sh.boxes:
            if not box.awb_number:
                continue
            try:
                pdf = render_label(sh, box)
            except Exception as e:
                logger.exception("Label rendering failed for shipment %s box %s", sh.id, box.box_number)
                labels.append(LabelResult(
                    box_id=box.id, box_number=box.box_number, awb_number=box.awb_number, success=False, error=str(e),
                ))
                continue
            labels.append(LabelResult(
                box_id=box.id, box_number=box.box_number, awb_number=box.awb_number, success=True,
                download_url=f"/shipments/{sh.id}/boxes/{box.id}/label.pdf", label_size=len(pdf),
            ))
        ok = sum(1 for label in labels if label.success)
        logger.info("Generated %d/%d labels for shipment %s", ok, len(labels), sh.id)
        return LabelBatch(summary=AwbSummary(total=len(labels), successful=ok, failed=len(labels) - ok), labels=labels)
