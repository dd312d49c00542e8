import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from common.config import Settings
from common.db import make_engine
from common.errors import install_error_handlers
from common.events import start_consumer
from common.log import setup_logging
from inventory.models import (
    Base, InventoryItem, Location, Part, PartApprovalEvent, RestockAlert, StockMovement, Supplier,
)
from inventory.schemas import (
    ApprovalAction, ApprovalEventOut, InventoryItemIn, InventoryItemOut, InventorySummary,
    LocationIn, LocationOut, LocationUpdate, PartApprovalOut, PartIn, PartOut, PartUpdate,
    RestockAlertIn, RestockAlertList, RestockAlertOut, RestockDecision, RestockGenerateIn,
    RestockGenerateResult, RestockSummary, StockAdjustment, SupplierIn, SupplierOut, SupplierUpdate,
)
from inventory.stock import (
    APPROVAL_ACTIONS, CRITICAL_RESTOCK_QUANTITY, StockStatus, recommend_restock, stock_status,
)

settings = Settings.from_env("inventory")
setup_logging(settings)
logger = logging.getLogger(__name__)

engine = make_engine(settings.db_url)
Base.metadata.create_all(engine)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---- shipment events ----

def _items_for_part(s: Session, part_id: str, brand_id: Optional[str]) -> List[InventoryItem]:
    stmt = select(InventoryItem).join(Part).where(InventoryItem.part_id == part_id)
    if brand_id:
        stmt = stmt.where(Part.brand_id == brand_id)
    stmt = stmt.order_by(InventoryItem.on_hand_quantity.desc())
    return list(s.execute(stmt).scalars().all())


def _deduct(s: Session, shipment_id: str, brand_id: str, part_id: str, quantity: int):
    remaining = quantity
    for item in _items_for_part(s, part_id, brand_id):
        if remaining <= 0:
            break
        take = min(item.on_hand_quantity, remaining)
        if take <= 0:
            continue
        item.on_hand_quantity -= take
        item.last_issued = _now()
        s.add(StockMovement(item_id=item.id, quantity=-take, kind="SHIPMENT", reference=shipment_id))
        remaining -= take
    if remaining > 0:
        logger.warning("Shipment %s short of %d units of part %s", shipment_id, remaining, part_id)


def _restore(s: Session, shipment_id: str, brand_id: str, part_id: str, quantity: int):
    items = _items_for_part(s, part_id, brand_id)
    if not items:
        logger.warning("No stock item to return %d units of part %s from shipment %s", quantity, part_id, shipment_id)
        return
    item = items[0]
    item.on_hand_quantity += quantity
    item.last_restocked = _now()
    s.add(StockMovement(item_id=item.id, quantity=quantity, kind="SHIPMENT_CANCELLED", reference=shipment_id))


def process_event(event: dict):
    kind = event.get("type")
    if kind not in ("shipment.created", "shipment.deleted"):
        return
    shipment = event.get("shipment", {})
    shipment_id = shipment.get("id")
    brand_id = shipment.get("brandId")
    apply = _deduct if kind == "shipment.created" else _restore
    with Session(engine) as s:
        for line in shipment.get("parts", []):
            apply(s, shipment_id, brand_id, line["partId"], int(line["quantity"]))
        s.commit()
    logger.info("Applied %s for shipment %s", kind, shipment_id)


@asynccontextmanager
async def lifespan(app: FastAPI):
    start_consumer(settings, process_event)
    logger.info("Inventory Service started")
    yield
    logger.info("Inventory Service shutting down...")


app = FastAPI(title="Inventory Service", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
install_error_handlers(app, settings)


def _get(s: Session, model, obj_id: str, label: str):
    obj = s.get(model, obj_id)
    if not obj:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return obj


def _commit_unique(s: Session, detail: str):
    try:
        s.commit()
    except IntegrityError:
        s.rollback()
        raise HTTPException(status_code=409, detail=detail)


def _apply(obj, payload):
    # null clears optional columns and leaves required ones untouched
    columns = obj.__table__.c
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and not columns[field].nullable:
            continue
        setattr(obj, field, value)


def _on_hand_total(s: Session, part_id: str) -> int:
    total = s.execute(
        select(func.coalesce(func.sum(InventoryItem.on_hand_quantity), 0)).where(InventoryItem.part_id == part_id)
    ).scalar_one()
    return int(total)


@app.get("/health")
def health():
    return {"status": "ok"}


# ---- parts ----

@app.get("/parts", response_model=List[PartOut])
def list_parts(brand_id: Optional[str] = Query(None, alias="brandId")):
    with Session(engine) as s:
        stmt = select(Part).order_by(Part.created_at.desc())
        if brand_id:
            stmt = stmt.where(Part.brand_id == brand_id)
        return [PartOut.model_validate(p) for p in s.execute(stmt).scalars()]


@app.get("/parts/{part_id}", response_model=PartOut)
def get_part(part_id: str):
    with Session(engine) as s:
        return PartOut.model_validate(_get(s, Part, part_id, "Part"))


@app.post("/parts", response_model=PartOut, status_code=201)
def create_part(p: PartIn):
    with Session(engine) as s:
        part = Part(**p.model_dump())
        s.add(part)
        _commit_unique(s, "Part code already exists")
        s.refresh(part)
        logger.info("Created part %s (%s)", part.code, part.id)
        return PartOut.model_validate(part)


@app.put("/parts/{part_id}", response_model=PartOut)
def update_part(part_id: str, p: PartUpdate):
    with Session(engine) as s:
        part = _get(s, Part, part_id, "Part")
        _apply(part, p)
        s.commit()
        s.refresh(part)
        return PartOut.model_validate(part)


# ---- part approvals ----

@app.get("/admin/part-approvals", response_model=List[PartApprovalOut])
def list_part_approvals(status: Optional[str] = None):
    with Session(engine) as s:
        stmt = select(Part).options(selectinload(Part.items)).order_by(Part.created_at.desc())
        if status:
            stmt = stmt.where(Part.approval_status == status.upper())
        return [
            PartApprovalOut.model_validate(p).model_copy(update={"usage_count": len(p.items)})
            for p in s.execute(stmt).scalars()
        ]


@app.put("/admin/part-approvals", response_model=PartOut)
def decide_part_approval(payload: ApprovalAction):
    if not payload.part_id or not payload.action:
        raise HTTPException(status_code=400, detail="Part ID and action are required")
    target = APPROVAL_ACTIONS.get(payload.action.lower())
    if target is None:
        raise HTTPException(status_code=400, detail="Invalid action")
    with Session(engine) as s:
        part = _get(s, Part, payload.part_id, "Part")
        if part.approval_status == target.value:
            raise HTTPException(status_code=409, detail=f"Part is already {target.value}")
        reason = payload.reason
        if target.value == "REJECTED" and not reason:
            reason = "No reason provided"
        s.add(PartApprovalEvent(
            part_id=part.id, from_status=part.approval_status, to_status=target.value,
            reason=reason, actor=payload.actor,
        ))
        part.approval_status = target.value
        s.commit()
        s.refresh(part)
        logger.info("Part %s moved to %s by %s", part.id, part.approval_status, payload.actor or "unknown")
        return PartOut.model_validate(part)


@app.get("/admin/part-approvals/{part_id}/history", response_model=List[ApprovalEventOut])
def part_approval_history(part_id: str):
    with Session(engine) as s:
        part = _get(s, Part, part_id, "Part")
        return [ApprovalEventOut.model_validate(e) for e in part.approval_events]


# ---- locations ----

@app.get("/brand/inventory/locations", response_model=List[LocationOut])
def list_locations(brand_id: Optional[str] = Query(None, alias="brandId")):
    with Session(engine) as s:
        stmt = select(Location).order_by(Location.code)
        if brand_id:
            stmt = stmt.where(Location.brand_id == brand_id)
        return [LocationOut.model_validate(loc) for loc in s.execute(stmt).scalars()]


@app.post("/brand/inventory/locations", response_model=LocationOut, status_code=201)
def create_location(payload: LocationIn):
    with Session(engine) as s:
        loc = Location(**payload.model_dump())
        s.add(loc)
        _commit_unique(s, "Location code already exists")
        s.refresh(loc)
        return LocationOut.model_validate(loc)


@app.put("/brand/inventory/locations/{location_id}", response_model=LocationOut)
def update_location(location_id: str, payload: LocationUpdate):
    with Session(engine) as s:
        loc = _get(s, Location, location_id, "Location")
        _apply(loc, payload)
        s.commit()
        s.refresh(loc)
        return LocationOut.model_validate(loc)


# ---- suppliers ----

@app.get("/brand/inventory/suppliers", response_model=List[SupplierOut])
def list_suppliers(brand_id: Optional[str] = Query(None, alias="brandId")):
    with Session(engine) as s:
        stmt = select(Supplier).order_by(Supplier.code)
        if brand_id:
            stmt = stmt.where(Supplier.brand_id == brand_id)
        return [SupplierOut.model_validate(sup) for sup in s.execute(stmt).scalars()]


@app.post("/brand/inventory/suppliers", response_model=SupplierOut, status_code=201)
def create_supplier(payload: SupplierIn):
    with Session(engine) as s:
        sup = Supplier(**payload.model_dump())
        s.add(sup)
        _commit_unique(s, "Supplier code already exists")
        s.refresh(sup)
        return SupplierOut.model_validate(sup)


@app.put("/brand/inventory/suppliers/{supplier_id}", response_model=SupplierOut)
def update_supplier(supplier_id: str, payload: SupplierUpdate):
    with Session(engine) as s:
        sup = _get(s, Supplier, supplier_id, "Supplier")
        _apply(sup, payload)
        s.commit()
        s.refresh(sup)
        return SupplierOut.model_validate(sup)


# ---- stock ----

def _item_status(item: InventoryItem) -> StockStatus:
    return stock_status(item.on_hand_quantity, item.part.min_stock_level, item.part.max_stock_level)


def _item_out(item: InventoryItem) -> InventoryItemOut:
    return InventoryItemOut(
        id=item.id,
        part_id=item.part_id,
        location_id=item.location_id,
        supplier_id=item.supplier_id,
        on_hand_quantity=item.on_hand_quantity,
        available_quantity=item.on_hand_quantity - item.reserved_quantity,
        reserved_quantity=item.reserved_quantity,
        defective_quantity=item.defective_quantity,
        in_transit_quantity=item.in_transit_quantity,
        average_cost=item.average_cost,
        last_restocked=item.last_restocked,
        last_issued=item.last_issued,
        stock_status=_item_status(item).value,
        part=PartOut.model_validate(item.part),
        location=LocationOut.model_validate(item.location),
    )


def _brand_items(s: Session, brand_id: Optional[str], location_id: Optional[str] = None) -> List[InventoryItem]:
    stmt = select(InventoryItem).join(Part).options(
        selectinload(InventoryItem.part), selectinload(InventoryItem.location)
    )
    if brand_id:
        stmt = stmt.where(Part.brand_id == brand_id)
    if location_id:
        stmt = stmt.where(InventoryItem.location_id == location_id)
    return list(s.execute(stmt.order_by(Part.code)).scalars().all())


@app.get("/brand/inventory/items", response_model=List[InventoryItemOut])
def list_items(
    brand_id: Optional[str] = Query(None, alias="brandId"),
    location_id: Optional[str] = Query(None, alias="locationId"),
    status: Optional[StockStatus] = Query(None, alias="stockStatus"),
):
    with Session(engine) as s:
        items = _brand_items(s, brand_id, location_id)
        if status is not None:
            items = [i for i in items if _item_status(i) is status]
        return [_item_out(i) for i in items]


@app.post("/brand/inventory/items", response_model=InventoryItemOut, status_code=201)
def create_item(payload: InventoryItemIn):
    with Session(engine) as s:
        _get(s, Part, payload.part_id, "Part")
        _get(s, Location, payload.location_id, "Location")
        if payload.supplier_id:
            _get(s, Supplier, payload.supplier_id, "Supplier")
        item = InventoryItem(**payload.model_dump())
        if item.on_hand_quantity:
            item.last_restocked = _now()
        s.add(item)
        _commit_unique(s, "Part is already stocked at this location")
        s.refresh(item)
        return _item_out(item)


@app.post("/brand/inventory/items/{item_id}/adjust", response_model=InventoryItemOut)
def adjust_stock(item_id: str, payload: StockAdjustment):
    if payload.quantity == 0:
        raise HTTPException(status_code=400, detail="Adjustment quantity cannot be zero")
    with Session(engine) as s:
        item = _get(s, InventoryItem, item_id, "Inventory item")
        new_qty = item.on_hand_quantity + payload.quantity
        if new_qty < 0:
            raise HTTPException(status_code=400, detail="On-hand quantity cannot be negative")
        item.on_hand_quantity = new_qty
        if payload.quantity > 0:
            item.last_restocked = _now()
        else:
            item.last_issued = _now()
        s.add(StockMovement(item_id=item.id, quantity=payload.quantity, kind="ADJUSTMENT", reason=payload.reason))
        s.commit()
        s.refresh(item)
        logger.info("Adjusted item %s by %+d to %d", item.id, payload.quantity, item.on_hand_quantity)
        return _item_out(item)


@app.get("/brand/inventory/summary", response_model=InventorySummary)
def inventory_summary(brand_id: Optional[str] = Query(None, alias="brandId")):
    with Session(engine) as s:
        items = _brand_items(s, brand_id)
        counts = {st: 0 for st in StockStatus}
        value = 0.0
        for item in items:
            counts[_item_status(item)] += 1
            unit_cost = item.average_cost if item.average_cost is not None else (item.part.cost_price or 0.0)
            value += item.on_hand_quantity * unit_cost
        return InventorySummary(
            total_items=len(items),
            out_of_stock=counts[StockStatus.OUT_OF_STOCK],
            low_stock=counts[StockStatus.LOW_STOCK],
            overstock=counts[StockStatus.OVERSTOCK],
            in_stock=counts[StockStatus.IN_STOCK],
            total_value=round(value, 2),
        )


# ---- restock alerts ----

@app.get("/brand/restock-alerts", response_model=RestockAlertList)
def list_restock_alerts(
    brand_id: Optional[str] = Query(None, alias="brandId"),
    status: str = "PENDING",
    limit: int = Query(20, ge=1),
):
    with Session(engine) as s:
        stmt = select(RestockAlert).options(selectinload(RestockAlert.part))
        if status.lower() != "all":
            stmt = stmt.where(RestockAlert.status == status.upper())
        if brand_id:
            stmt = stmt.where(RestockAlert.brand_id == brand_id)
        matching = list(s.execute(stmt.order_by(RestockAlert.created_at.desc())).scalars().all())
        alerts = matching[:min(limit, 100)]
        summary = RestockSummary(
            total=len(matching),
            critical=sum(1 for a in matching if a.recommended_quantity >= CRITICAL_RESTOCK_QUANTITY),
            pending=sum(1 for a in alerts if a.status == "PENDING"),
            approved=sum(1 for a in alerts if a.status == "APPROVED"),
        )
        return RestockAlertList(alerts=[RestockAlertOut.model_validate(a) for a in alerts], summary=summary)


@app.post("/brand/restock-alerts", response_model=RestockAlertOut, status_code=201)
def create_restock_alert(payload: RestockAlertIn):
    if not (payload.part_id and payload.district and payload.forecasted_demand and payload.recommended_quantity):
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: partId, district, forecastedDemand, recommendedQuantity",
        )
    with Session(engine) as s:
        part = _get(s, Part, payload.part_id, "Part")
        available = payload.available_stock
        if available is None:
            available = _on_hand_total(s, part.id)
        alert = RestockAlert(
            part_id=part.id, brand_id=part.brand_id, district=payload.district,
            forecasted_demand=payload.forecasted_demand, available_stock=available,
            recommended_quantity=payload.recommended_quantity, status="PENDING",
        )
        s.add(alert)
        s.commit()
        s.refresh(alert)
        return RestockAlertOut.model_validate(alert)


@app.put("/brand/restock-alerts/{alert_id}", response_model=RestockAlertOut)
def decide_restock_alert(alert_id: str, payload: RestockDecision):
    targets = {"approve": "APPROVED", "reject": "REJECTED"}
    target = targets.get(payload.action.lower())
    if target is None:
        raise HTTPException(status_code=400, detail="Invalid action")
    with Session(engine) as s:
        alert = _get(s, RestockAlert, alert_id, "Restock alert")
        if alert.status != "PENDING":
            raise HTTPException(status_code=409, detail=f"Alert is already {alert.status}")
        alert.status = target
        s.commit()
        s.refresh(alert)
        logger.info("Restock alert %s %s", alert.id, target.lower())
        return RestockAlertOut.model_validate(alert)


@app.post("/brand/restock-alerts/generate", response_model=List[RestockGenerateResult])
def generate_restock_alerts(payload: RestockGenerateIn):
    results = []
    with Session(engine) as s:
        for fc in payload.forecasts:
            part = s.get(Part, fc.part_id)
            if not part or part.brand_id != payload.brand_id:
                results.append(RestockGenerateResult(
                    part_id=fc.part_id, projected_demand=fc.projected_demand,
                    recommended_quantity=0, action="part_not_found",
                ))
                continue
            base = dict(
                part_id=part.id, part_code=part.code, current_msl=part.min_stock_level,
                projected_demand=fc.projected_demand,
            )
            quantity = recommend_restock(fc.projected_demand, part.min_stock_level)
            if quantity == 0:
                results.append(RestockGenerateResult(**base, recommended_quantity=0, action="no_action_needed"))
                continue
            existing = s.execute(
                select(RestockAlert).where(RestockAlert.part_id == part.id, RestockAlert.status == "PENDING")
            ).scalars().first()
            if existing:
                results.append(RestockGenerateResult(
                    **base, recommended_quantity=existing.recommended_quantity,
                    action="already_pending", alert_id=existing.id,
                ))
                continue
            alert = RestockAlert(
                part_id=part.id, brand_id=part.brand_id, district=payload.district,
                forecasted_demand=fc.projected_demand, available_stock=_on_hand_total(s, part.id),
                recommended_quantity=quantity, status="PENDING",
            )
            s.add(alert)
            s.flush()
            results.append(RestockGenerateResult(
                **base, recommended_quantity=quantity, action="alert_created", alert_id=alert.id,
            ))
        s.commit()
    created = sum(1 for r in results if r.action == "alert_created")
    logger.info("Restock generation for brand %s created %d alerts", payload.brand_id, created)
    return results
