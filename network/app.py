import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from common.config import Settings
from common.db import make_engine
from common.errors import install_error_handlers
from common.log import setup_logging
from network.models import Base, NetworkMember
from network.schemas import (
    ROLE_TYPES, BulkRowResult, BulkSummary, BulkUploadIn, BulkUploadOut, MemberIn, MemberOut,
)

settings = Settings.from_env("network")
setup_logging(settings)
logger = logging.getLogger(__name__)

engine = make_engine(settings.db_url)
Base.metadata.create_all(engine)

app = FastAPI(title="Authorized Network Service", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
install_error_handlers(app, settings)


def _is_member(s: Session, brand_id: str, user_id: str, role_type: str) -> bool:
    existing = s.execute(select(NetworkMember).where(
        NetworkMember.brand_id == brand_id,
        NetworkMember.user_id == user_id,
        NetworkMember.role_type == role_type,
    )).scalar_one_or_none()
    return existing is not None


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/brand/authorized-network", response_model=List[MemberOut])
def list_members(
    brand_id: str = Query(..., alias="brandId"),
    role_type: Optional[str] = Query(None, alias="roleType"),
):
    with Session(engine) as s:
        stmt = select(NetworkMember).where(NetworkMember.brand_id == brand_id)
        if role_type:
            stmt = stmt.where(NetworkMember.role_type == role_type.upper())
        stmt = stmt.order_by(NetworkMember.created_at.desc())
        return [MemberOut.model_validate(m) for m in s.execute(stmt).scalars()]


@app.post("/brand/authorized-network", response_model=MemberOut, status_code=201)
def add_member(payload: MemberIn):
    role_type = payload.role_type.upper()
    if role_type not in ROLE_TYPES:
        raise HTTPException(status_code=400, detail="Invalid role_type. Must be SERVICE_CENTER or DISTRIBUTOR")
    with Session(engine) as s:
        member = NetworkMember(brand_id=payload.brand_id, user_id=payload.user_id, role_type=role_type)
        s.add(member)
        try:
            s.commit()
        except IntegrityError:
            s.rollback()
            raise HTTPException(status_code=409, detail="User is already authorized")
        s.refresh(member)
        logger.info("Authorized %s %s for brand %s", role_type, member.user_id, member.brand_id)
        return MemberOut.model_validate(member)


@app.delete("/brand/authorized-network/{member_id}")
def remove_member(member_id: str):
    with Session(engine) as s:
        member = s.get(NetworkMember, member_id)
        if not member:
            raise HTTPException(status_code=404, detail="Not found")
        s.delete(member)
        s.commit()
    logger.info("Removed network member %s", member_id)
    return {"message": "Authorization removed"}


@app.post("/brand/authorized-network/bulk-upload", response_model=BulkUploadOut)
def bulk_upload(payload: BulkUploadIn):
    results = []
    with Session(engine) as s:
        for row in payload.csv_data:
            user_id = (row.user_id or "").strip()
            role_type = (row.role_type or "").strip()

            def fail(message):
                results.append(BulkRowResult(
                    success=False, user_id=user_id or "N/A", role_type=role_type or "N/A",
                    row_number=row.row_number, message=message,
                ))

            if not user_id or not role_type:
                fail("Missing required fields (user_id or role_type)")
                continue
            normalized = role_type.upper()
            if normalized not in ROLE_TYPES:
                fail("Invalid role_type. Must be SERVICE_CENTER or DISTRIBUTOR")
                continue
            if _is_member(s, payload.brand_id, user_id, normalized):
                fail("User is already authorized")
                continue
            s.add(NetworkMember(brand_id=payload.brand_id, user_id=user_id, role_type=normalized))
            s.flush()
            results.append(BulkRowResult(
                success=True, user_id=user_id, role_type=normalized,
                row_number=row.row_number, message="Successfully authorized",
            ))
        s.commit()
    ok = sum(1 for r in results if r.success)
    logger.info("Bulk upload for brand %s: %d authorized, %d failed", payload.brand_id, ok, len(results) - ok)
    return BulkUploadOut(
        summary=BulkSummary(total=len(payload.csv_data), success=ok, failure=len(results) - ok),
        results=results,
    )
