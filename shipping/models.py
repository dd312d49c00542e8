from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

Base = declarative_base()


def _uuid() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Shipment(Base):
    __tablename__ = "shipments"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    brand_id: Mapped[str] = mapped_column(String(64), index=True)
    service_center_id: Mapped[Optional[str]] = mapped_column(String(64), index=True, nullable=True)
    distributor_id: Mapped[Optional[str]] = mapped_column(String(64), index=True, nullable=True)
    recipient_type: Mapped[str] = mapped_column(String(32), default="SERVICE_CENTER")  # SERVICE_CENTER, DISTRIBUTOR
    status: Mapped[str] = mapped_column(String(64), default="INITIATED")
    priority: Mapped[str] = mapped_column(String(16), default="MEDIUM")
    total_weight: Mapped[float] = mapped_column(Float, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)
    boxes: Mapped[List["Box"]] = relationship(
        back_populates="shipment", cascade="all, delete-orphan", order_by="Box.box_number"
    )


class Box(Base):
    __tablename__ = "boxes"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    shipment_id: Mapped[str] = mapped_column(ForeignKey("shipments.id"), index=True)
    box_number: Mapped[int] = mapped_column(Integer)
    awb_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(64), default="PENDING")
    weight: Mapped[float] = mapped_column(Float, default=0.0)
    shipment: Mapped[Shipment] = relationship(back_populates="boxes")
    box_parts: Mapped[List["BoxPart"]] = relationship(back_populates="box", cascade="all, delete-orphan")


class BoxPart(Base):
    __tablename__ = "box_parts"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    box_id: Mapped[str] = mapped_column(ForeignKey("boxes.id"), index=True)
    part_id: Mapped[str] = mapped_column(String(64), index=True)
    quantity: Mapped[int] = mapped_column(Integer)
    box: Mapped[Box] = relationship(back_populates="box_parts")
