from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import BigInteger, Column, DateTime, Integer, func
from sqlmodel import Field, SQLModel

from ..utils.validators import to_integer, to_number, to_text, to_timestamp


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _pk_column() -> Column:
    # BIGSERIAL on PostgreSQL, INTEGER PRIMARY KEY (rowid alias) on SQLite
    return Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)


def _created_at_column() -> Column:
    return Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)


# ----------------------------
# Tables
# ----------------------------

class ReadingBase(SQLModel):
    collar_id: Optional[str] = Field(default=None, index=True)
    dog_name: str
    breed: Optional[str] = None
    coat_type: Optional[str] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    sex: Optional[str] = None
    temperature_irgun: Optional[float] = None
    collar_orientation: Optional[str] = None


class Reading(ReadingBase, table=True):
    __tablename__ = "input_readings"

    id: Optional[int] = Field(default=None, sa_column=_pk_column())
    created_at: datetime = Field(default_factory=_utcnow, sa_column=_created_at_column())


class ReadingRead(ReadingBase):
    id: int
    created_at: datetime


class MetricBase(SQLModel):
    collar_id: Optional[str] = Field(default=None, index=True)
    temperature: Optional[float] = None
    stepcount: Optional[int] = None
    caloriecount: Optional[float] = None
    accel_x: Optional[float] = None
    accel_y: Optional[float] = None
    accel_z: Optional[float] = None
    gyro_x: Optional[float] = None
    gyro_y: Optional[float] = None
    gyro_z: Optional[float] = None
    npl_time: Optional[datetime] = None


class Metric(MetricBase, table=True):
    """Derived collar measurements, joined to readings through ``collar_id`` only."""

    __tablename__ = "output_metrics"

    id: Optional[int] = Field(default=None, sa_column=_pk_column())
    stepcount: Optional[int] = Field(default=None, sa_column=Column(BigInteger))
    npl_time: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=_created_at_column())


class MetricRead(MetricBase):
    id: int
    created_at: datetime


# ----------------------------
# Inputs (query string or JSON body)
# ----------------------------

METRIC_VALUE_FIELDS = (
    "temperature",
    "stepcount",
    "caloriecount",
    "accel_x",
    "accel_y",
    "accel_z",
    "gyro_x",
    "gyro_y",
    "gyro_z",
    "npl_time",
)


class ReadingIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    collar_id: Optional[str] = None
    dog_name: Optional[str] = None
    breed: Optional[str] = None
    coat_type: Optional[str] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    sex: Optional[str] = None
    temperature_irgun: Optional[float] = None
    collar_orientation: Optional[str] = None

    @field_validator("collar_id", "dog_name", "breed", "coat_type", "sex", "collar_orientation", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return to_text(v)

    @field_validator("height", "weight", "temperature_irgun", mode="before")
    @classmethod
    def _number(cls, v: Any) -> Optional[float]:
        return to_number(v)

    def to_row(self) -> Reading:
        return Reading(**self.model_dump())


class MetricIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    collar_id: Optional[str] = None
    temperature: Optional[float] = None
    stepcount: Optional[int] = None
    caloriecount: Optional[float] = None
    accel_x: Optional[float] = None
    accel_y: Optional[float] = None
    accel_z: Optional[float] = None
    gyro_x: Optional[float] = None
    gyro_y: Optional[float] = None
    gyro_z: Optional[float] = None
    npl_time: Optional[datetime] = None

    @field_validator("collar_id", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return to_text(v)

    @field_validator(
        "temperature", "caloriecount", "accel_x", "accel_y", "accel_z", "gyro_x", "gyro_y", "gyro_z",
        mode="before",
    )
    @classmethod
    def _number(cls, v: Any) -> Optional[float]:
        return to_number(v)

    @field_validator("stepcount", mode="before")
    @classmethod
    def _integer(cls, v: Any) -> Optional[int]:
        return to_integer(v)

    @field_validator("npl_time", mode="before")
    @classmethod
    def _timestamp(cls, v: Any) -> Optional[datetime]:
        return to_timestamp(v)

    def has_values(self) -> bool:
        return any(getattr(self, name) is not None for name in METRIC_VALUE_FIELDS)

    def to_row(self) -> Metric:
        return Metric(**self.model_dump())
