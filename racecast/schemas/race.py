"""
Racing feed payload schemas
"""

from typing import Optional

from pydantic import BaseModel, Field


class Meet(BaseModel):
    """A day's race program at one venue."""

    id: str = Field(..., description="Meet ID")
    name: str = Field(..., description="Meet name")
    venue: str = Field(..., description="Racecourse")
    date: str = Field(..., description="Meet date (YYYY-MM-DD)")


class Race(BaseModel):
    """One scheduled race within a meet."""

    id: str = Field(..., description="Race ID")
    number: int = Field(..., ge=1, description="Race number within the meet")
    time: str = Field("", description="Scheduled start time")
    name: str = Field("", description="Race name")
    distance: str = Field("", description="Distance as published, e.g. '1200m'")
    conditions: str = Field("", description="Track conditions")


class Runner(BaseModel):
    """A horse entered in a race."""

    id: str = Field(..., description="Runner ID")
    number: int = Field(..., ge=1, description="Saddlecloth number")
    name: str = Field(..., description="Horse name")
    odds: Optional[float] = Field(None, description="Current win odds")
    form: Optional[str] = Field(None, description="Recent finishing positions, e.g. '1-2-3'")
    weight: Optional[float] = Field(None, description="Carried weight (kg)")
    jockey: Optional[str] = Field(None, description="Jockey")
    trainer: Optional[str] = Field(None, description="Trainer")


class RaceResultEntry(BaseModel):
    """A settled finishing position for one horse."""

    horse_name: str = Field(..., description="Horse name")
    finishing_position: int = Field(..., ge=1, description="Finishing position")
