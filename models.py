"""Data models for shots, drafts, advice and search recommendations."""

import time
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Defaults for a fresh draft when no search match pre-fills it
DEFAULT_DOSE = 18.0
DEFAULT_YIELD = 36.0
DEFAULT_TIME = 25
DEFAULT_RATING = 3


class MachineSetting(str, Enum):
    """Temperature-profile stage of the machine's PID selector."""

    LOW = "low"
    MID = "mid"
    HIGH = "high"


class FlavorProfile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sourness: int = Field(DEFAULT_RATING, ge=1, le=5)
    bitterness: int = Field(DEFAULT_RATING, ge=1, le=5)
    body: int = Field(DEFAULT_RATING, ge=1, le=5)
    sweetness: int = Field(DEFAULT_RATING, ge=1, le=5)
    overall: int = Field(DEFAULT_RATING, ge=1, le=5)


class ShotRecord(BaseModel):
    """A logged espresso shot.

    Created once on submission and never edited afterwards. ``yield`` is a
    Python keyword, so the field is ``yield_`` with ``yield`` as its JSON key.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1)
    timestamp: int = Field(..., ge=0, description="Creation time, epoch milliseconds")
    bean_name: str = Field(..., min_length=1)
    dose: float = Field(..., gt=0, description="Grams of ground coffee in")
    yield_: float = Field(..., gt=0, alias="yield", description="Grams of espresso out")
    time: int = Field(..., ge=0, description="Extraction time in seconds")
    machine_setting: MachineSetting
    grind_setting: str = ""
    notes: str = ""
    flavor: FlavorProfile

    @property
    def ratio(self) -> float:
        """Brew ratio (yield / dose) for display only."""
        return round(self.yield_ / self.dose, 1)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ShotDraft(BaseModel):
    """Editable form state for the next shot."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True, extra="forbid")

    bean_name: str = ""
    dose: float = Field(DEFAULT_DOSE, gt=0)
    yield_: float = Field(DEFAULT_YIELD, gt=0, alias="yield")
    time: int = Field(DEFAULT_TIME, ge=0)
    machine_setting: MachineSetting = MachineSetting.LOW
    grind_setting: str = ""
    notes: str = ""
    flavor: FlavorProfile = Field(default_factory=FlavorProfile)

    def to_shot(self) -> ShotRecord:
        """Freeze the draft into a new shot with a fresh id and timestamp."""
        return ShotRecord(
            id=str(uuid.uuid4()),
            timestamp=int(time.time() * 1000),
            bean_name=self.bean_name.strip(),
            dose=self.dose,
            yield_=self.yield_,
            time=self.time,
            machine_setting=self.machine_setting,
            grind_setting=self.grind_setting,
            notes=self.notes,
            flavor=self.flavor.model_copy(),
        )


class AdviceResult(BaseModel):
    """Dial-in critique for one shot."""

    diagnosis: str
    recommendation: str
    adjustment: str
    explanation: str


class SearchSource(BaseModel):
    title: str
    uri: str = Field(..., min_length=1)


class SearchRecommendation(BaseModel):
    """Brew parameters found on the web for a named coffee."""

    model_config = ConfigDict(populate_by_name=True)

    found: bool = False
    dose: Optional[float] = None
    yield_: Optional[float] = Field(None, alias="yield")
    time: Optional[float] = None
    temperature: Optional[str] = None
    machine_setting: Optional[MachineSetting] = None
    description: Optional[str] = None
    sources: list[SearchSource] = Field(default_factory=list)
