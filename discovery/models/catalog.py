"""Catalog item data models"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class HolidayTheme(str, Enum):
    """Holiday theme"""
    HAUNTED_TOURS = "HAUNTED_TOURS"
    PARANORMAL = "PARANORMAL"
    DARK_HISTORY = "DARK_HISTORY"
    MACABRE_FESTIVALS = "MACABRE_FESTIVALS"
    VAMPIRE = "VAMPIRE"
    ZOMBIE = "ZOMBIE"
    HORROR = "HORROR"
    WITCHCRAFT = "WITCHCRAFT"


class DifficultyLevel(str, Enum):
    """Physical/emotional intensity of a holiday"""
    EASY = "EASY"
    MODERATE = "MODERATE"
    CHALLENGING = "CHALLENGING"
    EXTREME = "EXTREME"


class HolidayStatus(str, Enum):
    """Publication status"""
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"
    SOLD_OUT = "SOLD_OUT"


class CatalogItem(BaseModel):
    """
    A bookable holiday listing as seen by the discovery engine.

    Records are owned by the CRUD subsystem; discovery only reads them.
    """
    model_config = ConfigDict(
        from_attributes=True, alias_generator=to_camel, populate_by_name=True
    )

    id: str
    slug: str
    title: str
    subtitle: Optional[str] = None
    description: str = ""
    short_description: Optional[str] = None
    theme: HolidayTheme
    difficulty: DifficultyLevel
    country: str
    city: str
    region: Optional[str] = None
    base_price: float
    discount_price: Optional[float] = None
    currency: str = "USD"
    duration_days: int
    duration_nights: int = 0
    status: HolidayStatus = HolidayStatus.DRAFT
    view_count: int = 0
    booking_count: int = 0
    review_count: int = 0
    average_rating: float = 0.0
    published_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.now)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_year_round: bool = False
    keywords: List[str] = Field(default_factory=list)
    cover_image: Optional[str] = None

    @property
    def effective_price(self) -> float:
        """Price a customer pays: the discount price when one is set."""
        if self.discount_price is not None:
            return self.discount_price
        return self.base_price
