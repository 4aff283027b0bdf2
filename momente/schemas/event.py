from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Event(CamelModel):
    notion_id: str
    title: str = "Untitled Event"
    subtitle: str = ""
    description: str = ""
    category: str = "Sonstiges"
    categories: List[str] = Field(default_factory=list)
    location: str = ""
    date: Optional[str] = None  # YYYY-MM-DD, Vienna local
    end_date: Optional[str] = None
    time: str = ""  # HH:MM, empty for all-day events
    price: str = "0"  # "0" means free
    website: str = ""
    organizer: str = "Event Partner"
    attendees: str = ""
    audiences: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    documents_urls: List[str] = Field(default_factory=list)
    is_favorite: bool = False


class SyncResponse(CamelModel):
    success: bool = True
    message: str = "Sync completed successfully"
    event_count: int
    timestamp: str


class SyncReport(CamelModel):
    total: int
    future: int
    today: int
    past: int
    last_checked: str


class HealthResponse(CamelModel):
    status: str = "healthy"
    message: str
    timestamp: str
    local_time: str
    timezone: str
    uptime: float
