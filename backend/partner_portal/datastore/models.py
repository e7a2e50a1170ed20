"""
Domain models -- pydantic definitions shared by services and API routes.
Snapshots of record-store rows; nothing here talks to the store.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class NetPrice(BaseModel):
    """Operator base cost per pax category."""
    adult: float = 0.0
    minor: float = 0.0
    infant: float = 0.0


class Product(BaseModel):
    id: str
    destination: str = "General"
    tour_name: str = "Unnamed Tour"
    category: str = "Other"
    sub_category: Optional[str] = None
    net_price: NetPrice = Field(default_factory=NetPrice)
    pickup: Optional[str] = None
    return_time: Optional[str] = None
    season: Optional[str] = None
    eligible_days: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    inclusions: Optional[str] = None
    exclusions: Optional[str] = None
    requirements: Optional[str] = None
    extra_fees: Optional[str] = None
    image_url: Optional[str] = None


class AgencyProduct(Product):
    """Product priced for one agency (net price plus commission markup)."""
    consumer_price: float
    consumer_price_minor: float
    consumer_price_infant: float


class Agency(BaseModel):
    id: str
    name: Optional[str] = None
    email: str
    commission_rate: float = 0.0
    is_admin: bool = False
    is_internal: bool = False
    can_reserve: bool = False
    skills: List[str] = Field(default_factory=list)


class Attachment(BaseModel):
    url: str
    filename: Optional[str] = None


class Notice(BaseModel):
    """Bulletin-board (mural) item with the viewer's read flag."""
    id: str
    title: str = ""
    category: Optional[str] = None
    content: str = ""
    published_at: Optional[str] = None
    is_new: bool = False
    is_read: bool = False
    attachments: List[Attachment] = Field(default_factory=list)
    requires_confirmation: bool = False


class ReadReceipt(BaseModel):
    notice_id: str
    user_email: str
    user_name: str = ""
    agency_id: Optional[str] = None
    agency_name: Optional[str] = None
    timestamp: str


class Reservation(BaseModel):
    id: Optional[str] = None
    product_name: str
    destination: str
    date: str
    adults: int = 0
    children: int = 0
    infants: int = 0
    pax_names: str = ""
    total_amount: float = 0.0
    commission_amount: float = 0.0
    agency_id: Optional[str] = None
    created_by: Optional[str] = None
