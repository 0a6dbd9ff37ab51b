"""
Database Schemas

Each Pydantic model represents a MongoDB collection; the collection name is
the lowercase of the class name. Stored keys are camelCase (the model aliases),
Python attributes are snake_case.
"""
import re
from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional

from bson import ObjectId
from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


def _check_object_id(value: str) -> str:
    if not ObjectId.is_valid(value):
        raise ValueError("must be a valid object id")
    return value


ObjectIdStr = Annotated[str, AfterValidator(_check_object_id)]

Role = Literal["admin", "user"]
AppointmentType = Literal["15min", "1hour"]
AppointmentStatus = Literal["pending", "confirmed", "completed", "cancelled"]


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


class Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Admin(Document):
    """
    Accounts collection schema
    Collection name: "admin"
    """
    email: EmailStr = Field(..., description="Unique login email")
    password: str = Field(..., description="bcrypt hash, never returned")
    role: Role = Field("admin", description="Account role")


class BlogImage(Document):
    public_id: str
    url: str


class Blog(Document):
    """
    Blog posts collection schema
    Collection name: "blog"
    """
    title: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = None
    content: str = Field(..., min_length=1)
    excerpt: Optional[str] = Field(None, max_length=200)
    image: Optional[BlogImage] = None
    author: ObjectIdStr
    tags: List[str] = Field(..., min_length=1)
    is_published: bool = False

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v


class Appointment(Document):
    """
    Appointments collection schema
    Collection name: "appointment"
    """
    user: ObjectIdStr
    counselor: ObjectIdStr
    type: AppointmentType
    date: datetime
    time: str = Field(..., min_length=1)
    status: AppointmentStatus = "pending"
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("date")
    @classmethod
    def naive_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


# Request bodies

class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class DetailsUpdate(Document):
    email: EmailStr


class PasswordUpdate(Document):
    current_password: str
    new_password: str = Field(..., min_length=6)


class BlogCreate(Document):
    title: Optional[str] = None
    slug: Optional[str] = None
    content: Optional[str] = None
    excerpt: Optional[str] = None
    tags: Optional[List[str]] = None
    is_published: Optional[bool] = None


class BlogUpdate(BlogCreate):
    pass


class AppointmentCreate(Document):
    counselor: ObjectIdStr
    type: AppointmentType
    date: datetime
    time: str
    notes: Optional[str] = None


class AppointmentUpdate(Document):
    counselor: Optional[ObjectIdStr] = None
    type: Optional[AppointmentType] = None
    date: Optional[datetime] = None
    time: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None
