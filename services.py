"""
Resource services for accounts, blogs and appointments.

Each operation returns a payload or raises one of the errors in errors.py.
"""
from datetime import datetime
from typing import Optional

import structlog
from fastapi import BackgroundTasks, UploadFile
from pydantic import ValidationError as PydanticValidationError
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError
from starlette.datastructures import QueryParams

import database
from advanced_results import advanced_results
from config import Settings
from database import ADMIN, APPOINTMENT, BLOG, find_by_id, serialize, utcnow
from errors import Conflict, Forbidden, InvalidCredentials, Internal, NotFound, ValidationError, from_pydantic
from image_storage import ImageStorage, ImageStorageError, destroy_best_effort
from notifications import CONFIRMATION_SUBJECT, Mailer, confirmation_message, send_detached
from schemas import (
    Appointment,
    AppointmentCreate,
    AppointmentUpdate,
    Blog,
    BlogCreate,
    BlogUpdate,
    DetailsUpdate,
    PasswordUpdate,
    slugify,
)
from security import can_modify, create_access_token, get_password_hash, verify_password

logger = structlog.get_logger(__name__)

PRIVATE_FIELDS = ("password",)
SLOT_FIELDS = {"counselor", "date", "time"}

# Fields list endpoints may filter, sort and select on, with their stored type
BLOG_FIELDS = {
    "title": str, "slug": str, "content": str, "excerpt": str, "image": dict,
    "author": str, "tags": str, "isPublished": bool,
    "createdAt": datetime, "updatedAt": datetime,
}
APPOINTMENT_FIELDS = {
    "user": str, "counselor": str, "type": str, "date": datetime, "time": str,
    "status": str, "notes": str, "createdAt": datetime, "updatedAt": datetime,
}


def _validate(model, data: dict) -> dict:
    try:
        return model.model_validate(data).model_dump(by_alias=True)
    except PydanticValidationError as e:
        raise from_pydantic(e)


class AuthService:
    def __init__(self, db: Database, settings: Settings):
        self.db = db
        self.settings = settings

    def login(self, email: Optional[str], password: Optional[str]) -> str:
        if not email or not password:
            raise ValidationError("Please provide an email and password")
        admin = self.db[ADMIN].find_one({"email": email})
        if not admin or not verify_password(password, admin["password"]):
            raise InvalidCredentials("Invalid credentials")
        return create_access_token(self.settings, admin)

    def get_current_admin(self, identity) -> dict:
        admin = find_by_id(self.db, ADMIN, identity.id)
        if not admin:
            raise NotFound("Admin not found")
        return serialize(admin, exclude=PRIVATE_FIELDS)

    def update_details(self, identity, fields: DetailsUpdate) -> dict:
        account_id = database.to_object_id(identity.id)
        if self.db[ADMIN].find_one({"email": fields.email, "_id": {"$ne": account_id}}):
            raise Conflict("Duplicate field value entered")
        try:
            admin = self.db[ADMIN].find_one_and_update(
                {"_id": account_id},
                {"$set": {"email": fields.email}},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise Conflict("Duplicate field value entered")
        if not admin:
            raise NotFound("Admin not found")
        return serialize(admin, exclude=PRIVATE_FIELDS)

    def update_password(self, identity, fields: PasswordUpdate) -> str:
        admin = find_by_id(self.db, ADMIN, identity.id)
        if not admin:
            raise NotFound("Admin not found")
        if not verify_password(fields.current_password, admin["password"]):
            raise InvalidCredentials("Password is incorrect")
        self.db[ADMIN].update_one(
            {"_id": admin["_id"]},
            {"$set": {"password": get_password_hash(fields.new_password)}},
        )
        return create_access_token(self.settings, admin)


class BlogService:
    def __init__(self, db: Database, settings: Settings, storage: ImageStorage):
        self.db = db
        self.settings = settings
        self.storage = storage

    def list(self, params: QueryParams) -> dict:
        return advanced_results(self.db, BLOG, params, BLOG_FIELDS)

    def _get_doc(self, blog_id: str) -> dict:
        blog = find_by_id(self.db, BLOG, blog_id)
        if not blog:
            raise NotFound(f"Blog not found with id of {blog_id}")
        return blog

    def _get_owned(self, identity, blog_id: str, action: str) -> dict:
        blog = self._get_doc(blog_id)
        if not can_modify(identity, blog["author"]):
            raise Forbidden(f"Not authorized to {action} this blog")
        return blog

    def get(self, blog_id: str) -> dict:
        return serialize(self._get_doc(blog_id))

    def create(self, identity, fields: BlogCreate) -> dict:
        data = fields.model_dump(by_alias=True, exclude_none=True)
        missing = [name for name in ("title", "content") if not data.get(name)]
        if missing:
            raise ValidationError(f"The following fields are required: {', '.join(missing)}")
        data["author"] = identity.id
        doc = _validate(Blog, data)
        if not doc.get("slug"):
            doc["slug"] = slugify(doc["title"])
        doc = {k: v for k, v in doc.items() if v is not None}
        return serialize(database.create_document(self.db, BLOG, doc))

    def update(self, identity, blog_id: str, fields: BlogUpdate) -> dict:
        blog = self._get_owned(identity, blog_id, "update")
        changes = fields.model_dump(by_alias=True, exclude_unset=True)
        merged = {**blog, **changes}
        doc = _validate(Blog, merged)
        updates = {key: doc[key] for key in changes}
        updates["updatedAt"] = utcnow()
        updated = self.db[BLOG].find_one_and_update(
            {"_id": blog["_id"]},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        return serialize(updated)

    async def delete(self, identity, blog_id: str) -> dict:
        blog = self._get_owned(identity, blog_id, "delete")
        image = blog.get("image") or {}
        if image.get("publicId"):
            await destroy_best_effort(self.storage, image["publicId"])
        self.db[BLOG].delete_one({"_id": blog["_id"]})
        return {}

    async def upload_image(self, identity, blog_id: str, file: Optional[UploadFile]) -> dict:
        blog = self._get_owned(identity, blog_id, "update")
        if file is None:
            raise ValidationError("Please upload an image file")
        if not (file.content_type or "").startswith("image"):
            raise ValidationError("Please upload an image file (JPEG, PNG, etc.)")

        max_size = self.settings.max_file_upload
        too_large = ValidationError(f"Image size must be less than {max_size / 1_000_000:g}MB")
        if file.size is not None and file.size > max_size:
            raise too_large
        content = await file.read(max_size + 1)
        if len(content) > max_size:
            raise too_large

        try:
            stored = await self.storage.upload(content, filename=file.filename)
        except ImageStorageError as e:
            logger.error("image_upload_failed", blog_id=blog_id, error=str(e))
            raise Internal("Failed to upload image")

        # The new asset is stored; only now is the old one safe to drop
        previous = blog.get("image") or {}
        if previous.get("publicId"):
            await destroy_best_effort(self.storage, previous["publicId"])

        updated = self.db[BLOG].find_one_and_update(
            {"_id": blog["_id"]},
            {"$set": {
                "image": {"publicId": stored.public_id, "url": stored.url},
                "updatedAt": utcnow(),
            }},
            return_document=ReturnDocument.AFTER,
        )
        return serialize(updated)


class AppointmentService:
    def __init__(self, db: Database, settings: Settings, mailer: Mailer):
        self.db = db
        self.settings = settings
        self.mailer = mailer

    def _summary(self, account_id: str) -> Optional[dict]:
        account = find_by_id(self.db, ADMIN, account_id, {"email": 1, "role": 1})
        return serialize(account)

    def _populate(self, appointment: dict, *fields: str) -> dict:
        out = serialize(appointment)
        for field in fields:
            out[field] = self._summary(appointment[field])
        return out

    def _get_owned(self, identity, appointment_id: str, action: str) -> dict:
        appointment = find_by_id(self.db, APPOINTMENT, appointment_id)
        if not appointment:
            raise NotFound(f"Appointment not found with id of {appointment_id}")
        if not can_modify(identity, appointment["user"]):
            raise Forbidden(
                f"User {identity.id} is not authorized to {action} this appointment",
                status_code=401,
            )
        return appointment

    @staticmethod
    def _slot_taken(doc: dict) -> Conflict:
        return Conflict(
            f"There is already an appointment booked at {doc['time']} on {doc['date'].date().isoformat()}"
        )

    def list(self, params: QueryParams) -> dict:
        return advanced_results(self.db, APPOINTMENT, params, APPOINTMENT_FIELDS)

    def get(self, identity, appointment_id: str) -> dict:
        appointment = self._get_owned(identity, appointment_id, "access")
        return self._populate(appointment, "user", "counselor")

    def create(self, identity, fields: AppointmentCreate, background_tasks: BackgroundTasks) -> dict:
        data = fields.model_dump(by_alias=True, exclude_none=True)
        data["user"] = identity.id
        doc = _validate(Appointment, data)
        doc = {k: v for k, v in doc.items() if v is not None}

        slot = {field: doc[field] for field in SLOT_FIELDS}
        if self.db[APPOINTMENT].find_one(slot):
            raise self._slot_taken(doc)
        try:
            created = database.create_document(self.db, APPOINTMENT, doc)
        except DuplicateKeyError:
            raise self._slot_taken(doc)

        if identity.email:
            background_tasks.add_task(
                send_detached, self.mailer, identity.email, CONFIRMATION_SUBJECT, confirmation_message(created)
            )
        else:
            logger.info("email_skipped", appointment_id=str(created["_id"]), reason="no email claim")
        return serialize(created)

    def update(self, identity, appointment_id: str, fields: AppointmentUpdate) -> dict:
        appointment = self._get_owned(identity, appointment_id, "update")
        changes = fields.model_dump(by_alias=True, exclude_unset=True)
        doc = _validate(Appointment, {**appointment, **changes})
        if SLOT_FIELDS & changes.keys():
            slot = {field: doc[field] for field in SLOT_FIELDS}
            if self.db[APPOINTMENT].find_one({**slot, "_id": {"$ne": appointment["_id"]}}):
                raise self._slot_taken(doc)
        updates = {key: doc[key] for key in changes}
        updates["updatedAt"] = utcnow()
        try:
            updated = self.db[APPOINTMENT].find_one_and_update(
                {"_id": appointment["_id"]},
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise self._slot_taken(doc)
        return serialize(updated)

    def delete(self, identity, appointment_id: str) -> dict:
        appointment = self._get_owned(identity, appointment_id, "delete")
        self.db[APPOINTMENT].delete_one({"_id": appointment["_id"]})
        return {}

    def list_for_counselor(self, counselor_id: str) -> dict:
        appointments = database.get_documents(self.db, APPOINTMENT, {"counselor": counselor_id})
        data = [self._populate(a, "user") for a in appointments]
        return {"success": True, "count": len(data), "data": data}
