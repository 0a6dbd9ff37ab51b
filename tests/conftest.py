import aiosmtplib
import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import security
from config import Settings
from image_storage import ImageStorageError, StoredImage
from main import create_app

# Fast hashes for tests
security.pwd_context.update(bcrypt__rounds=4)

PASSWORD = "secret123"


class FakeImageStorage:
    def __init__(self):
        self.uploads = []
        self.destroyed = []
        self.fail_upload = False
        self.fail_destroy = False

    async def upload(self, content, filename=None):
        if self.fail_upload:
            raise ImageStorageError("upload unavailable")
        self.uploads.append(content)
        n = len(self.uploads)
        return StoredImage(public_id=f"blogs/img{n}", url=f"https://img.example.com/blogs/img{n}.jpg")

    async def destroy(self, public_id):
        if self.fail_destroy:
            raise ImageStorageError("destroy unavailable")
        self.destroyed.append(public_id)


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, to, subject, body):
        if self.fail:
            raise aiosmtplib.SMTPException("connection refused")
        self.sent.append((to, subject, body))


@pytest.fixture
def settings():
    return Settings(_env_file=None, jwt_secret="test-secret", max_file_upload=5_000_000)


@pytest.fixture
def db():
    return mongomock.MongoClient()["counseling_test"]


@pytest.fixture
def storage():
    return FakeImageStorage()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(settings, db, storage, mailer):
    app = create_app(settings, db=db, image_storage=storage, mailer=mailer)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_account(db):
    database.ensure_indexes(db)

    def _make(email, role="admin", password=PASSWORD):
        return database.create_document(db, database.ADMIN, {
            "email": email,
            "password": security.get_password_hash(password),
            "role": role,
        })
    return _make


@pytest.fixture
def headers_for(settings):
    def _headers(account):
        return {"Authorization": f"Bearer {security.create_access_token(settings, account)}"}
    return _headers


@pytest.fixture
def admin(make_account):
    return make_account("admin@example.com")


@pytest.fixture
def admin_headers(admin, headers_for):
    return headers_for(admin)


@pytest.fixture
def user(make_account):
    return make_account("client@example.com", role="user")


@pytest.fixture
def user_headers(user, headers_for):
    return headers_for(user)


@pytest.fixture
def other_user(make_account):
    return make_account("other@example.com", role="user")


@pytest.fixture
def other_headers(other_user, headers_for):
    return headers_for(other_user)


@pytest.fixture
def counselor(make_account):
    return make_account("counselor@example.com", role="user")
