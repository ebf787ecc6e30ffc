"""
Shared pytest fixtures for the Specialist Marketplace test suite.

Provides:
    - app: Flask application (session-scoped) wired to an in-memory storage fake
    - storage: the fake object storage, reset per test
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_user / auth_header: user factory and Bearer header builder
    - make_specialist / make_secretary: domain object factories
"""

import io
import itertools

import pytest

from marketplace import create_app
from marketplace.core.exceptions import UploadError
from marketplace.models import db as _db
from marketplace.models.enums import Role, UserStatus
from marketplace.models.secretary import Secretary
from marketplace.models.specialist import Specialist
from marketplace.models.user import User
from marketplace.services.jwt_service import generate_access_token
from marketplace.utils.crypto import hash_password

DEFAULT_PASSWORD = "Password123!"


class FakeStorage:
    """In-memory stand-in for the S3 client used by ``storage_service``."""

    def __init__(self):
        self.reset()

    def reset(self):
        self.objects = {}
        self.deleted = []
        self.fail_uploads = False
        self._seq = itertools.count(1)

    def upload(self, file_bytes, folder, filename="", content_type="application/octet-stream"):
        if self.fail_uploads:
            raise UploadError("File upload failed")
        key = f"{folder}/{next(self._seq)}-{filename}"
        self.objects[key] = file_bytes
        return {"url": f"https://cdn.example.com/{key}", "public_id": key}

    def delete(self, public_id):
        self.deleted.append(public_id)
        self.objects.pop(public_id, None)


_storage = FakeStorage()


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing", storage=_storage)


@pytest.fixture()
def storage():
    return _storage


@pytest.fixture(autouse=True)
def session(app):
    """Per-test: open app context, rollback after test, recreate tables."""
    _storage.reset()
    with app.app_context():
        _db.create_all()
        yield
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Factories ────────────────────────────────────────────────────────────


_emails = itertools.count(1)


@pytest.fixture()
def make_user():
    """Create and commit a user; role may be a Role or its value."""

    def _make(role=Role.VIEWER, email=None, password=DEFAULT_PASSWORD,
              status=UserStatus.ACTIVE, **fields):
        role_value = Role(role).value
        user = User(
            email=email or f"{role_value}{next(_emails)}@example.com",
            password_hash=hash_password(password),
            full_name=fields.pop("full_name", f"Test {role_value.title()}"),
            role=role_value,
            status=UserStatus(status).value,
            **fields,
        )
        _db.session.add(user)
        _db.session.commit()
        return user

    return _make


@pytest.fixture()
def auth_header():
    def _header(user):
        return {"Authorization": f"Bearer {generate_access_token(user)}"}

    return _header


@pytest.fixture()
def super_admin(make_user):
    return make_user(Role.SUPER_ADMIN)


@pytest.fixture()
def specialist_user(make_user):
    return make_user(Role.SPECIALIST)


@pytest.fixture()
def make_specialist(client, auth_header):
    """Create a listing through the API and return its JSON."""

    def _make(owner, **overrides):
        payload = {"title": "Tax Advisory", "base_price": 1000, "duration_days": 7}
        payload.update(overrides)
        res = client.post("/api/v1/specialists", json=payload, headers=auth_header(owner))
        assert res.status_code == 201, res.get_json()
        return res.get_json()["data"]

    return _make


@pytest.fixture()
def publish_and_verify(client, auth_header, super_admin):
    """Move a listing to published + verified."""

    def _go(spec_id, owner):
        res = client.patch(f"/api/v1/specialists/{spec_id}/publish", headers=auth_header(owner))
        assert res.status_code == 200, res.get_json()
        res = client.patch(
            f"/api/v1/specialists/{spec_id}/verify",
            json={"verification_status": "verified"},
            headers=auth_header(super_admin),
        )
        assert res.status_code == 200, res.get_json()
        return res.get_json()["data"]

    return _go


@pytest.fixture()
def make_secretary(make_user):
    """Create a secretary user plus an active, verified profile."""

    def _make(verified=True, companies=0, specialists=0, **fields):
        user = make_user(Role.SECRETARY)
        sec = Secretary(
            user_id=user.id,
            registration_number=fields.pop("registration_number", f"LS{next(_emails):05d}"),
            is_verified=verified,
            total_companies_managed=companies,
            total_specialists_managed=specialists,
            is_accepting_new_companies=True,
            is_accepting_new_specialists=True,
            **fields,
        )
        _db.session.add(sec)
        _db.session.commit()
        return user, sec

    return _make


@pytest.fixture()
def image_file():
    """Build (stream, filename, content_type) tuples for multipart uploads."""

    def _file(name="photo.png", content=b"\x89PNG fake image bytes", mimetype="image/png"):
        return (io.BytesIO(content), name, mimetype)

    return _file


@pytest.fixture()
def get_specialist():
    def _get(spec_id):
        return _db.session.get(Specialist, spec_id)

    return _get
