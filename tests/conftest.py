from datetime import datetime
from types import SimpleNamespace

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from gridfs.errors import NoFile
from pymongo import DESCENDING, ReturnDocument

from job_intake.core.auth import get_current_actor
from job_intake.core.config import settings
from job_intake.dependencies import build_services, get_application_service, get_submission_service
from job_intake.main import app
from job_intake.models.actor import Actor, Role

# Constants for testing; the job is posted by recruiter "5"
APPLICANT_ID = "1"
OTHER_APPLICANT_ID = "2"
RECRUITER_ID = "5"
OTHER_RECRUITER_ID = "6"
ADMIN_ID = "99"
JOB_ID = "10"
OTHER_JOB_ID = "11"

PDF_BYTES = b"%PDF-1.5\n" + b"resume body " * 40


# -----------------------------------------------------------------------------
# In-memory MongoDB doubles
# -----------------------------------------------------------------------------


def _matches(doc: dict, query: dict) -> bool:
    for key, condition in query.items():
        value = doc.get(key)
        if isinstance(condition, dict) and "$in" in condition:
            if value not in condition["$in"]:
                return False
        elif value != condition:
            return False
    return True


def _project(doc: dict, projection: dict | None) -> dict:
    if not projection:
        return dict(doc)
    projected = {"_id": doc["_id"]}
    projected.update({key: doc[key] for key, wanted in projection.items() if wanted and key in doc})
    return projected


class FakeCursor:
    def __init__(self, docs: list[dict]):
        self._docs = docs

    def sort(self, key, direction):
        self._docs.sort(key=lambda doc: doc.get(key), reverse=direction == DESCENDING)
        return self

    async def to_list(self, length=None):
        return [dict(doc) for doc in self._docs]


class FakeCollection:
    """Just enough of a motor collection for the repository and job directory."""

    def __init__(self, docs=()):
        self.docs = [dict(doc) for doc in docs]
        self.insert_error: Exception | None = None
        self.queries: list[tuple[dict, dict | None]] = []

    async def insert_one(self, doc):
        if self.insert_error:
            raise self.insert_error
        doc.setdefault("_id", ObjectId())
        self.docs.append(dict(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one(self, query, projection=None):
        self.queries.append((query, projection))
        for doc in self.docs:
            if _matches(doc, query):
                return _project(doc, projection)
        return None

    def find(self, query=None, projection=None):
        self.queries.append((query or {}, projection))
        return FakeCursor([_project(doc, projection) for doc in self.docs if _matches(doc, query or {})])

    async def find_one_and_update(self, query, update, return_document=ReturnDocument.BEFORE):
        for doc in self.docs:
            if _matches(doc, query):
                before = dict(doc)
                doc.update(update.get("$set", {}))
                return dict(doc) if return_document == ReturnDocument.AFTER else before
        return None


class FakeDatabase:
    def __init__(self):
        self._collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        return self._collections.setdefault(name, FakeCollection())


class FakeGridIn:
    def __init__(self, bucket: "FakeBucket", filename: str, metadata: dict | None):
        self._bucket = bucket
        self._id = ObjectId()
        self.filename = filename
        self.metadata = metadata
        self.chunks: list[bytes] = []
        self.closed = False
        self.aborted = False

    async def write(self, data: bytes):
        if self._bucket.fail_on_write is not None and len(self.chunks) >= self._bucket.fail_on_write:
            raise OSError("disk full")
        self.chunks.append(bytes(data))

    async def close(self):
        self.closed = True
        self._bucket.files[self._id] = {
            "filename": self.filename,
            "metadata": self.metadata,
            "data": b"".join(self.chunks),
        }

    async def abort(self):
        self.aborted = True
        self.chunks.clear()


class FakeGridOut:
    def __init__(self, data: bytes, chunk_size: int):
        self._data = data
        self._chunk_size = chunk_size
        self._position = 0
        self.length = len(data)
        self.closed = False

    async def readchunk(self) -> bytes:
        chunk = self._data[self._position:self._position + self._chunk_size]
        self._position += len(chunk)
        return chunk

    def close(self):
        self.closed = True


class FakeBucket:
    """GridFS bucket double: files become visible only when the upload is closed."""

    def __init__(self, chunk_size: int = 64):
        self.chunk_size = chunk_size
        self.files: dict[ObjectId, dict] = {}
        self.uploads: list[FakeGridIn] = []
        self.downloads: list[FakeGridOut] = []
        self.fail_on_write: int | None = None

    def open_upload_stream(self, filename, metadata=None):
        grid_in = FakeGridIn(self, filename, metadata)
        self.uploads.append(grid_in)
        return grid_in

    async def open_download_stream(self, file_id):
        if file_id not in self.files:
            raise NoFile(f"no file in gridfs with _id {file_id!r}")
        grid_out = FakeGridOut(self.files[file_id]["data"], self.chunk_size)
        self.downloads.append(grid_out)
        return grid_out


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def fake_db():
    db = FakeDatabase()
    db[settings.jobs_collection].docs.extend([
        {
            "_id": JOB_ID,
            "postedBy": RECRUITER_ID,
            "title": "Backend Engineer",
            "company": "Acme",
            "location": "Remote",
            "salary": 120000,
            "description": "Build APIs",
        },
        {
            "_id": OTHER_JOB_ID,
            "postedBy": OTHER_RECRUITER_ID,
            "title": "Data Analyst",
            "company": "Globex",
            "location": "Berlin",
        },
    ])
    db[settings.users_collection].docs.extend([
        {
            "_id": APPLICANT_ID,
            "name": "Alice",
            "email": "alice@example.com",
            "password": "$2b$12$hash",
            "role": "jobseeker",
        },
        {
            "_id": OTHER_APPLICANT_ID,
            "name": "Bob",
            "email": "bob@example.com",
            "password": "$2b$12$hash",
            "role": "jobseeker",
        },
    ])
    return db


@pytest.fixture
def fake_bucket():
    return FakeBucket(chunk_size=64)


@pytest.fixture
def services(fake_db, fake_bucket):
    return build_services(fake_db, fake_bucket)


@pytest.fixture
def applications_collection(fake_db):
    return fake_db[settings.applications_collection]


@pytest.fixture
def applicant():
    return Actor(id=APPLICANT_ID, role=Role.JOBSEEKER, email="alice@example.com")


@pytest.fixture
def other_applicant():
    return Actor(id=OTHER_APPLICANT_ID, role=Role.JOBSEEKER, email="bob@example.com")


@pytest.fixture
def recruiter():
    return Actor(id=RECRUITER_ID, role=Role.RECRUITER, email="rita@acme.test")


@pytest.fixture
def other_recruiter():
    return Actor(id=OTHER_RECRUITER_ID, role=Role.RECRUITER, email="rob@globex.test")


@pytest.fixture
def admin():
    return Actor(id=ADMIN_ID, role=Role.ADMIN, email="admin@example.com")


@pytest.fixture
def byte_stream():
    """Factory for async byte streams."""

    def make(*chunks: bytes):
        async def generate():
            for chunk in chunks:
                yield chunk

        return generate()

    return make


@pytest.fixture
def seed_application(applications_collection, fake_bucket):
    """Insert a stored resume and an application referencing it, directly."""

    def seed(applicant_id=APPLICANT_ID, job_id=JOB_ID, data=PDF_BYTES, status="pending"):
        blob_id = ObjectId()
        fake_bucket.files[blob_id] = {"filename": "cv.pdf", "metadata": {}, "data": data}
        doc = {
            "_id": ObjectId(),
            "job_id": job_id,
            "applicant_id": applicant_id,
            "cover_letter": "",
            "attachment": {
                "blob_id": str(blob_id),
                "filename": "cv.pdf",
                "content_type": "application/pdf",
                "size_bytes": len(data),
            },
            "status": status,
            "created_at": datetime.utcnow(),
            "updated_at": datetime.utcnow(),
        }
        applications_collection.docs.append(doc)
        return str(doc["_id"])

    return seed


@pytest.fixture
def api(services):
    """
    TestClient with services backed by the in-memory doubles.

    Call ``api.login(actor)`` to choose who makes the following requests.
    """
    app.dependency_overrides[get_submission_service] = lambda: services.submission
    app.dependency_overrides[get_application_service] = lambda: services.applications
    client = TestClient(app, raise_server_exceptions=False)

    def login(actor: Actor):
        app.dependency_overrides[get_current_actor] = lambda: actor

    client.login = login

    yield client

    app.dependency_overrides.clear()
