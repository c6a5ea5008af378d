"""
Pytest configuration and fixtures
"""
import pytest
import pytest_asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from gironaneta.core.config import settings
from gironaneta.crowdsource.capabilities import media_path
from gironaneta.database.connection import init_db
from gironaneta.database.models import Report, ReportMedia, ReportStatus, new_id
from gironaneta.database.repository import ReportRepository
from gironaneta.geocoding.geocode_cache import reset_throttle
from gironaneta.storage.blob_store import (
    BlobStore,
    StorageError,
    UploadCapability,
    set_blob_store,
)

TEST_JWT_SECRET = "test-operator-jwt-secret-0123456789abcdef"
TEST_WEBHOOK_SECRET = "test-webhook-secret"
ADMIN_EMAIL = "ops@gironaneta.cat"

# A JPEG header is enough; the binary is never decoded
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 64


class FakeBlobStore(BlobStore):
    """In-memory blob store."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.signed: List[str] = []
        self.fail_signing = False

    async def create_upload_capability(self, path: str) -> UploadCapability:
        if self.fail_signing:
            raise StorageError(f"Could not sign upload for {path}")
        self.signed.append(path)
        token = f"tok-{len(self.signed)}"
        return UploadCapability(
            path=path,
            signed_url=f"https://storage.test/storage/v1/object/upload/sign/report-media/{path}?token={token}",
            token=token,
        )

    async def download(self, path: str) -> Optional[bytes]:
        return self.objects.get(path)


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Deterministic settings for every test."""
    monkeypatch.setattr(settings, "reply_webhook_secret", TEST_WEBHOOK_SECRET)
    monkeypatch.setattr(settings, "operator_jwt_secret", TEST_JWT_SECRET)
    monkeypatch.setattr(settings, "admin_email_allowlist", ADMIN_EMAIL)
    monkeypatch.setattr(settings, "rate_limit_per_hour", 10)
    reset_throttle()
    return settings


@pytest_asyncio.fixture
async def db(tmp_path):
    """Fresh SQLite database per test."""
    database = init_db(f"sqlite+aiosqlite:///{tmp_path / 'gironaneta_test.db'}")
    await database.create_tables()
    yield database
    await database.drop_tables()
    await database.close()


@pytest_asyncio.fixture
async def session(db):
    async with db.SessionLocal() as session:
        yield session


@pytest.fixture
def repository(session):
    return ReportRepository(session)


@pytest.fixture
def blob_store():
    store = FakeBlobStore()
    set_blob_store(store)
    yield store
    set_blob_store(None)


@pytest.fixture
def report_factory(repository, blob_store):
    """Create committed reports with uploaded photos."""

    async def create(
        status: ReportStatus = ReportStatus.PENDING_REVIEW,
        category: str = "waste",
        photos: int = 1,
        uploaded: bool = True,
        description: Optional[str] = None,
        address_label: Optional[str] = None,
    ) -> Report:
        report = await repository.add_report(
            Report(
                id=new_id(),
                status=status,
                lat=41.98,
                lon=2.822,
                distance_to_girona_m=83,
                inside_service_area=True,
                category=category,
                description=description,
                address_label=address_label,
                ip_hash="0" * 64,
            )
        )
        for index in range(photos):
            path = media_path(report.id, index)
            await repository.add_media(
                ReportMedia(
                    report_id=report.id,
                    storage_path=path,
                    mime_type="image/jpeg",
                    compressed_bytes=len(JPEG_BYTES) if uploaded else 0,
                    width=1280 if uploaded else 0,
                    height=960 if uploaded else 0,
                )
            )
            if uploaded:
                blob_store.objects[path] = JPEG_BYTES
        await repository.session.commit()
        return report

    return create
