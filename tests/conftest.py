import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("GOBD_ENVIRONMENT", "test")
os.environ.setdefault("GOBD_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("GOBD_LOG_JSON", "false")

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from gobd_core.core.config import get_settings

get_settings.cache_clear()

from gobd_core.core.database import engine, session_scope  # noqa: E402
from gobd_core.main import create_app  # noqa: E402
from gobd_core.models import Base, Company  # noqa: E402
from gobd_core.services.schema_guard import get_schema_guard  # noqa: E402

COMPANY_ID = 1


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    get_schema_guard().clear()
    yield
    Base.metadata.drop_all(bind=engine)
    get_schema_guard().clear()


@pytest.fixture()
def client() -> TestClient:  # noqa: ANN001
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def company() -> Company:
    with session_scope() as session:
        company = Company(id=COMPANY_ID, name="Muster Buchhaltung GmbH", ai_enabled=True)
        session.add(company)
    return company


@pytest.fixture()
def ai_disabled_company() -> Company:
    with session_scope() as session:
        company = Company(id=COMPANY_ID, name="Ohne KI GmbH", ai_enabled=False)
        session.add(company)
    return company
