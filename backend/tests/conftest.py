import pytest
from sqlmodel import SQLModel, Session, create_engine
from sqlmodel.pool import StaticPool

from netaudit.db.session import get_session
from netaudit.main import app
from netaudit.models.site import Site
from netaudit.sources.mock import MockSource


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session):
    from fastapi.testclient import TestClient

    def override_session():
        yield session

    app.dependency_overrides[get_session] = override_session
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="mock_source")
def mock_source_fixture():
    source = MockSource()
    source.reset()
    yield source
    source.reset()


@pytest.fixture(name="site")
def site_fixture(session):
    site = Site(name="Test Site", source="mock")
    session.add(site)
    session.commit()
    session.refresh(site)
    return site
