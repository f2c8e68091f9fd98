import httpx
import pytest
import pytest_asyncio

from svcportal.client import PortalClient

from fake_backend import Backend, create_app

BASE_URL = "http://testserver"


@pytest.fixture
def backend():
    return Backend()


@pytest.fixture
def storage_path(tmp_path):
    return tmp_path / "session.db"


@pytest.fixture
def make_portal(backend, storage_path):
    """Build PortalClients that talk to the fake backend in-process.

    Clients built from the same factory share durable storage, which is how
    a reload is simulated.
    """
    app = create_app(backend)
    clients = []

    def factory(path=None):
        portal = PortalClient(
            base_url=BASE_URL,
            storage_path=path or storage_path,
            transport=httpx.ASGITransport(app=app),
        )
        clients.append(portal)
        return portal

    factory.clients = clients
    return factory


@pytest_asyncio.fixture
async def portal(make_portal):
    client = make_portal()
    yield client
    for c in make_portal.clients:
        await c.close()


@pytest.fixture
def admin(backend):
    return backend.add_user("admin@example.com", "secret", name="Ada Admin", role="admin")


@pytest.fixture
def provider(backend):
    return backend.add_user("owner@example.com", "secret", name="Sam Barber", role="provider")
