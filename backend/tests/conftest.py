import json
import os
import tempfile

# Static file serving reads UPLOAD_DIR at import time
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="storefront-uploads-"))

import httpx
import pytest
from httpx import AsyncClient, ASGITransport

from storefront.main import app
from storefront.db.database import Database
from storefront.services.image_service import ImageStore

PNG_HEADER = b"\x89PNG\r\n\x1a\n"


@pytest.fixture
def fetched_urls():
    """URLs requested from the fake image host."""
    return []


@pytest.fixture
def image_transport(fetched_urls):
    """Fake remote host: *.png/*.jpg are images, /page is HTML, /missing 404s, /down fails."""

    def handler(request: httpx.Request) -> httpx.Response:
        fetched_urls.append(str(request.url))
        path = request.url.path
        if path.startswith("/down"):
            raise httpx.ConnectError("connection refused", request=request)
        if path.startswith("/missing"):
            return httpx.Response(404)
        if path.endswith(".png"):
            return httpx.Response(200, headers={"content-type": "image/png"}, content=PNG_HEADER + path.encode())
        if path.endswith(".jpg"):
            return httpx.Response(200, headers={"content-type": "image/jpeg"}, content=b"\xff\xd8" + path.encode())
        return httpx.Response(200, headers={"content-type": "text/html"}, content=b"<html></html>")

    return httpx.MockTransport(handler)


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def images(upload_dir, image_transport):
    return ImageStore(upload_dir=upload_dir, url_prefix="/uploads", transport=image_transport)


@pytest.fixture
async def database(tmp_path):
    """File-backed SQLite database with fresh tables."""
    db = Database(f"sqlite:///{tmp_path / 'storefront.db'}")
    await db.create_tables()
    yield db
    await db.disconnect()


@pytest.fixture
async def client(database, images):
    """Async test client wired to the test database and image store."""
    app.state.db = database
    app.state.images = images
    app.state.image_failure_policy = "null"

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac


class RPCClient:
    """Calls procedures the way the storefront client does."""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def get(self, name: str, input=None) -> httpx.Response:
        params = {"input": json.dumps(input)} if input is not None else None
        return await self.client.get(f"/trpc/{name}", params=params)

    async def post(self, name: str, input=None) -> httpx.Response:
        return await self.client.post(f"/trpc/{name}", json=input)

    @staticmethod
    def data(response: httpx.Response) -> dict:
        assert response.status_code == 200, response.text
        return response.json()["result"]["data"]

    async def query(self, name: str, input=None) -> dict:
        return self.data(await self.get(name, input))

    async def mutate(self, name: str, input=None) -> dict:
        return self.data(await self.post(name, input))


@pytest.fixture
def rpc(client):
    return RPCClient(client)
