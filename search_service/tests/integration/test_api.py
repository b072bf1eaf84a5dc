import httpx
import pytest
import pytest_asyncio

from search_service.app.core.database import get_db_session
from search_service.app.main import app

from ..fakes import at, created, envelope


class FakeDatabaseManager:
    def __init__(self, reachable: bool):
        self.reachable = reachable

    async def ping(self) -> bool:
        return self.reachable


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_db_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def catalog(reconciler):
    await reconciler.apply(
        created("a", at(1), name="Trail Shoe", category="shoes", price=5000),
        envelope(),
    )
    await reconciler.apply(
        created("b", at(2), name="Trail Map", category="books", price=1500),
        envelope(),
    )
    await reconciler.apply(
        created("c", at(3), name="Road Bike", category="bikes", price=90000),
        envelope(),
    )


class TestSearchAPI:
    @pytest.mark.asyncio
    async def test_get_product(self, client, catalog):
        response = await client.get("/api/v1/search/products/a")

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Trail Shoe"
        assert body["price"] == 5000
        assert body["display_price"] == "50.00"
        assert body["tags"] == ["outdoor", "running"]

    @pytest.mark.asyncio
    async def test_unknown_product_is_404(self, client):
        response = await client.get("/api/v1/search/products/missing")

        assert response.status_code == 404
        assert response.json()["error"]["details"]["product_id"] == "missing"

    @pytest.mark.asyncio
    async def test_list_paginates(self, client, catalog):
        response = await client.get(
            "/api/v1/search/products", params={"page": 0, "size": 2}
        )

        body = response.json()
        assert body["total"] == 3
        assert body["total_pages"] == 2
        assert [p["id"] for p in body["products"]] == ["c", "b"]

    @pytest.mark.asyncio
    async def test_name_prefix_search_is_case_insensitive(self, client, catalog):
        response = await client.get(
            "/api/v1/search/products/search", params={"name": "trail"}
        )

        assert response.status_code == 200
        assert {p["id"] for p in response.json()["products"]} == {"a", "b"}

    @pytest.mark.asyncio
    async def test_category_filter(self, client, catalog):
        response = await client.get(
            "/api/v1/search/products/category", params={"category": "bikes"}
        )

        assert [p["id"] for p in response.json()["products"]] == ["c"]

    @pytest.mark.asyncio
    async def test_price_range_is_inclusive(self, client, catalog):
        response = await client.get(
            "/api/v1/search/products/price-range",
            params={"min_price": 1500, "max_price": 5000},
        )

        assert {p["id"] for p in response.json()["products"]} == {"a", "b"}

    @pytest.mark.asyncio
    async def test_inverted_price_range_is_400(self, client):
        response = await client.get(
            "/api/v1/search/products/price-range",
            params={"min_price": 10, "max_price": 1},
        )

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "invalid_query"

    @pytest.mark.asyncio
    async def test_missing_query_parameter_is_422(self, client):
        response = await client.get("/api/v1/search/products/search")

        assert response.status_code == 422


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthy(self, client, monkeypatch):
        monkeypatch.setattr(
            "search_service.app.api.v1.health.get_database_manager",
            lambda: FakeDatabaseManager(True),
        )
        monkeypatch.setattr(
            "search_service.app.api.v1.health.pipeline_health",
            lambda: {"live": True, "consecutive_store_failures": 0},
        )

        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_failing_reconciler_reports_unhealthy(self, client, monkeypatch):
        monkeypatch.setattr(
            "search_service.app.api.v1.health.get_database_manager",
            lambda: FakeDatabaseManager(True),
        )
        monkeypatch.setattr(
            "search_service.app.api.v1.health.pipeline_health",
            lambda: {"live": False, "consecutive_store_failures": 12},
        )

        response = await client.get("/health")

        assert response.status_code == 503
        assert response.json()["checks"]["pipeline"]["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_unreachable_read_store_reports_unhealthy(self, client, monkeypatch):
        monkeypatch.setattr(
            "search_service.app.api.v1.health.get_database_manager",
            lambda: FakeDatabaseManager(False),
        )

        response = await client.get("/health")

        assert response.status_code == 503
        assert response.json()["checks"]["database"]["status"] == "unhealthy"
