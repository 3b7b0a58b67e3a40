"""Tests for the property HTTP endpoints."""

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from backend.app.main import create_app
from yieldbook.config import Settings
from yieldbook.exceptions import StoreUnavailable
from yieldbook.models.property import Property, PropertyCreate, PropertyPage, PropertyUpdate
from yieldbook.query import QuerySpec
from yieldbook.storage import PropertyStore

BASE = "/api/properties"


class UnavailableStore(PropertyStore):
    """Store whose backend is always down."""

    backend = "postgres"

    async def create(self, payload: PropertyCreate) -> Property:
        raise StoreUnavailable(self.backend, "connection refused")

    async def query(self, spec: QuerySpec) -> PropertyPage:
        raise StoreUnavailable(self.backend, "connection refused")

    async def update(self, property_id: str, payload: PropertyUpdate) -> Optional[Property]:
        raise StoreUnavailable(self.backend, "connection refused")

    async def delete(self, property_id: str) -> bool:
        raise StoreUnavailable(self.backend, "connection refused")


def _create(client: TestClient, price, location, rental_yield) -> dict:
    response = client.post(
        BASE, json={"price": price, "location": location, "rentalYield": rental_yield}
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def seeded_client(client: TestClient) -> TestClient:
    _create(client, 1000, "Paris", 4.5)
    _create(client, 500, "Lyon", 6.0)
    _create(client, 1500, "Paris", 3.0)
    return client


class TestCreateProperty:
    """Test POST /api/properties."""

    def test_created(self, client: TestClient):
        """A new record comes back with id and timestamps."""
        body = _create(client, 1000, "Paris", 4.5)
        assert body["id"]
        assert body["price"] == 1000
        assert body["location"] == "Paris"
        assert body["rentalYield"] == 4.5
        assert body["createdAt"]
        assert body["updatedAt"]

    def test_ids_unique(self, client: TestClient):
        """Every create gets its own id."""
        ids = {_create(client, i, "Nice", 5)["id"] for i in range(10)}
        assert len(ids) == 10

    def test_missing_field_is_400(self, client: TestClient):
        """A missing field is named in the error."""
        response = client.post(BASE, json={"price": 1000, "location": "Paris"})
        assert response.status_code == 400
        assert "rentalYield" in response.json()["error"]

    def test_non_numeric_price_is_400(self, client: TestClient):
        """A price that is not a number is rejected."""
        response = client.post(
            BASE, json={"price": "lots", "location": "Paris", "rentalYield": 4.5}
        )
        assert response.status_code == 400
        assert "price" in response.json()["error"]

    def test_malformed_json_is_400(self, client: TestClient):
        """Unparseable JSON gets an error body."""
        response = client.post(
            BASE, content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert "error" in response.json()


class TestListProperties:
    """Test GET /api/properties."""

    def test_empty(self, client: TestClient):
        """An empty store lists no items with default paging."""
        response = client.get(BASE)
        assert response.status_code == 200
        assert response.json() == {"items": [], "total": 0, "page": 1, "pageSize": 20}

    def test_paris_by_price_ascending(self, seeded_client: TestClient):
        """Text filter plus price sort returns the Paris listings cheapest first."""
        response = seeded_client.get(BASE, params={"q": "paris", "sortBy": "price", "order": "asc"})
        assert response.status_code == 200
        body = response.json()
        assert [item["price"] for item in body["items"]] == [1000, 1500]
        assert [item["rentalYield"] for item in body["items"]] == [4.5, 3.0]
        assert body["total"] == 2

    def test_round_trip(self, client: TestClient):
        """A created record is listed unchanged."""
        created = _create(client, 820, "Bordeaux", 5.2)
        items = client.get(BASE).json()["items"]
        assert created in items

    def test_default_newest_first(self, seeded_client: TestClient):
        """Listing defaults to newest first."""
        body = seeded_client.get(BASE).json()
        assert [item["price"] for item in body["items"]] == [1500, 500, 1000]

    def test_price_range_is_inclusive_and_conjunctive(self, seeded_client: TestClient):
        """Both price bounds apply and include their endpoints."""
        body = seeded_client.get(BASE, params={"minPrice": "500", "maxPrice": "1000"}).json()
        assert body["total"] == 2
        assert all(500 <= item["price"] <= 1000 for item in body["items"])

    def test_yield_range(self, seeded_client: TestClient):
        """A lower yield bound filters out low yields."""
        body = seeded_client.get(BASE, params={"minYield": "4"}).json()
        assert sorted(item["rentalYield"] for item in body["items"]) == [4.5, 6.0]

    def test_pagination(self, seeded_client: TestClient):
        """Pages split the results while total stays fixed."""
        for page in ("1", "2", "3"):
            body = seeded_client.get(BASE, params={"page": page, "pageSize": "2"}).json()
            assert len(body["items"]) <= 2
            assert body["total"] == 3
            assert body["pageSize"] == 2
        last = seeded_client.get(BASE, params={"page": "2", "pageSize": "2"}).json()
        assert len(last["items"]) == 1

    def test_lenient_parameters(self, seeded_client: TestClient):
        """Garbage parameters fall back to defaults instead of failing."""
        response = seeded_client.get(
            BASE,
            params={"minPrice": "cheap", "page": "zero", "pageSize": "5000", "sortBy": "nope"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 3
        assert body["page"] == 1
        assert body["pageSize"] == 100

    def test_sort_by_price_ascending(self, seeded_client: TestClient):
        """Prices ascend with order=asc."""
        items = seeded_client.get(BASE, params={"sortBy": "price", "order": "asc"}).json()["items"]
        prices = [item["price"] for item in items]
        assert all(a <= b for a, b in zip(prices, prices[1:]))

    def test_sort_by_location_folds_accents(self, client: TestClient):
        """Accented names sort alongside their base letters."""
        for location in ("Lyon", "Évry", "amiens"):
            _create(client, 1000, location, 5)
        items = client.get(BASE, params={"sortBy": "location", "order": "asc"}).json()["items"]
        assert [item["location"] for item in items] == ["amiens", "Évry", "Lyon"]


class TestUpdateProperty:
    """Test PUT /api/properties/{id}."""

    def test_updated(self, client: TestClient):
        """Update replaces fields and keeps id and createdAt."""
        created = _create(client, 1000, "Paris", 4.5)
        response = client.put(
            f"{BASE}/{created['id']}",
            json={"price": 1100, "location": "Paris 11e", "rentalYield": 4.8},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["id"] == created["id"]
        assert body["createdAt"] == created["createdAt"]
        assert (body["price"], body["location"], body["rentalYield"]) == (1100, "Paris 11e", 4.8)

    def test_unknown_id_is_404_and_store_unchanged(self, seeded_client: TestClient):
        """Updating an unknown id changes nothing."""
        before = seeded_client.get(BASE).json()
        response = seeded_client.put(
            f"{BASE}/does-not-exist",
            json={"price": 1, "location": "Nowhere", "rentalYield": 1},
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Property not found"}
        assert seeded_client.get(BASE).json() == before

    def test_partial_body_is_400(self, client: TestClient):
        """A partial update is rejected and the record is untouched."""
        created = _create(client, 1000, "Paris", 4.5)
        response = client.put(f"{BASE}/{created['id']}", json={"price": 1200})
        assert response.status_code == 400
        assert client.get(BASE).json()["items"][0]["price"] == 1000


class TestDeleteProperty:
    """Test DELETE /api/properties/{id}."""

    def test_deleted(self, seeded_client: TestClient):
        """A deleted record disappears from listings."""
        target = seeded_client.get(BASE).json()["items"][0]
        response = seeded_client.delete(f"{BASE}/{target['id']}")
        assert response.status_code == 200
        assert response.json() == {"ok": True}

        body = seeded_client.get(BASE).json()
        assert body["total"] == 2
        assert target["id"] not in {item["id"] for item in body["items"]}

    def test_unknown_id_is_404(self, client: TestClient):
        """Deleting an unknown id is a 404."""
        response = client.delete(f"{BASE}/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"error": "Property not found"}


class TestStoreFailures:
    """Backend failures are reported as 500 on every path."""

    @pytest.fixture
    def failing_client(self, settings: Settings):
        app = create_app(settings=settings, store=UnavailableStore())
        with TestClient(app) as test_client:
            yield test_client

    def test_create(self, failing_client: TestClient):
        """Create reports the backend failure."""
        response = failing_client.post(
            BASE, json={"price": 1, "location": "Paris", "rentalYield": 1}
        )
        assert response.status_code == 500
        assert "connection refused" in response.json()["error"]

    def test_list(self, failing_client: TestClient):
        """List reports the backend failure."""
        response = failing_client.get(BASE)
        assert response.status_code == 500
        assert response.json()["error"].startswith("Failed to list properties")

    def test_update(self, failing_client: TestClient):
        """Update reports the backend failure."""
        response = failing_client.put(
            f"{BASE}/x", json={"price": 1, "location": "Paris", "rentalYield": 1}
        )
        assert response.status_code == 500

    def test_delete(self, failing_client: TestClient):
        """Delete reports the backend failure."""
        assert failing_client.delete(f"{BASE}/x").status_code == 500


class TestSystemEndpoints:
    """Test root and health endpoints."""

    def test_health_reports_store(self, client: TestClient):
        """Health names the active store."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "store": "memory"}

    def test_root(self, client: TestClient):
        """Root points at the API docs."""
        assert client.get("/").json()["docs"] == "/docs"

    def test_unknown_route_uses_error_body(self, client: TestClient):
        """Unknown routes still answer with an error body."""
        response = client.get("/api/nothing")
        assert response.status_code == 404
        assert "error" in response.json()
