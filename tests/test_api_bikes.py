"""
Tests for Bike Endpoints

Tests the bike catalogue over HTTP:
- GET/POST /api/v1/bikes
- GET/PUT/DELETE /api/v1/bikes/{bike_id}
- GET /api/v1/bikes/{bike_id}/details
- GET /healthz
"""

from fastapi import status
from fastapi.testclient import TestClient

from rottenbikes.models import Bike, Poster


class TestListBikesEndpoint:
    """Tests for GET /api/v1/bikes"""

    def test_list_empty(self, client: TestClient):
        response = client.get("/api/v1/bikes")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == []

    def test_list(self, client: TestClient, sample_bike: Bike, second_bike: Bike):
        response = client.get("/api/v1/bikes")

        data = response.json()
        assert [b["numerical_id"] for b in data] == [4021, 5150]
        assert data[0]["hash_id"] == "a9F3kQ"
        assert data[0]["is_electric"] is True
        assert data[0]["average_rating"] is None


class TestCreateBikeEndpoint:
    """Tests for POST /api/v1/bikes"""

    def test_create(self, client: TestClient, auth_headers: dict):
        response = client.post(
            "/api/v1/bikes",
            json={"numerical_id": 7001, "hash_id": "QR7001", "is_electric": False},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["numerical_id"] == 7001
        assert data["hash_id"] == "QR7001"
        assert data["average_rating"] is None

    def test_create_requires_auth(self, client: TestClient):
        response = client.post("/api/v1/bikes", json={"numerical_id": 7001})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_create_unverified_poster(self, client: TestClient, unverified_poster: Poster):
        response = client.post(
            "/api/v1/bikes",
            json={"numerical_id": 7001},
            headers={"Authorization": f"Bearer {'c' * 64}"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_create_duplicate(self, client: TestClient, sample_bike: Bike, auth_headers: dict):
        response = client.post(
            "/api/v1/bikes",
            json={"numerical_id": 4021},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert "numerical_id" in response.json()["detail"]

    def test_create_invalid_numerical_id(self, client: TestClient, auth_headers: dict):
        response = client.post(
            "/api/v1/bikes",
            json={"numerical_id": 12},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_create_invalid_hash_id(self, client: TestClient, auth_headers: dict):
        response = client.post(
            "/api/v1/bikes",
            json={"numerical_id": 7001, "hash_id": "not/valid"},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_create_strips_hash_id(self, client: TestClient, auth_headers: dict):
        response = client.post(
            "/api/v1/bikes",
            json={"numerical_id": 7001, "hash_id": "  QR7001 "},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["hash_id"] == "QR7001"


class TestBikeEndpoints:
    """Tests for GET/PUT/DELETE /api/v1/bikes/{bike_id}"""

    def test_get(self, client: TestClient, sample_bike: Bike):
        response = client.get("/api/v1/bikes/4021")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["hash_id"] == "a9F3kQ"

    def test_get_missing(self, client: TestClient):
        response = client.get("/api/v1/bikes/999999")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"detail": "bike not found"}

    def test_details(self, client: TestClient, sample_bike: Bike, auth_headers: dict):
        client.post(
            "/api/v1/bikes/4021/reviews",
            json={"comment": "Zippy", "overall": 4, "power": 5},
            headers=auth_headers,
        )

        response = client.get("/api/v1/bikes/4021/details")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["average_rating"] == 4.0
        assert {r["subcategory"] for r in data["ratings"]} == {"overall", "power"}
        assert data["reviews"][0]["comment"] == "Zippy"

    def test_update(self, client: TestClient, sample_bike: Bike, auth_headers: dict):
        response = client.put(
            "/api/v1/bikes/4021",
            json={"is_electric": False},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        data = client.get("/api/v1/bikes/4021").json()
        assert data["is_electric"] is False
        assert data["hash_id"] == "a9F3kQ"

    def test_update_blank_hash_id_clears_it(
        self, client: TestClient, sample_bike: Bike, auth_headers: dict
    ):
        response = client.put(
            "/api/v1/bikes/4021",
            json={"hash_id": "   "},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert client.get("/api/v1/bikes/4021").json()["hash_id"] is None

    def test_update_missing(self, client: TestClient, auth_headers: dict):
        response = client.put(
            "/api/v1/bikes/999999",
            json={"is_electric": True},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delete(self, client: TestClient, sample_bike: Bike, auth_headers: dict):
        response = client.delete("/api/v1/bikes/4021", headers=auth_headers)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert client.get("/api/v1/bikes/4021").status_code == status.HTTP_404_NOT_FOUND

    def test_delete_requires_auth(self, client: TestClient, sample_bike: Bike):
        response = client.delete("/api/v1/bikes/4021")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestHealthCheck:
    """Tests for GET /healthz"""

    def test_healthy(self, client: TestClient):
        response = client.get("/healthz")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "healthy"
