"""Tests for the location directory and its endpoints."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from cannamap.models.location import Location
from cannamap.schemas.location import LocationCreate
from cannamap.services.aggregator import TrustAggregate
from cannamap.services.location import (
    create_location,
    get_location,
    haversine_km,
    list_locations,
    location_exists,
)
from cannamap.services.projection import get_trust_aggregate, read_aggregate_version

LOS_ANGELES = (34.0522, -118.2437)
SANTA_MONICA = (34.0195, -118.4912)
SAN_FRANCISCO = (37.7749, -122.4194)


def _add(db: Session, name: str, point: tuple[float, float], verified: bool = False) -> Location:
    location = create_location(
        db, LocationCreate(name=name, latitude=point[0], longitude=point[1])
    )
    if verified:
        location.is_verified = True
        db.commit()
    return location


class TestHaversine:
    def test_same_point(self):
        assert haversine_km(*LOS_ANGELES, *LOS_ANGELES) == 0

    def test_la_to_sf(self):
        assert haversine_km(*LOS_ANGELES, *SAN_FRANCISCO) == pytest.approx(559, abs=2)

    def test_symmetric(self):
        assert haversine_km(*LOS_ANGELES, *SANTA_MONICA) == pytest.approx(
            haversine_km(*SANTA_MONICA, *LOS_ANGELES)
        )


class TestLocationService:
    def test_new_location_has_default_aggregate(self, db: Session):
        location = _add(db, "Fresh Spot", LOS_ANGELES)
        assert get_trust_aggregate(db, location.id) == TrustAggregate(0, 0, 0, 100)
        assert read_aggregate_version(db, location.id) == 0
        assert location.is_verified is False

    def test_lookup(self, db: Session, test_location: Location):
        assert get_location(db, test_location.id).name == "Green Leaf Dispensary"
        assert location_exists(db, test_location.id)
        assert get_location(db, 424242) is None
        assert not location_exists(db, 424242)
        assert get_trust_aggregate(db, 424242) is None

    def test_list_without_point_is_newest_first(self, db: Session):
        first = _add(db, "First", LOS_ANGELES)
        second = _add(db, "Second", SAN_FRANCISCO)
        results = list_locations(db)
        assert [loc.id for loc, _ in results] == [second.id, first.id]
        assert all(distance is None for _, distance in results)

    def test_radius_filter_sorted_by_distance(self, db: Session):
        _add(db, "San Francisco", SAN_FRANCISCO)
        santa_monica = _add(db, "Santa Monica", SANTA_MONICA)
        downtown = _add(db, "Downtown", LOS_ANGELES)

        results = list_locations(db, near=LOS_ANGELES, radius_km=50)
        assert [loc.id for loc, _ in results] == [downtown.id, santa_monica.id]
        assert results[0][1] == pytest.approx(0, abs=0.01)

    def test_verified_only(self, db: Session):
        _add(db, "Unverified", LOS_ANGELES)
        verified = _add(db, "Verified", LOS_ANGELES, verified=True)
        results = list_locations(db, verified_only=True)
        assert [loc.id for loc, _ in results] == [verified.id]


class TestLocationEndpoints:
    def test_list(self, client: TestClient, test_location: Location):
        response = client.get("/api/locations")
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["name"] == "Green Leaf Dispensary"
        assert data[0]["trust_score"] == 100
        assert data[0]["distance_km"] is None

    def test_list_near_uses_default_radius(
        self, client: TestClient, db: Session, test_location: Location
    ):
        _add(db, "Far Away", SAN_FRANCISCO)
        response = client.get("/api/locations", params={"lat": 34.05, "lng": -118.24})
        assert response.status_code == 200
        names = [item["name"] for item in response.json()]
        assert names == ["Green Leaf Dispensary"]
        assert response.json()[0]["distance_km"] is not None

    def test_list_with_explicit_radius(
        self, client: TestClient, db: Session, test_location: Location
    ):
        _add(db, "Far Away", SAN_FRANCISCO)
        response = client.get(
            "/api/locations", params={"lat": 34.05, "lng": -118.24, "radius_km": 1000}
        )
        assert [item["name"] for item in response.json()] == [
            "Green Leaf Dispensary",
            "Far Away",
        ]

    def test_lat_without_lng(self, client: TestClient):
        response = client.get("/api/locations", params={"lat": 34.05})
        assert response.status_code == 422

    def test_create_requires_auth(self, client: TestClient):
        response = client.post(
            "/api/locations", json={"name": "X", "latitude": 1.0, "longitude": 2.0}
        )
        assert response.status_code == 401

    def test_create(self, client: TestClient, auth_headers: dict, db: Session):
        response = client.post(
            "/api/locations",
            json={
                "name": "  Night Owl  ",
                "address": "   ",
                "latitude": 40.7128,
                "longitude": -74.0060,
            },
            headers=auth_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Night Owl"
        assert data["address"] is None
        assert data["total_votes"] == 0
        assert data["trust_score"] == 100
        assert location_exists(db, data["id"])

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "   ", "latitude": 1.0, "longitude": 2.0},
            {"name": "Bad Lat", "latitude": 91.0, "longitude": 2.0},
            {"name": "Bad Lng", "latitude": 1.0, "longitude": -181.0},
            {"name": "Bad Email", "latitude": 1.0, "longitude": 2.0, "contact_email": "nope"},
        ],
    )
    def test_create_validation(self, client: TestClient, auth_headers: dict, payload: dict):
        response = client.post("/api/locations", json=payload, headers=auth_headers)
        assert response.status_code == 422

    def test_detail(self, client: TestClient, test_location: Location):
        response = client.get(f"/api/locations/{test_location.id}")
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == test_location.id
        assert data["review_count"] == 0
        assert data["average_rating"] is None
        assert data["visit_count"] == 0
        assert data["igniter_votes"] == 0

    def test_detail_not_found(self, client: TestClient):
        assert client.get("/api/locations/99999").status_code == 404
