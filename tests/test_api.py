# tests/test_api.py
"""End-to-end checks through the FastAPI app: routing, identity headers, error mapping."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timedelta
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect
from fleetobd.services import binding_service
from fleetobd.main import app


@pytest.fixture
def client(db):
    with TestClient(app) as c:
        yield c


def company_headers(company):
    return {"X-Company-Id": str(company.id)}


def driver_headers(driver):
    return {"X-Company-Id": str(driver.company_id), "X-Driver-Id": str(driver.id), "X-Role": "driver"}


class TestDevicePush:
    def test_ingest_without_identity(self, client, make_company, make_vehicle):
        vehicle = make_vehicle(make_company(), odometer_km=10.0)

        resp = client.put(f"/api/v1/vehicles/{vehicle.id}/obd",
                          json={"speed": 40, "rpm": 1800, "efficiency": 11.0, "distance_km": 0.5})

        assert resp.status_code == 200
        body = resp.json()
        assert body["odometer_km"] == pytest.approx(10.5)
        assert body["snapshot"]["speed"] == 40

    def test_out_of_range_sample(self, client, make_company, make_vehicle):
        vehicle = make_vehicle(make_company())
        resp = client.put(f"/api/v1/vehicles/{vehicle.id}/obd", json={"speed": 900})
        assert resp.status_code == 422

    def test_unknown_vehicle(self, client):
        resp = client.put("/api/v1/vehicles/777/obd", json={"speed": 10})
        assert resp.status_code == 404
        assert "777" in resp.json()["detail"]

    @pytest.mark.parametrize("body", [
        '{"distance_km": Infinity, "efficiency": 10}',
        '{"distance_km": NaN}',
        '{"distance_km": 5, "efficiency": NaN}',
        '{"speed": -Infinity}',
    ])
    def test_non_finite_numbers_rejected(self, client, db, make_company, make_vehicle, body):
        vehicle = make_vehicle(make_company(), odometer_km=250.0)

        resp = client.put(f"/api/v1/vehicles/{vehicle.id}/obd", content=body,
                          headers={"Content-Type": "application/json"})

        assert resp.status_code == 422
        assert resp.json()["detail"]
        db.refresh(vehicle)
        assert vehicle.odometer_km == 250.0
        assert vehicle.obd_snapshot is None


class TestIdentity:
    def test_missing_identity_headers(self, client, make_company, make_vehicle):
        vehicle = make_vehicle(make_company())
        assert client.get(f"/api/v1/vehicles/{vehicle.id}").status_code == 401

    def test_other_company_forbidden(self, client, make_company, make_vehicle):
        vehicle = make_vehicle(make_company())
        resp = client.get(f"/api/v1/vehicles/{vehicle.id}", headers=company_headers(make_company()))
        assert resp.status_code == 403


class TestFleetEndpoints:
    def test_register_bind_and_conflict(self, client, make_company, make_driver):
        company = make_company()
        driver, other = make_driver(company), make_driver(company)
        headers = company_headers(company)

        created = client.post("/api/v1/vehicles", headers=headers,
                              json={"plate": "qwe 1a23", "make": "Renault", "model": "Master", "year": 2023})
        assert created.status_code == 201
        vehicle_id = created.json()["id"]
        assert created.json()["plate"] == "QWE1A23"

        bound = client.post(f"/api/v1/vehicles/{vehicle_id}/driver", headers=headers, json={"driver_id": driver.id})
        assert bound.status_code == 200
        assert bound.json()["status"] == "in_use"
        assert bound.json()["current_driver_id"] == driver.id

        again = client.post(f"/api/v1/vehicles/{vehicle_id}/driver", headers=headers, json={"driver_id": other.id})
        assert again.status_code == 409

        mine = client.get(f"/api/v1/drivers/{driver.id}/vehicle", headers=driver_headers(driver))
        assert mine.status_code == 200 and mine.json()["id"] == vehicle_id

        listed = client.get("/api/v1/vehicles", headers=driver_headers(other))
        assert listed.json() == []

        released = client.delete(f"/api/v1/vehicles/{vehicle_id}/driver", headers=headers)
        assert released.json()["status"] == "available"
        assert client.get(f"/api/v1/drivers/{driver.id}/vehicle", headers=headers).status_code == 404

    def test_invalid_plate_rejected(self, client, make_company):
        company = make_company()
        resp = client.post("/api/v1/vehicles", headers=company_headers(company),
                           json={"plate": "12-34", "make": "Fiat", "model": "Uno", "year": 2010})
        assert resp.status_code == 422

    def test_plain_driver_cannot_register(self, client, make_company, make_driver):
        driver = make_driver(make_company())
        resp = client.post("/api/v1/vehicles", headers=driver_headers(driver),
                           json={"plate": "ABC1234", "make": "Fiat", "model": "Uno", "year": 2010})
        assert resp.status_code == 403


class TestReadEndpoints:
    def test_history_alerts_and_dashboard(self, client, make_company, make_vehicle):
        company = make_company()
        vehicle = make_vehicle(company)
        headers = company_headers(company)
        client.put(f"/api/v1/vehicles/{vehicle.id}/obd",
                   json={"speed": 80, "efficiency": 10.0, "distance_km": 120, "dtc_count": 3, "mil_on": True,
                         "fault_codes": [{"code": "P0300", "status": "confirmed"}]})

        history = client.get(f"/api/v1/vehicles/{vehicle.id}/obd/history", headers=headers).json()
        assert history["total"] == 1 and history["total_pages"] == 1

        alerts = client.get(f"/api/v1/vehicles/{vehicle.id}/alerts", headers=headers).json()
        assert alerts["total"] == 1
        assert alerts["items"][0]["type"] == "engine_fault_dtc"

        dashboard = client.get(f"/api/v1/companies/{company.id}/dashboard", headers=headers)
        assert dashboard.status_code == 200
        stats = dashboard.json()
        assert stats["total_distance_km"] == 120
        assert stats["total_fuel_liters"] == 12
        assert stats["avg_consumption_km_per_liter"] == 10
        assert stats["alert_count"] == 1

    def test_page_size_limit(self, client, make_company, make_vehicle):
        company = make_company()
        vehicle = make_vehicle(company)
        resp = client.get(f"/api/v1/vehicles/{vehicle.id}/obd/history?page_size=500",
                          headers=company_headers(company))
        assert resp.status_code == 422
        assert resp.json()["errors"][0]["field"] == "page_size"

    def test_health(self, client):
        body = client.get("/api/v1/health").json()
        assert body["database"] == "ok"
        assert body["live_subscribers"] == 0


class TestDashboardPeriod:
    def test_offset_aware_start_only(self, client, make_company, make_vehicle, make_reading):
        company = make_company()
        make_reading(make_vehicle(company), datetime.utcnow() - timedelta(days=2), distance_km=50, efficiency=10)
        start = (datetime.utcnow() - timedelta(days=7)).strftime("%Y-%m-%dT%H:%M:%SZ")

        resp = client.get(f"/api/v1/companies/{company.id}/dashboard",
                          params={"period_start": start}, headers=company_headers(company))

        assert resp.status_code == 200
        assert resp.json()["total_distance_km"] == 50

    def test_offset_aware_start_and_end(self, client, make_company, make_vehicle, make_reading):
        company = make_company()
        vehicle = make_vehicle(company)
        make_reading(vehicle, datetime(2026, 1, 10, 12, 0), distance_km=30, efficiency=10)
        make_reading(vehicle, datetime(2026, 1, 10, 22, 30), distance_km=70, efficiency=10)

        # 06:00-12:00 at UTC-3 is 09:00-15:00 UTC
        resp = client.get(f"/api/v1/companies/{company.id}/dashboard",
                          params={"period_start": "2026-01-10T06:00:00-03:00",
                                  "period_end": "2026-01-10T12:00:00-03:00"},
                          headers=company_headers(company))

        assert resp.status_code == 200
        body = resp.json()
        assert body["total_distance_km"] == 30
        assert body["period_start"].startswith("2026-01-10T09:00:00")
        assert body["period_end"].startswith("2026-01-10T15:00:00")


class TestLiveFeed:
    def test_company_receives_vehicle_updates(self, client, make_company, make_vehicle):
        company = make_company()
        vehicle = make_vehicle(company, odometer_km=5.0)

        with client.websocket_connect(f"/api/v1/ws/vehicles/{vehicle.id}", headers=company_headers(company)) as ws:
            client.put(f"/api/v1/vehicles/{vehicle.id}/obd", json={"speed": 30, "distance_km": 1.0})
            message = ws.receive_json()

        assert message["vehicle_id"] == vehicle.id
        assert message["odometer_km"] == pytest.approx(6.0)
        assert message["snapshot"]["speed"] == 30

    def test_bound_driver_receives_updates(self, client, db, make_company, make_driver, make_vehicle):
        company = make_company()
        vehicle, driver = make_vehicle(company), make_driver(company)
        binding_service.bind(db, vehicle.id, driver.id)

        with client.websocket_connect(f"/api/v1/ws/vehicles/{vehicle.id}", headers=driver_headers(driver)) as ws:
            client.put(f"/api/v1/vehicles/{vehicle.id}/obd", json={"rpm": 900})
            assert ws.receive_json()["snapshot"]["rpm"] == 900

    def test_other_company_refused(self, client, make_company, make_vehicle):
        vehicle = make_vehicle(make_company())
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect(f"/api/v1/ws/vehicles/{vehicle.id}",
                                          headers=company_headers(make_company())) as ws:
                ws.receive_json()
        assert exc.value.code == 1008

    def test_unbound_driver_refused(self, client, make_company, make_driver, make_vehicle):
        company = make_company()
        vehicle, driver = make_vehicle(company), make_driver(company)
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect(f"/api/v1/ws/vehicles/{vehicle.id}", headers=driver_headers(driver)) as ws:
                ws.receive_json()
        assert exc.value.code == 1008

    def test_missing_identity_refused(self, client, make_company, make_vehicle):
        vehicle = make_vehicle(make_company())
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect(f"/api/v1/ws/vehicles/{vehicle.id}") as ws:
                ws.receive_json()
        assert exc.value.code == 1008
