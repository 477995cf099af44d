"""
HTTP API tests.

Verifies:
- Requests without an identity header return 401
- Domain failures map to 400 / 403 / 404 / 409 with a typed error code
- Denied privileged attempts land in the security event log
- The end-to-end request -> approve -> register -> transfer flow over HTTP
"""

import pytest

from supplychain.models import SecurityEvent
from supplychain.roles import Role

from conftest import ADMIN, identity_headers


# =============================================================================
# UNAUTHENTICATED ACCESS — 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All API endpoints return 401 without an identity."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/registrations"),
            ("GET", "/api/registrations/pending"),
            ("POST", "/api/registrations/0xa/approve"),
            ("GET", "/api/participants"),
            ("POST", "/api/participants"),
            ("GET", "/api/items"),
            ("POST", "/api/items"),
            ("GET", "/api/items/1/history"),
            ("POST", "/api/items/1/transfer"),
            ("GET", "/api/notifications"),
            ("GET", "/api/security-events"),
        ],
    )
    def test_requires_identity(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_blank_identity_logged(self, client, db_session):
        resp = client.get("/api/items", headers=identity_headers("   "))
        assert resp.status_code == 401
        event = db_session.query(SecurityEvent).one()
        assert event.event_type == "IDENTITY_MISSING"
        assert event.resource == "/api/items"

    def test_oversized_identity_is_bad_request(self, client, db_session):
        resp = client.get("/api/items", headers=identity_headers("0x" + "a" * 200))
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["code"] == "ValidationError"
        assert body["details"] == {"field": "identity"}
        assert db_session.query(SecurityEvent).count() == 0


# =============================================================================
# REGISTRATION WORKFLOW
# =============================================================================


class TestRegistrationRoutes:

    def test_request_and_approve(self, client, db_session):
        resp = client.post(
            "/api/registrations",
            json={"role": "Manufacturer", "name": "Acme"},
            headers=identity_headers("0xacme"),
        )
        assert resp.status_code == 201
        assert resp.get_json()["pending"] is True

        resp = client.get("/api/registrations/pending", headers=identity_headers(ADMIN))
        assert resp.get_json() == {"identities": ["0xacme"], "count": 1}

        resp = client.post("/api/registrations/0xacme/approve", headers=identity_headers(ADMIN))
        assert resp.status_code == 200
        assert resp.get_json()["decision"] == "APPROVED"

        resp = client.get("/api/participants/0xacme/registered", headers=identity_headers("0xanyone"))
        assert resp.get_json() == {"identity": "0xacme", "registered": True, "role": "Manufacturer"}

    def test_numeric_role_code(self, client, db_session):
        resp = client.post(
            "/api/registrations",
            json={"role": 2, "name": "FastFreight"},
            headers=identity_headers("0xship"),
        )
        assert resp.status_code == 201
        assert resp.get_json()["requested_role"] == "Distributor"

    @pytest.mark.parametrize("role", [None, 0, "None", "Admin", 9])
    def test_invalid_role(self, client, db_session, role):
        resp = client.post(
            "/api/registrations",
            json={"role": role, "name": "Acme"},
            headers=identity_headers("0xacme"),
        )
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "InvalidRole"

    def test_empty_name(self, client, db_session):
        resp = client.post(
            "/api/registrations",
            json={"role": "Customer", "name": ""},
            headers=identity_headers("0xacme"),
        )
        assert resp.status_code == 400
        assert resp.get_json() == {
            "error": "Name cannot be empty",
            "code": "ValidationError",
            "details": {"field": "Name"},
        }

    def test_duplicate_request(self, client, db_session):
        body = {"role": "Customer", "name": "Acme"}
        client.post("/api/registrations", json=body, headers=identity_headers("0xacme"))
        resp = client.post("/api/registrations", json=body, headers=identity_headers("0xacme"))
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "RequestAlreadyPending"

    def test_non_admin_approve_is_forbidden_and_logged(self, client, db_session):
        client.post(
            "/api/registrations",
            json={"role": "Customer", "name": "Acme"},
            headers=identity_headers("0xacme"),
        )
        resp = client.post("/api/registrations/0xacme/approve", headers=identity_headers("0xacme"))
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "Unauthorized"

        event = db_session.query(SecurityEvent).one()
        assert event.identity == "0xacme"
        assert event.event_type == "UNAUTHORIZED"
        assert event.action == "POST"
        assert event.success is False

    def test_approve_unknown(self, client, db_session):
        resp = client.post("/api/registrations/0xnobody/approve", headers=identity_headers(ADMIN))
        assert resp.status_code == 404

    def test_reject(self, client, db_session):
        client.post(
            "/api/registrations",
            json={"role": "Customer", "name": "Acme"},
            headers=identity_headers("0xacme"),
        )
        resp = client.post("/api/registrations/0xacme/reject", headers=identity_headers(ADMIN))
        assert resp.status_code == 200
        assert resp.get_json()["decision"] == "REJECTED"

        resp = client.get("/api/registrations/0xacme", headers=identity_headers("0xacme"))
        assert resp.get_json()["pending"] is False

    def test_get_request_unknown(self, client, db_session):
        resp = client.get("/api/registrations/0xnobody", headers=identity_headers("0xnobody"))
        assert resp.status_code == 404


# =============================================================================
# IDENTITY REGISTRY
# =============================================================================


class TestParticipantRoutes:

    def test_admin_registers_directly(self, client, db_session):
        resp = client.post(
            "/api/participants",
            json={"identity": "0xshop", "role": "Retailer", "name": "Corner Shop"},
            headers=identity_headers(ADMIN),
        )
        assert resp.status_code == 201
        assert resp.get_json()["role"] == "Retailer"

    def test_non_admin_cannot_register(self, client, db_session):
        resp = client.post(
            "/api/participants",
            json={"identity": "0xshop", "role": "Retailer", "name": "Corner Shop"},
            headers=identity_headers("0xshop"),
        )
        assert resp.status_code == 403

    def test_register_twice(self, client, db_session, chain):
        resp = client.post(
            "/api/participants",
            json={"identity": chain[Role.RETAILER], "role": "Customer", "name": "Again"},
            headers=identity_headers(ADMIN),
        )
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "AlreadyRegistered"

    def test_list_by_role(self, client, db_session, chain):
        resp = client.get("/api/participants?role=Distributor", headers=identity_headers(ADMIN))
        assert resp.status_code == 200
        assert [p["identity"] for p in resp.get_json()] == [chain[Role.DISTRIBUTOR]]

    def test_unknown_participant(self, client, db_session):
        resp = client.get("/api/participants/0xnobody", headers=identity_headers(ADMIN))
        assert resp.status_code == 404

        resp = client.get("/api/participants/0xnobody/registered", headers=identity_headers(ADMIN))
        assert resp.get_json() == {"identity": "0xnobody", "registered": False, "role": None}


# =============================================================================
# CUSTODY LEDGER
# =============================================================================


class TestItemRoutes:

    def _register(self, client, chain):
        return client.post(
            "/api/items",
            json={"name": "Widget", "description": "desc"},
            headers=identity_headers(chain[Role.MANUFACTURER]),
        )

    def test_register_and_history(self, client, db_session, chain):
        resp = self._register(client, chain)
        assert resp.status_code == 201
        item = resp.get_json()
        assert item["id"] == 1
        assert item["status"] == "Manufactured"

        resp = client.get("/api/items/1/history", headers=identity_headers(chain[Role.CUSTOMER]))
        body = resp.get_json()
        assert body["item_id"] == 1
        assert len(body["entries"]) == 1
        assert body["entries"][0]["from"] is None

        resp = client.get("/api/items/count", headers=identity_headers(chain[Role.CUSTOMER]))
        assert resp.get_json() == {"total": 1}

    def test_register_requires_manufacturer(self, client, db_session, chain):
        resp = client.post(
            "/api/items",
            json={"name": "Widget", "description": "desc"},
            headers=identity_headers(chain[Role.RETAILER]),
        )
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "Unauthorized"

    def test_register_unregistered(self, client, db_session):
        resp = client.post(
            "/api/items",
            json={"name": "Widget", "description": "desc"},
            headers=identity_headers("0xstranger"),
        )
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "NotRegistered"

    def test_transfer_flow(self, client, db_session, chain):
        self._register(client, chain)

        resp = client.post(
            "/api/items/1/transfer",
            json={"to": chain[Role.DISTRIBUTOR], "status": "InTransit", "notes": "Truck 7"},
            headers=identity_headers(chain[Role.MANUFACTURER]),
        )
        assert resp.status_code == 200
        assert resp.get_json()["current_holder"] == chain[Role.DISTRIBUTOR]

        resp = client.post(
            "/api/items/1/transfer",
            json={"to": chain[Role.RETAILER], "status": "Sold"},
            headers=identity_headers(chain[Role.DISTRIBUTOR]),
        )
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "InvalidStatusTransition"

        resp = client.get("/api/items?holder=" + chain[Role.DISTRIBUTOR], headers=identity_headers(ADMIN))
        assert [i["id"] for i in resp.get_json()] == [1]

    def test_transfer_skipping_role(self, client, db_session, chain):
        self._register(client, chain)
        resp = client.post(
            "/api/items/1/transfer",
            json={"to": chain[Role.RETAILER], "status": "InTransit"},
            headers=identity_headers(chain[Role.MANUFACTURER]),
        )
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "InvalidRoleTransition"

    def test_transfer_by_non_holder_is_logged(self, client, db_session, chain):
        self._register(client, chain)
        resp = client.post(
            "/api/items/1/transfer",
            json={"to": chain[Role.RETAILER], "status": "Delivered"},
            headers=identity_headers(chain[Role.DISTRIBUTOR]),
        )
        assert resp.status_code == 403
        event = db_session.query(SecurityEvent).one()
        assert event.identity == chain[Role.DISTRIBUTOR]
        assert event.reason == "Not the current owner"

    def test_blank_recipient_by_non_holder_is_logged(self, client, db_session, chain):
        self._register(client, chain)
        resp = client.post(
            "/api/items/1/transfer",
            json={"to": "", "status": "InTransit"},
            headers=identity_headers(chain[Role.RETAILER]),
        )
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "Unauthorized"
        assert db_session.query(SecurityEvent).count() == 1

    @pytest.mark.parametrize("body", [{"to": "0xshipper"}, {"to": "0xshipper", "status": "Shipped"}])
    def test_transfer_bad_status(self, client, db_session, chain, body):
        self._register(client, chain)
        resp = client.post("/api/items/1/transfer", json=body, headers=identity_headers(chain[Role.MANUFACTURER]))
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "ValidationError"

    def test_unknown_item(self, client, db_session, chain):
        resp = client.get("/api/items/42", headers=identity_headers(ADMIN))
        assert resp.status_code == 404

        resp = client.post(
            "/api/items/42/transfer",
            json={"to": chain[Role.DISTRIBUTOR], "status": "InTransit"},
            headers=identity_headers(chain[Role.MANUFACTURER]),
        )
        assert resp.status_code == 404


# =============================================================================
# NOTIFICATIONS, SECURITY EVENTS, HEALTH
# =============================================================================


class TestSystemRoutes:

    def test_notifications_polling(self, client, db_session, chain):
        resp = client.get("/api/notifications", headers=identity_headers(ADMIN))
        body = resp.get_json()
        assert [n["event_type"] for n in body["items"]] == ["Registered"] * 4

        resp = client.get(
            f"/api/notifications?after_id={body['next_after_id']}",
            headers=identity_headers(ADMIN),
        )
        assert resp.get_json()["items"] == []

    def test_notifications_unknown_type(self, client, db_session):
        resp = client.get("/api/notifications?event_type=Shipped", headers=identity_headers(ADMIN))
        assert resp.status_code == 400

    def test_security_events_admin_only(self, client, db_session):
        resp = client.get("/api/security-events", headers=identity_headers("0xmallory"))
        assert resp.status_code == 403

        resp = client.get("/api/security-events", headers=identity_headers(ADMIN))
        assert resp.status_code == 200
        events = resp.get_json()
        assert events[0]["identity"] == "0xmallory"
        assert events[0]["event_type"] == "UNAUTHORIZED"

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["admin_configured"] is True
