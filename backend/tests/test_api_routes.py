"""HTTP surface: catalog, simulator, reservations, mural and read log."""

import pytest

from conftest import auth

API = "/api/v1"


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def test_anonymous_request_is_unauthorized(client):
    response = client.get(f"{API}/products")
    assert response.status_code == 401
    assert response.json() == {"error": "unauthorized", "message": "Unauthorized"}


def test_identity_without_email_is_unauthorized(client):
    response = client.get(f"{API}/mural", headers=auth("tok-noemail"))
    assert response.status_code == 401
    assert response.json()["message"] == "No email found for this user."


def test_session_cookie_is_accepted(client):
    response = client.get(f"{API}/agency/me", headers={"Cookie": "__session=tok-agent"})
    assert response.status_code == 200
    assert response.json()["email"] == "agent@sol.com"


# ---------------------------------------------------------------------------
# Agency
# ---------------------------------------------------------------------------

def test_agency_me(client):
    body = client.get(f"{API}/agency/me", headers=auth("tok-agent")).json()
    assert body["display_name"] == "Ana Lima"
    assert body["agency"]["name"] == "Sol Viagens"
    assert body["agency"]["commission_rate"] == 0.1
    assert body["agency"]["can_reserve"] is True


def test_agency_me_without_registration(client):
    body = client.get(f"{API}/agency/me", headers=auth("tok-stranger")).json()
    assert body["agency"] is None


def test_only_admins_register_agencies(client, portal_base):
    payload = {"name": "Mar Turismo", "email": "mar@turismo.com", "commission_rate": 0.08}
    assert client.post(f"{API}/agency", json=payload, headers=auth("tok-agent")).status_code == 403

    response = client.post(f"{API}/agency", json=payload, headers=auth("tok-admin"))
    assert response.status_code == 201
    assert response.json()["email"] == "mar@turismo.com"
    assert len(portal_base.rows["tblkVI2PX3jPgYKXF"]) == 3


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def test_products_priced_with_agency_commission(client):
    body = client.get(f"{API}/products", headers=auth("tok-agent")).json()
    assert body["commission_rate"] == 0.1
    assert body["error"] is None
    cristo = next(p for p in body["products"] if p["id"] == "recP1")
    assert (cristo["consumer_price"], cristo["consumer_price_minor"], cristo["consumer_price_infant"]) == (110.0, 55.0, 0.0)
    assert cristo["net_price"]["adult"] == 100.0


def test_products_at_net_without_agency(client):
    body = client.get(f"{API}/products", headers=auth("tok-stranger")).json()
    assert body["commission_rate"] == 0.0
    assert all(p["consumer_price"] == p["net_price"]["adult"] for p in body["products"])


def test_products_search_and_filters(client):
    body = client.get(f"{API}/products", params={"search": "paraty"}, headers=auth("tok-agent")).json()
    assert [p["id"] for p in body["products"]] == ["recP2"]
    body = client.get(f"{API}/products", params={"category": "Tour"}, headers=auth("tok-agent")).json()
    assert [p["id"] for p in body["products"]] == ["recP1"]


def test_filter_options(client):
    body = client.get(f"{API}/products/meta/filters", headers=auth("tok-agent")).json()
    assert body == {"categories": ["Boat", "Tour"], "destinations": ["Paraty", "Rio de Janeiro"]}


def test_products_fall_back_to_legacy_table(client, portal_base):
    portal_base.fail("Passeios")
    portal_base.add("Products", "recOLD", **{"Atividade": "Legacy tour", "INV26 ADU": 10})
    body = client.get(f"{API}/products", headers=auth("tok-agent")).json()
    assert [p["id"] for p in body["products"]] == ["recOLD"]
    assert body["products"][0]["consumer_price"] == 11.0


def test_products_unavailable(client, portal_base):
    portal_base.fail("Passeios")
    response = client.get(f"{API}/products", headers=auth("tok-agent"))
    assert response.status_code == 503
    message = response.json()["message"]
    assert message.startswith("Failed to load products: ")
    assert message.endswith("Check your connection and credentials.")


# ---------------------------------------------------------------------------
# Simulator and reservations
# ---------------------------------------------------------------------------

ITEMS = [
    {"product_id": "recP1", "adults": 2, "children": 1},
    {"product_id": "recP2", "adults": 1, "infants": 1},
]


def test_quote_totals_and_commission(client):
    body = client.post(f"{API}/simulator/quote", json={"items": ITEMS}, headers=auth("tok-agent")).json()
    assert [line["total"] for line in body["lines"]] == pytest.approx([275.0, 231.0])
    assert body["total"] == pytest.approx(506.0)
    assert body["commission"] == pytest.approx(50.6)


def test_quote_unknown_product(client):
    response = client.post(f"{API}/simulator/quote", json={"items": [{"product_id": "recX"}]},
                           headers=auth("tok-agent"))
    assert response.status_code == 404
    assert response.json()["error"] == "product_not_found"


def test_quote_requires_items(client):
    response = client.post(f"{API}/simulator/quote", json={"items": []}, headers=auth("tok-agent"))
    assert response.status_code == 422


def test_reservation_is_recomputed_and_stored(client, portal_base):
    payload = {"items": ITEMS, "date": "2026-03-10", "client_name": "Carla Dias", "pax_names": "Bia, Leo"}
    response = client.post(f"{API}/reservations", json=payload, headers=auth("tok-agent"))
    assert response.status_code == 201
    body = response.json()
    assert body["id"].startswith("rec")
    assert body["product_name"] == "Cristo Redentor + Passeio de Escuna"
    assert body["destination"] == "Rio de Janeiro, Paraty"
    assert body["total_amount"] == pytest.approx(506.0)

    row = portal_base.rows["Reservas"][0].fields
    assert row["Passageiros"] == "Carla Dias\n\nOutros: Bia, Leo"
    assert (row["Adultos"], row["Crianças"], row["Bebês"]) == (3, 1, 1)
    assert row["Agency ID"] == "recAG1"
    assert row["Criado por"] == "agent@sol.com"


def test_reservation_requires_enabled_agency(client, portal_base):
    payload = {"items": ITEMS, "date": "2026-03-10", "client_name": "Carla Dias"}
    for token in ("tok-stranger", "tok-admin"):
        response = client.post(f"{API}/reservations", json=payload, headers=auth(token))
        assert response.status_code == 403
    assert portal_base.rows["Reservas"] == []


# ---------------------------------------------------------------------------
# Mural
# ---------------------------------------------------------------------------

def test_mural_lists_notices_with_read_flag(client):
    body = client.get(f"{API}/mural", headers=auth("tok-agent")).json()
    assert [(n["id"], n["is_read"]) for n in body["notices"]] == [("recN2", True), ("recN1", False)]
    assert body["unread"] == 1


def test_mural_unavailable(client, portal_base):
    portal_base.fail("Mural")
    response = client.get(f"{API}/mural", headers=auth("tok-agent"))
    assert response.status_code == 503
    assert response.json()["message"] == "Bulletin table not found"


def test_confirm_read(client, portal_base):
    response = client.post(f"{API}/mural/recN1/confirm", headers=auth("tok-agent"))
    assert response.status_code == 200
    assert response.json() == {"success": True, "log_appended": True, "column_updated": True}
    assert portal_base.fields_of("Mural", "recN1")["Lido por"] == ["Maria Souza", "Ana Lima"]
    receipt = portal_base.rows["Notice_read_log"][-1].fields
    assert receipt["User Email"] == "agent@sol.com"
    assert receipt["Agency ID"] == "recAG1"

    body = client.get(f"{API}/mural", headers=auth("tok-agent")).json()
    assert body["unread"] == 0


def test_confirm_without_agency_is_not_found(client, portal_base):
    response = client.post(f"{API}/mural/recN1/confirm", headers=auth("tok-stranger"))
    assert response.status_code == 404
    assert response.json()["message"] == "Agency not found for user"
    assert len(portal_base.rows["Notice_read_log"]) == 2


def test_readers_scoped_by_agency(client):
    body = client.get(f"{API}/mural/recN1/readers", headers=auth("tok-agent")).json()
    assert body["success"] is True
    assert [r["user_email"] for r in body["readers"]] == ["maria@sol.com"]


def test_admin_sees_all_readers(client):
    body = client.get(f"{API}/mural/recN1/readers", headers=auth("tok-admin")).json()
    assert [r["agency_id"] for r in body["readers"]] == ["recAG2", "recAG1"]


def test_readers_without_agency_is_empty(client):
    body = client.get(f"{API}/mural/recN1/readers", headers=auth("tok-stranger")).json()
    assert body == {"success": True, "readers": [], "error": None}


# ---------------------------------------------------------------------------
# Read log endpoint
# ---------------------------------------------------------------------------

def test_read_log_requires_notice_id(client):
    response = client.get(f"{API}/read-log", headers=auth("tok-agent"))
    assert response.status_code == 400
    assert response.json() == {"success": False, "readers": [], "error": "Missing noticeId"}


def test_read_log_requires_identity(client):
    response = client.get(f"{API}/read-log", params={"noticeId": "recN1"})
    assert response.status_code == 401


def test_read_log_unknown_agency_is_an_error(client):
    response = client.get(f"{API}/read-log", params={"noticeId": "recN1"}, headers=auth("tok-stranger"))
    assert response.status_code == 500
    assert response.json()["error"] == "Agency not found for user"


def test_read_log_returns_agency_readers(client, caplog):
    with caplog.at_level("INFO", logger="partner_portal.api.routes_mural"):
        response = client.get(f"{API}/read-log", params={"noticeId": "recN1"}, headers=auth("tok-agent"))
    assert response.status_code == 200
    assert len(response.json()["readers"]) == 1
    event = next(r for r in caplog.records if "read-log-request" in r.getMessage())
    assert event.context["returnedCount"] == 1
    assert event.context["baseIdPrefix"] == "appTEST..."
    assert event.context["noticeId"] == "recN1"


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

def test_health(client):
    body = client.get(f"{API}/health").json()
    assert body["status"] == "healthy"
    assert body["record_store"] == "configured"


def test_health_config_never_echoes_secrets(client):
    response = client.get(f"{API}/health/config")
    assert response.status_code == 200
    assert response.json()["has_airtable_api_key"] is True
    assert "keyTEST" not in response.text
    assert "sk_test" not in response.text


def test_liveness(client):
    assert client.get(f"{API}/health/live").json()["alive"] is True
