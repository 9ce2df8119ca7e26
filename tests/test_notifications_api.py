import pytest

PAYLOAD = {
    "order": {"id": 7, "created_at": "2026-10-17T10:00:00Z", "total_amount": 4500},
    "customer": {"customer_name": "Ada Obi", "customer_email": "ada@example.com", "business_name": "Obi Traders"},
    "items": [{"description": "Linen shirt", "reference": "SHIRT-1", "size": "M", "quantity": 3, "wholesale_price": 1500}],
}


def _without(section, key):
    body = {k: (dict(v) if isinstance(v, dict) else v) for k, v in PAYLOAD.items()}
    body[section].pop(key)
    return body


class TestCustomerConfirmationEndpoint:
    url = "/api/send-customer-confirmation"

    def test_success_returns_email_id(self, client, transport):
        resp = client.post(self.url, json=PAYLOAD)

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Customer confirmation sent", "emailId": "msg_1"}
        assert transport.sent[0].to == ["ada@example.com"]
        assert transport.subjects() == ["✅ Order Confirmation #7 - ₦4,500"]

    @pytest.mark.parametrize(
        "body, detail",
        [
            ({"order": PAYLOAD["order"], "items": []}, "Missing order, customer, or items data"),
            (_without("order", "created_at"), "Missing essential order details (id, created_at, total_amount)"),
            (
                {**PAYLOAD, "customer": {"phone": "0801"}},
                "Customer contact information (email or name) is required",
            ),
            ({**PAYLOAD, "items": {"a": 1}}, "Items must be an array"),
            ({**PAYLOAD, "customer": {"name": "Ada"}}, "Customer email is required"),
        ],
    )
    def test_bad_payloads_are_400(self, client, transport, body, detail):
        resp = client.post(self.url, json=body)

        assert resp.status_code == 400
        assert resp.json()["detail"] == detail
        assert transport.sent == []

    def test_invalid_field_names_location(self, client):
        body = {**PAYLOAD, "items": [{"quantity": "lots"}]}
        resp = client.post(self.url, json=body)

        assert resp.status_code == 400
        assert resp.json()["detail"].startswith("Invalid items.0.quantity:")

    def test_transport_failure_is_500(self, client, transport):
        transport.fail_with = "provider down"
        resp = client.post(self.url, json=PAYLOAD)

        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to send confirmation: provider down"
        assert resp.json()["code"] == "NOTIFICATION_FAILED"


class TestAdminNotificationEndpoint:
    url = "/api/send-order-notification"

    def test_success(self, client, transport):
        resp = client.post(self.url, json=PAYLOAD)

        assert resp.status_code == 200
        assert resp.json()["emailId"] == "msg_1"
        assert transport.subjects() == ["🚨 NEW ORDER #7 - ₦4,500 from Obi Traders"]

    def test_name_only_customer_is_enough(self, client, transport):
        resp = client.post(self.url, json={**PAYLOAD, "customer": {"name": "Ada"}})

        assert resp.status_code == 200
        assert transport.sent[0].to == ["admin@example.com"]

    def test_failure_message(self, client, transport):
        transport.fail_with = "quota exceeded"
        resp = client.post(self.url, json=PAYLOAD)

        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to send admin notification: quota exceeded"


class TestEmailDiagnostics:
    def test_diagnostics(self, client):
        resp = client.get("/api/v1/notifications/diagnostics")

        assert resp.status_code == 200
        assert resp.json()["ok"] is True
        assert resp.json()["backend"] == "recording"

    def test_send_test_email(self, client, transport):
        resp = client.post("/api/v1/notifications/test", json={"to": "ops@example.com"})

        assert resp.status_code == 200
        assert resp.json()["message"] == "Test email sent to ops@example.com"
        assert transport.sent[0].to == ["ops@example.com"]

    def test_send_test_email_failure_is_502(self, client, transport):
        transport.fail_with = "smtp refused"
        resp = client.post("/api/v1/notifications/test", json={"to": "ops@example.com"})

        assert resp.status_code == 502
        assert resp.json()["code"] == "TEST_EMAIL_FAILED"
