"""HTTP tests for the scan, history, health and protection settings endpoints."""

from phishshield.services.protection_settings import ProtectionSettingsStore

PHISHING_TEXT = "URGENT: verify your account now! http://amaz0n-secure.xyz"


def scan_text(client, **body):
    return client.post("/api/scan/text", json=body)


# Scanning

def test_scan_text_stores_message(client):
    response = scan_text(client, content=PHISHING_TEXT)

    assert response.status_code == 200
    data = response.json()
    analysis = data["analysis"]
    assert analysis["threatLevel"] == "phishing"
    assert "Urgency language detected" in analysis["reasons"]
    assert analysis["content"] == PHISHING_TEXT
    assert "threatData" not in analysis

    message = data["message"]
    assert message["id"] == 1
    assert message["sender"] == "Manual Scan"
    assert message["source"] == "manual"
    assert message["threatLevel"] == "phishing"
    assert message["isRead"] is False
    assert message["threatDetails"]["reasons"] == analysis["reasons"]


def test_scan_text_safe(client):
    response = scan_text(client, content="Let's meet for coffee tomorrow", source="sms")
    data = response.json()
    assert data["analysis"]["threatLevel"] == "safe"
    assert data["analysis"]["reasons"] == []
    assert data["message"]["source"] == "sms"


def test_enhanced_text_scan_includes_threat_data(client):
    response = scan_text(
        client,
        content="Check http://phishing.com/win",
        sender="support@phishing-alerts.xyz",
        enhancedAnalysis=True,
    )

    assert response.status_code == 200
    data = response.json()
    analysis = data["analysis"]
    assert analysis["threatLevel"] == "phishing"
    assert analysis["threatData"]["domainInfo"]["malicious"] is True
    assert "PhishingDB" in analysis["threatData"]["domainInfo"]["sources"]
    assert analysis["threatData"]["senderInfo"]["hasDmarc"] is False
    assert analysis["threatData"]["senderInfo"]["securityLevel"] == "low"
    assert data["message"]["sender"] == "support@phishing-alerts.xyz"
    assert data["message"]["threatDetails"]["threatData"]["domainInfo"]["domain"] == "phishing.com"


def test_scan_without_history(client):
    response = scan_text(client, content="hello there", saveToHistory=False)
    assert response.status_code == 200
    assert response.json().get("message") is None
    assert client.get("/api/messages").json() == []


def test_scan_text_validation(client):
    assert scan_text(client, content="   ").status_code == 400
    assert scan_text(client, content="a" * 50001).status_code == 400
    assert scan_text(client, content="hi", sender="x" * 400).status_code == 400
    assert client.post("/api/scan/text", json={}).status_code == 422
    assert scan_text(client, content="hi", source="fax").status_code == 422


def test_scan_url(client):
    response = client.post("/api/scan/url", json={"url": "http://192.168.1.1/login"})

    assert response.status_code == 200
    data = response.json()
    assert data["threatLevel"] == "phishing"
    assert data["reasons"] == [
        "IP address used in URL instead of domain name",
        "Security-related terms in URL",
    ]
    assert "threatData" not in data


def test_enhanced_url_scan(client):
    response = client.post(
        "/api/scan/url", json={"url": "https://bit.ly/xyz", "enhancedAnalysis": True}
    )

    data = response.json()
    assert data["threatLevel"] == "suspicious"
    assert data["threatData"]["domainInfo"]["domain"] == "bit.ly"
    assert "senderInfo" not in data["threatData"]


def test_scan_url_rejects_malformed_url(client):
    assert client.post("/api/scan/url", json={"url": "not a url"}).status_code == 422
    long_url = "https://example.com/" + "a" * 3000
    assert client.post("/api/scan/url", json={"url": long_url}).status_code == 422


# History

def test_list_messages_newest_first(client):
    scan_text(client, content="first message")
    scan_text(client, content="second message")

    messages = client.get("/api/messages").json()
    assert [m["content"] for m in messages] == ["second message", "first message"]

    limited = client.get("/api/messages", params={"limit": 1}).json()
    assert len(limited) == 1
    assert client.get("/api/messages", params={"limit": 0}).status_code == 422


def test_message_stats(client):
    scan_text(client, content=PHISHING_TEXT)
    scan_text(client, content="You won a prize")
    scan_text(client, content="See you at lunch")

    stats = client.get("/api/message-stats").json()
    assert stats == {"safe": 1, "suspicious": 1, "phishing": 1}


def test_mark_read_and_delete(client):
    message_id = scan_text(client, content="hello").json()["message"]["id"]

    read = client.patch(f"/api/messages/{message_id}/read")
    assert read.status_code == 200
    assert read.json()["isRead"] is True

    assert client.delete(f"/api/messages/{message_id}").json() == {"success": True}
    assert client.delete(f"/api/messages/{message_id}").status_code == 404
    assert client.patch("/api/messages/999/read").status_code == 404


# Health

def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == "1.0.0"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_status_reports_cache(client):
    client.post("/api/scan/url", json={"url": "https://example.com", "enhancedAnalysis": True})

    data = client.get("/api/status").json()
    assert data["initialized"] is True
    assert data["cache"]["domain_entries"] == 1
    assert data["cache"]["domain_providers"] == ["KeywordReputation", "PhishingDB"]
    assert data["lookup_failures"] == {}
    assert data["cache"]["pending_lookups"] == 0
    assert data["history_size"] == 0


# Protection settings

def test_get_protection_settings_defaults(client):
    response = client.get("/api/protection-settings")
    assert response.status_code == 200
    assert response.json() == {
        "id": 1,
        "smsProtection": True,
        "emailProtection": True,
        "socialMediaProtection": False,
        "onDeviceScanning": False,
    }


def test_update_protection_settings(client):
    response = client.patch(
        "/api/protection-settings",
        json={"socialMediaProtection": True, "onDeviceScanning": True},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["socialMediaProtection"] is True
    assert data["onDeviceScanning"] is True
    assert data["smsProtection"] is True

    assert client.get("/api/protection-settings").json() == data


def test_update_protection_settings_validation(client):
    assert client.patch("/api/protection-settings", json={"smsProtection": "off"}).status_code == 422
    assert client.patch("/api/protection-settings", json={"pushAlerts": True}).status_code == 422
    assert client.get("/api/protection-settings").json()["smsProtection"] is True


def test_protection_settings_missing(client):
    from main import app

    app.state.protection_settings = ProtectionSettingsStore()
    assert client.get("/api/protection-settings").status_code == 404
    assert client.patch("/api/protection-settings", json={"smsProtection": False}).status_code == 404
