# tests/test_api.py
import io
import time

from PIL import Image

from panel import get_channel


def wait_ready(client, theme_id=None, timeout=2.0):
    end = time.time() + timeout
    while time.time() < end:
        data = client.get("/state").get_json()
        if data["status"] == "ready" and (theme_id is None or data["theme_id"] == theme_id):
            return data
        time.sleep(0.01)
    raise AssertionError("engine never became ready")


def test_health_and_state(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.get_json() == {"ok": True, "engine": True}
    data = wait_ready(client)
    assert data["theme_id"] == "classic"
    assert data["clock"] == "09:05"
    assert data["displayed"] == {"en": "Hello", "zh": "你好"}
    assert data["theme"]["backgroundColor"] == "#102030"
    assert client.get("/state").headers["Cache-Control"] == "no-store"


def test_config_and_themes(client):
    wait_ready(client)
    cfg = client.get("/api/config").get_json()
    assert cfg["ok"] is True
    assert cfg["themes"] == ["classic", "halo", "porsche", "missing"]
    assert cfg["currentTheme"] == "classic"
    assert cfg["texts"] == [{"en": "Hello", "zh": "你好"}]
    themes = client.get("/api/themes").get_json()
    assert themes["active"] == "classic"
    assert themes["status"] == "ready"


def test_submit_text_and_next(client):
    wait_ready(client)
    r = client.post("/api/texts", json={"en": "Good morning", "zh": "早上好"})
    assert r.status_code == 200
    state = r.get_json()["state"]
    assert state["displayed"] == {"en": "Good morning", "zh": "早上好"}
    assert state["entry_count"] == 2
    r = client.post("/api/texts/next")
    assert r.get_json()["state"]["displayed"] == {"en": "Hello", "zh": "你好"}


def test_submit_blank_text_is_validation_error(client):
    wait_ready(client)
    r = client.post("/api/texts", json={"en": "Hi", "zh": "  "})
    assert r.status_code == 400
    body = r.get_json()
    assert body["code"] == "validation_error"
    assert body["error"]
    assert body["state"]["entry_count"] == 1
    assert body["state"]["warning"] == body["error"]


def test_post_requires_json(client):
    r = client.post("/api/texts", data="en=Hi", content_type="application/x-www-form-urlencoded")
    assert r.status_code == 415
    r = client.post("/api/theme", data="halo", content_type="text/plain")
    assert r.status_code == 415


def test_change_theme_is_accepted_then_loads(client):
    wait_ready(client)
    r = client.post("/api/theme", json={"theme": "porsche"})
    assert r.status_code == 202
    assert r.get_json()["state"]["theme_id"] == "porsche"
    data = wait_ready(client, "porsche")
    assert data["theme"]["effect"]["kind"] == "porscheEffect"


def test_unknown_theme_is_404(client):
    wait_ready(client)
    r = client.post("/api/theme", json={"theme": "neon"})
    assert r.status_code == 404
    assert r.get_json()["code"] == "unknown_theme"
    assert client.get("/state").get_json()["theme_id"] == "classic"


def test_failing_theme_keeps_previous(client):
    wait_ready(client)
    assert client.post("/api/theme", json={"theme": "missing"}).status_code == 202
    end = time.time() + 2
    while time.time() < end:
        data = client.get("/state").get_json()
        if data["notice"]:
            break
        time.sleep(0.01)
    assert data["notice"]
    assert data["theme_id"] == "classic"
    assert data["status"] == "ready"


def test_export_png(client):
    wait_ready(client)
    r = client.get("/api/export")
    assert r.status_code == 200
    assert r.mimetype == "image/png"
    assert 'filename="interactive-display.png"' in r.headers["Content-Disposition"]
    with Image.open(io.BytesIO(r.data)) as im:
        assert im.size == (320, 180)


def test_export_data_uri(client):
    wait_ready(client)
    body = client.get("/api/export?format=datauri").get_json()
    assert body["filename"] == "interactive-display.png"
    assert body["data_uri"].startswith("data:image/png;base64,")


def test_state_changes_reach_event_channel(app, client):
    wait_ready(client)
    client.post("/api/texts", json={"en": "Ping", "zh": "乒"})
    state = get_channel(app).last_state()
    assert state["displayed"] == {"en": "Ping", "zh": "乒"}
    assert state["status"] == "ready"


def test_unknown_api_path_is_404(client):
    assert client.get("/api/_routes").status_code == 404
