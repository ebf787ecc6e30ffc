"""
Health endpoint, request guards, error envelope and response headers.
"""


class TestHealth:
    def test_health_ok(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        body = res.get_json()
        assert body["success"] is True
        assert body["data"]["checks"]["database"]["status"] == "ok"


class TestErrorEnvelope:
    def test_unknown_route(self, client):
        res = client.get("/api/v1/nothing-here")
        assert res.status_code == 404
        error = res.get_json()["error"]
        assert error["code"] == "ERR_NOT_FOUND"
        assert error["path"] == "/api/v1/nothing-here"
        assert error["method"] == "GET"
        assert "timestamp" in error

    def test_method_not_allowed(self, client):
        res = client.delete("/api/v1/health")
        assert res.status_code == 405
        assert res.get_json()["error"]["code"] == "ERR_METHOD_NOT_ALLOWED"

    def test_stack_hidden_outside_development(self, client):
        res = client.get("/api/v1/specialists/missing")
        assert res.status_code == 404
        assert "stack" not in res.get_json()["error"]


class TestRequestGuards:
    def test_non_json_body_rejected(self, client):
        res = client.post("/api/v1/auth/login", data="email=a", content_type="text/plain")
        assert res.status_code == 415
        assert res.get_json()["error"]["code"] == "ERR_UNSUPPORTED_MEDIA_TYPE"

    def test_multipart_only_on_upload_routes(self, client):
        res = client.post("/api/v1/auth/login", data={"email": "a@example.com"},
                          content_type="multipart/form-data")
        assert res.status_code == 415

    def test_oversized_body(self, app, client):
        limit = app.config["MAX_CONTENT_LENGTH"]
        res = client.post("/api/v1/auth/login", data=b"x" * (limit + 1),
                          content_type="application/json")
        assert res.status_code == 413
        assert res.get_json()["error"]["code"] == "ERR_PAYLOAD_TOO_LARGE"


class TestResponseHeaders:
    def test_security_headers(self, client):
        res = client.get("/api/v1/health")
        assert res.headers["X-Content-Type-Options"] == "nosniff"
        assert res.headers["X-Frame-Options"] == "DENY"
        assert "Server" not in res.headers

    def test_request_id_is_echoed(self, client):
        res = client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
        assert "X-Request-Duration-Ms" in res.headers

    def test_request_id_is_generated(self, client):
        assert client.get("/api/v1/health").headers["X-Request-ID"]
