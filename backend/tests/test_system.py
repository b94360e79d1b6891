"""Health endpoint, CORS headers, API prefix and CLI commands."""

from posbuzz import create_app
from posbuzz.cli import (
    cleanup_sessions,
    create_user_cli,
    init_db,
    list_sessions,
    list_users,
    revoke_sessions,
)
from posbuzz.services import session_service
from posbuzz.models import User


class TestHealth:

    def test_health_reports_database(self, client, db_session):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["checks"]["database"]["status"] == "healthy"
        assert resp.json["timestamp"].endswith("Z")


class TestCors:

    def test_allowed_origin_echoed(self, client, db_session):
        resp = client.get("/health", headers={"Origin": "http://localhost:5173"})

        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
        assert "Authorization" in resp.headers["Access-Control-Allow-Headers"]

    def test_unknown_origin_ignored(self, client, db_session):
        resp = client.get("/health", headers={"Origin": "http://evil.example"})

        assert "Access-Control-Allow-Origin" not in resp.headers


class TestCli:

    def test_create_and_list_users(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(create_user_cli, [
            "--email", "Admin@PosBuzz.local", "--password", "secret1", "--name", "Admin",
        ])
        assert result.exit_code == 0, result.output
        assert "admin@posbuzz.local" in result.output
        assert db_session.query(User).filter_by(email="admin@posbuzz.local").count() == 1

        result = runner.invoke(list_users)
        assert "admin@posbuzz.local" in result.output
        assert "active" in result.output

    def test_create_user_rejects_duplicate(self, app, cashier):
        result = app.test_cli_runner().invoke(create_user_cli, [
            "--email", "cashier@posbuzz.test", "--password", "secret1",
        ])

        assert result.exit_code != 0
        assert "already exists" in result.output

    def test_init_db_is_idempotent(self, app, db_session):
        result = app.test_cli_runner().invoke(init_db)

        assert result.exit_code == 0
        assert "PASS" in result.output

    def test_cleanup_sessions(self, app, db_session):
        result = app.test_cli_runner().invoke(cleanup_sessions, ["--retention-days", "1"])

        assert result.exit_code == 0
        assert "Deleted 0" in result.output

    def test_sessions_show_client_and_revoke(self, app, cashier):
        session_service.create_session(cashier.id, user_agent="RegisterApp/2.1", ip_address="10.0.0.7")
        runner = app.test_cli_runner()

        result = runner.invoke(list_sessions, ["Cashier@PosBuzz.test"])
        assert result.exit_code == 0, result.output
        assert "10.0.0.7" in result.output
        assert "RegisterApp/2.1" in result.output

        result = runner.invoke(revoke_sessions, ["cashier@posbuzz.test"])
        assert "Revoked 1 session(s)" in result.output

        assert "No sessions found" in runner.invoke(list_sessions, ["cashier@posbuzz.test"]).output
        result = runner.invoke(list_sessions, ["cashier@posbuzz.test", "--all"])
        assert "revoked (Revoked from CLI)" in result.output

    def test_sessions_unknown_user(self, app, db_session):
        result = app.test_cli_runner().invoke(list_sessions, ["nobody@posbuzz.test"])

        assert result.exit_code != 0
        assert "No user with email" in result.output


class TestApiPrefix:

    def test_resources_served_at_root_by_default(self, client, product_a1):
        assert client.get("/products").status_code == 200
        assert client.get("/api/products").status_code == 404

    def test_prefix_is_configurable(self):
        prefixed = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "API_PREFIX": "/api/",
        })
        routes = {rule.rule for rule in prefixed.url_map.iter_rules()}

        assert {"/api/auth/login", "/api/products", "/api/sales/<int:sale_id>"} <= routes
        assert "/products" not in routes
        assert "/health" in routes
