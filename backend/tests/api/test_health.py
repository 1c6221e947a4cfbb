"""Smoke tests for the health endpoint."""

from tests.helpers.http import API


def test_health_reports_components(client):
    resp = client.get(f"{API}/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok", "db": "ok", "redis": "disabled", "version": "dev"}


def test_unknown_route_is_problem_json(client):
    resp = client.get(f"{API}/does-not-exist")
    assert resp.status_code == 404
    assert resp.mimetype == "application/problem+json"
    assert resp.get_json()["code"] == "not_found"
