"""
Tests for formula catalog and calculation routes.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from calculator_api.models.domain import AuthenticatedUser
from tests.conftest import create_mock_balance, make_result

AUTH = {"Cookie": "session_token=session-abc"}


class TestCatalogRoute:
    """Tests for GET /api/formulas."""

    def test_lists_categories_without_auth(self, client: TestClient):
        response = client.get("/api/formulas")

        assert response.status_code == 200
        categories = response.json()["categories"]
        assert categories[0]["id"] == "area"
        assert categories[-1]["id"] == "algebra"

    def test_formula_shape(self, client: TestClient):
        categories = client.get("/api/formulas").json()["categories"]
        quadratic = categories[-1]["formulas"][0]

        assert quadratic["id"] == "quadratic_roots"
        assert quadratic["solvableFor"] == ["x"]
        assert [v["symbol"] for v in quadratic["variables"]] == ["a", "b", "c"]
        assert "solvers" not in quadratic


class TestCalculateRoute:
    """Tests for POST /api/formulas/{formula_id}/calculate."""

    def test_solves_and_debits(self, client: TestClient, db_session: AsyncMock):
        db_session.execute = AsyncMock(return_value=make_result(create_mock_balance(token_count=5)))

        response = client.post(
            "/api/formulas/circle_area/calculate",
            json={"solveFor": "A", "values": {"r": 2}},
            headers=AUTH,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["formulaId"] == "circle_area"
        assert body["solveFor"] == "A"
        assert body["result"] == pytest.approx(12.566370614359172)
        assert body["tokenCount"] == 4
        db_session.commit.assert_awaited_once()

    def test_quadratic_returns_both_roots(self, client: TestClient, db_session: AsyncMock):
        db_session.execute = AsyncMock(return_value=make_result(create_mock_balance(token_count=5)))

        response = client.post(
            "/api/formulas/quadratic_roots/calculate",
            json={"solveFor": "x", "values": {"a": 1, "b": -5, "c": 6}},
            headers=AUTH,
        )

        assert response.status_code == 200
        assert response.json()["result"] == {"root1": 3.0, "root2": 2.0}

    def test_unknown_formula_is_404(self, client: TestClient, db_session: AsyncMock):
        response = client.post(
            "/api/formulas/nope/calculate",
            json={"solveFor": "x", "values": {}},
            headers=AUTH,
        )

        assert response.status_code == 404
        db_session.commit.assert_not_called()

    def test_unsolvable_is_400_and_free(self, client: TestClient, db_session: AsyncMock):
        """No token is spent when the inputs have no real answer."""
        response = client.post(
            "/api/formulas/quadratic_roots/calculate",
            json={"solveFor": "x", "values": {"a": 1, "b": 0, "c": 1}},
            headers=AUTH,
        )

        assert response.status_code == 400
        assert "discriminant" in response.json()["detail"]
        db_session.execute.assert_not_called()
        db_session.commit.assert_not_called()

    def test_empty_balance_is_403(self, client: TestClient, db_session: AsyncMock):
        db_session.execute = AsyncMock(return_value=make_result(create_mock_balance(token_count=0)))

        response = client.post(
            "/api/formulas/circle_area/calculate",
            json={"solveFor": "A", "values": {"r": 1}},
            headers=AUTH,
        )

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "insufficient_tokens"

    def test_admin_calculates_without_ledger(
        self,
        client: TestClient,
        db_session: AsyncMock,
        users_service_mock: AsyncMock,
        admin_user: AuthenticatedUser,
    ):
        users_service_mock.get_current_user.return_value = admin_user

        response = client.post(
            "/api/formulas/simple_interest/calculate",
            json={"solveFor": "SI", "values": {"P": 1000, "R": 5, "T": 3}},
            headers=AUTH,
        )

        assert response.status_code == 200
        assert response.json()["result"] == pytest.approx(150)
        assert response.json()["tokenCount"] == 999999
        assert response.json()["isAdmin"] is True
        db_session.execute.assert_not_called()

    def test_requires_auth(self, client: TestClient):
        response = client.post(
            "/api/formulas/circle_area/calculate",
            json={"solveFor": "A", "values": {"r": 1}},
        )
        assert response.status_code == 401
