from __future__ import annotations

from app.core.errors import (
    ERROR_TYPE_BASE,
    InternalServerError,
    NotFoundError,
    ValidationError,
)


def test_validation_error_problem_lists_every_message() -> None:
    error = ValidationError(["Invalid start date", "Invalid end date"])

    problem = error.to_problem(instance="/api/v1/charts/line")

    assert problem == {
        "type": f"{ERROR_TYPE_BASE}/validation",
        "title": "Validation Error",
        "status": 400,
        "detail": "Invalid start date; Invalid end date",
        "instance": "/api/v1/charts/line",
        "errors": ["Invalid start date", "Invalid end date"],
    }


def test_validation_error_accepts_a_single_message_and_custom_detail() -> None:
    error = ValidationError("Malformed cursor provided", detail="Invalid cursor")

    assert error.detail == "Invalid cursor"
    assert error.errors == ["Malformed cursor provided"]


def test_not_found_error_names_the_resource() -> None:
    error = NotFoundError("Chart type 'radar'")

    problem = error.to_problem()

    assert problem["status"] == 404
    assert problem["detail"] == "Chart type 'radar' not found"
    assert problem["type"].endswith("/not-found")
    assert "instance" not in problem
    assert "errors" not in problem


def test_internal_error_uses_generic_detail() -> None:
    problem = InternalServerError().to_problem()

    assert problem["status"] == 500
    assert problem["detail"] == "An unexpected error occurred"
