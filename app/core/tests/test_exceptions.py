"""
Tests for the application exception hierarchy and ServiceResult.
"""

import pytest

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.services import ServiceResult


class TestBaseApplicationError:
    def test_to_dict_without_details(self):
        error = BaseApplicationError("Something broke")

        assert error.to_dict() == {
            "success": False,
            "error": "Something broke",
            "error_code": "application_error",
        }

    def test_to_dict_with_details(self):
        error = ConflictError(
            "Already pending", error_code="duplicate_request", details={"payoutId": "abc"}
        )

        assert error.to_dict()["details"] == {"payoutId": "abc"}
        assert error.to_dict()["error_code"] == "duplicate_request"

    def test_str_includes_code(self):
        assert str(NotFoundError("No such vendor")) == "[not_found] No such vendor"

    @pytest.mark.parametrize(
        "exc_class,expected_status",
        [
            (ValidationError, 400),
            (PermissionDeniedError, 403),
            (NotFoundError, 404),
            (ConflictError, 409),
            (ExternalServiceError, 502),
            (BaseApplicationError, 500),
        ],
    )
    def test_http_status(self, exc_class, expected_status):
        assert exc_class("x").http_status == expected_status


class TestServiceResult:
    def test_success(self):
        result = ServiceResult.success({"id": 1})

        assert result
        assert result.data == {"id": 1}
        assert result.to_response() == {"success": True, "data": {"id": 1}}

    def test_failure_carries_record(self):
        result = ServiceResult.failure("Processor down", error_code="processor_error", data="row")

        assert not result
        assert result.data == "row"
        assert result.to_response() == {
            "success": False,
            "error": "Processor down",
            "error_code": "processor_error",
        }
