# -*- coding: utf-8 -*-

"""
Unit tests for response envelopes.
"""

from gatekeeper.errors import ErrorCodes, make_api_error
from gatekeeper.responses import error_envelope, success_envelope


class TestSuccessEnvelope:
    """Tests for success_envelope()."""

    def test_wraps_data(self):
        """
        What it does: Wraps a handler result.
        Purpose: Success is always {success: true, data}.
        """
        envelope = success_envelope({"email": "a@b.com", "rememberMe": True})
        print(f"Envelope: {envelope}")
        assert envelope == {"success": True, "data": {"email": "a@b.com", "rememberMe": True}}

    def test_serializes_models(self):
        """
        What it does: Wraps a pydantic model.
        Purpose: Handlers may return validated models directly.
        """
        from gatekeeper.schemas import Pagination

        envelope = success_envelope(Pagination())
        assert envelope["data"] == {"page": 1, "limit": 10, "sort": "asc"}


class TestErrorEnvelope:
    """Tests for error_envelope()."""

    def test_validation_error_keeps_details(self):
        """
        What it does: Renders a VALIDATION_ERROR with details and endpoint.
        Purpose: Caller faults carry enough detail to fix the request.
        """
        error = make_api_error(
            ErrorCodes.VALIDATION_ERROR,
            "Validation failed for body",
            {"validationErrors": [{"path": "email", "message": "email: bad", "code": "value_error"}]},
        )
        envelope = error_envelope(error, endpoint="/api/examples/login")

        print(f"Envelope: {envelope}")
        assert envelope["success"] is False
        assert envelope["error"]["code"] == 1003
        assert envelope["error"]["details"]["validationErrors"][0]["path"] == "email"
        assert envelope["error"]["endpoint"] == "/api/examples/login"
        assert isinstance(envelope["error"]["timestamp"], int)

    def test_optional_fields_are_omitted(self):
        """
        What it does: Renders an error without details, endpoint or timestamp.
        Purpose: Absent optional fields do not appear as nulls.
        """
        envelope = error_envelope(
            make_api_error(ErrorCodes.RATE_LIMIT_EXCEEDED, "Slow down"), include_timestamp=False
        )
        print(f"Envelope: {envelope}")
        assert envelope == {"success": False, "error": {"code": 1002, "message": "Slow down"}}

    def test_none_inside_details_is_kept(self):
        """
        What it does: Renders details containing a None value.
        Purpose: Only the optional envelope keys are pruned.
        """
        error = make_api_error(ErrorCodes.VALIDATION_ERROR, "bad", {"hint": None})
        envelope = error_envelope(error, include_timestamp=False)
        assert envelope["error"]["details"] == {"hint": None}

    def test_system_fault_is_rendered_generically(self):
        """
        What it does: Renders an UNKNOWN_ERROR with internal text and details.
        Purpose: System faults show only a generic message and the code.
        """
        error = make_api_error(
            ErrorCodes.UNKNOWN_ERROR, "ZeroDivisionError at handlers.py:12", {"stack": "..."}
        )
        envelope = error_envelope(error)

        print(f"Envelope: {envelope}")
        assert envelope["error"]["code"] == 9999
        assert "ZeroDivisionError" not in envelope["error"]["message"]
        assert "details" not in envelope["error"]
