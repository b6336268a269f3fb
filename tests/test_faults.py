"""
Faults (heron.faults)

Tests fault construction, class-level defaults and serialization.
"""

import pytest

from heron.faults import (
    AccessDeniedFault,
    Fault,
    FaultDomain,
    HttpFault,
    ValidationFault,
)


class QuotaFault(Fault):
    code = "QUOTA_EXCEEDED"
    message = "Quota exceeded"
    domain = FaultDomain.FLOW


class TestFault:

    def test_explicit_fields(self):
        fault = Fault("USER_NOT_FOUND", "User 7 not found", domain=FaultDomain.ROUTING, metadata={"id": 7})
        assert str(fault) == "[USER_NOT_FOUND] User 7 not found"
        assert fault.to_dict() == {
            "code": "USER_NOT_FOUND",
            "message": "User 7 not found",
            "domain": "routing",
            "metadata": {"id": 7},
        }

    def test_class_defaults(self):
        fault = QuotaFault()
        assert fault.code == "QUOTA_EXCEEDED"
        assert fault.args == ("Quota exceeded",)
        assert QuotaFault(message="Slow down").message == "Slow down"

    def test_domain_from_string(self):
        assert Fault("X", "x", domain="security").domain is FaultDomain.SECURITY

    def test_missing_fields(self):
        with pytest.raises(TypeError, match="code, domain"):
            Fault(message="no code")


class TestHttpFault:

    def test_generated_code_and_phrase(self):
        fault = HttpFault(429)
        assert fault.status == 429
        assert fault.code == "HTTP_429"
        assert fault.message == "Too Many Requests"
        assert fault.domain is FaultDomain.FLOW

    def test_subclass_defaults(self):
        fault = AccessDeniedFault(metadata={"role": "guest"})
        assert (fault.status, fault.code, fault.domain) == (403, "ACCESS_DENIED", FaultDomain.SECURITY)
        assert fault.to_dict()["metadata"] == {"role": "guest"}

    def test_validation_fault_to_dict(self):
        fault = ValidationFault({"age": ["Too low.", "Must be even."]})
        data = fault.to_dict()
        assert data["code"] == "VALIDATION_FAILED"
        assert data["message"] == "Too low., Must be even."
        assert data["domain"] == "validation"
        assert data["errors"] == {"age": ["Too low.", "Must be even."]}
