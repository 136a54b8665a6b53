"""
Unit tests for the catalog validators and models.
"""

import pytest

from service_feedbacks.app.catalog import (
    PROFESSIONAL_SECTORS, ProfessionalSector, Recommendation, User
)
from service_feedbacks.app.catalog.validators import (
    is_valid_email, is_valid_sector, validate_feedback_log,
    validate_recommendation, validate_user
)


class TestSectors:
    """Test cases for the sector enumeration."""

    def test_sector_list(self):
        """The closed sector set has twelve labels, in display order."""
        assert len(PROFESSIONAL_SECTORS) == 12
        assert PROFESSIONAL_SECTORS[0] == "Tecnología"
        assert PROFESSIONAL_SECTORS[-1] == "Otro"
        assert "Hostelería" in PROFESSIONAL_SECTORS

    @pytest.mark.parametrize("value", ["Salud", "Venta Minorista", "Artes Creativas"])
    def test_known_sectors(self, value):
        assert is_valid_sector(value)

    @pytest.mark.parametrize("value", ["NotASector", "salud", "", 3, ["Salud"]])
    def test_unknown_sectors(self, value):
        assert not is_valid_sector(value)

    def test_null_sector(self):
        assert not is_valid_sector(None)
        assert is_valid_sector(None, allow_null=True)


class TestEmail:
    """Test cases for email syntax."""

    @pytest.mark.parametrize("value", ["u1@x.com", "ana.perez@empresa.es", "a+b@sub.domain.org"])
    def test_valid(self, value):
        assert is_valid_email(value)

    @pytest.mark.parametrize("value", ["", "u1", "u1@x", "@x.com", "u 1@x.com", None, 42])
    def test_invalid(self, value):
        assert not is_valid_email(value)


class TestDocumentValidators:
    """Test cases for per-collection validators."""

    def test_valid_user(self):
        data = {"name": "Test", "email": "u1@x.com", "professionalSector": "Tecnología"}
        assert validate_user(data) == []

    def test_user_without_sector(self):
        assert validate_user({"name": "Test", "email": "u1@x.com", "professionalSector": None}) == []
        assert validate_user({"name": "Test", "email": "u1@x.com"}) == []

    def test_user_violations(self):
        violations = validate_user({"name": "Test", "email": "nope", "professionalSector": "Astronauta"})
        assert len(violations) == 2

    def test_recommendation_sector(self):
        assert validate_recommendation({"sector": "Salud"}) == []
        assert validate_recommendation({"sector": "NotASector"}) != []
        assert validate_recommendation({}) != []

    def test_feedback_text_must_be_present(self):
        assert validate_feedback_log({"originalFeedbackText": "ok"}) == []
        assert validate_feedback_log({"originalFeedbackText": ""}) != []
        assert validate_feedback_log({}) != []
        assert validate_feedback_log({"originalFeedbackText": 12}) != []

    def test_whitespace_feedback_kept_by_default(self):
        """Only the empty string is rejected unless stripping is enabled."""
        assert validate_feedback_log({"originalFeedbackText": "   "}) == []

    def test_whitespace_feedback_rejected_when_stripping(self):
        assert validate_feedback_log({"originalFeedbackText": " \t\n "}, strip_whitespace=True) != []
        assert validate_feedback_log({"originalFeedbackText": " ok "}, strip_whitespace=True) == []


class TestModels:
    """Test cases for document models."""

    def test_user_round_trip_uses_wire_names(self):
        user = User.from_document("u1", {"name": "Test", "email": "u1@x.com", "professionalSector": "Salud"})

        assert user.id == "u1"
        assert user.professional_sector == ProfessionalSector.SALUD
        assert user.to_document() == {
            "name": "Test",
            "email": "u1@x.com",
            "professionalSector": ProfessionalSector.SALUD
        }

    def test_recommendation_snapshot_fields(self):
        recommendation = Recommendation.from_document("r1", {
            "userId": "u1",
            "userName": "Test",
            "userSector": None,
            "text": "Muy buen profesional.",
            "sector": "Legal"
        })

        assert recommendation.user_sector is None
        assert recommendation.sector == ProfessionalSector.LEGAL
        assert recommendation.created_at is None
