"""Unit tests for the second-factor profile domain model."""

import pytest

from secondfactor.domain.outcomes import Challenge
from secondfactor.domain.profile import EnrollmentState, SecondFactorProfile, flag_is_set


class TestSecondFactorProfile:
    def test_empty_profile_is_unenrolled(self):
        profile = SecondFactorProfile()

        assert profile.state == EnrollmentState.UNENROLLED
        assert profile.is_empty()

    def test_secret_without_flag_is_enrolling(self):
        profile = SecondFactorProfile(secret="S", rescue_codes=("a", "b", "c"))

        assert profile.state == EnrollmentState.ENROLLING
        assert not profile.is_empty()

    def test_flag_means_enrolled(self):
        profile = SecondFactorProfile(secret="S", setup_complete=True)

        assert profile.state == EnrollmentState.ENROLLED

    def test_from_attributes_treats_false_and_empty_as_unset(self):
        """Reset attributes are stored as False, some stores hand back empty strings."""
        profile = SecondFactorProfile.from_attributes(
            secret=False,
            setup_complete=False,
            rescue_codes=("", None, False),
        )

        assert profile == SecondFactorProfile()
        assert profile.active_rescue_codes() == []

    def test_from_attributes_keeps_values(self):
        profile = SecondFactorProfile.from_attributes(
            secret="S",
            setup_complete="1",
            rescue_codes=("a", "b", "c"),
        )

        assert profile.secret == "S"
        assert profile.setup_complete is True
        assert profile.active_rescue_codes() == ["a", "b", "c"]


class TestFlagIsSet:
    @pytest.mark.parametrize("value", ["1", "true", "True", True, 1])
    def test_set_values(self, value):
        assert flag_is_set(value) is True

    @pytest.mark.parametrize("value", [None, False, "", "0", "false", 0])
    def test_unset_values(self, value):
        assert flag_is_set(value) is False


class TestChallenge:
    def test_repr_hides_secret_and_rescue_codes(self):
        challenge = Challenge(secret="JBSWY3DPEHPK3PXP", is_new_enrollment=True, rescue_codes=("aa", "bb", "cc"))

        assert "JBSWY3DPEHPK3PXP" not in repr(challenge)
        assert "aa" not in repr(challenge)
