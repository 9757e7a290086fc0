"""Tests for password strength rules."""

import pytest

from healthauth.services.password_policy import validate_password_complexity


class TestPasswordComplexity:
    def test_strong_password_accepted(self):
        assert validate_password_complexity("Str0ng!Pass1234") == (True, "")

    @pytest.mark.parametrize(
        "password, fragment",
        [
            ("Sh0rt!Pass", "at least 12 characters"),
            ("A1!a" * 19, "must not exceed 72 bytes"),
            ("Ünïcödé!Pässwörd1" * 4, "must not exceed 72 bytes"),
            ("lowercase!only1", "uppercase"),
            ("UPPERCASE!ONLY1", "lowercase"),
            ("NoDigits!Here!", "number"),
            ("NoSpecial1Chars", "special character"),
            ("Xy!123456789Za", "common patterns"),
            ("My!Qwerty9Pass", "common patterns"),
            ("Paaaass!word12", "repeated characters"),
        ],
    )
    def test_rejections(self, password, fragment):
        is_valid, message = validate_password_complexity(password)

        assert is_valid is False
        assert fragment in message

    def test_email_username_rejected(self):
        is_valid, message = validate_password_complexity("Jane.doe!Pass92", "jane.doe@example.com")

        assert is_valid is False
        assert "email username" in message

    def test_short_email_username_ignored(self):
        assert validate_password_complexity("Str0ng!Pass1234", "jo@example.com")[0] is True

    def test_repeated_special_characters_allowed(self):
        assert validate_password_complexity("Str0ng!!!!Pass92")[0] is True

    def test_exactly_twelve_characters(self):
        assert validate_password_complexity("Ab1!Cd2@Ef3#")[0] is True


class TestBcryptInputLimit:
    def test_exactly_72_bytes_accepted(self):
        password = "Aa1!" + "x7Kq" * 17

        assert len(password.encode("utf-8")) == 72
        assert validate_password_complexity(password) == (True, "")

    def test_multibyte_characters_count_as_bytes(self):
        # 40 characters but 76 bytes
        password = "Aa1!" + "é" * 36

        assert len(password) < 72
        is_valid, message = validate_password_complexity(password)
        assert is_valid is False
        assert "72 bytes" in message
