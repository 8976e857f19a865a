"""
Unit tests for input validators.
"""
from pcm.validators import (
    MAX_SEARCH_LENGTH,
    validate_email,
    validate_login_request,
    validate_record_id,
    validate_search_term,
    validate_status_filter,
    validate_tax_id,
)


class TestValidateEmail:
    """Tests for validate_email function."""

    def test_valid_emails(self):
        for email in ['manager@acme.example', 'a.b+c@plant.co.uk']:
            is_valid, error = validate_email(email)
            assert is_valid is True
            assert error is None

    def test_missing_email(self):
        is_valid, error = validate_email('')
        assert is_valid is False
        assert 'required' in error.lower()

    def test_malformed_email(self):
        for email in ['no-at-sign', 'a@b', 'two@@example.com']:
            is_valid, _ = validate_email(email)
            assert is_valid is False

    def test_non_string_email(self):
        is_valid, error = validate_email(42)
        assert is_valid is False
        assert 'string' in error.lower()


class TestValidateRecordId:
    """Tests for validate_record_id function."""

    def test_uuid_is_valid(self):
        is_valid, _ = validate_record_id('3f1c2a9e-5b7d-4c1e-9a0b-2d4e6f8a0c1e')
        assert is_valid is True

    def test_invalid_characters(self):
        is_valid, error = validate_record_id("1; DROP TABLE equipment")
        assert is_valid is False
        assert 'invalid characters' in error.lower()

    def test_too_long(self):
        is_valid, error = validate_record_id('A' * 65)
        assert is_valid is False
        assert 'too long' in error.lower()


class TestValidateStatusFilter:
    """Tests for validate_status_filter function."""

    def test_known_statuses(self):
        for status in ['open', 'in_progress', 'completed', 'cancelled', None, '']:
            is_valid, _ = validate_status_filter(status)
            assert is_valid is True

    def test_unknown_status(self):
        is_valid, error = validate_status_filter('archived')
        assert is_valid is False
        assert 'in_progress' in error


class TestValidateSearchTerm:
    """Tests for validate_search_term function."""

    def test_within_limit(self):
        assert validate_search_term('a' * MAX_SEARCH_LENGTH) == (True, None)
        assert validate_search_term(None) == (True, None)

    def test_too_long(self):
        is_valid, _ = validate_search_term('a' * (MAX_SEARCH_LENGTH + 1))
        assert is_valid is False


class TestValidateTaxId:
    """Tests for validate_tax_id function."""

    def test_formatted_and_plain(self):
        assert validate_tax_id('123.456.789-09') == (True, None)
        assert validate_tax_id('12345678909') == (True, None)

    def test_empty_is_accepted(self):
        assert validate_tax_id('') == (True, None)
        assert validate_tax_id(None) == (True, None)

    def test_wrong_length(self):
        is_valid, error = validate_tax_id('123.456')
        assert is_valid is False
        assert '11 digits' in error

    def test_letters_rejected(self):
        is_valid, _ = validate_tax_id('123.456.789-AB')
        assert is_valid is False


class TestValidateLoginRequest:
    """Tests for validate_login_request function."""

    def test_valid_request(self):
        assert validate_login_request({'email': 'a@example.com', 'password': 'x'}) == (True, None)

    def test_missing_body(self):
        is_valid, error = validate_login_request(None)
        assert is_valid is False
        assert 'body' in error.lower()

    def test_missing_password(self):
        is_valid, error = validate_login_request({'email': 'a@example.com'})
        assert is_valid is False
        assert 'password' in error.lower()
