import pytest

from healthauth.core.exceptions import InvalidInput
from healthauth.utils.validation import canonical_email, normalize_email


def test_canonical_email():
    assert canonical_email("  User@Example.COM ") == "user@example.com"


def test_normalize_email_valid():
    assert normalize_email("Jane.Doe@Example.com") == "jane.doe@example.com"


@pytest.mark.parametrize("email", [None, "", "   ", "plainaddress", "@example.com", "user@", "a b@example.com"])
def test_normalize_email_invalid(email):
    with pytest.raises(InvalidInput):
        normalize_email(email)
