from healthauth.core.errors import ErrorCode
from healthauth.core.exceptions import AuthError, InvalidInput, StorageFailure


def test_storage_failure_message():
    err = StorageFailure("connection refused")
    assert str(err) == "Storage failure: connection refused"
    assert err.reason == "connection refused"
    assert err.code == ErrorCode.STORAGE_FAILURE


def test_storage_failure_default():
    err = StorageFailure()
    assert "Storage failure" in str(err)
    assert isinstance(err, AuthError)


def test_invalid_input_default_code():
    err = InvalidInput("Invalid email address")
    assert str(err) == "Invalid email address"
    assert err.code == ErrorCode.INVALID_INPUT


def test_invalid_input_code_override_is_per_instance():
    err = InvalidInput("Email already registered", code=ErrorCode.ALREADY_EXISTS)
    assert err.code == ErrorCode.ALREADY_EXISTS
    assert InvalidInput.code == ErrorCode.INVALID_INPUT
