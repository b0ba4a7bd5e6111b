"""
Unit tests for the validation component.
"""

import pytest

from src.components.validation import (
    UploadPolicy,
    format_megabytes,
    validate_file,
    validate_owner,
)
from src.core.entities import IncomingFile
from src.core.errors import ErrorKind


@pytest.fixture
def policy():
    return UploadPolicy()


def _file(content_type="image/png", size=1000, name="a.png"):
    return IncomingFile(name=name, content_type=content_type, data=b"x" * size)


def test_accepts_allowed_type_within_limit(policy):
    assert validate_file(_file(), "profile", policy) == []


@pytest.mark.parametrize("content_type", ["image/jpeg", "image/png", "image/jpg", "image/gif", "image/webp"])
def test_default_allow_list(policy, content_type):
    assert validate_file(_file(content_type), "banner", policy) == []


def test_missing_file(policy):
    errors = validate_file(None, "profile", policy)
    assert [e.kind for e in errors] == [ErrorKind.NO_FILE]
    assert errors[0].category == "validation"


def test_unsupported_type_lists_accepted_formats(policy):
    errors = validate_file(_file("application/pdf"), "profile", policy)

    assert errors[0].kind == ErrorKind.UNSUPPORTED_TYPE
    assert errors[0].message.startswith("File type not allowed. Accepted formats: ")
    assert "image/webp" in errors[0].message


def test_size_limit_is_inclusive():
    policy = UploadPolicy(max_file_size_bytes=100)
    assert validate_file(_file(size=100), "profile", policy) == []

    errors = validate_file(_file(size=101), "profile", policy)
    assert errors[0].kind == ErrorKind.TOO_LARGE


def test_too_large_message_uses_megabytes(policy):
    errors = validate_file(_file(size=10_485_761), "profile", policy)
    assert errors[0].message == "File is too large. Maximum size: 10.0MB"


def test_type_checked_before_size(policy):
    errors = validate_file(_file("text/plain", size=20_000_000), "profile", policy)
    assert [e.kind for e in errors] == [ErrorKind.UNSUPPORTED_TYPE]


def test_unknown_slot(policy):
    errors = validate_file(_file(), "avatar", policy)
    assert errors[0].kind == ErrorKind.UNSUPPORTED_SLOT
    assert errors[0].field == "slot"


def test_custom_allow_list():
    policy = UploadPolicy(allowed_content_types=("image/png",))
    assert validate_file(_file("image/png"), "profile", policy) == []
    assert validate_file(_file("image/jpeg"), "profile", policy)[0].kind == ErrorKind.UNSUPPORTED_TYPE


@pytest.mark.parametrize("owner_id", ["", "a/b", "a.b", "a#b", "a$b", "a[0]", "with space", "x" * 129])
def test_invalid_owner_ids(owner_id):
    errors = validate_owner(owner_id)
    assert errors[0].kind == ErrorKind.INVALID_OWNER


@pytest.mark.parametrize("owner_id", ["u1", "user-42", "AbC_123", "x" * 128])
def test_valid_owner_ids(owner_id):
    assert validate_owner(owner_id) == []


def test_format_megabytes():
    assert format_megabytes(10_485_760) == "10.0MB"
    assert format_megabytes(5 * 1024 * 1024 + 512 * 1024) == "5.5MB"
