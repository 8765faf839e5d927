from bson import ObjectId

from club_admin_api.utils.security_utils import (
    generate_password,
    generate_reset_token,
    hash_password,
    hash_token,
    to_object_id,
    verify_password,
)


def test_password_hash_roundtrip():
    hashed = hash_password("Secret123")

    assert hashed != "Secret123"
    assert hashed.startswith("$2")
    assert verify_password("Secret123", hashed)
    assert not verify_password("secret123", hashed)


def test_verify_password_rejects_missing_and_malformed_hashes():
    assert not verify_password("Secret123", None)
    assert not verify_password("Secret123", "not-a-bcrypt-hash")
    assert not verify_password("", hash_password("Secret123"))


def test_generated_passwords_are_alphanumeric_and_distinct():
    first, second = generate_password(), generate_password()

    assert len(first) == 10
    assert first.isalnum()
    assert first != second


def test_reset_token_only_hash_is_stored():
    raw, stored = generate_reset_token()

    assert len(raw) == 64
    assert stored == hash_token(raw)
    assert stored != raw


def test_to_object_id():
    oid = ObjectId()

    assert to_object_id(oid) is oid
    assert to_object_id(str(oid)) == oid
    assert to_object_id("not-an-id") is None
    assert to_object_id(None) is None
    assert to_object_id("") is None
