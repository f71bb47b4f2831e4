"""
API Key Tests
"""

import pytest

from src.auth.keys import ApiKeyManager, STATUS_ACTIVE, STATUS_REVOKED, hash_key
from src.database import ApiKeyRecord, session_scope


class TestApiKeyManager:
    """Tests for key creation, validation and lifecycle."""

    def test_create_returns_raw_key_once(self, key_manager, session_factory):
        raw, api_key = key_manager.create_key("zapier")

        assert raw.startswith("kseo_")
        assert api_key.label == "zapier"
        assert api_key.scope == "read"
        assert api_key.status == STATUS_ACTIVE
        assert api_key.key_hash == hash_key(raw)

        with session_scope(session_factory) as db:
            stored = db.query(ApiKeyRecord).one()
            assert stored.key_hash != raw
            assert raw not in stored.key_hash

    def test_keys_unique(self, key_manager):
        first, _ = key_manager.create_key("a")
        second, _ = key_manager.create_key("b")
        assert first != second

    def test_label_required(self, key_manager):
        with pytest.raises(ValueError):
            key_manager.create_key("   ")

    def test_validate(self, key_manager):
        raw, api_key = key_manager.create_key("ci", scope=ApiKeyManager.SCOPE_WRITE)
        validated = key_manager.validate_key(raw)
        assert validated.id == api_key.id
        assert validated.scope == "write"

    def test_validate_records_last_use(self, key_manager):
        raw, api_key = key_manager.create_key("ci")
        assert api_key.last_used_at is None
        key_manager.validate_key(raw)
        assert key_manager.get_key(api_key.id).last_used_at is not None

    def test_validate_unknown(self, key_manager):
        assert key_manager.validate_key("kseo_nope") is None
        assert key_manager.validate_key("") is None

    def test_revoke(self, key_manager):
        raw, api_key = key_manager.create_key("ci")
        assert key_manager.revoke_key(api_key.id) is True
        assert key_manager.validate_key(raw) is None
        assert key_manager.get_key(api_key.id).status == STATUS_REVOKED
        assert key_manager.revoke_key(9999) is False

    def test_list_hides_revoked_by_default(self, key_manager):
        _, keep = key_manager.create_key("keep")
        _, drop = key_manager.create_key("drop")
        key_manager.revoke_key(drop.id)

        assert [k.id for k in key_manager.list_keys()] == [keep.id]
        assert [k.id for k in key_manager.list_keys(include_revoked=True)] == [drop.id, keep.id]

    def test_rotate(self, key_manager):
        old_raw, old = key_manager.create_key("ci", scope="write")
        new_raw, new = key_manager.rotate_key(old.id)

        assert new.label == "ci (rotated)"
        assert new.scope == "write"
        assert key_manager.validate_key(old_raw) is None
        assert key_manager.validate_key(new_raw).id == new.id

    def test_rotate_unknown(self, key_manager):
        assert key_manager.rotate_key(9999) is None

    def test_to_dict_omits_hash(self, key_manager):
        _, api_key = key_manager.create_key("ci")
        data = api_key.to_dict()
        assert "key_hash" not in data
        assert data["last_used_at"] is None
