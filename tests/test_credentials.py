"""Tests for credential obfuscation."""

from __future__ import annotations

import base64
import string

import pytest

from vaultdav.credentials import (
    StoredCredentials,
    deobfuscate,
    file_opts_to_store_opts,
    obfuscate,
    store_opts_to_file_opts,
)
from vaultdav.storage.models import Credentials

FILE_ID = "5f0c2f3e-8b4a-4c6e-9d1a-2b3c4d5e6f70"


class TestObfuscate:
    """Tests for the XOR + base64 masking."""

    @pytest.mark.parametrize(
        "password",
        ["", "a", "hunter2", string.printable, "x" * 200, "pässwörd"],
    )
    def test_roundtrip(self, password):
        """deobfuscate undoes obfuscate."""
        assert deobfuscate(obfuscate(password, FILE_ID), FILE_ID) == password

    @pytest.mark.parametrize("file_id", ["k", "ab", FILE_ID])
    def test_roundtrip_any_key_length(self, file_id):
        """Keys shorter than the password are cycled."""
        password = "correct horse battery staple"
        assert deobfuscate(obfuscate(password, file_id), file_id) == password

    def test_output_is_printable_base64(self):
        """The stored form survives YAML and copy-paste."""
        masked = obfuscate("hunter2", FILE_ID)
        assert masked.isascii()
        base64.b64decode(masked, validate=True)

    def test_not_plaintext(self):
        """The password does not appear in the masked form."""
        assert "hunter2" not in obfuscate("hunter2", FILE_ID)

    def test_known_value(self):
        """Byte i is XOR-ed with key byte i mod len(key)."""
        expected = base64.b64encode(bytes([ord("a") ^ ord("k"), ord("b") ^ ord("k")]))
        assert obfuscate("ab", "k") == expected.decode()

    def test_key_matters(self):
        """A different file id gives a different result."""
        assert obfuscate("hunter2", "one") != obfuscate("hunter2", "two")

    def test_empty_key_rejected(self):
        """An empty key cannot be cycled."""
        with pytest.raises(ValueError):
            obfuscate("hunter2", "")
        with pytest.raises(ValueError):
            deobfuscate("aGk=", "")


class TestStoreOpts:
    """Tests for converting between live and persisted logins."""

    def test_to_store_masks_password(self):
        """The persisted record carries encpass, never the password."""
        stored = file_opts_to_store_opts(Credentials(user="alice", password="pw"), FILE_ID)
        assert stored.user == "alice"
        assert stored.encpass == obfuscate("pw", FILE_ID)
        assert "password" not in stored.model_dump()

    def test_to_store_keeps_existing_encpass(self):
        """Without a new password the old encpass is kept."""
        stored = file_opts_to_store_opts(Credentials(user="alice"), FILE_ID, encpass="old")
        assert stored.encpass == "old"

    def test_from_store_restores_password(self):
        """store -> file recovers the plaintext login."""
        stored = file_opts_to_store_opts(Credentials(user="alice", password="pw"), FILE_ID)
        creds = store_opts_to_file_opts(stored, FILE_ID)
        assert creds == Credentials(user="alice", password="pw")

    def test_from_store_without_encpass(self):
        """Anonymous records stay anonymous."""
        creds = store_opts_to_file_opts(StoredCredentials(user="anon"), FILE_ID)
        assert creds.user == "anon"
        assert creds.password is None
