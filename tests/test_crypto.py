"""
Tests for the field-level secret envelope.

Tests cover:
- Round-trip for every AES key size and various plaintexts
- Nonce freshness and stored format
- Empty string handling
- Tamper detection and wrong passphrases
- Malformed blobs and invalid key lengths
"""
import base64

import pytest

from gexec.exceptions import (
    ConfigurationError,
    MalformedCiphertextError,
    WrongPassphraseError,
)
from gexec.vault.crypto import (
    NONCE_SIZE,
    TAG_SIZE,
    decrypt_secret,
    encrypt_secret,
)

PASSPHRASES = [
    "0123456789abcdef",                  # AES-128
    "0123456789abcdef01234567",          # AES-192
    "0123456789abcdef0123456789abcdef",  # AES-256
]

PLAINTEXTS = [
    "secret",
    "",
    "pässwörd ✓ 🔑",
    "line one\nline two\n",
    "x" * 4096,
]


# --- Test Round-Trip ---

class TestRoundTrip:
    """Tests for encrypt/decrypt round-trips."""

    @pytest.mark.parametrize("passphrase", PASSPHRASES)
    @pytest.mark.parametrize("plaintext", PLAINTEXTS)
    def test_roundtrip(self, passphrase, plaintext):
        """Test decrypting an encrypted value returns the plaintext."""
        encrypted = encrypt_secret(plaintext, passphrase)
        assert decrypt_secret(encrypted, passphrase) == plaintext

    def test_multibyte_passphrase(self):
        """Test a passphrase is measured in encoded bytes, not characters."""
        passphrase = "ä" * 8  # 16 bytes
        assert decrypt_secret(encrypt_secret("value", passphrase), passphrase) == "value"


# --- Test Format ---

class TestFormat:
    """Tests for the stored representation."""

    def test_stored_as_base64_nonce_and_sealed_body(self, passphrase):
        """Test blob is base64(nonce | ciphertext | tag)."""
        encrypted = encrypt_secret("secret", passphrase)
        raw = base64.b64decode(encrypted, validate=True)
        assert len(raw) == NONCE_SIZE + len("secret") + TAG_SIZE
        assert b"secret" not in raw

    def test_same_plaintext_encrypts_differently(self, passphrase):
        """Test every encryption draws a new nonce."""
        first = encrypt_secret("same", passphrase)
        second = encrypt_secret("same", passphrase)
        assert first != second
        assert base64.b64decode(first)[:NONCE_SIZE] != base64.b64decode(second)[:NONCE_SIZE]

    def test_nonces_are_unique(self, passphrase):
        """Test nonces do not repeat over many encryptions."""
        nonces = {
            base64.b64decode(encrypt_secret("value", passphrase))[:NONCE_SIZE]
            for _ in range(200)
        }
        assert len(nonces) == 200


# --- Test Empty Values ---

class TestEmptyValues:
    """Tests for the empty secret short-circuit."""

    def test_empty_is_never_sealed(self, passphrase):
        """Test encrypting an empty string returns an empty string."""
        assert encrypt_secret("", passphrase) == ""

    def test_empty_is_never_opened(self, passphrase):
        """Test decrypting an empty string returns an empty string."""
        assert decrypt_secret("", passphrase) == ""


# --- Test Authentication ---

class TestAuthentication:
    """Tests for tamper detection and wrong passphrases."""

    def test_every_single_bit_flip_is_detected(self, passphrase):
        """Test flipping any bit of the stored blob fails authentication."""
        raw = base64.b64decode(encrypt_secret("secret", passphrase))
        for index in range(len(raw)):
            for bit in range(8):
                tampered = bytearray(raw)
                tampered[index] ^= 1 << bit
                blob = base64.b64encode(bytes(tampered)).decode("ascii")
                with pytest.raises(WrongPassphraseError):
                    decrypt_secret(blob, passphrase)

    @pytest.mark.parametrize("other", PASSPHRASES)
    def test_wrong_passphrase_fails(self, other):
        """Test decrypting with any other valid passphrase fails."""
        passphrase = "abcdefghijklmnopqrstuvwxyz012345"
        encrypted = encrypt_secret("secret", passphrase)
        with pytest.raises(WrongPassphraseError):
            decrypt_secret(encrypted, other)

    def test_wrong_passphrase_message(self, passphrase, other_passphrase):
        """Test the error tells the caller to check the passphrase."""
        encrypted = encrypt_secret("secret", passphrase)
        with pytest.raises(WrongPassphraseError, match="wrong encryption passphrase"):
            decrypt_secret(encrypted, other_passphrase)

    def test_truncated_body_fails_authentication(self, passphrase):
        """Test a blob cut after the nonce fails authentication."""
        raw = base64.b64decode(encrypt_secret("secret", passphrase))
        truncated = base64.b64encode(raw[:-4]).decode("ascii")
        with pytest.raises(WrongPassphraseError):
            decrypt_secret(truncated, passphrase)


# --- Test Malformed Input ---

class TestMalformed:
    """Tests for structurally invalid blobs."""

    def test_invalid_base64(self, passphrase):
        """Test non base64 input is reported as malformed."""
        with pytest.raises(MalformedCiphertextError):
            decrypt_secret("not base64 at all!", passphrase)

    def test_plaintext_is_malformed(self, passphrase):
        """Test a plaintext value mistaken for ciphertext is malformed."""
        with pytest.raises(MalformedCiphertextError):
            decrypt_secret("p455w0rd?", passphrase)

    def test_shorter_than_nonce(self, passphrase):
        """Test input shorter than a nonce is reported as malformed."""
        blob = base64.b64encode(b"short").decode("ascii")
        with pytest.raises(MalformedCiphertextError, match="too short"):
            decrypt_secret(blob, passphrase)

    def test_malformed_is_not_wrong_passphrase(self, passphrase):
        """Test malformed data and wrong keys are distinct errors."""
        assert not issubclass(MalformedCiphertextError, WrongPassphraseError)
        assert not issubclass(WrongPassphraseError, MalformedCiphertextError)


# --- Test Key Length ---

class TestKeyLength:
    """Tests for passphrase length validation."""

    @pytest.mark.parametrize("passphrase", ["", "short", "x" * 17, "x" * 31, "x" * 33])
    def test_invalid_length_on_encrypt(self, passphrase):
        """Test encrypting with an invalid key length fails."""
        with pytest.raises(ConfigurationError):
            encrypt_secret("secret", passphrase)

    def test_invalid_length_on_decrypt(self, passphrase):
        """Test decrypting with an invalid key length fails."""
        encrypted = encrypt_secret("secret", passphrase)
        with pytest.raises(ConfigurationError):
            decrypt_secret(encrypted, "too-short")
