"""
Tests for secret carriers.

Tests cover:
- seal/unseal of every carrier type's own secret fields
- Credential kind dispatch and the persisted row layout
- Seal guard on a single carrier
"""
import base64

import pytest

from gexec.exceptions import AlreadySealedError, WrongPassphraseError
from gexec.models import (
    Credential,
    CredentialEmpty,
    CredentialLogin,
    CredentialShell,
    EnvironmentSecret,
    EnvironmentValue,
    Runner,
    TemplateSurvey,
    TemplateValue,
    TemplateVault,
)
from gexec.vault.crypto import NONCE_SIZE, decrypt_secret


# --- Test Shell Credentials ---

class TestShellCredential:
    """Tests for shell credentials."""

    def test_seal_encrypts_password_and_key(self, passphrase, shell_credential, private_key):
        """Test password and private key are encrypted, username is not."""
        credential = shell_credential()
        credential.seal(passphrase)
        shell = credential.shell
        assert shell.username == "deploy"
        assert shell.password != "s3cr3t-shell"
        assert shell.private_key != private_key
        assert decrypt_secret(shell.password, passphrase) == "s3cr3t-shell"
        assert decrypt_secret(shell.private_key, passphrase) == private_key

    def test_fields_use_distinct_nonces(self, passphrase, shell_credential):
        """Test two fields of one carrier never share a nonce."""
        credential = shell_credential()
        credential.seal(passphrase)
        password_nonce = base64.b64decode(credential.shell.password)[:NONCE_SIZE]
        key_nonce = base64.b64decode(credential.shell.private_key)[:NONCE_SIZE]
        assert password_nonce != key_nonce

    def test_unseal_restores(self, passphrase, shell_credential, private_key):
        """Test unseal restores the plaintext."""
        credential = shell_credential()
        credential.seal(passphrase)
        credential.unseal(passphrase)
        assert credential.shell.password == "s3cr3t-shell"
        assert credential.shell.private_key == private_key
        assert not credential.sealed

    def test_empty_private_key_stays_empty(self, passphrase):
        """Test an unset field is stored as an empty string."""
        credential = Credential(
            name="pw-only", secret=CredentialShell(username="root", password="pw"),
        )
        credential.seal(passphrase)
        assert credential.shell.private_key == ""
        assert credential.shell.password != "pw"

    def test_failed_unseal_leaves_fields(self, passphrase, other_passphrase, shell_credential):
        """Test a failed unseal does not replace any field."""
        credential = shell_credential()
        credential.seal(passphrase)
        sealed_password = credential.shell.password
        with pytest.raises(WrongPassphraseError):
            credential.unseal(other_passphrase)
        assert credential.shell.password == sealed_password
        assert credential.sealed


# --- Test Login and Empty Credentials ---

class TestLoginAndEmpty:
    """Tests for login and empty credentials."""

    def test_login_encrypts_password_only(self, passphrase, login_credential):
        """Test only the login password is encrypted."""
        credential = login_credential()
        credential.seal(passphrase)
        assert credential.login.username == "git"
        assert decrypt_secret(credential.login.password, passphrase) == "s3cr3t-login"

    def test_empty_is_noop(self, passphrase):
        """Test an empty credential has nothing to encrypt."""
        credential = Credential(name="nothing")
        credential.seal(passphrase)
        assert credential.kind == "empty"
        assert credential.shell is None
        assert credential.login is None
        credential.unseal(passphrase)

    def test_inactive_variant_is_absent(self, login_credential):
        """Test only the variant matching kind exists."""
        credential = login_credential()
        assert credential.kind == "login"
        assert credential.shell is None
        assert isinstance(credential.secret, CredentialLogin)

    def test_kind_from_dict(self):
        """Test the variant is picked by the kind discriminator."""
        credential = Credential.model_validate(
            {"name": "x", "secret": {"kind": "shell", "username": "u", "password": "p"}}
        )
        assert isinstance(credential.secret, CredentialShell)


# --- Test Row Layout ---

class TestCredentialRow:
    """Tests for the flattened credential row."""

    def test_row_layout(self, login_credential):
        """Test inactive columns are stored empty."""
        row = login_credential().to_row()
        assert row["kind"] == "login"
        assert row["login_username"] == "git"
        assert row["login_password"] == "s3cr3t-login"
        assert row["shell_username"] == ""
        assert row["shell_password"] == ""
        assert row["shell_private_key"] == ""
        assert "secret" not in row

    def test_from_row_rebuilds_variant(self, passphrase, shell_credential):
        """Test a stored row rebuilds the matching variant, sealed."""
        credential = shell_credential()
        credential.seal(passphrase)
        loaded = Credential.from_row(credential.to_row())
        assert loaded.kind == "shell"
        assert loaded.id == credential.id
        assert loaded.sealed
        loaded.unseal(passphrase)
        assert loaded.shell.password == "s3cr3t-shell"

    def test_from_row_ignores_inactive_columns(self):
        """Test leftover columns of another kind are not loaded."""
        row = Credential(name="empty").to_row()
        row.update(login_username="stale", login_password="stale")
        loaded = Credential.from_row(row)
        assert isinstance(loaded.secret, CredentialEmpty)

    def test_switching_kind_drops_old_secret(self, shell_credential):
        """Test replacing the variant leaves no stale secret columns."""
        credential = shell_credential()
        credential.secret = CredentialLogin(username="git", password="new")
        row = credential.to_row()
        assert row["shell_password"] == ""
        assert row["shell_private_key"] == ""
        assert row["login_password"] == "new"


# --- Test Other Carriers ---

class TestOtherCarriers:
    """Tests for environment entries, runners and template parts."""

    @pytest.mark.parametrize("model", [EnvironmentSecret, EnvironmentValue])
    def test_environment_content(self, model, passphrase):
        """Test environment entries encrypt their content."""
        entry = model(name="KEY", content="value")
        entry.seal(passphrase)
        assert entry.name == "KEY"
        assert decrypt_secret(entry.content, passphrase) == "value"
        entry.unseal(passphrase)
        assert entry.content == "value"

    def test_runner_token(self, passphrase):
        """Test runners encrypt their token."""
        runner = Runner(name="runner-1", token="tok")
        runner.seal(passphrase)
        assert decrypt_secret(runner.token, passphrase) == "tok"

    def test_survey_parts_have_no_secrets(self, passphrase):
        """Test surveys and survey values are left untouched."""
        value = TemplateValue(name="latest", value="1.2.3")
        survey = TemplateSurvey(name="version", values=[value])
        survey.seal(passphrase)
        value.seal(passphrase)
        assert value.value == "1.2.3"

    def test_carrier_does_not_touch_relations(self, passphrase, login_credential):
        """Test sealing a vault does not encrypt its credential."""
        vault = TemplateVault(name="vault", credential=login_credential())
        vault.seal(passphrase)
        assert vault.credential.login.password == "s3cr3t-login"
        assert not vault.credential.sealed


# --- Test Seal Guard ---

class TestSealGuard:
    """Tests for sealing a carrier twice."""

    def test_seal_twice_raises(self, passphrase):
        """Test a second seal without unseal is refused."""
        runner = Runner(name="runner-1", token="tok")
        runner.seal(passphrase)
        sealed_token = runner.token
        with pytest.raises(AlreadySealedError):
            runner.seal(passphrase)
        assert runner.token == sealed_token
        runner.unseal(passphrase)
        assert runner.token == "tok"

    def test_seal_after_unseal(self, passphrase):
        """Test a carrier can be sealed again once unsealed."""
        runner = Runner(name="runner-1", token="tok")
        runner.seal(passphrase)
        runner.unseal(passphrase)
        runner.seal(passphrase)
        assert decrypt_secret(runner.token, passphrase) == "tok"

    def test_loaded_row_is_sealed(self, passphrase):
        """Test a carrier built from a row counts as sealed."""
        runner = Runner(name="runner-1", token="tok")
        runner.seal(passphrase)
        loaded = Runner.from_row(runner.to_row())
        with pytest.raises(AlreadySealedError):
            loaded.seal(passphrase)
