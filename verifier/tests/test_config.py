import pytest
from pydantic import ValidationError

from verifier.app.config import VerifierSettings, get_settings
from verifier.app.core.enveloped_signature import CertificateSelectionPolicy
from verifier.app.core.keys import KeySizePolicy


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    for name in (
        "VERIFIER_CERTIFICATE_ROOT",
        "VERIFIER_CACHE_CERTIFICATES",
        "VERIFIER_KEY_SIZE_POLICY",
        "VERIFIER_CERTIFICATE_SELECTION_POLICY",
        "VERIFIER_MAX_DOCUMENT_BYTES",
    ):
        monkeypatch.delenv(name, raising=False)

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults_are_strict():
    settings = VerifierSettings(_env_file=None)

    assert settings.certificate_root is None
    assert settings.cache_certificates is True
    assert settings.key_size_policy == KeySizePolicy.STRICT
    assert settings.certificate_selection_policy == CertificateSelectionPolicy.ANCHOR
    assert settings.max_document_bytes == 64 * 1024


def test_values_are_read_from_prefixed_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("VERIFIER_CERTIFICATE_ROOT", str(tmp_path))
    monkeypatch.setenv("VERIFIER_CACHE_CERTIFICATES", "false")
    monkeypatch.setenv("VERIFIER_KEY_SIZE_POLICY", "warn")
    monkeypatch.setenv("VERIFIER_CERTIFICATE_SELECTION_POLICY", "matching_embedded")
    monkeypatch.setenv("VERIFIER_MAX_DOCUMENT_BYTES", "2048")

    settings = VerifierSettings(_env_file=None)

    assert settings.certificate_root == tmp_path
    assert settings.cache_certificates is False
    assert settings.key_size_policy == KeySizePolicy.WARN
    assert (
        settings.certificate_selection_policy
        == CertificateSelectionPolicy.MATCHING_EMBEDDED
    )
    assert settings.max_document_bytes == 2048


def test_missing_certificate_root_fails_fast(tmp_path):
    with pytest.raises(ValidationError, match="not a directory"):
        VerifierSettings(certificate_root=tmp_path / "absent", _env_file=None)


def test_unknown_policy_is_rejected(monkeypatch):
    monkeypatch.setenv("VERIFIER_KEY_SIZE_POLICY", "lenient")

    with pytest.raises(ValidationError):
        VerifierSettings(_env_file=None)


def test_settings_are_frozen():
    settings = VerifierSettings(_env_file=None)

    with pytest.raises(ValidationError):
        settings.max_document_bytes = 1


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
