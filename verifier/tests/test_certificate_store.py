from verifier.app.schemas.scheme import Scheme
from verifier.app.store.certificate_store import (
    DirectoryCertificateStore,
    InMemoryCertificateStore,
)

from verifier.tests.fixtures.pki_factory import (
    certificate_der,
    certificate_pem,
    make_certificate,
    rsa_key,
)


def _write(root, namespace, filename, data):
    directory = root / namespace
    directory.mkdir(parents=True, exist_ok=True)
    (directory / filename).write_bytes(data)


# ------------------------------------------------------------------
# In-memory store
# ------------------------------------------------------------------

def test_in_memory_store_normalizes_scheme_keys():
    store = InMemoryCertificateStore(
        {
            ("rsa2048", "us-east-1"): b"cms-anchor",
            (Scheme.RAW_RSA_1024, "us-east-1"): b"raw-anchor",
        }
    )

    assert store.get(Scheme.RSA_2048_CMS, "us-east-1") == b"cms-anchor"
    assert store.get(Scheme.RAW_RSA_1024, "us-east-1") == b"raw-anchor"
    assert store.get(Scheme.DSA_LEGACY, "us-east-1") is None


def test_in_memory_store_is_isolated_from_source_mapping():
    source = {(Scheme.RAW_RSA_1024, "eu-west-1"): b"anchor"}
    store = InMemoryCertificateStore(source)

    source[(Scheme.RAW_RSA_1024, "eu-west-1")] = b"replaced"

    assert store.get(Scheme.RAW_RSA_1024, "eu-west-1") == b"anchor"


# ------------------------------------------------------------------
# Directory store
# ------------------------------------------------------------------

def test_directory_store_reads_namespace_layout(tmp_path):
    pem = certificate_pem(make_certificate(rsa_key(1024)))
    _write(tmp_path, "rsa", "eu-west-1.pem", pem)

    store = DirectoryCertificateStore(tmp_path)

    assert store.get(Scheme.RAW_RSA_1024, "eu-west-1") == pem
    # Same region, different scheme namespace
    assert store.get(Scheme.RSA_2048_CMS, "eu-west-1") is None


def test_directory_store_falls_back_to_der(tmp_path):
    der = certificate_der(make_certificate(rsa_key(2048)))
    _write(tmp_path, "rsa2048", "us-west-2.der", der)

    store = DirectoryCertificateStore(tmp_path)

    assert store.get(Scheme.RSA_2048_CMS, "us-west-2") == der


def test_directory_store_treats_unsafe_regions_as_absent(tmp_path):
    _write(tmp_path, "rsa", "secret.pem", b"not for you")
    (tmp_path / "rsa" / "nested").mkdir()

    store = DirectoryCertificateStore(tmp_path)

    assert store.get(Scheme.RAW_RSA_1024, "../rsa/secret") is None
    assert store.get(Scheme.RAW_RSA_1024, "nested/secret") is None
    assert store.get(Scheme.RAW_RSA_1024, "") is None


def test_directory_store_rejects_region_with_trailing_newline(tmp_path):
    _write(tmp_path, "rsa", "us-east-1\n.pem", b"smuggled")

    store = DirectoryCertificateStore(tmp_path)

    assert store.get(Scheme.RAW_RSA_1024, "us-east-1\n") is None


def test_directory_store_caches_contents(tmp_path):
    _write(tmp_path, "rsa", "eu-west-1.pem", b"first")

    store = DirectoryCertificateStore(tmp_path)
    assert store.get(Scheme.RAW_RSA_1024, "eu-west-1") == b"first"

    (tmp_path / "rsa" / "eu-west-1.pem").write_bytes(b"second")

    assert store.get(Scheme.RAW_RSA_1024, "eu-west-1") == b"first"


def test_directory_store_without_cache_rereads(tmp_path):
    _write(tmp_path, "rsa", "eu-west-1.pem", b"first")

    store = DirectoryCertificateStore(tmp_path, cache=False)
    assert store.get(Scheme.RAW_RSA_1024, "eu-west-1") == b"first"

    (tmp_path / "rsa" / "eu-west-1.pem").unlink()

    assert store.get(Scheme.RAW_RSA_1024, "eu-west-1") is None
