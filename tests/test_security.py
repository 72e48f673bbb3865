import os

import pytest
from cryptography.hazmat.primitives import serialization

from packguard.exceptions import DecryptionError, TrustConfigError
from packguard.models import TrustPaths
from packguard.security import IntegrityVerifier, SymmetricCipher, TrustConfig
from packguard.security.trust import load_aes_material, load_public_key

from conftest import sign_digest


def flip_bit(data: bytes, index: int = 0) -> bytes:
    mutated = bytearray(data)
    mutated[index] ^= 0x01
    return bytes(mutated)


def test_digest_is_deterministic_and_32_bytes():
    data = b"modpack payload" * 100
    assert IntegrityVerifier.digest(data) == IntegrityVerifier.digest(data)
    assert len(IntegrityVerifier.digest(data)) == 32
    assert len(IntegrityVerifier.digest(b"")) == 32


def test_single_bit_mutation_changes_digest():
    data = os.urandom(1024)
    original = IntegrityVerifier.digest(data)
    for index in (0, 511, 1023):
        assert IntegrityVerifier.digest(flip_bit(data, index)) != original


def test_verify_accepts_matching_signature(private_key):
    verifier = IntegrityVerifier(private_key.public_key())
    digest = verifier.digest(b"encrypted bytes")
    assert verifier.verify(digest, sign_digest(private_key, digest))


def test_verify_rejects_bit_flips(private_key):
    verifier = IntegrityVerifier(private_key.public_key())
    digest = verifier.digest(b"encrypted bytes")
    signature = sign_digest(private_key, digest)

    assert not verifier.verify(digest, flip_bit(signature))
    assert not verifier.verify(digest, flip_bit(signature, len(signature) - 1))
    assert not verifier.verify(flip_bit(digest), signature)


def test_verify_rejects_other_key(private_key, other_private_key):
    verifier = IntegrityVerifier(private_key.public_key())
    digest = verifier.digest(b"encrypted bytes")
    assert not verifier.verify(digest, sign_digest(other_private_key, digest))
    assert verifier.verify(
        digest,
        sign_digest(other_private_key, digest),
        public_key=other_private_key.public_key(),
    )


def test_verify_rejects_malformed_input(private_key):
    verifier = IntegrityVerifier(private_key.public_key())
    digest = verifier.digest(b"data")
    assert not verifier.verify(digest, b"")
    assert not verifier.verify(digest[:16], sign_digest(private_key, digest))


def test_verify_data(private_key):
    verifier = IntegrityVerifier(private_key.public_key())
    signature = sign_digest(private_key, verifier.digest(b"blob"))
    assert verifier.verify_data(b"blob", signature)
    assert not verifier.verify_data(b"blob!", signature)


def test_cipher_round_trip(trust):
    cipher = SymmetricCipher(trust.aes_key, trust.aes_iv)
    for plaintext in (b"", b"x", b"sixteen bytes!!!", os.urandom(4099)):
        encrypted = cipher.encrypt(plaintext)
        assert len(encrypted) % 16 == 0
        assert cipher.decrypt(encrypted) == plaintext


def test_cipher_rejects_truncated_buffer(trust):
    cipher = SymmetricCipher(trust.aes_key, trust.aes_iv)
    encrypted = cipher.encrypt(b"some modpack content")
    with pytest.raises(DecryptionError):
        cipher.decrypt(encrypted[:-1])
    with pytest.raises(DecryptionError):
        cipher.decrypt(b"")


def test_embedded_trust_material_loads():
    trust = TrustConfig.embedded()
    assert len(trust.aes_key) == 32
    assert len(trust.aes_iv) == 16
    assert trust.public_key.key_size >= 2048


def test_from_paths_overrides(tmp_path, private_key):
    pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.PKCS1
    )
    key_path = tmp_path / "public_key.pem"
    key_path.write_bytes(pem)

    trust = TrustConfig.from_paths(TrustPaths(public_key=key_path))
    assert trust.public_key.public_numbers() == private_key.public_key().public_numbers()
    assert trust.aes_key == TrustConfig.embedded().aes_key


def test_from_paths_missing_file(tmp_path):
    with pytest.raises(TrustConfigError):
        TrustConfig.from_paths(TrustPaths(aes_key=tmp_path / "missing.json"))


def test_invalid_trust_material():
    with pytest.raises(TrustConfigError):
        load_public_key("not a pem")
    with pytest.raises(TrustConfigError):
        load_aes_material('{"key": "00", "iv": "00"}')
    with pytest.raises(TrustConfigError):
        load_aes_material("{}")
