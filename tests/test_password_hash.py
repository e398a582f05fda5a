import hashlib

import pytest

from backend.app.core.errors import ValidationFailure
from backend.app.security.password_hash import (
    sha1_hex,
    split_digest,
    split_password_hash,
)


class TestSplitPasswordHash:

    def test_known_password_split(self):
        split = split_password_hash("password123")

        assert split.prefix == "CBFDA"
        assert split.suffix == "C6008F9CAB4083784CBD1874F76618D2A97"

    @pytest.mark.parametrize(
        "password",
        ["password123", "correct horse battery staple", "ünïcødé-pässwörd", "x", " " * 3],
    )
    def test_rejoined_split_equals_direct_digest(self, password):
        split = split_password_hash(password)
        expected = hashlib.sha1(password.encode("utf-8")).hexdigest().upper()

        assert split.digest == expected
        assert sha1_hex(password) == expected
        assert len(split.prefix) == 5
        assert len(split.suffix) == 35

    def test_output_is_uppercase(self):
        split = split_password_hash("hunter2")
        assert split.prefix == split.prefix.upper()
        assert split.suffix == split.suffix.upper()

    def test_empty_password_rejected(self):
        with pytest.raises(ValidationFailure):
            split_password_hash("")


class TestSplitDigest:

    def test_lowercase_digest_is_normalized(self):
        split = split_digest("cbfdac6008f9cab4083784cbd1874f76618d2a97")
        assert split.prefix == "CBFDA"
        assert split.digest == "CBFDAC6008F9CAB4083784CBD1874F76618D2A97"

    @pytest.mark.parametrize("digest", ["ABC", "Z" * 40, "CBFDA" * 9])
    def test_malformed_digest_rejected(self, digest):
        with pytest.raises(ValidationFailure):
            split_digest(digest)
