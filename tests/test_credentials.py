import pytest

from statepulse.ingestion.credentials import CredentialRotator
from statepulse.ingestion.errors import MissingCredentials


class TestCredentialRotator:

    def test_rotates_after_threshold(self):
        rotator = CredentialRotator(["k1", "k2", "k3"], "OpenStates", threshold=2)

        rotator.on_throttle()
        assert rotator.current() == "k1"
        rotator.on_throttle()
        assert rotator.current() == "k2"

    def test_success_resets_counter(self):
        rotator = CredentialRotator(["k1", "k2"], "OpenStates", threshold=2)

        rotator.on_throttle()
        rotator.on_success()
        rotator.on_throttle()
        assert rotator.current() == "k1"

    def test_never_wraps_around(self):
        rotator = CredentialRotator(["k1", "k2"], "Congress.gov", threshold=1)
        seen = []
        for _ in range(6):
            rotator.on_throttle()
            seen.append(rotator.index)

        assert seen == sorted(seen)
        assert rotator.current() == "k2"
        assert rotator.exhausted

    def test_blank_keys_are_dropped(self):
        rotator = CredentialRotator(["", "k2", None], "OpenStates")
        assert rotator.keys == ["k2"]

    def test_require_without_keys(self):
        with pytest.raises(MissingCredentials):
            CredentialRotator([], "Congress.gov").require()
