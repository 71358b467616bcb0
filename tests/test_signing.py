"""Tests for HMAC signing and request building.

Expected digests were computed independently with OpenSSL:
    printf '%s' "$CANONICAL" | openssl dgst -sha1 -hmac "$SECRET" -binary | base64
"""

import pytest

from cloudstack_sdk import ValidationError, build_signed_request, canonicalize, sign

SECRET = "test-secret-key"


class TestSign:
    def test_known_vector_simple(self):
        assert sign(SECRET, "a=1&b=2") == "gF3Z7+bcRrsHt22bGKCPHQLjBJ4="

    def test_known_vector_command(self):
        canonical = "apikey=test-api-key&command=listzones&response=json"
        assert sign(SECRET, canonical) == "ypByT97+Feq9LXl/tBk0hKLPVIY="

    def test_known_vector_encoded_value(self):
        canonical = "apikey=test-api-key&command=listvirtualmachines&name=web%2001%2fa%3db&response=json"
        assert sign(SECRET, canonical) == "JiA8B7PKKROcGXHSo8LzhSw1XoA="

    def test_empty_canonical(self):
        assert sign(SECRET, "") == "7Vq0wHqHTXrNKCE2QtLfSewhhC8="

    def test_deterministic(self):
        assert sign(SECRET, "a=1&b=2") == sign(SECRET, "a=1&b=2")

    def test_different_secret_different_signature(self):
        assert sign("other-secret", "a=1&b=2") == "t889v/v6B18Ar7NfkQnY0QRll/A="
        assert sign("other-secret", "a=1&b=2") != sign(SECRET, "a=1&b=2")


class TestBuildSignedRequest:
    def _build(self, command="listZones", params=None):
        return build_signed_request(command, params, api_key="test-api-key", secret_key=SECRET)

    def test_injects_command_identity_and_response(self):
        request = self._build(params={"available": True})

        assert list(request.params.items()) == [
            ("command", "listZones"),
            ("apiKey", "test-api-key"),
            ("response", "json"),
            ("available", "true"),
        ]

    def test_signature_covers_injected_keys(self):
        request = self._build(params={"available": True})

        assert canonicalize(request.params) == (
            "apikey=test-api-key&available=true&command=listzones&response=json"
        )
        assert request.signature == "Nx2YkSvZpX490exg+F1fLIBNFpw="

    def test_signature_with_reserved_characters(self):
        request = self._build("listVirtualMachines", {"name": "web 01/a=b"})
        assert request.signature == "JiA8B7PKKROcGXHSo8LzhSw1XoA="

    def test_signature_appended_last(self):
        request = self._build(params={"available": True})

        items = list(request.items())
        assert items[-1] == ("signature", request.signature)
        assert request.to_query_string() == (
            "command=listZones&apiKey=test-api-key&response=json&available=true"
            "&signature=Nx2YkSvZpX490exg%2BF1fLIBNFpw%3D"
        )

    def test_none_values_dropped(self):
        request = self._build("listTemplates", {"templatefilter": "featured", "zoneid": None})
        assert "zoneid" not in request.params

    def test_list_value_flattened(self):
        request = self._build("deployVirtualMachine", {"networkids": ["n1", "n2"]})
        assert request.params["networkids"] == "n1,n2"

    @pytest.mark.parametrize("key", ["apikey", "APIKEY", "Command", "response", "signature"])
    def test_reserved_key_collision(self, key):
        with pytest.raises(ValidationError, match="reserved"):
            self._build(params={key: "x"})

    def test_case_folded_duplicate(self):
        with pytest.raises(ValidationError, match="Duplicate"):
            self._build(params={"zoneid": "z1", "ZoneId": "z2"})

    def test_empty_command(self):
        with pytest.raises(ValidationError):
            self._build(command="  ")

    def test_unsupported_value(self):
        with pytest.raises(ValidationError, match="zoneid"):
            self._build(params={"zoneid": object()})

    def test_unencodable_value(self):
        with pytest.raises(ValidationError, match="name"):
            self._build(params={"name": "web\ud800"})

    def test_unencodable_key(self):
        with pytest.raises(ValidationError):
            self._build(params={"na\udc00me": "web"})

    def test_signature_hidden_from_repr(self):
        request = self._build()
        assert request.signature not in repr(request)


class TestPublishedExample:
    """The listUsers walk-through from the CloudStack developer guide."""

    API_KEY = "plgWJfZK4gyS3mOMTVmjUVg-X-jlWlnfaUJ9GAbBbf9EdM-kAYMmAiLqzzq1ElZLYq_u38zCm0bewzGUdP66mg"
    SECRET_KEY = "VDaACYb0LV9eNjTetIOElcVQkvJck_J_QljX_FcHRj87ZKiy0z0ty0ZsYBkoXkY9b7eq1EhwJaw7FF3akA3KBQ"

    def test_canonical_string(self):
        request = build_signed_request("listUsers", {}, api_key=self.API_KEY, secret_key=self.SECRET_KEY)
        assert canonicalize(request.params) == (
            "apikey=plgwjfzk4gys3momtvmjuvg-x-jlwlnfauj9gabbbf9edm-kaymmailqzzq1elzlyq_u38zcm0bewzgudp66mg"
            "&command=listusers&response=json"
        )

    def test_signature(self):
        request = build_signed_request("listUsers", {}, api_key=self.API_KEY, secret_key=self.SECRET_KEY)
        assert request.signature == "TTpdDq/7j/J58XCRHomKoQXEQds="
