import json
import unittest

import pytest
import requests

from nomadboot.core._private.errors import DiscoveryError
from nomadboot.providers._private.aws.metadata import InstanceMetadataClient, discover_instance_facts, \
    AWS_METADATA_TOKEN_HEADER, AWS_METADATA_TOKEN_TTL_HEADER

ENDPOINT = "http://169.254.169.254"

IDENTITY_DOCUMENT = {
    "accountId": "123456789012",
    "availabilityZone": "us-east-1a",
    "instanceId": "i-1",
    "privateIp": "10.0.0.5",
    "region": "us-east-1",
}

METADATA = {
    "/latest/meta-data/instance-id": "i-1",
    "/latest/meta-data/local-ipv4": "10.0.0.5",
    "/latest/meta-data/placement/availability-zone": "us-east-1a",
    "/latest/dynamic/instance-identity/document": json.dumps(IDENTITY_DOCUMENT),
}


class FakeResponse:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(
                "{} Error".format(self.status_code), response=self)


class FakeSession:
    def __init__(self, metadata, token="token-1", token_error=None):
        self.metadata = dict(metadata)
        self.token = token
        self.token_error = token_error
        self.requests = []

    def put(self, url, headers=None, timeout=None):
        self.requests.append(("PUT", url, headers, timeout))
        if self.token_error:
            raise self.token_error
        assert headers[AWS_METADATA_TOKEN_TTL_HEADER]
        return FakeResponse(self.token)

    def get(self, url, headers=None, timeout=None):
        self.requests.append(("GET", url, headers, timeout))
        path = url[len(ENDPOINT):]
        value = self.metadata.get(path)
        if isinstance(value, Exception):
            raise value
        if value is None:
            return FakeResponse("Not Found", status_code=404)
        return FakeResponse(value)


class TestDiscoverInstanceFacts(unittest.TestCase):
    def _discover(self, session):
        client = InstanceMetadataClient(
            endpoint=ENDPOINT + "/", timeout=2, session=session)
        return discover_instance_facts(client)

    def test_discover(self):
        session = FakeSession(METADATA)
        facts = self._discover(session)
        assert facts.instance_id == "i-1"
        assert facts.private_ip_address == "10.0.0.5"
        assert facts.region == "us-east-1"
        assert facts.availability_zone == "us-east-1a"

        # one token request, then one request per fact with the token
        methods = [r[0] for r in session.requests]
        assert methods == ["PUT", "GET", "GET", "GET", "GET"]
        for _, _, headers, timeout in session.requests[1:]:
            assert headers[AWS_METADATA_TOKEN_HEADER] == "token-1"
            assert timeout == 2

    def test_discover_without_token(self):
        session = FakeSession(
            METADATA, token_error=requests.ConnectionError("refused"))
        facts = self._discover(session)
        assert facts.instance_id == "i-1"
        for _, _, headers, _ in session.requests[1:]:
            assert AWS_METADATA_TOKEN_HEADER not in headers

    def test_value_with_newline(self):
        metadata = dict(METADATA)
        metadata["/latest/meta-data/local-ipv4"] = "10.0.0.5\n"
        facts = self._discover(FakeSession(metadata))
        assert facts.private_ip_address == "10.0.0.5"

    def test_empty_value(self):
        metadata = dict(METADATA)
        metadata["/latest/meta-data/instance-id"] = ""
        with pytest.raises(DiscoveryError) as e:
            self._discover(FakeSession(metadata))
        assert e.value.fact == "instance id"

    def test_http_error(self):
        metadata = dict(METADATA)
        del metadata["/latest/meta-data/placement/availability-zone"]
        with pytest.raises(DiscoveryError) as e:
            self._discover(FakeSession(metadata))
        assert e.value.fact == "availability zone"

    def test_timeout(self):
        metadata = dict(METADATA)
        metadata["/latest/meta-data/local-ipv4"] = requests.Timeout("timed out")
        with pytest.raises(DiscoveryError) as e:
            self._discover(FakeSession(metadata))
        assert e.value.fact == "private ip address"

    def test_malformed_identity_document(self):
        metadata = dict(METADATA)
        metadata["/latest/dynamic/instance-identity/document"] = "not json"
        with pytest.raises(DiscoveryError, match="malformed") as e:
            self._discover(FakeSession(metadata))
        assert e.value.fact == "region"

    def test_identity_document_without_region(self):
        document = dict(IDENTITY_DOCUMENT)
        del document["region"]
        metadata = dict(METADATA)
        metadata["/latest/dynamic/instance-identity/document"] = json.dumps(document)
        with pytest.raises(DiscoveryError) as e:
            self._discover(FakeSession(metadata))
        assert e.value.fact == "region"

    def test_identity_document_not_object(self):
        metadata = dict(METADATA)
        metadata["/latest/dynamic/instance-identity/document"] = "[1, 2]"
        with pytest.raises(DiscoveryError) as e:
            self._discover(FakeSession(metadata))
        assert e.value.fact == "region"


if __name__ == "__main__":
    import sys

    sys.exit(pytest.main(["-v", __file__]))
