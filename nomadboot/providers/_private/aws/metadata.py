import json
import logging
from typing import Any, Dict, Optional

import requests

from nomadboot.core._private.constants import NOMADBOOT_DEFAULT_METADATA_ENDPOINT, \
    NOMADBOOT_DEFAULT_METADATA_TIMEOUT_S, NOMADBOOT_DEFAULT_METADATA_TOKEN_TTL_S
from nomadboot.core._private.errors import DiscoveryError
from nomadboot.core._private.request import InstanceFacts

logger = logging.getLogger(__name__)

AWS_METADATA_TOKEN_PATH = "latest/api/token"
AWS_METADATA_PATH = "latest/meta-data"
AWS_INSTANCE_IDENTITY_DOCUMENT_PATH = "latest/dynamic/instance-identity/document"

AWS_METADATA_TOKEN_HEADER = "X-aws-ec2-metadata-token"
AWS_METADATA_TOKEN_TTL_HEADER = "X-aws-ec2-metadata-token-ttl-seconds"

AWS_METADATA_INSTANCE_ID = "instance-id"
AWS_METADATA_LOCAL_IPV4 = "local-ipv4"
AWS_METADATA_AVAILABILITY_ZONE = "placement/availability-zone"
AWS_IDENTITY_DOCUMENT_REGION = "region"

FACT_INSTANCE_ID = "instance id"
FACT_PRIVATE_IP_ADDRESS = "private ip address"
FACT_REGION = "region"
FACT_AVAILABILITY_ZONE = "availability zone"


class InstanceMetadataClient:
    """Client of the EC2 instance metadata service.

    Every lookup is a single request without retries. A session token
    is requested once (IMDSv2) and reused; if the token cannot be
    obtained the lookups go without it.
    """

    def __init__(self,
                 endpoint: str = NOMADBOOT_DEFAULT_METADATA_ENDPOINT,
                 timeout: Optional[float] = NOMADBOOT_DEFAULT_METADATA_TIMEOUT_S,
                 token_ttl: Optional[int] = NOMADBOOT_DEFAULT_METADATA_TOKEN_TTL_S,
                 session: Optional[requests.Session] = None):
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.token_ttl = token_ttl
        self.session = session or requests.Session()
        self._token = None
        self._token_requested = False

    def _url(self, path):
        return "{}/{}".format(self.endpoint, path)

    def _get_token(self):
        if self._token_requested:
            return self._token
        self._token_requested = True
        if not self.token_ttl:
            return None
        try:
            response = self.session.put(
                self._url(AWS_METADATA_TOKEN_PATH),
                headers={AWS_METADATA_TOKEN_TTL_HEADER: str(self.token_ttl)},
                timeout=self.timeout)
            response.raise_for_status()
            self._token = response.text.strip() or None
        except requests.RequestException as e:
            logger.debug(
                "Metadata session token is not available, "
                "continue without it: {}".format(e))
        return self._token

    def _get(self, path) -> str:
        headers = {}
        token = self._get_token()
        if token:
            headers[AWS_METADATA_TOKEN_HEADER] = token
        response = self.session.get(
            self._url(path), headers=headers, timeout=self.timeout)
        response.raise_for_status()
        return response.text

    def get_meta_data(self, name) -> str:
        return self._get("{}/{}".format(AWS_METADATA_PATH, name)).strip()

    def get_instance_identity_document(self) -> Dict[str, Any]:
        return json.loads(self._get(AWS_INSTANCE_IDENTITY_DOCUMENT_PATH))


def _lookup(fact, lookup_func):
    try:
        value = lookup_func()
    except requests.RequestException as e:
        raise DiscoveryError(fact, str(e)) from e
    except ValueError as e:
        raise DiscoveryError(
            fact, "malformed response: {}".format(e)) from e

    if not isinstance(value, str) or not value.strip():
        raise DiscoveryError(fact, "empty value returned.")
    return value.strip()


def _get_region(client: InstanceMetadataClient):
    document = client.get_instance_identity_document()
    if not isinstance(document, dict):
        raise ValueError("instance identity document is not an object")
    return document.get(AWS_IDENTITY_DOCUMENT_REGION)


def discover_instance_facts(client: InstanceMetadataClient) -> InstanceFacts:
    instance_id = _lookup(
        FACT_INSTANCE_ID,
        lambda: client.get_meta_data(AWS_METADATA_INSTANCE_ID))
    private_ip_address = _lookup(
        FACT_PRIVATE_IP_ADDRESS,
        lambda: client.get_meta_data(AWS_METADATA_LOCAL_IPV4))
    region = _lookup(
        FACT_REGION, lambda: _get_region(client))
    availability_zone = _lookup(
        FACT_AVAILABILITY_ZONE,
        lambda: client.get_meta_data(AWS_METADATA_AVAILABILITY_ZONE))

    facts = InstanceFacts(
        instance_id=instance_id,
        private_ip_address=private_ip_address,
        region=region,
        availability_zone=availability_zone)
    logger.info("Discovered instance {} ({}) in {}.".format(
        facts.instance_id, facts.private_ip_address,
        facts.availability_zone))
    return facts
