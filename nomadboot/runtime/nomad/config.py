import logging
import os
from dataclasses import dataclass, field
from typing import Any, List, Tuple

from nomadboot.core._private.constants import NOMAD_CONFIG_FILE_NAME, NOMAD_BIND_ADDRESS, \
    NOMADBOOT_DEFAULT_CONSUL_ADDRESS
from nomadboot.core._private.core_utils import write_file_atomically, chown_to_user
from nomadboot.core._private.errors import BootstrapIOError
from nomadboot.core._private.request import BootstrapRequest, InstanceFacts

logger = logging.getLogger(__name__)

HCL_INDENT = "  "

# The role blocks are emitted in this order when enabled
ROLE_BLOCK_ORDER = ["client", "server"]


@dataclass
class HclBlock:
    """A block of HCL attributes and nested blocks, kept in insertion order.

    The root block has no name and renders its content without braces.
    """
    name: str = ""
    attributes: List[Tuple[str, Any]] = field(default_factory=list)
    blocks: List["HclBlock"] = field(default_factory=list)

    def set(self, key, value):
        self.attributes.append((key, value))
        return self

    def block(self, name):
        child = HclBlock(name)
        self.blocks.append(child)
        return child


@dataclass(frozen=True)
class AgentConfig:
    path: str
    text: str


def _hcl_value(key, value):
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        if not value:
            raise ValueError("Value of '{}' must not be empty.".format(key))
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return '"{}"'.format(escaped)
    raise ValueError("Unsupported value type {} of '{}'.".format(
        type(value).__name__, key))


def _render_block_content(block: HclBlock, depth):
    indent = HCL_INDENT * depth
    lines = []
    for key, value in block.attributes:
        lines.append("{}{} = {}".format(indent, key, _hcl_value(key, value)))
    for child in block.blocks:
        if lines:
            lines.append("")
        lines.append("{}{} {{".format(indent, child.name))
        lines += _render_block_content(child, depth + 1)
        lines.append("{}}}".format(indent))
    return lines


def render_hcl(root: HclBlock) -> str:
    return "\n".join(_render_block_content(root, 0)) + "\n"


def _role_block(request: BootstrapRequest, role, root: HclBlock):
    if role == "client":
        if request.is_client:
            root.block("client").set("enabled", True)
    elif role == "server":
        if request.is_server:
            (root.block("server")
                .set("enabled", True)
                .set("bootstrap_expect", request.expected_server_count))


def synthesize_agent_config(
        request: BootstrapRequest, facts: InstanceFacts,
        service_discovery_address: str = NOMADBOOT_DEFAULT_CONSUL_ADDRESS
) -> AgentConfig:
    root = HclBlock()
    root.set("datacenter", facts.availability_zone)
    root.set("name", facts.instance_id)
    root.set("region", facts.region)
    root.set("bind_addr", NOMAD_BIND_ADDRESS)

    # single homed: all the protocols advertise the private address
    (root.block("advertise")
        .set("http", facts.private_ip_address)
        .set("rpc", facts.private_ip_address)
        .set("serf", facts.private_ip_address))

    for role in ROLE_BLOCK_ORDER:
        _role_block(request, role, root)

    root.block("consul").set("address", service_discovery_address)

    config_path = os.path.join(request.config_dir, NOMAD_CONFIG_FILE_NAME)
    return AgentConfig(path=config_path, text=render_hcl(root))


def write_agent_config(agent_config: AgentConfig, user: str):
    """Overwrite the config file and hand it to the user."""
    try:
        write_file_atomically(agent_config.path, agent_config.text)
    except OSError as e:
        raise BootstrapIOError(agent_config.path, str(e)) from e

    try:
        chown_to_user(agent_config.path, user)
    except KeyError as e:
        raise BootstrapIOError(
            agent_config.path,
            "user {} does not exist.".format(user)) from e
    except OSError as e:
        raise BootstrapIOError(agent_config.path, str(e)) from e
    logger.info("Nomad config file generated: {}".format(agent_config.path))
