import re
from dataclasses import dataclass
from typing import Optional, Tuple

_ENVIRONMENT_KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class EnvironmentVariable:
    key: str
    value: str

    @classmethod
    def parse(cls, entry: str) -> "EnvironmentVariable":
        """Parse a KEY=VALUE entry. The value may be empty or contain '='.

        Raises:
            ValueError: if the entry is not in KEY=VALUE shape.
        """
        key, sep, value = entry.partition("=")
        if not sep:
            raise ValueError(
                "'{}' is not in KEY=VALUE format.".format(entry))
        if not _ENVIRONMENT_KEY_PATTERN.match(key):
            raise ValueError(
                "'{}' is not a valid environment variable name.".format(key))
        return cls(key=key, value=value)

    def __str__(self):
        return "{}={}".format(self.key, self.value)


@dataclass(frozen=True)
class BootstrapRequest:
    is_server: bool
    is_client: bool
    # Set iff is_server
    expected_server_count: Optional[int]
    config_dir: str
    data_dir: str
    bin_dir: str
    log_dir: str
    run_as_user: str
    use_elevated_privileges: bool
    skip_config_generation: bool = False
    # In declaration order, duplicates kept
    environment: Tuple[EnvironmentVariable, ...] = ()


@dataclass(frozen=True)
class InstanceFacts:
    instance_id: str
    private_ip_address: str
    region: str
    availability_zone: str
