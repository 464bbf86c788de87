"""
Configuration module for the Cassandra storage layer.

The same settings describe the cluster for both stores; the session
store reads them under ``store.cassandra`` and the metadata store under
``metastore.cassandra``.
"""

from typing import Any, Dict, List, Mapping, Optional
from dataclasses import dataclass, field

from ..errors import PreconditionViolation, ErrorCode
from .types import Consistency
from ..util.config import (
    cast_config_value, flatten_config, get_config_value, get_list_config,
    load_config_file
)


SESSION_PREFIX = "store.cassandra"
METADATA_PREFIX = "metastore.cassandra"

DEFAULT_PORT = 9042


@dataclass
class CassandraConfig:
    """Connection settings for a Cassandra cluster"""
    keyspace: str = ""
    nodes: List[str] = field(default_factory=list)
    port: int = DEFAULT_PORT
    use_ssl: bool = False
    ssl_ca: List[str] = field(default_factory=list)
    username: Optional[str] = None
    password: Optional[str] = None
    default_consistency: Consistency = Consistency.LOCAL_QUORUM
    false_as_absent: bool = False

    def __post_init__(self):
        if isinstance(self.nodes, str):
            self.nodes = cast_config_value(self.nodes, list, [])
        if isinstance(self.ssl_ca, str):
            self.ssl_ca = cast_config_value(self.ssl_ca, list, [])
        if self.ssl_ca is None:
            self.ssl_ca = []
        if isinstance(self.default_consistency, str):
            try:
                self.default_consistency = Consistency(self.default_consistency.upper())
            except ValueError as e:
                allowed = ", ".join(level.value for level in Consistency)
                raise PreconditionViolation(
                    f"default_consistency must be one of {allowed}, "
                    f"got {self.default_consistency!r}",
                    field="default_consistency",
                    code=ErrorCode.CONFIGURATION_ERROR,
                    cause=e,
                ) from e

    @property
    def credentials(self) -> Optional[tuple]:
        """Username and password, only when both are set"""
        if self.username is not None and self.password is not None:
            return (self.username, self.password)
        return None

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any],
                     prefix: str = SESSION_PREFIX) -> "CassandraConfig":
        """
        Create configuration from a mapping of dotted keys.

        Nested mappings are accepted too and flattened first.
        """
        flat = flatten_config(dict(config))

        def value(name: str, default: Any = None, cast_type: Optional[type] = None) -> Any:
            raw = flat.get(f"{prefix}.{name}", default)
            return cast_config_value(raw, cast_type, default)

        return cls(
            keyspace=value("keyspace", ""),
            nodes=value("nodes", [], list),
            port=value("port", DEFAULT_PORT, int),
            use_ssl=value("use_ssl", False, bool),
            ssl_ca=value("ssl_ca", [], list),
            username=value("username"),
            password=value("password"),
            default_consistency=value("default_consistency", Consistency.LOCAL_QUORUM.value),
            false_as_absent=value("false_as_absent", False, bool),
        )

    @classmethod
    def from_file(cls, file_path: str, prefix: str = SESSION_PREFIX) -> "CassandraConfig":
        """Create configuration from a JSON or YAML file"""
        return cls.from_mapping(load_config_file(file_path), prefix)

    @classmethod
    def from_env(cls, env_prefix: str = "CASSANDRASTORE_") -> "CassandraConfig":
        """Create configuration from environment variables"""
        return cls(
            keyspace=get_config_value("keyspace", "", env_prefix=env_prefix),
            nodes=get_list_config("nodes", env_prefix=env_prefix),
            port=get_config_value("port", DEFAULT_PORT, int, env_prefix),
            use_ssl=get_config_value("use_ssl", False, bool, env_prefix),
            ssl_ca=get_list_config("ssl_ca", env_prefix=env_prefix),
            username=get_config_value("username", env_prefix=env_prefix),
            password=get_config_value("password", env_prefix=env_prefix),
            default_consistency=get_config_value(
                "default_consistency", Consistency.LOCAL_QUORUM.value, env_prefix=env_prefix
            ),
            false_as_absent=get_config_value("false_as_absent", False, bool, env_prefix),
        )

    def validate(self) -> bool:
        """Validate the configuration"""
        errors = []
        if not self.keyspace:
            errors.append("keyspace is required")
        if not self.nodes:
            errors.append("at least one node is required")
        if not 0 < self.port < 65536:
            errors.append(f"port must be between 1 and 65535, got {self.port}")

        if errors:
            raise PreconditionViolation(
                "Invalid Cassandra configuration: " + "; ".join(errors),
                code=ErrorCode.CONFIGURATION_ERROR,
            )
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, without the password"""
        return {
            'keyspace': self.keyspace,
            'nodes': list(self.nodes),
            'port': self.port,
            'use_ssl': self.use_ssl,
            'ssl_ca': list(self.ssl_ca),
            'username': self.username,
            'default_consistency': self.default_consistency.value,
            'false_as_absent': self.false_as_absent,
        }
