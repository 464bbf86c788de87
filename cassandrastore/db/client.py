"""
Cassandra client for the storage layer.

Wraps a cassandra-driver session so that the stores only ever see
``execute(query, params, consistency) -> rows`` and the package's own
error types.
"""

import logging
import ssl
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from cassandra import (
    ConsistencyLevel, DriverException, OperationTimedOut, Timeout, Unavailable
)
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import Cluster, ExecutionProfile, EXEC_PROFILE_DEFAULT, NoHostAvailable
from cassandra.query import SimpleStatement, dict_factory

from ..core.config import CassandraConfig, DEFAULT_PORT
from ..core.types import Consistency
from ..errors import (
    ErrorCode, ErrorContext, PreconditionViolation, StorageError, TransientStorageError
)


logger = logging.getLogger(__name__)


_CONSISTENCY_LEVELS = {
    Consistency.QUORUM: ConsistencyLevel.QUORUM,
    Consistency.LOCAL_QUORUM: ConsistencyLevel.LOCAL_QUORUM,
}


@dataclass
class TLSConfig:
    """TLS settings; the peer certificate is always verified."""
    ca_files: List[str] = field(default_factory=list)

    def build_context(self) -> ssl.SSLContext:
        """Create the SSL context handed to the driver."""
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        # Peer certificate is verified against the CAs, host names are not
        context.check_hostname = False
        context.verify_mode = ssl.CERT_REQUIRED
        if self.ca_files:
            for ca_file in self.ca_files:
                context.load_verify_locations(cafile=ca_file)
        else:
            context.load_default_certs()
        return context


def parse_nodes(nodes: Sequence[str], default_port: int = DEFAULT_PORT) -> Tuple[List[str], int]:
    """
    Split ``host[:port]`` node strings into contact points and one port.

    The driver connects to every node on the same port, so differing
    explicit ports are rejected.
    """
    hosts = []
    ports = set()
    for node in nodes:
        node = node.strip()
        if not node:
            continue
        host, sep, port = node.rpartition(':')
        # Unbracketed IPv6 addresses carry no port
        if sep and port.isdigit() and (':' not in host or host.endswith(']')):
            hosts.append(host.strip('[]'))
            ports.add(int(port))
        else:
            hosts.append(node.strip('[]'))

    if not hosts:
        raise PreconditionViolation("At least one Cassandra node is required", field="nodes")
    if len(ports) > 1:
        raise PreconditionViolation(
            f"All nodes must use the same port, got {sorted(ports)}", field="nodes"
        )

    return hosts, ports.pop() if ports else default_port


class CassandraClient:
    """A connected cassandra-driver session."""

    def __init__(self, cluster: Cluster, session: Any):
        self.cluster = cluster
        self.session = session

    def execute(self, query: str, params: Optional[Mapping[str, Any]] = None,
                consistency: Optional[Consistency] = None) -> List[Dict[str, Any]]:
        """
        Run one statement and return its rows as dictionaries.

        Raises:
            TransientStorageError: If the cluster is unreachable, times out
                or cannot reach the requested consistency
            StorageError: For any other driver failure
        """
        statement = SimpleStatement(query)
        if consistency is not None:
            statement.consistency_level = _CONSISTENCY_LEVELS[consistency]

        try:
            result = self.session.execute(statement, dict(params or {}))
        except Unavailable as e:
            raise TransientStorageError(
                f"Not enough replicas available: {e}",
                code=ErrorCode.UNAVAILABLE,
                context=ErrorContext(query=query),
                cause=e,
            ) from e
        except (Timeout, OperationTimedOut) as e:
            raise TransientStorageError(
                f"Request timed out: {e}",
                code=ErrorCode.TIMEOUT,
                context=ErrorContext(query=query),
                cause=e,
            ) from e
        except NoHostAvailable as e:
            raise TransientStorageError(
                f"No host available: {e}",
                code=ErrorCode.NO_HOST_AVAILABLE,
                context=ErrorContext(query=query),
                cause=e,
            ) from e
        except DriverException as e:
            raise StorageError(
                f"Query failed: {e}",
                context=ErrorContext(query=query),
                cause=e,
            ) from e

        if result is None:
            return []
        return list(result)

    def close(self) -> None:
        """Shut down the cluster connection."""
        self.cluster.shutdown()


def connect(nodes: Sequence[str], keyspace: str,
            credentials: Optional[Tuple[str, str]] = None,
            tls: Optional[Union[TLSConfig, ssl.SSLContext]] = None,
            port: int = DEFAULT_PORT,
            default_consistency: Consistency = Consistency.LOCAL_QUORUM) -> CassandraClient:
    """
    Connect to a cluster and open a session on the keyspace.

    Args:
        nodes: Contact points as ``host[:port]`` strings
        keyspace: Keyspace holding the session and entities tables
        credentials: Optional (username, password)
        tls: TLS settings or a ready SSL context; None disables TLS
        port: Port for nodes given without one
        default_consistency: Consistency for statements that do not set one

    Raises:
        TransientStorageError: If no node can be reached
    """
    hosts, port = parse_nodes(nodes, port)

    profile = ExecutionProfile(
        consistency_level=_CONSISTENCY_LEVELS[default_consistency],
        row_factory=dict_factory,
    )
    cluster_kwargs: Dict[str, Any] = {
        'contact_points': hosts,
        'port': port,
        'execution_profiles': {EXEC_PROFILE_DEFAULT: profile},
    }

    if credentials is not None:
        username, password = credentials
        cluster_kwargs['auth_provider'] = PlainTextAuthProvider(username=username, password=password)

    if isinstance(tls, TLSConfig):
        cluster_kwargs['ssl_context'] = tls.build_context()
    elif tls is not None:
        cluster_kwargs['ssl_context'] = tls

    cluster = Cluster(**cluster_kwargs)
    try:
        session = cluster.connect(keyspace)
    except NoHostAvailable as e:
        logger.error(f"Unable to connect to Cassandra nodes {hosts}: {e}")
        cluster.shutdown()
        raise TransientStorageError(
            f"No host available: {e}",
            code=ErrorCode.NO_HOST_AVAILABLE,
            operation="connect",
            cause=e,
        ) from e

    logger.info(f"Connected to Cassandra keyspace {keyspace} on {', '.join(hosts)}")
    return CassandraClient(cluster, session)


def connect_from_config(config: CassandraConfig) -> CassandraClient:
    """Validate the configuration and connect."""
    config.validate()

    tls = TLSConfig(ca_files=list(config.ssl_ca)) if config.use_ssl else None
    return connect(
        config.nodes,
        config.keyspace,
        credentials=config.credentials,
        tls=tls,
        port=config.port,
        default_consistency=config.default_consistency,
    )
