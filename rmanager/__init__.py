#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Redis manager core: console command dispatch and topology discovery for
standalone and cluster deployments.
"""

import logging

import rmanager.commands
import rmanager.connection
import rmanager.endpoints
import rmanager.enums
import rmanager.exceptions
import rmanager.query
import rmanager.shared
import rmanager.topology


class _Client:
    """
    Command dispatch shared by the standalone and the cluster clients.
    """

    def __init__(self, logger_name):
        self._logger = logging.getLogger(logger_name)
        self._router = rmanager.commands.CommandRouter()
        self._auto_query = rmanager.query.AutoQuery()
        self._scanner = rmanager.query.Scanner()

    @property
    def _data_connection(self):
        raise NotImplementedError("_data_connection")

    @property
    def _scan_connection(self):
        return self._data_connection

    def execute(self, command, database=0):
        """
        Runs the console command within the family recognizing its verb.
        """

        return self._router.execute(self._data_connection, command, database)

    def string(self, command, database=0):
        return self._dispatch(rmanager.enums.KeyType.STRING, command, database)

    def hash(self, command, database=0):
        return self._dispatch(rmanager.enums.KeyType.HASH, command, database)

    def list(self, command, database=0):
        return self._dispatch(rmanager.enums.KeyType.LIST, command, database)

    def set(self, command, database=0):
        return self._dispatch(rmanager.enums.KeyType.SET, command, database)

    def zset(self, command, database=0):
        return self._dispatch(rmanager.enums.KeyType.ZSET, command, database)

    def _dispatch(self, family, command, database):
        return self._router.dispatch(
            self._data_connection,
            family,
            command,
            database,
        )

    def query(
        self,
        key,
        database=0,
        limit=rmanager.shared.DEFAULT_QUERY_LIMIT,
    ):
        """
        Gets the key type, TTL and the value preview.
        """

        return self._auto_query.query(
            self._data_connection,
            key,
            database,
            limit,
        )

    def scan(
        self,
        cursor=rmanager.shared.SCAN_CURSOR_START,
        match=None,
        count=rmanager.shared.DEFAULT_SCAN_COUNT,
        type=None,
    ):
        return self._scanner.scan(
            self._scan_connection,
            cursor,
            match,
            count,
            type,
        )

    def exists(self, key):
        return bool(self._data_connection.call("exists", key))

    def type(self, key):
        return self._data_connection.call("type", key)

    def ttl(self, key):
        return self._data_connection.call("ttl", key)

    def delete(self, key):
        return self._data_connection.call("delete", key)

    def close(self):
        raise NotImplementedError("close")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


class RedisClient(_Client):
    """
    Standalone (master/replica) node client. The connection is established
    at construction and is never re-established.
    """

    def __init__(
        self,
        endpoints,
        credentials=None,
        connection_factory=None,
        timeout=rmanager.shared.TIMEOUT,
    ):
        """
        Initializes a new instance.

        :param endpoints: candidate endpoints, tried in order.
        :param credentials: optional `rmanager.endpoints.Credentials`.
        :param connection_factory: callable(endpoint, credentials, timeout)
            returning a redis-py client, `redis.StrictRedis` by default.
        :param timeout: connect and read timeout, in seconds.
        """

        super(RedisClient, self).__init__("rmanager.RedisClient")

        self._connection_factory = connection_factory
        self._timeout = timeout
        self._connection = self._create_strategy(
            endpoints,
            credentials,
        ).connect()
        self._resolver = rmanager.topology.TopologyResolver(
            self._create_strategy,
        )

    def _create_strategy(self, endpoints, credentials):
        return rmanager.connection.ConnectionStrategy(
            endpoints,
            credentials,
            connection_factory=self._connection_factory,
            timeout=self._timeout,
        )

    @property
    def connection(self):
        return self._connection

    @property
    def _data_connection(self):
        return self._connection

    def nodes(self):
        """
        Gets the replication topology, the master goes first.
        """

        return self._resolver.resolve(self._connection)

    def get_info(self, section=None):
        return rmanager.topology.parse_info(
            self._connection.info_text(section),
        )

    def get_cluster_info(self):
        return rmanager.topology.parse_info(
            self._connection.cluster_info_text(),
        )

    def role(self):
        return rmanager.enums.NodeRole.value_of(
            self.get_info("replication").get("role"),
        )

    def ping(self):
        return self._connection.ping()

    def db_size(self):
        return self._connection.call("dbsize")

    def bgsave(self):
        return self._connection.call("bgsave")

    def lastsave(self):
        return self._connection.call("lastsave")

    def bgrewriteaof(self):
        return self._connection.call("bgrewriteaof")

    def slave_of(self, endpoint=None):
        """
        Makes the node a replica of the endpoint, or a master if the
        endpoint is None.
        """

        if endpoint is None:
            self._logger.info(
                "SLAVEOF NO ONE on %s",
                self._connection.endpoint,
            )
            return self._connection.call("slaveof")
        if isinstance(endpoint, str):
            endpoint = rmanager.endpoints.Endpoint.parse(endpoint)
        self._logger.info(
            "SLAVEOF %s on %s",
            endpoint,
            self._connection.endpoint,
        )
        return self._connection.call("slaveof", endpoint.host, endpoint.port)

    def shutdown(self, save=None):
        """
        Stops the node and closes the connection.

        :param save: True forces a final snapshot, False skips it, None keeps
            the configured behaviour.
        """

        self._logger.warning("SHUTDOWN on %s", self._connection.endpoint)
        self._connection.call(
            "shutdown",
            save=save is True,
            nosave=save is False,
        )
        self._connection.close()
        return True

    def get_config(self, pattern="*"):
        return self._connection.call("config_get", pattern)

    def rewrite_config(self):
        return self._connection.call("config_rewrite")

    def client_list(self):
        return self._connection.call("client_list")

    def client_set_name(self, name):
        return self._connection.call("client_setname", name)

    def slowlog(self, size=None):
        return self._connection.call("slowlog_get", size)

    def cluster_meet(self, endpoint):
        if isinstance(endpoint, str):
            endpoint = rmanager.endpoints.Endpoint.parse(endpoint)
        return self._cluster("MEET", endpoint.host, endpoint.port)

    def cluster_replicate(self, node_id):
        return self._cluster("REPLICATE", node_id)

    def cluster_failover(self):
        return self._cluster("FAILOVER")

    def cluster_add_slots(self, *slots):
        for slot in slots:
            if (
                isinstance(slot, bool) or
                not isinstance(slot, int) or
                not 0 <= slot < rmanager.shared.CLUSTER_SLOTS
            ):
                raise rmanager.exceptions.InvalidArgument(
                    "Invalid slot: %r." % (slot, ),
                )
        return self._cluster("ADDSLOTS", *slots)

    def cluster_forget(self, node_id):
        return self._cluster("FORGET", node_id)

    def cluster_reset(self, hard=False):
        return self._cluster("RESET", "HARD" if hard else "SOFT")

    def _cluster(self, subcommand, *arguments):
        self._logger.info("CLUSTER %s %s", subcommand, arguments)
        return self._connection.call(
            "execute_command",
            "CLUSTER " + subcommand,
            *arguments
        )

    def close(self):
        self._connection.close()


class RedisClusterClient(_Client):
    """
    Cluster client. Data commands go through the cluster-aware connection,
    introspection and SCAN go through the seed node connection.
    """

    def __init__(
        self,
        endpoints,
        credentials=None,
        connection_factory=None,
        cluster_factory=None,
        timeout=rmanager.shared.TIMEOUT,
    ):
        super(RedisClusterClient, self).__init__("rmanager.RedisClusterClient")

        self._node = RedisClient(
            endpoints,
            credentials,
            connection_factory=connection_factory,
            timeout=timeout,
        )
        try:
            self._cluster_connection = rmanager.connection.connect_cluster(
                endpoints,
                credentials,
                cluster_factory=cluster_factory,
                timeout=timeout,
            )
        except rmanager.exceptions.RedisManagerError:
            self._node.close()
            raise

    @property
    def node(self):
        """
        Gets the seed node client.
        """

        return self._node

    @property
    def connection(self):
        return self._cluster_connection

    @property
    def _data_connection(self):
        return self._cluster_connection

    @property
    def _scan_connection(self):
        return self._node.connection

    def cluster_nodes(self, skip_malformed=False):
        return rmanager.topology.parse_cluster_nodes(
            self._node.connection.cluster_nodes_text(),
            skip_malformed=skip_malformed,
        )

    def get_cluster_info(self):
        return self._node.get_cluster_info()

    def close(self):
        try:
            self._cluster_connection.close()
        finally:
            self._node.close()
