#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Store connections and the multi-endpoint connection strategy.
"""

import logging

import redis
import redis.backoff
import redis.cluster
import redis.exceptions
import redis.retry

import rmanager.endpoints
import rmanager.enums
import rmanager.exceptions
import rmanager.shared
import rmanager.utilities


def create_redis(endpoint, credentials, timeout):
    """
    Opens a dedicated single-socket connection to the endpoint. The
    handshake authenticates and sets the client name.
    """

    return redis.StrictRedis(
        host=endpoint.host,
        port=endpoint.port,
        password=credentials.password,
        client_name=credentials.client_name,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
        decode_responses=True,
        single_connection_client=True,
        # A severed connection must not be silently re-established.
        retry=redis.retry.Retry(redis.backoff.NoBackoff(), 0),
    )


def create_cluster(endpoints, credentials, timeout):
    return redis.cluster.RedisCluster(
        startup_nodes=[
            redis.cluster.ClusterNode(endpoint.host, endpoint.port)
            for endpoint in endpoints
        ],
        password=credentials.password,
        client_name=credentials.client_name,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
        decode_responses=True,
    )


def _raw_reply(response, **options):
    return response


class _BaseConnection:

    def __init__(self, client, logger_name):
        self._logger = logging.getLogger(logger_name)
        self._client = client
        self._lost = False
        self._closed = False

    @property
    def client(self):
        """
        Gets the underlying redis-py client.
        """

        return self._client

    @property
    def is_usable(self):
        return not (self._lost or self._closed)

    def call(self, operation, *args, **kwargs):
        """
        Invokes the named redis-py operation and translates its errors.
        """

        if self._closed:
            raise rmanager.exceptions.ConnectionLost("Connection is closed.")
        if self._lost:
            raise rmanager.exceptions.ConnectionLost(
                "Connection has been lost before.",
            )
        method = getattr(self._client, operation)
        try:
            return method(*args, **kwargs)
        except (
            redis.exceptions.ConnectionError,
            redis.exceptions.TimeoutError,
        ) as ex:
            self._lost = True
            self._logger.warning("Connection is lost: %s", ex)
            raise rmanager.exceptions.ConnectionLost(str(ex)) from ex
        except redis.exceptions.ResponseError as ex:
            raise rmanager.exceptions.StoreResponseError(str(ex)) from ex
        except redis.exceptions.DataError as ex:
            raise rmanager.exceptions.InvalidArgument(str(ex)) from ex
        except redis.exceptions.RedisError as ex:
            raise rmanager.exceptions.StoreResponseError(str(ex)) from ex

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


class Connection(_BaseConnection):
    """
    A live connection to a single store node. Holds the currently
    selected logical database.
    """

    def __init__(self, client, endpoint, credentials):
        super(Connection, self).__init__(
            client,
            "rmanager.connection.Connection",
        )

        self._endpoint = endpoint
        self._credentials = credentials
        self._database = None

        # Introspection replies are parsed by the topology module.
        for command in ("INFO", "CLUSTER NODES", "CLUSTER INFO"):
            self._client.set_response_callback(command, _raw_reply)

    @property
    def endpoint(self):
        return self._endpoint

    @property
    def credentials(self):
        return self._credentials

    @property
    def database(self):
        """
        Gets the selected logical database, None until the first selection.
        """

        return self._database

    def select(self, database):
        if database is None:
            return
        self._logger.debug("SELECT %s on %s", database, self._endpoint)
        self.call("execute_command", "SELECT", database)
        self._database = database

    def ping(self):
        return bool(self.call("ping"))

    def info_text(self, section=None):
        arguments = ("INFO", section) if section else ("INFO", )
        return rmanager.utilities.Converter.to_str(
            self.call("execute_command", *arguments),
        )

    def cluster_nodes_text(self):
        return rmanager.utilities.Converter.to_str(
            self.call("execute_command", "CLUSTER NODES"),
        )

    def cluster_info_text(self):
        return rmanager.utilities.Converter.to_str(
            self.call("execute_command", "CLUSTER INFO"),
        )

    def __repr__(self):
        return "Connection(endpoint=%s, database=%s)" % (
            self._endpoint,
            self._database,
        )


class ClusterConnection(_BaseConnection):
    """
    A cluster-aware connection. Node connections are pooled by redis-py.
    """

    def __init__(self, client, endpoints):
        super(ClusterConnection, self).__init__(
            client,
            "rmanager.connection.ClusterConnection",
        )

        self._endpoints = endpoints

    @property
    def endpoints(self):
        return self._endpoints

    def select(self, database):
        # A cluster has the only logical database.
        if database:
            self._logger.debug("Ignoring SELECT %s on a cluster.", database)


class ConnectionStrategy:
    """
    Tries the endpoints in order until one accepts the connection and
    answers the probe.
    """

    def __init__(
        self,
        endpoints,
        credentials=None,
        connection_factory=None,
        timeout=rmanager.shared.TIMEOUT,
    ):
        self._logger = logging.getLogger(
            "rmanager.connection.ConnectionStrategy",
        )
        self._endpoints = rmanager.endpoints.EndpointSet.of(endpoints)
        self._credentials = credentials or rmanager.endpoints.Credentials()
        self._connection_factory = connection_factory or create_redis
        self._timeout = timeout
        self._state = rmanager.enums.ConnectionState.DISCONNECTED
        self._attempts = []

    @property
    def endpoints(self):
        return self._endpoints

    @property
    def credentials(self):
        return self._credentials

    @property
    def state(self):
        return self._state

    @property
    def attempts(self):
        """
        Gets (endpoint, error) pairs of the failed endpoints. The error is
        None if the endpoint has failed the probe.
        """

        return list(self._attempts)

    def connect(self):
        """
        Runs the strategy. Returns the live connection.
        """

        states = rmanager.enums.ConnectionState
        self._state, self._attempts = states.DISCONNECTED, []
        candidates = iter(self._endpoints)
        endpoint = connection = None

        while True:
            if self._state == states.DISCONNECTED:
                endpoint = next(candidates, None)
                self._state = (
                    states.EXHAUSTED if endpoint is None else states.PROBING
                )
            elif self._state == states.PROBING:
                connection = self._probe(endpoint)
                self._state = (
                    states.CONNECTED if connection is not None
                    else states.DISCONNECTED
                )
            elif self._state == states.CONNECTED:
                return connection
            else:
                self._logger.error(
                    "All %d endpoints are unreachable.",
                    len(self._endpoints),
                )
                raise rmanager.exceptions.AllEndpointsUnreachable(
                    self._attempts,
                )

    def _probe(self, endpoint):
        """
        Opens and probes the connection. Returns None if the next endpoint
        should be tried.
        """

        self._logger.debug("Probing %s ...", endpoint)
        client = None
        try:
            client = self._connection_factory(
                endpoint,
                self._credentials,
                self._timeout,
            )
            alive = client.ping()
        except redis.exceptions.AuthenticationError as ex:
            # The endpoint is reachable - do not try the others.
            self._close(client)
            self._state = rmanager.enums.ConnectionState.DISCONNECTED
            raise rmanager.exceptions.AuthenticationError(endpoint) from ex
        except (
            redis.exceptions.ConnectionError,
            redis.exceptions.TimeoutError,
            redis.exceptions.ResponseError,
        ) as ex:
            self._logger.warning("Endpoint %s has failed: %s", endpoint, ex)
            self._attempts.append((endpoint, ex))
            self._close(client)
            return None

        if not alive:
            self._logger.warning("Endpoint %s has failed the probe.", endpoint)
            self._attempts.append((endpoint, None))
            self._close(client)
            return None

        self._logger.info("Connected to %s.", endpoint)
        return Connection(client, endpoint, self._credentials)

    def _close(self, client):
        if client is None:
            return
        try:
            client.close()
        except redis.exceptions.RedisError as ex:
            self._logger.debug("Failed to close the connection: %s", ex)


def connect_cluster(
    endpoints,
    credentials=None,
    cluster_factory=None,
    timeout=rmanager.shared.TIMEOUT,
):
    """
    Connects to the cluster. redis-py tries the startup nodes itself.
    """

    endpoints = rmanager.endpoints.EndpointSet.of(endpoints)
    credentials = credentials or rmanager.endpoints.Credentials()
    cluster_factory = cluster_factory or create_cluster
    try:
        cluster = cluster_factory(endpoints, credentials, timeout)
    except redis.exceptions.AuthenticationError as ex:
        raise rmanager.exceptions.AuthenticationError(endpoints) from ex
    except (
        redis.exceptions.RedisClusterException,
        redis.exceptions.ConnectionError,
        redis.exceptions.TimeoutError,
    ) as ex:
        raise rmanager.exceptions.AllEndpointsUnreachable(
            [(endpoint, ex) for endpoint in endpoints],
        ) from ex
    return ClusterConnection(cluster, endpoints)
