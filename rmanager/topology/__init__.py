#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Replication and cluster topology discovery.

Standalone nodes report the replication state in INFO:

    role:master
    connected_slaves:2
    slave0:ip=127.0.0.1,port=8801,state=online,offset=152173185,lag=1
    slave1:ip=127.0.0.1,port=8802,state=online,offset=152173185,lag=1

or, on a replica:

    role:slave
    master_host:127.0.0.1
    master_port:8800
    master_link_status:up

Cluster nodes are listed by CLUSTER NODES, one node per line:

    <id> <ip:port@cport> <flags> <master> <ping-sent> <pong-recv>
        <config-epoch> <link-state> <slot> ... <slot>
"""

import collections
import logging
import re

import rmanager.connection
import rmanager.endpoints
import rmanager.enums
import rmanager.exceptions
import rmanager.shared
import rmanager.utilities


_logger = logging.getLogger("rmanager.topology")


class ReplicationNode(
    collections.namedtuple("ReplicationNode", ["host", "port", "role"]),
):
    __slots__ = ()


class ClusterNode(collections.namedtuple("ClusterNode", [
    "node_id",
    "host",
    "port",
    "role",
    "flags",
    "master_id",
    "link_state",
    "slot_range",
])):
    """
    A CLUSTER NODES line. master_id is empty for masters, slot_range is
    the first slot token or None.
    """

    __slots__ = ()


def parse_info(text):
    """
    Parses INFO output into an ordered mapping. Section headers and blank
    lines are skipped.
    """

    info = collections.OrderedDict()
    for line in rmanager.utilities.Converter.to_str(text).splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, separator, value = line.partition(":")
        if separator:
            info[key] = value
    return info


class TopologyResolver:
    """
    Resolves the master and its replicas starting from any node of a
    standalone replication group.
    """

    _replica_key = re.compile(r"^slave\d+$")

    def __init__(self, strategy_factory=None):
        self._logger = logging.getLogger("rmanager.topology.TopologyResolver")
        self._strategy_factory = (
            strategy_factory or rmanager.connection.ConnectionStrategy
        )

    def resolve(self, connection):
        """
        Gets the topology, the master goes first. A replica is redirected to
        its master once; the master reporting as a replica is not followed.
        """

        info = parse_info(connection.info_text("replication"))
        role = rmanager.enums.NodeRole.value_of(info.get("role"))

        if role == rmanager.enums.NodeRole.SLAVE:
            master = self._get_master_endpoint(info)
            self._logger.info(
                "%s is a replica of %s. Redirecting ...",
                connection.endpoint,
                master,
            )
            strategy = self._strategy_factory(
                rmanager.endpoints.EndpointSet([master]),
                connection.credentials.without_client_name(),
            )
            with strategy.connect() as master_connection:
                info = parse_info(master_connection.info_text("replication"))
        else:
            master = connection.endpoint

        nodes = [ReplicationNode(
            master.host,
            master.port,
            rmanager.enums.NodeRole.MASTER,
        )]
        nodes.extend(self.parse_replicas(info))
        return nodes

    def parse_replicas(self, info):
        """
        Reads the slaveN entries in order. A malformed entry stops the read.
        """

        replicas = []
        for key, value in info.items():
            if not self._replica_key.match(key):
                continue
            fields = rmanager.utilities.Splitter.by_commas(value)
            if len(fields) < 2:
                self._logger.warning(
                    "Malformed replica entry %s:%s. Truncating.",
                    key,
                    value,
                )
                return replicas
            entry = dict(
                rmanager.utilities.Splitter.by_equal_sign(field)
                for field in fields
            )
            host, port = entry.get("ip"), entry.get("port")
            if not host or not port:
                continue
            try:
                endpoint = rmanager.endpoints.Endpoint(host, port)
            except rmanager.exceptions.InvalidArgument:
                self._logger.warning(
                    "Invalid replica address in %s:%s. Truncating.",
                    key,
                    value,
                )
                return replicas
            replicas.append(ReplicationNode(
                endpoint.host,
                endpoint.port,
                rmanager.enums.NodeRole.SLAVE,
            ))
        return replicas

    def _get_master_endpoint(self, info):
        host, port = info.get("master_host"), info.get("master_port")
        if not host or not port:
            raise rmanager.exceptions.ParseError(
                "Replica does not report master_host and master_port.",
            )
        try:
            return rmanager.endpoints.Endpoint(host, port)
        except rmanager.exceptions.InvalidArgument as ex:
            raise rmanager.exceptions.ParseError(
                "Invalid master address: %s:%s." % (host, port),
            ) from ex


def parse_cluster_node(line, line_number=None):
    items = rmanager.utilities.Splitter.by_space(line)
    if len(items) < rmanager.shared.CLUSTER_NODES_MIN_FIELDS:
        raise rmanager.exceptions.ParseError(
            "Expected at least %d fields, got %d." % (
                rmanager.shared.CLUSTER_NODES_MIN_FIELDS,
                len(items),
            ),
            line_number,
        )

    node_id, address, flags, master_id = items[:4]
    # ip:port@cport[,hostname]
    try:
        host, port = rmanager.utilities.Splitter.host_and_port(
            address.partition("@")[0],
        )
        port = int(port)
    except ValueError as ex:
        raise rmanager.exceptions.ParseError(
            "Invalid node address: %s." % address,
            line_number,
        ) from ex

    return ClusterNode(
        node_id=node_id,
        host=host,
        port=port,
        role=rmanager.enums.NodeRole.from_flags(flags),
        flags=flags,
        master_id=master_id if master_id != "-" else "",
        link_state=items[7],
        slot_range=items[8] if len(items) > 8 else None,
    )


def parse_cluster_nodes(text, skip_malformed=False):
    """
    Parses CLUSTER NODES output, preserving the line order. A malformed line
    raises ParseError unless skip_malformed is set.
    """

    nodes = []
    lines = rmanager.utilities.Converter.to_str(text).splitlines()
    for line_number, line in enumerate(lines, 1):
        if not line.strip():
            continue
        try:
            nodes.append(parse_cluster_node(line, line_number))
        except rmanager.exceptions.ParseError as ex:
            if not skip_malformed:
                raise
            _logger.warning("Skipping the cluster node: %s", ex)
    return nodes
