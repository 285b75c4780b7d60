#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Endpoints and credentials used to establish a store connection.
"""

import collections

import rmanager.exceptions
import rmanager.utilities


class Endpoint(collections.namedtuple("Endpoint", ["host", "port"])):
    """
    A store node address.
    """

    __slots__ = ()

    def __new__(cls, host, port):
        if not host:
            raise rmanager.exceptions.InvalidArgument("Host is empty.")
        try:
            port = int(port)
        except (TypeError, ValueError):
            raise rmanager.exceptions.InvalidArgument(
                "Invalid port: %r." % (port, ),
            )
        if not 1 <= port <= 65535:
            raise rmanager.exceptions.InvalidArgument(
                "Port is out of range: %d." % port,
            )
        return super(Endpoint, cls).__new__(cls, host, port)

    @classmethod
    def parse(cls, address):
        """
        Parses "host:port".
        """

        try:
            host, port = rmanager.utilities.Splitter.host_and_port(
                address.strip(),
            )
        except ValueError as ex:
            raise rmanager.exceptions.InvalidArgument(str(ex)) from ex
        return cls(host, port)

    def __str__(self):
        return "%s:%d" % (self.host, self.port)


class EndpointSet:
    """
    Ordered set of candidate endpoints. Iterates in insertion order.
    """

    def __init__(self, endpoints):
        self._endpoints = collections.OrderedDict()
        for endpoint in endpoints:
            endpoint = self._to_endpoint(endpoint)
            self._endpoints.setdefault(endpoint, None)
        if not self._endpoints:
            raise rmanager.exceptions.InvalidArgument("No endpoints given.")

    @classmethod
    def parse(cls, nodes):
        """
        Parses "host:port[,host:port ...]".
        """

        return cls(
            Endpoint.parse(address)
            for address in rmanager.utilities.Splitter.by_commas(nodes)
            if address.strip()
        )

    @classmethod
    def of(cls, endpoints):
        """
        Returns the argument if it is already an endpoint set.
        """

        if isinstance(endpoints, cls):
            return endpoints
        elif isinstance(endpoints, str):
            return cls.parse(endpoints)
        elif isinstance(endpoints, Endpoint):
            return cls([endpoints])
        return cls(endpoints)

    def _to_endpoint(self, endpoint):
        if isinstance(endpoint, Endpoint):
            return endpoint
        elif isinstance(endpoint, str):
            return Endpoint.parse(endpoint)
        else:
            host, port = endpoint
            return Endpoint(host, port)

    def __iter__(self):
        return iter(self._endpoints)

    def __len__(self):
        return len(self._endpoints)

    def __contains__(self, endpoint):
        try:
            return self._to_endpoint(endpoint) in self._endpoints
        except (rmanager.exceptions.InvalidArgument, TypeError, ValueError):
            return False

    def __eq__(self, other):
        if not isinstance(other, EndpointSet):
            return NotImplemented
        return set(self._endpoints) == set(other._endpoints)

    def __repr__(self):
        return "EndpointSet(%s)" % ", ".join(str(e) for e in self)


class Credentials:
    """
    Optional password and client name. Immutable.
    """

    __slots__ = ("_password", "_client_name")

    def __init__(self, password=None, client_name=None):
        self._password = password or None
        self._client_name = client_name or None

    @property
    def password(self):
        return self._password

    @property
    def client_name(self):
        return self._client_name

    def without_client_name(self):
        return Credentials(password=self._password)

    def __eq__(self, other):
        if not isinstance(other, Credentials):
            return NotImplemented
        return (self._password, self._client_name) == (
            other._password,
            other._client_name,
        )

    def __hash__(self):
        return hash((self._password, self._client_name))

    def __repr__(self):
        # Never expose the password.
        return "Credentials(password=%s, client_name=%r)" % (
            "***" if self._password else None,
            self._client_name,
        )
