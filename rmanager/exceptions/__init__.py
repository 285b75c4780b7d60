#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Redis manager exceptions.
"""


class RedisManagerError(Exception):
    """
    Base class for all the errors raised by the package.
    """

    pass


class StoreConnectionError(RedisManagerError):
    """
    The store connection could not be established or is lost.
    """

    pass


class AllEndpointsUnreachable(StoreConnectionError):
    """
    None of the endpoints has accepted the connection and the probe.
    """

    def __init__(self, attempts=()):
        super(AllEndpointsUnreachable, self).__init__(
            "All endpoints are unreachable: %s." % (
                ", ".join(str(endpoint) for endpoint, _ in attempts) or "none",
            ),
        )

        self._attempts = list(attempts)

    @property
    def attempts(self):
        """
        Gets the list of (endpoint, error) pairs, in the order of attempts.
        """

        return self._attempts


class ConnectionLost(StoreConnectionError):
    """
    The live connection is severed. The connection is not usable anymore.
    """

    pass


class AuthenticationError(RedisManagerError):
    """
    The store has rejected the credentials.
    """

    def __init__(self, endpoint):
        super(AuthenticationError, self).__init__(
            "Authentication is rejected by %s." % (endpoint, ),
        )

        self._endpoint = endpoint

    @property
    def endpoint(self):
        return self._endpoint


class CommandError(RedisManagerError):
    """
    The command or its arguments are invalid.
    """

    def __init__(self, data):
        super(CommandError, self).__init__(data)

        self._data = data

    @property
    def data(self):
        return self._data


class MalformedCommand(CommandError):
    pass


class InvalidArgument(CommandError):
    pass


class UnsupportedOperation(CommandError):
    pass


class ParseError(RedisManagerError):
    """
    The introspection text does not have the expected shape.
    """

    def __init__(self, message, line_number=None):
        if line_number is not None:
            message = "Line %d: %s" % (line_number, message)
        super(ParseError, self).__init__(message)

        self._line_number = line_number

    @property
    def line_number(self):
        return self._line_number


class StoreResponseError(RedisManagerError):
    """
    The store has replied with an error.
    """

    pass
