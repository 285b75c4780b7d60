#!/usr/bin/env python3
# -*- coding: utf-8 -*-


class NodeRole:
    """
    Represents a Redis node role as reported by the node itself.
    """

    MASTER = "master"

    SLAVE = "slave"

    UNKNOWN = "unknown"

    @classmethod
    def value_of(cls, role):
        """
        Maps the role reported by a node onto one of the known roles.
        """

        if role == cls.MASTER:
            return cls.MASTER
        elif role == cls.SLAVE:
            return cls.SLAVE
        else:
            return cls.UNKNOWN

    @classmethod
    def from_flags(cls, flags):
        """
        Derives the role from the cluster node flags, e.g. "myself,master".
        """

        if cls.MASTER in flags:
            return cls.MASTER
        elif cls.SLAVE in flags:
            return cls.SLAVE
        else:
            return cls.UNKNOWN


class KeyType:
    """
    Key types as returned by the TYPE command.
    """

    # The key does not exist.
    NONE = "none"

    STRING = "string"

    HASH = "hash"

    LIST = "list"

    SET = "set"

    ZSET = "zset"


class ConnectionState:
    """
    Represents the connection strategy state.
    """

    # No endpoint is being tried.
    DISCONNECTED = 0

    # The current endpoint is being connected and probed.
    PROBING = 1

    # The probe has succeeded. Terminal.
    CONNECTED = 2

    # All the endpoints have failed. Terminal.
    EXHAUSTED = 3
