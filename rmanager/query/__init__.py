#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Key preview (auto-query) and cursor-based key enumeration.
"""

import collections
import logging
import re

import rmanager.enums
import rmanager.exceptions
import rmanager.shared


# SCAN cursors are unsigned ASCII decimals.
_CURSOR = re.compile(r"[0-9]+")


class AutoCommandResult(
    collections.namedtuple("AutoCommandResult", ["ttl", "type", "value"]),
):
    """
    Auto-query result. ttl is None if unknown (the key does not exist),
    -1 if the key has no expiry.
    """

    __slots__ = ()


class ScanResult(
    collections.namedtuple("ScanResult", ["next_cursor", "items"]),
):
    """
    SCAN result. next_cursor is "0" when the enumeration is exhausted.
    """

    __slots__ = ()

    @property
    def is_exhausted(self):
        return self.next_cursor == rmanager.shared.SCAN_CURSOR_START


def _non_negative(value, name):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise rmanager.exceptions.InvalidArgument(
            "%s must be a non-negative integer: %r." % (name, value),
        )
    return value


class AutoQuery:
    """
    Detects the key type and fetches a bounded preview of its value.

    The limit is applied per type:

    - string: the whole value;
    - hash: the whole mapping, the limit is ignored;
    - list: elements 0..limit inclusive, i.e. limit + 1 elements;
    - set: limit random members, none if the limit is 0;
    - zset: members 0..limit inclusive with scores, i.e. limit + 1 pairs.
    """

    def __init__(self):
        self._logger = logging.getLogger("rmanager.query.AutoQuery")
        self._previews = {
            rmanager.enums.KeyType.STRING: self._preview_string,
            rmanager.enums.KeyType.HASH: self._preview_hash,
            rmanager.enums.KeyType.LIST: self._preview_list,
            rmanager.enums.KeyType.SET: self._preview_set,
            rmanager.enums.KeyType.ZSET: self._preview_zset,
        }

    def query(
        self,
        connection,
        key,
        database=0,
        limit=rmanager.shared.DEFAULT_QUERY_LIMIT,
    ):
        if not key:
            raise rmanager.exceptions.InvalidArgument("Key is empty.")
        _non_negative(database, "database")
        _non_negative(limit, "limit")

        connection.select(database)
        key_type = connection.call("type", key)
        ttl = connection.call("ttl", key)
        self._logger.debug("%s: type=%s, ttl=%s", key, key_type, ttl)

        if key_type == rmanager.enums.KeyType.NONE:
            return AutoCommandResult(ttl=None, type=key_type, value=None)

        preview = self._previews.get(key_type)
        value = preview(connection, key, limit) if preview else None
        # The key may expire between TYPE and TTL.
        return AutoCommandResult(
            ttl=ttl if ttl != -2 else None,
            type=key_type,
            value=value,
        )

    def _preview_string(self, connection, key, limit):
        return connection.call("get", key)

    def _preview_hash(self, connection, key, limit):
        return connection.call("hgetall", key)

    def _preview_list(self, connection, key, limit):
        return connection.call("lrange", key, 0, limit)

    def _preview_set(self, connection, key, limit):
        return connection.call("srandmember", key, limit)

    def _preview_zset(self, connection, key, limit):
        return connection.call("zrange", key, 0, limit, withscores=True)


class Scanner:
    """
    Stateless SCAN wrapper. The enumeration state lives in the cursor.
    Keys added or removed during the enumeration may be returned twice
    or not at all.
    """

    def __init__(self):
        self._logger = logging.getLogger("rmanager.query.Scanner")

    def scan(
        self,
        connection,
        cursor=rmanager.shared.SCAN_CURSOR_START,
        match=None,
        count=rmanager.shared.DEFAULT_SCAN_COUNT,
        type=None,
    ):
        cursor = str(cursor)
        if _CURSOR.fullmatch(cursor) is None:
            raise rmanager.exceptions.InvalidArgument(
                "Invalid cursor: %r." % (cursor, ),
            )
        if count is not None and (
            isinstance(count, bool) or not isinstance(count, int) or count < 1
        ):
            raise rmanager.exceptions.InvalidArgument(
                "count must be a positive integer: %r." % (count, ),
            )

        next_cursor, items = connection.call(
            "scan",
            cursor=int(cursor),
            match=match or None,
            count=count,
            _type=type or None,
        )
        self._logger.debug(
            "SCAN %s MATCH %s -> %s (%d items)",
            cursor,
            match,
            next_cursor,
            len(items),
        )
        return ScanResult(next_cursor=str(next_cursor), items=list(items))

    def iterate(
        self,
        connection,
        match=None,
        count=rmanager.shared.DEFAULT_SCAN_COUNT,
        type=None,
    ):
        """
        Yields keys until the cursor returns to "0".
        """

        cursor = rmanager.shared.SCAN_CURSOR_START
        while True:
            result = self.scan(connection, cursor, match, count, type)
            for item in result.items:
                yield item
            if result.is_exhausted:
                return
            cursor = result.next_cursor
