#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
In-memory stubs of redis-py clients.
"""

import collections
import fnmatch

import redis.exceptions


class _SortedSet(dict):
    """
    member -> score.
    """

    pass


def _range(items, start, stop):
    """
    Applies Redis inclusive range semantics.
    """

    length = len(items)
    if start < 0:
        start = max(start + length, 0)
    if stop < 0:
        stop += length
    stop = min(stop, length - 1)
    if start > stop:
        return []
    return items[start:stop + 1]


def _score_bound(bound, lower):
    bound = str(bound)
    exclusive = bound.startswith("(")
    if exclusive:
        bound = bound[1:]
    value = float(bound)
    if lower:
        return (lambda score: score > value) if exclusive else (
            lambda score: score >= value
        )
    return (lambda score: score < value) if exclusive else (
        lambda score: score <= value
    )


class FakeRedis:
    """
    redis.StrictRedis stub. Supports the commands used by the package.
    """

    def __init__(
        self,
        info=None,
        cluster_nodes="",
        cluster_info="",
        ping_reply=True,
    ):
        self.databases = collections.defaultdict(collections.OrderedDict)
        self.ttls = collections.defaultdict(dict)
        self.db = 0
        self.info = info or {}
        self.cluster_nodes = cluster_nodes
        self.cluster_info = cluster_info
        self.ping_reply = ping_reply
        self.failure = None
        self.closed = False
        self.credentials = None
        self.response_callbacks = {}
        self.calls = []

    @property
    def data(self):
        return self.databases[self.db]

    def _record(self, name, *args, **kwargs):
        if self.failure is not None:
            raise self.failure
        self.calls.append((name, args, kwargs))

    @property
    def call_names(self):
        return [name for name, _, _ in self.calls]

    def _get(self, key, expected_type):
        value = self.data.get(key)
        if value is not None and (
            not isinstance(value, expected_type) or
            isinstance(value, _SortedSet) and expected_type is dict
        ):
            raise redis.exceptions.ResponseError(
                "WRONGTYPE Operation against a key holding the wrong kind "
                "of value",
            )
        return value

    def _get_sorted_set(self, key):
        value = self.data.get(key)
        if value is not None and not isinstance(value, _SortedSet):
            raise redis.exceptions.ResponseError("WRONGTYPE")
        return value

    def set_response_callback(self, command, callback):
        self.response_callbacks[command] = callback

    def execute_command(self, *args):
        self._record("execute_command", *args)
        command = args[0].upper().split() + list(args[1:])
        if command[0] == "SELECT":
            self.db = int(command[1])
            return True
        elif command[0] == "INFO":
            section = command[1] if len(command) > 1 else None
            return self.info.get(section, self.info.get(None, ""))
        elif command[:2] == ["CLUSTER", "NODES"]:
            return self.cluster_nodes
        elif command[:2] == ["CLUSTER", "INFO"]:
            return self.cluster_info
        return "OK"

    def ping(self):
        self._record("ping")
        if isinstance(self.ping_reply, Exception):
            raise self.ping_reply
        return self.ping_reply

    def close(self):
        self.closed = True

    # Keys.

    def type(self, key):
        self._record("type", key)
        return self._type_of(key)

    def _type_of(self, key):
        value = self.data.get(key)
        if value is None:
            return "none"
        elif isinstance(value, str):
            return "string"
        elif isinstance(value, _SortedSet):
            return "zset"
        elif isinstance(value, dict):
            return "hash"
        elif isinstance(value, list):
            return "list"
        return "set"

    def ttl(self, key):
        self._record("ttl", key)
        if key not in self.data:
            return -2
        return self.ttls[self.db].get(key, -1)

    def exists(self, *keys):
        self._record("exists", *keys)
        return sum(1 for key in keys if key in self.data)

    def delete(self, *keys):
        self._record("delete", *keys)
        deleted = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                deleted += 1
        return deleted

    def dbsize(self):
        self._record("dbsize")
        return len(self.data)

    def scan(self, cursor=0, match=None, count=None, _type=None):
        self._record(
            "scan",
            cursor=cursor,
            match=match,
            count=count,
            _type=_type,
        )
        keys = sorted(
            key for key in self.data
            if (match is None or fnmatch.fnmatchcase(key, match)) and
            (_type is None or self._type_of(key) == _type)
        )
        count = count or 10
        page = keys[cursor:cursor + count]
        next_cursor = cursor + count if cursor + count < len(keys) else 0
        return next_cursor, page

    # Strings.

    def get(self, key):
        self._record("get", key)
        return self._get(key, str)

    def set(self, key, value):
        self._record("set", key, value)
        self.data[key] = value
        return True

    # Hashes.

    def hgetall(self, key):
        self._record("hgetall", key)
        return dict(self._get(key, dict) or {})

    def hget(self, key, field):
        self._record("hget", key, field)
        return (self._get(key, dict) or {}).get(field)

    def hmget(self, key, fields):
        self._record("hmget", key, fields)
        value = self._get(key, dict) or {}
        return [value.get(field) for field in fields]

    def hkeys(self, key):
        self._record("hkeys", key)
        return list(self._get(key, dict) or {})

    def hset(self, key, field=None, value=None, mapping=None):
        self._record("hset", key, mapping=mapping)
        current = self._get(key, dict)
        if current is None:
            current = self.data[key] = collections.OrderedDict()
        added = 0
        for name, item in (mapping or {}).items():
            if name not in current:
                added += 1
            current[name] = item
        return added

    # Lists.

    def _list(self, key):
        current = self._get(key, list)
        if current is None:
            current = self.data[key] = []
        return current

    def lpush(self, key, *values):
        self._record("lpush", key, *values)
        current = self._list(key)
        for value in values:
            current.insert(0, value)
        return len(current)

    def rpush(self, key, *values):
        self._record("rpush", key, *values)
        current = self._list(key)
        current.extend(values)
        return len(current)

    def lindex(self, key, index):
        self._record("lindex", key, index)
        current = self._get(key, list) or []
        try:
            return current[index]
        except IndexError:
            return None

    def llen(self, key):
        self._record("llen", key)
        return len(self._get(key, list) or [])

    def lrange(self, key, start, stop):
        self._record("lrange", key, start, stop)
        return _range(self._get(key, list) or [], start, stop)

    # Sets.

    def sadd(self, key, *members):
        self._record("sadd", key, *members)
        current = self._get(key, set)
        if current is None:
            current = self.data[key] = set()
        added = len(set(members) - current)
        current.update(members)
        return added

    def scard(self, key):
        self._record("scard", key)
        return len(self._get(key, set) or ())

    def smembers(self, key):
        self._record("smembers", key)
        return set(self._get(key, set) or ())

    def srandmember(self, key, number=None):
        self._record("srandmember", key, number)
        members = sorted(self._get(key, set) or ())
        if number is None:
            return members[0] if members else None
        return members[:number]

    # Sorted sets.

    def _ordered(self, key):
        current = self._get_sorted_set(key) or {}
        return sorted(current.items(), key=lambda item: (item[1], item[0]))

    def zadd(self, key, mapping):
        self._record("zadd", key, mapping)
        current = self._get_sorted_set(key)
        if current is None:
            current = self.data[key] = _SortedSet()
        added = len(set(mapping) - set(current))
        current.update(mapping)
        return added

    def zcard(self, key):
        self._record("zcard", key)
        return len(self._get_sorted_set(key) or {})

    def zscore(self, key, member):
        self._record("zscore", key, member)
        return (self._get_sorted_set(key) or {}).get(member)

    def zcount(self, key, minimum, maximum):
        self._record("zcount", key, minimum, maximum)
        above = _score_bound(minimum, True)
        below = _score_bound(maximum, False)
        return sum(
            1 for _, score in self._ordered(key)
            if above(score) and below(score)
        )

    def zrange(self, key, start, end, withscores=False):
        self._record("zrange", key, start, end, withscores=withscores)
        items = _range(self._ordered(key), start, end)
        if withscores:
            return [(member, score) for member, score in items]
        return [member for member, _ in items]

    # Server.

    def config_get(self, pattern="*"):
        self._record("config_get", pattern)
        return {"maxmemory": "0"}

    def shutdown(self, save=False, nosave=False):
        self._record("shutdown", save=save, nosave=nosave)

    def slaveof(self, host=None, port=None):
        self._record("slaveof", host, port)
        return True


class FakeFactory:
    """
    Connection factory stub. Unknown endpoints refuse connections.
    """

    def __init__(self, nodes):
        self.nodes = {str(endpoint): node for endpoint, node in nodes.items()}
        self.opened = []

    def __call__(self, endpoint, credentials, timeout):
        self.opened.append(str(endpoint))
        node = self.nodes.get(str(endpoint))
        if node is None:
            raise redis.exceptions.ConnectionError(
                "Error 111 connecting to %s. Connection refused." % (
                    endpoint,
                ),
            )
        if isinstance(node, Exception):
            raise node
        node.credentials = credentials
        node.closed = False
        return node
