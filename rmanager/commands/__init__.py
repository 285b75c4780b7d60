#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Console command tokenizer and per-family dispatchers.

Each dispatcher owns an ordered table of verb prefixes. The first prefix the
verb starts with wins, so longer prefixes go first (HGETALL before HGET).
"""

import collections
import logging
import math
import re

import rmanager.enums
import rmanager.exceptions
import rmanager.utilities


class Command:
    """
    A tokenized console command. The verb is upper-cased, the tokens keep
    their original case.
    """

    def __init__(self, tokens):
        if not tokens:
            raise rmanager.exceptions.MalformedCommand("Command is empty.")
        self._tokens = tuple(tokens)
        self._verb = self._tokens[0].upper()

    @property
    def verb(self):
        return self._verb

    @property
    def tokens(self):
        return self._tokens

    @property
    def key(self):
        return self._tokens[1] if len(self._tokens) > 1 else None

    @property
    def arguments(self):
        """
        Gets the tokens after the verb and the key.
        """

        return self._tokens[2:]

    def __len__(self):
        return len(self._tokens)

    def __getitem__(self, index):
        return self._tokens[index]

    def __iter__(self):
        return iter(self._tokens)

    def __repr__(self):
        return "Command(%r)" % (self._tokens, )


def tokenize(raw):
    """
    Splits the raw command on runs of whitespace.
    """

    if raw is None or not raw.strip():
        raise rmanager.exceptions.MalformedCommand("Command is empty.")
    return Command(rmanager.utilities.Splitter.by_space(raw))


class Operation(
    collections.namedtuple("Operation", ["name", "args", "kwargs"]),
):
    """
    A marshalled store call which is not executed yet.
    """

    __slots__ = ()

    def __new__(cls, name, args=(), kwargs=None):
        return super(Operation, cls).__new__(
            cls,
            name,
            tuple(args),
            dict(kwargs or {}),
        )

    def invoke(self, connection):
        return connection.call(self.name, *self.args, **self.kwargs)


def _expect(command, count, usage):
    if len(command) < count:
        raise rmanager.exceptions.MalformedCommand("Expected> " + usage)


# ASCII decimals only, as the store parses them.
_INTEGER = re.compile(r"[+-]?[0-9]+")

# Finite decimal or exponent notation. inf and nan are rejected.
_SCORE = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?")


def _integer(token, name):
    if _INTEGER.fullmatch(token) is None:
        raise rmanager.exceptions.InvalidArgument(
            "%s is not an integer: %r." % (name, token),
        )
    return int(token)


def _score(token):
    if _SCORE.fullmatch(token) is None:
        raise rmanager.exceptions.InvalidArgument(
            "score is not a finite number: %r." % (token, ),
        )
    score = float(token)
    if math.isinf(score):
        raise rmanager.exceptions.InvalidArgument(
            "score is out of range: %r." % (token, ),
        )
    return score


class Dispatcher:
    """
    Base family dispatcher.
    """

    # Family name, equal to the TYPE reply for keys of the family.
    family = None

    # (verb prefix, handler method name) pairs, most specific first.
    patterns = ()

    def __init__(self):
        self._logger = logging.getLogger(
            "rmanager.commands.%s" % self.__class__.__name__,
        )

    def match(self, verb):
        """
        Gets the handler for the verb or None.
        """

        verb = verb.upper()
        for prefix, handler_name in self.patterns:
            if verb.startswith(prefix):
                return getattr(self, handler_name)
        return None

    def marshal(self, command):
        """
        Converts the command into the operation. Returns None if the verb
        is not recognized.
        """

        handler = self.match(command.verb)
        return handler(command) if handler is not None else None

    def dispatch(self, connection, command, database=None):
        if isinstance(command, str):
            command = tokenize(command)
        operation = self.marshal(command)
        if operation is None:
            self._logger.debug(
                "No %s command matches %s.",
                self.family,
                command.verb,
            )
            return None
        connection.select(database)
        self._logger.debug("%s %r", operation.name, operation.args)
        return operation.invoke(connection)


class StringDispatcher(Dispatcher):
    family = rmanager.enums.KeyType.STRING

    patterns = (
        ("GET", "_on_get"),
        ("SET", "_on_set"),
    )

    def _on_get(self, command):
        _expect(command, 2, "GET key")
        return Operation("get", (command.key, ))

    def _on_set(self, command):
        _expect(command, 3, "SET key value")
        return Operation("set", (command.key, command[2]))


class HashDispatcher(Dispatcher):
    family = rmanager.enums.KeyType.HASH

    patterns = (
        ("HGETALL", "_on_hgetall"),
        ("HGET", "_on_hget"),
        ("HMGET", "_on_hmget"),
        ("HKEYS", "_on_hkeys"),
        ("HSET", "_on_hset"),
    )

    def _on_hgetall(self, command):
        _expect(command, 2, "HGETALL key")
        return Operation("hgetall", (command.key, ))

    def _on_hget(self, command):
        _expect(command, 3, "HGET key field")
        return Operation("hget", (command.key, command[2]))

    def _on_hmget(self, command):
        _expect(command, 3, "HMGET key field [field ...]")
        return Operation("hmget", (command.key, list(command.arguments)))

    def _on_hkeys(self, command):
        _expect(command, 2, "HKEYS key")
        return Operation("hkeys", (command.key, ))

    def _on_hset(self, command):
        items = command.arguments
        if len(command) < 4 or len(items) % 2:
            raise rmanager.exceptions.MalformedCommand(
                "Expected> HSET key field value [field value ...]",
            )
        mapping = collections.OrderedDict(zip(items[::2], items[1::2]))
        return Operation("hset", (command.key, ), {"mapping": mapping})


class ListDispatcher(Dispatcher):
    family = rmanager.enums.KeyType.LIST

    patterns = (
        ("LPUSH", "_on_lpush"),
        ("RPUSH", "_on_rpush"),
        ("LINDEX", "_on_lindex"),
        ("LLEN", "_on_llen"),
        ("LRANGE", "_on_lrange"),
    )

    def _on_lpush(self, command):
        _expect(command, 3, "LPUSH key value [value ...]")
        return Operation("lpush", (command.key, ) + command.arguments)

    def _on_rpush(self, command):
        _expect(command, 3, "RPUSH key value [value ...]")
        return Operation("rpush", (command.key, ) + command.arguments)

    def _on_lindex(self, command):
        _expect(command, 3, "LINDEX key index")
        return Operation(
            "lindex",
            (command.key, _integer(command[2], "index")),
        )

    def _on_llen(self, command):
        _expect(command, 2, "LLEN key")
        return Operation("llen", (command.key, ))

    def _on_lrange(self, command):
        _expect(command, 4, "LRANGE key start stop")
        return Operation("lrange", (
            command.key,
            _integer(command[2], "start"),
            _integer(command[3], "stop"),
        ))


class SetDispatcher(Dispatcher):
    family = rmanager.enums.KeyType.SET

    patterns = (
        ("SCARD", "_on_scard"),
        ("SADD", "_on_sadd"),
        ("SMEMBERS", "_on_smembers"),
        ("SRANDMEMBER", "_on_srandmember"),
    )

    def _on_scard(self, command):
        _expect(command, 2, "SCARD key")
        return Operation("scard", (command.key, ))

    def _on_sadd(self, command):
        _expect(command, 3, "SADD key member [member ...]")
        return Operation("sadd", (command.key, ) + command.arguments)

    def _on_smembers(self, command):
        _expect(command, 2, "SMEMBERS key")
        return Operation("smembers", (command.key, ))

    def _on_srandmember(self, command):
        _expect(command, 2, "SRANDMEMBER key [count]")
        count = _integer(command[2], "count") if len(command) > 2 else 1
        return Operation("srandmember", (command.key, count))


class SortedSetDispatcher(Dispatcher):
    family = rmanager.enums.KeyType.ZSET

    patterns = (
        ("ZCARD", "_on_zcard"),
        ("ZSCORE", "_on_zscore"),
        ("ZCOUNT", "_on_zcount"),
        ("ZRANGE", "_on_zrange"),
        ("ZADD", "_on_zadd"),
    )

    def _on_zcard(self, command):
        _expect(command, 2, "ZCARD key")
        return Operation("zcard", (command.key, ))

    def _on_zscore(self, command):
        _expect(command, 3, "ZSCORE key member")
        return Operation("zscore", (command.key, command[2]))

    def _on_zcount(self, command):
        # Bounds are passed as is: "-inf", "(1" are valid.
        _expect(command, 4, "ZCOUNT key min max")
        return Operation("zcount", (command.key, command[2], command[3]))

    def _on_zrange(self, command):
        _expect(command, 4, "ZRANGE key start stop [WITHSCORES]")
        return Operation(
            "zrange",
            (
                command.key,
                _integer(command[2], "start"),
                _integer(command[3], "stop"),
            ),
            {"withscores": len(command) > 4},
        )

    def _on_zadd(self, command):
        _expect(command, 4, "ZADD key score member")
        score = _score(command[2])
        return Operation("zadd", (command.key, {command[3]: score}))


def default_dispatchers():
    return [
        StringDispatcher(),
        HashDispatcher(),
        ListDispatcher(),
        SetDispatcher(),
        SortedSetDispatcher(),
    ]


class CommandRouter:
    """
    Routes console commands to the family dispatchers.
    """

    def __init__(self, dispatchers=None):
        self._logger = logging.getLogger("rmanager.commands.CommandRouter")
        self._dispatchers = collections.OrderedDict(
            (dispatcher.family, dispatcher)
            for dispatcher in (dispatchers or default_dispatchers())
        )

    @property
    def families(self):
        return list(self._dispatchers)

    def dispatcher(self, family):
        try:
            return self._dispatchers[family]
        except KeyError:
            raise rmanager.exceptions.UnsupportedOperation(
                "Unknown command family: %r." % (family, ),
            )

    def resolve(self, verb):
        """
        Gets the first dispatcher recognizing the verb or None.
        """

        for dispatcher in self._dispatchers.values():
            if dispatcher.match(verb) is not None:
                return dispatcher
        return None

    def dispatch(self, connection, family, command, database=None):
        """
        Dispatches the command within the family. An unrecognized verb
        yields None.
        """

        return self.dispatcher(family).dispatch(
            connection,
            tokenize(command) if isinstance(command, str) else command,
            database,
        )

    def execute(self, connection, command, database=None):
        """
        Dispatches the command to the family recognizing its verb.
        """

        if isinstance(command, str):
            command = tokenize(command)
        dispatcher = self.resolve(command.verb)
        if dispatcher is None:
            raise rmanager.exceptions.UnsupportedOperation(
                "Unsupported command: %s." % command.verb,
            )
        self._logger.debug(
            "%s is routed to %s.",
            command.verb,
            dispatcher.family,
        )
        return dispatcher.dispatch(connection, command, database)
