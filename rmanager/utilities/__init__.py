#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Common utility functions and classes.
"""

import re


class Splitter:

    _spaces = re.compile(r"\s+")

    @classmethod
    def by_space(cls, text):
        """
        Splits the text on runs of whitespace. Leading and trailing
        whitespace produce no empty items.
        """

        return [item for item in cls._spaces.split(text) if item]

    @classmethod
    def by_commas(cls, text):
        return text.split(",")

    @classmethod
    def by_equal_sign(cls, text):
        """
        Splits "key=value" into a pair. The value is empty if there is
        no equal sign.
        """

        key, _, value = text.partition("=")
        return key, value

    @classmethod
    def host_and_port(cls, address):
        """
        Splits "host:port" on the last colon. The port is not converted.
        """

        host, separator, port = address.rpartition(":")
        if not separator:
            raise ValueError("Expected host:port, got %r." % address)
        return host, port


class Converter:

    @classmethod
    def to_str(cls, data):
        """
        Decodes the store reply if it is not decoded yet.
        """

        if isinstance(data, bytes):
            return data.decode("utf-8")
        return data
