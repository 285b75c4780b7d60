#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Shared variables.
"""

DEFAULT_REDIS_PORT = 6379

# Connect and read timeout applied to every network operation, in seconds.
TIMEOUT = 5.0

# Auto-query preview size.
DEFAULT_QUERY_LIMIT = 50

# SCAN COUNT hint.
DEFAULT_SCAN_COUNT = 100

# Cursor that starts and terminates an enumeration.
SCAN_CURSOR_START = "0"

# Minimum amount of fields in a CLUSTER NODES line.
CLUSTER_NODES_MIN_FIELDS = 8

# Amount of hash slots in a cluster.
CLUSTER_SLOTS = 16384
