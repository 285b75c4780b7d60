#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Console tools.
"""

import argparse
import json
import logging
import os

import rmanager
import rmanager.endpoints
import rmanager.exceptions
import rmanager.shared


def _add_connection_arguments(parser):
    parser.add_argument(
        "--nodes",
        dest="nodes",
        type=str,
        metavar="HOST:PORT[,HOST:PORT ...]",
        default="localhost:%d" % rmanager.shared.DEFAULT_REDIS_PORT,
        help="candidate endpoints, tried in order (default: %(default)s)",
    )
    parser.add_argument(
        "--password",
        dest="password",
        type=str,
        metavar="PASSWORD",
        default=None,
        help="password",
    )
    parser.add_argument(
        "--client-name",
        dest="client_name",
        type=str,
        metavar="NAME",
        default=None,
        help="client connection name",
    )
    parser.add_argument(
        "--cluster",
        dest="cluster",
        default=False,
        action="store_true",
        help="connect to a Redis Cluster",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "FATAL"],
        default="WARNING",
        dest="log_level",
        help="logging level (default: %(default)s)",
        metavar="LEVEL",
        type=str,
    )


def _configure_logging(args):
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(process)d] %(name)s %(levelname)s: %(message)s",
    )


def _create_client(args):
    endpoints = rmanager.endpoints.EndpointSet.parse(args.nodes)
    credentials = rmanager.endpoints.Credentials(
        password=args.password,
        client_name=args.client_name,
    )
    if args.cluster:
        return rmanager.RedisClusterClient(endpoints, credentials)
    return rmanager.RedisClient(endpoints, credentials)


def _to_json(value):
    """
    Converts the reply into a JSON-friendly value.
    """

    if isinstance(value, dict):
        return {key: _to_json(item) for key, item in value.items()}
    elif isinstance(value, (list, tuple, set)):
        items = [_to_json(item) for item in value]
        return sorted(items, key=str) if isinstance(value, set) else items
    elif isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    return value


def _run(logger, action):
    try:
        result = action()
    except rmanager.exceptions.AllEndpointsUnreachable as ex:
        logger.fatal(str(ex))
        return os.EX_UNAVAILABLE
    except rmanager.exceptions.AuthenticationError as ex:
        logger.fatal(str(ex))
        return os.EX_NOPERM
    except (
        rmanager.exceptions.CommandError,
        rmanager.exceptions.ParseError,
    ) as ex:
        logger.error(str(ex))
        return os.EX_DATAERR
    except rmanager.exceptions.RedisManagerError as ex:
        logger.error(str(ex))
        return os.EX_SOFTWARE
    print(json.dumps(_to_json(result), indent=2, default=str))
    return os.EX_OK


def topology():
    """
    Prints the replication or cluster topology.
    """

    parser = argparse.ArgumentParser(
        description="Print the Redis topology as JSON.",
        formatter_class=argparse.RawTextHelpFormatter,
        prog="rmanager-topology",
    )
    _add_connection_arguments(parser)
    parser.add_argument(
        "--skip-malformed",
        dest="skip_malformed",
        default=False,
        action="store_true",
        help="skip malformed CLUSTER NODES lines instead of failing",
    )
    args = parser.parse_args()
    _configure_logging(args)
    logger = logging.getLogger("rmanager.tools.topology")

    def action():
        with _create_client(args) as client:
            if args.cluster:
                nodes = client.cluster_nodes(
                    skip_malformed=args.skip_malformed,
                )
            else:
                nodes = client.nodes()
            return [node._asdict() for node in nodes]

    return _run(logger, action)


def command():
    """
    Runs a single console command.
    """

    parser = argparse.ArgumentParser(
        description="Run a Redis console command and print the reply as JSON.",
        formatter_class=argparse.RawTextHelpFormatter,
        prog="rmanager-command",
    )
    _add_connection_arguments(parser)
    parser.add_argument(
        "--db",
        dest="database",
        type=int,
        metavar="DB",
        default=0,
        help="logical database (default: %(default)s)",
    )
    parser.add_argument(
        "command",
        nargs="+",
        metavar="TOKEN",
        help="command, e.g. HGETALL mykey",
    )
    args = parser.parse_args()
    _configure_logging(args)
    logger = logging.getLogger("rmanager.tools.command")

    def action():
        with _create_client(args) as client:
            return client.execute(" ".join(args.command), args.database)

    return _run(logger, action)
