#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import unittest

import redis.exceptions

import rmanager
import rmanager.endpoints
import rmanager.enums
import rmanager.exceptions
import rmanager.tests


REPLICATION = (
    "# Replication\r\n"
    "role:master\r\n"
    "connected_slaves:1\r\n"
    "slave0:ip=127.0.0.1,port=6380,state=online,offset=42,lag=0\r\n"
)

CLUSTER_NODES = (
    "abc123 127.0.0.1:7000@17000 myself,master - 0 0 1 connected 0-16383\n"
    "def456 127.0.0.1:7001@17001 slave abc123 0 0 1 connected\n"
)


class TestRedisClient(unittest.TestCase):
    def setUp(self):
        self.node = rmanager.tests.FakeRedis(info={
            "replication": REPLICATION,
            None: "# Server\r\nredis_version:7.2.4\r\n",
        })
        self.client = rmanager.RedisClient(
            "localhost:1,localhost:6379",
            rmanager.endpoints.Credentials(client_name="console"),
            connection_factory=rmanager.tests.FakeFactory({
                "localhost:6379": self.node,
            }),
        )

    def tearDown(self):
        self.client.close()

    def test_connection(self):
        self.assertEqual(
            "localhost:6379",
            str(self.client.connection.endpoint),
        )

    def test_family_commands(self):
        self.assertTrue(self.client.string("SET greeting hello", 1))
        self.assertEqual("hello", self.client.string("GET greeting", 1))
        self.assertEqual(1, self.client.hash("HSET user name Alice", 1))
        self.assertEqual(
            ["Alice", None],
            self.client.hash("HMGET user name age", 1),
        )
        self.assertEqual(2, self.client.list("LPUSH queue a b", 1))
        self.assertEqual("b", self.client.list("LINDEX queue 0", 1))
        self.assertEqual(1, self.client.set("SADD tags red", 1))
        self.assertEqual(1, self.client.zset("ZADD board 1 alice", 1))
        self.assertIsNone(self.client.zset("ZREM board alice", 1))

    def test_execute(self):
        self.client.execute("RPUSH letters a b c d", 2)

        self.assertSequenceEqual(
            ["a", "b"],
            self.client.execute("LRANGE letters 0 1", 2),
        )
        self.assertEqual(2, self.client.connection.database)

    def test_query(self):
        self.client.execute("HSET user name Alice")

        self.assertEqual(
            (-1, "hash", {"name": "Alice"}),
            self.client.query("user", 0, 10),
        )

    def test_scan(self):
        self.client.execute("SET a 1")
        self.client.execute("SET b 2")

        self.assertEqual(("0", ["a", "b"]), self.client.scan("0", "*", 10))

    def test_keys(self):
        self.client.execute("SET a 1")

        self.assertTrue(self.client.exists("a"))
        self.assertEqual("string", self.client.type("a"))
        self.assertEqual(-1, self.client.ttl("a"))
        self.assertEqual(1, self.client.delete("a"))
        self.assertFalse(self.client.exists("a"))

    def test_nodes(self):
        self.assertSequenceEqual([
            ("localhost", 6379, rmanager.enums.NodeRole.MASTER),
            ("127.0.0.1", 6380, rmanager.enums.NodeRole.SLAVE),
        ], self.client.nodes())

    def test_info(self):
        self.assertEqual("7.2.4", self.client.get_info()["redis_version"])
        self.assertEqual(rmanager.enums.NodeRole.MASTER, self.client.role())

    def test_slave_of(self):
        self.client.slave_of("10.0.0.1:6379")
        self.client.slave_of()

        self.assertEqual(
            [("10.0.0.1", 6379), (None, None)],
            [args for name, args, _ in self.node.calls if name == "slaveof"],
        )

    def test_cluster_commands(self):
        self.client.cluster_meet("10.0.0.5:7000")
        self.client.cluster_add_slots(0, 1, 2)
        self.client.cluster_reset(hard=True)

        self.assertEqual(
            [
                ("CLUSTER MEET", "10.0.0.5", 7000),
                ("CLUSTER ADDSLOTS", 0, 1, 2),
                ("CLUSTER RESET", "HARD"),
            ],
            [
                args for name, args, _ in self.node.calls
                if name == "execute_command" and args[0].startswith("CLUSTER")
            ],
        )

    def test_shutdown(self):
        self.assertTrue(self.client.shutdown(save=False))

        self.assertEqual(
            ("shutdown", (), {"save": False, "nosave": True}),
            self.node.calls[-1],
        )
        self.assertTrue(self.node.closed)

    def test_failed_shutdown_keeps_connection(self):
        self.node.failure = redis.exceptions.RedisError(
            "SHUTDOWN seems to have failed.",
        )

        with self.assertRaises(rmanager.exceptions.StoreResponseError):
            self.client.shutdown()

        self.node.failure = None
        self.assertFalse(self.node.closed)
        self.assertTrue(self.client.ping())

    def test_invalid_slot(self):
        with self.assertRaises(rmanager.exceptions.InvalidArgument):
            self.client.cluster_add_slots(16384)

    def test_close(self):
        with self.client:
            pass

        self.assertTrue(self.node.closed)


class TestRedisClusterClient(unittest.TestCase):
    def setUp(self):
        self.node = rmanager.tests.FakeRedis(cluster_nodes=CLUSTER_NODES)
        self.cluster = rmanager.tests.FakeRedis()
        self.client = rmanager.RedisClusterClient(
            "127.0.0.1:7000,127.0.0.1:7001",
            connection_factory=rmanager.tests.FakeFactory({
                "127.0.0.1:7000": self.node,
            }),
            cluster_factory=self._create_cluster,
        )

    def _create_cluster(self, endpoints, credentials, timeout):
        return self.cluster

    def test_data_commands_go_to_cluster(self):
        self.client.execute("SET greeting hello", 3)

        self.assertEqual("hello", self.cluster.get("greeting"))
        self.assertNotIn("execute_command", self.cluster.call_names)
        self.assertNotIn("set", self.node.call_names)

    def test_query(self):
        self.client.execute("RPUSH letters a b c")

        self.assertEqual(
            (-1, "list", ["a", "b"]),
            self.client.query("letters", 7, 1),
        )

    def test_cluster_nodes(self):
        nodes = self.client.cluster_nodes()

        self.assertSequenceEqual(
            [rmanager.enums.NodeRole.MASTER, rmanager.enums.NodeRole.SLAVE],
            [node.role for node in nodes],
        )
        self.assertEqual("0-16383", nodes[0].slot_range)

    def test_scan_runs_on_seed_node(self):
        self.node.set("seed", "1")

        self.assertEqual(["seed"], self.client.scan().items)

    def test_close(self):
        self.client.close()

        self.assertTrue(self.node.closed)
        self.assertTrue(self.cluster.closed)

    def test_cluster_unreachable_releases_node(self):
        node = rmanager.tests.FakeRedis()

        def factory(endpoints, credentials, timeout):
            raise redis.exceptions.RedisClusterException("down")

        with self.assertRaises(rmanager.exceptions.AllEndpointsUnreachable):
            rmanager.RedisClusterClient(
                "127.0.0.1:7000",
                connection_factory=rmanager.tests.FakeFactory({
                    "127.0.0.1:7000": node,
                }),
                cluster_factory=factory,
            )

        self.assertTrue(node.closed)
