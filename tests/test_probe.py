"""Unit tests: probe rounds, auxiliary RPC checks, round deadline."""
import asyncio
import json
import unittest

import httpx

from bench.probe import parse_block_height, probe_all, probe_provider
from core.types import CONFIG_MISSING, Endpoint, PrecisionMode, ProviderName, RequestType, Transport

GAS_20_GWEI = "0x4a817c800"


class SleepRecorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def rpc_handler(seen, block="0x10", status=200, headers=None):
    def handler(request):
        payload = json.loads(request.content)
        seen.append(payload)
        if status != 200:
            return httpx.Response(status, text="unavailable")
        if isinstance(payload, list):
            return httpx.Response(200, json=[{"jsonrpc": "2.0", "id": p["id"], "result": block} for p in payload])
        result = {
            "eth_blockNumber": block,
            "eth_getBlockByNumber": {"number": block, "transactions": []},
            "eth_getBalance": "0x0",
            "eth_gasPrice": GAS_20_GWEI,
        }[payload["method"]]
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result}, headers=headers)
    return handler


RPC = Endpoint("https://node.test/v2/k", Transport.RPC)


class TestParseBlockHeight(unittest.TestCase):
    def test_shapes(self):
        self.assertEqual(parse_block_height({"result": "0x10"}), 16)
        self.assertEqual(parse_block_height({"result": {"number": "0x11"}}), 17)
        self.assertEqual(parse_block_height({"data": {"items": [{"height": 18}]}}), 18)
        self.assertEqual(parse_block_height({"data": {"items": []}}), 0)
        self.assertEqual(parse_block_height("not json"), 0)
        self.assertEqual(parse_block_height({"result": "0xzz"}), 0)


class TestProbeProvider(unittest.IsolatedAsyncioTestCase):
    async def test_light_rpc_runs_all_checks(self):
        seen, sleep = [], SleepRecorder()
        async with httpx.AsyncClient(transport=httpx.MockTransport(rpc_handler(seen, headers={"Server": "nginx"}))) as client:
            out = await probe_provider(client, ProviderName.ALCHEMY, RPC, RequestType.LIGHT, 2, sleep=sleep)
        self.assertEqual(len(out.samples), 2)
        self.assertTrue(all(s >= 1 for s in out.samples))
        self.assertEqual(out.successes, 2)
        self.assertEqual(out.block_height, 16)
        self.assertTrue(out.archive)
        self.assertEqual(out.gas, 20.0)
        self.assertGreaterEqual(out.batch_latency, 1)
        self.assertIn("server", out.headers)
        self.assertIsNone(out.last_error)
        # pause only between rounds
        self.assertEqual(sleep.calls, [0.1])
        methods = [p["method"] for p in seen if isinstance(p, dict)]
        self.assertEqual(methods.count("eth_blockNumber"), 2)
        batches = [p for p in seen if isinstance(p, list)]
        self.assertEqual(len(batches), 1)
        self.assertEqual(len(batches[0]), 10)

    async def test_heavy_rpc_skips_batch(self):
        seen = []
        async with httpx.AsyncClient(transport=httpx.MockTransport(rpc_handler(seen, block="0x20"))) as client:
            out = await probe_provider(client, ProviderName.INFURA, RPC, RequestType.HEAVY, 5, sleep=SleepRecorder())
        self.assertEqual(out.successes, 5)
        self.assertEqual(out.block_height, 32)
        self.assertEqual(out.batch_latency, 0)
        self.assertFalse(any(isinstance(p, list) for p in seen))
        self.assertEqual(sum(1 for p in seen if p["method"] == "eth_getBlockByNumber"), 5)

    async def test_http_error_rounds_record_zero(self):
        seen = []
        async with httpx.AsyncClient(transport=httpx.MockTransport(rpc_handler(seen, status=503))) as client:
            out = await probe_provider(client, ProviderName.ALCHEMY, RPC, RequestType.LIGHT, 2, sleep=SleepRecorder())
        self.assertEqual(out.samples, [0, 0])
        self.assertEqual(out.successes, 0)
        self.assertEqual(out.last_error, "Error 503")
        self.assertIsNone(out.archive)
        self.assertIsNone(out.gas)
        self.assertEqual(out.batch_latency, 0)

    async def test_network_error_is_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            out = await probe_provider(client, ProviderName.ALCHEMY, RPC, RequestType.LIGHT, 2, sleep=SleepRecorder())
        self.assertEqual(out.samples, [0, 0])
        self.assertEqual(out.last_error, "Timeout")

    async def test_rpc_error_member_is_failure(self):
        def handler(request):
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "limit"}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            out = await probe_provider(client, ProviderName.ALCHEMY, RPC, RequestType.LIGHT, 2, sleep=SleepRecorder())
        self.assertEqual(out.samples, [0, 0])
        self.assertEqual(out.last_error, "RPC Error")
        self.assertFalse(out.archive)

    async def test_unconfigured_sends_nothing(self):
        seen = []
        async with httpx.AsyncClient(transport=httpx.MockTransport(rpc_handler(seen))) as client:
            out = await probe_provider(client, ProviderName.CODEX, None, RequestType.LIGHT, 5, sleep=SleepRecorder())
        self.assertFalse(out.configured)
        self.assertEqual(out.samples, [0] * 5)
        self.assertEqual(out.successes, 0)
        self.assertEqual(out.last_error, CONFIG_MISSING)
        self.assertEqual(seen, [])

    async def test_rest_has_no_auxiliary_checks(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"data": {"items": [{"height": 19000000}]}})

        ep = Endpoint("https://api.test/v1/1/block_v2/latest/", Transport.REST, api_key="k", key_param="key")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            out = await probe_provider(client, ProviderName.COVALENT, ep, RequestType.LIGHT, 2, sleep=SleepRecorder())
        self.assertEqual(len(seen), 2)
        self.assertEqual(seen[0].url.params["key"], "k")
        self.assertEqual(out.block_height, 19000000)
        self.assertIsNone(out.archive)
        self.assertIsNone(out.gas)

    async def test_graphql_errors_are_failures(self):
        def handler(request):
            return httpx.Response(200, json={"data": None, "errors": [{"message": "Cannot query field \"getNetworks\""}]})

        ep = Endpoint("https://graph.test/graphql", Transport.GRAPHQL, api_key="k", auth_header=True)
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            out = await probe_provider(client, ProviderName.CODEX, ep, RequestType.LIGHT, 2, sleep=SleepRecorder())
        self.assertEqual(out.samples, [0, 0])
        self.assertEqual(out.successes, 0)
        self.assertEqual(out.last_error, "GraphQL Error")

    async def test_graphql_data_is_success(self):
        def handler(request):
            return httpx.Response(200, json={"data": {"getNetworks": [{"id": 1, "name": "Ethereum"}]}})

        ep = Endpoint("https://graph.test/graphql", Transport.GRAPHQL, api_key="k", auth_header=True)
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            out = await probe_provider(client, ProviderName.CODEX, ep, RequestType.LIGHT, 2, sleep=SleepRecorder())
        self.assertEqual(out.successes, 2)
        self.assertIsNone(out.last_error)


class TestProbeAll(unittest.IsolatedAsyncioTestCase):
    async def test_hung_provider_does_not_stall_round(self):
        async def handler(request):
            if request.url.host == "slow.test":
                await asyncio.sleep(10)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x10"})

        targets = [
            (ProviderName.ALCHEMY, Endpoint("https://slow.test", Transport.RPC)),
            (ProviderName.INFURA, Endpoint("https://fast.test", Transport.RPC)),
            (ProviderName.CODEX, None),
        ]
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            outcomes = await probe_all(
                client, targets, PrecisionMode.STANDARD, RequestType.LIGHT,
                round_timeout=0.2, sleep=SleepRecorder(),
            )
        self.assertEqual([o.name for o in outcomes], [ProviderName.ALCHEMY, ProviderName.INFURA, ProviderName.CODEX])
        slow, fast, missing = outcomes
        self.assertEqual(slow.samples, [0, 0])
        self.assertEqual(slow.last_error, "Timeout")
        self.assertEqual(fast.successes, 2)
        self.assertFalse(missing.configured)
