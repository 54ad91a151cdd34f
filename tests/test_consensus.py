"""Unit tests: majority vote, mismatch flags, eth_call validation."""
import json
import unittest

import httpx

from bench.consensus import DATA_FOUND, DECODE_ERROR, decode_result, flag_mismatches, majority, validate
from core.types import AssetClass, Chain, ConsensusEntry, Endpoint, ProviderName, Transport


class TestDecode(unittest.TestCase):
    def test_numeric(self):
        self.assertEqual(decode_result("totalSupply", "0x10"), "16")

    def test_string_methods_only_report_presence(self):
        self.assertEqual(decode_result("uri", "0x" + "00" * 96), DATA_FOUND)

    def test_empty(self):
        self.assertIsNone(decode_result("totalSupply", "0x"))
        self.assertIsNone(decode_result("totalSupply", ""))
        self.assertIsNone(decode_result("totalSupply", None))

    def test_undecodable(self):
        self.assertEqual(decode_result("totalSupply", "0xzz"), DECODE_ERROR)


class TestMajority(unittest.TestCase):
    def test_mode(self):
        self.assertEqual(majority(["A", "A", "B"]), "A")
        self.assertEqual(majority(["B", "A", "A"]), "A")

    def test_tie_goes_to_first_seen(self):
        for _ in range(5):
            self.assertEqual(majority(["A", "B"]), "A")
        self.assertEqual(majority(["B", "A"]), "B")

    def test_empty(self):
        self.assertIsNone(majority([]))

    def test_flags(self):
        entries = [
            ConsensusEntry(ProviderName.ALCHEMY, True, result="A"),
            ConsensusEntry(ProviderName.INFURA, True, result="A"),
            ConsensusEntry(ProviderName.QUICKNODE, True, result="B"),
            ConsensusEntry(ProviderName.CODEX, False),
        ]
        flagged = flag_mismatches(entries, "A")
        self.assertEqual([e.is_mismatch for e in flagged], [False, False, True, False])


def hosts_handler(results, seen):
    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": results[request.url.host]})
    return handler


class TestValidate(unittest.IsolatedAsyncioTestCase):
    async def test_dissenter_flagged(self):
        seen = []
        results = {"a.test": "0x10", "b.test": "0x10", "c.test": "0x11"}
        endpoints = {
            ProviderName.ALCHEMY: Endpoint("https://a.test", Transport.RPC),
            ProviderName.INFURA: Endpoint("https://b.test", Transport.RPC),
            ProviderName.QUICKNODE: Endpoint("https://c.test", Transport.RPC),
            ProviderName.COVALENT: Endpoint("https://api.test", Transport.REST),
            ProviderName.CODEX: None,
        }
        async with httpx.AsyncClient(transport=httpx.MockTransport(hosts_handler(results, seen))) as client:
            report = await validate(client, Chain.ETHEREUM, AssetClass.ERC20, providers=tuple(endpoints), endpoints=endpoints)

        self.assertEqual(report.consensus, "16")
        self.assertEqual(report.mismatches, [ProviderName.QUICKNODE])
        by_name = {e.name: e for e in report.entries}
        self.assertFalse(by_name[ProviderName.COVALENT].success)
        self.assertIsNone(by_name[ProviderName.CODEX].result)
        self.assertFalse(by_name[ProviderName.CODEX].is_mismatch)
        self.assertEqual(by_name[ProviderName.QUICKNODE].raw, "0x11")
        # only the three RPC endpoints were queried, with the same call
        self.assertEqual(len(seen), 3)
        for payload in seen:
            self.assertEqual(payload["method"], "eth_call")
            self.assertEqual(payload["params"][0]["data"], "0x18160ddd")
            self.assertEqual(payload["params"][1], "latest")

    async def test_empty_result_is_failure(self):
        results = {"a.test": "0x", "b.test": "0x05"}
        endpoints = {
            ProviderName.ALCHEMY: Endpoint("https://a.test", Transport.RPC),
            ProviderName.INFURA: Endpoint("https://b.test", Transport.RPC),
        }
        async with httpx.AsyncClient(transport=httpx.MockTransport(hosts_handler(results, []))) as client:
            report = await validate(client, Chain.ETHEREUM, providers=tuple(endpoints), endpoints=endpoints)
        self.assertEqual(report.consensus, "5")
        self.assertFalse(report.entries[0].success)
        self.assertFalse(report.entries[0].is_mismatch)

    async def test_decode_error_votes(self):
        results = {"a.test": "0xzz", "b.test": "0xzz", "c.test": "0x01"}
        endpoints = {
            ProviderName.ALCHEMY: Endpoint("https://a.test", Transport.RPC),
            ProviderName.INFURA: Endpoint("https://b.test", Transport.RPC),
            ProviderName.QUICKNODE: Endpoint("https://c.test", Transport.RPC),
        }
        async with httpx.AsyncClient(transport=httpx.MockTransport(hosts_handler(results, []))) as client:
            report = await validate(client, Chain.ETHEREUM, providers=tuple(endpoints), endpoints=endpoints)
        self.assertEqual(report.consensus, DECODE_ERROR)
        self.assertEqual(report.mismatches, [ProviderName.QUICKNODE])

    async def test_erc1155_uri_with_token_id(self):
        seen = []
        endpoints = {ProviderName.ALCHEMY: Endpoint("https://a.test", Transport.RPC)}
        results = {"a.test": "0x" + "00" * 31 + "20" + "00" * 32}
        async with httpx.AsyncClient(transport=httpx.MockTransport(hosts_handler(results, seen))) as client:
            report = await validate(client, Chain.ETHEREUM, AssetClass.ERC1155, providers=tuple(endpoints), endpoints=endpoints)
        self.assertEqual(report.consensus, DATA_FOUND)
        self.assertEqual(seen[0]["params"][0]["data"], "0x0e89341c" + "0" * 64)

    async def test_no_contract_for_chain(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(hosts_handler({}, []))) as client:
            with self.assertLogs("bench.consensus", level="WARNING"):
                report = await validate(client, Chain.BASE, AssetClass.ERC20)
        self.assertIsNone(report.query)
        self.assertEqual(report.entries, ())
