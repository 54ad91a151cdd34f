"""Unit tests: security audit deductions."""
import unittest

from bench.security import audit
from core.types import CONFIG_MISSING, Endpoint, Transport


def rpc(url):
    return Endpoint(url=url, transport=Transport.RPC)


class TestAudit(unittest.TestCase):
    def test_clean_https(self):
        r = audit(rpc("https://node.example/v2/k"), {"content-type": "application/json"})
        self.assertEqual(r.score, 100)
        self.assertEqual(r.issues, ())

    def test_insecure_scheme(self):
        r = audit(rpc("http://node.example"), {})
        self.assertEqual(r.score, 50)
        self.assertEqual(len(r.issues), 1)

    def test_each_leaked_header_costs_ten(self):
        r = audit(rpc("https://node.example"), {"Server": "nginx"})
        self.assertEqual(r.score, 90)
        self.assertIn("Header Leak: server", r.issues)
        r = audit(rpc("https://node.example"), {"x-powered-by": "Express", "server": "nginx"})
        self.assertEqual(r.score, 80)

    def test_order_independent(self):
        a = audit(rpc("http://n.example"), {"server": "a", "x-powered-by": "b"})
        b = audit(rpc("http://n.example"), {"x-powered-by": "b", "server": "a"})
        self.assertEqual(a.score, b.score)
        self.assertEqual(a.score, 30)
        self.assertEqual(sorted(a.issues), sorted(b.issues))

    def test_missing_endpoint(self):
        r = audit(None, {})
        self.assertEqual(r.score, 0)
        self.assertEqual(r.issues, (CONFIG_MISSING,))
        r = audit(Endpoint(url=None, transport=Transport.RPC), {})
        self.assertEqual(r.score, 0)

    def test_non_rpc_not_audited(self):
        rest = Endpoint(url="http://api.example", transport=Transport.REST)
        self.assertIsNone(audit(rest, {"server": "x"}))
