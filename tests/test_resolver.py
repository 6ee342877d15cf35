"""Tests for content reference resolution (httpx mock transport, no network)."""
import base64
import unittest

import httpx

from src.modkeeper.resolver import ContentResolver, ResolverConfig


GATEWAYS = ("https://gw-one.test/ipfs/", "https://gw-two.test/ipfs/", "https://gw-three.test/ipfs/")


class ResolverTestCase(unittest.TestCase):
    def _resolver(self, handler=None, **config) -> ContentResolver:
        self.calls: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.calls.append(request)
            if handler is None:
                return httpx.Response(500)
            return handler(request)

        config.setdefault("ipfs_gateways", GATEWAYS)
        client = httpx.Client(transport=httpx.MockTransport(record))
        return ContentResolver(ResolverConfig(**config), client=client)


class TestInlineSchemes(ResolverTestCase):
    def test_inline_text_is_percent_decoded(self):
        resolved = self._resolver().resolve("meow:text:Hello%20World")
        self.assertEqual(resolved.text, "Hello World")
        self.assertEqual(resolved.scheme, "inline")
        self.assertEqual(self.calls, [])

    def test_inline_text_keeps_raw_payload_when_decoding_fails(self):
        resolved = self._resolver().resolve("meow:text:caf%E0%A4%A")
        self.assertEqual(resolved.text, "caf%E0%A4%A")

    def test_inline_text_is_truncated_to_cap(self):
        resolved = self._resolver(max_chars=5).resolve("meow:text:abcdefgh")
        self.assertEqual(resolved.text, "abcde")

    def test_custom_inline_prefix(self):
        resolved = self._resolver(inline_text_prefix="board:text:").resolve("board:text:hi%21")
        self.assertEqual(resolved.text, "hi!")

    def test_base64_data_uri(self):
        payload = base64.b64encode("héllo wörld".encode("utf-8")).decode("ascii")
        resolved = self._resolver().resolve(f"data:text/plain;base64,{payload}")
        self.assertEqual(resolved.text, "héllo wörld")
        self.assertEqual(resolved.scheme, "data")
        self.assertEqual(self.calls, [])

    def test_base64_data_uri_without_padding(self):
        resolved = self._resolver().resolve("data:text/plain;charset=utf-8;base64,aGk")
        self.assertEqual(resolved.text, "hi")

    def test_invalid_base64_resolves_to_none(self):
        self.assertIsNone(self._resolver().resolve("data:text/plain;base64,abcde"))

    def test_plain_data_uri(self):
        resolved = self._resolver().resolve("data:text/plain,Hello%2C%20there")
        self.assertEqual(resolved.text, "Hello, there")


class TestUnsupportedReferences(ResolverTestCase):
    def test_empty_reference_makes_no_call(self):
        resolver = self._resolver()
        self.assertIsNone(resolver.resolve(""))
        self.assertIsNone(resolver.resolve(None))
        self.assertEqual(self.calls, [])

    def test_unknown_scheme_and_schemeless_make_no_call(self):
        resolver = self._resolver()
        for ref in ("ftp://example.com/a.txt", "just some words", "ar://tx-id"):
            self.assertIsNone(resolver.resolve(ref))
        self.assertEqual(self.calls, [])


class TestNetworkSchemes(ResolverTestCase):
    def test_http_success(self):
        resolver = self._resolver(lambda r: httpx.Response(200, text="posted text"))
        resolved = resolver.resolve("https://example.com/post.txt")
        self.assertEqual(resolved.text, "posted text")
        self.assertEqual(resolved.endpoint, "https://example.com/post.txt")

    def test_http_error_status_is_none(self):
        resolver = self._resolver(lambda r: httpx.Response(404, text="missing"))
        self.assertIsNone(resolver.resolve("https://example.com/missing.txt"))

    def test_http_transport_error_is_absorbed(self):
        def boom(request):
            raise httpx.ConnectError("refused", request=request)

        self.assertIsNone(self._resolver(boom).resolve("http://example.com/a"))

    def test_mislabeled_content_type_is_still_accepted(self):
        resolver = self._resolver(
            lambda r: httpx.Response(
                200,
                content=b"plain words",
                headers={"content-type": "application/octet-stream"},
            )
        )
        self.assertEqual(resolver.resolve("https://example.com/blob").text, "plain words")

    def test_http_body_is_truncated_to_cap(self):
        resolver = self._resolver(lambda r: httpx.Response(200, text="x" * 500), max_chars=100)
        self.assertEqual(len(resolver.resolve("https://example.com/big").text), 100)

    def test_ipfs_falls_back_across_gateways(self):
        def handler(request):
            host = request.url.host
            if host == "gw-one.test":
                return httpx.Response(502)
            if host == "gw-two.test":
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, text="from gateway three")

        resolved = self._resolver(handler).resolve("ipfs://bafycid/post.txt")
        self.assertEqual(resolved.text, "from gateway three")
        self.assertEqual(resolved.scheme, "ipfs")
        self.assertEqual(resolved.endpoint, "https://gw-three.test/ipfs/bafycid/post.txt")
        self.assertEqual([c.url.host for c in self.calls], ["gw-one.test", "gw-two.test", "gw-three.test"])

    def test_ipfs_empty_body_tries_next_gateway(self):
        def handler(request):
            if request.url.host == "gw-one.test":
                return httpx.Response(200, text="")
            return httpx.Response(200, text="second")

        resolved = self._resolver(handler).resolve("ipfs://bafycid")
        self.assertEqual(resolved.text, "second")
        self.assertEqual(len(self.calls), 2)

    def test_ipfs_strips_redundant_path_prefix(self):
        resolver = self._resolver(lambda r: httpx.Response(200, text="ok"))
        resolver.resolve("ipfs://ipfs/bafycid")
        self.assertEqual(str(self.calls[0].url), "https://gw-one.test/ipfs/bafycid")

    def test_ipfs_all_gateways_failing_is_none(self):
        resolver = self._resolver(lambda r: httpx.Response(503))
        self.assertIsNone(resolver.resolve("ipfs://bafycid"))
        self.assertEqual(len(self.calls), len(GATEWAYS))


class TestDigestLookup(ResolverTestCase):
    DIGEST = "0x" + "ab" * 32

    def test_digest_lookup_disabled_without_index(self):
        resolver = self._resolver()
        self.assertIsNone(resolver.resolve("meow:text:", self.DIGEST))
        self.assertEqual(self.calls, [])

    def test_digest_lookup_queries_index(self):
        resolver = self._resolver(
            lambda r: httpx.Response(200, json={"text": "stored off-chain"}),
            content_index_url="https://index.test/api/",
            content_index_key="secret-token",
        )
        resolved = resolver.resolve("meow:text:", self.DIGEST)
        self.assertEqual(resolved.text, "stored off-chain")
        self.assertEqual(resolved.scheme, "index")

        request = self.calls[0]
        self.assertEqual(request.url.path, "/api/content")
        self.assertEqual(request.url.params["hash"], self.DIGEST)
        self.assertEqual(request.headers["Authorization"], "Bearer secret-token")

    def test_digest_lookup_with_empty_text_is_none(self):
        resolver = self._resolver(
            lambda r: httpx.Response(200, json={"text": ""}),
            content_index_url="https://index.test",
        )
        self.assertIsNone(resolver.resolve("meow:text:", self.DIGEST))


if __name__ == "__main__":
    unittest.main()
