import asyncio
import unittest

import aiohttp
from aiohttp import web
from aiohttp.test_utils import TestServer, unused_port

from datasync.network import (
    NetworkClient,
    NetworkErrorKind,
    NetworkException,
    Request,
    Response,
)


class RecordingInterceptor:
    def __init__(self, name: str, calls: list):
        self.name = name
        self.calls = calls

    async def on_request(self, request: Request) -> Request:
        self.calls.append(("request", self.name))
        trail = request.headers.get("X-Trail", "")
        return request.with_header("X-Trail", trail + self.name)

    async def on_response(self, response: Response) -> Response:
        self.calls.append(("response", self.name))
        return response


class FailingInterceptor:
    async def on_request(self, request: Request) -> Request:
        raise RuntimeError("interceptor broke")

    async def on_response(self, response: Response) -> Response:
        return response


async def _echo(request: web.Request) -> web.Response:
    body = await request.text()
    return web.json_response(
        {
            "method": request.method,
            "path": request.path,
            "query": [[key, value] for key, value in request.query.items()],
            "headers": dict(request.headers),
            "body": body,
        }
    )


async def _missing(request: web.Request) -> web.Response:
    return web.json_response({"message": "no such item"}, status=404)


async def _plain(request: web.Request) -> web.Response:
    return web.Response(text="pong")


async def _slow(request: web.Request) -> web.Response:
    await asyncio.sleep(0.5)
    return web.json_response({})


async def _items(request: web.Request) -> web.Response:
    return web.json_response({"data": [{"id": 1}, {"id": 2}]})


class NetworkClientTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        app = web.Application()
        app.router.add_route("*", "/echo", _echo)
        app.router.add_get("/missing", _missing)
        app.router.add_get("/plain", _plain)
        app.router.add_get("/slow", _slow)
        app.router.add_get("/items", _items)
        self.server = TestServer(app)
        await self.server.start_server()
        self.base_url = f"http://{self.server.host}:{self.server.port}"
        self.client = NetworkClient(self.base_url, default_headers={"Accept": "application/json", "X-App": "base"})

    async def asyncTearDown(self):
        await self.client.close()
        await self.server.close()

    async def test_get_decodes_json_body(self):
        response = await self.client.get("/items")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.is_success)
        self.assertEqual(response.data, {"data": [{"id": 1}, {"id": 2}]})
        self.assertEqual(response.raw_data, response.data)

    async def test_parser_result_becomes_data(self):
        response = await self.client.get("/items", parser=lambda payload: [row["id"] for row in payload["data"]])

        self.assertEqual(response.data, [1, 2])
        self.assertEqual(response.raw_data, {"data": [{"id": 1}, {"id": 2}]})

    async def test_parser_errors_propagate_unchanged(self):
        def parser(payload):
            raise KeyError("missing")

        with self.assertRaises(KeyError):
            await self.client.get("/items", parser=parser)

    async def test_query_params_are_encoded(self):
        response = await self.client.get(
            "/echo",
            query_params={"page": 2, "active": True, "tag": ["a", "b"], "q": "alpha"},
        )

        self.assertEqual(
            response.data["query"],
            [["page", "2"], ["active", "true"], ["tag", "a"], ["tag", "b"], ["q", "alpha"]],
        )

    def test_build_url_appends_to_existing_query(self):
        url = self.client.build_url("/echo?fixed=1", {"extra": "2"})

        self.assertEqual(url, f"{self.base_url}/echo?fixed=1&extra=2")

    def test_build_url_without_base(self):
        client = NetworkClient()

        self.assertEqual(client.build_url("http://example.com/a"), "http://example.com/a")

    async def test_headers_merge_and_json_body(self):
        response = await self.client.post(
            "/echo",
            headers={"X-App": "call", "Content-Type": "text/plain"},
            body={"name": "alpha"},
        )

        headers = response.data["headers"]
        self.assertEqual(response.data["method"], "POST")
        self.assertEqual(headers["X-App"], "call")
        self.assertEqual(headers["Accept"], "application/json")
        self.assertEqual(headers["Content-Type"], "application/json")
        self.assertEqual(response.data["body"], '{"name": "alpha"}')

    async def test_string_body_is_sent_verbatim(self):
        response = await self.client.put("/echo", headers={"Content-Type": "text/plain"}, body="raw text")

        self.assertEqual(response.data["body"], "raw text")
        self.assertEqual(response.data["headers"]["Content-Type"], "text/plain")

    async def test_interceptors_run_in_registration_order_both_ways(self):
        calls = []
        self.client.add_interceptor(RecordingInterceptor("A", calls))
        self.client.add_interceptor(RecordingInterceptor("B", calls))

        response = await self.client.get("/echo")

        self.assertEqual(
            calls,
            [("request", "A"), ("request", "B"), ("response", "A"), ("response", "B")],
        )
        self.assertEqual(response.data["headers"]["X-Trail"], "AB")

    async def test_removed_interceptor_is_skipped(self):
        calls = []
        interceptor = RecordingInterceptor("A", calls)
        self.client.add_interceptor(interceptor)
        self.client.remove_interceptor(interceptor)

        await self.client.get("/echo")

        self.assertEqual(calls, [])
        self.assertEqual(self.client.interceptors, ())

    async def test_interceptor_failure_is_reported_as_unknown(self):
        self.client.add_interceptor(FailingInterceptor())

        with self.assertRaises(NetworkException) as ctx:
            await self.client.get("/echo")

        self.assertIs(ctx.exception.kind, NetworkErrorKind.UNKNOWN)
        self.assertIn("interceptor broke", ctx.exception.message)

    async def test_non_success_raises_response_error_with_body(self):
        with self.assertRaises(NetworkException) as ctx:
            await self.client.get("/missing")

        exc = ctx.exception
        self.assertIs(exc.kind, NetworkErrorKind.RESPONSE)
        self.assertEqual(exc.status_code, 404)
        self.assertEqual(exc.message, "Request failed with status 404")
        self.assertEqual(exc.response.raw_data, {"message": "no such item"})

    async def test_response_interceptors_see_failed_responses(self):
        calls = []
        self.client.add_interceptor(RecordingInterceptor("A", calls))

        with self.assertRaises(NetworkException):
            await self.client.get("/missing")

        self.assertIn(("response", "A"), calls)

    async def test_non_json_body_is_kept_raw(self):
        response = await self.client.get("/plain")

        self.assertIsNone(response.data)
        self.assertEqual(response.raw_data, "pong")
        self.assertEqual(response.body, "pong")

    async def test_timeout_is_reported(self):
        client = NetworkClient(self.base_url, timeout=0.05)
        try:
            with self.assertRaises(NetworkException) as ctx:
                await client.get("/slow")
        finally:
            await client.close()

        self.assertIs(ctx.exception.kind, NetworkErrorKind.TIMEOUT)
        self.assertEqual(ctx.exception.message, "Request timeout")

    async def test_connection_failure_is_network_error(self):
        client = NetworkClient(f"http://127.0.0.1:{unused_port()}")
        try:
            with self.assertRaises(NetworkException) as ctx:
                await client.get("/echo")
        finally:
            await client.close()

        self.assertIs(ctx.exception.kind, NetworkErrorKind.NETWORK)

    async def test_context_manager_closes_owned_session(self):
        async with NetworkClient(self.base_url) as client:
            await client.get("/plain")
            session = client._session

        self.assertTrue(session.closed)

    async def test_close_keeps_injected_session(self):
        session = aiohttp.ClientSession(headers={"X-Injected": "yes"})
        try:
            client = NetworkClient(self.base_url, session=session)
            await client.close()

            response = await client.get("/echo")

            self.assertFalse(session.closed)
            self.assertIs(client._session, session)
            self.assertEqual(response.data["headers"]["X-Injected"], "yes")
        finally:
            await session.close()


class ResponseTests(unittest.TestCase):
    def test_success_range(self):
        for status in (200, 201, 204, 299):
            self.assertTrue(Response(status_code=status, headers={}, body="").is_success)
        for status in (100, 199, 300, 404, 500):
            self.assertFalse(Response(status_code=status, headers={}, body="").is_success)

    def test_exception_string_names_kind(self):
        exc = NetworkException("boom", kind=NetworkErrorKind.NETWORK)

        self.assertEqual(str(exc), "NetworkException(network): boom")
        self.assertIsNone(exc.status_code)


if __name__ == "__main__":
    unittest.main()
