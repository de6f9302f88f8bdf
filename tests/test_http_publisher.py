import base64
import json
import unittest

import httpx

from minutebuf.config import PublisherConfig, PublisherCredentials
from minutebuf.errors import PublishError
from minutebuf.metrics.aggregator import Batch, Dimension, StatisticalRecord
from minutebuf.publishers import HttpPublisher, Publisher

CONFIG = PublisherConfig(
    endpoint_url="https://metrics.{region}.example.test",
    region="eu-west-1",
    credentials=PublisherCredentials("key-id", "secret", "session"),
)

BATCH = Batch(
    namespace="App",
    records=(
        StatisticalRecord(
            namespace="App",
            key='["Errors","Count",[],"2024-05-01T13:37:00.000Z"]',
            name="Errors",
            unit="Count",
            dimensions=(Dimension("host", "a"),),
            timestamp="2024-05-01T13:37:00.000Z",
            maximum=2.0,
            minimum=1.0,
            sum=3.0,
            sample_count=2,
        ),
    ),
)


class HttpPublisherTests(unittest.TestCase):
    def test_posts_batch_as_json(self):
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"ok": True})

        with HttpPublisher(CONFIG, transport=httpx.MockTransport(handler)) as publisher:
            self.assertIsInstance(publisher, Publisher)
            publisher.publish(BATCH)

        self.assertEqual(len(captured), 1)
        request = captured[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(str(request.url), "https://metrics.eu-west-1.example.test/metric-data")
        self.assertEqual(json.loads(request.content), BATCH.to_dict())
        expected_auth = "Basic " + base64.b64encode(b"key-id:secret").decode("ascii")
        self.assertEqual(request.headers["Authorization"], expected_auth)
        self.assertEqual(request.headers["X-Session-Token"], "session")
        self.assertEqual(request.headers["X-Region"], "eu-west-1")

    def test_anonymous_endpoint_sends_no_auth(self):
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(204)

        config = PublisherConfig(endpoint_url="http://localhost:8080/")
        with HttpPublisher(config, transport=httpx.MockTransport(handler)) as publisher:
            publisher.publish(BATCH)

        self.assertEqual(str(captured[0].url), "http://localhost:8080/metric-data")
        self.assertNotIn("Authorization", captured[0].headers)
        self.assertNotIn("X-Region", captured[0].headers)

    def test_http_error_status_raises_publish_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
        with HttpPublisher(CONFIG, transport=transport) as publisher:
            with self.assertRaises(PublishError) as ctx:
                publisher.publish(BATCH)

        self.assertEqual(ctx.exception.namespace, "App")
        self.assertIsInstance(ctx.exception.cause, httpx.HTTPStatusError)

    def test_transport_error_raises_publish_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with HttpPublisher(CONFIG, transport=httpx.MockTransport(handler)) as publisher:
            with self.assertRaises(PublishError) as ctx:
                publisher.publish(BATCH)

        self.assertIsInstance(ctx.exception.cause, httpx.ConnectError)


if __name__ == "__main__":
    unittest.main()
