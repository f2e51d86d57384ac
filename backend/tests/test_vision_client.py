"""
Tests for the Custom Vision client and its fallback ladder.
"""

import asyncio

import httpx
import pytest

from app.config import Settings
from app.exceptions import UpstreamUnavailable
from app.services.vision_client import CustomVisionClient

IMAGE_URL = "https://storage.example.com/bucket/a.png?X-Goog-Signature=abc"

DETECTION_PAYLOAD = {
    "predictions": [
        {"tagName": "building", "probability": 0.91,
         "boundingBox": {"left": 0.1, "top": 0.2, "width": 0.1, "height": 0.1}},
        {"tagName": "road", "probability": 0.4},
        {"probability": 0.9},
    ]
}


def make_client(handler):
    config = Settings(
        CUSTOM_VISION_PREDICTION_KEY="secret-key",
        CUSTOM_VISION_ENDPOINT="https://vision.example.com",
        CUSTOM_VISION_PROJECT_ID="proj",
        CUSTOM_VISION_PUBLISHED_NAME="iter1",
    )
    return CustomVisionClient(config, transport=httpx.MockTransport(handler))


def run(coro):
    return asyncio.run(coro)


def test_prediction_url_layout():
    client = make_client(lambda request: httpx.Response(200, json={}))

    assert client.prediction_url("detect", "url") == (
        "https://vision.example.com/customvision/v3.0/Prediction/proj/detect/iterations/iter1/url"
    )


def test_detect_by_url_is_tried_first():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=DETECTION_PAYLOAD)

    detections = run(make_client(handler).predict(IMAGE_URL))

    assert [d.label for d in detections] == ["building", "road"]
    assert detections[0].bounding_box.left == 0.1
    assert len(seen) == 1
    assert seen[0].url.path.endswith("/detect/iterations/iter1/url")
    assert seen[0].headers["Prediction-Key"] == "secret-key"


def test_falls_back_to_classification_when_detection_missing():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        if "/detect/" in request.url.path:
            return httpx.Response(404, text="Not Found")
        return httpx.Response(200, json={"predictions": [{"tagName": "water", "probability": 0.8}]})

    detections = run(make_client(handler).predict(IMAGE_URL))

    assert [d.label for d in detections] == ["water"]
    assert calls[0].endswith("/detect/iterations/iter1/url")
    assert calls[1].endswith("/classify/iterations/iter1/url")


def test_binary_upload_is_last_resort():
    calls = []

    def handler(request):
        calls.append((request.method, request.url.host, request.url.path))
        if request.url.host == "storage.example.com":
            return httpx.Response(200, content=b"\x89PNG")
        if request.url.path.endswith("/url"):
            raise httpx.ConnectError("boom", request=request)
        assert request.headers["Content-Type"] == "application/octet-stream"
        assert request.content == b"\x89PNG"
        return httpx.Response(200, json={"predictions": [{"tagName": "forest", "probability": 0.6}]})

    detections = run(make_client(handler).predict(IMAGE_URL))

    assert [d.label for d in detections] == ["forest"]
    assert calls[-2] == ("GET", "storage.example.com", "/bucket/a.png")
    assert calls[-1][2].endswith("/detect/iterations/iter1/image")


def test_binary_upload_retries_classification_on_404():
    def handler(request):
        if request.url.host == "storage.example.com":
            return httpx.Response(200, content=b"img")
        if request.url.path.endswith("/classify/iterations/iter1/image"):
            return httpx.Response(200, json={"predictions": []})
        return httpx.Response(404, text="Not Found")

    assert run(make_client(handler).predict(IMAGE_URL)) == []


def test_all_strategies_failing_raises_last_error():
    def handler(request):
        if request.url.host == "storage.example.com":
            return httpx.Response(403, text="AccessDenied")
        return httpx.Response(401, text="Access denied due to invalid subscription key")

    with pytest.raises(UpstreamUnavailable) as excinfo:
        run(make_client(handler).predict(IMAGE_URL))

    error = excinfo.value
    assert error.status_code == 403
    assert error.endpoint == "https://storage.example.com/bucket/a.png"
    assert "secret-key" not in str(error.details)


def test_predict_pair_fails_when_either_image_fails():
    def handler(request):
        body = request.content.decode() if request.content else ""
        if "b.png" in body or "b.png" in str(request.url):
            return httpx.Response(500, text="error")
        return httpx.Response(200, json=DETECTION_PAYLOAD)

    client = make_client(handler)
    with pytest.raises(UpstreamUnavailable):
        run(client.predict_pair(IMAGE_URL, "https://storage.example.com/bucket/b.png"))


def test_predict_pair_cancels_sibling_after_failure():
    cancelled = []

    async def handler(request):
        if "a.png" in request.content.decode():
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.append(request.url.path)
                raise
        return httpx.Response(500, text="error")

    client = make_client(handler)
    with pytest.raises(UpstreamUnavailable):
        run(client.predict_pair(IMAGE_URL, "https://storage.example.com/bucket/b.png"))

    assert cancelled == ["/customvision/v3.0/Prediction/proj/detect/iterations/iter1/url"]


def test_non_finite_box_coordinates_are_dropped():
    body = (
        b'{"predictions": ['
        b'{"tagName": "road", "probability": 0.9,'
        b' "boundingBox": {"left": NaN, "top": 0.1, "width": 0.1, "height": 0.1}},'
        b'{"tagName": "road", "probability": 0.8,'
        b' "boundingBox": {"left": 0.1, "top": Infinity, "width": 0.1, "height": 0.1}},'
        b'{"tagName": "water", "probability": 0.7}'
        b']}'
    )

    def handler(request):
        return httpx.Response(200, content=body, headers={"Content-Type": "application/json"})

    detections = run(make_client(handler).predict(IMAGE_URL))

    assert [d.label for d in detections] == ["water"]


def test_predict_pair_returns_both_sets():
    def handler(request):
        label = "urban" if "a.png" in request.content.decode() else "water"
        return httpx.Response(200, json={"predictions": [{"tagName": label, "probability": 0.7}]})

    first, second = run(
        make_client(handler).predict_pair(IMAGE_URL, "https://storage.example.com/bucket/b.png")
    )

    assert [d.label for d in first] == ["urban"]
    assert [d.label for d in second] == ["water"]


def test_probe_reports_each_strategy():
    def handler(request):
        if "/classify/" in request.url.path:
            return httpx.Response(200, json={"predictions": [{"tagName": "a", "probability": 0.5}]})
        if request.url.host == "storage.example.com":
            return httpx.Response(200, content=b"img")
        return httpx.Response(404, text="Not Found")

    report = run(make_client(handler).probe(IMAGE_URL))

    assert report["detect-url"] == {"ok": False, "status": 404, "error": "Custom Vision API error: 404 Not Found"}
    assert report["classify-url"] == {"ok": True, "predictions": 1}
    assert report["binary-upload"]["ok"] is True
