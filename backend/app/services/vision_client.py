"""
This module provides a client for the Custom Vision prediction service.
It resolves one image URL into a list of detections, walking an ordered list
of request strategies until one of them succeeds.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from app.config import Settings
from app.exceptions import UpstreamUnavailable
from app.models.comparison import Detection
from app.services.comparator import parse_detections

logger = logging.getLogger(__name__)

MAX_LOGGED_BODY = 500


def _redact(url: str) -> str:
    """Drop the query string, which carries signed-URL tokens."""
    return url.split("?", 1)[0]


class CustomVisionClient:
    def __init__(self, config: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.endpoint = config.CUSTOM_VISION_ENDPOINT
        self.project_id = config.CUSTOM_VISION_PROJECT_ID
        self.published_name = config.CUSTOM_VISION_PUBLISHED_NAME
        self.timeout = config.VISION_TIMEOUT_SECONDS
        self._prediction_key = config.CUSTOM_VISION_PREDICTION_KEY
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        logger.info(
            "CustomVisionClient initialized with endpoint: %s (project %s, iteration %s)",
            self.endpoint, self.project_id, self.published_name,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self):
        """Close the HTTP client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def prediction_url(self, task: str, source: str) -> str:
        """
        Build a prediction URL.

        Args:
            task (str): "detect" or "classify".
            source (str): "url" to pass an image URL, "image" to upload bytes.
        """
        return (
            f"{self.endpoint}customvision/v3.0/Prediction/{self.project_id}"
            f"/{task}/iterations/{self.published_name}/{source}"
        )

    @property
    def strategies(self) -> List[Tuple[str, Callable[[str], Awaitable[dict]]]]:
        """Fallback ladder, tried in order."""
        return [
            ("detect-url", self._detect_by_url),
            ("classify-url", self._classify_by_url),
            ("binary-upload", self._predict_by_upload),
        ]

    async def predict(self, image_url: str) -> List[Detection]:
        """
        Runs the model on one image.

        Args:
            image_url (str): A URL the prediction service (or this client) can fetch.

        Returns:
            List[Detection]: Normalized detections; malformed predictions are dropped.

        Raises:
            UpstreamUnavailable: If every strategy fails. Carries the last error.
        """
        last_error: Optional[UpstreamUnavailable] = None
        for name, strategy in self.strategies:
            try:
                payload = await strategy(image_url)
            except UpstreamUnavailable as e:
                logger.warning(
                    "Custom Vision strategy %s failed - Endpoint: %s, Status: %s, Response: %s",
                    name, e.endpoint, e.status_code, (e.body or "")[:MAX_LOGGED_BODY],
                )
                last_error = e
                continue
            predictions = payload.get("predictions") if isinstance(payload, dict) else None
            predictions = predictions or []
            logger.info("Custom Vision strategy %s returned %d predictions", name, len(predictions))
            return parse_detections(predictions)

        logger.error("All Custom Vision strategies failed for image %s", _redact(image_url))
        raise last_error

    async def predict_pair(self, image1_url: str, image2_url: str) -> Tuple[List[Detection], List[Detection]]:
        """
        Predicts both images concurrently; either failure fails the pair and
        cancels the prediction still in flight.
        """
        tasks = [
            asyncio.ensure_future(self.predict(image1_url)),
            asyncio.ensure_future(self.predict(image2_url)),
        ]
        try:
            detections1, detections2 = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            # Collect the sibling's outcome so it is never left unretrieved.
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return detections1, detections2

    async def probe(self, image_url: str) -> Dict[str, dict]:
        """Tries every strategy independently and reports how each one fared."""
        report = {}
        for name, strategy in self.strategies:
            try:
                payload = await strategy(image_url)
                predictions = payload.get("predictions") if isinstance(payload, dict) else None
                report[name] = {"ok": True, "predictions": len(predictions or [])}
            except UpstreamUnavailable as e:
                report[name] = {"ok": False, "status": e.status_code, "error": e.message}
        return report

    async def _detect_by_url(self, image_url: str) -> dict:
        return await self._post_json(self.prediction_url("detect", "url"), image_url)

    async def _classify_by_url(self, image_url: str) -> dict:
        return await self._post_json(self.prediction_url("classify", "url"), image_url)

    async def _predict_by_upload(self, image_url: str) -> dict:
        image_bytes = await self._download(image_url)
        try:
            return await self._post_bytes(self.prediction_url("detect", "image"), image_bytes)
        except UpstreamUnavailable as e:
            if e.status_code != 404:
                raise
            logger.info("Binary detection endpoint not found, trying classification...")
            return await self._post_bytes(self.prediction_url("classify", "image"), image_bytes)

    async def _post_json(self, endpoint: str, image_url: str) -> dict:
        return await self._send(
            endpoint,
            headers={"Content-Type": "application/json"},
            json={"Url": image_url},
        )

    async def _post_bytes(self, endpoint: str, image_bytes: bytes) -> dict:
        return await self._send(
            endpoint,
            headers={"Content-Type": "application/octet-stream"},
            content=image_bytes,
        )

    async def _send(self, endpoint: str, headers: dict, **kwargs) -> dict:
        headers = {"Prediction-Key": self._prediction_key, **headers}
        try:
            response = await self.client.post(endpoint, headers=headers, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(
                f"Custom Vision API error: {e.response.status_code} {e.response.reason_phrase}",
                endpoint=endpoint,
                status_code=e.response.status_code,
                body=e.response.text,
            ) from e
        except httpx.RequestError as e:
            raise UpstreamUnavailable(
                f"Failed to reach Custom Vision API: {e}",
                endpoint=endpoint,
            ) from e
        except ValueError as e:
            raise UpstreamUnavailable(
                "Custom Vision API returned a non-JSON response",
                endpoint=endpoint,
                status_code=response.status_code,
                body=response.text,
            ) from e

    async def _download(self, image_url: str) -> bytes:
        try:
            response = await self.client.get(image_url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(
                f"Failed to fetch image: {e.response.status_code}",
                endpoint=_redact(image_url),
                status_code=e.response.status_code,
                body=e.response.text,
            ) from e
        except httpx.RequestError as e:
            raise UpstreamUnavailable(f"Failed to fetch image: {e}", endpoint=_redact(image_url)) from e
        return response.content
