import time
import requests
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from ..config import settings
from ..exceptions import RenderProviderError, RenderFailedError, RenderTimeoutError
from ..logger import logger


@dataclass(frozen=True)
class RenderRequest:
    """Provider-neutral description of one avatar video."""
    text: str
    avatar_id: Optional[str]
    voice_id: str
    captions_on: bool = True
    hook_text: str = ""
    hook_on: bool = True
    hook_pos: str = "top"

    def overlays(self) -> List[Dict[str, Any]]:
        if not self.hook_on:
            return []
        return [{"text": self.hook_text or "", "start": 0, "end": 3, "position": self.hook_pos or "top"}]


@dataclass(frozen=True)
class ApiMapping:
    """Endpoints and payload layout for one HeyGen API generation."""
    name: str
    create_paths: List[str]
    status_path: str
    build_payload: Callable[[RenderRequest], Dict[str, Any]]


def _v1_payload(req: RenderRequest) -> Dict[str, Any]:
    return {
        "input_text": req.text,
        "avatar_id": req.avatar_id,
        "voice": req.voice_id,
        "background": "#000000",
        "caption": bool(req.captions_on),
        "overlays": req.overlays(),
    }


def _v2_payload(req: RenderRequest) -> Dict[str, Any]:
    return {
        "video_inputs": [
            {
                "character": {"type": "avatar", "avatar_id": req.avatar_id, "avatar_style": "normal"},
                "voice": {"type": "text", "input_text": req.text, "voice_id": req.voice_id},
                "background": {"type": "color", "value": "#000000"},
            }
        ],
        "caption": bool(req.captions_on),
        "overlays": req.overlays(),
    }


API_MAPPINGS: Dict[str, ApiMapping] = {
    # The second v1 create path is only tried when the first answers 404.
    "v1": ApiMapping("v1", ["/v1/video.generate", "/v1/videos/generate"], "/v1/video.status", _v1_payload),
    "v2": ApiMapping("v2", ["/v2/video/generate"], "/v1/video_status.get", _v2_payload),
}


def normalize_base_url(base_url: Optional[str]) -> str:
    base = base_url or settings.HEYGEN_DEFAULT_BASE_URL
    return base[:-1] if base.endswith("/") else base


def extract_video_id(body: Any) -> str:
    """Pull the render job id out of whichever field the API populated."""
    if isinstance(body, dict):
        for key in ("video_id", "task_id"):
            if body.get(key):
                return str(body[key])
        data = body.get("data")
        if isinstance(data, dict):
            for key in ("video_id", "id"):
                if data.get(key):
                    return str(data[key])
    raise RenderProviderError(f"HeyGen response contained no video id: {body!r}")


def _status_envelope(body: Any) -> Dict[str, Any]:
    if not isinstance(body, dict):
        return {}
    data = body.get("data")
    if isinstance(data, dict) and "status" in data:
        return data
    return body


def _error_message(status: Dict[str, Any]) -> str:
    error = status.get("error")
    if isinstance(error, dict) and error.get("message"):
        return f"HeyGen job failed: {error['message']}"
    if isinstance(error, str) and error:
        return f"HeyGen job failed: {error}"
    return "HeyGen job failed"


class HeyGenClient:
    """Blocking HeyGen client: start a render, then poll until it settles."""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        api_version: Optional[str] = None,
        poll_interval: Optional[float] = None,
        poll_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        version = api_version or settings.HEYGEN_API_VERSION
        if version not in API_MAPPINGS:
            raise RenderProviderError(f"Unsupported HeyGen API version: {version}")
        self.api_key = api_key
        self.base_url = normalize_base_url(base_url)
        self.mapping = API_MAPPINGS[version]
        self.poll_interval = settings.HEYGEN_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.poll_attempts = settings.HEYGEN_POLL_ATTEMPTS if poll_attempts is None else poll_attempts
        self.timeout = settings.HEYGEN_REQUEST_TIMEOUT_SECONDS if timeout is None else timeout

    def _headers(self, json_body: bool = False) -> Dict[str, str]:
        headers = {"X-Api-Key": self.api_key}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def create_video(self, req: RenderRequest) -> str:
        """Start a render and return the provider's job id"""
        payload = self.mapping.build_payload(req)
        resp = None
        for path in self.mapping.create_paths:
            url = f"{self.base_url}{path}"
            logger.debug(f"Starting HeyGen render: {url}")
            try:
                resp = requests.post(url, json=payload, headers=self._headers(json_body=True), timeout=self.timeout)
            except requests.RequestException as e:
                raise RenderProviderError(f"HeyGen start failed: {e}")
            if resp.status_code != 404:
                break
            logger.warning(f"HeyGen create endpoint not found, trying fallback: {url}")

        if not resp.ok:
            raise RenderProviderError(f"HeyGen start failed: {resp.status_code} {resp.text}")

        try:
            body = resp.json()
        except ValueError:
            raise RenderProviderError(f"HeyGen start returned non-JSON body: {resp.text[:200]}")

        video_id = extract_video_id(body)
        logger.info(f"HeyGen render started: {video_id}", extra={"render_id": video_id, "api_version": self.mapping.name})
        return video_id

    def get_status(self, video_id: str) -> Dict[str, Any]:
        resp = requests.get(
            f"{self.base_url}{self.mapping.status_path}",
            params={"video_id": video_id},
            headers=self._headers(),
            timeout=self.timeout,
        )
        return _status_envelope(resp.json())

    def wait_for_video(self, video_id: str) -> str:
        """Poll HeyGen until the render completes and return the result URL"""
        logger.info(f"Waiting for HeyGen render: {video_id}")

        for attempt in range(self.poll_attempts):
            try:
                status = self.get_status(video_id)
            except (requests.RequestException, ValueError) as e:
                logger.warning(f"Error while polling HeyGen for {video_id}: {e}")
                status = {}

            state = status.get("status")
            if state == "completed":
                url = status.get("video_url_caption") or status.get("video_url")
                if url:
                    return url
            elif state == "failed":
                message = _error_message(status)
                logger.error(f"HeyGen render {video_id} failed: {message}")
                raise RenderFailedError(message)

            if attempt < self.poll_attempts - 1:
                time.sleep(self.poll_interval)

        raise RenderTimeoutError("HeyGen timeout")
