import json

import httpx
import pytest

from video_generation_mcp.config import GenerationSettings, PollingConfig, StorageSettings

API_BASE = "https://api.replicate.test/v1"


@pytest.fixture
def settings():
    return GenerationSettings(
        api_token="r8_test",
        api_base=API_BASE,
        polling=PollingConfig(interval_seconds=0, timeout_seconds=5),
        storage=StorageSettings(url="https://project.supabase.test", service_key="service-key"),
    )


class FakeReplicate:
    """Scripted prediction API behind an ``httpx.MockTransport``.

    ``statuses`` maps a prediction id to the sequence of status payloads
    returned by successive GETs; the last entry repeats once exhausted.
    """

    def __init__(self, statuses=None, reject_prompts=(), video_bytes=b"\x00\x00\x00\x18ftypmp42"):
        self.statuses = statuses or {}
        self.reject_prompts = set(reject_prompts)
        self.video_bytes = video_bytes
        self.requests: list[httpx.Request] = []
        self._served: dict[str, int] = {}

    def _prediction(self, job_id, status, output=None, error=None):
        return {
            "id": job_id,
            "status": status,
            "output": output,
            "error": error,
            "urls": {"web": f"https://replicate.test/p/{job_id}"},
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path.endswith("/predictions"):
            body = json.loads(request.content)
            prompt = body["input"]["prompt"]
            if prompt in self.reject_prompts:
                return httpx.Response(422, json={"detail": f"invalid input for {prompt!r}"})
            job_id = f"job-{prompt}"
            return httpx.Response(201, json=self._prediction(job_id, "starting"))

        if request.method == "GET" and "/predictions/" in path:
            job_id = path.rsplit("/", 1)[-1]
            script = self.statuses.get(job_id) or [
                {"status": "succeeded", "output": f"https://cdn.replicate.test/{job_id}.mp4"}
            ]
            served = self._served.get(job_id, 0)
            self._served[job_id] = served + 1
            step = script[min(served, len(script) - 1)]
            return httpx.Response(200, json=self._prediction(job_id, **step))

        if request.url.host == "cdn.replicate.test":
            return httpx.Response(200, content=self.video_bytes)

        return httpx.Response(404, json={"detail": "not found"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def count(self, method: str, fragment: str) -> int:
        return sum(1 for r in self.requests if r.method == method and fragment in str(r.url))


@pytest.fixture
def fake_replicate():
    return FakeReplicate()
