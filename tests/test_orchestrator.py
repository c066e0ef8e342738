"""Tests for the acquisition state machine."""
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio

from conftest import report_for
from reddidna.config import Settings
from reddidna.errors import IdentityError
from reddidna.orchestrator import UNEXPECTED_FAILURE, AcquisitionOrchestrator, Failed, Idle, Pending, Ready

pytestmark = pytest.mark.asyncio


class FakeService:
    """Mock transport handler; requests for a username block until released."""

    def __init__(self) -> None:
        self.requests: list[dict] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.gated = False
        self.status = 200
        self.error_body: dict | None = None
        self.download_status = 200

    def release(self, username: str) -> None:
        self.gates.setdefault(username, asyncio.Event()).set()

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/download-report":
            if self.download_status != 200:
                return httpx.Response(self.download_status)
            return httpx.Response(200, content=b"report for " + json.loads(request.content)["username"].encode())

        username = json.loads(request.content)["username"]
        self.requests.append({"username": username})
        if self.gated:
            await self.gates.setdefault(username, asyncio.Event()).wait()
        if self.status != 200:
            return httpx.Response(self.status, json=self.error_body or {})
        return httpx.Response(200, json=report_for(username))


@pytest.fixture
def service():
    return FakeService()


@pytest.fixture
def notify():
    return MagicMock()


@pytest_asyncio.fixture
async def orchestrator(make_client, service, settings, notify):
    orch = AcquisitionOrchestrator(make_client(service), settings, notify=notify)
    yield orch
    await orch.aclose()


async def test_username_submission_reaches_ready(orchestrator, service):
    states = []
    orchestrator.subscribe(states.append)

    assert orchestrator.submit("kojied") == "kojied"
    assert isinstance(orchestrator.state, Pending)
    assert orchestrator.loading

    state = await orchestrator.wait()

    assert isinstance(state, Ready)
    assert state.identity == "kojied"
    assert state.report.username == "kojied"
    assert service.requests == [{"username": "kojied"}]
    assert isinstance(states[0], Pending)
    assert isinstance(states[-1], Ready)
    assert not orchestrator.loading


async def test_profile_url_submission_sends_same_request(orchestrator, service):
    orchestrator.submit("https://www.reddit.com/user/kojied/")
    await orchestrator.wait()
    assert service.requests == [{"username": "kojied"}]


async def test_not_found_becomes_failed_with_service_message(orchestrator, service):
    service.status = 404
    service.error_body = {"error": "user not found"}

    orchestrator.submit("ghost")
    state = await orchestrator.wait()

    assert state == Failed("ghost", "user not found")
    assert orchestrator.report is None
    assert not orchestrator.loading


async def test_empty_input_is_rejected_without_request(orchestrator, service):
    states = []
    orchestrator.subscribe(states.append)

    assert orchestrator.submit("   ") is None

    assert orchestrator.validation_error == "Please enter a Reddit username or profile link."
    assert isinstance(orchestrator.state, Idle)
    assert service.requests == []
    assert states == []
    assert orchestrator.generation == 0


async def test_valid_submission_clears_validation_error(orchestrator):
    orchestrator.submit("")
    orchestrator.submit("kojied")
    assert orchestrator.validation_error is None
    await orchestrator.wait()


async def test_strict_policy_rejects_bare_handle(make_client, service, settings):
    strict = Settings(base_url=settings.base_url, strict_identity=True, loading_steps=settings.loading_steps)
    async with AcquisitionOrchestrator(make_client(service), strict) as orch:
        assert orch.submit("kojied") is None
        assert orch.validation_error.startswith("Please enter a valid and complete URL")
        assert orch.submit("https://www.reddit.com/user/kojied/") == "kojied"
        await orch.wait()
    assert service.requests == [{"username": "kojied"}]


async def test_late_response_for_superseded_identity_is_discarded(orchestrator, service):
    service.gated = True

    alice = asyncio.create_task(orchestrator.acquire("alice"))
    await asyncio.sleep(0)
    orchestrator.submit("bob")

    service.release("bob")
    state = await orchestrator.wait()
    assert isinstance(state, Ready)
    assert state.report.username == "bob"

    service.release("alice")
    alice_outcome = await alice

    assert isinstance(alice_outcome, Ready)
    assert alice_outcome.identity == "alice"
    assert orchestrator.state is state
    assert orchestrator.report.username == "bob"


async def test_late_failure_does_not_replace_newer_report(orchestrator, service):
    service.gated = True
    alice = asyncio.create_task(orchestrator.acquire("alice"))
    await asyncio.sleep(0)
    orchestrator.submit("bob")
    service.release("bob")
    await orchestrator.wait()

    service.status = 500
    service.release("alice")
    assert isinstance(await alice, Failed)
    assert orchestrator.state.identity == "bob"
    assert isinstance(orchestrator.state, Ready)


async def test_wait_follows_the_latest_submission(orchestrator, service):
    service.gated = True
    orchestrator.submit("alice")
    waiter = asyncio.create_task(orchestrator.wait())
    await asyncio.sleep(0)
    orchestrator.submit("bob")

    service.release("alice")
    await asyncio.sleep(0.02)
    assert not waiter.done()

    service.release("bob")
    state = await waiter
    assert state.identity == "bob"


async def test_loading_ticks_while_pending_and_stops_after(orchestrator, service):
    service.gated = True
    states = []
    orchestrator.subscribe(states.append)

    orchestrator.submit("kojied")
    await asyncio.sleep(0.1)

    frames = [s.frame for s in states if isinstance(s, Pending)]
    assert len(frames) > 2
    assert {f.index for f in frames} == {0, 1}
    for f in frames:
        assert 1 <= f.countdown <= f.step.duration

    service.release("kojied")
    await orchestrator.wait()
    assert not orchestrator.loading
    seen = len(states)
    await asyncio.sleep(0.05)
    assert len(states) == seen


async def test_retry_after_failure_restarts_from_pending(orchestrator, service):
    service.status = 500
    orchestrator.submit("kojied")
    assert isinstance(await orchestrator.wait(), Failed)

    service.status = 200
    assert orchestrator.retry() == "kojied"
    assert isinstance(orchestrator.state, Pending)
    assert isinstance(await orchestrator.wait(), Ready)
    assert len(service.requests) == 2


async def test_retry_without_prior_submission_is_noop(orchestrator, service):
    assert orchestrator.retry() is None
    assert isinstance(orchestrator.state, Idle)


async def test_reset_ignores_in_flight_result(orchestrator, service):
    service.gated = True
    pending = asyncio.create_task(orchestrator.acquire("kojied"))
    await asyncio.sleep(0)

    orchestrator.reset()
    assert isinstance(orchestrator.state, Idle)
    assert not orchestrator.loading

    service.release("kojied")
    assert isinstance(await pending, Ready)
    assert isinstance(orchestrator.state, Idle)


async def test_acquire_rejects_empty_identity(orchestrator, service):
    with pytest.raises(IdentityError):
        await orchestrator.acquire("")
    assert service.requests == []


async def test_unexpected_client_error_becomes_failed(settings):
    client = MagicMock()
    client.generate_persona = AsyncMock(side_effect=RuntimeError("kaboom"))
    async with AcquisitionOrchestrator(client, settings) as orch:
        orch.submit("kojied")
        state = await orch.wait()
    assert state == Failed("kojied", UNEXPECTED_FAILURE)


async def test_new_submission_closes_open_evidence(orchestrator):
    orchestrator.submit("kojied")
    await orchestrator.wait()
    orchestrator.evidence.open_field(orchestrator.report, "profile_info.occupation")
    assert orchestrator.evidence.current is not None

    orchestrator.submit("alice")
    assert orchestrator.evidence.current is None
    await orchestrator.wait()


async def test_export_saves_report_file(orchestrator, tmp_path):
    orchestrator.submit("kojied")
    await orchestrator.wait()

    path = await orchestrator.export(tmp_path)

    assert path == tmp_path / "kojied_persona_report.txt"
    assert path.read_bytes() == b"report for kojied"


async def test_export_failure_leaves_state_and_can_be_retried(orchestrator, service, notify, tmp_path):
    orchestrator.submit("kojied")
    ready = await orchestrator.wait()
    before = ready.report.model_dump()

    service.download_status = 500
    assert await orchestrator.export(tmp_path) is None
    notify.assert_called_once_with("Could not download the report.")
    assert orchestrator.state is ready
    assert ready.report.model_dump() == before

    service.download_status = 200
    assert (await orchestrator.export(tmp_path)).exists()


async def test_export_before_ready_does_nothing(orchestrator, tmp_path):
    assert await orchestrator.export(tmp_path) is None
    assert list(tmp_path.iterdir()) == []


async def test_aclose_stops_loading_and_cancels_requests(make_client, service, settings):
    service.gated = True
    orch = AcquisitionOrchestrator(make_client(service), settings)
    orch.submit("kojied")
    await asyncio.sleep(0.02)
    assert orch.loading

    await orch.aclose()

    assert not orch.loading
    assert isinstance(orch.state, Pending)


async def test_undecodable_download_notifies_instead_of_raising(make_client, service, settings, notify, tmp_path):
    async def handler(request):
        if request.url.path == "/api/download-report":
            return httpx.Response(200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"not gzip"))
        return await service(request)

    orch = AcquisitionOrchestrator(make_client(handler), settings, notify=notify)
    orch.submit("kojied")
    ready = await orch.wait()

    assert await orch.export(tmp_path) is None
    notify.assert_called_once_with("Could not download the report.")
    assert orch.state is ready
    await orch.aclose()


async def test_export_path_cannot_leave_output_directory(orchestrator, tmp_path):
    out = tmp_path / "out"
    assert orchestrator.submit("../escaped") == "../escaped"
    await orchestrator.wait()

    path = await orchestrator.export(out)

    assert path.parent == out
    assert not (tmp_path / "escaped_persona_report.txt").exists()
