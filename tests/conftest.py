import copy

import httpx
import pytest

from reddidna.client import PersonaServiceClient
from reddidna.config import LoadingStep, Settings

REPORT = {
    "username": "kojied",
    "summaryQuote": {
        "value": "I just want the build to pass before I go to bed.",
        "sources": [{"quote": "ok one more CI run", "url": "https://www.reddit.com/r/programming/comments/abc/"}],
    },
    "profileImage": "https://example.com/personas/kojied.png",
    "profileInfo": {
        "age": {"value": 29, "sources": []},
        "occupation": {
            "value": "Software engineer",
            "sources": [{"quote": "at my job we use Go", "url": "https://www.reddit.com/r/golang/comments/def/"}],
        },
        "status": {"value": "Single", "sources": []},
        "location": {"value": "Seattle, WA", "sources": [{"url": "https://www.reddit.com/r/Seattle/comments/ghi/"}]},
        "tier": {"value": "Early adopter", "sources": []},
        "archetype": {"value": "The Tinkerer", "sources": []},
    },
    "traits": [{"name": "Curious", "active": True, "sources": []}],
    "motivations": [
        {"name": "Learning", "value": 85, "sources": [{"quote": "TIL", "url": "https://www.reddit.com/r/todayilearned/"}]},
        {"name": "Recognition", "value": 140, "sources": []},
    ],
    "personality": [
        {"name": "Introvert-Extrovert", "value": 30, "sources": []},
        {"name": "Sensing-Intuition", "value": 70, "sources": []},
    ],
    "behaviors": [
        {"value": "Posts late at night", "sources": [{"quote": None, "url": "https://www.reddit.com/r/nightowls/"}]},
    ],
    "frustrations": [{"value": "Flaky test suites", "sources": []}],
    "goals": [],
}

TEST_STEPS = (
    LoadingStep(message="Warming up", image="https://example.com/a.gif", duration=2),
    LoadingStep(message="Almost there", image="https://example.com/b.gif", duration=1),
)


def report_for(username: str) -> dict:
    data = copy.deepcopy(REPORT)
    data["username"] = username
    return data


@pytest.fixture
def report_data() -> dict:
    return copy.deepcopy(REPORT)


@pytest.fixture
def settings() -> Settings:
    return Settings(base_url="http://persona.test", tick_interval=0.01, loading_steps=TEST_STEPS)


@pytest.fixture
def make_client(settings):
    """Build a PersonaServiceClient whose requests are answered by ``handler``."""

    def _make(handler) -> PersonaServiceClient:
        http = httpx.AsyncClient(base_url=settings.base_url, transport=httpx.MockTransport(handler))
        return PersonaServiceClient(settings, http=http)

    return _make
