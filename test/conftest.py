# test/conftest.py
import json
from datetime import date
from typing import List, Optional, Tuple

import pytest

from kyc_verification.errors import TransportError
from kyc_verification.models import Address, CustomerData, IDCard


def pytest_addoption(parser):
    # Live sandbox runs must happen on a whitelisted host (or through a proxy
    # running on one).
    parser.addoption("--runlive", action="store_true", default=False,
                     help="run tests against the providers' live sandboxes")
    parser.addoption("--proxy", action="store", default="",
                     help="proxy URL for live sandbox requests")


class FakeTransport:
    """Records every call and replays canned (status code, body) replies."""

    def __init__(self, status: int = 200, body=None, error: Optional[str] = None):
        self.status = status
        self.body = body
        self.error = error
        self.calls: List[Tuple[str, str, dict, Optional[bytes]]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def _reply(self) -> Tuple[int, bytes]:
        if self.error is not None:
            raise TransportError(self.error)
        if self.body is None:
            return self.status, b""
        if isinstance(self.body, bytes):
            return self.status, self.body
        if isinstance(self.body, str):
            return self.status, self.body.encode("utf-8")
        return self.status, json.dumps(self.body).encode("utf-8")

    def post(self, url, headers, body):
        self.calls.append(("POST", url, dict(headers), body))
        return self._reply()

    def get(self, url, headers):
        self.calls.append(("GET", url, dict(headers), None))
        return self._reply()

    def last_json(self) -> dict:
        return json.loads(self.calls[-1][3])


@pytest.fixture
def fake_transport():
    return FakeTransport


@pytest.fixture
def customer() -> CustomerData:
    return CustomerData(
        first_name="John",
        last_name="Smith",
        date_of_birth=date(1975, 2, 28),
        current_address=Address(
            country_alpha2="US",
            state="Georgia",
            town="Atlanta",
            street="PeachTree Place",
            building_number="222333",
            post_code="30318",
            state_province_code="GA",
        ),
        id_card=IDCard(country_alpha2="US", number="112223333"),
    )


@pytest.fixture
def live_config(request):
    """Explicit live-test settings; skips the test unless --runlive is given."""
    if not request.config.getoption("--runlive"):
        pytest.skip("use '--runlive' command-line flag to activate this test")
    return {"proxy": request.config.getoption("--proxy") or None}
