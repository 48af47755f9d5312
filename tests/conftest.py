"""Fixtures for OLT bot tests."""
import os

# config.py builds its global instance at import time
os.environ.setdefault('OLT_URL', 'http://olt.test')
os.environ.setdefault('UNAME', 'admin')
os.environ.setdefault('UPASS', 'secret')

from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
import requests

from device_family import EponAdapter, GponAdapter
from olt_api import ApiRequest
from olt_errors import ApiCallFailed


def make_response(body: Any = None, headers: Optional[Dict[str, str]] = None,
                  status: int = 200, json_error: bool = False) -> MagicMock:
    """Mock of requests.Response"""
    response = MagicMock()
    response.status_code = status
    response.headers = headers or {}
    if status >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} error")
    else:
        response.raise_for_status.return_value = None
    if json_error:
        response.json.side_effect = ValueError("no JSON")
    else:
        response.json.return_value = body
    return response


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeOltClient:
    """Stands in for RetryingApiClient, answering by request target.

    Routes map a target prefix to a payload dict, an exception to raise, or a
    callable taking the request. The longest matching prefix wins.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = dict(routes or {})
        self.calls: List[ApiRequest] = []

    def call(self, request: ApiRequest) -> Dict[str, Any]:
        self.calls.append(request)
        matches = [key for key in self.routes if request.target.startswith(key)]
        if not matches:
            raise ApiCallFailed(f"no route for {request.target}", request=request)

        answer = self.routes[max(matches, key=len)]
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(request)
        return answer

    def targets(self) -> List[str]:
        return [request.target for request in self.calls]

    def posts(self) -> List[ApiRequest]:
        return [request for request in self.calls if request.method == 'POST']


GPON_PRIMARY_ROWS = [
    {'ont_sn': 'HWTC0001', 'ont_name': 'Budi', 'rstate': 1, 'port_id': 1, 'ont_id': 5,
     'receive_power': '-18.50'},
    {'ont_sn': 'ZTEG0002', 'ont_name': 'andi', 'rstate': 1, 'port_id': 2, 'ont_id': 1,
     'receive_power': '-26.10'},
    {'ont_sn': 'HWTC0003', 'ont_name': 'Citra', 'rstate': 2, 'port_id': 1, 'ont_id': 7},
]

GPON_OFFLINE_ROWS = [
    {'ont_sn': 'HWTC0001', 'ont_name': 'Budi Old', 'rstate': 2, 'port_id': 1, 'ont_id': 5,
     'identifier': '17', 'ont_description': 'rumah budi'},
    {'ont_sn': 'HWTC0009', 'ont_name': 'Dewi', 'rstate': 2, 'port_id': 1, 'ont_id': 9,
     'identifier': 23},
]

EPON_ROWS = [
    {'macaddr': 'AA:BB:CC:00:00:01', 'onu_name': 'warung', 'status': 'Online', 'port_id': '1',
     'onu_id': '3', 'rx_power': '-21.30'},
    {'macaddr': 'AA:BB:CC:00:00:02', 'onu_name': 'Kantor', 'status': 'Offline', 'port_id': '2',
     'onu_id': '1'},
]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gpon_adapter() -> GponAdapter:
    return GponAdapter()


@pytest.fixture
def epon_adapter() -> EponAdapter:
    return EponAdapter()


def auth_table(rows: List[Dict[str, Any]]):
    """Route answering the GPON auth table with the rows of the requested port_id"""
    def answer(request: ApiRequest) -> Dict[str, Any]:
        port = int(request.params['port_id'])
        return {'data': [dict(row) for row in rows if row['port_id'] == port]}
    return answer


@pytest.fixture
def gpon_client() -> FakeOltClient:
    """OLT with the sample GPON tables and no detail endpoints"""
    return FakeOltClient({
        '/gponmgmt?form=optical_onu': {'data': [dict(row) for row in GPON_PRIMARY_ROWS]},
        '/gponont_mgmt?form=auth': auth_table(GPON_OFFLINE_ROWS),
    })


@pytest.fixture
def epon_client() -> FakeOltClient:
    return FakeOltClient({
        '/onu_allow_list': {'code': 1},
        '/onutable': {'data': [dict(row) for row in EPON_ROWS]},
    })
