#!/usr/bin/env python3

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple, Type, TypeVar
from urllib.parse import urlencode

import requests
from urllib3.exceptions import InsecureRequestWarning

from metrics_registry import olt_api_metrics
from olt_errors import ApiCallFailed, AuthenticationError, TokenRejected
from olt_session import SessionManager, TOKEN_HEADER

# OLT web interfaces usually run on self-signed certificates
requests.packages.urllib3.disable_warnings(category=InsecureRequestWarning)

TOKEN_CHECK_FAILED = 'Token Check Failed'
DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_BACKOFF_SECONDS = 1.0

T = TypeVar('T')


@dataclass(frozen=True)
class ApiRequest:
    """One OLT HTTP interaction"""
    method: str
    path: str
    params: Dict[str, Any] = field(default_factory=dict)
    payload: Optional[Dict[str, Any]] = None

    @property
    def target(self) -> str:
        """Path with query string, as the OLT web UI writes it"""
        if not self.params:
            return self.path
        return f"{self.path}?{urlencode(self.params)}"

    def __str__(self) -> str:
        return f"{self.method} {self.target}"


def get_request(path: str, **params) -> ApiRequest:
    return ApiRequest('GET', path, params=params)


def set_request(path: str, param: Dict[str, Any], **params) -> ApiRequest:
    """POST carrying the OLT's {method: set, param: {...}} envelope"""
    return ApiRequest('POST', path, params=params, payload={'method': 'set', 'param': param})


def is_ack_success(payload: Optional[Dict[str, Any]]) -> bool:
    """True when a mutating call's reply says it was applied"""
    if not isinstance(payload, dict):
        return False
    message = payload.get('message')
    if isinstance(message, str) and message.lower() == 'success':
        return True
    if payload.get('status') == 'success':
        return True
    code = payload.get('code')
    return code == 1 and not isinstance(code, bool)


def retry_call(operation: Callable[[], T],
               recoverable: Tuple[Type[Exception], ...],
               max_attempts: int = DEFAULT_MAX_ATTEMPTS,
               backoff: Callable[[Exception], float] = lambda fault: DEFAULT_BACKOFF_SECONDS,
               on_fault: Optional[Callable[[Exception, int], None]] = None,
               sleep: Callable[[float], None] = time.sleep,
               description: str = 'operation') -> T:
    """Run operation up to max_attempts times.

    Faults matching ``recoverable`` are reported to ``on_fault`` and retried
    after ``backoff(fault)`` seconds while attempts remain. Any other
    exception propagates untouched. When the attempts run out,
    ApiCallFailed is raised carrying the last fault.
    """
    last_fault: Optional[Exception] = None
    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except recoverable as fault:
            last_fault = fault
            if on_fault is not None:
                on_fault(fault, attempt)
            if attempt < max_attempts:
                delay = backoff(fault)
                logging.info(f"{description} failed on attempt {attempt}/{max_attempts}, retrying")
                if delay > 0:
                    sleep(delay)

    logging.error(f"{description} failed after {max_attempts} attempts: {last_fault}")
    raise ApiCallFailed(f"{description} failed after {max_attempts} attempts: {last_fault}",
                        last_fault=last_fault) from last_fault


class RetryingApiClient:
    """Client for the OLT web API that keeps the session token valid.

    Every call makes sure a token is held and sends it as the X-Token header.
    The OLT reports a rejected token as 'Token Check Failed' in an HTTP 200
    body. Token rejections retry at once; transport faults retry after a
    fixed backoff. Both clear the held token first.
    """

    RECOVERABLE = (TokenRejected, AuthenticationError, requests.exceptions.RequestException, ValueError)

    def __init__(self, http: requests.Session, base_url: str, sessions: SessionManager,
                 max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
                 timeout: float = 10, verify: bool = True,
                 sleep: Callable[[float], None] = time.sleep):
        self.http = http
        self.base_url = base_url.rstrip('/')
        self.sessions = sessions
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.timeout = timeout
        self.verify = verify
        self.sleep = sleep

    def call(self, request: ApiRequest) -> Dict[str, Any]:
        """Execute request and return the decoded JSON body"""
        if request.method.upper() not in ('GET', 'POST'):
            raise ValueError(f"Unsupported HTTP method: {request.method}")

        try:
            return retry_call(
                lambda: self._attempt(request),
                self.RECOVERABLE,
                max_attempts=self.max_attempts,
                backoff=self._backoff_for,
                on_fault=self._on_fault,
                sleep=self.sleep,
                description=str(request),
            )
        except ApiCallFailed as e:
            olt_api_metrics.calls_failed_total.labels(method=request.method).inc()
            e.request = request
            raise

    def get(self, path: str, **params) -> Dict[str, Any]:
        return self.call(get_request(path, **params))

    def post(self, path: str, payload: Dict[str, Any], **params) -> Dict[str, Any]:
        return self.call(ApiRequest('POST', path, params=params, payload=payload))

    def _attempt(self, request: ApiRequest) -> Dict[str, Any]:
        token = self.sessions.ensure_valid_token()
        url = f"{self.base_url}{request.path}"
        headers = {TOKEN_HEADER: token}

        logging.debug(f"OLT request: {request}")
        try:
            if request.method.upper() == 'GET':
                response = self.http.get(url, headers=headers, params=request.params or None,
                                         timeout=self.timeout, verify=self.verify)
            else:
                headers['Content-Type'] = 'application/json'
                response = self.http.post(url, headers=headers, params=request.params or None,
                                          json=request.payload, timeout=self.timeout, verify=self.verify)

            response.raise_for_status()
            body = response.json()
        except (requests.exceptions.RequestException, ValueError):
            olt_api_metrics.requests_total.labels(method=request.method, outcome='transport_error').inc()
            raise

        if isinstance(body, dict) and body.get('message') == TOKEN_CHECK_FAILED:
            olt_api_metrics.requests_total.labels(method=request.method, outcome='token_rejected').inc()
            olt_api_metrics.token_rejections_total.inc()
            raise TokenRejected(f"OLT rejected token for {request}")

        olt_api_metrics.requests_total.labels(method=request.method, outcome='success').inc()
        if not isinstance(body, dict):
            return {'data': body}
        return body

    def _backoff_for(self, fault: Exception) -> float:
        if isinstance(fault, TokenRejected):
            return 0
        return self.backoff_seconds

    def _on_fault(self, fault: Exception, attempt: int):
        self.sessions.invalidate()
        if isinstance(fault, TokenRejected):
            logging.warning(f"Token check failed (attempt {attempt}/{self.max_attempts}), token cleared")
            reason = 'token_rejected'
        else:
            logging.warning(f"OLT request failed (attempt {attempt}/{self.max_attempts}): {fault}")
            reason = 'auth_error' if isinstance(fault, AuthenticationError) else 'transport_error'
        if attempt < self.max_attempts:
            olt_api_metrics.retries_total.labels(reason=reason).inc()
