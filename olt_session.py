#!/usr/bin/env python3

import base64
import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Any

import requests

from metrics_registry import olt_api_metrics
from olt_errors import AuthenticationError

LOGIN_PATH = '/userlogin?form=login'
TOKEN_HEADER = 'X-Token'
DEFAULT_TOKEN_TTL_SECONDS = 1800


@dataclass(frozen=True)
class Session:
    """Token issued by the OLT and the instant it is assumed to expire"""
    token: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return bool(self.token) and now < self.expires_at


class TokenStore:
    """Holds the single process-wide OLT session.

    The session value is immutable and replaced wholesale, so readers never
    see a half-written token. Concurrent re-authentication is tolerated: the
    last replace wins.
    """

    def __init__(self):
        self._session: Optional[Session] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def current_token(self, now: float) -> Optional[str]:
        """Return the held token if it has not expired"""
        session = self._session
        if session is None or not session.is_valid(now):
            return None
        return session.token

    def replace(self, session: Session):
        self._session = session

    def invalidate(self):
        """Drop the held token so the next call logs in again"""
        self._session = None


class Authenticator:
    """Performs the OLT login exchange"""

    def __init__(self, http: requests.Session, base_url: str, username: str, password: str,
                 timeout: float = 10, verify: bool = True):
        self.http = http
        self.base_url = base_url.rstrip('/')
        self.username = username
        self.timeout = timeout
        self.verify = verify
        # The OLT expects md5("user:pass") as hex and the password as base64
        self.key = hashlib.md5(f"{username}:{password}".encode('utf-8')).hexdigest()
        self.value = base64.b64encode(password.encode('utf-8')).decode('ascii')

    def build_login_payload(self) -> Dict[str, Any]:
        return {
            'method': 'set',
            'param': {
                'name': self.username,
                'key': self.key,
                'value': self.value,
                'captcha_v': '',
                'captcha_f': ''
            }
        }

    def login(self) -> str:
        """Log in and return the token found in the X-Token response header"""
        url = f"{self.base_url}{LOGIN_PATH}"
        logging.info(f"Sending login request to {url}")

        try:
            response = self.http.post(url, json=self.build_login_payload(),
                                      timeout=self.timeout, verify=self.verify)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            olt_api_metrics.login_total.labels(outcome='transport_error').inc()
            logging.error(f"Login request to OLT failed: {e}")
            raise AuthenticationError(f"login request failed: {e}") from e

        token = response.headers.get(TOKEN_HEADER)
        if not token:
            olt_api_metrics.login_total.labels(outcome='no_token').inc()
            logging.warning("No token found in login response headers")
            raise AuthenticationError("no token issued")

        olt_api_metrics.login_total.labels(outcome='success').inc()
        logging.info(f"Token acquired: {token[:10]}...")
        return token


class SessionManager:
    """Single owner of the OLT session, shared by the API client and commands"""

    def __init__(self, authenticator: Authenticator, store: Optional[TokenStore] = None,
                 ttl_seconds: float = DEFAULT_TOKEN_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        self.authenticator = authenticator
        self.store = store if store is not None else TokenStore()
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def ensure_valid_token(self) -> str:
        """Return the held token, logging in first when it is absent or expired"""
        now = self.clock()
        token = self.store.current_token(now)
        if token:
            return token

        if self.store.session is None:
            logging.info("No OLT token held, logging in")
        else:
            logging.info("OLT token expired, logging in again")

        token = self.authenticator.login()
        # TTL is a client-side assumption, the OLT does not report one
        self.store.replace(Session(token=token, expires_at=now + self.ttl_seconds))
        return token

    def invalidate(self):
        self.store.invalidate()
