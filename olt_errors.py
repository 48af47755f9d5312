#!/usr/bin/env python3

from typing import Optional


class OltError(Exception):
    """Base error for OLT communication"""
    pass


class AuthenticationError(OltError):
    """Login exchange failed or the OLT issued no token"""
    pass


class TokenRejected(OltError):
    """OLT answered with 'Token Check Failed' inside a successful response"""
    pass


class ApiCallFailed(OltError):
    """All attempts of an OLT API call failed"""

    def __init__(self, message: str, last_fault: Optional[Exception] = None, request=None):
        super().__init__(message)
        self.last_fault = last_fault
        self.request = request
