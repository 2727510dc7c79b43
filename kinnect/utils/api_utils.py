"""
API Utilities Module

FLOW OVERVIEW
- Response helpers
  • success_response / error_response → {success, message?, ...} JSON envelope.
  • server_error_response(error) → 500 'Server error', raw text only when EXPOSE_ERROR_DETAILS.
- get_pagination()
  • page/limit query args with bounds.
- APIRateLimiter
  • Named fixed-window buckets per client IP (api, auth, media); check_request() is run
    from a before_request hook and returns a 429 payload when a bucket overflows.

Used by every blueprint to keep response shapes consistent.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from flask import current_app, jsonify, request


def success_response(status_code: int = 200, **payload):
    body = {'success': True}
    body.update(payload)
    return jsonify(body), status_code


def error_response(message: str, status_code: int, **extra):
    body = {'success': False, 'message': message}
    body.update(extra)
    return jsonify(body), status_code


def server_error_response(error: Exception = None, message: str = 'Server error'):
    """500 response; the exception text is included only when configured"""
    body = {'success': False, 'message': message}
    if error is not None and current_app.config.get('EXPOSE_ERROR_DETAILS', False):
        body['error'] = str(error)
    return jsonify(body), 500


def get_pagination(default_limit: int = 20, max_limit: int = 100) -> Tuple[int, int]:
    """Parse ?page=&limit= with sane bounds"""
    page = request.args.get('page', 1, type=int) or 1
    limit = request.args.get('limit', default_limit, type=int) or default_limit
    return max(page, 1), min(max(limit, 1), max_limit)


def total_pages(count: int, limit: int) -> int:
    return math.ceil(count / limit) if limit else 0


def client_ip() -> str:
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr or 'unknown'


@dataclass(frozen=True)
class RateLimitRule:
    """A fixed-window request budget applied to matching paths"""
    name: str
    paths: Tuple[str, ...]
    limit: int
    window_seconds: int
    message: str
    exact: bool = False
    methods: Tuple[str, ...] = ()

    def matches(self, path: str, method: str) -> bool:
        if self.methods and method not in self.methods:
            return False
        if self.exact:
            return path.rstrip('/') in self.paths
        return any(path.startswith(prefix) for prefix in self.paths)


FIFTEEN_MINUTES = 15 * 60

DEFAULT_RULES = (
    RateLimitRule(
        'api', ('/api/',), 100, FIFTEEN_MINUTES,
        'Too many requests, please try again later.',
    ),
    RateLimitRule(
        'auth', ('/api/users/login', '/api/users/register'), 10, FIFTEEN_MINUTES,
        'Too many authentication attempts, please try again later.', exact=True,
    ),
    RateLimitRule(
        'media', ('/api/media/upload',), 50, FIFTEEN_MINUTES,
        'Too many media upload requests, please try again later.', exact=True, methods=('POST',),
    ),
)


class APIRateLimiter:
    """Handles rate limiting logic."""

    def __init__(self, rules: Optional[List[RateLimitRule]] = None):
        self.logger = logging.getLogger(__name__)
        self.rules = tuple(rules) if rules is not None else DEFAULT_RULES
        self._counts: Dict[str, int] = {}
        self._lock = threading.Lock()

    def reset(self):
        with self._lock:
            self._counts.clear()

    def _hit(self, rule: RateLimitRule, ip: str, now: int) -> int:
        window = now // rule.window_seconds
        key = f"{rule.name}|{ip}|{window}"
        with self._lock:
            self._counts[key] = self._counts.get(key, 0) + 1
            # Drop counters from past windows
            stale = [k for k in self._counts
                     if k.startswith(f"{rule.name}|") and int(k.rsplit('|', 1)[1]) < window]
            for k in stale:
                del self._counts[k]
            return self._counts[key]

    def check_rate_limit(self, ip: str, path: str, method: str = 'GET') -> Tuple[bool, Optional[Dict[str, Any]]]:
        """
        Count the request against every matching bucket.

        Args:
            ip: Client IP address
            path: Request path
            method: HTTP method

        Returns:
            Tuple of (is_allowed, error_response)
        """
        now = int(time.time())
        for rule in self.rules:
            if not rule.matches(path, method):
                continue
            count = self._hit(rule, ip, now)
            if count > rule.limit:
                self.logger.warning(f"Rate limit '{rule.name}' exceeded for {ip}: {count} requests")
                return False, {'success': False, 'message': rule.message}
        return True, None

    def check_request(self):
        """before_request hook; returns a 429 response or None"""
        if not current_app.config.get('RATELIMIT_ENABLED', True):
            return None
        if request.method == 'OPTIONS':
            return None
        allowed, error = self.check_rate_limit(client_ip(), request.path, request.method)
        if not allowed:
            return jsonify(error), 429
        return None


# Global instances
rate_limiter = APIRateLimiter()
