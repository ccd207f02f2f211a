"""
authentication.py — access-control chain.

Authentication -> Authorization -> IP whitelist (admins only) -> Access log.

Every stage that rejects the request writes the reason into the result slot
and stops the run; the last stage records "Access granted".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet

from request_pipeline.chain import Chain
from request_pipeline.handler import Handler
from request_pipeline.request import HandlerResult, Request

__all__ = [
    "AuthRequest",
    "AuthenticationHandler",
    "AuthorizationHandler",
    "IpWhitelistHandler",
    "AccessLogHandler",
    "build_auth_chain",
]

logger = logging.getLogger(__name__)

ADMIN_ROLE = "Admin"


@dataclass(frozen=True, slots=True)
class AuthRequest:
    username: str = ""
    password: str = ""
    role: str = ""
    ip_address: str = ""


class AuthenticationHandler(Handler[AuthRequest]):
    """
    Checks username/password against a single configured secret.

    :param secret: Password accepted by this demo.
    """

    def __init__(self, secret: str = "secret123") -> None:
        super().__init__()
        self._secret = secret

    def process(self, request: Request[AuthRequest]) -> HandlerResult:
        logger.info("[%s] Checking credentials", self.name)
        data = request.payload
        if not data.username or not data.password:
            request.set_result("Authentication failed: Missing credentials")
            return HandlerResult.HANDLED
        if data.password != self._secret:
            request.set_result("Authentication failed: Invalid password")
            return HandlerResult.HANDLED
        return HandlerResult.CONTINUE


class AuthorizationHandler(Handler[AuthRequest]):
    """
    :param allowed_roles: Roles permitted to proceed.
    """

    def __init__(self, *allowed_roles: str) -> None:
        super().__init__()
        self._allowed: FrozenSet[str] = frozenset(allowed_roles)

    def process(self, request: Request[AuthRequest]) -> HandlerResult:
        logger.info("[%s] Checking authorization", self.name)
        role = request.payload.role
        if role not in self._allowed:
            request.set_result(f"Authorization failed: Role '{role}' not allowed")
            return HandlerResult.HANDLED
        return HandlerResult.CONTINUE


class IpWhitelistHandler(Handler[AuthRequest]):
    """
    Restricts admins to known addresses. Other roles pass through untouched.

    :param allowed_ips: Whitelisted addresses.
    """

    def __init__(self, *allowed_ips: str) -> None:
        super().__init__()
        self._allowed: FrozenSet[str] = frozenset(allowed_ips)

    def can_handle(self, request: Request[AuthRequest]) -> bool:
        return request.payload.role == ADMIN_ROLE

    def process(self, request: Request[AuthRequest]) -> HandlerResult:
        logger.info("[%s] Checking IP whitelist for admin", self.name)
        ip = request.payload.ip_address
        if ip not in self._allowed:
            request.set_result(f"Access denied: IP '{ip}' not whitelisted")
            return HandlerResult.HANDLED
        return HandlerResult.CONTINUE


class AccessLogHandler(Handler[AuthRequest]):
    """Terminal stage: logs the access and grants it."""

    def process(self, request: Request[AuthRequest]) -> HandlerResult:
        data = request.payload
        logger.info("[%s] User: %s, Role: %s, IP: %s", self.name, data.username, data.role, data.ip_address)
        request.set_result("Access granted")
        return HandlerResult.HANDLED


def build_auth_chain() -> Chain[AuthRequest]:
    """
    :return: Authentication -> Authorization(Admin, User) -> IP whitelist -> Access log.
    """
    return Chain[AuthRequest]().add_handlers(
        AuthenticationHandler(),
        AuthorizationHandler(ADMIN_ROLE, "User"),
        IpWhitelistHandler("10.0.0.1", "192.168.1.10"),
        AccessLogHandler(),
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    chain = build_auth_chain()
    for attempt in (
        AuthRequest("alice", "secret123", "User", "8.8.8.8"),
        AuthRequest("root", "secret123", ADMIN_ROLE, "8.8.8.8"),
        AuthRequest("bob", "wrong", "User", "10.0.0.1"),
    ):
        _, req = chain.execute_payload(attempt)
        print(f"{attempt.username}: {req.get_result(str)}")
