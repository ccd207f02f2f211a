import pytest
from request_pipeline.chain import Chain
from request_pipeline.decorators import LoggingDecorator
from request_pipeline.request import Request
from request_pipeline.scenarios.authentication import (
    AccessLogHandler, AuthenticationHandler, AuthorizationHandler, AuthRequest, IpWhitelistHandler, build_auth_chain,
)


@pytest.mark.unit
@pytest.mark.parametrize("attempt, expected", [
    (AuthRequest("alice", "secret123", "User", "8.8.8.8"), "Access granted"),
    (AuthRequest("root", "secret123", "Admin", "10.0.0.1"), "Access granted"),
    (AuthRequest("root", "secret123", "Admin", "8.8.8.8"), "Access denied: IP '8.8.8.8' not whitelisted"),
    (AuthRequest("bob", "wrong", "User"), "Authentication failed: Invalid password"),
    (AuthRequest("", "", "User"), "Authentication failed: Missing credentials"),
    (AuthRequest("eve", "secret123", "Guest"), "Authorization failed: Role 'Guest' not allowed"),
])
def test_auth_chain_outcomes(attempt, expected):
    _, req = build_auth_chain().execute_payload(attempt)
    assert req.get_result(str) == expected


@pytest.mark.unit
def test_ip_whitelist_only_gates_admins():
    handler = IpWhitelistHandler("10.0.0.1")
    assert handler.can_handle(Request(AuthRequest(role="User"))) is False
    assert handler.can_handle(Request(AuthRequest(role="Admin"))) is True


@pytest.mark.unit
def test_logged_ip_whitelist_still_lets_non_admins_through():
    chain = Chain[AuthRequest]().add_handlers(
        AuthenticationHandler(),
        AuthorizationHandler("Admin", "User"),
        LoggingDecorator(IpWhitelistHandler("10.0.0.1"), tag="ip"),
        AccessLogHandler(),
    )
    _, user = chain.execute_payload(AuthRequest("alice", "secret123", "User", "8.8.8.8"))
    _, admin = chain.execute_payload(AuthRequest("root", "secret123", "Admin", "8.8.8.8"))
    assert user.get_result(str) == "Access granted"
    assert admin.get_result(str) == "Access denied: IP '8.8.8.8' not whitelisted"
