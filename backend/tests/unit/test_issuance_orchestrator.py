"""Tests for anonymous authorization code issuance.

Covers the retry loop, the response shape, the persisted record and the
hand-off to the transport registry.
"""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from anonauth.core.errors import (
    DuplicateUserCodeError,
    ExhaustedRetriesError,
    InvalidArgumentError,
    UnsupportedTransportError,
)
from anonauth.core.hashing import sha256_hex
from anonauth.services.issuance_orchestrator import (
    IssuanceOrchestrator,
    build_verification_uri,
    build_verification_uri_complete,
)
from anonauth.services.issuance_types import Client, IssuanceRecord, ValidatedRequest
from anonauth.services.user_codes import UserCodeGenerator, UserCodeService


class _ScriptedGenerator(UserCodeGenerator):
    """Returns pre-set candidates in order."""

    user_code_type = "numeric"

    def __init__(self, candidates: list[str], retry_limit: int = 5) -> None:
        self.candidates = list(candidates)
        self.retry_limit = retry_limit
        self.calls = 0

    async def generate(self) -> str:
        self.calls += 1
        return self.candidates.pop(0)


def _request(client: Client | None, transport: str = "sms") -> ValidatedRequest:
    return ValidatedRequest(
        client=client,
        description="Front desk sign-in",
        redirect_url="https://kiosk.example.com/done",
        requested_scopes=["openid"],
        transport=transport,
        transport_data="+15550100",
        provider="acme",
    )


def _holder(key: str, user_code: str, clock) -> IssuanceRecord:
    """Active record holding the hash of *user_code*."""
    return IssuanceRecord(
        verification_code=key,
        client_id="other",
        user_code_hash=sha256_hex(user_code),
        created_at=clock.now_utc(),
        lifetime=300,
        allowed_retries=3,
        transport="sms",
    )


class TestMissingArguments:
    async def test_missing_request_raises(self, orchestrator):
        with pytest.raises(InvalidArgumentError, match="request"):
            await orchestrator.issue(None)

    async def test_missing_client_raises(self, orchestrator, code_store):
        with pytest.raises(InvalidArgumentError, match="client"):
            await orchestrator.issue(_request(None))
        assert len(code_store) == 0


class TestUniqueUserCode:
    async def test_succeeds_on_last_attempt_after_collisions(
        self, orchestrator, code_store, clock
    ):
        retry_limit = 4
        taken = ["111111", "222222", "333333"]
        for i, code in enumerate(taken):
            await code_store.store(f"taken-{i}", _holder(f"taken-{i}", code, clock))

        generator = _ScriptedGenerator([*taken, "444444"], retry_limit=retry_limit)
        orchestrator.user_code_service = UserCodeService([generator])

        code = await orchestrator.generate_unique_user_code("numeric")

        assert code == "444444"
        assert generator.calls == retry_limit

    async def test_exhaustion_raises_and_persists_nothing(
        self, orchestrator, registered_client
    ):
        generator = _ScriptedGenerator(["999999"] * 5)
        store = AsyncMock()
        store.find_by_user_code_hash = AsyncMock(return_value=object())
        orchestrator.user_code_service = UserCodeService([generator])
        orchestrator.code_store = store

        with pytest.raises(ExhaustedRetriesError) as exc_info:
            await orchestrator.issue(_request(registered_client))
        await orchestrator.background.drain()

        assert exc_info.value.attempts == 5
        assert generator.calls == 5
        assert store.find_by_user_code_hash.await_count == 5
        store.store.assert_not_awaited()

    async def test_lookups_use_hash_and_skip_expired(self, orchestrator):
        generator = _ScriptedGenerator(["123456"])
        store = AsyncMock()
        store.find_by_user_code_hash = AsyncMock(return_value=None)
        orchestrator.user_code_service = UserCodeService([generator])
        orchestrator.code_store = store

        await orchestrator.generate_unique_user_code("numeric")

        store.find_by_user_code_hash.assert_awaited_once_with(
            sha256_hex("123456"), include_expired=False
        )

    async def test_unknown_client_user_code_type_raises(self, orchestrator):
        client = Client(client_id="c", user_code_type="emoji")
        with pytest.raises(InvalidArgumentError, match="emoji"):
            await orchestrator.issue(_request(client))

    async def test_client_user_code_type_is_used(
        self, orchestrator, registered_client, sms_transporter
    ):
        registered_client.user_code_type = "alphanumeric"
        await orchestrator.issue(_request(registered_client))
        await orchestrator.background.drain()

        body = sms_transporter.sent[0].body
        assert "-" in body.rsplit(" ", 1)[-1]


class TestIssue:
    async def test_response_uses_defaults(
        self, orchestrator, registered_client, authorization_options
    ):
        response = await orchestrator.issue(_request(registered_client))

        assert response.expires_in == authorization_options.default_lifetime
        assert response.interval == authorization_options.interval
        assert response.verification_uri == authorization_options.verification_uri
        assert len(response.verification_code) == 43

    async def test_lifetime_override(self, orchestrator, registered_client, code_store):
        registered_client.properties["anonymous:lifetime"] = "120"

        response = await orchestrator.issue(_request(registered_client))
        await orchestrator.background.drain()

        assert response.expires_in == 120
        record = await code_store.find_by_verification_code(response.verification_code)
        assert record.lifetime == 120

    async def test_invalid_lifetime_override_falls_back(
        self, orchestrator, registered_client, caplog
    ):
        registered_client.properties["anonymous:lifetime"] = "-5"
        with caplog.at_level(logging.WARNING):
            response = await orchestrator.issue(_request(registered_client))
        assert response.expires_in == 300
        assert "non-positive property" in caplog.text

    async def test_end_to_end_sms_with_retry_override(
        self,
        orchestrator,
        registered_client,
        code_store,
        sms_transporter,
        clock,
    ):
        registered_client.properties["anonymous:allowed_retries"] = "5"

        response = await orchestrator.issue(_request(registered_client, "sms"))
        await orchestrator.background.drain()

        code = response.verification_code
        assert response.verification_uri_complete == (
            f"{response.verification_uri}?verification_code={code}"
        )

        record = await code_store.find_by_verification_code(code)
        assert record is not None
        assert record.allowed_retries == 5
        assert record.lifetime == 300
        assert record.client_id == registered_client.client_id
        assert record.transport == "sms"
        assert record.created_at == clock.now_utc()
        assert record.description == "Front desk sign-in"
        assert record.return_url == "https://kiosk.example.com/done"
        assert record.requested_scopes == ["openid"]

        # System default SMS format, user code delivered and stored as a hash
        assert len(sms_transporter.sent) == 1
        sent = sms_transporter.sent[0]
        assert sent.data == "+15550100"
        assert sent.provider == "acme"
        assert sent.body.startswith("Your verification code is ")
        user_code = sent.body.removeprefix("Your verification code is ")
        assert record.user_code_hash == sha256_hex(user_code)
        assert user_code not in record.user_code_hash

    async def test_round_trip_by_hash(
        self, orchestrator, registered_client, code_store, sms_transporter
    ):
        response = await orchestrator.issue(_request(registered_client))
        await orchestrator.background.drain()

        user_code = sms_transporter.sent[0].body.rsplit(" ", 1)[-1]
        record = await code_store.find_by_user_code_hash(sha256_hex(user_code))

        assert record is not None
        assert record.verification_code == response.verification_code
        assert record.allowed_retries == 3

    async def test_client_transport_format_is_rendered(
        self, orchestrator, registered_client, email_transporter
    ):
        registered_client.properties["formats:email"] = "Kiosk code: {user_code}"
        request = _request(registered_client, "email")
        request.transport_data = "user@example.com"

        await orchestrator.issue(request)
        await orchestrator.background.drain()

        assert email_transporter.sent[0].body.startswith("Kiosk code: ")

    async def test_unsupported_transport_after_persist(
        self, orchestrator, registered_client, code_store
    ):
        with pytest.raises(UnsupportedTransportError):
            await orchestrator.issue(_request(registered_client, "pigeon"))
        await orchestrator.background.drain()

        # The record was handed to the store before rendering failed
        assert len(code_store) == 1

    async def test_delivery_failure_does_not_reach_caller(
        self, orchestrator, registered_client, sms_transporter
    ):
        sms_transporter.send = AsyncMock(side_effect=RuntimeError("gateway down"))

        response = await orchestrator.issue(_request(registered_client))
        await orchestrator.background.drain()

        assert response.verification_code
        sms_transporter.send.assert_awaited_once()

    async def test_persist_conflict_does_not_reach_caller(
        self, orchestrator, registered_client, code_store, sms_transporter
    ):
        code_store.store = AsyncMock(side_effect=DuplicateUserCodeError())

        response = await orchestrator.issue(_request(registered_client))
        await orchestrator.background.drain()

        assert response.verification_code
        code_store.store.assert_awaited_once()
        assert sms_transporter.sent == []

    async def test_persist_failure_skips_delivery(
        self, orchestrator, registered_client, code_store, sms_transporter
    ):
        code_store.store = AsyncMock(side_effect=RuntimeError("database down"))

        await orchestrator.issue(_request(registered_client))
        await orchestrator.background.drain()

        assert sms_transporter.sent == []

    async def test_relative_uri_joined_with_base_url(self, orchestrator, registered_client):
        response = await orchestrator.issue(
            _request(registered_client), base_url="https://auth.example.com/"
        )
        assert response.verification_uri == (
            "https://auth.example.com/connect/anonymous/verify"
        )
        assert response.verification_uri_complete.startswith(
            "https://auth.example.com/connect/anonymous/verify?verification_code="
        )

    async def test_custom_hasher_is_used(
        self,
        authorization_options,
        code_store,
        transport_registry,
        clock,
        background,
        registered_client,
        sms_transporter,
    ):
        orchestrator = IssuanceOrchestrator(
            options=authorization_options,
            user_code_service=UserCodeService(),
            code_store=code_store,
            transports=transport_registry,
            clock=clock,
            hasher=lambda code: f"h:{code}",
            background=background,
        )

        response = await orchestrator.issue(_request(registered_client))
        await background.drain()

        user_code = sms_transporter.sent[0].body.rsplit(" ", 1)[-1]
        record = await code_store.find_by_verification_code(response.verification_code)
        assert record.user_code_hash == f"h:{user_code}"


class TestConcurrentIssuance:
    async def test_same_user_code_is_delivered_once(
        self, orchestrator, registered_client, code_store, sms_transporter
    ):
        generator = _ScriptedGenerator(["424242", "424242"])
        orchestrator.user_code_service = UserCodeService([generator])
        first = _request(registered_client)
        first.transport_data = "+1-A"
        second = _request(registered_client)
        second.transport_data = "+1-B"

        # Both lookups run before either background write lands
        responses = await asyncio.gather(
            orchestrator.issue(first), orchestrator.issue(second)
        )
        await orchestrator.background.drain()

        assert generator.calls == 2
        assert len(code_store) == 1
        holder = await code_store.find_by_user_code_hash(sha256_hex("424242"))
        assert holder.verification_code in {r.verification_code for r in responses}

        assert len(sms_transporter.sent) == 1
        winner = 0 if holder.verification_code == responses[0].verification_code else 1
        assert sms_transporter.sent[0].data == ["+1-A", "+1-B"][winner]

    async def test_distinct_user_codes_are_both_delivered(
        self, orchestrator, registered_client, code_store, sms_transporter
    ):
        generator = _ScriptedGenerator(["111111", "222222"])
        orchestrator.user_code_service = UserCodeService([generator])

        await asyncio.gather(
            orchestrator.issue(_request(registered_client)),
            orchestrator.issue(_request(registered_client)),
        )
        await orchestrator.background.drain()

        assert len(code_store) == 2
        assert len(sms_transporter.sent) == 2


class TestVerificationUris:
    @pytest.mark.parametrize(
        ("uri", "base_url", "expected"),
        [
            ("/verify", None, "/verify"),
            ("/verify", "https://a.example.com", "https://a.example.com/verify"),
            ("verify", "https://a.example.com/", "https://a.example.com/verify"),
            ("https://b.example.com/v", "https://a.example.com", "https://b.example.com/v"),
        ],
    )
    def test_build_verification_uri(self, uri, base_url, expected):
        assert build_verification_uri(uri, base_url) == expected

    def test_complete_uri_strips_trailing_slash(self):
        assert build_verification_uri_complete("https://a.example.com/v/", "abc") == (
            "https://a.example.com/v?verification_code=abc"
        )

