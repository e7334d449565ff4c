"""Tests for the retrying request executor."""

from datetime import timedelta

import pytest
import requests

from okta_request_pipeline.domain.request import RETRY_COUNT_HEADER, RETRY_FOR_HEADER, Request
from okta_request_pipeline.events import BackoffEvent, ResumeEvent
from okta_request_pipeline.infrastructure import RateLimitRetryPolicy, RetryingRequestExecutor
from tests.fakes import RecordingListener, RecordingSleeper, ScriptedTransport
from tests.support.responses import SERVER_NOW, json_response, rate_limited

USERS = "https://example.okta.com/api/v1/users"


def _executor(
    transport: ScriptedTransport,
    sleeper: RecordingSleeper,
    listener: RecordingListener | None = None,
    *,
    max_retries: int = 2,
    request_timeout_ms: int = 0,
) -> RetryingRequestExecutor:
    return RetryingRequestExecutor(
        transport=transport,
        policy=RateLimitRetryPolicy(
            max_retries=max_retries,
            request_timeout_ms=request_timeout_ms,
            clock=lambda: SERVER_NOW,
        ),
        sleep=sleeper,
        listeners=[listener] if listener else None,
    )


class TestRetryingRequestExecutor:
    """Tests for the retry loop around a transport."""

    def test_success_is_returned_without_retry(self, sleeper: RecordingSleeper) -> None:
        ok = json_response(200, {"id": "00u1"})
        transport = ScriptedTransport.of(ok)

        response = _executor(transport, sleeper).fetch(Request.build(USERS))

        assert response is ok
        assert len(transport.received) == 1
        assert sleeper.delays == []

    def test_non_429_failure_is_returned_unchanged(self, sleeper: RecordingSleeper) -> None:
        failure = json_response(500, {"errorCode": "E0000009"})
        transport = ScriptedTransport.of(failure)

        response = _executor(transport, sleeper).fetch(Request.build(USERS))

        assert response is failure
        assert sleeper.delays == []

    def test_retries_once_after_server_supplied_delay(self, sleeper: RecordingSleeper) -> None:
        ok = json_response(200, {"id": "00u1"})
        transport = ScriptedTransport.of(rate_limited(reset_in_seconds=3), ok)

        response = _executor(transport, sleeper).fetch(Request.build(USERS))

        assert response is ok
        assert len(transport.received) == 2
        assert sleeper.delays == [pytest.approx(4.0)]
        assert sleeper.delays[0] >= 4.0

    def test_retry_is_tagged_and_original_untouched(self, sleeper: RecordingSleeper) -> None:
        transport = ScriptedTransport.of(
            rate_limited(request_id="req-abc"),
            json_response(200, {}),
        )
        original = Request.build(USERS, headers={"Accept": "application/json"})

        _executor(transport, sleeper).fetch(original)

        first, second = transport.received
        assert first is original
        assert second is not original
        assert RETRY_COUNT_HEADER not in first.headers
        assert second.headers[RETRY_COUNT_HEADER] == "1"
        assert second.headers[RETRY_FOR_HEADER] == "req-abc"
        assert second.headers["Accept"] == "application/json"

    def test_exhausted_budget_returns_last_429(self, sleeper: RecordingSleeper) -> None:
        third = rate_limited(request_id="req-3")
        transport = ScriptedTransport.of(
            rate_limited(request_id="req-1"),
            rate_limited(request_id="req-2"),
            third,
        )

        response = _executor(transport, sleeper, max_retries=2).fetch(Request.build(USERS))

        assert response is third
        assert len(transport.received) == 3
        assert len(sleeper.delays) == 2
        assert [r.retry_count for r in transport.received] == [None, 1, 2]
        assert {r.retry_for for r in transport.received[1:]} == {"req-1"}

    def test_unparseable_reset_is_not_retried(self, sleeper: RecordingSleeper) -> None:
        limited = rate_limited(reset_header="1,2")
        transport = ScriptedTransport.of(limited)

        response = _executor(transport, sleeper).fetch(Request.build(USERS))

        assert response is limited
        assert sleeper.delays == []

    def test_unparseable_retry_count_returns_the_429(self, sleeper: RecordingSleeper) -> None:
        limited = rate_limited()
        transport = ScriptedTransport.of(limited)
        request = Request.build(USERS, headers={RETRY_COUNT_HEADER: "x"})

        response = _executor(transport, sleeper).fetch(request)

        assert response is limited
        assert sleeper.delays == []

    def test_timeout_stops_retrying(self, sleeper: RecordingSleeper) -> None:
        times = iter([SERVER_NOW, SERVER_NOW + timedelta(seconds=5)])
        executor = RetryingRequestExecutor(
            transport=ScriptedTransport.of(rate_limited(), rate_limited(), json_response(200, {})),
            policy=RateLimitRetryPolicy(
                max_retries=5,
                request_timeout_ms=1000,
                clock=lambda: next(times),
            ),
            sleep=sleeper,
        )

        response = executor.fetch(Request.build(USERS))

        assert response.status_code == 429
        assert len(sleeper.delays) == 1

    def test_negative_delay_is_clamped(self, sleeper: RecordingSleeper) -> None:
        transport = ScriptedTransport.of(
            rate_limited(reset_in_seconds=-10),
            json_response(200, {}),
        )

        _executor(transport, sleeper).fetch(Request.build(USERS))

        assert sleeper.delays == [0.0]

    def test_transport_failure_propagates(self, sleeper: RecordingSleeper) -> None:
        transport = ScriptedTransport.of(requests.ConnectionError("connection reset"))

        with pytest.raises(requests.ConnectionError):
            _executor(transport, sleeper).fetch(Request.build(USERS))


class TestRetryNotifications:
    """Tests for backoff/resume notifications."""

    def test_backoff_then_resume_are_published(
        self, sleeper: RecordingSleeper, listener: RecordingListener
    ) -> None:
        limited = rate_limited(reset_in_seconds=5, request_id="req-abc")
        transport = ScriptedTransport.of(limited, json_response(200, {}))
        original = Request.build(USERS)

        _executor(transport, sleeper, listener).fetch(original)

        assert [type(event) for event in listener.events] == [BackoffEvent, ResumeEvent]
        backoff = listener.backoffs[0]
        assert backoff.request is original
        assert backoff.response is limited
        assert backoff.request_id == "req-abc"
        assert backoff.delay_seconds == pytest.approx(6.0)
        resume = listener.resumes[0]
        assert resume.request is transport.received[1]
        assert resume.request_id == "req-abc"

    def test_no_notifications_without_retry(
        self, sleeper: RecordingSleeper, listener: RecordingListener
    ) -> None:
        transport = ScriptedTransport.of(json_response(200, {}))

        _executor(transport, sleeper, listener).fetch(Request.build(USERS))

        assert listener.events == []

    def test_removed_listener_is_not_notified(
        self, sleeper: RecordingSleeper, listener: RecordingListener
    ) -> None:
        transport = ScriptedTransport.of(rate_limited(), json_response(200, {}))
        executor = _executor(transport, sleeper)
        executor.add_listener(listener)
        executor.remove_listener(listener)

        executor.fetch(Request.build(USERS))

        assert listener.events == []

    def test_backoff_is_published_before_sleeping(self) -> None:
        order: list[str] = []

        class OrderListener(RecordingListener):
            def on_backoff(self, event: BackoffEvent) -> None:
                order.append("backoff")

            def on_resume(self, event: ResumeEvent) -> None:
                order.append("resume")

        executor = RetryingRequestExecutor(
            transport=ScriptedTransport.of(rate_limited(), json_response(200, {})),
            policy=RateLimitRetryPolicy(clock=lambda: SERVER_NOW),
            sleep=lambda _: order.append("sleep"),
            listeners=[OrderListener()],
        )

        executor.fetch(Request.build(USERS))

        assert order == ["backoff", "sleep", "resume"]
