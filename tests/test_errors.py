import socket

import httpx
import pytest

from aquaroute.services.optimization.errors import (
    EmptySelection,
    ErrorCategory,
    FailureSignal,
    OptimizerRejected,
    translate_error,
)


def _status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "http://optimizer.test/optimize-route-genetic")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(f"HTTP {code}", request=request, response=response)


@pytest.mark.parametrize(
    ("signal", "expected"),
    [
        ("Endpoint returned 404", ErrorCategory.SERVICE_UNAVAILABLE),
        ("resource not found", ErrorCategory.SERVICE_UNAVAILABLE),
        ("connection refused", ErrorCategory.NETWORK_ERROR),
        ("request timed out", ErrorCategory.TIMEOUT),
        ("HTTP 503 from upstream", ErrorCategory.SERVER_ERROR),
        ("internal server failure", ErrorCategory.SERVER_ERROR),
        ("No water supplies found", ErrorCategory.NO_CANDIDATES_FOUND),
        ("something odd", ErrorCategory.UNKNOWN),
        (None, ErrorCategory.UNKNOWN),
        (502, ErrorCategory.SERVER_ERROR),
        (404, ErrorCategory.SERVICE_UNAVAILABLE),
    ],
)
def test_translate_error_messages(signal, expected) -> None:
    assert translate_error(signal) is expected


def test_first_matching_category_wins() -> None:
    assert translate_error("404 timeout while calling optimizer") is ErrorCategory.SERVICE_UNAVAILABLE
    assert translate_error("network timeout") is ErrorCategory.NETWORK_ERROR


def test_translate_error_reads_exception_types() -> None:
    request = httpx.Request("POST", "http://optimizer.test")

    assert translate_error(httpx.ReadTimeout("slow", request=request)) is ErrorCategory.TIMEOUT
    assert translate_error(httpx.ConnectError("refused", request=request)) is ErrorCategory.NETWORK_ERROR
    assert translate_error(socket.gaierror("nodename nor servname")) is ErrorCategory.NETWORK_ERROR
    assert translate_error(TimeoutError()) is ErrorCategory.TIMEOUT
    assert translate_error(_status_error(500)) is ErrorCategory.SERVER_ERROR
    assert translate_error(_status_error(404)) is ErrorCategory.SERVICE_UNAVAILABLE


def test_validation_and_rejection_categories() -> None:
    assert translate_error(EmptySelection()) is ErrorCategory.VALIDATION_ERROR
    assert translate_error(OptimizerRejected("No water supplies found")) is ErrorCategory.NO_CANDIDATES_FOUND


def test_failure_signal_from_status_error() -> None:
    signal = FailureSignal.from_exception(_status_error(503))

    assert signal.status_code == 503
    assert not signal.timed_out
    assert not signal.network


def test_every_category_has_a_user_message() -> None:
    for category in ErrorCategory:
        assert category.message
