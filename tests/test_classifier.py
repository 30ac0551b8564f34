"""Tests for ErrorClassifier and the error taxonomy."""

import pytest

from taxdesk.chat.classifier import (
    NETWORK_TEMPLATE,
    TIMEOUT_TEMPLATE,
    UNAVAILABLE_TEMPLATE,
    ContactInfo,
    ErrorClassifier,
)
from taxdesk.chat.errors import (
    ChatError,
    DeadlineExceeded,
    FailureCause,
    FallbackFormatError,
    HttpError,
    ProtocolError,
    TransportError,
)
from taxdesk.config import DEFAULT_EMAIL, DEFAULT_PHONE


class TestErrorClassifier:
    @pytest.mark.parametrize(
        "cause, template",
        [
            (FailureCause.TIMEOUT, TIMEOUT_TEMPLATE),
            (FailureCause.NETWORK, NETWORK_TEMPLATE),
            (FailureCause.HTTP, UNAVAILABLE_TEMPLATE),
            (FailureCause.MALFORMED, UNAVAILABLE_TEMPLATE),
            (None, UNAVAILABLE_TEMPLATE),
        ],
    )
    def test_template_per_cause(self, cause, template):
        text = ErrorClassifier().classify(cause)
        assert text == template.format(phone=DEFAULT_PHONE, email=DEFAULT_EMAIL)

    @pytest.mark.parametrize("cause", list(FailureCause))
    def test_every_message_has_contact_details(self, cause):
        text = ErrorClassifier(ContactInfo(phone="+91 11111 22222", email="a@b.in")).classify(cause)
        assert "+91 11111 22222" in text
        assert "a@b.in" in text

    def test_blank_contact_uses_defaults(self):
        text = ErrorClassifier(ContactInfo(phone="", email="")).classify(FailureCause.NETWORK)
        assert DEFAULT_PHONE in text
        assert DEFAULT_EMAIL in text

    def test_timeout_and_network_differ(self):
        classifier = ErrorClassifier()
        assert classifier.classify(FailureCause.TIMEOUT) != classifier.classify(FailureCause.NETWORK)


class TestErrorTaxonomy:
    @pytest.mark.parametrize(
        "error, cause",
        [
            (ProtocolError("bad"), FailureCause.MALFORMED),
            (TransportError("reset"), FailureCause.NETWORK),
            (HttpError(502, "bad gateway"), FailureCause.HTTP),
            (DeadlineExceeded("slow"), FailureCause.TIMEOUT),
            (FallbackFormatError("no text"), FailureCause.MALFORMED),
        ],
    )
    def test_causes(self, error, cause):
        assert isinstance(error, ChatError)
        assert error.cause is cause

    def test_http_error_carries_status(self):
        error = HttpError(500, "boom")
        assert error.status_code == 500
        assert "500" in str(error)
