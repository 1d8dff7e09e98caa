# test/test_idology.py
"""Normalization tests for the IDology ExpectID provider.

Replies mirror what the ExpectID sandbox returns for its documented test
identities; the transport is a fake that records calls.
"""
import logging

import pytest

from kyc_verification.errors import CapabilityError, CredentialError, TransportError, VerificationError
from kyc_verification.models import Finality, Status
from kyc_verification.providers.idology import IDology, IDologyConfig, KYC_ENDPOINT
from kyc_verification.service import VerificationService

MATCH = {"key": "result.match", "message": "ID Located"}


def _q(key: str, message: str) -> dict:
    return {"key": key, "message": message}


def _service(transport, **config) -> VerificationService:
    cfg = IDologyConfig(host=KYC_ENDPOINT, username="modulus.dev2", password="secret", **config)
    return VerificationService(IDology(cfg, transport=transport))


# ------------------------------- request --------------------------------------

def test_request_is_built_from_customer_data(fake_transport, customer):
    t = fake_transport(body={"id-number": 1, "results": MATCH})
    _service(t).check_customer(customer)

    assert t.call_count == 1
    method, url, headers, _ = t.calls[0]
    assert method == "POST"
    assert url == KYC_ENDPOINT
    assert headers["Content-Type"].startswith("application/json")

    sent = t.last_json()
    assert sent["username"] == "modulus.dev2"
    assert sent["password"] == "secret"
    assert sent["firstName"] == "John"
    assert sent["lastName"] == "Smith"
    assert sent["address"] == "222333 PeachTree Place"
    assert sent["city"] == "Atlanta"
    assert sent["state"] == "GA"
    assert sent["zip"] == "30318"
    assert sent["ssn"] == "112223333"
    assert (sent["dobMonth"], sent["dobDay"], sent["dobYear"]) == (2, 28, 1975)
    assert "email" not in sent


# ------------------------------- decisions ------------------------------------

def test_clean_result_approves_with_empty_reasons(fake_transport, customer):
    t = fake_transport(body={"id-number": 1, "results": MATCH})
    result = _service(t).check_customer(customer)

    assert result.status is Status.APPROVED
    assert result.details is not None
    assert result.details.finality is Finality.UNKNOWN
    assert result.details.reasons == []


def test_patriot_act_alert_denies_with_full_evidence(fake_transport, customer):
    t = fake_transport(body={
        "id-number": 2,
        "results": MATCH,
        "qualifiers": [_q("resultcode.patriot.act.alert", "Patriot Act Alert")],
        "pa": {"list": "Office of Foreign Asset Control", "score": 100, "dob-match": True},
    })
    result = _service(t).check_customer(customer)

    assert result.status is Status.DENIED
    assert result.details.finality is Finality.UNKNOWN
    assert result.details.reasons == [
        "Patriot Act Alert",
        "Office of Foreign Asset Control",
        "Patriot Act score: 100",
        "PA DOB Match",
    ]


def test_patriot_act_score_alone_does_not_deny(fake_transport, customer):
    t = fake_transport(body={"results": MATCH, "pa": {"score": 0}})
    result = _service(t).check_customer(customer)

    assert result.status is Status.APPROVED
    assert result.details.reasons == ["Patriot Act score: 0"]


def test_patriot_act_dob_match_without_list_does_not_deny(fake_transport, customer):
    t = fake_transport(body={"results": MATCH, "pa": {"score": 12, "dob-match": True}})
    result = _service(t).check_customer(customer)

    assert result.status is Status.APPROVED
    assert result.details.reasons == ["Patriot Act score: 12", "PA DOB Match"]


def test_patriot_act_list_hit_denies_without_alert_qualifier(fake_transport, customer):
    t = fake_transport(body={"results": MATCH, "pa": {"list": "Office of Foreign Asset Control"}})
    result = _service(t).check_customer(customer)

    assert result.status is Status.DENIED
    assert result.details.reasons == ["Office of Foreign Asset Control"]


def test_deny_trigger_is_logged_at_debug(fake_transport, customer, caplog):
    t = fake_transport(body={
        "results": MATCH,
        "qualifiers": [_q("resultcode.patriot.act.alert", "Patriot Act Alert")],
    })
    with caplog.at_level(logging.DEBUG, logger="kyc.idology"):
        _service(t).check_customer(customer)

    records = [r for r in caplog.records if "deny triggered" in r.getMessage()]
    assert len(records) == 1
    assert records[0].levelno == logging.DEBUG


def test_coppa_alert_denies(fake_transport, customer):
    t = fake_transport(body={
        "results": MATCH,
        "id-notes": [_q("resultcode.coppa.alert", "COPPA Alert")],
    })
    result = _service(t).check_customer(customer)

    assert result.status is Status.DENIED
    assert result.details.finality is Finality.UNKNOWN
    assert result.details.reasons == ["COPPA Alert"]


def test_restriction_denies(fake_transport, customer):
    t = fake_transport(body={
        "results": MATCH,
        "restriction": _q("global.watch.list", "Subject is on a restricted list"),
    })
    result = _service(t).check_customer(customer)

    assert result.status is Status.DENIED
    assert result.details.reasons == ["Subject is on a restricted list"]


@pytest.mark.parametrize(
    "qualifiers",
    [
        [_q("resultcode.address.does.not.match", "Address Does Not Match"),
         _q("resultcode.street.name.does.not.match", "Street Name Does Not Match")],
        [_q("resultcode.address.does.not.match", "Address Does Not Match"),
         _q("resultcode.street.number.does.not.match", "Street Number Does Not Match"),
         _q("resultcode.street.name.does.not.match", "Street Name Does Not Match")],
        [_q("resultcode.address.does.not.match", "Address Does Not Match"),
         _q("resultcode.input.address.is.po.box", "Input Address is a PO Box")],
        [_q("resultcode.zip.does.not.match", "ZIP Code Does Not Match")],
        [_q("resultcode.yob.within.one.year", "YOB Does Not Match, Within 1 Year Tolerance")],
        [_q("resultcode.ssn.within.one.digit", "SSN Does Not Match, Within Tolerance")],
        [_q("resultcode.no.dob.available", "No DOB Available"),
         _q("resultcode.ssn.not.found", "SSN Not Found"),
         _q("resultcode.thin.file", "Thin File"),
         _q("resultcode.data.strength.alert", "Data Strength Alert")],
        [_q("resultcode.warm.address", "Warm Address Alert (hotel)"),
         _q("resultcode.data.strength.alert", "Data Strength Alert")],
    ],
)
def test_mismatch_qualifiers_approve_and_keep_order(fake_transport, customer, qualifiers):
    t = fake_transport(body={"results": MATCH, "qualifiers": qualifiers})
    result = _service(t).check_customer(customer)

    assert result.status is Status.APPROVED
    assert result.details.finality is Finality.UNKNOWN
    assert result.details.reasons == [q["message"] for q in qualifiers]


def test_street_name_mismatch_scenario(fake_transport, customer):
    t = fake_transport(body={
        "results": MATCH,
        "qualifiers": [
            _q("resultcode.address.does.not.match", "Address Does Not Match"),
            _q("resultcode.street.name.does.not.match", "Street Name Does Not Match"),
        ],
    })
    result = _service(t).check_customer(customer.model_copy(update={
        "current_address": customer.current_address.model_copy(update={"street": "Magnolia"}),
    }))

    assert result.status is Status.APPROVED
    assert result.details.reasons == ["Address Does Not Match", "Street Name Does Not Match"]


def test_tolerance_variants_stay_distinct(fake_transport, customer):
    t = fake_transport(body={"results": MATCH, "qualifiers": [
        _q("resultcode.yob.does.not.match", "YOB Does Not Match"),
        _q("resultcode.yob.within.one.year", "YOB Does Not Match, Within 1 Year Tolerance"),
        _q("resultcode.data.strength.alert", "Data Strength Alert"),
        _q("resultcode.data.strength.alert", "Data Strength Alert"),
    ]})
    result = _service(t).check_customer(customer)

    assert result.details.reasons == [
        "YOB Does Not Match",
        "YOB Does Not Match, Within 1 Year Tolerance",
        "Data Strength Alert",
        "Data Strength Alert",
    ]


def test_id_not_located_denies(fake_transport, customer):
    t = fake_transport(body={"results": {"key": "result.no.match", "message": "ID Not Located"}})
    result = _service(t).check_customer(customer)

    assert result.status is Status.DENIED
    assert result.details.reasons == ["ID Not Located"]


def test_missing_results_is_unknown(fake_transport, customer):
    t = fake_transport(body={"id-number": 3})
    result = _service(t).check_customer(customer)

    assert result.status is Status.UNKNOWN
    assert result.details.reasons == []


def test_unverified_qualifier_is_neutral_and_warns(fake_transport, customer, caplog):
    t = fake_transport(body={"results": MATCH, "qualifiers": [
        _q("resultcode.subject.deceased", "Subject Deceased"),
    ]})
    with caplog.at_level(logging.WARNING, logger="kyc.rules"):
        result = _service(t).check_customer(customer)

    assert result.status is Status.APPROVED
    assert result.details.reasons == ["Subject Deceased"]
    assert any("not verified" in r.getMessage() for r in caplog.records)


# ------------------------------- summary result -------------------------------

def test_summary_failure_is_final_when_enabled(fake_transport, customer):
    body = {"results": MATCH, "summary-result": {"key": "id.failure", "message": "FAIL"}}
    result = _service(fake_transport(body=body), use_summary_result=True).check_customer(customer)

    assert result.status is Status.DENIED
    assert result.details.finality is Finality.FINAL


def test_summary_result_ignored_when_disabled(fake_transport, customer):
    body = {"results": MATCH, "summary-result": {"key": "id.failure", "message": "FAIL"}}
    result = _service(fake_transport(body=body)).check_customer(customer)

    assert result.status is Status.APPROVED
    assert result.details.finality is Finality.UNKNOWN


# ------------------------------- errors ---------------------------------------

def test_wrong_credentials_error(fake_transport, customer):
    t = fake_transport(body={"error": "Invalid username and password"})
    with pytest.raises(CredentialError) as exc_info:
        _service(t).check_customer(customer)

    err = exc_info.value
    assert str(err) == "during verification: Invalid username and password"
    assert err.outcome.status is Status.ERROR
    assert err.outcome.details is None


def test_other_provider_error_is_transport_error(fake_transport, customer):
    t = fake_transport(body={"error": "Service temporarily unavailable"})
    with pytest.raises(TransportError) as exc_info:
        _service(t).check_customer(customer)

    assert not isinstance(exc_info.value, CredentialError)
    assert str(exc_info.value) == "during verification: Service temporarily unavailable"


@pytest.mark.parametrize("code", [400, 404, 500, 503])
def test_non_success_status_is_error(fake_transport, customer, code):
    t = fake_transport(status=code)
    with pytest.raises(TransportError) as exc_info:
        _service(t).check_customer(customer)

    assert exc_info.value.status_code == code
    assert exc_info.value.outcome.status is Status.ERROR
    assert exc_info.value.outcome.details is None
    assert str(exc_info.value) == f"during verification: HTTP {code}"


def test_transport_failure_is_error(fake_transport, customer):
    t = fake_transport(error="Connection refused")
    with pytest.raises(TransportError, match="during verification: Connection refused"):
        _service(t).check_customer(customer)
    assert t.call_count == 1


def test_malformed_body_is_error(fake_transport, customer):
    t = fake_transport(body="<html>gateway</html>")
    with pytest.raises(TransportError, match="malformed IDology response"):
        _service(t).check_customer(customer)


def test_status_check_is_not_supported(fake_transport):
    t = fake_transport(body={"results": MATCH})
    with pytest.raises(CapabilityError) as exc_info:
        _service(t).check_status("12345")

    assert str(exc_info.value) == "IDology doesn't support a verification status check"
    assert exc_info.value.outcome.status is Status.ERROR
    assert exc_info.value.outcome.details is None
    assert isinstance(exc_info.value, VerificationError)
    assert t.call_count == 0
