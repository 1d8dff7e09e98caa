"""
IDology ExpectID adapter and result normalizer.

ExpectID is a demographic-match service: the reply is a list of qualifiers
plus optional ID notes, a Patriot Act block and a restriction block. Bad
credentials come back as HTTP 200 with a top-level ``error`` string.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..errors import CredentialError, TransportError, status_check_unsupported
from ..models import CustomerData, Details, Finality, Qualifier, Status, VerificationOutcome
from ..rules import Effect, RuleTable, classify, load_table
from ..transport import RequestsTransport, Transport
from .base import ProviderReply, parse_reply

KYC_ENDPOINT = "https://web.idologylive.com/api/idiq.svc"
PROVIDER_NAME = "IDology"

RESULT_MATCH = "result.match"
RESULT_NO_MATCH = "result.no.match"
SUMMARY_FAILURE = "id.failure"

logger = logging.getLogger("kyc.idology")


@dataclass(frozen=True)
class IDologyConfig:
    host: str = KYC_ENDPOINT
    username: str = ""
    password: str = ""
    use_summary_result: bool = False


# ------------------------------ Wire models ----------------------------------

class ExpectIDRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str
    password: str
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: Optional[str] = None
    ssn: Optional[str] = None
    dob_month: Optional[int] = Field(None, alias="dobMonth")
    dob_day: Optional[int] = Field(None, alias="dobDay")
    dob_year: Optional[int] = Field(None, alias="dobYear")
    email: Optional[str] = None
    telephone: Optional[str] = None


class KeyMessage(BaseModel):
    key: str = ""
    message: str = ""


class PatriotAct(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    list_name: Optional[str] = Field(None, alias="list")
    score: Optional[int] = None
    dob_match: bool = Field(False, alias="dob-match")


class ExpectIDResponse(ProviderReply):
    model_config = ConfigDict(populate_by_name=True)

    id_number: Optional[int] = Field(None, alias="id-number")
    summary_result: Optional[KeyMessage] = Field(None, alias="summary-result")
    results: Optional[KeyMessage] = None
    qualifiers: List[KeyMessage] = Field(default_factory=list)
    id_notes: List[KeyMessage] = Field(default_factory=list, alias="id-notes")
    restriction: Optional[KeyMessage] = None
    pa: Optional[PatriotAct] = None
    error: Optional[str] = None


def build_request(customer: CustomerData, config: IDologyConfig) -> ExpectIDRequest:
    addr = customer.current_address
    dob = customer.date_of_birth
    return ExpectIDRequest(
        username=config.username,
        password=config.password,
        first_name=customer.first_name,
        last_name=customer.last_name,
        address=" ".join(p for p in (addr.building_number, addr.street) if p),
        city=addr.town,
        state=addr.state_province_code or addr.state,
        zip=addr.post_code,
        country=addr.country_alpha2 or None,
        ssn=customer.id_card.number if customer.id_card else None,
        dob_month=dob.month if dob else None,
        dob_day=dob.day if dob else None,
        dob_year=dob.year if dob else None,
        email=customer.email,
        telephone=customer.phone,
    )


def extract_qualifiers(response: ExpectIDResponse) -> List[Qualifier]:
    """Flatten every signal of the reply into qualifiers, in reply order."""
    out: List[Qualifier] = []
    if response.results is not None and response.results.key != RESULT_MATCH:
        out.append(Qualifier(key=response.results.key, message=response.results.message))
    out.extend(Qualifier(key=q.key, message=q.message) for q in response.qualifiers)
    out.extend(Qualifier(key=n.key, message=n.message) for n in response.id_notes)
    if response.restriction is not None:
        r = response.restriction
        out.append(Qualifier(key=f"restriction.{r.key}", message=r.message))
    pa = response.pa
    if pa is not None:
        if pa.list_name:
            out.append(Qualifier(key="pa.list", message=pa.list_name))
        if pa.score is not None:
            out.append(Qualifier(key="pa.score", message=f"Patriot Act score: {pa.score}"))
        if pa.dob_match:
            out.append(Qualifier(key="pa.dob.match", message="PA DOB Match"))
    return out


# ------------------------------ Provider -------------------------------------

class IDology:
    name = PROVIDER_NAME

    def __init__(self, config: IDologyConfig, transport: Optional[Transport] = None,
                 table: Optional[RuleTable] = None):
        self.config = config
        self.transport = transport or RequestsTransport()
        self.table = table or load_table("idology")

    def send(self, customer: CustomerData) -> ExpectIDResponse:
        request = build_request(customer, self.config)
        body = request.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
        headers = {"Content-Type": "application/json; charset=utf-8"}
        try:
            code, raw = self.transport.post(self.config.host, headers, body)
        except TransportError as exc:
            return ExpectIDResponse(transport_error=exc.message)
        return parse_reply(ExpectIDResponse, code, raw)

    def normalize(self, response: ExpectIDResponse) -> VerificationOutcome:
        self._raise_for_error(response)

        qualifiers = extract_qualifiers(response)
        verdict = classify(qualifiers, self.table)
        summary = response.summary_result if self.config.use_summary_result else None

        if verdict.effect is Effect.HARD_DENY:
            logger.debug("watchlist deny triggered by %r", verdict.trigger.key)
            status = Status.DENIED
        elif verdict.effect is Effect.SOFT_DENY:
            logger.debug("compliance deny triggered by %r", verdict.trigger.key)
            status = Status.DENIED
        elif summary is not None and summary.key == SUMMARY_FAILURE:
            status = Status.DENIED
        elif response.results is None:
            status = Status.UNKNOWN
        elif response.results.key == RESULT_MATCH:
            status = Status.APPROVED
        elif response.results.key == RESULT_NO_MATCH:
            status = Status.DENIED
        else:
            status = Status.UNKNOWN

        # The summary result is the provider's own verdict, the only
        # explicit finality marker ExpectID has.
        finality = Finality.FINAL if summary is not None else Finality.UNKNOWN
        return VerificationOutcome(
            status=status,
            details=Details(finality=finality, reasons=[q.message for q in qualifiers]),
        )

    def check_status(self, reference_id: str) -> VerificationOutcome:
        raise status_check_unsupported(self.name)

    def _raise_for_error(self, response: ExpectIDResponse) -> None:
        if response.transport_error is not None:
            raise TransportError(f"during verification: {response.transport_error}")
        if response.error:
            message = f"during verification: {response.error}"
            if self.table.is_credential_error(response.error):
                raise CredentialError(message, status_code=response.status_code)
            raise TransportError(message, status_code=response.status_code)
        if response.status_code is not None:
            message = f"during verification: HTTP {response.status_code}"
            if response.status_code in (401, 403):
                raise CredentialError(message, status_code=response.status_code)
            raise TransportError(message, status_code=response.status_code)
        if response.malformed_body:
            raise TransportError(f"during verification: malformed {self.name} response")

