"""
Trulioo GlobalGateway adapter and result normalizer.

Every verify call accepts the terms and conditions, runs the fixed
"Identity Verification" configuration and forwards the configured datasource
consents. The reply carries a record status plus per-datasource field results,
appended fields and error codes; the transaction record endpoint returns the
same shape, so status checks normalize through the same path.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

from ..errors import CredentialError, RequestError, TransportError
from ..models import CustomerData, Details, Finality, Qualifier, Status, VerificationOutcome
from ..rules import Effect, RuleTable, classify, load_table
from ..transport import RequestsTransport, Transport
from .base import ProviderReply, parse_reply

TRULIOO_ENDPOINT = "https://api.globaldatacompany.com/verifications/v1"
PROVIDER_NAME = "Trulioo"
CONFIGURATION_NAME = "Identity Verification"

RECORD_MATCH = "match"
RECORD_NO_MATCH = "nomatch"
FIELD_MATCH = "match"

logger = logging.getLogger("kyc.trulioo")


@dataclass(frozen=True)
class TruliooConfig:
    host: str = TRULIOO_ENDPOINT
    token: str = ""
    consents: Tuple[str, ...] = ()


# ------------------------------ Wire models ----------------------------------

class _Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)


class PersonInfo(_Wire):
    first_given_name: str
    middle_name: Optional[str] = None
    first_sur_name: str
    day_of_birth: Optional[int] = None
    month_of_birth: Optional[int] = None
    year_of_birth: Optional[int] = None


class Location(_Wire):
    building_number: Optional[str] = None
    street_name: Optional[str] = None
    city: Optional[str] = None
    state_province_code: Optional[str] = None
    postal_code: Optional[str] = None


class Communication(_Wire):
    email_address: Optional[str] = None
    telephone: Optional[str] = None


class NationalID(_Wire):
    number: str
    type: str = "SocialService"


class DataFields(_Wire):
    person_info: PersonInfo
    location: Location
    communication: Optional[Communication] = None
    national_ids: Optional[List[NationalID]] = None


class VerifyRequest(_Wire):
    accept_trulioo_terms_and_conditions: bool = True
    configuration_name: str = CONFIGURATION_NAME
    consent_for_data_sources: List[str] = Field(default_factory=list)
    country_code: str
    data_fields: DataFields


class TruliooError(_Wire):
    code: Union[str, int] = ""
    message: str = ""


class DatasourceField(_Wire):
    field_name: str = ""
    status: str = ""


class AppendedField(_Wire):
    field_name: str = ""
    data: Any = None


class DatasourceResult(_Wire):
    datasource_name: str = ""
    datasource_fields: List[DatasourceField] = Field(default_factory=list)
    appended_fields: List[AppendedField] = Field(default_factory=list)
    errors: List[TruliooError] = Field(default_factory=list)


class Record(_Wire):
    transaction_record_id: Optional[str] = Field(None, alias="TransactionRecordID")
    record_status: Optional[str] = None
    datasource_results: List[DatasourceResult] = Field(default_factory=list)
    errors: List[TruliooError] = Field(default_factory=list)


class TruliooResponse(ProviderReply):
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    transaction_id: Optional[str] = Field(None, alias="TransactionID")
    country_code: Optional[str] = None
    product_name: Optional[str] = None
    record: Optional[Record] = None
    errors: List[TruliooError] = Field(default_factory=list)
    message: Optional[str] = None  # set by the gateway on HTTP level failures


def build_request(customer: CustomerData, config: TruliooConfig) -> VerifyRequest:
    addr = customer.current_address
    dob = customer.date_of_birth
    communication = None
    if customer.email or customer.phone:
        communication = Communication(email_address=customer.email, telephone=customer.phone)
    national_ids = None
    if customer.id_card is not None:
        national_ids = [NationalID(number=customer.id_card.number)]

    return VerifyRequest(
        consent_for_data_sources=list(config.consents),
        country_code=addr.country_alpha2,
        data_fields=DataFields(
            person_info=PersonInfo(
                first_given_name=customer.first_name,
                middle_name=customer.middle_name,
                first_sur_name=customer.last_name,
                day_of_birth=dob.day if dob else None,
                month_of_birth=dob.month if dob else None,
                year_of_birth=dob.year if dob else None,
            ),
            location=Location(
                building_number=addr.building_number or None,
                street_name=addr.street or None,
                city=addr.town or None,
                state_province_code=addr.state_province_code or addr.state or None,
                postal_code=addr.post_code or None,
            ),
            communication=communication,
            national_ids=national_ids,
        ),
    )


def _render(data: Any) -> str:
    if isinstance(data, (dict, list)):
        return json.dumps(data, ensure_ascii=False)
    return str(data)


def extract_qualifiers(response: TruliooResponse) -> List[Qualifier]:
    """Flatten datasource results then record errors into qualifiers, in reply order."""
    out: List[Qualifier] = []
    record = response.record
    if record is None:
        return out
    for ds in record.datasource_results:
        for f in ds.datasource_fields:
            if f.status.lower() == FIELD_MATCH:
                continue
            out.append(Qualifier(
                key=f"field.{f.field_name.lower()}.{f.status.lower()}",
                message=f"{ds.datasource_name}: {f.field_name} {f.status}",
            ))
        for a in ds.appended_fields:
            out.append(Qualifier(key=f"appended.{a.field_name.lower()}", message=f"{a.field_name}: {_render(a.data)}"))
        for e in ds.errors:
            out.append(Qualifier(key=f"datasource.error.{e.code}", message=f"{ds.datasource_name}: {e.message}"))
    for e in record.errors:
        out.append(Qualifier(key=f"record.error.{e.code}", message=e.message))
    return out


# ------------------------------ Provider -------------------------------------

class Trulioo:
    name = PROVIDER_NAME

    def __init__(self, config: TruliooConfig, transport: Optional[Transport] = None,
                 table: Optional[RuleTable] = None):
        self.config = config
        self.transport = transport or RequestsTransport()
        self.table = table or load_table("trulioo")

    def _headers(self) -> dict:
        return {
            "Authorization": "Basic " + self.config.token,
            "Content-Type": "application/json; charset=utf-8",
        }

    def send(self, customer: CustomerData) -> TruliooResponse:
        request = build_request(customer, self.config)
        body = request.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
        try:
            code, raw = self.transport.post(self.config.host + "/verify", self._headers(), body)
        except TransportError as exc:
            return TruliooResponse(transport_error=exc.message)
        return parse_reply(TruliooResponse, code, raw)

    def fetch_record(self, reference_id: str) -> TruliooResponse:
        url = f"{self.config.host}/transactionrecord/{reference_id}"
        try:
            code, raw = self.transport.get(url, self._headers())
        except TransportError as exc:
            return TruliooResponse(transport_error=exc.message)
        return parse_reply(TruliooResponse, code, raw)

    def normalize(self, response: TruliooResponse) -> VerificationOutcome:
        self._raise_for_error(response)

        qualifiers = extract_qualifiers(response)
        verdict = classify(qualifiers, self.table)
        record_status = (response.record.record_status or "").lower() if response.record else ""

        if verdict.effect is Effect.HARD_DENY:
            logger.debug("watchlist deny triggered by %r", verdict.trigger.key)
            status = Status.DENIED
        elif verdict.effect is Effect.SOFT_DENY:
            logger.debug("compliance deny triggered by %r", verdict.trigger.key)
            status = Status.DENIED
        elif record_status == RECORD_MATCH:
            status = Status.APPROVED
        elif record_status == RECORD_NO_MATCH:
            status = Status.DENIED
        else:
            status = Status.UNKNOWN

        return VerificationOutcome(
            status=status,
            details=Details(finality=Finality.UNKNOWN, reasons=[q.message for q in qualifiers]),
        )

    def check_status(self, reference_id: str) -> VerificationOutcome:
        if not reference_id:
            raise RequestError("reference_id is required")
        return self.normalize(self.fetch_record(reference_id))

    def _raise_for_error(self, response: TruliooResponse) -> None:
        if response.transport_error is not None:
            raise TransportError(f"during verification: {response.transport_error}")
        code = response.status_code
        if response.errors:
            text = "; ".join(e.message for e in response.errors)
        elif code is not None:
            text = response.message or f"HTTP {code}"
        elif response.malformed_body:
            raise TransportError(f"during verification: malformed {self.name} response")
        else:
            return
        message = f"during verification: {text}"
        if code in (401, 403) or self.table.is_credential_error(text):
            raise CredentialError(message, status_code=code)
        raise TransportError(message, status_code=code)
