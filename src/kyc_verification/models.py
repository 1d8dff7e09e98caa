from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Status(str, Enum):
    APPROVED = "Approved"
    DENIED = "Denied"
    ERROR = "Error"
    UNKNOWN = "Unknown"


class Finality(str, Enum):
    FINAL = "Final"
    UNKNOWN = "Unknown"


class Address(BaseModel):
    model_config = ConfigDict(frozen=True)

    country_alpha2: str = ""
    state: str = ""
    state_province_code: str = ""
    town: str = ""
    street: str = ""
    building_number: str = ""
    post_code: str = ""


class IDCard(BaseModel):
    model_config = ConfigDict(frozen=True)

    country_alpha2: str = ""
    number: str


class CustomerData(BaseModel):
    model_config = ConfigDict(frozen=True)

    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    date_of_birth: Optional[date] = None
    current_address: Address = Field(default_factory=Address)
    id_card: Optional[IDCard] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)


class Details(BaseModel):
    model_config = ConfigDict(frozen=True)

    finality: Finality = Finality.UNKNOWN
    reasons: List[str] = Field(default_factory=list)  # provider order


class VerificationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Status
    details: Optional[Details] = None

    @model_validator(mode="after")
    def _error_has_no_details(self) -> "VerificationOutcome":
        if self.status is Status.ERROR and self.details is not None:
            raise ValueError("an Error outcome cannot carry details")
        return self


class Qualifier(BaseModel):
    """One atomic provider signal; ``message`` is what ends up in the reasons."""

    model_config = ConfigDict(frozen=True)

    key: str
    message: str
