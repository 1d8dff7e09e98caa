from __future__ import annotations

import logging
from typing import Optional, Union

from .models import CustomerData, VerificationOutcome
from .providers.base import Provider
from .providers.idology import IDology, IDologyConfig
from .providers.trulioo import Trulioo, TruliooConfig
from .transport import Transport

logger = logging.getLogger("kyc.service")

PROVIDERS = ("idology", "trulioo")


class VerificationService:
    """Single entry point over any provider.

    Both calls return an Approved/Denied/Unknown outcome or raise a
    ``VerificationError`` whose ``outcome`` has ``Status.ERROR``.
    """

    def __init__(self, provider: Provider):
        self.provider = provider

    def check_customer(self, customer: CustomerData) -> VerificationOutcome:
        logger.debug("checking customer with %s", self.provider.name)
        response = self.provider.send(customer)
        return self.provider.normalize(response)

    def check_status(self, reference_id: str) -> VerificationOutcome:
        return self.provider.check_status(reference_id)


def new_service(
    provider_name: str,
    config: Union[IDologyConfig, TruliooConfig],
    transport: Optional[Transport] = None,
) -> VerificationService:
    name = (provider_name or "").strip().lower()
    if name == "idology":
        if not isinstance(config, IDologyConfig):
            raise TypeError("idology needs an IDologyConfig")
        return VerificationService(IDology(config, transport=transport))
    if name == "trulioo":
        if not isinstance(config, TruliooConfig):
            raise TypeError("trulioo needs a TruliooConfig")
        return VerificationService(Trulioo(config, transport=transport))
    raise ValueError(f"Unknown KYC provider '{provider_name}'. Expected one of: {', '.join(PROVIDERS)}")
