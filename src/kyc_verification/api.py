from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from .config import load_config
from .errors import CapabilityError, RequestError, VerificationError
from .models import CustomerData, Details, Status
from .service import VerificationService, new_service
from .transport import RequestsTransport

# Load environment variables
load_dotenv()

app = FastAPI(title="KYC Verification API")


class OutcomeResponse(BaseModel):
    status: Status
    details: Optional[Details] = None


@lru_cache(maxsize=1)
def get_service() -> VerificationService:
    cfg = load_config(dotenv=False)
    transport = RequestsTransport(timeout=cfg.timeout, proxy_url=cfg.proxy_url)
    return new_service(cfg.provider, cfg.provider_config, transport=transport)


def _http_error(exc: VerificationError) -> HTTPException:
    if isinstance(exc, CapabilityError):
        return HTTPException(status_code=501, detail=exc.message)
    if isinstance(exc, RequestError):
        return HTTPException(status_code=400, detail=exc.message)
    return HTTPException(status_code=502, detail=exc.message)


@app.post("/check", response_model=OutcomeResponse)
def check_customer(customer: CustomerData, service: VerificationService = Depends(get_service)):
    try:
        outcome = service.check_customer(customer)
    except VerificationError as exc:
        raise _http_error(exc)
    return OutcomeResponse(status=outcome.status, details=outcome.details)


@app.get("/status/{reference_id}", response_model=OutcomeResponse)
def check_status(reference_id: str, service: VerificationService = Depends(get_service)):
    try:
        outcome = service.check_status(reference_id)
    except VerificationError as exc:
        raise _http_error(exc)
    return OutcomeResponse(status=outcome.status, details=outcome.details)


@app.get("/ping")
def ping():
    return {"pong": True}
