import argparse
import json
import logging
import sys
from pathlib import Path

from kyc_verification.config import load_config
from kyc_verification.errors import VerificationError
from kyc_verification.models import CustomerData
from kyc_verification.service import new_service
from kyc_verification.transport import RequestsTransport


def run(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run one KYC check against the configured provider.")
    parser.add_argument("customer", type=Path, nargs="?", help="JSON file describing the customer")
    parser.add_argument("--status", metavar="REFERENCE_ID", help="check a previous verification instead")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)
    if args.customer is None and not args.status:
        parser.error("a customer file is required unless --status is given")

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    cfg = load_config()
    service = new_service(
        cfg.provider,
        cfg.provider_config,
        transport=RequestsTransport(timeout=cfg.timeout, proxy_url=cfg.proxy_url),
    )

    try:
        if args.status:
            outcome = service.check_status(args.status)
        else:
            customer = CustomerData.model_validate_json(args.customer.read_text(encoding="utf-8"))
            outcome = service.check_customer(customer)
    except VerificationError as exc:
        print(json.dumps({"status": exc.outcome.status.value, "error": exc.message}))
        return 1

    print(outcome.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(run())
