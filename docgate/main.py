"""Operator command loop for submitting documents through the admission controller.

Commands are read line by line from stdin:
    1  submit the sample document (its id increments on every submission)
    2  exit
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence, TextIO

from pydantic import BaseModel

from docgate.adapters.documents.http_client import HttpDocumentClient
from docgate.adapters.rate_limit.factory import create_admission_controller
from docgate.core.config import settings
from docgate.core.errors import AppError
from docgate.core.logging import configure_logging
from docgate.schemas.documents import DocumentFormat, ProductGroup
from docgate.services.document_service import DocumentService

logger = logging.getLogger(__name__)

SUBMIT_COMMAND = "1"
EXIT_COMMAND = "2"


class SampleDocument(BaseModel):
    """Document submitted by the operator loop."""

    id: int
    name: str
    description: str


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docgate",
        description="Submit documents to the document API under an admission limit.",
    )
    parser.add_argument(
        "--strategy",
        choices=["sliding_window", "fixed_window"],
        help="Admission strategy (default: LIMITER_STRATEGY)",
    )
    parser.add_argument("--limit", type=int, help="Admissions per period (default: LIMITER_LIMIT)")
    parser.add_argument(
        "--period",
        type=float,
        dest="period_seconds",
        help="Period length in seconds (default: LIMITER_PERIOD_SECONDS)",
    )
    parser.add_argument("--token", help="Bearer token (default: DOCS_API_TOKEN)")
    parser.add_argument("--signature", default="signature", help="Signature sent with every document")
    parser.add_argument(
        "--product-group",
        choices=[group.value for group in ProductGroup],
        default=ProductGroup.bicycle.value,
    )
    return parser


def run_loop(
    service: DocumentService,
    *,
    token: str,
    signature: str,
    product_group: ProductGroup,
    stdin: TextIO,
    stdout: TextIO,
) -> int:
    """Process operator commands until exit or end of input.

    Returns:
        Number of documents submitted successfully.
    """
    document = SampleDocument(id=0, name="document", description="very useful document")
    count = 0
    submitted = 0

    for line in stdin:
        command = line.strip()
        if not command:
            continue
        if command == EXIT_COMMAND:
            break
        if command != SUBMIT_COMMAND:
            print("Wrong command", file=stdout)
            continue

        count += 1
        document = document.model_copy(update={"id": count})
        try:
            value = service.create_produced_product_document(
                document,
                signature,
                product_group,
                DocumentFormat.MANUAL,
                token,
            )
        except AppError as exc:
            logger.warning(
                "cli.submission_failed",
                extra={"error_code": exc.code, "error_message": exc.message},
            )
            print(f"Error [{exc.code}]: {exc.message}", file=stdout)
            continue

        submitted += 1
        print(value, file=stdout)

    return submitted


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    configure_logging(settings.log)

    overrides = {
        key: value
        for key, value in (
            ("strategy", args.strategy),
            ("limit", args.limit),
            ("period_seconds", args.period_seconds),
        )
        if value is not None
    }
    token = args.token or settings.documents_api.token
    if not token:
        print("A bearer token is required (--token or DOCS_API_TOKEN)", file=sys.stderr)
        return 2

    try:
        limiter_settings = settings.limiter.model_copy(update=overrides)
        controller = create_admission_controller(limiter_settings)
    except AppError as exc:
        print(f"Error [{exc.code}]: {exc.message}", file=sys.stderr)
        return 2

    client = HttpDocumentClient(
        base_url=settings.documents_api.base_url,
        timeout_seconds=settings.documents_api.timeout_seconds,
    )
    service = DocumentService(controller, client)

    print("Program started.")
    try:
        run_loop(
            service,
            token=token,
            signature=args.signature,
            product_group=ProductGroup(args.product_group),
            stdin=sys.stdin,
            stdout=sys.stdout,
        )
    except KeyboardInterrupt:
        logger.info("cli.interrupted")
    finally:
        service.close()
    print("Program finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
