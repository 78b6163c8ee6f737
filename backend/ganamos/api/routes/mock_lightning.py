"""Mock Lightning Routes — LND REST look-alikes backed by the in-memory store.

Invariants:
    - Every route is gated by require_mocks (403 when USE_MOCKS is off)
    - Payment errors use LND's `payment_error` field, not the app envelope
    - Paying a "1mock" payment request settles the matching mock invoice
"""

import base64
import logging
import secrets

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ganamos.api.dependencies import require_mocks
from ganamos.config import Settings, get_settings
from ganamos.core.errors import InvalidRequestError, ResourceNotFoundError
from ganamos.mocks.lightning import PAYMENT_REQUEST_PREFIXES, mock_lightning_store
from ganamos.schemas.mocks import (
    CreateInvoiceRequest, SendPaymentRequest, SettleInvoiceRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/mock", tags=["mock-lightning"], dependencies=[Depends(require_mocks)],
)


@router.post("/lightning/v1/invoices")
async def create_invoice(
    body: CreateInvoiceRequest, settings: Settings = Depends(get_settings),
):
    invoice = mock_lightning_store.create_invoice(body.value, body.memo)
    mock_lightning_store.schedule_auto_settle(
        invoice.r_hash, settings.mock_lightning_auto_settle_ms,
    )
    logger.info(f"Mock invoice created for {invoice.value} sats")
    return {
        "r_hash": invoice.r_hash_base64,
        "payment_request": invoice.payment_request,
        "add_index": invoice.add_index,
    }


@router.post("/lightning/v1/channels/transactions")
async def send_payment(body: SendPaymentRequest):
    payment_request = body.payment_request
    if not payment_request:
        return JSONResponse(
            status_code=400, content={"payment_error": "Missing payment_request"},
        )
    if not payment_request.startswith(PAYMENT_REQUEST_PREFIXES):
        return JSONResponse(
            status_code=400, content={"payment_error": "Invalid BOLT11 invoice format"},
        )

    if "1mock" in payment_request:
        invoice = mock_lightning_store.find_by_payment_request(payment_request)
        if invoice is not None:
            mock_lightning_store.settle_invoice(invoice.r_hash)
    return {
        "payment_error": "",
        "payment_preimage": "",
        "payment_route": None,
        "payment_hash": base64.b64encode(secrets.token_bytes(32)).decode("ascii"),
    }


@router.get("/lightning/v1/balance/channels")
async def channel_balance():
    balance = mock_lightning_store.channel_balance
    return {
        "balance": str(balance),
        "pending_open_balance": "0",
        "local_balance": {"sat": str(balance), "msat": str(balance * 1000)},
    }


@router.get("/lightning/v1/balance/blockchain")
async def blockchain_balance():
    balance = mock_lightning_store.blockchain_balance
    return {
        "total_balance": str(balance),
        "confirmed_balance": str(balance),
        "unconfirmed_balance": "0",
    }


@router.post("/settle-invoice")
async def settle_invoice(body: SettleInvoiceRequest):
    if not body.r_hash:
        raise InvalidRequestError("Missing rHash parameter")
    if not mock_lightning_store.settle_invoice(body.r_hash):
        raise ResourceNotFoundError("Invoice not found", rHash=body.r_hash)
    invoice = mock_lightning_store.get_invoice(body.r_hash).to_dict()
    return {
        "success": True,
        "message": "Invoice settled",
        "invoice": {
            "rHash": invoice["rHash"],
            "settled": invoice["settled"],
            "settledAt": invoice["settledAt"],
            "value": invoice["value"],
        },
    }


@router.get("/settle-invoice")
async def list_invoices():
    invoices = [invoice.to_dict() for invoice in mock_lightning_store.invoices()]
    return {
        "count": len(invoices),
        "invoices": [
            {
                "rHash": invoice["rHash"][:16] + "...",
                "value": invoice["value"],
                "memo": invoice["memo"],
                "settled": invoice["settled"],
                "createdAt": invoice["createdAt"],
                "settledAt": invoice["settledAt"],
            }
            for invoice in invoices
        ],
    }
