"""
Easypay Router

Endpoints called by the Easypay gateway:
- register: payment notification (reconciliation)
- detail: order detail shown on the gateway payment page
- cron/scan: polling fallback for missed notifications

The gateway expects XML documents with an ep_status/ep_message pair,
including on failure.
"""

from decimal import Decimal
from typing import Any, Optional
from xml.etree import ElementTree

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from easypay.errors import ERROR_INVALID_REGISTRATION, EasypayError
from easypay.logging import get_logger, sanitize_id_for_logging
from easypay.orders.orchestrator import EasypayOrchestrator
from easypay.routers.deps import get_orchestrator, get_scanner, verify_cron_secret
from easypay.services.models import Address
from easypay.services.money import format_money

logger = get_logger(__name__)

router = APIRouter(prefix="/api/payments/easypay", tags=["easypay"])

XML_ENCODING = "ISO-8859-1"


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return format_money(value)
    return str(value)


def _element(tag: str, *children: ElementTree.Element, **fields: Any) -> ElementTree.Element:
    element = ElementTree.Element(tag)
    for name, value in fields.items():
        ElementTree.SubElement(element, name).text = _text(value)
    element.extend(children)
    return element


def xml_response(root: ElementTree.Element, status_code: int = 200) -> Response:
    """Serialize a document the way the gateway expects (ISO-8859-1, with declaration)."""
    body = ElementTree.tostring(root, encoding=XML_ENCODING, xml_declaration=True)
    return Response(
        content=body,
        status_code=status_code,
        media_type=f"application/xml; charset={XML_ENCODING}",
    )


def error_response(error: Exception | str) -> Response:
    return xml_response(_element("details", ep_status="err", ep_message=str(error)), status_code=500)


def _address_block(prefix: str, address: Address) -> dict[str, Any]:
    return {
        f"{prefix}_name": address.name,
        f"{prefix}_address_1": address.line1,
        f"{prefix}_address_2": address.line2,
        f"{prefix}_city": address.city,
        f"{prefix}_zip_code": address.postal_code,
        f"{prefix}_country": address.country_name,
    }


# ==================== NOTIFICATION ====================

async def _register(
    orchestrator: EasypayOrchestrator,
    store: Optional[str],
    ep_cin: int,
    ep_user: str,
    ep_doc: str,
    ep_type: Optional[str],
) -> Response:
    logger.info(
        "Easypay notification: store=%s, doc=%s, type=%s",
        sanitize_id_for_logging(store),
        sanitize_id_for_logging(ep_doc),
        sanitize_id_for_logging(ep_type),
    )
    try:
        result = await orchestrator.reconcile_notification(store, ep_cin, ep_user, ep_doc, ep_type)
    except EasypayError as e:
        logger.warning("Easypay notification %s rejected: %s", sanitize_id_for_logging(ep_doc), e)
        return error_response(e)
    except Exception as e:
        logger.error("Easypay notification %s failed", sanitize_id_for_logging(ep_doc), exc_info=True)
        return error_response(e)

    if not result.is_success:
        return error_response(result.error or ERROR_INVALID_REGISTRATION)

    return xml_response(
        _element(
            "getautomb_key",
            ep_status="ok",
            ep_message="Payment registration accepted",
            ep_cin=ep_cin,
            ep_user=ep_user,
            ep_doc=ep_doc,
            ep_type=ep_type,
        )
    )


@router.get("/register")
async def register_payment(
    ep_cin: int,
    ep_user: str,
    ep_doc: str,
    ep_type: Optional[str] = None,
    orchestrator: EasypayOrchestrator = Depends(get_orchestrator),
):
    """Payment notification for the module-wide account."""
    return await _register(orchestrator, None, ep_cin, ep_user, ep_doc, ep_type)


@router.get("/register/{store}")
async def register_store_payment(
    store: str,
    ep_cin: int,
    ep_user: str,
    ep_doc: str,
    ep_type: Optional[str] = None,
    orchestrator: EasypayOrchestrator = Depends(get_orchestrator),
):
    """Payment notification for a store-scoped account."""
    return await _register(orchestrator, store, ep_cin, ep_user, ep_doc, ep_type)


# ==================== ORDER DETAIL ====================

@router.get("/detail")
async def order_detail(
    e: int,
    r: int,
    v: Decimal,
    t_key: str,
    orchestrator: EasypayOrchestrator = Depends(get_orchestrator),
):
    """Order summary for the gateway payment page (e=entity, r=reference, v=value)."""
    try:
        order = await orchestrator.get_payment_order(t_key)
    except EasypayError as err:
        return error_response(err)
    except Exception as err:
        logger.error("Easypay detail for order %s failed", sanitize_id_for_logging(t_key), exc_info=True)
        return error_response(err)

    info_fields: dict[str, Any] = {
        "total_taxes": order.tax_total,
        "total_including_taxes": order.total,
    }
    if order.billing_address is not None:
        info_fields.update(_address_block("bill", order.billing_address))
    if order.shipping_address is not None:
        info_fields.update(_address_block("shipp", order.shipping_address))

    items = [
        _element(
            "order_info",
            item_description=item.name,
            item_quantity=item.quantity,
            item_total=item.price_with_tax,
        )
        for item in order.items
    ]

    root = _element(
        "get_detail",
        _element("order_info", **info_fields),
        *items,
        ep_status="ok",
        ep_message="generated document",
        ep_entity=e,
        ep_reference=r,
        ep_value=v,
        t_key=t_key,
    )
    return xml_response(root)


# ==================== SCANNER ====================

@router.get("/cron/scan", dependencies=[Depends(verify_cron_secret)])
async def cron_scan():
    """Poll the gateway for paid references and reconcile them."""
    stats = await get_scanner().process()
    return JSONResponse({"ok": True, **stats})
